"""Exception hierarchy for the PNI binary protocol."""


class PniError(Exception):
    """Base class for every error raised by the SDK."""


class TransportError(PniError, ConnectionError):
    """The serial transport failed to read or write, or was closed.

    Never retried: the transaction fails immediately and releases the channel.
    """


class ChannelNotHeld(PniError, RuntimeError):
    """Channel I/O attempted by a thread that does not hold the channel."""


class FrameError(PniError):
    """A received byte sequence is not a valid frame."""


class ChecksumMismatch(FrameError):
    """Frame checksum trailer does not match the computed checksum."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"ChecksumMismatch {{ expected: 0x{expected:04X}, actual: 0x{actual:04X} }}")


class ProtocolDesync(FrameError):
    """Too many consecutive corrupt frames; the stream cannot be realigned.

    Resetting the channel (close and reopen the transport) is the usual remedy.
    """


class MalformedPayload(FrameError):
    """Payload bytes do not fit the declared field type."""


class UnknownEnumValue(MalformedPayload):
    """Raw enumeration code has no mapping."""

    def __init__(self, enum_name: str, raw: int):
        self.enum_name = enum_name
        self.raw = raw
        super().__init__(f"Unknown {enum_name} value from device: {raw}")


class TypeMismatch(PniError, TypeError):
    """Value handed to an encoder does not conform to the field type."""


class TransactionTimeout(PniError):
    """No correlated response arrived within the attempt budget."""

    def __init__(self, command: int, expected_response: int, attempts: int):
        self.command = command
        self.expected_response = expected_response
        self.attempts = attempts
        super().__init__(
            f"No response 0x{expected_response:02X} to command 0x{command:02X} after {attempts} attempt(s)"
        )


class DeviceError(PniError):
    """The module answered with an error status."""
