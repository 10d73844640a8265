"""PNI binary protocol implementation."""

from pni_sdk.protocol.codec import decode_value, encode_value
from pni_sdk.protocol.constants import (
    START_MARKER,
    Baud,
    CalOption,
    Command,
    ConfigID,
    DataID,
    MountingRef,
)
from pni_sdk.protocol.crc import CRC16_XMODEM, SUM16, calculate_crc16, calculate_sum16, verify_crc16
from pni_sdk.protocol.errors import (
    ChannelNotHeld,
    ChecksumMismatch,
    DeviceError,
    FrameError,
    MalformedPayload,
    PniError,
    ProtocolDesync,
    TransactionTimeout,
    TransportError,
    TypeMismatch,
    UnknownEnumValue,
)
from pni_sdk.protocol.frames import PNI_NATIVE, DeviceFamily, Frame, FrameDecoder, FrameFormat, family_format
from pni_sdk.protocol.registry import PNI_PARAMETERS, Direction, Parameter, ParameterRegistry

# TransactionEngine imported lazily to avoid circular import with serial.reader
# (serial.reader -> protocol.constants -> protocol.__init__ -> handler -> serial.reader)


def __getattr__(name: str):
    if name in ("TransactionEngine", "TransactionConfig"):
        from pni_sdk.protocol import handler

        return getattr(handler, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Frame",
    "FrameDecoder",
    "FrameFormat",
    "PNI_NATIVE",
    "DeviceFamily",
    "family_format",
    "TransactionEngine",
    "TransactionConfig",
    "Parameter",
    "ParameterRegistry",
    "PNI_PARAMETERS",
    "Direction",
    "calculate_crc16",
    "calculate_sum16",
    "verify_crc16",
    "CRC16_XMODEM",
    "SUM16",
    "encode_value",
    "decode_value",
    "START_MARKER",
    "Baud",
    "CalOption",
    "Command",
    "ConfigID",
    "DataID",
    "MountingRef",
    "PniError",
    "TransportError",
    "ChannelNotHeld",
    "FrameError",
    "ChecksumMismatch",
    "ProtocolDesync",
    "MalformedPayload",
    "UnknownEnumValue",
    "TypeMismatch",
    "TransactionTimeout",
    "DeviceError",
]
