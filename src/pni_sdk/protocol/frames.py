"""Frame construction and parsing for the PNI binary protocol."""

import logging
import struct
from dataclasses import dataclass
from enum import Enum

from pni_sdk.protocol.constants import (
    CHECKSUM_SIZE,
    LENGTH_SIZE,
    MAX_CHECKSUM_FAILURES,
    MAX_FRAME_SIZE,
    START_MARKER,
)
from pni_sdk.protocol.crc import CRC16_XMODEM, Checksum
from pni_sdk.protocol.errors import ChecksumMismatch, FrameError, ProtocolDesync

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameFormat:
    """
    Byte layout of a frame for one device family.

    The default is the marked layout:
    [START][LEN_H][LEN_L][CMD][PAYLOAD...][CHK_H][CHK_L]
    where LEN counts CMD through the checksum and the checksum covers
    CMD + PAYLOAD.

    Attributes:
        start_marker: Leading sync byte, or None for unmarked streams
        command_width: Command identifier size (1 or 2 bytes)
        length_includes_prefix: LEN also counts the marker and itself
        checksum_covers_length: Checksum also covers the LEN bytes
        checksum: Integrity algorithm
        max_frame_size: Largest plausible frame; longer lengths are line noise
    """

    start_marker: int | None = START_MARKER
    command_width: int = 1
    length_includes_prefix: bool = False
    checksum_covers_length: bool = False
    checksum: Checksum = CRC16_XMODEM
    max_frame_size: int = MAX_FRAME_SIZE

    def __post_init__(self):
        if self.command_width not in (1, 2):
            raise ValueError(f"Unsupported command width: {self.command_width}")
        if self.start_marker is not None and not 0 <= self.start_marker <= 0xFF:
            raise ValueError(f"Start marker must be a byte: {self.start_marker}")

    @property
    def marker_size(self) -> int:
        return 0 if self.start_marker is None else 1

    @property
    def prefix_size(self) -> int:
        """Bytes before the command identifier (marker + length field)."""
        return self.marker_size + LENGTH_SIZE

    @property
    def min_frame_size(self) -> int:
        return self.prefix_size + self.command_width + self.checksum.size

    def frame_size(self, length: int) -> int:
        """Total frame size for a decoded LEN value."""
        if self.length_includes_prefix:
            return length
        return self.prefix_size + length

    def length_value(self, body_size: int) -> int:
        """LEN value for a frame whose command+payload+checksum is body_size bytes."""
        if self.length_includes_prefix:
            return self.prefix_size + body_size
        return body_size


# Layout spoken by PNI modules:
# [LEN_H][LEN_L][CMD][PAYLOAD...][CRC_H][CRC_L], LEN counts the whole frame,
# CRC-16/XMODEM over LEN + CMD + PAYLOAD.
PNI_NATIVE = FrameFormat(
    start_marker=None,
    length_includes_prefix=True,
    checksum_covers_length=True,
)


class DeviceFamily(str, Enum):
    """PNI module lines and generic marked framing."""

    GENERIC = "generic"
    PRIME = "prime"
    TCM = "tcm"
    SEATRAX = "seatrax"
    TRAX = "trax"
    TARGETPOINT3 = "targetpoint3"


FAMILY_FORMATS: dict[DeviceFamily, FrameFormat] = {
    DeviceFamily.GENERIC: FrameFormat(),
    DeviceFamily.PRIME: PNI_NATIVE,
    DeviceFamily.TCM: PNI_NATIVE,
    DeviceFamily.SEATRAX: PNI_NATIVE,
    DeviceFamily.TRAX: PNI_NATIVE,
    DeviceFamily.TARGETPOINT3: PNI_NATIVE,
}


def family_format(family: DeviceFamily | str) -> FrameFormat:
    """Look up the frame layout for a device family name."""
    return FAMILY_FORMATS[DeviceFamily(family)]


class Frame:
    """
    Represents one PNI protocol frame.

    Attributes:
        command: Command identifier
        payload: Payload bytes (may be empty)
        checksum: Checksum of the last encode or decode, None before either
    """

    def __init__(self, command: int, payload: bytes = b""):
        self.command = int(command)
        self.payload = bytes(payload)
        self.checksum: int | None = None

    def to_bytes(self, fmt: FrameFormat | None = None) -> bytes:
        """
        Convert frame to bytes for transmission.

        The checksum is recomputed on every call.

        Example:
            >>> Frame(0x01).to_bytes().hex()
            '020003011021'
        """
        fmt = fmt or FrameFormat()
        width = fmt.command_width
        if not 0 <= self.command < (1 << (8 * width)):
            raise ValueError(f"Command 0x{self.command:X} does not fit in {width} byte(s)")

        body = self.command.to_bytes(width, "big") + self.payload
        length = fmt.length_value(len(body) + fmt.checksum.size)
        total = fmt.frame_size(length)
        if total > fmt.max_frame_size:
            raise ValueError(f"Frame of {total} bytes exceeds maximum of {fmt.max_frame_size}")

        length_bytes = struct.pack(">H", length)
        covered = length_bytes + body if fmt.checksum_covers_length else body
        self.checksum = fmt.checksum.compute(covered)

        frame = bytearray()
        if fmt.start_marker is not None:
            frame.append(fmt.start_marker)
        frame.extend(length_bytes)
        frame.extend(body)
        frame.extend(self.checksum.to_bytes(fmt.checksum.size, "big"))
        return bytes(frame)

    @classmethod
    def from_bytes(cls, data: bytes, fmt: FrameFormat | None = None) -> "Frame | None":
        """Parse exactly one frame; see decode_frame."""
        return decode_frame(data, fmt)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return self.command == other.command and self.payload == other.payload

    def __hash__(self) -> int:
        return hash((self.command, self.payload))

    def __repr__(self) -> str:
        return f"Frame(cmd=0x{self.command:02X}, payload={self.payload.hex() or 'empty'})"


def encode_frame(command: int, payload: bytes = b"", fmt: FrameFormat | None = None) -> bytes:
    """Wrap a command and payload into a complete frame."""
    return Frame(command, payload).to_bytes(fmt)


def _parse_frame(data: bytes, fmt: FrameFormat) -> Frame:
    """Verify the checksum of a complete, length-checked frame and split it."""
    trailer = len(data) - fmt.checksum.size
    received = int.from_bytes(data[trailer:], "big")
    covered_start = fmt.marker_size if fmt.checksum_covers_length else fmt.prefix_size
    calculated = fmt.checksum.compute(data[covered_start:trailer])

    if received != calculated:
        raise ChecksumMismatch(expected=calculated, actual=received)

    command_end = fmt.prefix_size + fmt.command_width
    command = int.from_bytes(data[fmt.prefix_size : command_end], "big")
    frame = Frame(command, data[command_end:trailer])
    frame.checksum = received
    return frame


def decode_frame(data: bytes, fmt: FrameFormat | None = None) -> Frame | None:
    """
    Parse one complete frame.

    Validation order: start marker, declared length, checksum.

    Args:
        data: Raw frame bytes
        fmt: Frame layout (default: marked layout)

    Returns:
        Parsed Frame, or None when more bytes are needed

    Raises:
        FrameError: Missing start marker, implausible length or surplus bytes
        ChecksumMismatch: Checksum trailer does not match
    """
    fmt = fmt or FrameFormat()
    data = bytes(data)

    if fmt.start_marker is not None:
        if not data:
            return None
        if data[0] != fmt.start_marker:
            raise FrameError(f"Missing start marker: got 0x{data[0]:02X}")

    if len(data) < fmt.prefix_size:
        return None

    length = struct.unpack(">H", data[fmt.marker_size : fmt.prefix_size])[0]
    size = fmt.frame_size(length)
    if size < fmt.min_frame_size or size > fmt.max_frame_size:
        raise FrameError(f"Implausible frame length: {length}")

    if len(data) < size:
        return None
    if len(data) > size:
        raise FrameError(f"Frame length mismatch: declared {size} bytes, got {len(data)}")

    return _parse_frame(data, fmt)


class FrameDecoder:
    """
    Incremental frame extractor for a byte stream.

    Once a frame header is parsed, the decoder waits for exactly the
    declared number of bytes, so start-marker bytes inside a payload are
    never mistaken for a new frame. A frame that fails its checksum is
    dropped and the stream is rescanned from the next start marker.
    """

    def __init__(self, fmt: FrameFormat | None = None, max_checksum_failures: int = MAX_CHECKSUM_FAILURES):
        self.format = fmt or FrameFormat()
        self.max_checksum_failures = max_checksum_failures
        self._buffer = bytearray()
        self._frame_size: int | None = None
        self._consecutive_failures = 0
        self.checksum_failures = 0
        self.bytes_discarded = 0

    @property
    def pending(self) -> int:
        """Number of buffered, not yet consumed bytes."""
        return len(self._buffer)

    def feed(self, data: bytes) -> None:
        self._buffer.extend(data)

    def reset(self) -> None:
        """Drop buffered bytes and any frame in progress."""
        self._buffer.clear()
        self._frame_size = None
        self._consecutive_failures = 0

    def next_frame(self) -> Frame | None:
        """
        Extract the next valid frame from the buffer.

        Returns:
            Frame, or None if the buffer does not hold a complete frame yet

        Raises:
            ProtocolDesync: max_checksum_failures corrupt frames in a row
        """
        fmt = self.format

        while True:
            if self._frame_size is None:
                if not self._seek_start():
                    return None

                if len(self._buffer) < fmt.prefix_size:
                    return None

                length = int.from_bytes(self._buffer[fmt.marker_size : fmt.prefix_size], "big")
                size = fmt.frame_size(length)
                if size < fmt.min_frame_size or size > fmt.max_frame_size:
                    logger.debug("Implausible frame length %d, resynchronizing", length)
                    self._discard(1)
                    continue

                self._frame_size = size

            if len(self._buffer) < self._frame_size:
                return None

            size = self._frame_size
            self._frame_size = None
            frame_data = bytes(self._buffer[:size])

            try:
                frame = _parse_frame(frame_data, fmt)
            except ChecksumMismatch as e:
                self.checksum_failures += 1
                self._consecutive_failures += 1
                logger.warning("Discarding corrupt frame (%s): %s", e, frame_data.hex())
                self._discard(1)
                if self._consecutive_failures >= self.max_checksum_failures:
                    failures = self._consecutive_failures
                    self._consecutive_failures = 0
                    raise ProtocolDesync(f"{failures} consecutive corrupt frames") from e
                continue

            del self._buffer[:size]
            self._consecutive_failures = 0
            return frame

    def _seek_start(self) -> bool:
        """Drop bytes before the next start marker. Returns False if none is buffered."""
        marker = self.format.start_marker
        if marker is None:
            return bool(self._buffer)

        begin_idx = self._buffer.find(marker)
        if begin_idx == -1:
            if self._buffer:
                logger.debug("No start marker found, discarding %d bytes", len(self._buffer))
                self._discard(len(self._buffer))
            return False

        if begin_idx > 0:
            logger.debug("Discarding %d bytes before start marker", begin_idx)
            self._discard(begin_idx)
        return True

    def _discard(self, count: int) -> None:
        del self._buffer[:count]
        self.bytes_discarded += count
