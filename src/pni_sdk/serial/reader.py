"""Blocking frame reader for the PNI protocol."""

import logging
import time

from pni_sdk.protocol.constants import MAX_CHECKSUM_FAILURES, READ_CHUNK_SIZE
from pni_sdk.protocol.frames import Frame, FrameDecoder, FrameFormat
from pni_sdk.serial.connection import Transport

logger = logging.getLogger(__name__)


class FrameReader:
    """Reads complete, checksum-verified frames from a transport."""

    def __init__(
        self,
        transport: Transport,
        fmt: FrameFormat | None = None,
        max_checksum_failures: int = MAX_CHECKSUM_FAILURES,
        chunk_size: int = READ_CHUNK_SIZE,
    ):
        """
        Initialize frame reader.

        Args:
            transport: Transport to read from
            fmt: Frame layout
            max_checksum_failures: Consecutive corrupt frames before ProtocolDesync
            chunk_size: Largest single transport read
        """
        self.transport = transport
        self.chunk_size = chunk_size
        self._decoder = FrameDecoder(fmt, max_checksum_failures)
        self._frames_read = 0
        self._bytes_read = 0

    @property
    def stats(self) -> dict:
        """Get reader statistics."""
        return {
            "frames_read": self._frames_read,
            "frames_invalid": self._decoder.checksum_failures,
            "bytes_read": self._bytes_read,
            "bytes_discarded": self._decoder.bytes_discarded,
        }

    def read_frame(self, timeout: float) -> Frame | None:
        """
        Read the next valid frame.

        Args:
            timeout: Seconds to wait for a complete frame

        Returns:
            Parsed Frame, or None if none completed before the deadline

        Raises:
            TransportError: If the transport fails or is closed
            ProtocolDesync: If the stream cannot be realigned
        """
        deadline = time.monotonic() + timeout

        while True:
            frame = self._decoder.next_frame()
            if frame is not None:
                self._frames_read += 1
                logger.debug("Frame read: %s", frame)
                return frame

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                if self._decoder.pending:
                    logger.debug("Read timeout with %d byte(s) of partial frame", self._decoder.pending)
                return None

            chunk = self.transport.read(self.chunk_size, remaining)
            if chunk:
                self._decoder.feed(chunk)
                self._bytes_read += len(chunk)

    def reset_buffer(self) -> None:
        """Discard buffered bytes and any partial frame."""
        self._decoder.reset()

    def reset_stats(self) -> None:
        """Reset reader statistics."""
        self._frames_read = 0
        self._bytes_read = 0
        self._decoder.checksum_failures = 0
        self._decoder.bytes_discarded = 0
