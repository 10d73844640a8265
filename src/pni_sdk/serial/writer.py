"""Frame writer for the PNI protocol."""

import logging

from pni_sdk.protocol.frames import Frame, FrameFormat
from pni_sdk.serial.connection import Transport

logger = logging.getLogger(__name__)


class FrameWriter:
    """Encodes frames and writes them to a transport.

    Write failures are not retried here: a TransportError means the line is
    gone, and the caller fails the transaction.
    """

    def __init__(self, transport: Transport, fmt: FrameFormat | None = None):
        self.transport = transport
        self.format = fmt or FrameFormat()
        self._stats = {
            "frames_written": 0,
            "bytes_written": 0,
        }

    @property
    def stats(self) -> dict:
        """Get writer statistics."""
        return self._stats.copy()

    def write_frame(self, frame: Frame) -> bytes:
        """
        Encode and write one frame.

        Returns:
            The bytes written

        Raises:
            TransportError: If the transport fails or is closed
        """
        frame_bytes = frame.to_bytes(self.format)
        self.transport.write(frame_bytes)

        self._stats["frames_written"] += 1
        self._stats["bytes_written"] += len(frame_bytes)
        logger.debug("Frame written: %s (hex: %s)", frame, frame_bytes.hex())
        return frame_bytes

    def reset_stats(self) -> None:
        """Reset writer statistics."""
        self._stats = {
            "frames_written": 0,
            "bytes_written": 0,
        }
