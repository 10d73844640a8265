"""Exclusive ownership of one serial line."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from pni_sdk.protocol.constants import MAX_CHECKSUM_FAILURES
from pni_sdk.protocol.errors import ChannelNotHeld
from pni_sdk.protocol.frames import Frame, FrameFormat
from pni_sdk.serial.connection import Transport
from pni_sdk.serial.reader import FrameReader
from pni_sdk.serial.writer import FrameWriter

logger = logging.getLogger(__name__)


class Channel:
    """
    Channel handle: the only route to a transport.

    At most one thread holds the channel at a time. Frame I/O by any other
    thread raises ChannelNotHeld, so requests and responses from two callers
    can never interleave on the wire. The holder may re-acquire (nested
    transactions such as a preamble followed by a query).
    """

    def __init__(
        self,
        transport: Transport,
        fmt: FrameFormat | None = None,
        max_checksum_failures: int = MAX_CHECKSUM_FAILURES,
    ):
        self.transport = transport
        self.format = fmt or FrameFormat()
        self.reader = FrameReader(transport, self.format, max_checksum_failures)
        self.writer = FrameWriter(transport, self.format)

        self._lock = threading.RLock()
        self._owner: int | None = None
        self._depth = 0

    @property
    def held(self) -> bool:
        """Whether the calling thread holds the channel."""
        return self._owner == threading.get_ident()

    @contextmanager
    def acquire(self) -> Iterator["Channel"]:
        """Hold the channel for the duration of the block; blocks while another thread holds it."""
        self._lock.acquire()
        self._owner = threading.get_ident()
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._owner = None
            self._lock.release()

    def send(self, frame: Frame) -> bytes:
        self._check_held()
        return self.writer.write_frame(frame)

    def receive(self, timeout: float) -> Frame | None:
        self._check_held()
        return self.reader.read_frame(timeout)

    def reset_input(self) -> None:
        """Drop buffered input so the next receive starts fresh."""
        self._check_held()
        self.reader.reset_buffer()

    def close(self) -> None:
        """Close the transport.

        Does not wait for the holder: a transaction in progress fails with
        TransportError on its next read or write.
        """
        logger.debug("Closing channel")
        self.transport.close()

    def _check_held(self) -> None:
        if not self.held:
            raise ChannelNotHeld("Channel I/O requires holding the channel (use Channel.acquire())")
