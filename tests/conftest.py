"""Shared test fixtures."""

import threading
import time

import pytest

from pni_sdk.protocol.errors import TransportError
from pni_sdk.protocol.frames import PNI_NATIVE, Frame, FrameFormat, decode_frame
from pni_sdk.protocol.handler import TransactionConfig


class FakeTransport:
    """In-memory module: records writes and replies from a script.

    Replies are queued per request command id; each write of that command
    releases the next queued reply (b"" stands for silence).
    """

    def __init__(self, fmt: FrameFormat | None = None):
        self.format = fmt or FrameFormat()
        self.written: list[bytes] = []
        self.closed = False
        self.read_error: Exception | None = None
        self._replies: dict[int, list[bytes]] = {}
        self._rx = bytearray()
        self._data_ready = threading.Condition()

    @property
    def written_frames(self) -> list[Frame]:
        return [decode_frame(data, self.format) for data in self.written]

    def script(self, command: int, *replies: bytes) -> None:
        self._replies.setdefault(int(command), []).extend(replies)

    def frame(self, command: int, payload: bytes = b"") -> bytes:
        return Frame(command, payload).to_bytes(self.format)

    def inject(self, data: bytes) -> None:
        with self._data_ready:
            self._rx.extend(data)
            self._data_ready.notify_all()

    def write(self, data: bytes) -> None:
        if self.closed:
            raise TransportError("Not connected to serial port")
        self.written.append(bytes(data))
        request = decode_frame(data, self.format)
        queue = self._replies.get(request.command)
        if queue:
            self.inject(queue.pop(0))

    def read(self, max_bytes: int, max_wait: float) -> bytes:
        deadline = time.monotonic() + max_wait
        with self._data_ready:
            while True:
                if self.closed:
                    raise TransportError("Not connected to serial port")
                if self.read_error is not None:
                    raise self.read_error
                if self._rx:
                    chunk = bytes(self._rx[:max_bytes])
                    del self._rx[:max_bytes]
                    return chunk
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return b""
                self._data_ready.wait(remaining)

    def close(self) -> None:
        with self._data_ready:
            self.closed = True
            self._data_ready.notify_all()


@pytest.fixture
def transport() -> FakeTransport:
    """Fake module speaking the marked frame layout."""
    return FakeTransport()


@pytest.fixture
def pni_transport() -> FakeTransport:
    """Fake module speaking the native PNI frame layout."""
    return FakeTransport(PNI_NATIVE)


@pytest.fixture
def fast_config() -> TransactionConfig:
    """Short timeouts so silent-device tests finish quickly."""
    return TransactionConfig(timeout=0.05, attempts=3, retry_delay=0.0)
