"""Serial port transport using direct pyserial."""

import logging
from typing import Protocol

import serial
from serial import SerialException

from pni_sdk.protocol.constants import DEFAULT_BAUD, READ_CHUNK_SIZE
from pni_sdk.protocol.errors import TransportError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Byte pipe consumed by the transaction engine.

    Implementations raise TransportError on any I/O failure, including use
    after close().
    """

    def write(self, data: bytes) -> None: ...

    def read(self, max_bytes: int, max_wait: float) -> bytes:
        """Return up to max_bytes, or b"" if nothing arrived within max_wait seconds."""
        ...

    def close(self) -> None: ...


class SerialConnection:
    """Blocking pyserial transport, 8 data bits, no parity, one stop bit."""

    def __init__(self, port: str, baudrate: int = DEFAULT_BAUD, timeout: float = 1.0):
        """
        Initialize serial connection.

        Args:
            port: Serial port path (e.g., '/dev/ttyUSB0')
            baudrate: Communication speed (default: 38400, the module default)
            timeout: Default read wait in seconds
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout

        self._serial: serial.Serial | None = None

    @property
    def connected(self) -> bool:
        """Check if currently connected."""
        return self._serial is not None and self._serial.is_open

    def connect(self) -> None:
        """
        Open serial port connection.

        Raises:
            TransportError: If the port cannot be opened
        """
        if self.connected:
            logger.debug("Already connected to %s", self.port)
            return

        try:
            logger.info("Connecting to serial port %s at %d baud", self.port, self.baudrate)

            self._serial = serial.Serial()
            self._serial.port = self.port
            self._serial.baudrate = self.baudrate
            self._serial.timeout = self.timeout
            self._serial.open()

            logger.info("Successfully connected to %s", self.port)

        except (OSError, SerialException) as e:
            logger.error("Failed to connect to %s: %s", self.port, e)
            self._serial = None
            raise TransportError(f"Failed to open {self.port}: {e}") from e

    def close(self) -> None:
        """Close serial port connection. Safe to call more than once.

        A read blocked in another thread is cancelled and fails with
        TransportError.
        """
        ser = self._serial
        if ser is None:
            return

        logger.info("Disconnecting from %s", self.port)
        self._serial = None
        try:
            if ser.is_open:
                ser.cancel_read()
                ser.close()
        except (OSError, SerialException) as e:
            logger.error("Error closing serial port: %s", e)

    def read(self, max_bytes: int = READ_CHUNK_SIZE, max_wait: float | None = None) -> bytes:
        """
        Read whatever arrives within max_wait.

        Uses a two-stage approach:
        1. Wait for first byte (blocks up to max_wait)
        2. Read remaining bytes already in the OS buffer

        Raises:
            TransportError: If not connected, the port fails, or the port
                is closed while the read is pending
        """
        ser = self._serial
        if ser is None or not ser.is_open:
            raise TransportError("Not connected to serial port")

        try:
            ser.timeout = self.timeout if max_wait is None else max(max_wait, 0.0)
            first = ser.read(1)
            self._check_still_open(ser)
            if not first:
                return b""

            available = min(ser.in_waiting, max_bytes - 1)
            if available > 0:
                first += ser.read(available)
            self._check_still_open(ser)
            return first

        except TransportError:
            raise
        except (OSError, SerialException, TypeError, ValueError) as e:
            if self._serial is not ser:
                raise TransportError("Serial port closed during read") from e
            logger.error("Read error: %s", e)
            raise TransportError(str(e)) from e

    def write(self, data: bytes) -> None:
        """
        Write to serial port and wait until the bytes are on the wire.

        Raises:
            TransportError: If not connected or the port fails
        """
        ser = self._serial
        if ser is None or not ser.is_open:
            raise TransportError("Not connected to serial port")

        try:
            ser.write(data)
            ser.flush()
        except (OSError, SerialException, TypeError, ValueError) as e:
            if self._serial is not ser:
                raise TransportError("Serial port closed during write") from e
            logger.error("Write error: %s", e)
            raise TransportError(str(e)) from e

    def _check_still_open(self, ser: serial.Serial) -> None:
        if self._serial is not ser:
            raise TransportError("Serial port closed during read")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
