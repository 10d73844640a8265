"""Checksum strategies for PNI protocol frames."""

from collections.abc import Callable
from dataclasses import dataclass


def calculate_crc16(data: bytes) -> int:
    """
    Calculate CRC-16/XMODEM.

    Polynomial 0x1021, initial value 0, no reflection, no final XOR.
    Also known as CRC-CCITT (XModem); it is not CCITT-FALSE (init 0xFFFF).

    Args:
        data: Bytes to calculate CRC over

    Returns:
        16-bit CRC value

    Example:
        >>> hex(calculate_crc16(b'123456789'))
        '0x31c3'
    """
    crc = 0

    for byte in data:
        s = byte ^ (crc >> 8)
        t = s ^ (s >> 4)
        crc = (crc << 8) ^ t ^ (t << 5) ^ (t << 12)
        crc = crc & 0xFFFF

    return crc


def verify_crc16(data: bytes, expected_crc: int) -> bool:
    """
    Verify CRC-16 matches expected value.

    Args:
        data: Data bytes (excluding CRC)
        expected_crc: Expected CRC value

    Returns:
        True if CRC matches, False otherwise
    """
    return calculate_crc16(data) == expected_crc


def calculate_sum16(data: bytes) -> int:
    """
    Calculate an additive checksum: sum of all bytes, low 16 bits.

    Example:
        >>> calculate_sum16(b'hello')
        532
    """
    return sum(data) & 0xFFFF


def verify_sum16(data: bytes, expected_sum: int) -> bool:
    """Verify additive checksum matches expected value."""
    return calculate_sum16(data) == expected_sum


@dataclass(frozen=True)
class Checksum:
    """A frame integrity algorithm, selected per device family.

    Attributes:
        name: Lookup key
        compute: Function returning the checksum of a byte span, fitting in size bytes
        size: Trailer width in bytes
    """

    name: str
    compute: Callable[[bytes], int]
    size: int = 2

    def verify(self, data: bytes, code: int) -> bool:
        return self.compute(data) == code


CRC16_XMODEM = Checksum("crc16-xmodem", calculate_crc16)
SUM16 = Checksum("sum16", calculate_sum16)

CHECKSUMS = {checksum.name: checksum for checksum in (CRC16_XMODEM, SUM16)}
