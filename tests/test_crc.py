"""Unit tests for checksum strategies."""

import pytest

from pni_sdk.protocol.crc import (
    CHECKSUMS,
    CRC16_XMODEM,
    SUM16,
    calculate_crc16,
    calculate_sum16,
    verify_crc16,
    verify_sum16,
)


def test_crc_empty_data():
    """CRC of empty data is the initial value."""
    assert calculate_crc16(b"") == 0


def test_crc_check_value():
    """CRC-16/XMODEM standard check value."""
    assert calculate_crc16(b"123456789") == 0x31C3


def test_crc_single_byte():
    """A single 0x01 byte yields the polynomial itself."""
    assert calculate_crc16(b"\x01") == 0x1021


def test_crc_pni_get_mod_info():
    """Native GET_MOD_INFO frame header from the module datasheet."""
    assert calculate_crc16(b"\x00\x05\x01") == 0xEFD4


def test_crc_different_data():
    """Test that different data produces different CRC."""
    assert calculate_crc16(b"\x01\x02\x03") != calculate_crc16(b"\x01\x02\x04")


def test_verify_crc_valid():
    """Test CRC verification with valid CRC."""
    data = b"\x00\x05\x01"
    assert verify_crc16(data, calculate_crc16(data)) is True


def test_verify_crc_invalid():
    """Test CRC verification with invalid CRC."""
    data = b"\x00\x05\x01"
    assert verify_crc16(data, calculate_crc16(data) ^ 0x0001) is False


def test_crc_range():
    """Test that CRC is always 16-bit."""
    for i in range(256):
        assert 0 <= calculate_crc16(bytes([i, 0xFF, i])) <= 0xFFFF


def test_sum16():
    """Additive checksum is the byte sum."""
    assert calculate_sum16(b"hello") == 532
    assert calculate_sum16(b"") == 0


def test_sum16_wraps():
    """Additive checksum keeps only the low 16 bits."""
    data = b"\xff" * 300
    assert calculate_sum16(data) == (255 * 300) & 0xFFFF
    assert verify_sum16(data, (255 * 300) & 0xFFFF) is True


class TestChecksumStrategy:
    """Tests for Checksum strategy objects."""

    @pytest.mark.parametrize("checksum", [CRC16_XMODEM, SUM16])
    def test_verify_matches_compute(self, checksum):
        """verify() accepts exactly the computed code."""
        data = b"\x02\x00\x03\x01"
        code = checksum.compute(data)
        assert checksum.verify(data, code) is True
        assert checksum.verify(data, code ^ 0x8000) is False

    def test_lookup_by_name(self):
        """Strategies are registered by name."""
        assert CHECKSUMS["crc16-xmodem"] is CRC16_XMODEM
        assert CHECKSUMS["sum16"] is SUM16

    def test_trailer_size(self):
        """Both strategies produce a two-byte trailer."""
        assert CRC16_XMODEM.size == 2
        assert SUM16.size == 2


_SPAN = b"\x00\x0b\x05\x01\x8c\xa0\x12\x34"


def _flip(data: bytes, bit: int) -> bytes:
    flipped = bytearray(data)
    flipped[bit // 8] ^= 0x80 >> (bit % 8)
    return bytes(flipped)


class TestSingleBitErrors:
    """Any one flipped bit in the covered span or the trailer fails verification."""

    @pytest.mark.parametrize("bit", range(len(_SPAN) * 8))
    def test_crc16_data_bit(self, bit):
        code = CRC16_XMODEM.compute(_SPAN)
        assert CRC16_XMODEM.verify(_flip(_SPAN, bit), code) is False

    @pytest.mark.parametrize("bit", range(16))
    def test_crc16_trailer_bit(self, bit):
        code = CRC16_XMODEM.compute(_SPAN)
        assert CRC16_XMODEM.verify(_SPAN, code ^ (1 << bit)) is False

    @pytest.mark.parametrize("bit", range(len(_SPAN) * 8))
    def test_sum16_data_bit(self, bit):
        code = SUM16.compute(_SPAN)
        assert SUM16.verify(_flip(_SPAN, bit), code) is False

    @pytest.mark.parametrize("bit", range(16))
    def test_sum16_trailer_bit(self, bit):
        code = SUM16.compute(_SPAN)
        assert SUM16.verify(_SPAN, code ^ (1 << bit)) is False
