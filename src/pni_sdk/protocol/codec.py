"""Field types and value encoding/decoding for the PNI protocol.

All multi-byte values are big-endian, which is the module default
(BIG_ENDIAN configuration flag left at TRUE).
"""

import struct
from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from pni_sdk.protocol.errors import MalformedPayload, TypeMismatch, UnknownEnumValue

_INT_FORMATS = {
    (1, True): ">b",
    (1, False): ">B",
    (2, True): ">h",
    (2, False): ">H",
    (4, True): ">i",
    (4, False): ">I",
    (8, True): ">q",
    (8, False): ">Q",
}

_FLOAT_FORMATS = {4: ">f", 8: ">d"}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class FieldType:
    """Fixed-width wire representation of one value."""

    size: int = 0

    def encode(self, value: Any) -> bytes:
        raise NotImplementedError

    def decode(self, data: bytes) -> Any:
        raise NotImplementedError

    def _check_size(self, data: bytes) -> None:
        if len(data) != self.size:
            raise MalformedPayload(f"{self!r} expects {self.size} byte(s), got {len(data)}")


@dataclass(frozen=True)
class BoolType(FieldType):
    """One byte, exactly 0 (False) or 1 (True)."""

    @property
    def size(self) -> int:
        return 1

    def encode(self, value: Any) -> bytes:
        if not isinstance(value, bool):
            raise TypeMismatch(f"Expected bool, got {type(value).__name__}")
        return b"\x01" if value else b"\x00"

    def decode(self, data: bytes) -> bool:
        self._check_size(data)
        if data[0] not in (0, 1):
            raise MalformedPayload(f"Boolean must be 0 or 1, got {data[0]}")
        return data[0] == 1


@dataclass(frozen=True)
class IntType(FieldType):
    """Two's complement or unsigned integer of 1, 2, 4 or 8 bytes."""

    width: int = 4
    signed: bool = True

    def __post_init__(self):
        if self.width not in (1, 2, 4, 8):
            raise ValueError(f"Unsupported integer width: {self.width}")

    @property
    def size(self) -> int:
        return self.width

    @property
    def min_value(self) -> int:
        return -(1 << (8 * self.width - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        bits = 8 * self.width - 1 if self.signed else 8 * self.width
        return (1 << bits) - 1

    def encode(self, value: Any) -> bytes:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeMismatch(f"Expected int, got {type(value).__name__}")
        if not self.min_value <= value <= self.max_value:
            raise TypeMismatch(f"{value} out of range [{self.min_value}, {self.max_value}] for {self!r}")
        return struct.pack(_INT_FORMATS[(self.width, self.signed)], value)

    def decode(self, data: bytes) -> int:
        self._check_size(data)
        return struct.unpack(_INT_FORMATS[(self.width, self.signed)], data)[0]


@dataclass(frozen=True)
class FloatType(FieldType):
    """IEEE-754 single (4 bytes) or double (8 bytes) precision."""

    width: int = 4

    def __post_init__(self):
        if self.width not in _FLOAT_FORMATS:
            raise ValueError(f"Unsupported float width: {self.width}")

    @property
    def size(self) -> int:
        return self.width

    def encode(self, value: Any) -> bytes:
        if not _is_number(value):
            raise TypeMismatch(f"Expected float, got {type(value).__name__}")
        try:
            return struct.pack(_FLOAT_FORMATS[self.width], float(value))
        except OverflowError as e:
            raise TypeMismatch(f"{value} does not fit in a {self.width}-byte float") from e

    def decode(self, data: bytes) -> float:
        self._check_size(data)
        return struct.unpack(_FLOAT_FORMATS[self.width], data)[0]


@dataclass(frozen=True)
class FixedPointType(FieldType):
    """
    Scaled integer: wire value = round(value * scale).

    Example:
        >>> FixedPointType(scale=100).encode(-5.25).hex()
        'fdf3'
    """

    scale: int
    width: int = 2
    signed: bool = True

    def __post_init__(self):
        if self.scale <= 0:
            raise ValueError(f"Fixed-point scale must be positive: {self.scale}")
        IntType(self.width, self.signed)

    @property
    def size(self) -> int:
        return self.width

    @property
    def raw_type(self) -> IntType:
        return IntType(self.width, self.signed)

    def encode(self, value: Any) -> bytes:
        if not _is_number(value):
            raise TypeMismatch(f"Expected number, got {type(value).__name__}")
        try:
            raw = round(value * self.scale)
        except (OverflowError, ValueError) as e:
            raise TypeMismatch(f"{value} has no fixed-point representation") from e
        return self.raw_type.encode(raw)

    def decode(self, data: bytes) -> float:
        return self.raw_type.decode(data) / self.scale


@dataclass(frozen=True)
class EnumType(FieldType):
    """Integer code mapped onto an IntEnum."""

    enum_cls: type[IntEnum]
    width: int = 1

    @property
    def size(self) -> int:
        return self.width

    def encode(self, value: Any) -> bytes:
        foreign_enum = isinstance(value, IntEnum) and not isinstance(value, self.enum_cls)
        if foreign_enum or isinstance(value, bool) or not isinstance(value, int):
            raise TypeMismatch(f"Expected {self.enum_cls.__name__}, got {value!r}")
        try:
            code = int(self.enum_cls(value))
        except ValueError:
            raise TypeMismatch(f"{value!r} is not a valid {self.enum_cls.__name__}") from None
        return IntType(self.width, signed=False).encode(code)

    def decode(self, data: bytes) -> IntEnum:
        raw = IntType(self.width, signed=False).decode(data)
        try:
            return self.enum_cls(raw)
        except ValueError:
            raise UnknownEnumValue(self.enum_cls.__name__, raw) from None


@dataclass(frozen=True)
class FixedArrayType(FieldType):
    """Exactly `length` consecutive elements of one fixed-width type."""

    element_type: FieldType
    length: int

    @property
    def size(self) -> int:
        return self.element_type.size * self.length

    def encode(self, value: Any) -> bytes:
        if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Sequence):
            raise TypeMismatch(f"Expected a sequence, got {type(value).__name__}")
        if len(value) != self.length:
            raise TypeMismatch(f"Expected {self.length} element(s), got {len(value)}")
        return b"".join(self.element_type.encode(item) for item in value)

    def decode(self, data: bytes) -> list:
        self._check_size(data)
        step = self.element_type.size
        return [self.element_type.decode(data[i : i + step]) for i in range(0, len(data), step)]


@dataclass(frozen=True)
class AsciiType(FieldType):
    """Fixed-width ASCII text, NUL padded on encode and NUL stripped on decode."""

    length: int

    @property
    def size(self) -> int:
        return self.length

    def encode(self, value: Any) -> bytes:
        if not isinstance(value, str):
            raise TypeMismatch(f"Expected str, got {type(value).__name__}")
        try:
            encoded = value.encode("ascii")
        except UnicodeEncodeError as e:
            raise TypeMismatch(f"Non-ASCII text: {value!r}") from e
        if b"\x00" in encoded:
            raise TypeMismatch(f"Text contains NUL: {value!r}")
        if len(encoded) > self.length:
            raise TypeMismatch(f"Text longer than {self.length} byte(s): {value!r}")
        return encoded.ljust(self.length, b"\x00")

    def decode(self, data: bytes) -> str:
        self._check_size(data)
        try:
            return data.decode("ascii").rstrip("\x00")
        except UnicodeDecodeError as e:
            raise MalformedPayload(f"Text couldn't be parsed: {data.hex()}") from e


BOOL = BoolType()
INT8 = IntType(1, signed=True)
UINT8 = IntType(1, signed=False)
INT16 = IntType(2, signed=True)
UINT16 = IntType(2, signed=False)
INT32 = IntType(4, signed=True)
UINT32 = IntType(4, signed=False)
FLOAT32 = FloatType(4)
FLOAT64 = FloatType(8)


def encode_value(value: Any, field_type: FieldType) -> bytes:
    """
    Encode a Python value to bytes according to its field type.

    Raises:
        TypeMismatch: If the value does not conform to the field type

    Example:
        >>> encode_value(45, INT16)
        b'\\x00-'
        >>> encode_value(True, BOOL)
        b'\\x01'
    """
    return field_type.encode(value)


def decode_value(data: bytes, field_type: FieldType) -> Any:
    """
    Decode bytes to a Python value according to its field type.

    Raises:
        MalformedPayload: If the byte length does not match the type width
        UnknownEnumValue: If an enumeration code has no mapping

    Example:
        >>> decode_value(b'\\x00-', INT16)
        45
    """
    return field_type.decode(bytes(data))
