"""
Threaded Code Format

Defines 16-bit code units, the append-only code buffer used while a word
is compiled, and the literal string packing shared with the interpreter.
"""

from dataclasses import dataclass, field
from typing import Iterable, List

from .errors import StringTooLongError


UNIT_MASK = 0xFFFF
MAX_STRING_LENGTH = 255

INT32_MIN = -0x80000000
INT32_MAX = 0x7FFFFFFF


def to_unit(value: int) -> int:
    """Truncate an integer to an unsigned 16-bit code unit."""
    return value & UNIT_MASK


def as_signed(unit: int) -> int:
    """Read a code unit as a signed 16-bit value."""
    unit &= UNIT_MASK
    if unit >= 0x8000:
        return unit - 0x10000
    return unit


def split_wide(value: int) -> List[int]:
    """Split a 32-bit value into its high and low code units."""
    return [to_unit(value >> 16), to_unit(value)]


def join_wide(high: int, low: int) -> int:
    """Rebuild a signed 32-bit value from two code units."""
    value = ((high & UNIT_MASK) << 16) | (low & UNIT_MASK)
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def pack_string(data: bytes) -> List[int]:
    """
    Pack a byte string into length-prefixed code units.
    
    The length goes in the high byte of the first unit, followed by the
    payload two bytes per unit, high byte first. An odd total is padded
    with a zero low byte.
    
    Raises:
        StringTooLongError: If the string is longer than 255 bytes
    """
    length = len(data)
    if length > MAX_STRING_LENGTH:
        raise StringTooLongError(f"String too long ({length} bytes)")
    
    raw = bytes([length]) + bytes(data)
    if len(raw) % 2:
        raw += b'\x00'
    return [(raw[i] << 8) | raw[i + 1] for i in range(0, len(raw), 2)]


def unpack_string(units: Iterable[int]) -> bytes:
    """Inverse of pack_string; trailing units beyond the length are ignored."""
    raw = bytearray()
    for unit in units:
        raw.append((unit >> 8) & 0xFF)
        raw.append(unit & 0xFF)
    if not raw:
        raise ValueError("No units to unpack")
    length = raw[0]
    if length + 1 > len(raw):
        raise ValueError(f"Packed string truncated: need {length} bytes")
    return bytes(raw[1:length + 1])


def packed_length(length: int) -> int:
    """Number of units pack_string produces for a string of this length."""
    return (length + 2) // 2


@dataclass
class CodeBuffer:
    """Append-only code units of one word body, with positional patching."""
    
    units: List[int] = field(default_factory=list)
    
    def emit(self, value: int) -> int:
        """Emit a single unit, returning its position."""
        offset = len(self.units)
        self.units.append(to_unit(value))
        return offset
    
    def emit_all(self, values: Iterable[int]) -> int:
        """Emit several units, returning the position of the first."""
        offset = len(self.units)
        for value in values:
            self.emit(value)
        return offset
    
    def emit_placeholder(self) -> int:
        """Emit a unit to be patched later."""
        return self.emit(0)
    
    def patch(self, offset: int, value: int) -> None:
        """Overwrite the unit at the given position."""
        self.units[offset] = to_unit(value)
    
    def patch_i16(self, offset: int, value: int) -> None:
        """Patch a signed 16-bit value at the given position."""
        if value > 0x7FFF or value < -0x8000:
            raise ValueError("Value too large for i16")
        self.patch(offset, value)
    
    def current_offset(self) -> int:
        """Get the current code offset."""
        return len(self.units)
    
    def __len__(self) -> int:
        return len(self.units)
