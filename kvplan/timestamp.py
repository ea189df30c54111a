"""Timestamps from the timestamp oracle and their version encoding.

The lower 18 bits of a version are the logical part; the higher bits are
the physical part.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

PHYSICAL_SHIFT_BITS = 18
LOGICAL_MASK = (1 << PHYSICAL_SHIFT_BITS) - 1
_U64_LIMIT = 1 << 64
_I64_SIGN = 1 << 63


@dataclass(frozen=True)
class Timestamp:
    """A timestamp with a physical and a logical part."""

    physical: int = 0
    logical: int = 0
    suffix_bits: int = 0

    def version(self) -> int:
        """Encode as an unsigned 64-bit version."""
        value = (self.physical << PHYSICAL_SHIFT_BITS) + self.logical
        if not 0 <= value < _U64_LIMIT:
            raise OverflowError("Overflow converting timestamp to version")
        return value


def from_version(version: int) -> Timestamp:
    """Decode a 64-bit version into a timestamp."""
    signed = version % _U64_LIMIT
    if signed >= _I64_SIGN:
        signed -= _U64_LIMIT
    return Timestamp(
        physical=signed >> PHYSICAL_SHIFT_BITS,
        logical=signed & LOGICAL_MASK,
        suffix_bits=0,
    )


def try_from_version(version: int) -> Optional[Timestamp]:
    """Decode a version, where 0 means no timestamp."""
    return None if version == 0 else from_version(version)