"""
Serializer configuration.

A Config fixes how every integer in the format is written: the integer
encoding (variable or fixed width) and the byte order. The same Config must
be used on both sides of an exchange. An optional limit caps how many bytes
a single decode call may claim, which bounds allocations on untrusted input.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class IntEncoding(Enum):
    VARINT = "varint"
    FIXED = "fixed"


ENDIANNESS = ("little", "big")


@dataclass(frozen=True)
class Config:
    int_encoding: IntEncoding = IntEncoding.VARINT
    endian: str = "little"
    limit: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.int_encoding, IntEncoding):
            raise ValueError(f"int_encoding must be an IntEncoding, got {self.int_encoding!r}")
        if self.endian not in ENDIANNESS:
            raise ValueError(f"endian must be one of {ENDIANNESS}, got {self.endian!r}")
        if self.limit is not None and (not isinstance(self.limit, int) or isinstance(self.limit, bool) or self.limit < 0):
            raise ValueError(f"limit must be a non-negative int or None, got {self.limit!r}")

    def with_variable_int_encoding(self) -> 'Config':
        return replace(self, int_encoding=IntEncoding.VARINT)

    def with_fixed_int_encoding(self) -> 'Config':
        return replace(self, int_encoding=IntEncoding.FIXED)

    def with_little_endian(self) -> 'Config':
        return replace(self, endian="little")

    def with_big_endian(self) -> 'Config':
        return replace(self, endian="big")

    def with_limit(self, limit: int) -> 'Config':
        return replace(self, limit=limit)

    def with_no_limit(self) -> 'Config':
        return replace(self, limit=None)


# Variable-width little-endian integers, no limit.
STANDARD = Config()

# Fixed-width little-endian integers: u32 as 4 bytes, lengths as 8 bytes.
LEGACY = Config(int_encoding=IntEncoding.FIXED)
