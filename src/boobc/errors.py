"""Exceptions raised while encoding or decoding bytecode."""

from enum import Enum
from typing import Optional


class BooBcException(Exception):
    """Base exception for all boo-bc errors."""
    pass


class EncodeError(BooBcException, ValueError):
    """Raised when a value cannot be serialized."""
    pass


class DecodeReason(Enum):
    """Why a decode call failed."""
    UNEXPECTED_END = "unexpected end of input"
    INVALID_OPCODE = "invalid opcode"
    INVALID_INTEGER_TYPE = "invalid integer type"
    LIMIT_EXCEEDED = "decode limit exceeded"
    TRAILING_BYTES = "trailing bytes after value"


class DecodeError(BooBcException):
    """
    Raised when bytes cannot be decoded into the requested structure.

    Attributes:
        reason: Failure category
        offset: Position in the buffer where decoding failed
        byte: The offending byte value, when a single byte is to blame
    """

    def __init__(self, reason: DecodeReason, offset: int,
                 byte: Optional[int] = None, detail: Optional[str] = None):
        self.reason = reason
        self.offset = offset
        self.byte = byte
        self.detail = detail
        super().__init__(reason, offset, byte, detail)

    def __str__(self) -> str:
        message = f"{self.reason.value} at offset {self.offset}"
        if self.byte is not None:
            message += f" (byte 0x{self.byte:02X})"
        if self.detail:
            message += f": {self.detail}"
        return message
