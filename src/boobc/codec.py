"""
Binary encoding and decoding of bytecode structures.

Structures are written field by field in declared order, with no tags or
schema. Integers follow the Config's convention:

    VARINT (default):
        0-250          [value]                       (1 byte)
        <= 0xFFFF      [0xFB] [value: 2 bytes]       (3 bytes)
        <= 0xFFFFFFFF  [0xFC] [value: 4 bytes]       (5 bytes)
        <= 2^64-1      [0xFD] [value: 8 bytes]       (9 bytes)
        <= 2^128-1     [0xFE] [value: 16 bytes]      (17 bytes)
    FIXED:
        u32 as 4 bytes, sequence lengths as 8 bytes

Layouts:
    Operation:          [opcode]                            (1 byte)
    FunctionSignature:  [inputs: u32] [outputs: u32]
    Function:           [signature] [count: len] [opcode] * count
    Program:            [main: Function]
    Values:             [count: len] [b8 element] * count

Every decode either returns a complete value or raises DecodeError.
"""

import logging
from typing import Callable, Tuple

from .bytecode import (
    UINT32_MAX, OPCODES, OPERATIONS,
    Values, Xor, And, Operation, FunctionSignature, Function, Program,
)
from .config import Config, IntEncoding, STANDARD
from .errors import EncodeError, DecodeError, DecodeReason

log = logging.getLogger(__name__)

# =============================================================================
# Integer Encoding
# =============================================================================

UINT64_MAX = (1 << 64) - 1

SINGLE_BYTE_MAX = 250
U16_BYTE = 0xFB
U32_BYTE = 0xFC
U64_BYTE = 0xFD
U128_BYTE = 0xFE

# Marker byte -> payload width in bits
_VARINT_WIDTHS = {
    U16_BYTE: 16,
    U32_BYTE: 32,
    U64_BYTE: 64,
    U128_BYTE: 128,
}


def _encode_varint(value: int, endian: str) -> bytes:
    if value <= SINGLE_BYTE_MAX:
        return bytes([value])
    elif value <= 0xFFFF:
        return bytes([U16_BYTE]) + value.to_bytes(2, endian)
    elif value <= UINT32_MAX:
        return bytes([U32_BYTE]) + value.to_bytes(4, endian)
    elif value <= UINT64_MAX:
        return bytes([U64_BYTE]) + value.to_bytes(8, endian)
    else:
        return bytes([U128_BYTE]) + value.to_bytes(16, endian)


def _encode_uint(value: int, bits: int, what: str, config: Config) -> bytes:
    if not isinstance(value, int) or isinstance(value, bool):
        raise EncodeError(f"{what} must be int, got {type(value).__name__}")
    if not (0 <= value < (1 << bits)):
        raise EncodeError(f"{what} out of u{bits} range: {value}")
    if config.int_encoding == IntEncoding.FIXED:
        return value.to_bytes(bits // 8, config.endian)
    return _encode_varint(value, config.endian)


def serialize_u32(value: int, config: Config = STANDARD) -> bytes:
    return _encode_uint(value, 32, "u32", config)


def serialize_length(length: int, config: Config = STANDARD) -> bytes:
    """Serialize a sequence length. Lengths are u64 on the wire."""
    return _encode_uint(length, 64, "length", config)

# =============================================================================
# Reader
# =============================================================================

class _Reader:
    """Cursor over an input buffer for a single decode call."""

    def __init__(self, data, offset: int, config: Config):
        self.data = memoryview(data)
        if not (0 <= offset <= len(self.data)):
            raise ValueError(f"offset {offset} outside buffer of length {len(self.data)}")
        self.start = offset
        self.pos = offset
        self.config = config

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def claim(self, n: int) -> None:
        """Fail before reading n more bytes that would exceed the limit or the input."""
        limit = self.config.limit
        if limit is not None and (self.pos - self.start) + n > limit:
            raise DecodeError(
                DecodeReason.LIMIT_EXCEEDED, self.pos,
                detail=f"need {n} more bytes, limit is {limit}"
            )
        if n > self.remaining:
            raise DecodeError(
                DecodeReason.UNEXPECTED_END, self.pos,
                detail=f"need {n} bytes, have {self.remaining}"
            )

    def take(self, n: int) -> bytes:
        self.claim(n)
        chunk = bytes(self.data[self.pos:self.pos + n])
        self.pos += n
        return chunk

    def byte(self) -> int:
        self.claim(1)
        value = self.data[self.pos]
        self.pos += 1
        return value


def _read_uint(reader: _Reader, bits: int) -> int:
    config = reader.config
    if config.int_encoding == IntEncoding.FIXED:
        return int.from_bytes(reader.take(bits // 8), config.endian)

    start = reader.pos
    first = reader.byte()
    if first <= SINGLE_BYTE_MAX:
        return first
    width = _VARINT_WIDTHS.get(first)
    if width is None or width > bits:
        raise DecodeError(
            DecodeReason.INVALID_INTEGER_TYPE, start, first,
            detail=f"expected u{bits}"
        )
    return int.from_bytes(reader.take(width // 8), config.endian)


def _read_u32(reader: _Reader) -> int:
    return _read_uint(reader, 32)


def _read_length(reader: _Reader) -> int:
    length = _read_uint(reader, 64)
    # Every element takes at least one byte, so this rejects absurd lengths
    # before anything is read.
    reader.claim(length)
    return length

# =============================================================================
# Serialization (Structures -> Bytes)
# =============================================================================

def serialize_operation(op: Operation, config: Config = STANDARD) -> bytes:
    """Serialize a single operation to its one-byte opcode."""
    opcode = OPCODES.get(type(op))
    if opcode is None:
        raise EncodeError(f"Unknown operation: {op!r}")
    return bytes([opcode])


def serialize_signature(signature: FunctionSignature, config: Config = STANDARD) -> bytes:
    return serialize_u32(signature.inputs, config) + serialize_u32(signature.outputs, config)


def serialize_function(function: Function, config: Config = STANDARD) -> bytes:
    out = bytearray(serialize_signature(function.signature, config))
    out += serialize_length(len(function.operations), config)
    for op in function.operations:
        out += serialize_operation(op, config)
    return bytes(out)


def serialize_program(program: Program, config: Config = STANDARD) -> bytes:
    return serialize_function(program.main, config)


def serialize_values(values: Values, config: Config = STANDARD) -> bytes:
    return serialize_length(len(values.b8), config) + bytes(values.b8)

# =============================================================================
# Deserialization (Bytes -> Structures)
# =============================================================================

def _read_operation(reader: _Reader) -> Operation:
    offset = reader.pos
    opcode = reader.byte()
    op = OPERATIONS.get(opcode)
    if op is None:
        raise DecodeError(DecodeReason.INVALID_OPCODE, offset, opcode)
    return op


def _read_signature(reader: _Reader) -> FunctionSignature:
    inputs = _read_u32(reader)
    outputs = _read_u32(reader)
    return FunctionSignature(inputs, outputs)


def _read_function(reader: _Reader) -> Function:
    signature = _read_signature(reader)
    count = _read_length(reader)
    operations = [_read_operation(reader) for _ in range(count)]
    return Function(signature, tuple(operations))


def _read_program(reader: _Reader) -> Program:
    return Program(_read_function(reader))


def _read_values(reader: _Reader) -> Values:
    count = _read_length(reader)
    return Values(reader.take(count))


def _deserialize(read: Callable[[_Reader], object], data, offset: int,
                 config: Config) -> Tuple[object, int]:
    reader = _Reader(data, offset, config)
    value = read(reader)
    return value, reader.pos


def deserialize_operation(data, offset: int = 0, config: Config = STANDARD) -> Tuple[Operation, int]:
    """
    Deserialize a single operation from bytes.

    Args:
        data: Bytecode buffer
        offset: Starting position in buffer
        config: Serializer configuration

    Returns:
        Tuple of (operation, new_offset)

    Raises:
        DecodeError: If the byte is not a known opcode or the buffer is empty
    """
    return _deserialize(_read_operation, data, offset, config)


def deserialize_signature(data, offset: int = 0, config: Config = STANDARD) -> Tuple[FunctionSignature, int]:
    return _deserialize(_read_signature, data, offset, config)


def deserialize_function(data, offset: int = 0, config: Config = STANDARD) -> Tuple[Function, int]:
    """
    Deserialize a function: its signature, then its operations.

    Decoding stops at the first invalid opcode; no partial function is
    returned.

    Returns:
        Tuple of (function, new_offset)

    Raises:
        DecodeError: If the input is truncated, an integer is malformed, or an
            opcode is unknown
    """
    return _deserialize(_read_function, data, offset, config)


def deserialize_program(data, offset: int = 0, config: Config = STANDARD) -> Tuple[Program, int]:
    return _deserialize(_read_program, data, offset, config)


def deserialize_values(data, offset: int = 0, config: Config = STANDARD) -> Tuple[Values, int]:
    return _deserialize(_read_values, data, offset, config)


def deserialize_u32(data, offset: int = 0, config: Config = STANDARD) -> Tuple[int, int]:
    return _deserialize(_read_u32, data, offset, config)


def deserialize_length(data, offset: int = 0, config: Config = STANDARD) -> Tuple[int, int]:
    return _deserialize(lambda reader: _read_uint(reader, 64), data, offset, config)

# =============================================================================
# Generic Entry Points
# =============================================================================

_READERS: dict = {
    Program: _read_program,
    Function: _read_function,
    FunctionSignature: _read_signature,
    Values: _read_values,
    Operation: _read_operation,
}


def encode(value, config: Config = STANDARD) -> bytes:
    """Encode any bytecode structure to bytes."""
    match value:
        case Program():
            return serialize_program(value, config)
        case Function():
            return serialize_function(value, config)
        case FunctionSignature():
            return serialize_signature(value, config)
        case Values():
            return serialize_values(value, config)
        case Xor() | And():
            return serialize_operation(value, config)
        case _:
            raise EncodeError(f"Cannot encode value of type {type(value).__name__}")


def decode(kind, data, config: Config = STANDARD, *,
           offset: int = 0, exact: bool = False) -> Tuple[object, int]:
    """
    Decode a structure of the given kind from bytes.

    Args:
        kind: Program, Function, FunctionSignature, Values or Operation
        data: Input buffer (bytes, bytearray or memoryview)
        config: Serializer configuration; must match the one used to encode
        offset: Starting position in buffer
        exact: Reject bytes left over after the value

    Returns:
        Tuple of (value, bytes consumed)

    Raises:
        DecodeError: If the input does not hold a complete, valid value
    """
    read = _READERS.get(kind)
    if read is None:
        raise TypeError(f"Cannot decode {kind!r}")

    reader = _Reader(data, offset, config)
    try:
        value = read(reader)
        if exact and reader.remaining:
            raise DecodeError(DecodeReason.TRAILING_BYTES, reader.pos, reader.data[reader.pos],
                              detail=f"{reader.remaining} bytes left over")
    except DecodeError as e:
        log.debug("decode %s failed: %s", _kind_name(kind), e)
        raise
    return value, reader.pos - offset


def _kind_name(kind) -> str:
    return "Operation" if kind is Operation else getattr(kind, "__name__", repr(kind))
