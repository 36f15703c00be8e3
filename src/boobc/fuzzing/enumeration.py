"""
Enumeration-based test generation for boo-bc.

This module systematically enumerates every program within a bounded model
space, together with malformed inputs that must be rejected. Unlike random
fuzzing, enumeration gives guaranteed coverage of the bounded model.
"""

import itertools
from typing import Iterator, List, Tuple

from boobc.bytecode import (
    UINT32_MAX, OPERATIONS,
    Xor, And, Operation, FunctionSignature, Function, Program,
)
from boobc.codec import (
    U64_BYTE, U128_BYTE,
    serialize_program, serialize_signature, serialize_length,
)
from boobc.config import Config, IntEncoding, STANDARD


# ============================================================
# Configuration
# ============================================================

# Counts on either side of every variable-width integer boundary
BOUNDARY_COUNTS = [
    0,            # Zero
    1,            # One
    250,          # Largest single-byte varint
    251,          # Smallest u16 varint
    0xFFFF,       # Largest u16 varint
    0x10000,      # Smallest u32 varint
    UINT32_MAX,   # u32 max
]

# Minimal interesting counts for smaller suites
MINIMAL_COUNTS = [0, 1, 251]

ALL_OPERATIONS: List[Operation] = [Xor(), And()]


# ============================================================
# Program Enumeration
# ============================================================

def enumerate_operation_sequences(max_length: int) -> Iterator[Tuple[Operation, ...]]:
    """
    Enumerate every operation sequence up to the given length.

    Yields:
        Sequences in order of length, starting with the empty sequence
    """
    for length in range(max_length + 1):
        yield from itertools.product(ALL_OPERATIONS, repeat=length)


def enumerate_signatures(counts: List[int] = MINIMAL_COUNTS) -> Iterator[FunctionSignature]:
    for inputs, outputs in itertools.product(counts, counts):
        yield FunctionSignature(inputs, outputs)


def enumerate_functions(max_length: int,
                        counts: List[int] = MINIMAL_COUNTS) -> Iterator[Function]:
    for signature in enumerate_signatures(counts):
        for operations in enumerate_operation_sequences(max_length):
            yield Function(signature, operations)


def enumerate_programs(max_length: int,
                       counts: List[int] = MINIMAL_COUNTS) -> Iterator[Program]:
    """
    Enumerate every program with up to max_length operations and signature
    counts drawn from counts.
    """
    for function in enumerate_functions(max_length, counts):
        yield Program(function)


def enumerate_program_encodings(max_length: int,
                                counts: List[int] = MINIMAL_COUNTS,
                                config: Config = STANDARD) -> Iterator[bytes]:
    for program in enumerate_programs(max_length, counts):
        yield serialize_program(program, config)


# ============================================================
# Malformed Inputs
# ============================================================

def enumerate_invalid_opcode_tests(config: Config = STANDARD) -> Iterator[bytes]:
    """
    Enumerate programs holding one operation whose byte is not an opcode.

    Yields:
        Bytecode that must fail with an invalid opcode error
    """
    header = serialize_signature(FunctionSignature(0, 0), config) + serialize_length(1, config)
    for byte in range(256):
        if byte not in OPERATIONS:
            yield header + bytes([byte])


def enumerate_invalid_integer_tests(config: Config = STANDARD) -> Iterator[bytes]:
    """
    Enumerate programs whose signature holds a varint marker too wide for u32.

    Fixed-width integers have no markers, so nothing is yielded for them.

    Yields:
        Bytecode that must fail with an invalid integer type error
    """
    if config.int_encoding != IntEncoding.VARINT:
        return
    tail = serialize_signature(FunctionSignature(0, 0), config)[1:] + serialize_length(0, config)
    yield bytes([U64_BYTE]) + bytes(8) + tail
    yield bytes([U128_BYTE]) + bytes(16) + tail
    yield bytes([0xFF]) + tail


def enumerate_truncation_tests(program: Program, config: Config = STANDARD) -> Iterator[bytes]:
    """
    Enumerate every proper prefix of the program's encoding.

    Yields:
        Bytecode that must fail with an unexpected end error
    """
    bytecode = serialize_program(program, config)
    for length in range(len(bytecode)):
        yield bytecode[:length]


# ============================================================
# Comprehensive Test Suites
# ============================================================

REFERENCE_PROGRAM = Program(Function(FunctionSignature(3, 1), (Xor(), And())))


def generate_comprehensive_suite(max_length: int = 2,
                                 config: Config = STANDARD) -> Iterator[bytes]:
    """
    Generate an exhaustive, deduplicated suite of valid and malformed inputs.

    Args:
        max_length: Maximum number of operations per program
        config: Serializer configuration to encode with

    Yields:
        Bytecode for the suite, each input once, in a stable order
    """
    seen = set()
    sources = [
        enumerate_program_encodings(max_length, BOUNDARY_COUNTS, config),
        enumerate_invalid_opcode_tests(config),
        enumerate_invalid_integer_tests(config),
        enumerate_truncation_tests(REFERENCE_PROGRAM, config),
    ]
    for bytecode in itertools.chain.from_iterable(sources):
        if bytecode not in seen:
            seen.add(bytecode)
            yield bytecode
