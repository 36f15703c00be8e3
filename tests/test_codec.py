"""Tests for encoding and decoding bytecode structures."""

import pickle
from concurrent.futures import ThreadPoolExecutor

import pytest

from boobc import (
    UINT32_MAX, STANDARD, LEGACY,
    Values, Xor, And, Operation, FunctionSignature, Function, Program,
    EncodeError, DecodeError, DecodeReason, BooBcException,
    serialize_operation, serialize_signature, serialize_function,
    serialize_program, serialize_values,
    deserialize_operation, deserialize_signature, deserialize_function,
    deserialize_program, deserialize_values,
    encode, decode,
)
from boobc.codec import serialize_u32, serialize_length, deserialize_u32, deserialize_length
from boobc.fuzzing.enumeration import enumerate_programs, BOUNDARY_COUNTS


# =============================================================================
# Operations
# =============================================================================

def test_opcode_stability():
    assert serialize_operation(Xor()) == b'\x40'
    assert serialize_operation(And()) == b'\x41'
    assert encode(Xor()) == b'\x40'
    assert encode(And()) == b'\x41'


def test_operation_round_trip():
    for op in [Xor(), And()]:
        assert decode(Operation, encode(op)) == (op, 1)
        assert deserialize_operation(encode(op)) == (op, 1)


@pytest.mark.parametrize("byte", [0x00, 0x01, 0x3F, 0x42, 0x7F, 0xFF])
def test_unknown_opcode_rejected(byte):
    with pytest.raises(DecodeError) as excinfo:
        decode(Operation, bytes([byte]))
    assert excinfo.value.reason == DecodeReason.INVALID_OPCODE
    assert excinfo.value.byte == byte
    assert excinfo.value.offset == 0


def test_every_non_opcode_byte_rejected():
    rejected = 0
    for byte in range(256):
        try:
            deserialize_operation(bytes([byte]))
        except DecodeError as e:
            assert e.reason == DecodeReason.INVALID_OPCODE
            rejected += 1
    assert rejected == 254


def test_operation_from_empty_buffer():
    with pytest.raises(DecodeError) as excinfo:
        deserialize_operation(b'')
    assert excinfo.value.reason == DecodeReason.UNEXPECTED_END


def test_encode_unknown_operation():
    with pytest.raises(EncodeError):
        serialize_operation("Xor")

# =============================================================================
# Programs
# =============================================================================

def test_example_program_bytes(example_program):
    bytecode = encode(example_program)
    assert bytecode == bytes([0x03, 0x01, 0x02, 0x40, 0x41])
    assert bytecode[-2:] == bytes([0x40, 0x41])
    assert decode(Program, bytecode) == (example_program, 5)


def test_example_program_legacy_bytes(example_program):
    bytecode = encode(example_program, LEGACY)
    assert bytecode == (
        bytes([3, 0, 0, 0])              # inputs
        + bytes([1, 0, 0, 0])            # outputs
        + bytes([2, 0, 0, 0, 0, 0, 0, 0])  # operation count
        + bytes([0x40, 0x41])
    )
    assert decode(Program, bytecode, LEGACY) == (example_program, 18)


def test_example_program_big_endian(example_program):
    bytecode = encode(example_program, LEGACY.with_big_endian())
    assert bytecode[:8] == bytes([0, 0, 0, 3, 0, 0, 0, 1])
    assert bytecode[8:16] == bytes([0, 0, 0, 0, 0, 0, 0, 2])


def test_round_trip(config):
    for program in enumerate_programs(max_length=2, counts=BOUNDARY_COUNTS):
        bytecode = encode(program, config)
        assert decode(Program, bytecode, config) == (program, len(bytecode))


def test_empty_function_round_trip(empty_function, config):
    bytecode = serialize_function(empty_function, config)
    assert bytes([0x40]) not in bytecode
    assert bytes([0x41]) not in bytecode
    assert deserialize_function(bytecode, config=config) == (empty_function, len(bytecode))


def test_empty_function_standard_bytes(empty_function):
    assert serialize_function(empty_function) == b'\x00\x00\x00'


def test_program_has_no_extra_framing(example_program, config):
    assert serialize_program(example_program, config) == serialize_function(example_program.main, config)


def test_signature_round_trip(config):
    for signature in [FunctionSignature(0, 0), FunctionSignature(251, 250), FunctionSignature(UINT32_MAX, 7)]:
        bytecode = serialize_signature(signature, config)
        assert deserialize_signature(bytecode, config=config) == (signature, len(bytecode))


def test_decode_from_offset(example_program):
    bytecode = b'\xAA\xBB' + encode(example_program)
    assert decode(Program, bytecode, offset=2) == (example_program, 5)
    assert deserialize_program(bytecode, 2) == (example_program, 7)


def test_decode_from_bytearray_and_memoryview(example_program):
    bytecode = encode(example_program)
    assert decode(Program, bytearray(bytecode)) == (example_program, 5)
    assert decode(Program, memoryview(bytecode)) == (example_program, 5)


def test_decode_offset_out_of_range():
    with pytest.raises(ValueError):
        decode(Program, b'\x00\x00\x00', offset=4)


def test_trailing_bytes(example_program):
    bytecode = encode(example_program) + b'\x00'
    assert decode(Program, bytecode) == (example_program, 5)

    with pytest.raises(DecodeError) as excinfo:
        decode(Program, bytecode, exact=True)
    assert excinfo.value.reason == DecodeReason.TRAILING_BYTES
    assert excinfo.value.offset == 5


def test_invalid_opcode_in_function():
    with pytest.raises(DecodeError) as excinfo:
        decode(Program, bytes([0x00, 0x00, 0x02, 0x40, 0x00]))
    assert excinfo.value.reason == DecodeReason.INVALID_OPCODE
    assert excinfo.value.offset == 4
    assert excinfo.value.byte == 0x00
    assert "0x00" in str(excinfo.value)


@pytest.mark.parametrize("bytecode, offset", [
    (b'', 0),
    (b'\x03', 1),
    (b'\x03\x01', 2),
    (b'\x03\x01\x02', 3),
    (b'\x03\x01\x02\x40', 3),
    (b'\xFB\x00', 1),
])
def test_truncation(bytecode, offset):
    with pytest.raises(DecodeError) as excinfo:
        decode(Program, bytecode)
    assert excinfo.value.reason == DecodeReason.UNEXPECTED_END
    assert excinfo.value.offset == offset


def test_truncation_legacy(example_program):
    bytecode = encode(example_program, LEGACY)
    for length in range(len(bytecode)):
        with pytest.raises(DecodeError) as excinfo:
            decode(Program, bytecode[:length], LEGACY)
        assert excinfo.value.reason == DecodeReason.UNEXPECTED_END


def test_huge_operation_count_rejected_early():
    bytecode = b'\x00\x00' + b'\xFD' + (2 ** 62).to_bytes(8, 'little') + b'\x40'
    with pytest.raises(DecodeError) as excinfo:
        decode(Program, bytecode)
    assert excinfo.value.reason == DecodeReason.UNEXPECTED_END

# =============================================================================
# Integers
# =============================================================================

@pytest.mark.parametrize("value, expected", [
    (0, b'\x00'),
    (250, b'\xFA'),
    (251, b'\xFB\xFB\x00'),
    (0xFFFF, b'\xFB\xFF\xFF'),
    (0x10000, b'\xFC\x00\x00\x01\x00'),
    (UINT32_MAX, b'\xFC\xFF\xFF\xFF\xFF'),
])
def test_varint_u32(value, expected):
    assert serialize_u32(value) == expected
    assert deserialize_u32(expected) == (value, len(expected))


def test_varint_big_endian():
    config = STANDARD.with_big_endian()
    assert serialize_u32(251, config) == b'\xFB\x00\xFB'
    assert deserialize_u32(b'\xFB\x00\xFB', config=config) == (251, 3)


def test_varint_length_u64():
    assert serialize_length(UINT32_MAX + 1) == b'\xFD' + (UINT32_MAX + 1).to_bytes(8, 'little')
    assert deserialize_length(b'\xFD' + bytes(8)) == (0, 9)


def test_fixed_width_integers():
    assert serialize_u32(251, LEGACY) == b'\xFB\x00\x00\x00'
    assert serialize_length(1, LEGACY) == b'\x01' + bytes(7)


@pytest.mark.parametrize("marker", [0xFD, 0xFE, 0xFF])
def test_u32_rejects_wide_markers(marker):
    bytecode = bytes([marker]) + bytes(16)
    with pytest.raises(DecodeError) as excinfo:
        deserialize_u32(bytecode)
    assert excinfo.value.reason == DecodeReason.INVALID_INTEGER_TYPE
    assert excinfo.value.byte == marker


@pytest.mark.parametrize("marker", [0xFE, 0xFF])
def test_length_rejects_wide_markers(marker):
    with pytest.raises(DecodeError) as excinfo:
        deserialize_length(bytes([marker]) + bytes(16))
    assert excinfo.value.reason == DecodeReason.INVALID_INTEGER_TYPE


def test_non_minimal_varint_accepted():
    # 3 written as a u16 varint
    assert deserialize_u32(b'\xFB\x03\x00') == (3, 3)
    function, consumed = deserialize_function(b'\xFB\x03\x00\x01\xFC\x01\x00\x00\x00\x40')
    assert function == Function(FunctionSignature(3, 1), [Xor()])
    assert consumed == 10


def test_encode_out_of_range_integers():
    with pytest.raises(EncodeError):
        serialize_u32(UINT32_MAX + 1)
    with pytest.raises(EncodeError):
        serialize_u32(-1)
    with pytest.raises(EncodeError):
        serialize_length(1 << 64)
    with pytest.raises(ValueError):
        serialize_u32(1.5)

# =============================================================================
# Values
# =============================================================================

def test_values_bytes():
    assert serialize_values(Values([1, 2, 3])) == b'\x03\x01\x02\x03'
    assert serialize_values(Values()) == b'\x00'
    assert encode(Values(b'\xFF'), LEGACY) == b'\x01' + bytes(7) + b'\xFF'


def test_values_round_trip(config):
    for values in [Values(), Values([0]), Values(range(256)), Values(bytes(300))]:
        bytecode = encode(values, config)
        assert decode(Values, bytecode, config) == (values, len(bytecode))
        assert deserialize_values(bytecode, config=config) == (values, len(bytecode))


def test_values_truncated():
    with pytest.raises(DecodeError) as excinfo:
        decode(Values, b'\x03\x01\x02')
    assert excinfo.value.reason == DecodeReason.UNEXPECTED_END

# =============================================================================
# Limits and Dispatch
# =============================================================================

def test_limit(example_program):
    bytecode = encode(example_program)
    assert decode(Program, bytecode, STANDARD.with_limit(5)) == (example_program, 5)

    with pytest.raises(DecodeError) as excinfo:
        decode(Program, bytecode, STANDARD.with_limit(4))
    assert excinfo.value.reason == DecodeReason.LIMIT_EXCEEDED
    assert excinfo.value.offset == 3


def test_limit_is_relative_to_offset(example_program):
    bytecode = bytes(10) + encode(example_program)
    assert decode(Program, bytecode, STANDARD.with_limit(5), offset=10) == (example_program, 5)


def test_limit_on_values():
    with pytest.raises(DecodeError) as excinfo:
        decode(Values, serialize_values(Values(bytes(100))), STANDARD.with_limit(50))
    assert excinfo.value.reason == DecodeReason.LIMIT_EXCEEDED


def test_encode_unsupported_type():
    with pytest.raises(EncodeError):
        encode([Xor()])
    with pytest.raises(EncodeError):
        encode(None)


def test_decode_unsupported_kind():
    with pytest.raises(TypeError):
        decode(int, b'\x00')


def test_decode_error_pickles():
    with pytest.raises(DecodeError) as excinfo:
        decode(Program, bytes([0x00, 0x00, 0x01, 0x07]))
    restored = pickle.loads(pickle.dumps(excinfo.value))
    assert restored.reason == DecodeReason.INVALID_OPCODE
    assert restored.offset == 3
    assert restored.byte == 0x07
    assert str(restored) == str(excinfo.value) == "invalid opcode at offset 3 (byte 0x07)"


def test_error_hierarchy():
    assert issubclass(EncodeError, BooBcException)
    assert issubclass(EncodeError, ValueError)
    assert issubclass(DecodeError, BooBcException)

# =============================================================================
# Concurrency
# =============================================================================

def test_concurrent_calls_match_sequential():
    programs = list(enumerate_programs(max_length=3, counts=[0, 1, 251, UINT32_MAX]))

    def work(program):
        bytecode = encode(program)
        return bytecode, decode(Program, bytecode)

    sequential = [work(p) for p in programs]
    with ThreadPoolExecutor(max_workers=8) as pool:
        concurrent = list(pool.map(work, programs))
    assert concurrent == sequential
