"""boo-bc: bytecode format for a secret-shared stack virtual machine."""

from .bytecode import (
    # Constants
    UINT32_MAX,
    OP_XOR, OP_AND, OPCODES, OPERATIONS,
    # Data model
    Values, Xor, And, Operation,
    FunctionSignature, Function, Program,
    # Diagnostics
    operation_name, format_function, format_program,
)

from .config import Config, IntEncoding, STANDARD, LEGACY

from .errors import BooBcException, EncodeError, DecodeError, DecodeReason

from .codec import (
    # Serialization
    serialize_operation, serialize_signature, serialize_function,
    serialize_program, serialize_values,
    # Deserialization
    deserialize_operation, deserialize_signature, deserialize_function,
    deserialize_program, deserialize_values,
    # Generic
    encode, decode,
)

__version__ = "0.1.0"
