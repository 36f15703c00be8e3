from dataclasses import dataclass
from typing import Tuple, Union

# =============================================================================
# Constants
# =============================================================================

UINT32_MAX = (1 << 32) - 1

# Opcodes. These are part of the wire format and are never reassigned.
OP_XOR = 0x40
OP_AND = 0x41

# =============================================================================
# Values
# =============================================================================

@dataclass(frozen=True)
class Values:
    """
    A typed collection of values passed into or out of a program.

    Only the order within each partition matters. Each partition corresponds
    to one kind of initial secret sharing; B8 is the only one so far.
    """
    b8: bytes = b''

    def __post_init__(self):
        if not isinstance(self.b8, bytes):
            try:
                object.__setattr__(self, 'b8', bytes(iter(self.b8)))
            except (TypeError, ValueError) as e:
                raise ValueError(f"b8 values must be integers in 0-255: {e}") from None

# =============================================================================
# Operation ADT
# =============================================================================

@dataclass(frozen=True)
class Xor:
    """Xor the top two elements of the stack, replacing them."""

    def __str__(self) -> str:
        return operation_name(self)


@dataclass(frozen=True)
class And:
    """And the top two elements of the stack, replacing them."""

    def __str__(self) -> str:
        return operation_name(self)


Operation = Union[Xor, And]

OPCODES: dict[type, int] = {
    Xor: OP_XOR,
    And: OP_AND,
}

OPERATIONS: dict[int, Operation] = {opcode: cls() for cls, opcode in OPCODES.items()}

if len(OPERATIONS) != len(OPCODES):
    raise RuntimeError(f"Opcode table is not disjoint: {OPCODES}")


def is_operation(value: object) -> bool:
    return type(value) in OPCODES


def operation_name(op: Operation) -> str:
    """Canonical short name of an operation, for logs and error messages."""
    match op:
        case Xor():
            return "Xor"
        case And():
            return "And"
        case _:
            raise ValueError(f"Unknown operation: {op!r}")

# =============================================================================
# Functions and Programs
# =============================================================================

@dataclass(frozen=True)
class FunctionSignature:
    """What inputs a function takes, and what outputs it produces."""
    inputs: int
    outputs: int

    def __post_init__(self):
        for name in ('inputs', 'outputs'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"FunctionSignature.{name} must be int, got {type(value).__name__}")
            if not (0 <= value <= UINT32_MAX):
                raise ValueError(f"FunctionSignature.{name} must be 0-0x{UINT32_MAX:X}, got {value}")


@dataclass(frozen=True)
class Function:
    """
    A single function: a signature plus the operations making it up.

    The function takes its inputs on the stack and leaves its outputs there.
    It implicitly returns after reaching the last operation.
    """
    signature: FunctionSignature
    operations: Tuple[Operation, ...] = ()

    def __post_init__(self):
        if not isinstance(self.signature, FunctionSignature):
            raise ValueError(f"Function.signature must be a FunctionSignature, got {self.signature!r}")
        operations = tuple(self.operations)
        for i, op in enumerate(operations):
            if not is_operation(op):
                raise ValueError(f"Function.operations[{i}] is not an operation: {op!r}")
        object.__setattr__(self, 'operations', operations)


@dataclass(frozen=True)
class Program:
    """
    A program: what gets executed, and what proofs are created for.

    A program consists of a single function, which defines the inputs and
    outputs of the program.
    """
    main: Function

    def __post_init__(self):
        if not isinstance(self.main, Function):
            raise ValueError(f"Program.main must be a Function, got {self.main!r}")

# =============================================================================
# Diagnostics
# =============================================================================

def format_function(function: Function, name: str = "function") -> str:
    """Render a function as a short listing, one operation per line."""
    sig = function.signature
    lines = [f"{name}({sig.inputs}) -> {sig.outputs}"]
    for i, op in enumerate(function.operations):
        lines.append(f"  {i}: {operation_name(op)}")
    return "\n".join(lines)


def format_program(program: Program) -> str:
    return format_function(program.main, name="main")
