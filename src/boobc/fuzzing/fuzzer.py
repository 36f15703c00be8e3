"""
Simple fuzzer for the boo-bc decoder.

Feeds generated byte sequences to the program decoder and checks that every
input either decodes to a program that survives a round trip, or is rejected
with a DecodeError. Anything else (a different exception, or a round trip
that does not reproduce the program) is reported as a failure.
"""

import logging
import random
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from boobc.bytecode import OP_XOR, OP_AND, OPERATIONS, Program, format_program
from boobc.codec import decode, encode, serialize_length, serialize_u32
from boobc.config import Config, STANDARD
from boobc.errors import DecodeError, DecodeReason

log = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# Structure-aware generation probabilities
PROB_XOR = 0.48
PROB_AND = 0.48
PROB_INVALID_OPCODE = 0.04

PROB_TRUNCATED = 0.05
PROB_WRONG_COUNT = 0.05

# Mixed strategy probabilities
PROB_RANDOM_STRATEGY = 0.5


@dataclass
class GeneratorConfig:
    """Configuration for bytecode generators."""
    max_length: int = 20              # For random generator
    max_operations: int = 10          # For structured generator
    max_count: int = 300              # Largest signature count


DEFAULT_CONFIG = GeneratorConfig()

INVALID_OPCODES = [byte for byte in range(256) if byte not in OPERATIONS]


# =============================================================================
# Operation Selection
# =============================================================================

class OperationChoice(Enum):
    """Enum for operation bytes in structure-aware generation."""
    XOR = "xor"
    AND = "and"
    INVALID = "invalid"


def choose_operation(rng: random.Random) -> OperationChoice:
    """Choose an operation byte kind based on configured probabilities."""
    weights = [
        (OperationChoice.XOR, int(PROB_XOR * 100)),
        (OperationChoice.AND, int(PROB_AND * 100)),
        (OperationChoice.INVALID, int(PROB_INVALID_OPCODE * 100)),
    ]
    choices, probs = zip(*weights)
    return rng.choices(choices, weights=probs)[0]


# =============================================================================
# Bytecode Generators
# =============================================================================

def generate_random_bytes(rng: random.Random,
                          gen: GeneratorConfig = DEFAULT_CONFIG,
                          config: Config = STANDARD) -> bytes:
    """Generate completely random bytes - no structure consideration."""
    length = rng.randint(1, gen.max_length)
    return bytes(rng.randint(0, 255) for _ in range(length))


def generate_structure_aware_bytecode(rng: random.Random,
                                      gen: GeneratorConfig = DEFAULT_CONFIG,
                                      config: Config = STANDARD) -> bytes:
    """
    Generate a program encoding that is usually valid.

    With small probabilities the operation count disagrees with the number of
    operation bytes, an operation byte is not an opcode, or the encoding is
    cut short, to exercise the decoder's error paths.
    """
    ops = bytearray()
    for _ in range(rng.randint(0, gen.max_operations)):
        choice = choose_operation(rng)
        if choice == OperationChoice.XOR:
            ops.append(OP_XOR)
        elif choice == OperationChoice.AND:
            ops.append(OP_AND)
        else:
            ops.append(rng.choice(INVALID_OPCODES))

    count = len(ops)
    if rng.random() < PROB_WRONG_COUNT:
        count = rng.randint(0, gen.max_operations * 2)

    bytecode = (
        serialize_u32(rng.randint(0, gen.max_count), config)
        + serialize_u32(rng.randint(0, gen.max_count), config)
        + serialize_length(count, config)
        + bytes(ops)
    )
    if bytecode and rng.random() < PROB_TRUNCATED:
        bytecode = bytecode[:rng.randint(0, len(bytecode) - 1)]
    return bytecode


def generate_mixed_strategy_bytecode(rng: random.Random,
                                     gen: GeneratorConfig = DEFAULT_CONFIG,
                                     config: Config = STANDARD) -> bytes:
    """Pick between random bytes and structure-aware bytecode."""
    if rng.random() < PROB_RANDOM_STRATEGY:
        return generate_random_bytes(rng, gen, config)
    return generate_structure_aware_bytecode(rng, gen, config)


# Generator registry for dispatch
GENERATORS: dict[str, Callable[..., bytes]] = {
    "random": generate_random_bytes,
    "structured": generate_structure_aware_bytecode,
    "mixed": generate_mixed_strategy_bytecode,
}


# =============================================================================
# Decode Results
# =============================================================================

@dataclass(frozen=True)
class DecodeResult:
    """Base class for decode results - used as a union type."""


@dataclass(frozen=True)
class Decoded(DecodeResult):
    program: Program
    consumed: int


@dataclass(frozen=True)
class Rejected(DecodeResult):
    reason: DecodeReason


@dataclass(frozen=True)
class Crash(DecodeResult):
    reason: str


def decode_with_result(bytecode: bytes, config: Config = STANDARD) -> DecodeResult:
    """Decode a program and classify the outcome."""
    try:
        program, consumed = decode(Program, bytecode, config)
        return Decoded(program, consumed)
    except DecodeError as e:
        return Rejected(e.reason)
    except Exception as e:
        return Crash(f"decoder raised exception: {e!r}")


def check_round_trip(program: Program, config: Config = STANDARD) -> bool:
    """Check that encoding then decoding reproduces the program exactly."""
    bytecode = encode(program, config)
    return decode(Program, bytecode, config) == (program, len(bytecode))


# =============================================================================
# Statistics Tracking
# =============================================================================

@dataclass
class FuzzingStatistics:
    """Tracks fuzzing run statistics."""
    total_tests: int = 0
    decoded: int = 0
    crashes: int = 0
    round_trip_failures: int = 0
    rejections: Counter = field(default_factory=Counter)

    @property
    def rejected(self) -> int:
        return sum(self.rejections.values())

    @property
    def failures(self) -> int:
        return self.crashes + self.round_trip_failures

    @property
    def failure_rate(self) -> float:
        return (self.failures / self.total_tests * 100) if self.total_tests > 0 else 0.0

    def record_test(self, result: DecodeResult, round_trip_ok: bool = True) -> None:
        """Record results of a single test."""
        self.total_tests += 1

        if isinstance(result, Decoded):
            self.decoded += 1
            if not round_trip_ok:
                self.round_trip_failures += 1
        elif isinstance(result, Rejected):
            self.rejections[result.reason] += 1
        elif isinstance(result, Crash):
            self.crashes += 1

    def print_summary(self) -> None:
        """Print formatted summary of results."""
        print("\n" + "=" * 60)
        print("Fuzzer Summary")
        print("-" * 40)
        print(f"Total tests run:           {self.total_tests}")
        print(f"Decoded:                   {self.decoded}")
        print(f"Rejected:                  {self.rejected}")
        for reason, count in sorted(self.rejections.items(), key=lambda x: x[0].name):
            print(f"  {reason.value + ':':<24}{count}")
        print(f"Decoder crashes:           {self.crashes}")
        print(f"Round trip failures:       {self.round_trip_failures}")

        if self.failures > 0:
            print(f"Failure rate:              {self.failure_rate:.1f}%")
        else:
            print("\nNo failures detected!")


# =============================================================================
# Failure Reporting
# =============================================================================

def report_failure(test_num: int, bytecode: bytes, result: DecodeResult) -> None:
    """Print detailed failure report."""
    print(f"\nTest {test_num}: Failure")
    print(f"  Bytecode: {bytecode.hex()}")
    if isinstance(result, Decoded):
        for line in format_program(result.program).splitlines():
            print(f"    {line}")
    print(f"  Result:   {result}")


# =============================================================================
# Fuzzer Main Logic
# =============================================================================

def run_single_test(bytecode: bytes, config: Config = STANDARD) -> tuple[DecodeResult, bool]:
    """
    Run a single fuzzing test case.

    Returns:
        Tuple of (decode_result, round_trip_ok)
    """
    result = decode_with_result(bytecode, config)
    if not isinstance(result, Decoded):
        return result, True
    try:
        return result, check_round_trip(result.program, config)
    except Exception as e:
        return Crash(f"round trip raised exception: {e!r}"), False


def run_fuzzer(
    num_tests: int = 1000,
    seed: Optional[int] = None,
    generator: str = "random",
    config: Config = STANDARD,
    gen: GeneratorConfig = DEFAULT_CONFIG,
    verbose: bool = False,
) -> FuzzingStatistics:
    """
    Run the fuzzer for a specified number of tests.

    Args:
        num_tests: Number of test cases to generate
        seed: Random seed for reproducibility
        generator: Generator type: "random", "structured", or "mixed"
        config: Serializer configuration for generation and decoding
        gen: Size bounds for generated inputs
        verbose: Print a report for every failing input

    Returns:
        FuzzingStatistics object with results
    """
    if generator not in GENERATORS:
        available = ', '.join(GENERATORS)
        raise ValueError(f"Unknown generator: {generator}. Available: {available}")

    rng = random.Random(seed)
    generate = GENERATORS[generator]
    stats = FuzzingStatistics()
    log.debug("fuzzer: %d tests, generator=%s seed=%s", num_tests, generator, seed)

    for test_num in range(1, num_tests + 1):
        bytecode = generate(rng, gen, config)
        result, round_trip_ok = run_single_test(bytecode, config)
        stats.record_test(result, round_trip_ok)
        if isinstance(result, Crash) or not round_trip_ok:
            log.debug("fuzzer: failure on test %d: %s", test_num, bytecode.hex())
            if verbose:
                report_failure(test_num, bytecode, result)

    return stats
