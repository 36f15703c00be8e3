"""Fuzzing and enumeration tooling for the boo-bc decoder."""

from .fuzzer import (
    DecodeResult, Decoded, Rejected, Crash,
    FuzzingStatistics,
    GeneratorConfig,
    check_round_trip,
    run_fuzzer,
)

from .enumeration import (
    BOUNDARY_COUNTS, MINIMAL_COUNTS, ALL_OPERATIONS,
    enumerate_programs,
    enumerate_invalid_opcode_tests,
    enumerate_invalid_integer_tests,
    enumerate_truncation_tests,
    generate_comprehensive_suite,
)
