"""Shared pytest fixtures."""

import pytest

from boobc import Program, Function, FunctionSignature, Xor, And, STANDARD, LEGACY


@pytest.fixture
def example_program():
    """Three inputs, one output: xor then and."""
    return Program(Function(FunctionSignature(3, 1), [Xor(), And()]))


@pytest.fixture
def empty_function():
    return Function(FunctionSignature(0, 0), [])


@pytest.fixture(params=[
    STANDARD,
    LEGACY,
    STANDARD.with_big_endian(),
    LEGACY.with_big_endian(),
], ids=["standard", "legacy", "standard-be", "legacy-be"])
def config(request):
    """Parametrized: every integer encoding and byte order."""
    return request.param
