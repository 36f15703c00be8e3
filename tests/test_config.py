"""Tests for serializer configuration."""

import pytest

from boobc import Config, IntEncoding, STANDARD, LEGACY


def test_presets():
    assert STANDARD == Config(IntEncoding.VARINT, "little", None)
    assert LEGACY == Config(IntEncoding.FIXED, "little", None)


def test_builders_return_copies():
    config = STANDARD.with_fixed_int_encoding().with_big_endian().with_limit(1024)
    assert config == Config(IntEncoding.FIXED, "big", 1024)
    assert STANDARD.int_encoding == IntEncoding.VARINT
    assert config.with_no_limit().limit is None
    assert config.with_little_endian().endian == "little"
    assert config.with_variable_int_encoding().int_encoding == IntEncoding.VARINT


def test_config_is_frozen():
    with pytest.raises(AttributeError):
        STANDARD.limit = 10


@pytest.mark.parametrize("kwargs", [
    {"endian": "middle"},
    {"int_encoding": "varint"},
    {"limit": -1},
    {"limit": 1.5},
    {"limit": True},
])
def test_invalid_config(kwargs):
    with pytest.raises(ValueError):
        Config(**kwargs)


def test_with_limit_rejects_bool():
    with pytest.raises(ValueError):
        STANDARD.with_limit(True)
