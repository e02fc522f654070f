"""Проверки валидаторов настроек."""

from __future__ import annotations

import re

from src.settings.validators import (
    SOCKET_PATH_PATTERN,
    CompositeValidator,
    EnumValidator,
    IntegerRangeValidator,
    RegexValidator,
    TypeValidator,
)


def test_type_validator_failure() -> None:
    validator = TypeValidator(str)
    is_valid, error = validator.validate(123)
    assert not is_valid
    assert "str" in error


def test_integer_range_validator_within_bounds() -> None:
    validator = IntegerRangeValidator(1, 10)
    assert validator.validate(5) == (True, "")


def test_integer_range_validator_out_of_bounds() -> None:
    validator = IntegerRangeValidator(1, 10)
    is_valid, error = validator.validate(11)
    assert not is_valid
    assert "out of range" in error


def test_integer_range_validator_rejects_bool_and_strings() -> None:
    validator = IntegerRangeValidator(0, 10)
    assert validator.validate(True)[0] is False
    assert validator.validate("5")[0] is False


def test_enum_validator_failure() -> None:
    validator = EnumValidator(["INFO", "DEBUG"])
    is_valid, error = validator.validate("TRACE")
    assert not is_valid
    assert "allowed values" in error


def test_regex_validator_failure_when_not_string() -> None:
    validator = RegexValidator(r"^[A-Z]+$")
    is_valid, error = validator.validate(123)
    assert not is_valid
    assert "string" in error


def test_regex_validator_supports_compiled_pattern() -> None:
    validator = RegexValidator(re.compile(r"^[0-9]+$"))
    assert validator.validate("1234") == (True, "")


def test_socket_path_pattern() -> None:
    validator = RegexValidator(SOCKET_PATH_PATTERN)
    assert validator.validate("/var/run/docker.sock") == (True, "")
    assert validator.validate("unix:///var/run/docker.sock") == (True, "")
    assert validator.validate("tcp://127.0.0.1:2375")[0] is False
    assert validator.validate("/with space.sock")[0] is False


def test_composite_validator_stops_on_first_error() -> None:
    validator = CompositeValidator([TypeValidator(str), EnumValidator(["INFO"])])
    is_valid, error = validator.validate(1)
    assert not is_valid
    assert "type" in error
