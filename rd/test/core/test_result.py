"""Tests for rd.core.result module."""

import pytest

from rd.core.result import Err, Ok, Result


def test_ok_carries_value() -> None:
    assert Ok(42).value == 42
    assert Ok(42) == Ok(42)
    assert Ok(42) != Err(42)


def test_err_carries_error() -> None:
    assert Err("boom").error == "boom"
    assert Err("boom") != Err("other")


def test_frozen() -> None:
    with pytest.raises(AttributeError):
        Ok(1).value = 2  # type: ignore[misc]


def test_repr() -> None:
    assert repr(Ok("x")) == "Ok('x')"
    assert repr(Err(3)) == "Err(3)"


def test_isinstance_narrowing() -> None:
    results: list[Result[int, str]] = [Ok(1), Err("x"), Ok(2)]
    values = [r.value for r in results if isinstance(r, Ok)]
    errors = [r.error for r in results if isinstance(r, Err)]
    assert values == [1, 2]
    assert errors == ["x"]


def test_pattern_matching() -> None:
    result: Result[int, str] = Ok(3)
    match result:
        case Ok(value):
            assert value == 3
        case Err(_):
            pytest.fail("expected Ok")
