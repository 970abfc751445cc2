import pytest

from rkube.utils import first_error_or_ok


def test_returns_none_without_errors():
    assert first_error_or_ok([1, "a", None]) is None


def test_raises_first_error():
    with pytest.raises(ValueError, match="first"):
        first_error_or_ok([1, ValueError("first"), KeyError("second")])


def test_empty_results():
    assert first_error_or_ok([]) is None


def test_accepts_generator():
    with pytest.raises(RuntimeError, match="late"):
        first_error_or_ok(x for x in [0, 1, RuntimeError("late")])