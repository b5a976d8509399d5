"""Tests for promote.core.result module."""

import pytest

from promote.core.result import Err, Ok, Result


class TestOk:
    """Tests for Ok type."""

    def test_ok_map(self) -> None:
        """Ok.map() transforms the value."""
        assert Ok(21).map(lambda x: x * 2) == Ok(42)

    def test_ok_repr(self) -> None:
        assert repr(Ok("x")) == "Ok('x')"


class TestErr:
    """Tests for Err type."""

    def test_err_map_is_noop(self) -> None:
        assert Err("boom").map(lambda x: x * 2) == Err("boom")

    def test_err_repr(self) -> None:
        assert repr(Err("boom")) == "Err('boom')"


class TestNarrowing:
    def test_isinstance_narrows(self) -> None:
        result: Result[int, str] = Ok(1)
        assert isinstance(result, Ok)
        assert not isinstance(result, Err)
        assert result.value == 1

    def test_match_destructures(self) -> None:
        result: Result[int, str] = Err("no")
        match result:
            case Ok(value):
                pytest.fail(f"unexpected Ok({value})")
            case Err(error):
                assert error == "no"

    def test_results_are_frozen(self) -> None:
        with pytest.raises(AttributeError):
            Ok(1).value = 2  # type: ignore[misc]
