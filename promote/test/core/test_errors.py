"""Tests for promote.core.errors module."""

from promote.core.errors import ErrorCode


def test_codes_are_stable() -> None:
    assert [int(c) for c in ErrorCode] == list(range(9))


def test_only_ok_is_success() -> None:
    assert ErrorCode.OK.is_success
    assert not any(c.is_success for c in ErrorCode if c is not ErrorCode.OK)


def test_str_is_readable() -> None:
    assert str(ErrorCode.CACHE_STALE) == "cache stale"
