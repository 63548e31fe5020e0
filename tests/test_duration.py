from __future__ import annotations

import pytest

from reftimer.duration import (
    describe_duration,
    format_duration,
    parse_duration,
    split_duration,
)
from reftimer.errors import ErrorKind, InvalidDurationError


@pytest.mark.parametrize("d", range(0, 10))
def test_structured_duration_counts_seconds(d: int) -> None:
    for hh in (0, 1, 9, 23):
        for mm in (0, 7, 30, 59):
            text = f"{d}:{hh:02d}:{mm:02d}"
            assert parse_duration(text) == d * 86400 + hh * 3600 + mm * 60


def test_structured_duration_example() -> None:
    assert parse_duration("1:02:30") == 95400


@pytest.mark.parametrize("text", ["abc", "1:24:00", "1:00:60", "1:00", "1:2:3:4", "-1:00:00", "a:00:00", "1::30"])
def test_structured_duration_rejects(text: str) -> None:
    with pytest.raises(InvalidDurationError) as info:
        parse_duration(text)
    assert info.value.kind is ErrorKind.INVALID_DURATION


def test_invalid_duration_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        parse_duration("abc")


@pytest.mark.parametrize(
    "text, seconds",
    [
        ("", 0),
        ("   ", 0),
        ("1j2h30m", 95400),
        ("1j 2h 30m", 95400),
        ("30m 2h", 9000),
        ("1d", 86400),
        ("45m", 2700),
        ("2H", 7200),
        ("0m", 0),
    ],
)
def test_flexible_duration(text: str, seconds: int) -> None:
    assert parse_duration(text) == seconds


@pytest.mark.parametrize("text", ["12", "2h2h", "1j 1d", "2x", "h", "1h foo"])
def test_flexible_duration_rejects(text: str) -> None:
    with pytest.raises(InvalidDurationError):
        parse_duration(text)


def test_split_and_format_duration() -> None:
    assert split_duration(95400) == (1, 2, 30)
    assert format_duration(95400) == "1:02:30"
    assert format_duration(59) == "0:00:00"
    assert format_duration(0) == "0:00:00"
    assert format_duration(-300) == "0:00:00"
    assert parse_duration(format_duration(3 * 86400 + 5 * 60)) == 3 * 86400 + 5 * 60


def test_describe_duration_drops_zero_parts() -> None:
    assert describe_duration(95400) == "1d 2h 30m"
    assert describe_duration(86400 + 60) == "1d 1m"
    assert describe_duration(7200) == "2h"
    assert describe_duration(0) == ""


@pytest.mark.parametrize("text", ["1:²:00", "²:00:00", "1:00:3⁰", "١:٠٢:٣٠", "²h", "1j ³m"])
def test_duration_rejects_non_ascii_digits(text: str) -> None:
    with pytest.raises(InvalidDurationError):
        parse_duration(text)
