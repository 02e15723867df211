"""Tests for CLI formatting helpers."""

from odbcsv.cli.helpers import fmt_elapsed, fmt_rate, fmt_size

# -- fmt_size --


def test_fmt_size_none_returns_dash():
    assert fmt_size(None) == "-"


def test_fmt_size_bytes():
    assert fmt_size(21) == "21B"


def test_fmt_size_kilobytes():
    assert fmt_size(4097) == "4.0 KB"


def test_fmt_size_kilobytes_large():
    assert fmt_size(15360) == "15 KB"


def test_fmt_size_megabytes():
    assert fmt_size(5000 * 4097) == "20 MB"


# -- fmt_elapsed --


def test_fmt_elapsed_milliseconds():
    assert fmt_elapsed(0.25) == "250ms"


def test_fmt_elapsed_seconds():
    assert fmt_elapsed(12.34) == "12.3s"


def test_fmt_elapsed_minutes():
    assert fmt_elapsed(125) == "2m05s"


# -- fmt_rate --


def test_fmt_rate():
    assert fmt_rate(12000, 2.0) == "6,000 rows/s"


def test_fmt_rate_zero_elapsed():
    assert fmt_rate(10, 0.0) == "-"
