"""Tests for Content-Range and Range header helpers."""

import pytest

from mediarelay.transfer.content_range import (
    format_content_range,
    format_probe_range,
    parse_content_range,
    parse_range_upper_bound,
)


def test_format_content_range_uses_inclusive_end():
    assert format_content_range(0, 5_242_880, 12_582_912) == "bytes 0-5242879/12582912"
    assert format_content_range(10_485_760, 12_582_912, 12_582_912) == (
        "bytes 10485760-12582911/12582912"
    )


@pytest.mark.parametrize("start,end,total", [(5, 5, 10), (0, 11, 10), (-1, 3, 10)])
def test_format_content_range_rejects_bad_ranges(start, end, total):
    with pytest.raises(ValueError):
        format_content_range(start, end, total)


def test_format_probe_range():
    assert format_probe_range(1024) == "bytes */1024"


def test_parse_content_range():
    parsed = parse_content_range("bytes 100-199/1000")
    assert (parsed.start, parsed.end, parsed.total) == (100, 199, 1000)
    assert parsed.length == 100
    assert not parsed.is_probe


def test_parse_probe_content_range():
    parsed = parse_content_range("bytes */1000")
    assert parsed.is_probe
    assert parsed.length == 0
    assert parsed.total == 1000


@pytest.mark.parametrize(
    "value",
    ["", "bytes 10-5/100", "bytes 0-100/100", "items 0-1/2", "bytes 0-1", "bytes=0-1/2"],
)
def test_parse_content_range_rejects_malformed(value):
    with pytest.raises(ValueError):
        parse_content_range(value)


def test_parse_range_upper_bound():
    assert parse_range_upper_bound("bytes=0-1048575") == 1_048_575
    assert parse_range_upper_bound(" bytes=0-0 ") == 0


@pytest.mark.parametrize("value", [None, "", "bytes=0-", "bytes 0-10/20", "garbage"])
def test_parse_range_upper_bound_unusable(value):
    assert parse_range_upper_bound(value) is None
