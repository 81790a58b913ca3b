from __future__ import annotations

from datetime import datetime, timezone

import pytest

from lookout_ssf.utils.http import normalize_base_url, truncate_body
from lookout_ssf.utils.time import isoformat_z, minutes_ago, parse_timestamp


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("https://ssf.example.com/", "https://ssf.example.com"),
        ("  HTTPS://ssf.example.com/base/ ", "https://ssf.example.com/base"),
        ("http://localhost:8080", "http://localhost:8080"),
    ],
)
def test_normalize_base_url(value: str, expected: str) -> None:
    assert normalize_base_url(value) == expected


@pytest.mark.parametrize(
    "value",
    ["", "ssf.example.com", "ftp://ssf.example.com", "https://u:p@x.com", "https://x.com/?a=1"],
)
def test_normalize_base_url_rejects(value: str) -> None:
    with pytest.raises(ValueError):
        normalize_base_url(value)


def test_truncate_body() -> None:
    assert truncate_body(None) == ""
    assert truncate_body("abc", limit=2) == "ab"
    assert len(truncate_body("x" * 1000)) == 500


def test_isoformat_z() -> None:
    value = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    assert isoformat_z(value) == "2024-05-01T12:00:00.123Z"


def test_minutes_ago() -> None:
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert minutes_ago(5, now=now) == datetime(2024, 5, 1, 11, 55, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "value",
    ["2024-05-01T12:00:00Z", "2024-05-01T12:00:00.000Z", "2024-05-01T12:00:00", 1714564800],
)
def test_parse_timestamp(value: object) -> None:
    assert parse_timestamp(value) == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", ["", "soon", None, True, [], {}])
def test_parse_timestamp_rejects(value: object) -> None:
    with pytest.raises(ValueError):
        parse_timestamp(value)
