"""Tests for callie._internal.encoding — JSON for driver value types."""

import json
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from uuid import UUID

import pytest

from callie._internal.encoding import dumps


def roundtrip(value):
    return json.loads(dumps(value))


class TestDumps:
    def test_compact_utf8(self) -> None:
        assert dumps({"name": "Zoë", "n": [1, 2]}) == '{"name":"Zoë","n":[1,2]}'.encode()

    def test_dates(self) -> None:
        assert roundtrip(date(2024, 5, 1)) == "2024-05-01"
        assert roundtrip(datetime(2024, 5, 1, 9, 30)) == "2024-05-01T09:30:00"
        assert roundtrip(time(8, 15)) == "08:15:00"

    @pytest.mark.parametrize(
        ("delta", "expected"),
        [
            (timedelta(hours=9, minutes=5), "09:05:00"),
            (timedelta(hours=30, seconds=7), "30:00:07"),
            (timedelta(minutes=-90), "-01:30:00"),
        ],
    )
    def test_mysql_time(self, delta: timedelta, expected: str) -> None:
        assert roundtrip(delta) == expected

    def test_decimal(self) -> None:
        assert roundtrip(Decimal("42")) == 42
        assert roundtrip(Decimal("19.99")) == 19.99

    def test_bytes_uuid_sets(self) -> None:
        assert roundtrip(b"abc") == "abc"
        assert roundtrip(UUID("12345678-1234-5678-1234-567812345678")) == "12345678-1234-5678-1234-567812345678"
        assert roundtrip({3}) == [3]

    def test_unknown_type(self) -> None:
        with pytest.raises(TypeError, match="object is not JSON serializable"):
            dumps(object())
