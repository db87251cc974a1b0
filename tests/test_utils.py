from datetime import date, time

import pytest

from telecare.utils import format_long_date, is_valid_time_slot, parse_time_slot


@pytest.mark.parametrize("d, expected", [
    (date(2026, 10, 1), "October 1st, 2026"),
    (date(2026, 10, 2), "October 2nd, 2026"),
    (date(2026, 10, 3), "October 3rd, 2026"),
    (date(2026, 10, 11), "October 11th, 2026"),
    (date(2026, 10, 12), "October 12th, 2026"),
    (date(2026, 10, 22), "October 22nd, 2026"),
])
async def test_format_long_date(d, expected):
    assert format_long_date(d) == expected


async def test_parse_time_slot():
    assert parse_time_slot("9:00 AM") == time(9, 0)
    assert parse_time_slot("2:00 PM") == time(14, 0)


async def test_only_offered_slots_are_valid():
    assert is_valid_time_slot("11:00 AM")
    assert not is_valid_time_slot("12:00 PM")
