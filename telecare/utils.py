# telecare/utils.py
from datetime import date, datetime, time
from typing import List

AVAILABLE_TIME_SLOTS: List[str] = ["9:00 AM", "10:00 AM", "11:00 AM", "2:00 PM", "3:00 PM", "4:00 PM"]


def ordinal(n: int) -> str:
    if 11 <= n % 100 <= 13:
        return f"{n}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def format_long_date(d: date) -> str:
    """'October 19th, 2026' - the long form shown on appointment cards."""
    return f"{d.strftime('%B')} {ordinal(d.day)}, {d.year}"


def parse_time_slot(slot: str) -> time:
    # "9:00 AM" -> time(9, 0)
    return datetime.strptime(slot.strip().upper(), "%I:%M %p").time()


def is_valid_time_slot(slot: str) -> bool:
    return slot in AVAILABLE_TIME_SLOTS
