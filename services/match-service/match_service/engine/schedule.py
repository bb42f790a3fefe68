import json
from typing import Iterable

from ..errors import DataIntegrityError
from .models import ScheduleOverlap

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri")
MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str) -> int:
    """'07:30' -> 450"""
    try:
        hours, minutes = (int(part) for part in value.split(":"))
    except (AttributeError, TypeError, ValueError):
        raise DataIntegrityError(f"Invalid time value: {value!r}")

    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise DataIntegrityError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def format_hhmm(minute_of_day: int) -> str:
    return f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"


def parse_days(raw) -> frozenset[int]:
    """
    Accepts the stored JSON text ('[0, 2]') or an already decoded list.
    Days are weekday indices, 0=Mon .. 4=Fri.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise DataIntegrityError(f"Invalid day set: {raw!r}")

    if not isinstance(raw, list) or not raw:
        raise DataIntegrityError(f"Day set must be a non-empty list, got {raw!r}")

    days = set()
    for d in raw:
        if isinstance(d, bool) or not isinstance(d, int) or not 0 <= d < len(WEEKDAYS):
            raise DataIntegrityError(f"Invalid weekday index: {d!r}")
        days.add(d)
    return frozenset(days)


def check_window(earliest: int, latest: int) -> None:
    if not (0 <= earliest < MINUTES_PER_DAY and 0 <= latest < MINUTES_PER_DAY):
        raise DataIntegrityError(f"Window out of range: {earliest}..{latest}")
    if earliest >= latest:
        raise DataIntegrityError(f"Window must end after it starts: {earliest}..{latest}")


def schedule_overlap(
    earliest1: int,
    latest1: int,
    days1: Iterable[int],
    earliest2: int,
    latest2: int,
    days2: Iterable[int],
) -> ScheduleOverlap:
    common_days = frozenset(days1) & frozenset(days2)
    if not common_days:
        # no shared commuting day, the time windows are irrelevant
        return ScheduleOverlap(start=0, end=0, minutes=0, common_days=frozenset())

    start = max(earliest1, earliest2)
    end = min(latest1, latest2)
    return ScheduleOverlap(
        start=start,
        end=end,
        minutes=max(0, end - start),
        common_days=common_days,
    )
