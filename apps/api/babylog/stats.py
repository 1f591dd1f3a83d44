"""Daily totals derived from the raw activity rows."""
from __future__ import annotations

import math
from datetime import date as date_cls
from typing import Iterable, Optional

from .schemas import (
    CareRecord,
    DayStats,
    DiaperRecord,
    DiaperType,
    FeedingRecord,
    SleepRecord,
    SupplementRecord,
)

MINUTES_PER_DAY = 24 * 60
POOP_TYPES = {DiaperType.POOP, DiaperType.BOTH}


def time_to_minutes(value: Optional[str]) -> Optional[int]:
    """Parse "HH:MM" into minutes after midnight; None when blank or unparsable."""
    if not value:
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        return int(parts[0]) * 60 + int(parts[1])
    except ValueError:
        return None


def sleep_minutes(start_time: Optional[str], end_time: Optional[str]) -> int:
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    if start is None or end is None:
        return 0
    # Overnight sleeps wrap past midnight.
    return (end - start) % MINUTES_PER_DAY


def minutes_to_hours(minutes: int) -> float:
    """Hours to one decimal, rounding halves up like the web client does."""
    return math.floor(minutes / 6 + 0.5) / 10


def summarize_day(
    feedings: Iterable[FeedingRecord],
    diapers: Iterable[DiaperRecord],
    sleeps: Iterable[SleepRecord],
    supplement: Optional[SupplementRecord] = None,
    care: Optional[CareRecord] = None,
) -> DayStats:
    feedings = list(feedings)
    diapers = list(diapers)

    total_milk = sum(f.bottle_breast_milk + f.bottle_formula for f in feedings)
    total_breast = sum(f.breast_left + f.breast_right for f in feedings)
    poop_count = sum(1 for d in diapers if d.type in POOP_TYPES)
    total_sleep = sum(sleep_minutes(s.start_time, s.end_time) for s in sleeps)

    supplements_done, supplements_total = supplement.completion() if supplement else (0, 0)
    care_done, care_total = care.completion() if care else (0, 0)

    return DayStats(
        feeding_count=len(feedings),
        total_milk=total_milk,
        total_breast_min=total_breast,
        diaper_count=len(diapers),
        poop_count=poop_count,
        sleep_hours=minutes_to_hours(total_sleep),
        supplements_done=supplements_done,
        supplements_total=supplements_total,
        care_done=care_done,
        care_total=care_total,
    )


def day_of_life(birth_date: str, on_date: str) -> int:
    """1 on the birth date itself; zero or negative for dates before birth.

    Raises ValueError for dates that are not YYYY-MM-DD.
    """
    born = date_cls.fromisoformat(birth_date)
    current = date_cls.fromisoformat(on_date)
    return (current - born).days + 1
