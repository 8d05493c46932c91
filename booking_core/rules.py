"""Pure predicates shared by the generator, the repository and the state machine."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from .models import Interval, Slot


def overlaps(a: Interval, b: Interval) -> bool:
    """Half-open overlap test: touching intervals do not overlap."""
    return a.start < b.end and b.start < a.end


def is_past(interval: Interval, now: datetime) -> bool:
    return interval.end <= now


def validate_duration(start: datetime, end: datetime) -> bool:
    return end > start


def find_conflicts(candidate: Interval, slots: Iterable[Slot], ignore_id: int | None = None) -> list[Slot]:
    """Return the active slots (AVAILABLE or BOOKED) overlapping ``candidate``."""
    return [
        slot for slot in slots
        if slot.is_active and slot.id != ignore_id and overlaps(candidate, slot.interval)
    ]
