"""Bulk slot generation.

Expands a :class:`BulkGenerationRequest` into candidate intervals on a fixed
grid. The cursor always advances by the slot duration, whether or not the
candidate at the cursor was emitted, so candidates of one request never overlap
each other.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator

from .errors import ValidationError
from .models import BulkGenerationRequest, Interval
from .rules import overlaps

SATURDAY = 5
SUNDAY = 6


def working_days(start_date: date, end_date: date) -> Iterator[date]:
    """Yield Monday-Friday dates from start_date to end_date inclusive."""
    day = start_date
    while day <= end_date:
        if day.weekday() not in (SATURDAY, SUNDAY):
            yield day
        day += timedelta(days=1)


def _check_request(request: BulkGenerationRequest) -> None:
    # Models built with model_construct() skip pydantic validation.
    if request.slot_duration_minutes is None or request.slot_duration_minutes <= 0:
        raise ValidationError("slot duration must be a positive number of minutes")
    if (request.break_start_time is None) != (request.break_end_time is None):
        raise ValidationError("break start and end must be given together")
    if request.break_start_time is not None and request.break_end_time < request.break_start_time:
        raise ValidationError("break end must not be before break start")


def generate_slots(request: BulkGenerationRequest) -> Iterator[Interval]:
    """Yield the candidate intervals described by ``request``.

    Validation happens eagerly so a bad request fails at the call site rather
    than on first iteration. The result is a fresh iterator on every call.

    Building a BulkGenerationRequest directly raises pydantic's
    ValidationError for bad data; BulkGenerationRequest.from_payload() raises
    booking_core.errors.ValidationError instead.
    """
    _check_request(request)
    return _iter_slots(request)


def _iter_slots(request: BulkGenerationRequest) -> Iterator[Interval]:
    step = timedelta(minutes=request.slot_duration_minutes)
    for day in working_days(request.start_date, request.end_date):
        day_end = datetime.combine(day, request.day_end_time)
        pause = None
        if request.break_start_time is not None and request.break_start_time < request.break_end_time:
            pause = Interval(
                start=datetime.combine(day, request.break_start_time),
                end=datetime.combine(day, request.break_end_time),
            )

        cursor = datetime.combine(day, request.day_start_time)
        while cursor < day_end:
            slot_end = cursor + step
            if slot_end <= day_end:
                candidate = Interval(start=cursor, end=slot_end)
                if pause is None or not overlaps(candidate, pause):
                    yield candidate
            cursor += step
