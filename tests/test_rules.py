from datetime import datetime

from booking_core.models import AppointmentStatus, Interval, Slot
from booking_core.rules import find_conflicts, is_past, overlaps, validate_duration


def _iv(start_hour, end_hour):
    return Interval(start=datetime(2024, 6, 3, start_hour), end=datetime(2024, 6, 3, end_hour))


def test_overlaps_half_open():
    assert overlaps(_iv(9, 11), _iv(10, 12))
    assert overlaps(_iv(9, 12), _iv(10, 11))
    assert not overlaps(_iv(9, 10), _iv(10, 11))
    assert not overlaps(_iv(10, 11), _iv(9, 10))


def test_is_past_uses_end_time():
    interval = _iv(9, 10)
    assert not is_past(interval, datetime(2024, 6, 3, 9, 30))
    assert is_past(interval, datetime(2024, 6, 3, 10))


def test_validate_duration():
    assert validate_duration(datetime(2024, 6, 3, 9), datetime(2024, 6, 3, 9, 1))
    assert not validate_duration(datetime(2024, 6, 3, 9), datetime(2024, 6, 3, 9))


def test_find_conflicts_only_counts_active_slots():
    slots = [
        Slot(id=1, specialist_id=1, start_time=datetime(2024, 6, 3, 9), end_time=datetime(2024, 6, 3, 10)),
        Slot(
            id=2, specialist_id=1, client_id=5, service_id=6,
            start_time=datetime(2024, 6, 3, 10), end_time=datetime(2024, 6, 3, 11),
            status=AppointmentStatus.COMPLETED,
        ),
        Slot(
            id=3, specialist_id=1,
            start_time=datetime(2024, 6, 3, 10), end_time=datetime(2024, 6, 3, 11),
            status=AppointmentStatus.CANCELLED,
        ),
    ]
    assert [s.id for s in find_conflicts(_iv(9, 12), slots)] == [1]
    assert find_conflicts(_iv(9, 12), slots, ignore_id=1) == []
