from datetime import date, datetime, time

import pydantic
import pytest

from booking_core.errors import ValidationError
from booking_core.generator import generate_slots, working_days
from booking_core.models import BulkGenerationRequest


def _request(**overrides) -> BulkGenerationRequest:
    data = dict(
        specialist_id=1,
        start_date=date(2024, 6, 3),  # Monday
        end_date=date(2024, 6, 3),
        day_start_time=time(9, 0),
        day_end_time=time(17, 0),
        slot_duration_minutes=60,
    )
    data.update(overrides)
    return BulkGenerationRequest(**data)


def _hours(intervals):
    return [(i.start.strftime("%H:%M"), i.end.strftime("%H:%M")) for i in intervals]


def test_break_window_is_excluded():
    req = _request(break_start_time=time(13, 0), break_end_time=time(14, 0))
    assert _hours(generate_slots(req)) == [
        ("09:00", "10:00"),
        ("10:00", "11:00"),
        ("11:00", "12:00"),
        ("12:00", "13:00"),
        ("14:00", "15:00"),
        ("15:00", "16:00"),
        ("16:00", "17:00"),
    ]


def test_slot_partially_overlapping_break_is_dropped():
    req = _request(slot_duration_minutes=90, break_start_time=time(12, 0), break_end_time=time(13, 0))
    # fixed grid: 12:00-13:30 hits the break, 16:30-18:00 runs past the day end
    assert _hours(generate_slots(req)) == [
        ("09:00", "10:30"),
        ("10:30", "12:00"),
        ("13:30", "15:00"),
        ("15:00", "16:30"),
    ]


def test_grid_does_not_realign_after_break():
    req = _request(
        day_start_time=time(9, 0),
        day_end_time=time(12, 0),
        slot_duration_minutes=45,
        break_start_time=time(10, 0),
        break_end_time=time(10, 15),
    )
    assert _hours(generate_slots(req)) == [("09:00", "09:45"), ("10:30", "11:15"), ("11:15", "12:00")]


def test_two_day_scenario():
    req = _request(end_date=date(2024, 6, 4), day_end_time=time(11, 0))
    assert [(i.start, i.end) for i in generate_slots(req)] == [
        (datetime(2024, 6, 3, 9), datetime(2024, 6, 3, 10)),
        (datetime(2024, 6, 3, 10), datetime(2024, 6, 3, 11)),
        (datetime(2024, 6, 4, 9), datetime(2024, 6, 4, 10)),
        (datetime(2024, 6, 4, 10), datetime(2024, 6, 4, 11)),
    ]


def test_weekends_are_skipped():
    # Friday 2024-06-07 through Monday 2024-06-10
    req = _request(start_date=date(2024, 6, 7), end_date=date(2024, 6, 10), day_end_time=time(10, 0))
    days = [i.start.date() for i in generate_slots(req)]
    assert days == [date(2024, 6, 7), date(2024, 6, 10)]
    assert all(d.weekday() < 5 for d in days)


def test_working_days_range():
    assert list(working_days(date(2024, 6, 8), date(2024, 6, 9))) == []
    assert len(list(working_days(date(2024, 6, 3), date(2024, 6, 16)))) == 10


def test_generation_is_restartable():
    req = _request(end_date=date(2024, 6, 14), break_start_time=time(12, 0), break_end_time=time(12, 30))
    first = list(generate_slots(req))
    second = list(generate_slots(req))
    assert first == second
    assert len(first) > 0


def test_zero_width_break_excludes_nothing():
    req = _request(day_end_time=time(13, 0), break_start_time=time(11, 30), break_end_time=time(11, 30))
    assert len(list(generate_slots(req))) == 4


def test_inverted_date_range_is_empty():
    req = _request(start_date=date(2024, 6, 5), end_date=date(2024, 6, 3))
    assert list(generate_slots(req)) == []


def test_day_shorter_than_one_slot_is_empty():
    req = _request(day_start_time=time(9, 0), day_end_time=time(9, 30))
    assert list(generate_slots(req)) == []


@pytest.mark.parametrize("minutes", [0, -15])
def test_non_positive_duration_rejected_by_model(minutes):
    with pytest.raises(pydantic.ValidationError):
        _request(slot_duration_minutes=minutes)


def test_inverted_break_rejected_by_model():
    with pytest.raises(pydantic.ValidationError):
        _request(break_start_time=time(14, 0), break_end_time=time(13, 0))


def test_break_requires_both_ends():
    with pytest.raises(pydantic.ValidationError):
        _request(break_start_time=time(13, 0))


def test_generator_rechecks_unvalidated_request():
    req = BulkGenerationRequest.model_construct(
        specialist_id=1,
        start_date=date(2024, 6, 3),
        end_date=date(2024, 6, 3),
        day_start_time=time(9, 0),
        day_end_time=time(17, 0),
        break_start_time=None,
        break_end_time=None,
        slot_duration_minutes=0,
    )
    with pytest.raises(ValidationError):
        generate_slots(req)


def test_request_accepts_wire_aliases():
    req = BulkGenerationRequest.model_validate({
        "specialistId": 4,
        "startDate": "2024-06-03",
        "endDate": "2024-06-04",
        "startTime": "09:00",
        "endTime": "11:00",
        "breakStartTime": "10:00",
        "breakEndTime": "10:00",
        "appointmentDuration": 30,
    })
    assert req.specialist_id == 4
    assert req.slot_duration_minutes == 30
    assert len(list(generate_slots(req))) == 8


def test_from_payload_raises_booking_validation_error():
    with pytest.raises(ValidationError, match="appointmentDuration"):
        BulkGenerationRequest.from_payload({
            "specialistId": 4,
            "startDate": "2024-06-03",
            "endDate": "2024-06-03",
            "startTime": "09:00",
            "endTime": "11:00",
            "appointmentDuration": 0,
        })


def test_generated_intervals_are_immutable():
    interval = next(generate_slots(_request()))
    with pytest.raises(pydantic.ValidationError):
        interval.end = datetime(2024, 6, 3, 8)
