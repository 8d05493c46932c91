from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum

import pydantic
from pydantic import BaseModel, Field, field_validator, model_validator

from .errors import ValidationError


class AppointmentStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    COMPLETED = "COMPLETED"
    # Accepted when loaded from the backend; no event transitions into it.
    CANCELLED = "CANCELLED"


# Statuses that occupy a specialist's calendar and must never overlap.
ACTIVE_STATUSES = frozenset({AppointmentStatus.AVAILABLE, AppointmentStatus.BOOKED})
ASSIGNED_STATUSES = frozenset({AppointmentStatus.BOOKED, AppointmentStatus.COMPLETED})


class Interval(BaseModel):
    """Half-open time interval [start, end)."""
    start: datetime
    end: datetime

    model_config = {
        "frozen": True
    }

    @model_validator(mode="after")
    def _check_order(self) -> "Interval":
        if self.end <= self.start:
            raise ValueError("interval end must be after its start")
        return self


class Slot(BaseModel):
    """One bookable appointment interval of one specialist."""
    id: int
    specialist_id: int = Field(alias="specialistId")
    client_id: int | None = Field(default=None, alias="clientId")
    service_id: int | None = Field(default=None, alias="serviceId")
    start_time: datetime = Field(alias="startTime")  # naive local wall-clock
    end_time: datetime = Field(alias="endTime")
    status: AppointmentStatus = Field(default=AppointmentStatus.AVAILABLE, alias="appointmentStatus")

    model_config = {
        "populate_by_name": True,
        "frozen": True
    }

    @model_validator(mode="after")
    def _check_invariants(self) -> "Slot":
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        if self.end_time.date() != self.start_time.date():
            raise ValueError("a slot must start and end on the same day")
        assigned = self.client_id is not None, self.service_id is not None
        if self.status in ASSIGNED_STATUSES and not all(assigned):
            raise ValueError(f"{self.status.value} slot requires clientId and serviceId")
        if self.status not in ASSIGNED_STATUSES and any(assigned):
            raise ValueError(f"{self.status.value} slot cannot carry clientId or serviceId")
        return self

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start_time, end=self.end_time)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class BulkGenerationRequest(BaseModel):
    """Compact working-day description expanded into slots by the generator."""
    specialist_id: int = Field(alias="specialistId")
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")  # inclusive
    day_start_time: time = Field(alias="startTime")
    day_end_time: time = Field(alias="endTime")
    break_start_time: time | None = Field(default=None, alias="breakStartTime")
    break_end_time: time | None = Field(default=None, alias="breakEndTime")
    slot_duration_minutes: int = Field(alias="appointmentDuration")

    model_config = {
        "populate_by_name": True
    }

    @classmethod
    def from_payload(cls, data: dict) -> "BulkGenerationRequest":
        """Validate caller-supplied data, raising the booking ValidationError
        instead of pydantic's so callers only have to catch BookingError."""
        try:
            return cls.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid bulk generation request: {e}") from e

    @field_validator("slot_duration_minutes")
    @classmethod
    def _positive_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("appointmentDuration must be a positive number of minutes")
        return value

    @model_validator(mode="after")
    def _check_break(self) -> "BulkGenerationRequest":
        if (self.break_start_time is None) != (self.break_end_time is None):
            raise ValueError("breakStartTime and breakEndTime must be given together")
        if self.break_start_time is not None and self.break_end_time < self.break_start_time:
            raise ValueError("breakEndTime must not be before breakStartTime")
        return self


class BatchMode(str, Enum):
    BEST_EFFORT = "best_effort"
    ALL_OR_NOTHING = "all_or_nothing"


class BatchFailure(BaseModel):
    start: datetime
    end: datetime
    reason: str


class BatchResult(BaseModel):
    created: list[Slot] = []
    failures: list[BatchFailure] = []


# Request bodies for the HTTP surface ------------------------------------------

class SlotCreateRequest(BaseModel):
    specialist_id: int = Field(alias="specialistId")
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")

    model_config = {
        "populate_by_name": True
    }


class BookRequest(BaseModel):
    client_id: int = Field(alias="clientId")
    service_id: int = Field(alias="serviceId")

    model_config = {
        "populate_by_name": True
    }


class RescheduleRequest(BaseModel):
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")

    model_config = {
        "populate_by_name": True
    }
