"""Appointment lifecycle.

    AVAILABLE --book--> BOOKED --complete--> COMPLETED
    BOOKED --cancel_booking--> AVAILABLE
    AVAILABLE --delete--> (removed)

Cancelling a booking frees the slot again; CANCELLED is never produced here.
"""
from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Union

from pydantic import BaseModel

from .errors import ConflictError, InvalidStateError, InvalidTransitionError
from .models import AppointmentStatus, Slot
from .rules import is_past


class Book(BaseModel):
    name: ClassVar[str] = "book"
    client_id: int
    service_id: int


class CancelBooking(BaseModel):
    name: ClassVar[str] = "cancel_booking"


class Complete(BaseModel):
    name: ClassVar[str] = "complete"


class Delete(BaseModel):
    name: ClassVar[str] = "delete"


SlotEvent = Union[Book, CancelBooking, Complete, Delete]


def _evolve(slot: Slot, **changes) -> Slot:
    # Rebuild instead of model_copy() so the slot invariants are re-validated.
    return Slot(**{**slot.model_dump(), **changes})


def apply_event(slot: Slot, event: SlotEvent, now: datetime) -> Slot | None:
    """Return the slot after ``event``, or None when the slot is to be removed.

    Never mutates ``slot``. Raises ConflictError for a booking attempt on a
    slot that is not AVAILABLE, InvalidStateError for delete on anything but an
    AVAILABLE slot and for time preconditions, InvalidTransitionError otherwise.
    """
    status = slot.status

    if isinstance(event, Book):
        if status != AppointmentStatus.AVAILABLE:
            raise ConflictError(f"Appointment slot {slot.id} is already {status.value}")
        if is_past(slot.interval, now):
            raise InvalidStateError(f"Appointment slot {slot.id} is in the past")
        return _evolve(
            slot,
            status=AppointmentStatus.BOOKED,
            client_id=event.client_id,
            service_id=event.service_id,
        )

    if isinstance(event, CancelBooking):
        if status != AppointmentStatus.BOOKED:
            raise InvalidTransitionError(status.value, event.name)
        return _evolve(slot, status=AppointmentStatus.AVAILABLE, client_id=None, service_id=None)

    if isinstance(event, Complete):
        if status != AppointmentStatus.BOOKED:
            raise InvalidTransitionError(status.value, event.name)
        if not is_past(slot.interval, now):
            raise InvalidStateError(f"Appointment slot {slot.id} has not ended yet")
        return _evolve(slot, status=AppointmentStatus.COMPLETED)

    if isinstance(event, Delete):
        if status != AppointmentStatus.AVAILABLE:
            raise InvalidStateError(
                f"Only AVAILABLE slots can be deleted; slot {slot.id} is {status.value}"
                + (", cancel the booking first" if status == AppointmentStatus.BOOKED else "")
            )
        return None

    raise InvalidTransitionError(status.value, getattr(event, "name", type(event).__name__))
