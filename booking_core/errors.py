"""Error kinds raised by the booking core.

All of them are raised synchronously to the immediate caller; nothing here
retries or recovers on its own.
"""
from __future__ import annotations


class BookingError(Exception):
    """Base class for every rejection produced by the booking core.

    ``failures`` lists the rejected candidates of an all-or-nothing batch.
    """

    def __init__(self, message: str, failures: list | None = None):
        super().__init__(message)
        self.failures = failures or []


class ValidationError(BookingError, ValueError):
    """Malformed input: non-positive duration, inverted break, bad interval."""


class ConflictError(BookingError):
    """Overlap with an active slot, or an attempt to book a taken slot."""


class NotFoundError(BookingError):
    def __init__(self, slot_id: int):
        super().__init__(f"Appointment slot {slot_id} not found")
        self.slot_id = slot_id


class InvalidStateError(BookingError):
    """Operation not permitted while the slot is in its current state."""


class InvalidTransitionError(InvalidStateError):
    def __init__(self, status: str, event: str):
        super().__init__(f"Cannot apply '{event}' to a slot in state {status}")
        self.status = status
        self.event = event
