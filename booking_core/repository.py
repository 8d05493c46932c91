"""Slot repository: owns the no-overlap and no-double-booking invariants.

Every read -> validate -> write sequence runs while holding the owning
specialist's lock, so two concurrent bookings of one slot cannot both win.
The locks cover one process; across processes the backend is expected to
reject conflicting writes (see AppointmentApiStore).
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from datetime import datetime
from typing import Callable, Iterable, Protocol

from . import config
from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .models import (
    ACTIVE_STATUSES,
    ASSIGNED_STATUSES,
    AppointmentStatus,
    BatchFailure,
    BatchMode,
    BatchResult,
    Interval,
    Slot,
)
from .rules import find_conflicts, is_past, overlaps, validate_duration
from .state_machine import Delete, SlotEvent, apply_event

logger = logging.getLogger(__name__)


class SlotStore(Protocol):
    """Persistence seam. Implementations assign ids and never reuse them."""

    async def add(self, specialist_id: int, start_time: datetime, end_time: datetime) -> Slot: ...

    async def get(self, slot_id: int) -> Slot | None: ...

    async def list_for_specialist(self, specialist_id: int) -> list[Slot]: ...

    async def list_for_client(self, client_id: int) -> list[Slot]: ...

    async def save(self, slot: Slot) -> Slot: ...

    async def delete(self, slot_id: int) -> None: ...


class InMemorySlotStore:
    """Dict-backed store for tests and single-process use."""

    def __init__(self):
        self._slots: dict[int, Slot] = {}
        self._ids = itertools.count(1)

    async def add(self, specialist_id: int, start_time: datetime, end_time: datetime) -> Slot:
        slot = Slot(id=next(self._ids), specialist_id=specialist_id, start_time=start_time, end_time=end_time)
        self._slots[slot.id] = slot
        return slot

    async def get(self, slot_id: int) -> Slot | None:
        return self._slots.get(slot_id)

    async def list_for_specialist(self, specialist_id: int) -> list[Slot]:
        return [s for s in self._slots.values() if s.specialist_id == specialist_id]

    async def list_for_client(self, client_id: int) -> list[Slot]:
        return [s for s in self._slots.values() if s.client_id == client_id]

    async def save(self, slot: Slot) -> Slot:
        if slot.id not in self._slots:
            raise NotFoundError(slot.id)
        self._slots[slot.id] = slot
        return slot

    async def delete(self, slot_id: int) -> None:
        if self._slots.pop(slot_id, None) is None:
            raise NotFoundError(slot_id)


class SlotRepository:
    def __init__(
        self,
        store: SlotStore,
        clock: Callable[[], datetime] = datetime.now,
        allow_past: bool | None = None,
    ):
        self.store = store
        self.clock = clock
        self.allow_past = config.ALLOW_PAST_SLOTS if allow_past is None else allow_past
        self._locks: dict[int, asyncio.Lock] = {}

    def _lock_for(self, specialist_id: int) -> asyncio.Lock:
        # setdefault runs without awaiting, so one lock per specialist is guaranteed.
        # Locks are kept for the repository's lifetime; the specialist directory is small.
        return self._locks.setdefault(specialist_id, asyncio.Lock())

    def _validate_interval(self, start_time: datetime, end_time: datetime) -> Interval:
        if not validate_duration(start_time, end_time):
            raise ValidationError(f"Slot end {end_time} must be after its start {start_time}")
        if start_time.date() != end_time.date():
            raise ValidationError("A slot must start and end on the same day")
        interval = Interval(start=start_time, end=end_time)
        if not self.allow_past and is_past(interval, self.clock()):
            raise ValidationError(f"Slot {start_time}-{end_time} lies in the past")
        return interval

    # Creation ---------------------------------------------------------------

    async def insert(self, specialist_id: int, start_time: datetime, end_time: datetime) -> Slot:
        """Create an AVAILABLE slot, rejecting overlaps with active slots."""
        candidate = self._validate_interval(start_time, end_time)
        async with self._lock_for(specialist_id):
            existing = await self.store.list_for_specialist(specialist_id)
            conflicts = find_conflicts(candidate, existing)
            if conflicts:
                ids = ", ".join(str(s.id) for s in conflicts)
                raise ConflictError(
                    f"Slot {start_time:%Y-%m-%d %H:%M}-{end_time:%H:%M} overlaps slot(s) {ids} "
                    f"of specialist {specialist_id}"
                )
            slot = await self.store.add(specialist_id, start_time, end_time)
        logger.info(f"Created slot {slot.id} for specialist {specialist_id} at {start_time.isoformat()}")
        return slot

    async def insert_batch(
        self,
        specialist_id: int,
        intervals: Iterable[Interval],
        mode: BatchMode = BatchMode.BEST_EFFORT,
    ) -> BatchResult:
        """Insert many candidates.

        BEST_EFFORT sends each candidate through insert() and collects the
        failures. ALL_OR_NOTHING checks the whole batch under a single lock
        hold and writes nothing if any candidate is rejected.
        """
        if mode == BatchMode.ALL_OR_NOTHING:
            return await self._insert_all_or_nothing(specialist_id, list(intervals))

        result = BatchResult()
        for interval in intervals:
            try:
                result.created.append(await self.insert(specialist_id, interval.start, interval.end))
            except (ConflictError, ValidationError) as e:
                logger.warning(f"Skipping slot {interval.start.isoformat()} for specialist {specialist_id}: {e}")
                result.failures.append(BatchFailure(start=interval.start, end=interval.end, reason=str(e)))
        return result

    async def _insert_all_or_nothing(self, specialist_id: int, intervals: list[Interval]) -> BatchResult:
        failures: list[BatchFailure] = []
        candidates: list[Interval] = []
        for interval in intervals:
            try:
                candidates.append(self._validate_interval(interval.start, interval.end))
            except ValidationError as e:
                failures.append(BatchFailure(start=interval.start, end=interval.end, reason=str(e)))
        invalid = len(failures)

        async with self._lock_for(specialist_id):
            existing = await self.store.list_for_specialist(specialist_id)
            accepted: list[Interval] = []
            for candidate in candidates:
                conflicts = find_conflicts(candidate, existing)
                if conflicts or any(overlaps(candidate, other) for other in accepted):
                    reason = f"overlaps slot(s) {', '.join(str(s.id) for s in conflicts) or 'in the same batch'}"
                    failures.append(BatchFailure(start=candidate.start, end=candidate.end, reason=reason))
                else:
                    accepted.append(candidate)
            if failures:
                message = f"Batch rejected: {len(failures)} of {len(intervals)} slots failed"
                # Any overlap makes it a conflict; a batch that is only malformed is a validation error.
                if len(failures) > invalid:
                    raise ConflictError(message, failures=failures)
                raise ValidationError(message, failures=failures)

            created: list[Slot] = []
            try:
                for candidate in accepted:
                    created.append(await self.store.add(specialist_id, candidate.start, candidate.end))
            except Exception:
                logger.exception(f"Batch insert for specialist {specialist_id} failed, rolling back")
                for slot in created:
                    await self.store.delete(slot.id)
                raise
        logger.info(f"Created {len(created)} slots for specialist {specialist_id}")
        return BatchResult(created=created)

    # Queries ----------------------------------------------------------------

    async def find_by_id(self, slot_id: int) -> Slot:
        slot = await self.store.get(slot_id)
        if slot is None:
            raise NotFoundError(slot_id)
        return slot

    async def find_by_specialist(
        self,
        specialist_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[Slot]:
        """Slots of a specialist ordered by start, optionally limited to those
        overlapping [start, end) and/or having ``status``."""
        slots = await self.store.list_for_specialist(specialist_id)
        if start is not None:
            slots = [s for s in slots if s.end_time > start]
        if end is not None:
            slots = [s for s in slots if s.start_time < end]
        if status is not None:
            slots = [s for s in slots if s.status == status]
        return sorted(slots, key=lambda s: s.start_time)

    async def find_free(self, specialist_id: int) -> list[Slot]:
        now = self.clock()
        slots = await self.find_by_specialist(specialist_id, status=AppointmentStatus.AVAILABLE)
        return [s for s in slots if not is_past(s.interval, now)]

    async def find_by_client(self, client_id: int) -> list[Slot]:
        slots = await self.store.list_for_client(client_id)
        return sorted((s for s in slots if s.status in ASSIGNED_STATUSES), key=lambda s: s.start_time)

    # Mutations --------------------------------------------------------------

    async def apply_transition(self, slot_id: int, event: SlotEvent) -> Slot:
        """Validate ``event`` against the current slot and persist the result.

        For an accepted delete the removed slot is returned.
        """
        specialist_id = (await self.find_by_id(slot_id)).specialist_id
        async with self._lock_for(specialist_id):
            current = await self.find_by_id(slot_id)
            updated = apply_event(current, event, self.clock())
            if updated is None:
                await self.store.delete(slot_id)
                logger.info(f"Removed slot {slot_id} of specialist {specialist_id}")
                return current
            saved = await self.store.save(updated)
        logger.info(f"Slot {slot_id}: {current.status.value} -> {saved.status.value} ({event.name})")
        return saved

    async def remove(self, slot_id: int) -> None:
        """Hard-delete an AVAILABLE slot; booked slots must be cancelled first."""
        await self.apply_transition(slot_id, Delete())

    async def reschedule(self, slot_id: int, start_time: datetime, end_time: datetime) -> Slot:
        """Move an AVAILABLE or BOOKED slot to a new interval of the same day."""
        candidate = self._validate_interval(start_time, end_time)
        specialist_id = (await self.find_by_id(slot_id)).specialist_id
        async with self._lock_for(specialist_id):
            current = await self.find_by_id(slot_id)
            if current.status not in ACTIVE_STATUSES:
                raise InvalidStateError(f"Cannot reschedule slot {slot_id} in state {current.status.value}")
            existing = await self.store.list_for_specialist(specialist_id)
            conflicts = find_conflicts(candidate, existing, ignore_id=slot_id)
            if conflicts:
                ids = ", ".join(str(s.id) for s in conflicts)
                raise ConflictError(f"Rescheduled slot {slot_id} would overlap slot(s) {ids}")
            saved = await self.store.save(
                Slot(**{**current.model_dump(), "start_time": start_time, "end_time": end_time})
            )
        logger.info(f"Rescheduled slot {slot_id} to {start_time.isoformat()}")
        return saved
