import logging
from datetime import datetime
from typing import Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from . import config
from .bulk import bulk_create
from .client import AppointmentApiStore
from .errors import BookingError, ConflictError, InvalidStateError, NotFoundError, ValidationError
from .models import (
    AppointmentStatus,
    BatchMode,
    BatchResult,
    BookRequest,
    BulkGenerationRequest,
    RescheduleRequest,
    Slot,
    SlotCreateRequest,
)
from .repository import SlotRepository
from .state_machine import Book, CancelBooking, Complete

config.setup_logging()
logger = logging.getLogger(__name__)

# HTTPBearer scheme so Swagger-UI can attach the Authorization header globally
auth_scheme = HTTPBearer(auto_error=False)

app = FastAPI(title="Appointment Slot Service")

_repository: Optional[SlotRepository] = None


def get_repository() -> SlotRepository:
    """Process-wide repository backed by the remote appointments API."""
    global _repository
    if _repository is None:
        _repository = SlotRepository(AppointmentApiStore())
    return _repository


def verify_key(credentials: HTTPAuthorizationCredentials = Depends(auth_scheme)):
    """Validate Bearer token provided via Authorization header"""
    if not config.BOOKING_SERVICE_KEY:
        return
    if credentials is None or credentials.scheme.lower() != "bearer" or credentials.credentials != config.BOOKING_SERVICE_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


_ERROR_STATUS = [
    (ValidationError, 422, "validation_error"),
    (NotFoundError, 404, "not_found"),
    (ConflictError, 409, "conflict"),
    (InvalidStateError, 409, "invalid_state"),
]


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    for error_type, status_code, kind in _ERROR_STATUS:
        if isinstance(exc, error_type):
            break
    else:
        status_code, kind = 400, "booking_error"
    logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    content = {"detail": str(exc), "type": kind}
    if exc.failures:
        content["failures"] = [f.model_dump(mode="json") for f in exc.failures]
    return JSONResponse(status_code=status_code, content=content)


# Slot creation -------------------------------------------------------------

@app.post("/appointments", dependencies=[Depends(verify_key)], response_model=Slot, status_code=201)
async def create_slot(req: SlotCreateRequest, repo: SlotRepository = Depends(get_repository)):
    """Create a single AVAILABLE slot."""
    return await repo.insert(req.specialist_id, req.start_time, req.end_time)


@app.post("/appointments/bulk", dependencies=[Depends(verify_key)], response_model=BatchResult)
async def create_slots_bulk(
    req: BulkGenerationRequest,
    mode: Optional[BatchMode] = Query(None, description="best_effort or all_or_nothing"),
    repo: SlotRepository = Depends(get_repository),
):
    """Generate slots for a specialist's working days and insert them."""
    return await bulk_create(repo, req, mode=mode)


# Read-only endpoints

@app.get("/appointments", dependencies=[Depends(verify_key)], response_model=list[Slot])
async def list_slots(
    specialist_id: int = Query(..., alias="specialistId"),
    start: Optional[datetime] = Query(None, description="Only slots ending after this time"),
    end: Optional[datetime] = Query(None, description="Only slots starting before this time"),
    status: Optional[AppointmentStatus] = Query(None),
    repo: SlotRepository = Depends(get_repository),
):
    return await repo.find_by_specialist(specialist_id, start=start, end=end, status=status)


@app.get("/appointments/free", dependencies=[Depends(verify_key)], response_model=list[Slot])
async def list_free_slots(
    specialist_id: int = Query(..., alias="specialistId"),
    repo: SlotRepository = Depends(get_repository),
):
    """Upcoming AVAILABLE slots of a specialist."""
    return await repo.find_free(specialist_id)


@app.get("/appointments/booked", dependencies=[Depends(verify_key)], response_model=list[Slot])
async def list_booked_slots(
    client_id: int = Query(..., alias="clientId"),
    repo: SlotRepository = Depends(get_repository),
):
    return await repo.find_by_client(client_id)


@app.get("/appointments/{slot_id}", dependencies=[Depends(verify_key)], response_model=Slot)
async def get_slot(slot_id: int, repo: SlotRepository = Depends(get_repository)):
    return await repo.find_by_id(slot_id)


# Lifecycle -----------------------------------------------------------------

@app.put("/appointments/{slot_id}/book", dependencies=[Depends(verify_key)], response_model=Slot)
async def book_slot(slot_id: int, req: BookRequest, repo: SlotRepository = Depends(get_repository)):
    return await repo.apply_transition(slot_id, Book(client_id=req.client_id, service_id=req.service_id))


@app.put("/appointments/{slot_id}/cancel", dependencies=[Depends(verify_key)], response_model=Slot)
async def cancel_booking(slot_id: int, repo: SlotRepository = Depends(get_repository)):
    """Cancel a booking; the slot becomes AVAILABLE again."""
    return await repo.apply_transition(slot_id, CancelBooking())


@app.put("/appointments/{slot_id}/complete", dependencies=[Depends(verify_key)], response_model=Slot)
async def complete_slot(slot_id: int, repo: SlotRepository = Depends(get_repository)):
    return await repo.apply_transition(slot_id, Complete())


@app.put("/appointments/{slot_id}", dependencies=[Depends(verify_key)], response_model=Slot)
async def reschedule_slot(
    slot_id: int,
    req: RescheduleRequest = Body(...),
    repo: SlotRepository = Depends(get_repository),
):
    return await repo.reschedule(slot_id, req.start_time, req.end_time)


@app.delete("/appointments/{slot_id}", dependencies=[Depends(verify_key)], status_code=204)
async def delete_slot(slot_id: int, repo: SlotRepository = Depends(get_repository)):
    """Delete an AVAILABLE slot. Booked slots must be cancelled first."""
    await repo.remove(slot_id)
    return None
