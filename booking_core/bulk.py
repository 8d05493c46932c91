from __future__ import annotations

import logging

from . import config
from .generator import generate_slots
from .models import BatchMode, BatchResult, BulkGenerationRequest
from .repository import SlotRepository

logger = logging.getLogger(__name__)


async def bulk_create(
    repository: SlotRepository,
    request: BulkGenerationRequest,
    mode: BatchMode | None = None,
) -> BatchResult:
    """Generate the slots described by ``request`` and insert them as AVAILABLE.

    Generation happens outside any lock; each insert goes through the
    repository's locked path. ``mode`` defaults to BULK_INSERT_MODE.
    """
    mode = BatchMode(mode or config.BULK_INSERT_MODE)
    candidates = generate_slots(request)
    result = await repository.insert_batch(request.specialist_id, candidates, mode=mode)
    logger.info(
        f"Bulk creation for specialist {request.specialist_id} "
        f"({request.start_date}..{request.end_date}, {mode.value}): "
        f"{len(result.created)} created, {len(result.failures)} failed"
    )
    return result
