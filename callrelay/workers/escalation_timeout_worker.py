"""Escalation timeout worker: times out escalations nobody answered."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from callrelay.api.deps import get_escalation_service
from callrelay.api.schemas.escalation import SweepResponse
from callrelay.domain.services.escalation_service import EscalationService
from callrelay.persistence.database import STORE_UNAVAILABLE_ERRORS

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/escalations/sweep", response_model=SweepResponse)
async def sweep_expired_escalations(
    service: Annotated[EscalationService, Depends(get_escalation_service)],
) -> SweepResponse:
    """Time out pending escalations past their deadline.

    Called on a schedule (Cloud Scheduler). Running it twice is harmless:
    a request already moved out of pending is skipped.
    """
    try:
        timed_out = await service.expire_stale()
    except STORE_UNAVAILABLE_ERRORS as e:
        logger.error(f"Database unavailable for escalation sweep: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Escalation store unavailable",
        )

    if timed_out:
        logger.info(f"Timed out {timed_out} escalations", extra={"timed_out": timed_out})
    return SweepResponse(timed_out=timed_out)
