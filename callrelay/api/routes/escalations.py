"""Escalation inspection endpoints for operators."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.api.schemas.escalation import EscalationListResponse, EscalationResponse
from callrelay.persistence.database import get_db
from callrelay.persistence.models.escalation_request import EscalationRequest, EscalationStatus
from callrelay.persistence.repositories.escalation_request_repository import EscalationRequestRepository

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(request: EscalationRequest) -> EscalationResponse:
    # The control reference is a live-call capability; only expose whether it exists
    return EscalationResponse(
        id=request.id,
        parent_call_key=request.parent_call_key,
        parent_provider=request.parent_provider,
        secondary_call_key=request.secondary_call_key,
        secondary_provider=request.secondary_provider,
        item_requested=request.item_requested,
        caller_context=request.caller_context,
        status=request.status,
        resolution=request.resolution,
        failure_reason=request.failure_reason,
        has_control_reference=bool(request.control_reference),
        relay_claimed_at=request.relay_claimed_at,
        expires_at=request.expires_at,
        resolved_at=request.resolved_at,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


@router.get("", response_model=EscalationListResponse)
async def list_escalations(
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: EscalationStatus | None = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> EscalationListResponse:
    """List escalation requests, newest first, optionally by status."""
    repo = EscalationRequestRepository(db)
    requests = await repo.list(
        skip=skip,
        limit=limit,
        status=status_filter.value if status_filter else None,
    )
    return EscalationListResponse(
        escalations=[_to_response(r) for r in requests],
        total=len(requests),
    )


@router.get("/{escalation_id}", response_model=EscalationResponse)
async def get_escalation(
    escalation_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EscalationResponse:
    """Get one escalation request."""
    request = await EscalationRequestRepository(db).get_by_id(escalation_id)
    if not request:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Escalation not found",
        )
    return _to_response(request)
