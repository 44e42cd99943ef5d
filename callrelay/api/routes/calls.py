"""Calls API endpoints for operators."""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.persistence.database import get_db
from callrelay.persistence.models.call_record import CallRecord
from callrelay.persistence.repositories.call_record_repository import CallRecordRepository
from callrelay.persistence.repositories.transcript_repository import TranscriptRepository

logger = logging.getLogger(__name__)

router = APIRouter()


# Response models
class TranscriptResponse(BaseModel):
    """Transcript response model."""
    model_config = ConfigDict(from_attributes=True)

    transcript_text: str
    caller_info: str | None = None
    sales_flagged: bool
    first_fragment_at: datetime | None = None
    last_fragment_at: datetime | None = None
    updated_at: datetime


class CallRecordResponse(BaseModel):
    """Call record response model."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_key: str
    provider: str | None = None
    direction: str | None = None
    counterparty_number: str | None = None
    topic: str | None = None
    status: str
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_seconds: float
    duration_minutes: float
    needs_review: bool
    recording_url: str | None = None
    summary: str | None = None
    created_at: datetime
    updated_at: datetime


class CallRecordDetailResponse(CallRecordResponse):
    """Call record with its transcript."""
    transcript: TranscriptResponse | None = None


class CallListResponse(BaseModel):
    """Paginated call list response."""
    calls: list[CallRecordResponse]
    total: int
    page: int
    page_size: int
    has_more: bool


@router.get("", response_model=CallListResponse)
async def list_calls(
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> CallListResponse:
    """List call records, most recent first."""
    total = (await db.execute(select(func.count()).select_from(CallRecord))).scalar_one()

    repo = CallRecordRepository(db)
    calls = await repo.list_recent(skip=(page - 1) * page_size, limit=page_size)

    return CallListResponse(
        calls=[CallRecordResponse.model_validate(call) for call in calls],
        total=total,
        page=page,
        page_size=page_size,
        has_more=page * page_size < total,
    )


@router.get("/{conversation_key}", response_model=CallRecordDetailResponse)
async def get_call(
    conversation_key: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CallRecordDetailResponse:
    """Get a call record and its transcript."""
    call = await CallRecordRepository(db).get_by_conversation_key(conversation_key)
    if not call:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Call not found",
        )

    transcript = await TranscriptRepository(db).get_by_conversation_key(conversation_key)
    return CallRecordDetailResponse(
        **CallRecordResponse.model_validate(call).model_dump(),
        transcript=TranscriptResponse.model_validate(transcript) if transcript else None,
    )


@router.delete("/{conversation_key}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_call(
    conversation_key: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Delete a call record. Its transcript is kept for audit."""
    deleted = await CallRecordRepository(db).delete_by_conversation_key(conversation_key)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Call not found",
        )
    logger.info(f"Operator deleted call {conversation_key}", extra={"conversation_key": conversation_key})
