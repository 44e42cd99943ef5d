"""Canonical session store: applies normalized call operations."""

import logging
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.domain.operations import (
    AppendTranscript,
    AttachRecording,
    CallOperation,
    FinalizeCallRecord,
    UpsertCallRecord,
)
from callrelay.domain.services.duration import compute_duration, to_utc_naive
from callrelay.persistence.repositories.call_record_repository import CallRecordRepository
from callrelay.persistence.repositories.transcript_repository import TranscriptRepository

logger = logging.getLogger(__name__)


class SessionStore:
    """Writes canonical operations through the call and transcript repositories."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize session store.

        Args:
            session: Database session
        """
        self.session = session
        self.call_repo = CallRecordRepository(session)
        self.transcript_repo = TranscriptRepository(session)

    async def apply(self, operations: Iterable[CallOperation]) -> None:
        """Apply operations in order.

        Args:
            operations: Operations produced by a webhook normalizer
        """
        for operation in operations:
            if isinstance(operation, UpsertCallRecord):
                await self._upsert(operation)
            elif isinstance(operation, AppendTranscript):
                await self._append(operation)
            elif isinstance(operation, FinalizeCallRecord):
                await self._finalize(operation)
            elif isinstance(operation, AttachRecording):
                await self.call_repo.upsert_call_record(
                    operation.conversation_key,
                    recording_url=operation.recording_url,
                )
            else:
                raise TypeError(f"Unsupported call operation: {type(operation).__name__}")

    async def _upsert(self, op: UpsertCallRecord) -> None:
        await self.call_repo.upsert_call_record(
            op.conversation_key,
            provider=op.provider,
            direction=op.direction,
            counterparty_number=op.counterparty_number,
            topic=op.topic,
            started_at=to_utc_naive(op.started_at),
            status=op.status,
        )

    async def _append(self, op: AppendTranscript) -> None:
        if not op.text or not op.text.strip():
            return
        await self.transcript_repo.append_or_create(
            op.conversation_key,
            op.text,
            op.fragment_id,
            occurred_at=to_utc_naive(op.occurred_at),
            caller_info=op.caller_info,
        )

    async def _finalize(self, op: FinalizeCallRecord) -> None:
        message_times = op.message_times
        if not message_times:
            # Telnyx hangups carry no message list; use the stored fragment span
            transcript = await self.transcript_repo.get_by_conversation_key(op.conversation_key)
            if transcript and transcript.first_fragment_at and transcript.last_fragment_at:
                message_times = (transcript.first_fragment_at, transcript.last_fragment_at)

        duration = compute_duration(
            started_at=op.started_at,
            ended_at=op.ended_at,
            reported_seconds=op.reported_seconds,
            message_times=message_times,
        )
        if duration.needs_review:
            logger.warning(
                f"No timestamps to derive duration for call {op.conversation_key}, flagging for review",
                extra={"conversation_key": op.conversation_key, "provider": op.provider},
            )

        await self.call_repo.upsert_call_record(
            op.conversation_key,
            provider=op.provider,
            direction=op.direction,
            counterparty_number=op.counterparty_number,
            started_at=to_utc_naive(op.started_at),
            status="ended",
            ended_at=to_utc_naive(op.ended_at),
            duration_seconds=duration.seconds,
            duration_minutes=duration.minutes,
            needs_review=duration.needs_review,
            summary=op.summary,
        )
        logger.info(
            f"Finalized call {op.conversation_key}: {duration.seconds:.1f}s ({duration.source})",
            extra={
                "conversation_key": op.conversation_key,
                "duration_seconds": duration.seconds,
                "duration_source": duration.source,
            },
        )
