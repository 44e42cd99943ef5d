"""Transcript repository."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.core.sales_detector import is_sales_flagged
from callrelay.persistence.models.transcript import Transcript
from callrelay.persistence.repositories.base import BaseRepository


class TranscriptRepository(BaseRepository[Transcript]):
    """Repository for Transcript entities."""

    def __init__(self, session: AsyncSession):
        """Initialize transcript repository."""
        super().__init__(Transcript, session)

    async def get_by_conversation_key(self, conversation_key: str) -> Transcript | None:
        """Get transcript by canonical conversation key."""
        stmt = (
            select(Transcript)
            .where(Transcript.conversation_key == conversation_key)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def append_or_create(
        self,
        conversation_key: str,
        text: str,
        fragment_id: str,
        occurred_at: datetime | None = None,
        caller_info: str | None = None,
    ) -> Transcript:
        """Append a fragment to a call's transcript, creating it if needed.

        The row is created with ON CONFLICT DO NOTHING, then re-read under
        SELECT ... FOR UPDATE so the concatenation always builds on the latest
        committed text. A fragment whose id was already applied is skipped.

        Args:
            conversation_key: Canonical conversation key
            text: Fragment text
            fragment_id: Stable digest identifying this fragment
            occurred_at: When the fragment was spoken/delivered (naive UTC)
            caller_info: Caller description for new transcripts

        Returns:
            The stored Transcript
        """
        now = datetime.utcnow()
        ensure_row = self._insert().values(
            conversation_key=conversation_key,
            transcript_text="",
            caller_info=caller_info,
            sales_flagged=False,
            fragment_ids=[],
            created_at=now,
            updated_at=now,
        ).on_conflict_do_nothing(index_elements=[Transcript.conversation_key])
        await self.session.execute(ensure_row)

        stmt = (
            select(Transcript)
            .where(Transcript.conversation_key == conversation_key)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        transcript = result.scalar_one()

        applied = list(transcript.fragment_ids or [])
        if fragment_id in applied:
            await self.session.commit()
            return transcript

        existing_text = transcript.transcript_text or ""
        transcript.transcript_text = f"{existing_text}\n{text}" if existing_text else text
        transcript.fragment_ids = applied + [fragment_id]

        if caller_info and not transcript.caller_info:
            transcript.caller_info = caller_info

        if occurred_at is not None:
            if transcript.first_fragment_at is None or occurred_at < transcript.first_fragment_at:
                transcript.first_fragment_at = occurred_at
            if transcript.last_fragment_at is None or occurred_at > transcript.last_fragment_at:
                transcript.last_fragment_at = occurred_at

        # Text only grows, so the flag only ever turns on
        transcript.sales_flagged = bool(transcript.sales_flagged) or is_sales_flagged(transcript.transcript_text)
        transcript.updated_at = now

        await self.session.commit()
        return transcript
