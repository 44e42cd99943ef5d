"""Call record repository."""

from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.persistence.models.call_record import CallRecord
from callrelay.persistence.repositories.base import BaseRepository

# First writer wins: a record pre-created by the escalation orchestrator keeps
# its topic when the provider's own start event shows up later.
DESCRIPTIVE_FIELDS = frozenset({
    "provider",
    "direction",
    "counterparty_number",
    "topic",
    "started_at",
})

LIFECYCLE_FIELDS = frozenset({
    "status",
    "ended_at",
    "duration_seconds",
    "duration_minutes",
    "needs_review",
    "recording_url",
    "summary",
})


class CallRecordRepository(BaseRepository[CallRecord]):
    """Repository for CallRecord entities."""

    def __init__(self, session: AsyncSession):
        """Initialize call record repository."""
        super().__init__(CallRecord, session)

    async def get_by_conversation_key(self, conversation_key: str) -> CallRecord | None:
        """Get call record by canonical conversation key.

        Args:
            conversation_key: Canonical conversation key

        Returns:
            CallRecord entity or None if not found
        """
        stmt = (
            select(CallRecord)
            .where(CallRecord.conversation_key == conversation_key)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_call_record(self, conversation_key: str, **fields: Any) -> CallRecord:
        """Insert a call record or merge fields into the existing one.

        Fields passed as None are left untouched. Status never moves
        backwards: an ended call stays ended, and a late "initiated" event
        does not reset a call that is already in progress.

        Args:
            conversation_key: Canonical conversation key
            **fields: Column values to write

        Returns:
            The stored CallRecord
        """
        unknown = set(fields) - DESCRIPTIVE_FIELDS - LIFECYCLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown call record fields: {sorted(unknown)}")

        values = {key: value for key, value in fields.items() if value is not None}
        now = datetime.utcnow()

        stmt = self._insert().values(
            conversation_key=conversation_key,
            created_at=now,
            updated_at=now,
            **values,
        )

        set_: dict[str, Any] = {"updated_at": now}
        for name in values:
            column = getattr(CallRecord, name)
            if name in DESCRIPTIVE_FIELDS:
                set_[name] = func.coalesce(column, stmt.excluded[name])
            elif name == "status":
                set_[name] = case(
                    (column == "ended", column),
                    (stmt.excluded.status == "initiated", column),
                    else_=stmt.excluded.status,
                )
            else:
                set_[name] = stmt.excluded[name]

        stmt = stmt.on_conflict_do_update(
            index_elements=[CallRecord.conversation_key],
            set_=set_,
        )
        await self.session.execute(stmt)
        await self.session.commit()

        return await self.get_by_conversation_key(conversation_key)

    async def list_recent(self, skip: int = 0, limit: int = 100) -> list[CallRecord]:
        """List call records, most recent first."""
        return await self.list(skip=skip, limit=limit)

    async def delete_by_conversation_key(self, conversation_key: str) -> bool:
        """Delete a call record. Only operators remove call history."""
        record = await self.get_by_conversation_key(conversation_key)
        if record is None:
            return False
        await self.session.delete(record)
        await self.session.commit()
        return True
