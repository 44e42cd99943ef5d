"""Escalation request repository."""

import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.persistence.models.escalation_request import (
    TERMINAL_STATUSES,
    EscalationRequest,
    EscalationStatus,
)
from callrelay.persistence.repositories.base import BaseRepository
from callrelay.settings import settings


class EscalationRequestRepository(BaseRepository[EscalationRequest]):
    """Repository for EscalationRequest entities.

    Status changes only go through ``transition``, which moves a request out
    of ``pending`` with a conditional UPDATE. Two handlers racing on the same
    request (relay vs. timeout sweep, or a redelivered webhook) cannot both
    win, and nothing ever leaves a terminal state.

    A relay claim is a lease: once it is older than ``claim_lease_seconds``
    the request counts as unclaimed again, so a relay that died after
    claiming cannot hold the request in ``pending`` forever.
    """

    def __init__(self, session: AsyncSession, claim_lease_seconds: int | None = None):
        """Initialize escalation request repository."""
        super().__init__(EscalationRequest, session)
        if claim_lease_seconds is None:
            claim_lease_seconds = settings.relay_claim_lease_seconds
        self.claim_lease = timedelta(seconds=claim_lease_seconds)

    def _unclaimed(self, now: datetime):
        """Condition matching requests with no live relay claim at ``now``."""
        return or_(
            EscalationRequest.relay_claimed_at.is_(None),
            EscalationRequest.relay_claimed_at <= now - self.claim_lease,
        )

    def has_live_claim(self, request: EscalationRequest, now: datetime) -> bool:
        """Check whether a relay claimed the request within the lease."""
        return request.relay_claimed_at is not None and request.relay_claimed_at > now - self.claim_lease

    async def get_by_id(self, id: str) -> EscalationRequest | None:
        """Get escalation request by ID, bypassing stale identity-map state."""
        stmt = (
            select(EscalationRequest)
            .where(EscalationRequest.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_secondary_key(self, secondary_call_key: str) -> EscalationRequest | None:
        """Get the escalation request placed as the given secondary call."""
        stmt = (
            select(EscalationRequest)
            .where(EscalationRequest.secondary_call_key == secondary_call_key)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_escalation_by_parent_key(self, parent_call_key: str) -> list[EscalationRequest]:
        """List escalation requests raised from a primary call, newest first."""
        stmt = (
            select(EscalationRequest)
            .where(EscalationRequest.parent_call_key == parent_call_key)
            .order_by(EscalationRequest.created_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def upsert_escalation_request(
        self,
        secondary_call_key: str,
        *,
        parent_call_key: str,
        parent_provider: str,
        secondary_provider: str,
        item_requested: str,
        expires_at: datetime,
        control_reference: str = "",
        caller_context: str | None = None,
    ) -> EscalationRequest:
        """Create a pending escalation request, or refresh its description.

        A conflicting row keeps its status and control reference; only the
        descriptive columns are updated.
        """
        now = datetime.utcnow()
        stmt = self._insert().values(
            id=str(uuid.uuid4()),
            parent_call_key=parent_call_key,
            parent_provider=parent_provider,
            control_reference=control_reference or "",
            secondary_call_key=secondary_call_key,
            secondary_provider=secondary_provider,
            item_requested=item_requested,
            caller_context=caller_context,
            status=EscalationStatus.PENDING.value,
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[EscalationRequest.secondary_call_key],
            set_={
                "item_requested": stmt.excluded.item_requested,
                "caller_context": stmt.excluded.caller_context,
                "updated_at": now,
            },
        )
        await self.session.execute(stmt)
        await self.session.commit()

        return await self.find_by_secondary_key(secondary_call_key)

    async def list_expired_pending(self, now: datetime, limit: int = 100) -> list[EscalationRequest]:
        """List pending requests past their deadline with no live relay claim."""
        stmt = (
            select(EscalationRequest)
            .where(
                EscalationRequest.status == EscalationStatus.PENDING.value,
                self._unclaimed(now),
                EscalationRequest.expires_at <= now,
            )
            .order_by(EscalationRequest.expires_at)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def claim_for_relay(self, id: str) -> bool:
        """Claim a pending request for relaying.

        A stale claim left by a relay that never finished can be taken over.

        Returns:
            True if this caller won the claim
        """
        now = datetime.utcnow()
        stmt = (
            update(EscalationRequest)
            .where(
                EscalationRequest.id == id,
                EscalationRequest.status == EscalationStatus.PENDING.value,
                self._unclaimed(now),
            )
            .values(relay_claimed_at=now, updated_at=now)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    async def transition(
        self,
        id: str,
        to_status: EscalationStatus,
        unclaimed_only: bool = False,
        now: datetime | None = None,
        **fields: Any,
    ) -> bool:
        """Move a pending request into a terminal status.

        Args:
            id: Escalation request ID
            to_status: Target status (resolved, failed or timedOut)
            unclaimed_only: Only move the request if no relay holds a live claim
            now: Time the claim lease is measured against (naive UTC)
            **fields: Extra columns to set with the transition

        Returns:
            True if the request was pending and has moved
        """
        target = EscalationStatus(to_status).value
        if target not in TERMINAL_STATUSES:
            raise ValueError(f"Illegal escalation transition: pending -> {target}")

        conditions = [
            EscalationRequest.id == id,
            EscalationRequest.status == EscalationStatus.PENDING.value,
        ]
        if unclaimed_only:
            conditions.append(self._unclaimed(now or datetime.utcnow()))

        stmt = (
            update(EscalationRequest)
            .where(*conditions)
            .values(status=target, updated_at=datetime.utcnow(), **fields)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1
