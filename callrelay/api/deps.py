"""FastAPI dependencies for service wiring."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.domain.services.call_event_service import CallEventService
from callrelay.domain.services.escalation_service import EscalationService
from callrelay.infrastructure.telephony.factory import TelephonyProviderFactory
from callrelay.persistence.database import get_db


def get_provider_factory() -> TelephonyProviderFactory:
    """Get the telephony provider factory."""
    return TelephonyProviderFactory()


async def get_call_event_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    provider_factory: Annotated[TelephonyProviderFactory, Depends(get_provider_factory)],
) -> CallEventService:
    """Get call event service bound to the request's session."""
    return CallEventService(db, provider_factory)


async def get_escalation_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    provider_factory: Annotated[TelephonyProviderFactory, Depends(get_provider_factory)],
) -> EscalationService:
    """Get escalation service bound to the request's session."""
    return EscalationService(db, provider_factory)
