"""Call event service: provider webhook -> canonical store -> relay."""

import logging
from typing import Any, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.domain.operations import CallOperation, FinalizeCallRecord
from callrelay.domain.services.relay_service import RelayService
from callrelay.domain.services.session_store import SessionStore
from callrelay.domain.services.telnyx_normalizer import normalize_telnyx_event
from callrelay.domain.services.vapi_normalizer import normalize_vapi_event
from callrelay.infrastructure.telephony.factory import TelephonyProviderFactory

logger = logging.getLogger(__name__)

Normalizer = Callable[[dict[str, Any]], list[CallOperation]]

NORMALIZERS: dict[str, Normalizer] = {
    "vapi": normalize_vapi_event,
    "telnyx": normalize_telnyx_event,
}


class CallEventService:
    """Applies provider call events and triggers escalation relays."""

    def __init__(
        self,
        session: AsyncSession,
        provider_factory: TelephonyProviderFactory | None = None,
    ) -> None:
        self.session = session
        self.store = SessionStore(session)
        self.relay_service = RelayService(session, provider_factory)

    async def handle_event(self, provider: str, body: dict[str, Any]) -> list[CallOperation]:
        """Process one webhook delivery.

        Args:
            provider: Provider that sent the webhook ("vapi" or "telnyx")
            body: Raw webhook JSON body

        Returns:
            Operations that were applied
        """
        normalizer = NORMALIZERS.get(provider)
        if normalizer is None:
            raise ValueError(f"Unknown call event provider: {provider}")

        operations = normalizer(body)
        if not operations:
            return []

        await self.store.apply(operations)

        for operation in operations:
            if isinstance(operation, FinalizeCallRecord):
                await self.relay_service.handle_call_ended(
                    operation.conversation_key,
                    summary=operation.summary,
                )

        logger.info(
            f"Applied {len(operations)} {provider} operations",
            extra={"provider": provider, "conversation_key": operations[0].conversation_key},
        )
        return operations
