"""Relay of a human's answer back into the held primary call."""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.infrastructure.telephony.base import TelephonyError
from callrelay.infrastructure.telephony.factory import TelephonyProviderFactory
from callrelay.persistence.models.escalation_request import EscalationRequest, EscalationStatus
from callrelay.persistence.repositories.escalation_request_repository import EscalationRequestRepository
from callrelay.persistence.repositories.transcript_repository import TranscriptRepository

logger = logging.getLogger(__name__)

# Transcript lines spoken by the person who picked up the secondary call
HUMAN_SPEAKER_PREFIXES = ("user:", "human:", "customer:")


@dataclass
class RelayOutcome:
    """What happened to an escalation when its secondary call ended."""

    escalation_id: str
    status: str
    resolution: str | None = None
    failure_reason: str | None = None


def extract_answer(transcript_text: str | None, summary: str | None = None) -> str:
    """Pull the human's answer out of a secondary call.

    Args:
        transcript_text: Accumulated transcript of the secondary call
        summary: Provider-generated summary, if any

    Returns:
        The answer, or an empty string if nothing was captured
    """
    text = (transcript_text or "").strip()
    spoken = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.lower().startswith(HUMAN_SPEAKER_PREFIXES):
            content = stripped.split(":", 1)[1].strip()
            if content:
                spoken.append(content)

    if spoken:
        return " ".join(spoken)
    if summary and summary.strip():
        return summary.strip()
    return text


def build_relay_message(item_requested: str, answer: str) -> str:
    """What the assistant tells the held customer."""
    if answer:
        return f'Thanks for holding! I checked with the team about "{item_requested}". They said: {answer}'
    return (
        f'Thanks for holding. I wasn\'t able to get an answer from the team about "{item_requested}" '
        "right now. They've been notified and will follow up with you."
    )


class RelayService:
    """Completes an escalation when the call to the human ends."""

    def __init__(
        self,
        session: AsyncSession,
        provider_factory: TelephonyProviderFactory | None = None,
    ) -> None:
        """Initialize relay service.

        Args:
            session: Database session
            provider_factory: Source of control channels for live calls
        """
        self.session = session
        self.escalation_repo = EscalationRequestRepository(session)
        self.transcript_repo = TranscriptRepository(session)
        self.provider_factory = provider_factory or TelephonyProviderFactory()

    async def handle_call_ended(
        self,
        conversation_key: str,
        summary: str | None = None,
    ) -> RelayOutcome | None:
        """Relay the answer captured on a finished secondary call.

        Calls that are not secondary calls of a pending escalation are
        ignored, which makes redelivered end-of-call events harmless.

        Args:
            conversation_key: Canonical key of the call that just ended
            summary: Provider summary of that call

        Returns:
            RelayOutcome, or None if nothing was done
        """
        request = await self.escalation_repo.find_by_secondary_key(conversation_key)
        if request is None:
            return None
        if request.status != EscalationStatus.PENDING.value:
            logger.info(
                f"Escalation {request.id} already {request.status}, skipping relay",
                extra={"escalation_id": request.id, "conversation_key": conversation_key},
            )
            return None

        transcript = await self.transcript_repo.get_by_conversation_key(conversation_key)
        answer = extract_answer(transcript.transcript_text if transcript else None, summary)

        if not request.control_reference:
            # Nothing can reach the primary call; keep the answer for follow-up
            return await self._fail(request.id, "no_control_reference", resolution=answer or None)

        if not await self.escalation_repo.claim_for_relay(request.id):
            logger.info(
                f"Escalation {request.id} claimed by another delivery",
                extra={"escalation_id": request.id},
            )
            return None

        escalation_id = request.id
        try:
            return await self._relay_claimed(request, answer)
        except Exception as e:
            logger.error(
                f"Relay for escalation {escalation_id} crashed after claiming: {e}",
                extra={"escalation_id": escalation_id},
                exc_info=True,
            )
            # The session may be mid-transaction after a database error
            await self.session.rollback()
            await self._fail(escalation_id, "relay_error", resolution=answer or None)
            raise

    async def _relay_claimed(self, request: EscalationRequest, answer: str) -> RelayOutcome | None:
        """Speak the answer into the primary call and settle the claimed request."""
        channel = self.provider_factory.get_control_channel(request.parent_provider)
        if channel is None:
            return await self._fail(request.id, "no_control_channel", resolution=answer or None)

        message = build_relay_message(request.item_requested, answer)
        try:
            await channel.say(request.control_reference, message)
        except TelephonyError as e:
            logger.error(
                f"Failed to relay escalation {request.id} to primary call: {e}",
                extra={"escalation_id": request.id, "parent_call_key": request.parent_call_key},
            )
            return await self._fail(request.id, f"relay_failed: {e}", resolution=answer or None)

        if not answer:
            return await self._fail(request.id, "no_answer_captured")

        await self.escalation_repo.transition(
            request.id,
            EscalationStatus.RESOLVED,
            resolution=answer,
            resolved_at=datetime.utcnow(),
        )
        logger.info(
            f"Relayed answer for escalation {request.id}",
            extra={"escalation_id": request.id, "parent_call_key": request.parent_call_key},
        )
        return RelayOutcome(
            escalation_id=request.id,
            status=EscalationStatus.RESOLVED.value,
            resolution=answer,
        )

    async def _fail(
        self,
        escalation_id: str,
        reason: str,
        resolution: str | None = None,
    ) -> RelayOutcome | None:
        moved = await self.escalation_repo.transition(
            escalation_id,
            EscalationStatus.FAILED,
            failure_reason=reason,
            resolution=resolution,
        )
        if not moved:
            return None
        logger.warning(
            f"Escalation {escalation_id} failed: {reason}",
            extra={"escalation_id": escalation_id, "failure_reason": reason},
        )
        return RelayOutcome(
            escalation_id=escalation_id,
            status=EscalationStatus.FAILED.value,
            resolution=resolution,
            failure_reason=reason,
        )
