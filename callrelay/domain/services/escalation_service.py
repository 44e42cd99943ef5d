"""Escalation service: ask a human while the customer holds."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.core.identity import reconcile
from callrelay.core.phone import normalize_phone_e164
from callrelay.infrastructure.telephony.base import TelephonyError
from callrelay.infrastructure.telephony.factory import TelephonyProviderFactory
from callrelay.persistence.models.escalation_request import EscalationRequest, EscalationStatus
from callrelay.persistence.repositories.business_profile_repository import BusinessProfileRepository
from callrelay.persistence.repositories.call_record_repository import CallRecordRepository
from callrelay.persistence.repositories.escalation_request_repository import EscalationRequestRepository
from callrelay.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

CLARIFY_MESSAGE = "Could you tell me exactly which item the customer is asking about?"

NO_HUMAN_MESSAGE = (
    "I'm sorry, I don't have a way to check with the team right now. The item isn't in our "
    "current inventory, but you can call back later or leave your number and we'll get back to you."
)

PLACEMENT_FAILED_MESSAGE = (
    "I tried to reach the team but couldn't connect right now. The item isn't in our current "
    "inventory, but I'd suggest trying again later."
)

NO_ESCALATION_MESSAGE = "I haven't asked the team about anything on this call yet."


def hold_message(item_requested: str) -> str:
    return (
        f'I\'m checking with the team about "{item_requested}" right now. '
        "Please ask the customer to stay on the line for a moment."
    )


def notified_message(item_requested: str) -> str:
    """Used when the answer cannot be relayed into this call."""
    return (
        f'I\'ve reached out to the team to check on "{item_requested}". They\'ve been notified '
        "and will look into it. In the meantime, is there anything else I can help you with?"
    )


def still_checking_message(item_requested: str) -> str:
    return f'I\'m still waiting to hear back from the team about "{item_requested}". Thanks for your patience.'


def answer_message(item_requested: str, answer: str) -> str:
    return f'The team says about "{item_requested}": {answer}'


def give_up_message(item_requested: str) -> str:
    return (
        f'I wasn\'t able to reach the team about "{item_requested}" in time. '
        "They've been notified and will follow up with you."
    )


def timeout_relay_message(item_requested: str) -> str:
    return (
        f'Thanks for holding. I couldn\'t reach the team about "{item_requested}" right now. '
        "They've been notified and will follow up with you."
    )


@dataclass
class EscalationTrigger:
    """Tool call from the assistant asking to escalate an item to a human."""

    item_requested: str
    parent_provider: str
    parent_call_id: str | None
    control_reference: str = ""
    caller_context: str | None = None


@dataclass
class EscalationOutcome:
    """Result of an escalation tool call, spoken back by the assistant."""

    message: str
    status: str  # pending, degraded, unavailable, failed, invalid, resolved, timedOut, none
    escalation_id: str | None = None
    secondary_call_key: str | None = None


class EscalationService:
    """Runs the ask-the-human escalation flow."""

    def __init__(
        self,
        session: AsyncSession,
        provider_factory: TelephonyProviderFactory | None = None,
        config: Settings | None = None,
    ) -> None:
        """Initialize escalation service.

        Args:
            session: Database session
            provider_factory: Source of outbound call and control providers
            config: Settings (defaults to app settings)
        """
        self.session = session
        self.config = config or default_settings
        self.provider_factory = provider_factory or TelephonyProviderFactory(self.config)
        self.escalation_repo = EscalationRequestRepository(session, self.config.relay_claim_lease_seconds)
        self.call_repo = CallRecordRepository(session)
        self.profile_repo = BusinessProfileRepository(session)

    async def _get_contact(self) -> tuple[str | None, str]:
        """Get the human's phone number and the business name."""
        profile = await self.profile_repo.get_current()
        owner_phone = (profile.owner_phone if profile else None) or self.config.owner_phone
        business_name = (profile.business_name if profile else None) or self.config.business_name
        return normalize_phone_e164(owner_phone), business_name

    async def escalate(self, trigger: EscalationTrigger) -> EscalationOutcome:
        """Place a call to the human and register a pending escalation.

        Returns as soon as the secondary call is placed; the answer arrives
        later through the relay when that call ends.

        Args:
            trigger: The assistant's escalation request

        Returns:
            EscalationOutcome with the message the assistant should say
        """
        item_requested = (trigger.item_requested or "").strip()
        if not item_requested:
            return EscalationOutcome(message=CLARIFY_MESSAGE, status="invalid")

        try:
            parent_call_key = reconcile(trigger.parent_provider, trigger.parent_call_id or "")
        except ValueError as e:
            logger.warning(f"Escalation without a primary call id: {e}")
            return EscalationOutcome(message=PLACEMENT_FAILED_MESSAGE, status="invalid")

        owner_phone, business_name = await self._get_contact()
        if not owner_phone:
            logger.warning(
                "Escalation requested but no owner phone is configured",
                extra={"parent_call_key": parent_call_key},
            )
            return EscalationOutcome(message=NO_HUMAN_MESSAGE, status="unavailable")

        provider = self.provider_factory.get_outbound_provider()
        if provider is None:
            return EscalationOutcome(message=PLACEMENT_FAILED_MESSAGE, status="failed")

        context_line = f" They mentioned: {trigger.caller_context}." if trigger.caller_context else ""
        first_message = (
            f'Hi, this is the AI assistant for {business_name}. I have a customer on the line asking about '
            f'"{item_requested}".{context_line} Do you have this available or can you help with this request?'
        )
        system_prompt = (
            f"You are an AI assistant making a quick inquiry call on behalf of {business_name}. "
            f'A customer is asking about "{item_requested}". Your job is to:\n'
            "1. Politely explain that a customer is asking about this item\n"
            "2. Ask if it's available or if they can help\n"
            "3. Listen to the answer carefully\n"
            "4. Thank them and end the call quickly\n"
            "Keep it brief and professional. This is a quick check, not a long conversation."
        )

        logger.info(
            f"Escalating to human about: {item_requested}",
            extra={"parent_call_key": parent_call_key, "provider": provider.provider_name},
        )
        try:
            result = await provider.place_call(owner_phone, first_message, system_prompt)
        except TelephonyError as e:
            logger.error(
                f"Escalation call failed: {e}",
                extra={"parent_call_key": parent_call_key, "provider": e.provider},
            )
            return EscalationOutcome(message=PLACEMENT_FAILED_MESSAGE, status="failed")

        now = datetime.utcnow()
        secondary_call_key = reconcile(result.provider, result.call_id)
        await self.call_repo.upsert_call_record(
            secondary_call_key,
            provider=result.provider,
            direction="outgoing",
            counterparty_number=owner_phone,
            topic=f'Escalation: Customer asked about "{item_requested}"',
            started_at=now,
            status="initiated",
        )
        request = await self.escalation_repo.upsert_escalation_request(
            secondary_call_key,
            parent_call_key=parent_call_key,
            parent_provider=trigger.parent_provider,
            secondary_provider=result.provider,
            item_requested=item_requested,
            caller_context=trigger.caller_context,
            control_reference=trigger.control_reference or "",
            expires_at=now + timedelta(seconds=self.config.escalation_timeout_seconds),
        )

        if not request.control_reference:
            logger.warning(
                f"Escalation {request.id} has no control reference; answer cannot be relayed live",
                extra={"escalation_id": request.id, "parent_call_key": parent_call_key},
            )
            return EscalationOutcome(
                message=notified_message(item_requested),
                status="degraded",
                escalation_id=request.id,
                secondary_call_key=secondary_call_key,
            )

        logger.info(
            f"Escalation {request.id} pending on call {secondary_call_key}",
            extra={"escalation_id": request.id, "secondary_call_key": secondary_call_key},
        )
        return EscalationOutcome(
            message=hold_message(item_requested),
            status=EscalationStatus.PENDING.value,
            escalation_id=request.id,
            secondary_call_key=secondary_call_key,
        )

    async def check_status(
        self,
        parent_provider: str,
        parent_call_id: str | None,
        now: datetime | None = None,
    ) -> EscalationOutcome:
        """Report on the latest escalation raised from a primary call.

        A pending request past its deadline is timed out here, so an assistant
        polling this tool never waits longer than the configured timeout.

        Args:
            parent_provider: Provider of the primary call
            parent_call_id: Provider's id for the primary call
            now: Current time (naive UTC), for tests

        Returns:
            EscalationOutcome describing the latest request
        """
        try:
            parent_call_key = reconcile(parent_provider, parent_call_id or "")
        except ValueError:
            return EscalationOutcome(message=NO_ESCALATION_MESSAGE, status="none")

        requests = await self.escalation_repo.find_escalation_by_parent_key(parent_call_key)
        if not requests:
            return EscalationOutcome(message=NO_ESCALATION_MESSAGE, status="none")

        request = requests[0]
        now = now or datetime.utcnow()

        if request.resolution:
            return self._outcome(request, answer_message(request.item_requested, request.resolution))

        if request.status == EscalationStatus.PENDING.value:
            if self.escalation_repo.has_live_claim(request, now) or now < request.expires_at:
                return self._outcome(request, still_checking_message(request.item_requested))

            moved = await self.escalation_repo.transition(
                request.id,
                EscalationStatus.TIMED_OUT,
                unclaimed_only=True,
                now=now,
                failure_reason="timeout",
            )
            if not moved:
                # Lost to a relay or the sweep; report whatever won
                request = await self.escalation_repo.get_by_id(request.id)
                if request.resolution:
                    return self._outcome(request, answer_message(request.item_requested, request.resolution))
                if request.status == EscalationStatus.PENDING.value:
                    return self._outcome(request, still_checking_message(request.item_requested))
            else:
                logger.info(
                    f"Escalation {request.id} timed out on status check",
                    extra={"escalation_id": request.id},
                )
                return EscalationOutcome(
                    message=give_up_message(request.item_requested),
                    status=EscalationStatus.TIMED_OUT.value,
                    escalation_id=request.id,
                    secondary_call_key=request.secondary_call_key,
                )

        return self._outcome(request, give_up_message(request.item_requested))

    async def expire_stale(self, now: datetime | None = None) -> int:
        """Time out pending escalations past their deadline.

        Each held customer whose call can still be reached is told the team
        could not be reached. Delivery failures are logged and do not stop
        the sweep.

        Args:
            now: Current time (naive UTC), for tests

        Returns:
            Number of requests moved to timedOut
        """
        now = now or datetime.utcnow()
        expired = await self.escalation_repo.list_expired_pending(now)
        timed_out = 0

        for request in expired:
            moved = await self.escalation_repo.transition(
                request.id,
                EscalationStatus.TIMED_OUT,
                unclaimed_only=True,
                now=now,
                failure_reason="timeout",
            )
            if not moved:
                continue
            timed_out += 1
            logger.info(
                f"Escalation {request.id} timed out",
                extra={"escalation_id": request.id, "parent_call_key": request.parent_call_key},
            )

            if not request.control_reference:
                continue
            channel = self.provider_factory.get_control_channel(request.parent_provider)
            if channel is None:
                continue
            try:
                await channel.say(request.control_reference, timeout_relay_message(request.item_requested))
            except TelephonyError as e:
                logger.warning(
                    f"Could not tell held customer about timeout for escalation {request.id}: {e}",
                    extra={"escalation_id": request.id},
                )

        return timed_out

    def _outcome(self, request: EscalationRequest, message: str) -> EscalationOutcome:
        return EscalationOutcome(
            message=message,
            status=request.status,
            escalation_id=request.id,
            secondary_call_key=request.secondary_call_key,
        )
