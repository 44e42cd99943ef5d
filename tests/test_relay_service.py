"""Tests for relaying a human's answer into the held call."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import update

from callrelay.domain.services.relay_service import RelayService, build_relay_message, extract_answer
from callrelay.infrastructure.telephony.base import TelephonyError
from callrelay.persistence.models.escalation_request import EscalationRequest, EscalationStatus
from callrelay.persistence.repositories.escalation_request_repository import EscalationRequestRepository
from callrelay.persistence.repositories.transcript_repository import TranscriptRepository

PARENT_KEY = "0f9e8d7c-6b5a-4493-8271-605f4e3d2c1b"
SECONDARY_KEY = "8d3a7c52-4b1e-4f7a-9c2d-1e5f6a7b8c9d"
CONTROL_URL = "https://phone-call-websocket.vapi.ai/0f9e8d7c/control"


async def create_request(session, control_reference: str = CONTROL_URL):
    return await EscalationRequestRepository(session).upsert_escalation_request(
        SECONDARY_KEY,
        parent_call_key=PARENT_KEY,
        parent_provider="vapi",
        secondary_provider="vapi",
        item_requested="blue size 10 sneakers",
        control_reference=control_reference,
        expires_at=datetime.utcnow() + timedelta(seconds=90),
    )


async def add_transcript(session, text: str):
    await TranscriptRepository(session).append_or_create(SECONDARY_KEY, text, fragment_id="f1")


@pytest.fixture
def relay(db_session, provider_factory):
    return RelayService(db_session, provider_factory)


class TestExtractAnswer:
    def test_human_lines(self):
        text = "assistant: Do you have blue size 10 sneakers?\nuser: yes we have two pairs\nassistant: Thanks!"
        assert extract_answer(text) == "yes we have two pairs"

    def test_multiple_human_lines_joined(self):
        text = "AI: Do you have them?\nHuman: let me look\nHuman: yes, two pairs"
        assert extract_answer(text) == "let me look yes, two pairs"

    def test_summary_when_no_human_lines(self):
        assert extract_answer("assistant: hello?", "Owner confirmed two pairs in stock.") == "Owner confirmed two pairs in stock."

    def test_nothing_captured(self):
        assert extract_answer(None) == ""
        assert extract_answer("  ", "  ") == ""

    def test_relay_message_fallback(self):
        assert "wasn't able to get an answer" in build_relay_message("boots", "")


class TestHandleCallEnded:
    """Tests for RelayService.handle_call_ended."""

    async def test_resolves_and_speaks_answer(self, relay, fake_provider, provider_factory, db_session):
        request = await create_request(db_session)
        await add_transcript(db_session, "assistant: Do you have blue size 10 sneakers?\nuser: yes we have two pairs")

        outcome = await relay.handle_call_ended(SECONDARY_KEY)

        assert outcome.status == EscalationStatus.RESOLVED.value
        assert outcome.resolution == "yes we have two pairs"
        assert provider_factory.control_requests == ["vapi"]
        control_reference, text = fake_provider.said[0]
        assert control_reference == CONTROL_URL
        assert text == (
            'Thanks for holding! I checked with the team about "blue size 10 sneakers". '
            "They said: yes we have two pairs"
        )

        stored = await EscalationRequestRepository(db_session).get_by_id(request.id)
        assert stored.status == EscalationStatus.RESOLVED.value
        assert stored.resolution == "yes we have two pairs"
        assert stored.resolved_at is not None
        assert stored.relay_claimed_at is not None

    async def test_unrelated_call_is_ignored(self, relay, fake_provider):
        assert await relay.handle_call_ended("11111111-2222-4333-8444-555555555555") is None
        assert fake_provider.said == []

    async def test_redelivered_end_of_call_relays_once(self, relay, fake_provider, db_session):
        await create_request(db_session)
        await add_transcript(db_session, "user: yes we have two pairs")

        await relay.handle_call_ended(SECONDARY_KEY)
        assert await relay.handle_call_ended(SECONDARY_KEY) is None
        assert len(fake_provider.said) == 1

    async def test_already_timed_out_is_not_relayed(self, relay, fake_provider, db_session):
        request = await create_request(db_session)
        await EscalationRequestRepository(db_session).transition(
            request.id, EscalationStatus.TIMED_OUT, failure_reason="timeout"
        )

        assert await relay.handle_call_ended(SECONDARY_KEY, summary="two pairs") is None
        assert fake_provider.said == []

    async def test_lost_claim_does_nothing(self, relay, fake_provider, db_session):
        request = await create_request(db_session)
        await EscalationRequestRepository(db_session).claim_for_relay(request.id)

        assert await relay.handle_call_ended(SECONDARY_KEY, summary="two pairs") is None
        assert fake_provider.said == []

    async def test_stale_claim_is_taken_over(self, relay, fake_provider, db_session):
        request = await create_request(db_session)
        await EscalationRequestRepository(db_session).claim_for_relay(request.id)
        # A relay that claimed ten minutes ago and never finished
        await db_session.execute(
            update(EscalationRequest)
            .where(EscalationRequest.id == request.id)
            .values(relay_claimed_at=datetime.utcnow() - timedelta(minutes=10))
        )
        await db_session.commit()

        outcome = await relay.handle_call_ended(SECONDARY_KEY, summary="two pairs")

        assert outcome.status == EscalationStatus.RESOLVED.value
        assert len(fake_provider.said) == 1

    async def test_no_control_reference_keeps_answer(self, relay, fake_provider, db_session):
        request = await create_request(db_session, control_reference="")
        await add_transcript(db_session, "user: yes we have two pairs")

        outcome = await relay.handle_call_ended(SECONDARY_KEY)

        assert outcome.status == EscalationStatus.FAILED.value
        assert outcome.failure_reason == "no_control_reference"
        assert fake_provider.said == []
        stored = await EscalationRequestRepository(db_session).get_by_id(request.id)
        assert stored.resolution == "yes we have two pairs"

    async def test_control_failure_marks_failed(self, relay, fake_provider, db_session):
        request = await create_request(db_session)
        await add_transcript(db_session, "user: yes we have two pairs")
        fake_provider.say_error = TelephonyError("Control message rejected: 410", "vapi", status_code=410)

        outcome = await relay.handle_call_ended(SECONDARY_KEY)

        assert outcome.status == EscalationStatus.FAILED.value
        assert outcome.failure_reason.startswith("relay_failed")
        stored = await EscalationRequestRepository(db_session).get_by_id(request.id)
        assert stored.status == EscalationStatus.FAILED.value
        assert stored.resolution == "yes we have two pairs"

    async def test_no_answer_speaks_fallback_and_fails(self, relay, fake_provider, db_session):
        await create_request(db_session)

        outcome = await relay.handle_call_ended(SECONDARY_KEY)

        assert outcome.status == EscalationStatus.FAILED.value
        assert outcome.failure_reason == "no_answer_captured"
        assert "wasn't able to get an answer" in fake_provider.said[0][1]

    async def test_summary_used_when_transcript_missing(self, relay, fake_provider, db_session):
        await create_request(db_session)

        outcome = await relay.handle_call_ended(SECONDARY_KEY, summary="They have two pairs in stock.")

        assert outcome.status == EscalationStatus.RESOLVED.value
        assert fake_provider.said[0][1].endswith("They said: They have two pairs in stock.")

    async def test_no_control_channel(self, db_session, unconfigured_provider_factory):
        await create_request(db_session)
        relay = RelayService(db_session, unconfigured_provider_factory)

        outcome = await relay.handle_call_ended(SECONDARY_KEY, summary="two pairs")

        assert outcome.failure_reason == "no_control_channel"

    async def test_unexpected_error_fails_request_and_propagates(self, relay, fake_provider, db_session):
        request = await create_request(db_session)
        escalation_id = request.id
        await add_transcript(db_session, "user: yes we have two pairs")
        fake_provider.say_error = RuntimeError("control socket closed")

        with pytest.raises(RuntimeError):
            await relay.handle_call_ended(SECONDARY_KEY)

        stored = await EscalationRequestRepository(db_session).get_by_id(escalation_id)
        assert stored.status == EscalationStatus.FAILED.value
        assert stored.failure_reason == "relay_error"
        assert stored.resolution == "yes we have two pairs"

        # Nothing is left pending for a redelivery or the sweep to trip over
        assert await relay.handle_call_ended(SECONDARY_KEY) is None
