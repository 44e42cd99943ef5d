"""Tests for operator call and escalation endpoints and the timeout worker."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from callrelay.api.deps import get_escalation_service
from callrelay.main import app
from callrelay.persistence.models.escalation_request import EscalationStatus
from callrelay.persistence.repositories.call_record_repository import CallRecordRepository
from callrelay.persistence.repositories.escalation_request_repository import EscalationRequestRepository
from callrelay.persistence.repositories.transcript_repository import TranscriptRepository

KEY = "5b2c3d4e-6f70-4182-9a3b-4c5d6e7f8091"
SECONDARY_KEY = "8d3a7c52-4b1e-4f7a-9c2d-1e5f6a7b8c9d"


async def create_request(session, expires_at: datetime, control_reference: str = "https://vapi/control"):
    return await EscalationRequestRepository(session).upsert_escalation_request(
        SECONDARY_KEY,
        parent_call_key=KEY,
        parent_provider="vapi",
        secondary_provider="vapi",
        item_requested="boots",
        control_reference=control_reference,
        expires_at=expires_at,
    )


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_request_id_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


class TestCallsApi:
    async def test_list_calls_paginated(self, client, db_session):
        repo = CallRecordRepository(db_session)
        for i in range(3):
            await repo.upsert_call_record(f"5b2c3d4e-6f70-4182-9a3b-4c5d6e7f809{i}", provider="vapi")

        response = await client.get("/api/v1/calls", params={"page": 1, "page_size": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert len(data["calls"]) == 2
        assert data["has_more"] is True

    async def test_get_call_with_transcript(self, client, db_session):
        await CallRecordRepository(db_session).upsert_call_record(KEY, provider="telnyx", direction="incoming")
        await TranscriptRepository(db_session).append_or_create(KEY, "user: hello", fragment_id="f1")

        response = await client.get(f"/api/v1/calls/{KEY}")

        assert response.status_code == 200
        data = response.json()
        assert data["conversation_key"] == KEY
        assert data["transcript"]["transcript_text"] == "user: hello"

    async def test_get_missing_call(self, client):
        response = await client.get(f"/api/v1/calls/{KEY}")
        assert response.status_code == 404

    async def test_delete_call_keeps_transcript(self, client, db_session):
        await CallRecordRepository(db_session).upsert_call_record(KEY, provider="vapi")
        await TranscriptRepository(db_session).append_or_create(KEY, "user: hello", fragment_id="f1")

        response = await client.delete(f"/api/v1/calls/{KEY}")

        assert response.status_code == 204
        assert await CallRecordRepository(db_session).get_by_conversation_key(KEY) is None
        assert await TranscriptRepository(db_session).get_by_conversation_key(KEY) is not None
        assert (await client.delete(f"/api/v1/calls/{KEY}")).status_code == 404


class TestEscalationsApi:
    async def test_list_and_filter(self, client, db_session):
        await create_request(db_session, datetime.utcnow() + timedelta(seconds=90))

        response = await client.get("/api/v1/escalations", params={"status": "pending"})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        escalation = data["escalations"][0]
        assert escalation["status"] == "pending"
        assert escalation["has_control_reference"] is True
        assert "control_reference" not in escalation

        response = await client.get("/api/v1/escalations", params={"status": "resolved"})
        assert response.json()["total"] == 0

    async def test_unknown_status_filter_rejected(self, client):
        response = await client.get("/api/v1/escalations", params={"status": "bogus"})
        assert response.status_code == 422

    async def test_get_escalation(self, client, db_session):
        request = await create_request(db_session, datetime.utcnow() + timedelta(seconds=90))

        response = await client.get(f"/api/v1/escalations/{request.id}")

        assert response.status_code == 200
        assert response.json()["item_requested"] == "boots"

    async def test_get_missing_escalation(self, client):
        response = await client.get("/api/v1/escalations/does-not-exist")
        assert response.status_code == 404


class TestSweepWorker:
    async def test_sweep_times_out_expired(self, client, db_session, fake_provider):
        request = await create_request(db_session, datetime.utcnow() - timedelta(seconds=1))

        response = await client.post("/workers/escalations/sweep")

        assert response.status_code == 200
        assert response.json() == {"timed_out": 1}
        stored = await EscalationRequestRepository(db_session).get_by_id(request.id)
        assert stored.status == EscalationStatus.TIMED_OUT.value
        assert fake_provider.said[0][0] == "https://vapi/control"

        response = await client.post("/workers/escalations/sweep")
        assert response.json() == {"timed_out": 0}

    @pytest.mark.parametrize(
        "error",
        [
            OperationalError("SELECT 1", {}, Exception("connection refused")),
            ConnectionRefusedError(111, "Connect call failed"),
        ],
        ids=["operational", "connection_refused"],
    )
    async def test_sweep_database_unavailable(self, client, error):
        class FailingEscalationService:
            async def expire_stale(self, now=None):
                raise error

        app.dependency_overrides[get_escalation_service] = lambda: FailingEscalationService()

        response = await client.post("/workers/escalations/sweep")

        assert response.status_code == 503

    async def test_sweep_unreachable_database(self, unreachable_store_client):
        response = await unreachable_store_client.post("/workers/escalations/sweep")

        assert response.status_code == 503
