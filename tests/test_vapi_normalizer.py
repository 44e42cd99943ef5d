"""Tests for the Vapi webhook normalizer."""

from datetime import datetime, timezone

from callrelay.core.identity import reconcile
from callrelay.domain.operations import AppendTranscript, AttachRecording, FinalizeCallRecord, UpsertCallRecord
from callrelay.domain.services.vapi_normalizer import build_transcript, normalize_vapi_event, parse_timestamp
from callrelay.api.schemas.vapi import VapiServerMessage

CALL_ID = "3f1e2d3c-4b5a-4697-8877-665544332211"

# 2026-03-01T15:00:00Z in epoch milliseconds
T0_MS = 1772377200000


def end_of_call_report(**overrides):
    message = {
        "type": "end-of-call-report",
        "call": {
            "id": CALL_ID,
            "type": "inboundPhoneCall",
            "customer": {"number": "(281) 788-2316"},
        },
        "startedAt": "2026-03-01T15:00:00.000Z",
        "endedAt": "2026-03-01T15:02:05.000Z",
        "artifact": {
            "messages": [
                {"role": "system", "message": "You are a helpful assistant", "time": T0_MS - 1000},
                {"role": "bot", "message": "Hi, how can I help?", "time": T0_MS},
                {"role": "user", "message": "Do you have blue sneakers?", "time": T0_MS + 4000},
            ],
            "recordingUrl": "https://storage.vapi.ai/rec.wav",
        },
        "analysis": {"summary": "Customer asked about blue sneakers."},
    }
    message.update(overrides)
    return {"message": message}


class TestEndOfCallReport:
    """end-of-call-report becomes upsert, append, finalize."""

    def test_operation_sequence(self):
        ops = normalize_vapi_event(end_of_call_report())
        assert [type(op) for op in ops] == [UpsertCallRecord, AppendTranscript, AttachRecording, FinalizeCallRecord]
        assert all(op.conversation_key == CALL_ID for op in ops)

    def test_call_fields(self):
        upsert = normalize_vapi_event(end_of_call_report())[0]
        assert upsert.provider == "vapi"
        assert upsert.direction == "incoming"
        assert upsert.counterparty_number == "+12817882316"
        assert upsert.started_at == datetime(2026, 3, 1, 15, 0, tzinfo=timezone.utc)

    def test_transcript_excludes_system_messages(self):
        append = normalize_vapi_event(end_of_call_report())[1]
        assert append.text == "bot: Hi, how can I help?\nuser: Do you have blue sneakers?"
        assert "helpful assistant" not in append.text

    def test_finalize_fields(self):
        finalize = normalize_vapi_event(end_of_call_report())[-1]
        assert finalize.ended_at == datetime(2026, 3, 1, 15, 2, 5, tzinfo=timezone.utc)
        assert finalize.summary == "Customer asked about blue sneakers."
        assert len(finalize.message_times) == 2

    def test_same_report_gives_same_fragment_id(self):
        first = normalize_vapi_event(end_of_call_report())[1]
        second = normalize_vapi_event(end_of_call_report())[1]
        assert first.fragment_id == second.fragment_id

    def test_outbound_call_is_outgoing(self):
        body = end_of_call_report(call={"id": CALL_ID, "type": "outboundPhoneCall", "customer": {"number": "+15551230000"}})
        upsert = normalize_vapi_event(body)[0]
        assert upsert.direction == "outgoing"
        assert upsert.topic == "Outgoing call to +15551230000"

    def test_web_call(self):
        body = end_of_call_report(call={"id": CALL_ID, "type": "webCall"})
        upsert = normalize_vapi_event(body)[0]
        assert upsert.direction == "incoming"
        assert upsert.counterparty_number == "Web Call"

    def test_non_canonical_id_is_reconciled(self):
        body = end_of_call_report(call={"id": "call_ABC123", "type": "webCall"})
        ops = normalize_vapi_event(body)
        assert ops[0].conversation_key == reconcile("vapi", "call_ABC123")

    def test_call_id_fallback(self):
        body = end_of_call_report(call=None, callId=CALL_ID)
        ops = normalize_vapi_event(body)
        assert ops[0].conversation_key == CALL_ID

    def test_flat_body_accepted(self):
        body = end_of_call_report()["message"]
        ops = normalize_vapi_event(body)
        assert ops and ops[0].conversation_key == CALL_ID

    def test_string_transcript(self):
        body = end_of_call_report(artifact=None, transcript="AI: hello\nUser: hi")
        append = [op for op in normalize_vapi_event(body) if isinstance(op, AppendTranscript)][0]
        assert append.text == "AI: hello\nUser: hi"

    def test_reported_duration_passed_through(self):
        body = end_of_call_report(startedAt=None, endedAt=None, durationSeconds=73.2)
        finalize = normalize_vapi_event(body)[-1]
        assert finalize.reported_seconds == 73.2
        assert finalize.started_at is None

    def test_report_without_transcript_still_finalizes(self):
        body = end_of_call_report(artifact=None)
        ops = normalize_vapi_event(body)
        assert [type(op) for op in ops] == [UpsertCallRecord, FinalizeCallRecord]


class TestOtherEvents:
    def test_status_update_in_progress(self):
        body = {"message": {"type": "status-update", "status": "in-progress", "call": {"id": CALL_ID}}}
        ops = normalize_vapi_event(body)
        assert len(ops) == 1
        assert ops[0].status == "in_progress"

    def test_status_update_other_status_ignored(self):
        body = {"message": {"type": "status-update", "status": "ringing", "call": {"id": CALL_ID}}}
        assert normalize_vapi_event(body) == []

    def test_unknown_event_dropped(self):
        body = {"message": {"type": "speech-update", "call": {"id": CALL_ID}}}
        assert normalize_vapi_event(body) == []

    def test_missing_call_id_dropped(self):
        body = {"message": {"type": "end-of-call-report"}}
        assert normalize_vapi_event(body) == []

    def test_malformed_body_dropped(self):
        assert normalize_vapi_event({"message": "not an object"}) == []
        assert normalize_vapi_event({}) == []


class TestHelpers:
    def test_parse_epoch_millis(self):
        assert parse_timestamp(T0_MS) == datetime(2026, 3, 1, 15, 0, tzinfo=timezone.utc)

    def test_parse_garbage(self):
        assert parse_timestamp("yesterday") is None

    def test_array_transcript(self):
        message = VapiServerMessage.model_validate({
            "transcript": [
                {"role": "assistant", "content": "Hello"},
                {"role": "user", "content": "Hi"},
            ]
        })
        text, times = build_transcript(message)
        assert text == "assistant: Hello\nuser: Hi"
        assert times == ()
