"""Vapi webhook normalizer.

Vapi reports a finished call in one shot (``end-of-call-report``) with the
whole conversation attached. That single event becomes the full set of
canonical operations: upsert the call, append the transcript, finalize.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from callrelay.api.schemas.vapi import VapiCall, VapiMessageItem, VapiServerMessage, VapiWebhookBody
from callrelay.core.identity import reconcile
from callrelay.core.phone import normalize_phone_e164
from callrelay.domain.operations import (
    AppendTranscript,
    AttachRecording,
    CallOperation,
    FinalizeCallRecord,
    UpsertCallRecord,
    describe_call,
    fragment_digest,
)

logger = logging.getLogger(__name__)

PROVIDER = "vapi"

END_OF_CALL_REPORT = "end-of-call-report"
STATUS_UPDATE = "status-update"

DIRECTION_BY_CALL_TYPE = {
    "inboundPhoneCall": "incoming",
    "webCall": "incoming",
    "outboundPhoneCall": "outgoing",
}

WEB_CALL_LABEL = "Web Call"

# Roles that are not part of what was said on the call
_SILENT_ROLES = frozenset({"system", "tool_calls", "tool_call_result"})


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or epoch-milliseconds number."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable Vapi timestamp: {value}")
        return None


def extract_vapi_call_id(message: VapiServerMessage) -> str | None:
    """Get the Vapi call id from a server message."""
    if message.call and message.call.id:
        return message.call.id
    return message.call_id or message.id


def _counterparty(call: VapiCall) -> str | None:
    if call.type == "webCall":
        return WEB_CALL_LABEL
    if call.customer and call.customer.number:
        return normalize_phone_e164(call.customer.number)
    return None


def _conversation_items(message: VapiServerMessage) -> list[VapiMessageItem]:
    if message.artifact and message.artifact.messages:
        return message.artifact.messages
    return message.messages or []


def build_transcript(message: VapiServerMessage) -> tuple[str, tuple[datetime, ...]]:
    """Build transcript text and spoken-message times from a report.

    Returns:
        Tuple of (newline-joined "role: content" lines, message timestamps)
    """
    items = [
        item for item in _conversation_items(message)
        if item.role not in _SILENT_ROLES and item.text
    ]
    if items:
        text = "\n".join(f"{item.role}: {item.text}" for item in items)
        times = tuple(
            ts for ts in (parse_timestamp(item.time) for item in items) if ts is not None
        )
        return text, times

    if isinstance(message.transcript, list):
        text = "\n".join(
            f"{turn.get('role')}: {turn.get('content') or turn.get('message') or ''}"
            for turn in message.transcript
        )
        return text, ()

    if isinstance(message.transcript, str) and message.transcript.strip():
        return message.transcript, ()

    if message.artifact and message.artifact.transcript:
        return message.artifact.transcript, ()

    return "", ()


def normalize_vapi_event(body: dict[str, Any]) -> list[CallOperation]:
    """Map a Vapi server message to canonical operations.

    Malformed payloads, unknown event types and messages without a usable
    call id produce no operations.

    Args:
        body: Raw webhook JSON body

    Returns:
        Operations to apply, in order
    """
    try:
        message = VapiWebhookBody.model_validate(body).server_message()
    except ValidationError as e:
        logger.warning(f"Dropping malformed Vapi webhook: {e.error_count()} validation errors")
        return []

    event_type = message.type
    if event_type not in (END_OF_CALL_REPORT, STATUS_UPDATE):
        logger.info(f"Ignoring Vapi event type: {event_type}", extra={"event_type": event_type})
        return []

    external_id = extract_vapi_call_id(message)
    try:
        conversation_key = reconcile(PROVIDER, external_id or "")
    except ValueError as e:
        logger.warning(f"Dropping Vapi {event_type} without call id: {e}", extra={"event_type": event_type})
        return []

    call = message.call or VapiCall()
    direction = DIRECTION_BY_CALL_TYPE.get(call.type or "")
    counterparty = _counterparty(call)
    started_at = parse_timestamp(message.started_at or call.started_at)

    if event_type == STATUS_UPDATE:
        if message.status != "in-progress":
            logger.info(
                f"Ignoring Vapi status-update {message.status} for {conversation_key}",
                extra={"conversation_key": conversation_key},
            )
            return []
        return [
            UpsertCallRecord(
                conversation_key=conversation_key,
                provider=PROVIDER,
                direction=direction,
                counterparty_number=counterparty,
                topic=describe_call(direction, counterparty),
                started_at=started_at,
                status="in_progress",
            )
        ]

    ended_at = parse_timestamp(message.ended_at or call.ended_at)
    reported_seconds = message.duration_seconds if message.duration_seconds is not None else message.duration
    text, message_times = build_transcript(message)
    summary = (message.analysis.summary if message.analysis else None) or message.summary

    operations: list[CallOperation] = [
        UpsertCallRecord(
            conversation_key=conversation_key,
            provider=PROVIDER,
            direction=direction,
            counterparty_number=counterparty,
            topic=describe_call(direction, counterparty),
            started_at=started_at,
        )
    ]
    if text:
        operations.append(
            AppendTranscript(
                conversation_key=conversation_key,
                text=text,
                fragment_id=fragment_digest(conversation_key, text),
                occurred_at=ended_at or (message_times[-1] if message_times else None),
                caller_info=counterparty,
            )
        )
    else:
        logger.info(f"Vapi report for {conversation_key} has no transcript", extra={"conversation_key": conversation_key})

    recording_url = (message.artifact.recording_url if message.artifact else None) or message.recording_url
    if recording_url:
        operations.append(AttachRecording(conversation_key=conversation_key, recording_url=recording_url))

    operations.append(
        FinalizeCallRecord(
            conversation_key=conversation_key,
            provider=PROVIDER,
            started_at=started_at,
            ended_at=ended_at,
            reported_seconds=reported_seconds,
            message_times=message_times,
            summary=summary,
            direction=direction,
            counterparty_number=counterparty,
        )
    )
    return operations
