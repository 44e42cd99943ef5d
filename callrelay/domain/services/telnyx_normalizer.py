"""Telnyx webhook normalizer.

Telnyx reports a call as a stream of discrete Call Control events that may
arrive late, twice, or out of order. Each event maps to at most one
canonical operation; the store's upsert semantics do the merging.
"""

import logging
from typing import Any

from pydantic import ValidationError

from callrelay.api.schemas.telnyx import (
    HANDLED_EVENT_TYPES,
    CallHangup,
    CallInitiated,
    RecordingSaved,
    TelnyxWebhookEnvelope,
    TranscriptFragment,
)
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

PROVIDER = "telnyx"


def _direction(raw: str | None) -> str | None:
    if raw == "inbound":
        return "incoming"
    if raw == "outbound":
        return "outgoing"
    return None


def normalize_telnyx_event(body: dict[str, Any]) -> list[CallOperation]:
    """Map a Telnyx Call Control webhook to canonical operations.

    Args:
        body: Raw webhook JSON body

    Returns:
        Operations to apply, in order (empty for ignored events)
    """
    data = body.get("data") if isinstance(body, dict) else None
    event_type = data.get("event_type") if isinstance(data, dict) else None
    if event_type not in HANDLED_EVENT_TYPES:
        logger.info(f"Unhandled Telnyx event: {event_type}", extra={"event_type": event_type})
        return []

    try:
        event = TelnyxWebhookEnvelope.model_validate(body).data
    except ValidationError as e:
        logger.warning(
            f"Dropping malformed Telnyx {event_type}: {e.error_count()} validation errors",
            extra={"event_type": event_type},
        )
        return []

    payload = event.payload
    try:
        conversation_key = reconcile(PROVIDER, payload.external_id or "")
    except ValueError as e:
        logger.warning(f"Dropping Telnyx {event_type} without call id: {e}", extra={"event_type": event_type})
        return []

    direction = _direction(payload.direction)
    # The counterparty is whoever is not us
    raw_number = payload.to if direction == "outgoing" else payload.from_
    counterparty = normalize_phone_e164(raw_number)

    if isinstance(event, CallInitiated):
        return [
            UpsertCallRecord(
                conversation_key=conversation_key,
                provider=PROVIDER,
                direction=direction,
                counterparty_number=counterparty,
                topic=describe_call(direction, counterparty),
                started_at=payload.start_time or event.occurred_at,
                status="initiated",
            )
        ]

    if isinstance(event, CallHangup):
        return [
            FinalizeCallRecord(
                conversation_key=conversation_key,
                provider=PROVIDER,
                started_at=payload.start_time,
                ended_at=payload.end_time,
                direction=direction,
                counterparty_number=counterparty,
            )
        ]

    if isinstance(event, TranscriptFragment):
        transcription = payload.transcription_data or {}
        text = (transcription.get("transcript") or payload.transcript or "").strip()
        if not text:
            return []
        if transcription.get("is_final") is False:
            logger.debug(f"Skipping interim transcription for {conversation_key}")
            return []
        return [
            AppendTranscript(
                conversation_key=conversation_key,
                text=text,
                fragment_id=fragment_digest(conversation_key, text, event.occurred_at),
                occurred_at=event.occurred_at,
                caller_info=counterparty,
            )
        ]

    if isinstance(event, RecordingSaved):
        urls = payload.recording_urls or payload.public_recording_urls or {}
        recording_url = urls.get("mp3") or urls.get("wav")
        if not recording_url:
            logger.info(f"Telnyx recording saved without URL for {conversation_key}")
            return []
        return [AttachRecording(conversation_key=conversation_key, recording_url=recording_url)]

    return []
