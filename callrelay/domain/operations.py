"""Canonical store operations produced by the webhook normalizers.

Normalizers map a provider event to a list of these; the session store
applies them in order. Every operation is an upsert keyed by a canonical
conversation key, so applying the same list twice converges on one state.
"""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class UpsertCallRecord:
    """Create or update the descriptive side of a call record."""

    conversation_key: str
    provider: str
    direction: str | None = None
    counterparty_number: str | None = None
    topic: str | None = None
    started_at: datetime | None = None
    status: str | None = None


@dataclass(frozen=True)
class AppendTranscript:
    """Append a transcript fragment, identified by a content digest."""

    conversation_key: str
    text: str
    fragment_id: str
    occurred_at: datetime | None = None
    caller_info: str | None = None


@dataclass(frozen=True)
class FinalizeCallRecord:
    """Mark a call ended and settle its duration."""

    conversation_key: str
    provider: str
    started_at: datetime | None = None
    ended_at: datetime | None = None
    reported_seconds: float | None = None
    message_times: tuple[datetime, ...] = field(default_factory=tuple)
    summary: str | None = None
    direction: str | None = None
    counterparty_number: str | None = None


@dataclass(frozen=True)
class AttachRecording:
    """Store the recording location for a call."""

    conversation_key: str
    recording_url: str


CallOperation = UpsertCallRecord | AppendTranscript | FinalizeCallRecord | AttachRecording


def describe_call(direction: str | None, counterparty_number: str | None) -> str:
    """Default topic for a call record the provider gave no topic for."""
    if direction == "outgoing":
        return f"Outgoing call to {counterparty_number}" if counterparty_number else "Outgoing call"
    if counterparty_number:
        return f"Incoming call from {counterparty_number}"
    return "Incoming call"


def fragment_digest(conversation_key: str, text: str, occurred_at: datetime | None = None) -> str:
    """Stable id for a transcript fragment, used to skip redeliveries."""
    stamp = occurred_at.isoformat() if occurred_at else ""
    return hashlib.sha256(f"{conversation_key}|{stamp}|{text}".encode("utf-8")).hexdigest()
