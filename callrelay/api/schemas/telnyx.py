"""Telnyx Call Control webhook schemas.

Telnyx wraps every event as ``{"data": {"event_type", "id", "occurred_at",
"payload"}}``. The events handled here decode into a tagged union keyed on
``event_type``; anything else fails validation and is dropped by the caller.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class TelnyxCallPayload(BaseModel):
    """Fields shared by Call Control event payloads."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    call_control_id: str | None = None
    call_session_id: str | None = None
    call_leg_id: str | None = None
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None
    direction: str | None = None  # "inbound" or "outbound"
    state: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    hangup_cause: str | None = None

    # call.transcription
    transcription_data: dict[str, Any] | None = None
    transcript: str | None = None

    # call.recording.saved
    recording_urls: dict[str, Any] | None = None
    public_recording_urls: dict[str, Any] | None = None

    @property
    def external_id(self) -> str | None:
        """The identifier used to correlate this call across events."""
        return self.call_control_id or self.call_session_id or self.call_leg_id


class _TelnyxEventBase(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    occurred_at: datetime | None = None
    payload: TelnyxCallPayload


class CallInitiated(_TelnyxEventBase):
    event_type: Literal["call.initiated"]


class CallHangup(_TelnyxEventBase):
    event_type: Literal["call.hangup"]


class TranscriptFragment(_TelnyxEventBase):
    event_type: Literal["call.transcription", "call.transcription.started"]


class RecordingSaved(_TelnyxEventBase):
    event_type: Literal["call.recording.saved"]


TelnyxEvent = Annotated[
    Union[CallInitiated, CallHangup, TranscriptFragment, RecordingSaved],
    Field(discriminator="event_type"),
]

HANDLED_EVENT_TYPES = frozenset({
    "call.initiated",
    "call.hangup",
    "call.transcription",
    "call.transcription.started",
    "call.recording.saved",
})


class TelnyxWebhookEnvelope(BaseModel):
    """Outer webhook body."""

    model_config = ConfigDict(extra="allow")

    data: TelnyxEvent
