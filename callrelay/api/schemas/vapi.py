"""Vapi server message schemas.

Vapi posts ``{"message": {...}}`` for server events and tool calls. Older
integrations send the message fields flat at the top level, so every model
is permissive and the normalizer reads both shapes.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _VapiModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class VapiCustomer(_VapiModel):
    number: str | None = None
    name: str | None = None


class VapiMonitor(_VapiModel):
    control_url: str | None = Field(default=None, alias="controlUrl")
    listen_url: str | None = Field(default=None, alias="listenUrl")


class VapiCall(_VapiModel):
    id: str | None = None
    type: str | None = None  # inboundPhoneCall, outboundPhoneCall, webCall
    status: str | None = None
    customer: VapiCustomer | None = None
    monitor: VapiMonitor | None = None
    started_at: str | None = Field(default=None, alias="startedAt")
    ended_at: str | None = Field(default=None, alias="endedAt")


class VapiMessageItem(_VapiModel):
    """One turn of a call's conversation."""

    role: str | None = None  # user, bot, assistant, system, tool_calls
    message: str | None = None
    content: str | None = None
    time: float | None = None  # epoch milliseconds
    seconds_from_start: float | None = Field(default=None, alias="secondsFromStart")

    @property
    def text(self) -> str:
        return self.content or self.message or ""


class VapiArtifact(_VapiModel):
    messages: list[VapiMessageItem] = Field(default_factory=list)
    transcript: str | None = None
    recording_url: str | None = Field(default=None, alias="recordingUrl")


class VapiAnalysis(_VapiModel):
    summary: str | None = None


class VapiFunction(_VapiModel):
    name: str | None = None
    arguments: dict[str, Any] | str | None = None


class VapiToolCall(_VapiModel):
    id: str | None = None
    type: str | None = None
    function: VapiFunction | None = None


class VapiFunctionCall(_VapiModel):
    """Legacy function-call shape."""

    name: str | None = None
    parameters: dict[str, Any] | None = None


class VapiServerMessage(_VapiModel):
    type: str | None = None
    status: str | None = None
    call: VapiCall | None = None
    call_id: str | None = Field(default=None, alias="callId")
    id: str | None = None
    started_at: str | None = Field(default=None, alias="startedAt")
    ended_at: str | None = Field(default=None, alias="endedAt")
    duration_seconds: float | None = Field(default=None, alias="durationSeconds")
    duration: float | None = None
    ended_reason: str | None = Field(default=None, alias="endedReason")
    artifact: VapiArtifact | None = None
    messages: list[VapiMessageItem] | None = None
    transcript: str | list[dict[str, Any]] | None = None
    analysis: VapiAnalysis | None = None
    summary: str | None = None
    recording_url: str | None = Field(default=None, alias="recordingUrl")

    # Tool calls
    tool_call_list: list[VapiToolCall] | None = Field(default=None, alias="toolCallList")
    function_call: VapiFunctionCall | None = Field(default=None, alias="functionCall")


class VapiWebhookBody(_VapiModel):
    """Webhook body: either ``{"message": {...}}`` or the message fields flat."""

    message: VapiServerMessage | None = None

    def server_message(self) -> VapiServerMessage:
        """Return the wrapped message, or the body itself read as one."""
        if self.message is not None:
            return self.message
        return VapiServerMessage.model_validate(self.model_extra or {})
