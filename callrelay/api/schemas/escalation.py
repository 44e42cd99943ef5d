"""Escalation schemas for assistant tools and operator inspection."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class EscalateToHumanArgs(BaseModel):
    """Arguments the assistant passes to the escalate-to-human tool."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    item_requested: str = Field(default="", alias="itemRequested")
    caller_context: str | None = Field(default=None, alias="callerContext")


class ToolCallResult(BaseModel):
    tool_call_id: str | None = Field(default=None, serialization_alias="toolCallId")
    result: str


class VapiToolResponse(BaseModel):
    """Tool response understood by Vapi: ``results`` keyed by tool call id."""

    result: str
    results: list[ToolCallResult]


class TelnyxToolResponse(BaseModel):
    result: str


class EscalationResponse(BaseModel):
    """Escalation request as shown to operators."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    parent_call_key: str
    parent_provider: str
    secondary_call_key: str
    secondary_provider: str
    item_requested: str
    caller_context: str | None = None
    status: str
    resolution: str | None = None
    failure_reason: str | None = None
    has_control_reference: bool = False
    relay_claimed_at: datetime | None = None
    expires_at: datetime
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class EscalationListResponse(BaseModel):
    escalations: list[EscalationResponse]
    total: int


class SweepResponse(BaseModel):
    timed_out: int
