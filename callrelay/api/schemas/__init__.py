"""API schemas package."""

from callrelay.api.schemas.escalation import (
    EscalateToHumanArgs,
    EscalationListResponse,
    EscalationResponse,
    SweepResponse,
    TelnyxToolResponse,
    ToolCallResult,
    VapiToolResponse,
)
from callrelay.api.schemas.telnyx import TelnyxCallPayload, TelnyxWebhookEnvelope
from callrelay.api.schemas.vapi import VapiServerMessage, VapiWebhookBody

__all__ = [
    "EscalateToHumanArgs",
    "EscalationListResponse",
    "EscalationResponse",
    "SweepResponse",
    "TelnyxCallPayload",
    "TelnyxToolResponse",
    "TelnyxWebhookEnvelope",
    "ToolCallResult",
    "VapiServerMessage",
    "VapiToolResponse",
    "VapiWebhookBody",
]
