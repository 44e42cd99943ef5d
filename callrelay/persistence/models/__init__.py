"""Database models."""

from callrelay.persistence.models.business_profile import BusinessProfile
from callrelay.persistence.models.call_record import CallRecord
from callrelay.persistence.models.escalation_request import EscalationRequest, EscalationStatus
from callrelay.persistence.models.transcript import Transcript

__all__ = [
    "BusinessProfile",
    "CallRecord",
    "EscalationRequest",
    "EscalationStatus",
    "Transcript",
]
