"""Repository implementations."""

from callrelay.persistence.repositories.base import BaseRepository
from callrelay.persistence.repositories.business_profile_repository import BusinessProfileRepository
from callrelay.persistence.repositories.call_record_repository import CallRecordRepository
from callrelay.persistence.repositories.escalation_request_repository import EscalationRequestRepository
from callrelay.persistence.repositories.transcript_repository import TranscriptRepository

__all__ = [
    "BaseRepository",
    "BusinessProfileRepository",
    "CallRecordRepository",
    "EscalationRequestRepository",
    "TranscriptRepository",
]
