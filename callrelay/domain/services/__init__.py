"""Domain services."""

from callrelay.domain.services.call_event_service import CallEventService
from callrelay.domain.services.escalation_service import EscalationService
from callrelay.domain.services.relay_service import RelayService
from callrelay.domain.services.session_store import SessionStore

__all__ = ["CallEventService", "EscalationService", "RelayService", "SessionStore"]
