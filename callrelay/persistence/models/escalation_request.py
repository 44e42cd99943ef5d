"""Escalation request model for ask-the-human calls."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from callrelay.persistence.database import Base


class EscalationStatus(str, enum.Enum):
    """Lifecycle states of an escalation request."""

    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"
    TIMED_OUT = "timedOut"


TERMINAL_STATUSES = frozenset({
    EscalationStatus.RESOLVED.value,
    EscalationStatus.FAILED.value,
    EscalationStatus.TIMED_OUT.value,
})


class EscalationRequest(Base):
    """One row per secondary call placed to a human while a primary call holds."""

    __tablename__ = "escalation_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Primary (held) call
    parent_call_key = Column(String(36), nullable=False, index=True)
    parent_provider = Column(String(20), nullable=False)
    # Opaque mid-call capability for the primary call; empty when the runtime gave none
    control_reference = Column(Text, nullable=False, default="")

    # Secondary (ask-the-human) call
    secondary_call_key = Column(String(36), unique=True, nullable=False, index=True)
    secondary_provider = Column(String(20), nullable=False)

    item_requested = Column(Text, nullable=False)
    caller_context = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=EscalationStatus.PENDING.value, index=True)
    resolution = Column(Text, nullable=True)  # The human's captured answer
    failure_reason = Column(Text, nullable=True)

    relay_claimed_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    resolved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<EscalationRequest(id={self.id}, parent_call_key={self.parent_call_key}, "
            f"secondary_call_key={self.secondary_call_key}, status={self.status})>"
        )
