"""Call record model for telephone-network call legs."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from callrelay.persistence.database import Base


class CallRecord(Base):
    """One row per call leg, correlated across webhooks by conversation_key."""

    __tablename__ = "call_records"

    id = Column(Integer, primary_key=True, index=True)
    conversation_key = Column(String(36), unique=True, nullable=False, index=True)
    provider = Column(String(20), nullable=True)  # "vapi" or "telnyx"
    direction = Column(String(20), nullable=True)  # "incoming" or "outgoing"
    counterparty_number = Column(String(255), nullable=True)
    topic = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="initiated")  # initiated, in_progress, ended

    started_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=False, default=0.0)
    duration_minutes = Column(Float, nullable=False, default=0.0)
    # Set when no timestamps were available to derive a duration
    needs_review = Column(Boolean, nullable=False, default=False)

    recording_url = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<CallRecord(id={self.id}, conversation_key={self.conversation_key}, status={self.status})>"
