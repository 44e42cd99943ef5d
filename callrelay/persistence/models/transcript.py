"""Transcript model for accumulated call transcripts."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text

from callrelay.persistence.database import Base


class Transcript(Base):
    """Free text attached to a call record through conversation_key.

    Providers may deliver a transcript in fragments, so text is only ever
    appended. ``fragment_ids`` holds digests of the fragments already applied,
    which makes a redelivered fragment a no-op.
    """

    __tablename__ = "transcripts"

    id = Column(Integer, primary_key=True, index=True)
    conversation_key = Column(String(36), unique=True, nullable=False, index=True)
    transcript_text = Column(Text, nullable=False, default="")
    caller_info = Column(String(255), nullable=True)
    sales_flagged = Column(Boolean, nullable=False, default=False)

    fragment_ids = Column(JSON, nullable=False, default=list)
    first_fragment_at = Column(DateTime, nullable=True)
    last_fragment_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Transcript(id={self.id}, conversation_key={self.conversation_key}, sales_flagged={self.sales_flagged})>"
