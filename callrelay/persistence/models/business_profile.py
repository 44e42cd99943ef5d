"""Business profile model holding the human contact for escalations."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from callrelay.persistence.database import Base


class BusinessProfile(Base):
    """Business configuration maintained by the dashboard."""

    __tablename__ = "business_profiles"

    id = Column(Integer, primary_key=True, index=True)
    business_name = Column(String(255), nullable=True)
    owner_phone = Column(String(50), nullable=True)  # Human contact for escalations

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<BusinessProfile(id={self.id}, business_name={self.business_name})>"
