"""Business profile repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.persistence.models.business_profile import BusinessProfile
from callrelay.persistence.repositories.base import BaseRepository


class BusinessProfileRepository(BaseRepository[BusinessProfile]):
    """Repository for the business profile maintained by the dashboard."""

    def __init__(self, session: AsyncSession):
        """Initialize business profile repository."""
        super().__init__(BusinessProfile, session)

    async def get_current(self) -> BusinessProfile | None:
        """Get the business profile, if one has been configured."""
        stmt = select(BusinessProfile).order_by(BusinessProfile.id).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
