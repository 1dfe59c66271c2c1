import uuid

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from models.enums import PropertyStatus
from models.models import Property


class PropertyRepo:
    def __init__(self, db):
        self.db = db

    async def create(
        self,
        owner_id: uuid.UUID,
        title: str | None = None,
        status: PropertyStatus = PropertyStatus.AVAILABLE,
    ) -> Property:
        prop = Property(owner_id=owner_id, title=title, status=status)
        self.db.add(prop)
        try:
            await self.db.commit()
            await self.db.refresh(prop)
            return prop
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def get_by_id(self, property_id: uuid.UUID) -> Property | None:
        result = await self.db.execute(
            select(Property)
            .where(Property.id == property_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def set_status(self, property_id: uuid.UUID, status: PropertyStatus) -> int:
        """Stage a status change; the caller owns the commit."""
        stmt = (
            update(Property)
            .where(Property.id == property_id)
            .values(status=status)
        )
        result = await self.db.execute(stmt)
        return result.rowcount
