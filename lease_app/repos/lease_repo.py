import uuid
from datetime import date
from typing import List

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

import models.event_listener  # noqa: F401
from models.enums import LeaseStatus
from models.models import Lease


class LeaseRepo:
    def __init__(self, db):
        self.db = db

    async def create(self, lease: Lease) -> Lease:
        self.db.add(lease)
        try:
            await self.db.commit()
            await self.db.refresh(lease)
            return lease
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def get_by_id(self, lease_id: uuid.UUID) -> Lease | None:
        result = await self.db.execute(
            select(Lease)
            .where(Lease.id == lease_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def delete(self, lease_id: uuid.UUID) -> int:
        try:
            stmt = delete(Lease).where(Lease.id == lease_id)
            result = await self.db.execute(stmt)
            await self.db.commit()
            return result.rowcount
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def set_status(self, lease_id: uuid.UUID, status: LeaseStatus) -> int:
        """Stage a status change; the caller owns the commit."""
        stmt = update(Lease).where(Lease.id == lease_id).values(status=status)
        result = await self.db.execute(stmt)
        return result.rowcount

    async def get_expired_active(self, today: date) -> List[Lease]:
        stmt = (
            select(Lease)
            .where(Lease.status == LeaseStatus.ACTIVE)
            .where(Lease.rent_expiration_date < today)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def expire(self, lease_ids: List[uuid.UUID]) -> int:
        """Stage the expiry of still-active leases; the caller owns the commit."""
        if not lease_ids:
            return 0
        stmt = (
            update(Lease)
            .where(Lease.id.in_(lease_ids), Lease.status == LeaseStatus.ACTIVE)
            .values(status=LeaseStatus.EXPIRED)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def has_active_for_property(self, property_id: uuid.UUID) -> bool:
        stmt = select(Lease.id).where(
            Lease.property_id == property_id,
            Lease.status == LeaseStatus.ACTIVE,
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def has_pending_renewal(self, lease_id: uuid.UUID) -> bool:
        stmt = select(Lease.id).where(
            Lease.renewed_from_id == lease_id,
            Lease.status == LeaseStatus.RENEWAL_PENDING,
        )
        result = await self.db.execute(stmt)
        return result.first() is not None
