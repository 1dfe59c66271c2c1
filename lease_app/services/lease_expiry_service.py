import logging
from datetime import date, datetime

from sqlalchemy.exc import SQLAlchemyError

from core.errors import PersistenceError
from models.enums import PropertyStatus
from repos.lease_repo import LeaseRepo
from repos.property_repo import PropertyRepo

logger = logging.getLogger("lease.expiry")


class LeaseExpiryService:
    def __init__(self, db):
        self.db = db
        self.lease_repo: LeaseRepo = LeaseRepo(db)
        self.property_repo: PropertyRepo = PropertyRepo(db)

    async def sweep(self, now: date | datetime | None = None) -> int:
        """Expire active leases whose rent_expiration_date is before ``now``.

        A property left without any active lease goes back to available.
        Returns the number of leases expired.
        """
        if now is None:
            today = date.today()
        elif isinstance(now, datetime):
            today = now.date()
        else:
            today = now

        try:
            expired = await self.lease_repo.get_expired_active(today)
            if not expired:
                return 0

            count = await self.lease_repo.expire([lease.id for lease in expired])

            for property_id in {lease.property_id for lease in expired}:
                if await self.lease_repo.has_active_for_property(property_id):
                    continue
                prop = await self.property_repo.get_by_id(property_id)
                if prop and prop.status == PropertyStatus.RENTED:
                    await self.property_repo.set_status(
                        property_id, PropertyStatus.AVAILABLE
                    )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Lease expiry sweep failed")
            raise PersistenceError(f"Lease expiry sweep failed: {e}") from e

        logger.info(f"Expired {count} leases with expiration before {today}")
        return count
