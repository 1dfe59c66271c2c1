import uuid
from typing import Iterable, List

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from models.enums import VerificationStatus
from models.models import Payment


class PaymentRepo:
    def __init__(self, db):
        self.db = db

    async def create(self, payment: Payment) -> Payment:
        self.db.add(payment)
        try:
            await self.db.commit()
            await self.db.refresh(payment)
            return payment
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def add_all(self, payments: List[Payment]) -> None:
        """Stage rows inside the caller's transaction."""
        self.db.add_all(payments)
        await self.db.flush()

    async def get_by_id(self, payment_id: uuid.UUID, fresh: bool = False) -> Payment | None:
        stmt = select(Payment).where(Payment.id == payment_id)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_lease(self, lease_id: uuid.UUID) -> List[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.lease_id == lease_id)
            .order_by(Payment.installment_number)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_by_verification_status(
        self, statuses: Iterable[VerificationStatus]
    ) -> List[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.verification_status.in_(list(statuses)))
            .order_by(Payment.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def transition_once(
        self,
        payment_id: uuid.UUID,
        expected: Iterable[VerificationStatus],
        values: dict,
    ) -> bool:
        """Compare-and-swap on verification_status.

        The row is only written when its status is still one of ``expected``,
        so of two reviewers acting on the same payment exactly one wins. The
        caller owns the commit.
        """
        stmt = (
            update(Payment)
            .where(
                Payment.id == payment_id,
                Payment.verification_status.in_(list(expected)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def update_fields(self, payment_id: uuid.UUID, values: dict) -> int:
        stmt = (
            update(Payment)
            .where(Payment.id == payment_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def db_commit(self):
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def db_rollback(self):
        await self.db.rollback()
