from typing import List
from uuid import UUID

from sqlalchemy import select

from models.enums import PaymentLedgerEvent
from models.models import PaymentLedger


class PaymentLedgerRepository:
    def __init__(self, db):
        self.db = db

    async def create(
        self,
        payment_id: UUID,
        event: PaymentLedgerEvent,
        old_value: dict | None = None,
        new_value: dict | None = None,
    ) -> PaymentLedger:
        """Stage an append-only ledger row inside the caller's transaction."""
        ledger = PaymentLedger(
            payment_id=payment_id,
            event=event.value,
            old_value=old_value,
            new_value=new_value,
        )
        self.db.add(ledger)
        await self.db.flush()
        return ledger

    async def get_for_payment(self, payment_id: UUID) -> List[PaymentLedger]:
        stmt = (
            select(PaymentLedger)
            .where(PaymentLedger.payment_id == payment_id)
            .order_by(PaymentLedger.id)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()
