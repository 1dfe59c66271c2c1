import logging
import uuid
from typing import List

from core.date_helper import add_months
from core.errors import InvalidTransitionError, NotFoundError
from models.enums import (
    LeaseStatus,
    PaymentStatus,
    PaymentType,
    VerificationStatus,
)
from models.models import Payment
from repos.lease_repo import LeaseRepo
from repos.payment_repo import PaymentRepo

from . import plan_calculator

logger = logging.getLogger(__name__)


class InstallmentScheduler:
    """Materializes the monthly installments of an activated lease.

    Installment 1 is the checkout payment and covers the plan's upfront
    share; rows 2..n split the rest of the rent. They are staged in the
    caller's session and become visible when the caller commits, so that
    activation and schedule land together.
    """

    def __init__(self, db):
        self.lease_repo: LeaseRepo = LeaseRepo(db)
        self.payment_repo: PaymentRepo = PaymentRepo(db)

    async def generate(self, lease_id: uuid.UUID) -> List[Payment]:
        lease = await self.lease_repo.get_by_id(lease_id)
        if not lease:
            raise NotFoundError(f"Lease {lease_id} not found")
        if lease.status != LeaseStatus.ACTIVE:
            raise InvalidTransitionError(
                f"Installments are only generated for active leases, lease {lease_id} is {lease.status.value}"
            )

        existing = await self.payment_repo.get_for_lease(lease_id)
        if any((p.installment_number or 0) >= 2 for p in existing):
            logger.info(f"Installments already exist for lease {lease_id}, skipping")
            return []

        duration = lease.lease_duration_months
        amounts = plan_calculator.installment_amounts(
            lease.payment_plan, lease.monthly_rent, duration
        )
        installments = [
            Payment(
                lease_id=lease.id,
                property_id=lease.property_id,
                tenant_id=lease.tenant_id,
                landlord_id=lease.landlord_id,
                amount=amount,
                due_date=add_months(lease.lease_start_date, number - 1),
                status=PaymentStatus.PENDING,
                verification_status=VerificationStatus.UNVERIFIED,
                is_first_payment=False,
                installment_number=number,
                payment_type=PaymentType.RENTAL,
                notes=f"Installment {number} of {len(amounts) + 1} ({lease.payment_plan.value} balance)",
            )
            for number, amount in enumerate(amounts, start=2)
        ]
        if installments:
            await self.payment_repo.add_all(installments)

        logger.info(f"Scheduled {len(installments)} installments for lease {lease_id}")
        return installments
