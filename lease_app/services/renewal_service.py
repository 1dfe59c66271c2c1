import logging
import uuid
from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from core.breaker import breaker
from core.date_helper import days_between
from core.errors import InvalidTransitionError, NotFoundError, PersistenceError
from core.mapper import ORMMapper
from models.enums import LeaseStatus, PaymentPlan
from models.models import Lease
from models.utils import calculate_expiry
from repos.lease_repo import LeaseRepo
from schemas.schema import PlanBreakdownOut, RenewalEligibilityOut

from . import plan_calculator

logger = logging.getLogger(__name__)

RENEWAL_WINDOW_DAYS = 90


def days_remaining(lease: Lease, today: date | None = None) -> int:
    return days_between(today or date.today(), lease.rent_expiration_date)


def is_eligible(lease: Lease, today: date | None = None) -> bool:
    remaining = days_remaining(lease, today)
    return lease.status == LeaseStatus.ACTIVE and 0 < remaining <= RENEWAL_WINDOW_DAYS


def days_until_eligible(lease: Lease, today: date | None = None) -> int:
    return max(0, days_remaining(lease, today) - RENEWAL_WINDOW_DAYS)


class LeaseRenewalService:
    """Renewal window checks and renewal requests for existing leases.

    A renewal is a new lease in ``renewal_pending`` that starts on the day the
    original expires. It carries rent, property, tenant and landlord over
    from the original and is linked back through ``renewed_from_id``.
    """

    def __init__(self, db):
        self.lease_repo: LeaseRepo = LeaseRepo(db)
        self.mapper: ORMMapper = ORMMapper()

    async def _get_lease(self, lease_id: uuid.UUID) -> Lease:
        lease = await self.lease_repo.get_by_id(lease_id)
        if not lease:
            raise NotFoundError(f"Lease {lease_id} not found")
        return lease

    async def is_eligible(self, lease_id: uuid.UUID, today: date | None = None) -> bool:
        lease = await self._get_lease(lease_id)
        return is_eligible(lease, today)

    async def days_until_eligible(
        self, lease_id: uuid.UUID, today: date | None = None
    ) -> int:
        lease = await self._get_lease(lease_id)
        return days_until_eligible(lease, today)

    async def eligibility(
        self, lease_id: uuid.UUID, today: date | None = None
    ) -> RenewalEligibilityOut:
        async def handler():
            lease = await self._get_lease(lease_id)
            return RenewalEligibilityOut(
                lease_id=lease.id,
                eligible=is_eligible(lease, today),
                days_remaining=days_remaining(lease, today),
                days_until_eligible=days_until_eligible(lease, today),
            )

        return await breaker.call(handler)

    async def create_renewal_request(
        self,
        lease_id: uuid.UUID,
        new_duration_months: int,
        notes: str | None = None,
        today: date | None = None,
    ) -> uuid.UUID:
        async def handler():
            months = plan_calculator.require_months(
                new_duration_months, field="new_duration_months"
            )
            original = await self._get_lease(lease_id)

            if not is_eligible(original, today):
                if original.status != LeaseStatus.ACTIVE:
                    reason = f"lease is {original.status.value}"
                else:
                    reason = (
                        f"{days_remaining(original, today)} days remain, renewal opens "
                        f"{RENEWAL_WINDOW_DAYS} days before expiry"
                    )
                raise InvalidTransitionError(
                    f"Lease {lease_id} is not eligible for renewal: {reason}"
                )

            if await self.lease_repo.has_pending_renewal(lease_id):
                raise InvalidTransitionError(
                    f"Lease {lease_id} already has a pending renewal"
                )

            start = original.rent_expiration_date
            renewal = Lease(
                property_id=original.property_id,
                tenant_id=original.tenant_id,
                landlord_id=original.landlord_id,
                monthly_rent=original.monthly_rent,
                lease_duration_months=months,
                payment_plan=original.payment_plan,
                lease_start_date=start,
                first_payment_date=start,
                rent_expiration_date=calculate_expiry(start, months),
                status=LeaseStatus.RENEWAL_PENDING,
                renewed_from_id=original.id,
                notes=(
                    f"Lease renewal request from existing lease {original.id}. "
                    f"Tenant notes: {notes or 'None'}"
                ),
            )
            try:
                renewal = await self.lease_repo.create(renewal)
            except SQLAlchemyError as e:
                logger.exception(f"Renewal insert failed for lease {lease_id}")
                raise PersistenceError(
                    f"Could not create renewal request for lease {lease_id}"
                ) from e

            logger.info(
                f"Renewal requested lease={renewal.id} from={original.id} "
                f"start={start} months={months}"
            )
            return renewal.id

        return await breaker.call(handler)

    async def quote_renewal(
        self,
        lease_id: uuid.UUID,
        new_duration_months: int,
        plan: PaymentPlan = PaymentPlan.FLEXI50,
    ) -> PlanBreakdownOut:
        async def handler():
            lease = await self._get_lease(lease_id)
            breakdown = plan_calculator.compute(
                plan, lease.monthly_rent, new_duration_months, renewal=True
            )
            return self.mapper.breakdown(breakdown)

        return await breaker.call(handler)
