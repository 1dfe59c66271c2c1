import logging
import uuid
from datetime import date, datetime

from sqlalchemy.exc import SQLAlchemyError

from core.breaker import breaker
from core.errors import (
    ConcurrencyConflict,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from core.mapper import ORMMapper
from models.enums import (
    REVIEWABLE_STATUSES,
    LeaseStatus,
    PaymentLedgerEvent,
    PaymentPlan,
    PaymentStatus,
    PaymentType,
    VerificationStatus,
)
from models.models import Lease, Payment
from models.utils import calculate_expiry, to_naive_utc, utcnow
from repos.lease_repo import LeaseRepo
from repos.payment_ledger_repo import PaymentLedgerRepository
from repos.payment_repo import PaymentRepo
from repos.property_repo import PropertyRepo
from schemas.schema import CheckoutOut, PaymentOut

from . import plan_calculator

logger = logging.getLogger(__name__)


class LeaseCheckoutService:
    def __init__(self, db):
        self.lease_repo: LeaseRepo = LeaseRepo(db)
        self.payment_repo: PaymentRepo = PaymentRepo(db)
        self.property_repo: PropertyRepo = PropertyRepo(db)
        self.ledger_repo: PaymentLedgerRepository = PaymentLedgerRepository(db)
        self.mapper: ORMMapper = ORMMapper()

    async def _get_property(self, property_id: uuid.UUID):
        prop = await self.property_repo.get_by_id(property_id)
        if not prop:
            raise NotFoundError(f"Property {property_id} not found")
        return prop

    async def _insert_payment(self, payment: Payment) -> Payment:
        try:
            return await self.payment_repo.create(payment)
        except SQLAlchemyError as e:
            logger.exception("Payment insert failed")
            raise PersistenceError(f"Could not create payment: {e}") from e

    async def create_rental_checkout(
        self,
        property_id: uuid.UUID,
        tenant_id: uuid.UUID,
        monthly_rent,
        duration_months: int,
        plan=PaymentPlan.FLEXI50,
        today: date | None = None,
    ) -> CheckoutOut:
        async def handler():
            breakdown = plan_calculator.compute(plan, monthly_rent, duration_months)
            prop = await self._get_property(property_id)

            start = today or date.today()
            label = plan_calculator.plan_label(breakdown.plan)
            lease = Lease(
                property_id=prop.id,
                tenant_id=tenant_id,
                landlord_id=prop.owner_id,
                monthly_rent=breakdown.monthly_rent,
                lease_duration_months=breakdown.duration_months,
                payment_plan=breakdown.plan,
                lease_start_date=start,
                first_payment_date=start,
                rent_expiration_date=calculate_expiry(start, breakdown.duration_months),
                status=LeaseStatus.PENDING,
                notes=f"{label} plan - Checkout initiated",
            )
            try:
                lease = await self.lease_repo.create(lease)
            except SQLAlchemyError as e:
                logger.exception("Lease insert failed")
                raise PersistenceError(f"Could not create lease: {e}") from e
            lease_id = lease.id

            payment = Payment(
                lease_id=lease_id,
                property_id=prop.id,
                tenant_id=tenant_id,
                landlord_id=prop.owner_id,
                due_date=start,
                amount=breakdown.total,
                status=PaymentStatus.PENDING,
                verification_status=VerificationStatus.PENDING_REVIEW,
                is_first_payment=True,
                installment_number=1,
                payment_type=PaymentType.RENTAL,
                notes=f"{label} - Checkout initiated",
            )
            try:
                payment = await self.payment_repo.create(payment)
            except SQLAlchemyError as e:
                logger.error(
                    f"First payment insert failed for lease {lease_id}, removing the lease: {e}"
                )
                await self._discard_lease(lease_id)
                raise PersistenceError(
                    "Could not create the first payment; the lease was discarded"
                ) from e

            logger.info(
                f"Rental checkout created lease={lease_id} payment={payment.id} "
                f"plan={breakdown.plan.value} total={breakdown.total}"
            )
            return CheckoutOut(
                lease_id=lease_id,
                payment_id=payment.id,
                amount=breakdown.total,
                breakdown=self.mapper.breakdown(breakdown),
            )

        return await breaker.call(handler)

    async def _discard_lease(self, lease_id: uuid.UUID):
        try:
            await self.lease_repo.delete(lease_id)
        except SQLAlchemyError as e:
            logger.critical(
                f"Compensating delete of lease {lease_id} failed; manual reconciliation required"
            )
            raise PersistenceError(
                f"Lease {lease_id} has no first payment and could not be removed; "
                "manual reconciliation required"
            ) from e

    async def create_sale_checkout(
        self,
        property_id: uuid.UUID,
        buyer_id: uuid.UUID,
        price,
        today: date | None = None,
    ) -> CheckoutOut:
        async def handler():
            breakdown = plan_calculator.compute_sale(price)
            prop = await self._get_property(property_id)

            payment = await self._insert_payment(
                Payment(
                    property_id=prop.id,
                    tenant_id=buyer_id,
                    landlord_id=prop.owner_id,
                    due_date=today or date.today(),
                    amount=breakdown.total,
                    status=PaymentStatus.PENDING,
                    verification_status=VerificationStatus.PENDING_REVIEW,
                    is_first_payment=False,
                    payment_type=PaymentType.SALE,
                    notes="Property sale - Checkout initiated",
                )
            )
            logger.info(f"Sale checkout created payment={payment.id} total={breakdown.total}")
            return CheckoutOut(
                payment_id=payment.id,
                amount=breakdown.total,
                breakdown=self.mapper.breakdown(breakdown),
            )

        return await breaker.call(handler)

    async def create_service_checkout(
        self,
        client_id: uuid.UUID,
        provider_id: uuid.UUID | None,
        hourly_rate,
        hours,
        service_title: str | None = None,
        today: date | None = None,
    ) -> CheckoutOut:
        async def handler():
            breakdown = plan_calculator.compute_service(hourly_rate, hours)

            payment = await self._insert_payment(
                Payment(
                    tenant_id=client_id,
                    landlord_id=provider_id,
                    due_date=today or date.today(),
                    amount=breakdown.total,
                    status=PaymentStatus.PENDING,
                    verification_status=VerificationStatus.PENDING_REVIEW,
                    is_first_payment=False,
                    payment_type=PaymentType.SERVICE,
                    notes=(
                        f"Service booking ({breakdown.hours:f} hours) - Checkout initiated. "
                        f"Service: {service_title or 'N/A'}"
                    ),
                )
            )
            logger.info(f"Service checkout created payment={payment.id} total={breakdown.total}")
            return CheckoutOut(
                payment_id=payment.id,
                amount=breakdown.total,
                breakdown=self.mapper.breakdown(breakdown),
            )

        return await breaker.call(handler)

    async def attach_payment_proof(
        self,
        payment_id: uuid.UUID,
        method: str,
        reference: str,
        payment_date: datetime | None = None,
    ) -> PaymentOut:
        async def handler():
            if not method or not method.strip():
                raise ValidationError("Payment method is required")
            if not reference or not reference.strip():
                raise ValidationError("Transaction reference is required")

            payment = await self.payment_repo.get_by_id(payment_id, fresh=True)
            if not payment:
                raise NotFoundError(f"Payment {payment_id} not found")

            previous = payment.verification_status
            if previous == VerificationStatus.VERIFIED:
                raise InvalidTransitionError(
                    f"Payment {payment_id} is already verified"
                )

            values = {
                "payment_method": method.strip(),
                "transaction_reference": reference.strip(),
                "payment_date": to_naive_utc(payment_date) or utcnow(),
            }
            if previous == VerificationStatus.REJECTED:
                # resubmission after a rejection sends the payment back to review
                expected = (VerificationStatus.REJECTED,)
                values["verification_status"] = VerificationStatus.PENDING_REVIEW
                values["status"] = PaymentStatus.PENDING
            else:
                expected = REVIEWABLE_STATUSES

            try:
                swapped = await self.payment_repo.transition_once(
                    payment_id, expected, values
                )
                if not swapped:
                    await self.payment_repo.db_rollback()
                    raise ConcurrencyConflict(
                        f"Payment {payment_id} changed while the proof was being attached"
                    )
                await self.ledger_repo.create(
                    payment_id,
                    PaymentLedgerEvent.PAYMENT_PROOF_ATTACHED,
                    old_value={"verification_status": previous.value},
                    new_value={
                        "verification_status": values.get(
                            "verification_status", previous
                        ).value,
                        "payment_method": values["payment_method"],
                        "transaction_reference": values["transaction_reference"],
                    },
                )
                await self.payment_repo.db_commit()
            except SQLAlchemyError as e:
                await self.payment_repo.db_rollback()
                logger.exception(f"Attaching proof to payment {payment_id} failed")
                raise PersistenceError(f"Could not attach payment proof: {e}") from e

            updated = await self.payment_repo.get_by_id(payment_id, fresh=True)
            logger.info(
                f"Payment proof attached payment={payment_id} "
                f"verification={updated.verification_status.value}"
            )
            return self.mapper.one(updated, PaymentOut)

        return await breaker.call(handler)
