"""Reviewer decisions on payments and their effect on leases and properties.

A payment moves ``unverified -> pending_review -> verified | rejected``.
Both outcomes are terminal; a rejected payment only comes back to review
through :meth:`PaymentVerificationService.reopen` (or a tenant resubmitting
proof). Every decision is a compare-and-swap on ``verification_status``, so
two reviewers acting at once can never apply the lease/property cascade
twice.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError

from core.breaker import breaker
from core.errors import (
    ConcurrencyConflict,
    InvalidTransitionError,
    LeaseEngineError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from core.mapper import ORMMapper
from models.enums import (
    REVIEWABLE_STATUSES,
    LeaseStatus,
    PaymentLedgerEvent,
    PaymentStatus,
    PropertyStatus,
    VerificationStatus,
)
from models.models import Payment
from repos.lease_repo import LeaseRepo
from repos.payment_ledger_repo import PaymentLedgerRepository
from repos.payment_repo import PaymentRepo
from repos.property_repo import PropertyRepo
from schemas.schema import PaymentEditSchema, PaymentOut, VerificationOutcome

from .installment_service import InstallmentScheduler

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_NOTE = "Payment rejected by admin"

# amounts go into the ledger as exact strings, not floats
LEDGER_ENCODERS = {Decimal: str}


def append_notes(existing: Optional[str], new: Optional[str]) -> Optional[str]:
    if not new or not new.strip():
        return existing
    if not existing:
        return new.strip()
    return f"{existing}\n{new.strip()}"


class PaymentVerificationService:
    def __init__(self, db, scheduler: InstallmentScheduler | None = None):
        self.payment_repo: PaymentRepo = PaymentRepo(db)
        self.lease_repo: LeaseRepo = LeaseRepo(db)
        self.property_repo: PropertyRepo = PropertyRepo(db)
        self.ledger_repo: PaymentLedgerRepository = PaymentLedgerRepository(db)
        self.scheduler: InstallmentScheduler = scheduler or InstallmentScheduler(db)
        self.mapper: ORMMapper = ORMMapper()

    async def _get_payment(self, payment_id: uuid.UUID) -> Payment:
        payment = await self.payment_repo.get_by_id(payment_id, fresh=True)
        if not payment:
            raise NotFoundError(f"Payment {payment_id} not found")
        return payment

    def _outcome(self, payment: Payment, changed: bool, **extra) -> VerificationOutcome:
        return VerificationOutcome(
            payment_id=payment.id,
            status=payment.status,
            verification_status=payment.verification_status,
            changed=changed,
            **extra,
        )

    async def _settle_race(
        self, payment_id: uuid.UUID, intended: VerificationStatus
    ) -> VerificationOutcome:
        current = await self._get_payment(payment_id)
        if current.verification_status == intended:
            logger.info(
                f"Payment {payment_id} was already moved to {intended.value} by another reviewer"
            )
            return self._outcome(current, changed=False)

        logger.warning(
            f"Review conflict on payment {payment_id}: wanted {intended.value}, "
            f"found {current.verification_status.value}"
        )
        raise ConcurrencyConflict(
            f"Payment {payment_id} is now {current.verification_status.value}; "
            f"it cannot be moved to {intended.value}"
        )

    async def _activate_tenancy(self, payment: Payment) -> int:
        lease = await self.lease_repo.get_by_id(payment.lease_id)
        if not lease:
            raise NotFoundError(
                f"Lease {payment.lease_id} referenced by payment {payment.id} not found"
            )

        await self.lease_repo.set_status(lease.id, LeaseStatus.ACTIVE)
        property_id = lease.property_id or payment.property_id
        await self.property_repo.set_status(property_id, PropertyStatus.RENTED)

        installments = await self.scheduler.generate(lease.id)
        logger.info(
            f"Lease {lease.id} activated and property {property_id} marked rented"
        )
        return len(installments)

    async def approve(
        self, payment_id: uuid.UUID, notes: str | None = None
    ) -> VerificationOutcome:
        async def handler():
            payment = await self._get_payment(payment_id)
            previous = payment.verification_status

            if previous == VerificationStatus.VERIFIED:
                logger.info(f"Payment {payment_id} already verified, nothing to do")
                return self._outcome(payment, changed=False)
            if previous == VerificationStatus.REJECTED:
                raise InvalidTransitionError(
                    f"Payment {payment_id} was rejected; reopen it before approving"
                )

            values = {
                "status": PaymentStatus.COMPLETED,
                "verification_status": VerificationStatus.VERIFIED,
                "notes": append_notes(payment.notes, notes),
            }
            cascades = bool(payment.is_first_payment and payment.lease_id)

            try:
                # payment first, then lease, then property, one commit
                swapped = await self.payment_repo.transition_once(
                    payment_id, REVIEWABLE_STATUSES, values
                )
                if not swapped:
                    await self.payment_repo.db_rollback()
                    return await self._settle_race(
                        payment_id, VerificationStatus.VERIFIED
                    )

                installments = 0
                if cascades:
                    installments = await self._activate_tenancy(payment)

                await self.ledger_repo.create(
                    payment_id,
                    PaymentLedgerEvent.PAYMENT_APPROVED,
                    old_value={"verification_status": previous.value},
                    new_value={
                        "verification_status": VerificationStatus.VERIFIED.value,
                        "lease_activated": cascades,
                    },
                )
                await self.payment_repo.db_commit()
            except LeaseEngineError:
                await self.payment_repo.db_rollback()
                raise
            except SQLAlchemyError as e:
                await self.payment_repo.db_rollback()
                logger.exception(f"Approving payment {payment_id} failed, rolled back")
                raise PersistenceError(
                    f"Could not approve payment {payment_id}; no changes were saved"
                ) from e

            approved = await self._get_payment(payment_id)
            logger.info(f"Payment {payment_id} approved")
            return self._outcome(
                approved,
                changed=True,
                lease_activated=cascades,
                installments_created=installments,
            )

        return await breaker.call(handler)

    async def reject(
        self, payment_id: uuid.UUID, notes: str | None = None, strict: bool = False
    ) -> VerificationOutcome:
        async def handler():
            payment = await self._get_payment(payment_id)
            previous = payment.verification_status

            if previous == VerificationStatus.REJECTED:
                logger.info(f"Payment {payment_id} already rejected, nothing to do")
                return self._outcome(payment, changed=False)
            if previous == VerificationStatus.VERIFIED:
                if strict:
                    raise InvalidTransitionError(
                        f"Payment {payment_id} is already verified and cannot be rejected"
                    )
                logger.info(f"Ignoring rejection of verified payment {payment_id}")
                return self._outcome(payment, changed=False)

            values = {
                "status": PaymentStatus.PENDING,
                "verification_status": VerificationStatus.REJECTED,
                "notes": append_notes(payment.notes, notes or DEFAULT_REJECTION_NOTE),
            }
            try:
                swapped = await self.payment_repo.transition_once(
                    payment_id, REVIEWABLE_STATUSES, values
                )
                if not swapped:
                    await self.payment_repo.db_rollback()
                    return await self._settle_race(
                        payment_id, VerificationStatus.REJECTED
                    )

                await self.ledger_repo.create(
                    payment_id,
                    PaymentLedgerEvent.PAYMENT_REJECTED,
                    old_value={"verification_status": previous.value},
                    new_value={
                        "verification_status": VerificationStatus.REJECTED.value,
                        "notes": notes or DEFAULT_REJECTION_NOTE,
                    },
                )
                await self.payment_repo.db_commit()
            except SQLAlchemyError as e:
                await self.payment_repo.db_rollback()
                logger.exception(f"Rejecting payment {payment_id} failed, rolled back")
                raise PersistenceError(
                    f"Could not reject payment {payment_id}; no changes were saved"
                ) from e

            rejected = await self._get_payment(payment_id)
            logger.info(f"Payment {payment_id} rejected")
            return self._outcome(rejected, changed=True)

        return await breaker.call(handler)

    async def reopen(
        self, payment_id: uuid.UUID, notes: str | None = None
    ) -> VerificationOutcome:
        async def handler():
            payment = await self._get_payment(payment_id)
            if payment.verification_status != VerificationStatus.REJECTED:
                raise InvalidTransitionError(
                    f"Only rejected payments can be reopened, payment {payment_id} is "
                    f"{payment.verification_status.value}"
                )

            values = {
                "status": PaymentStatus.PENDING,
                "verification_status": VerificationStatus.PENDING_REVIEW,
                "notes": append_notes(payment.notes, notes),
            }
            try:
                swapped = await self.payment_repo.transition_once(
                    payment_id, (VerificationStatus.REJECTED,), values
                )
                if not swapped:
                    await self.payment_repo.db_rollback()
                    return await self._settle_race(
                        payment_id, VerificationStatus.PENDING_REVIEW
                    )

                await self.ledger_repo.create(
                    payment_id,
                    PaymentLedgerEvent.PAYMENT_REOPENED,
                    old_value={"verification_status": VerificationStatus.REJECTED.value},
                    new_value={
                        "verification_status": VerificationStatus.PENDING_REVIEW.value
                    },
                )
                await self.payment_repo.db_commit()
            except SQLAlchemyError as e:
                await self.payment_repo.db_rollback()
                logger.exception(f"Reopening payment {payment_id} failed, rolled back")
                raise PersistenceError(
                    f"Could not reopen payment {payment_id}; no changes were saved"
                ) from e

            reopened = await self._get_payment(payment_id)
            logger.info(f"Payment {payment_id} reopened for review")
            return self._outcome(reopened, changed=True)

        return await breaker.call(handler)

    async def edit(self, payment_id: uuid.UUID, fields: dict) -> PaymentOut:
        async def handler():
            try:
                changes = PaymentEditSchema.model_validate(fields).model_dump(
                    exclude_unset=True
                )
            except SchemaValidationError as e:
                raise ValidationError(f"Invalid payment edit: {e.errors()}")
            if not changes:
                raise ValidationError("No editable fields supplied")
            if "amount" in changes and changes["amount"] is None:
                raise ValidationError("Amount cannot be cleared")

            payment = await self._get_payment(payment_id)
            before = {field: getattr(payment, field) for field in changes}

            try:
                await self.payment_repo.update_fields(payment_id, changes)
                await self.ledger_repo.create(
                    payment_id,
                    PaymentLedgerEvent.PAYMENT_EDITED,
                    old_value=jsonable_encoder(before, custom_encoder=LEDGER_ENCODERS),
                    new_value=jsonable_encoder(changes, custom_encoder=LEDGER_ENCODERS),
                )
                await self.payment_repo.db_commit()
            except SQLAlchemyError as e:
                await self.payment_repo.db_rollback()
                logger.exception(f"Editing payment {payment_id} failed, rolled back")
                raise PersistenceError(
                    f"Could not edit payment {payment_id}; no changes were saved"
                ) from e

            edited = await self._get_payment(payment_id)
            logger.info(f"Payment {payment_id} edited: {sorted(changes)}")
            return self.mapper.one(edited, PaymentOut)

        return await breaker.call(handler)

    async def list_for_review(self, verified: bool = False) -> list[PaymentOut]:
        async def handler():
            statuses = (
                (VerificationStatus.VERIFIED,) if verified else REVIEWABLE_STATUSES
            )
            payments = await self.payment_repo.get_by_verification_status(statuses)
            return self.mapper.many(payments, PaymentOut)

        return await breaker.call(handler)
