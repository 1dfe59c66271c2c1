import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from core.errors import (
    ConcurrencyConflict,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from models.enums import (
    LeaseStatus,
    PaymentLedgerEvent,
    PaymentStatus,
    PropertyStatus,
    VerificationStatus,
)
from models.models import Lease, Payment, Property
from repos.payment_ledger_repo import PaymentLedgerRepository
from repos.payment_repo import PaymentRepo
from services.checkout_service import LeaseCheckoutService
from services.verification_service import PaymentVerificationService

pytestmark = pytest.mark.anyio


@pytest.fixture
def checkout(db, make_property):
    async def _checkout(months=12, start=date(2024, 1, 15), plan="flexi50"):
        prop = await make_property()
        out = await LeaseCheckoutService(db).create_rental_checkout(
            prop.id, uuid.uuid4(), 1000, months, plan, today=start
        )
        return prop, out

    return _checkout


async def _reload(session, model, pk):
    return await session.get(model, pk, populate_existing=True)


async def test_approve_activates_lease_and_rents_property(db, checkout):
    prop, out = await checkout()

    result = await PaymentVerificationService(db).approve(out.payment_id, "Matched bank alert")

    assert result.changed is True
    assert result.lease_activated is True
    assert result.installments_created == 11
    payment = await _reload(db, Payment, out.payment_id)
    assert payment.status == PaymentStatus.COMPLETED
    assert payment.verification_status == VerificationStatus.VERIFIED
    assert payment.notes.endswith("Matched bank alert")
    assert (await _reload(db, Lease, out.lease_id)).status == LeaseStatus.ACTIVE
    assert (await _reload(db, Property, prop.id)).status == PropertyStatus.RENTED


async def test_approve_schedules_installments(db, checkout):
    _, out = await checkout(months=3, start=date(2024, 1, 31))

    await PaymentVerificationService(db).approve(out.payment_id)

    payments = await PaymentRepo(db).get_for_lease(out.lease_id)
    assert [p.installment_number for p in payments] == [1, 2, 3]
    assert [p.due_date for p in payments[1:]] == [date(2024, 2, 29), date(2024, 3, 31)]
    for p in payments[1:]:
        assert p.amount == Decimal("750.00")
        assert p.status == PaymentStatus.PENDING
        assert p.verification_status == VerificationStatus.UNVERIFIED
        assert p.is_first_payment is False


@pytest.mark.parametrize(
    "plan,contract_total,installment",
    [
        ("full", Decimal("13960.00"), None),
        ("flexi75", Decimal("14200.00"), Decimal("272.72")),
        ("flexi50", Decimal("14440.00"), Decimal("545.45")),
    ],
)
async def test_lease_payments_add_up_to_the_plan(db, checkout, plan, contract_total, installment):
    # full amount plus deposit plus commission, nothing more
    _, out = await checkout(plan=plan)

    await PaymentVerificationService(db).approve(out.payment_id)

    payments = await PaymentRepo(db).get_for_lease(out.lease_id)
    assert sum(p.amount for p in payments) == contract_total
    assert payments[0].amount == out.breakdown.total
    if installment is None:
        assert len(payments) == 1
    else:
        assert len(payments) == 12
        assert {p.amount for p in payments[1:-1]} == {installment}
        assert payments[-1].amount >= installment


async def test_approve_twice_is_a_noop(db, checkout):
    prop, out = await checkout()
    prop_id = prop.id
    service = PaymentVerificationService(db)
    await service.approve(out.payment_id)
    lease_stamp = (await _reload(db, Lease, out.lease_id)).updated_at
    prop_stamp = (await _reload(db, Property, prop_id)).updated_at

    again = await service.approve(out.payment_id)

    assert again.changed is False
    assert again.verification_status == VerificationStatus.VERIFIED
    assert len(await PaymentRepo(db).get_for_lease(out.lease_id)) == 12
    ledger = await PaymentLedgerRepository(db).get_for_payment(out.payment_id)
    assert [row.event for row in ledger] == [PaymentLedgerEvent.PAYMENT_APPROVED.value]
    assert (await _reload(db, Lease, out.lease_id)).updated_at == lease_stamp
    assert (await _reload(db, Property, prop_id)).updated_at == prop_stamp


async def test_approve_unknown_payment(db):
    with pytest.raises(NotFoundError):
        await PaymentVerificationService(db).approve(uuid.uuid4())


async def test_approve_rejected_payment_needs_reopen(db, checkout):
    _, out = await checkout()
    service = PaymentVerificationService(db)
    await service.reject(out.payment_id)

    with pytest.raises(InvalidTransitionError):
        await service.approve(out.payment_id)


async def test_approve_standalone_sale_payment(db, make_property):
    prop = await make_property()
    out = await LeaseCheckoutService(db).create_sale_checkout(prop.id, uuid.uuid4(), 50000)

    result = await PaymentVerificationService(db).approve(out.payment_id)

    assert result.changed is True
    assert result.lease_activated is False
    assert (await _reload(db, Property, prop.id)).status == PropertyStatus.AVAILABLE


async def test_failed_cascade_rolls_back_everything(db, checkout, monkeypatch):
    prop, out = await checkout()
    prop_id = prop.id
    service = PaymentVerificationService(db)

    async def broken_set_status(*args, **kwargs):
        raise OperationalError("UPDATE properties", {}, Exception("database is locked"))

    monkeypatch.setattr(service.property_repo, "set_status", broken_set_status)

    with pytest.raises(PersistenceError):
        await service.approve(out.payment_id)

    payment = await _reload(db, Payment, out.payment_id)
    assert payment.verification_status == VerificationStatus.PENDING_REVIEW
    assert payment.status == PaymentStatus.PENDING
    assert (await _reload(db, Lease, out.lease_id)).status == LeaseStatus.PENDING
    assert (await _reload(db, Property, prop_id)).status == PropertyStatus.AVAILABLE
    assert len(await PaymentRepo(db).get_for_lease(out.lease_id)) == 1
    assert await PaymentLedgerRepository(db).get_for_payment(out.payment_id) == []


async def test_reject_leaves_lease_pending(db, checkout):
    prop, out = await checkout()

    result = await PaymentVerificationService(db).reject(out.payment_id)

    assert result.changed is True
    payment = await _reload(db, Payment, out.payment_id)
    assert payment.verification_status == VerificationStatus.REJECTED
    assert payment.status == PaymentStatus.PENDING
    assert payment.notes.endswith("Payment rejected by admin")
    assert (await _reload(db, Lease, out.lease_id)).status == LeaseStatus.PENDING
    assert (await _reload(db, Property, prop.id)).status == PropertyStatus.AVAILABLE


async def test_reject_twice_is_a_noop(db, checkout):
    _, out = await checkout()
    service = PaymentVerificationService(db)
    await service.reject(out.payment_id, "Blurry receipt")

    again = await service.reject(out.payment_id, "Blurry receipt")

    assert again.changed is False
    ledger = await PaymentLedgerRepository(db).get_for_payment(out.payment_id)
    assert len(ledger) == 1


async def test_reject_verified_payment(db, checkout):
    _, out = await checkout()
    service = PaymentVerificationService(db)
    await service.approve(out.payment_id)

    lenient = await service.reject(out.payment_id)
    assert lenient.changed is False
    assert lenient.verification_status == VerificationStatus.VERIFIED

    with pytest.raises(InvalidTransitionError):
        await service.reject(out.payment_id, strict=True)


async def test_reject_then_resubmit_then_approve(db, checkout):
    _, out = await checkout()
    service = PaymentVerificationService(db)
    await service.reject(out.payment_id, "Amount does not match")

    await LeaseCheckoutService(db).attach_payment_proof(out.payment_id, "bank_transfer", "TRX-9")
    result = await service.approve(out.payment_id)

    assert result.changed is True
    assert (await _reload(db, Lease, out.lease_id)).status == LeaseStatus.ACTIVE
    ledger = await PaymentLedgerRepository(db).get_for_payment(out.payment_id)
    assert [row.event for row in ledger] == [
        PaymentLedgerEvent.PAYMENT_REJECTED.value,
        PaymentLedgerEvent.PAYMENT_PROOF_ATTACHED.value,
        PaymentLedgerEvent.PAYMENT_APPROVED.value,
    ]


async def test_reopen(db, checkout):
    _, out = await checkout()
    service = PaymentVerificationService(db)
    await service.reject(out.payment_id)

    result = await service.reopen(out.payment_id, "Tenant called in")

    assert result.changed is True
    assert result.verification_status == VerificationStatus.PENDING_REVIEW
    assert (await service.approve(out.payment_id)).lease_activated is True


async def test_reopen_requires_rejected_payment(db, checkout):
    _, out = await checkout()

    with pytest.raises(InvalidTransitionError):
        await PaymentVerificationService(db).reopen(out.payment_id)


async def test_concurrent_approvals_cascade_once(db, session_factory, checkout, monkeypatch):
    _, out = await checkout()
    service = PaymentVerificationService(db)
    original_get = service.payment_repo.get_by_id
    reads = 0

    async def get_then_lose_race(payment_id, fresh=False):
        nonlocal reads
        payment = await original_get(payment_id, fresh=fresh)
        reads += 1
        if reads == 1:
            async with session_factory() as other:
                await PaymentVerificationService(other).approve(payment_id)
        return payment

    monkeypatch.setattr(service.payment_repo, "get_by_id", get_then_lose_race)

    result = await service.approve(out.payment_id)

    assert result.changed is False
    assert result.verification_status == VerificationStatus.VERIFIED
    async with session_factory() as fresh:
        assert len(await PaymentRepo(fresh).get_for_lease(out.lease_id)) == 12
        ledger = await PaymentLedgerRepository(fresh).get_for_payment(out.payment_id)
        assert len(ledger) == 1


async def test_approve_losing_to_reject_conflicts(db, session_factory, checkout, monkeypatch):
    _, out = await checkout()
    service = PaymentVerificationService(db)
    original_get = service.payment_repo.get_by_id
    reads = 0

    async def get_then_lose_race(payment_id, fresh=False):
        nonlocal reads
        payment = await original_get(payment_id, fresh=fresh)
        reads += 1
        if reads == 1:
            async with session_factory() as other:
                await PaymentVerificationService(other).reject(payment_id)
        return payment

    monkeypatch.setattr(service.payment_repo, "get_by_id", get_then_lose_race)

    with pytest.raises(ConcurrencyConflict):
        await service.approve(out.payment_id)

    async with session_factory() as fresh:
        lease = await fresh.get(Lease, out.lease_id)
        assert lease.status == LeaseStatus.PENDING


async def test_edit_updates_fields_and_writes_ledger(db, checkout):
    _, out = await checkout()

    edited = await PaymentVerificationService(db).edit(
        out.payment_id, {"amount": "8500.00", "transaction_reference": "TRX-77"}
    )

    assert edited.amount == Decimal("8500.00")
    assert edited.transaction_reference == "TRX-77"
    assert edited.verification_status == VerificationStatus.PENDING_REVIEW
    ledger = await PaymentLedgerRepository(db).get_for_payment(out.payment_id)
    assert ledger[-1].event == PaymentLedgerEvent.PAYMENT_EDITED.value
    assert ledger[-1].old_value == {"amount": "8440.00", "transaction_reference": None}
    assert ledger[-1].new_value == {"amount": "8500.00", "transaction_reference": "TRX-77"}


async def test_edit_converts_aware_payment_date_to_utc(db, checkout):
    _, out = await checkout()

    await PaymentVerificationService(db).edit(
        out.payment_id, {"payment_date": "2024-05-01T10:00:00+05:00"}
    )

    payment = await _reload(db, Payment, out.payment_id)
    assert payment.payment_date == datetime(2024, 5, 1, 5, 0)
    ledger = await PaymentLedgerRepository(db).get_for_payment(out.payment_id)
    assert ledger[-1].new_value == {"payment_date": "2024-05-01T05:00:00"}


@pytest.mark.parametrize(
    "fields",
    [
        {},
        {"amount": 0},
        {"amount": "-10"},
        {"amount": None},
        {"verification_status": "verified"},
        {"status": "completed"},
        {"lease_id": str(uuid.uuid4())},
    ],
)
async def test_edit_rejects_bad_input(db, checkout, fields):
    _, out = await checkout()

    with pytest.raises(ValidationError):
        await PaymentVerificationService(db).edit(out.payment_id, fields)

    payment = await _reload(db, Payment, out.payment_id)
    assert payment.amount == Decimal("8440.00")
    assert payment.verification_status == VerificationStatus.PENDING_REVIEW


async def test_edit_unknown_payment(db):
    with pytest.raises(NotFoundError):
        await PaymentVerificationService(db).edit(uuid.uuid4(), {"notes": "x"})


async def test_list_for_review(db, checkout):
    _, first = await checkout()
    _, second = await checkout()
    service = PaymentVerificationService(db)
    await service.approve(first.payment_id)

    pending = await service.list_for_review()
    verified = await service.list_for_review(verified=True)

    assert second.payment_id in {p.id for p in pending}
    assert first.payment_id not in {p.id for p in pending}
    assert {p.id for p in verified} == {first.payment_id}
