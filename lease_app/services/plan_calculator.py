"""Monetary breakdowns for rental plans, sales and service bookings.

Everything here is a pure function of its inputs. Amounts are handled as
``Decimal`` and only quantized to currency precision at the end, so
``total == upfront + deposit + commission`` holds exactly.
"""

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

from core.errors import ValidationError
from core.validate_enum import validate_enum
from models.enums import PaymentPlan

CENT = Decimal("0.01")

SALE_COMMISSION_RATE = Decimal("0.05")
SERVICE_COMMISSION_RATE = Decimal("0.10")


@dataclass(frozen=True)
class PlanTerms:
    upfront_fraction: Decimal
    commission_rate: Decimal
    label: str


PLAN_TERMS = {
    PaymentPlan.FULL: PlanTerms(Decimal("1.00"), Decimal("0.08"), "Full Payment (100%, 8%)"),
    PaymentPlan.FLEXI75: PlanTerms(Decimal("0.75"), Decimal("0.10"), "Flexi75 (75%, 10%)"),
    PaymentPlan.FLEXI50: PlanTerms(Decimal("0.50"), Decimal("0.12"), "Flexi50 (50%, 12%)"),
}


@dataclass(frozen=True)
class PlanBreakdown:
    plan: PaymentPlan
    monthly_rent: Decimal
    duration_months: int
    full_amount: Decimal
    upfront: Decimal
    deposit: Decimal
    commission: Decimal
    total: Decimal


@dataclass(frozen=True)
class SaleBreakdown:
    price: Decimal
    commission: Decimal
    total: Decimal


@dataclass(frozen=True)
class ServiceBreakdown:
    hourly_rate: Decimal
    hours: Decimal
    base: Decimal
    commission: Decimal
    total: Decimal


def _money(value) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value, *, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return amount


def require_positive(value, *, field: str) -> Decimal:
    amount = to_decimal(value, field=field)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return amount


def require_months(value, *, field: str = "duration_months") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number of months")
    if value < 1:
        raise ValidationError(f"{field} must be at least 1")
    return value


def plan_label(plan) -> str:
    return PLAN_TERMS[validate_enum(plan, PaymentPlan, field="plan")].label


def compute(plan, monthly_rent, duration_months, renewal: bool = False) -> PlanBreakdown:
    plan = validate_enum(plan, PaymentPlan, field="plan")
    rent = require_positive(monthly_rent, field="monthly_rent")
    months = require_months(duration_months)
    terms = PLAN_TERMS[plan]

    full_amount = _money(rent * months)
    upfront = _money(full_amount * terms.upfront_fraction)
    # renewals carry the existing deposit over
    deposit = Decimal("0.00") if renewal else _money(rent)
    commission = _money(full_amount * terms.commission_rate)

    return PlanBreakdown(
        plan=plan,
        monthly_rent=_money(rent),
        duration_months=months,
        full_amount=full_amount,
        upfront=upfront,
        deposit=deposit,
        commission=commission,
        total=upfront + deposit + commission,
    )


def compute_sale(price) -> SaleBreakdown:
    price = _money(require_positive(price, field="price"))
    commission = _money(price * SALE_COMMISSION_RATE)
    return SaleBreakdown(price=price, commission=commission, total=price + commission)


def compute_service(hourly_rate, hours) -> ServiceBreakdown:
    rate = require_positive(hourly_rate, field="hourly_rate")
    hours = require_positive(hours, field="hours")
    base = _money(rate * hours)
    commission = _money(base * SERVICE_COMMISSION_RATE)
    return ServiceBreakdown(
        hourly_rate=_money(rate),
        hours=hours,
        base=base,
        commission=commission,
        total=base + commission,
    )


def installment_amounts(plan, monthly_rent, duration_months) -> list[Decimal]:
    """Split the part of the rent not covered upfront across installments 2..n.

    Each row gets the balance divided evenly and rounded down to the cent;
    the leftover cents go on the last row. A full plan leaves nothing to
    bill. A one-month lease on a flexi plan, or a balance too small to split
    into cents, is billed as a single installment.
    """
    breakdown = compute(plan, monthly_rent, duration_months)
    balance = breakdown.full_amount - breakdown.upfront
    if balance <= 0:
        return []

    count = max(breakdown.duration_months - 1, 1)
    share = (balance / count).quantize(CENT, rounding=ROUND_DOWN)
    if share == 0:
        return [balance]
    return [share] * (count - 1) + [balance - share * (count - 1)]
