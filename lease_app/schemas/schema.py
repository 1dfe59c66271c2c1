from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from models.enums import (
    PaymentPlan,
    PaymentStatus,
    PaymentType,
    VerificationStatus,
)
from models.utils import to_naive_utc


class RentalCheckoutSchema(BaseModel):
    property_id: uuid.UUID
    tenant_id: uuid.UUID
    monthly_rent: Decimal
    duration_months: int
    plan: PaymentPlan = PaymentPlan.FLEXI50


class SaleCheckoutSchema(BaseModel):
    property_id: uuid.UUID
    buyer_id: uuid.UUID
    price: Decimal


class ServiceCheckoutSchema(BaseModel):
    client_id: uuid.UUID
    provider_id: Optional[uuid.UUID] = None
    hourly_rate: Decimal
    hours: Decimal
    service_title: Optional[str] = None


class PaymentProofSchema(BaseModel):
    payment_method: str
    transaction_reference: str
    payment_date: Optional[datetime] = None

    @field_validator("payment_date")
    @classmethod
    def normalize_payment_date(cls, value):
        return to_naive_utc(value)


class ReviewDecisionSchema(BaseModel):
    notes: Optional[str] = None


class RejectDecisionSchema(ReviewDecisionSchema):
    strict: bool = False


class PaymentEditSchema(BaseModel):
    amount: Optional[Decimal] = Field(default=None, gt=0)
    payment_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    transaction_reference: Optional[str] = None
    notes: Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value):
        if value is not None and not value.is_finite():
            raise ValueError("Amount must be a finite number.")
        return value

    @field_validator("payment_date")
    @classmethod
    def normalize_payment_date(cls, value):
        return to_naive_utc(value)


class RenewalRequestSchema(BaseModel):
    new_duration_months: int = Field(default=12)
    notes: Optional[str] = None


class PlanBreakdownOut(BaseModel):
    plan: PaymentPlan
    monthly_rent: Decimal
    duration_months: int
    full_amount: Decimal
    upfront: Decimal
    deposit: Decimal
    commission: Decimal
    total: Decimal
    model_config = {"from_attributes": True}


class SaleBreakdownOut(BaseModel):
    price: Decimal
    commission: Decimal
    total: Decimal
    model_config = {"from_attributes": True}


class ServiceBreakdownOut(BaseModel):
    hourly_rate: Decimal
    hours: Decimal
    base: Decimal
    commission: Decimal
    total: Decimal
    model_config = {"from_attributes": True}


class CheckoutOut(BaseModel):
    lease_id: Optional[uuid.UUID] = None
    payment_id: uuid.UUID
    amount: Decimal
    breakdown: Union[PlanBreakdownOut, SaleBreakdownOut, ServiceBreakdownOut]


class PaymentOut(BaseModel):
    id: uuid.UUID
    lease_id: Optional[uuid.UUID] = None
    property_id: Optional[uuid.UUID] = None
    tenant_id: uuid.UUID
    landlord_id: Optional[uuid.UUID] = None
    amount: Decimal
    due_date: date
    payment_date: Optional[datetime] = None
    status: PaymentStatus
    verification_status: VerificationStatus
    is_first_payment: bool
    installment_number: Optional[int] = None
    payment_type: PaymentType
    payment_method: Optional[str] = None
    transaction_reference: Optional[str] = None
    notes: Optional[str] = None
    model_config = {"from_attributes": True}


class VerificationOutcome(BaseModel):
    payment_id: uuid.UUID
    status: PaymentStatus
    verification_status: VerificationStatus
    changed: bool
    lease_activated: bool = False
    installments_created: int = 0


class RenewalEligibilityOut(BaseModel):
    lease_id: uuid.UUID
    eligible: bool
    days_remaining: int
    days_until_eligible: int


class PaymentListOut(BaseModel):
    items: List[PaymentOut]
    count: int


class RenewalCreatedOut(BaseModel):
    lease_id: uuid.UUID
    renewed_from_id: uuid.UUID
