import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from core.get_db import Base

from .enums import (
    LeaseStatus,
    PaymentPlan,
    PaymentStatus,
    PaymentType,
    PropertyStatus,
    VerificationStatus,
)
from .utils import calculate_expiry, utcnow


class Property(Base):
    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[PropertyStatus] = mapped_column(
        Enum(PropertyStatus, native_enum=False),
        nullable=False,
        default=PropertyStatus.AVAILABLE,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    leases: Mapped[List["Lease"]] = relationship(
        "Lease", back_populates="property", cascade="all, delete-orphan"
    )


class Lease(Base):
    __tablename__ = "rental_leases"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    property: Mapped["Property"] = relationship("Property", back_populates="leases")

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    landlord_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, nullable=True, index=True
    )

    monthly_rent: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    lease_duration_months: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_plan: Mapped[PaymentPlan] = mapped_column(
        Enum(PaymentPlan, native_enum=False),
        nullable=False,
        default=PaymentPlan.FLEXI50,
    )
    lease_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    first_payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    rent_expiration_date: Mapped[date] = mapped_column(
        Date, nullable=False, index=True
    )

    status: Mapped[LeaseStatus] = mapped_column(
        Enum(LeaseStatus, native_enum=False),
        nullable=False,
        default=LeaseStatus.PENDING,
        index=True,
    )
    renewed_from_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("rental_leases.id", ondelete="SET NULL"),
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    payments: Mapped[List["Payment"]] = relationship(
        "Payment", back_populates="lease", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("monthly_rent > 0", name="ck_lease_monthly_rent_positive"),
        CheckConstraint(
            "lease_duration_months >= 1", name="ck_lease_duration_positive"
        ),
    )

    def prepare_defaults(self):
        if not self.first_payment_date:
            self.first_payment_date = self.lease_start_date

        if not self.rent_expiration_date:
            self.rent_expiration_date = calculate_expiry(
                self.lease_start_date, self.lease_duration_months
            )

    @validates("monthly_rent")
    def validate_rent(self, key, value):
        if value is not None and value <= 0:
            raise ValueError("Monthly rent must be positive.")
        return value

    @validates("lease_duration_months")
    def validate_duration(self, key, value):
        if value is not None and value < 1:
            raise ValueError("Lease duration must be at least one month.")
        return value


class Payment(Base):
    __tablename__ = "rental_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    lease_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("rental_leases.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    lease: Mapped[Optional["Lease"]] = relationship("Lease", back_populates="payments")
    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("properties.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    landlord_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, nullable=True, index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, native_enum=False),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )
    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus, native_enum=False),
        nullable=False,
        default=VerificationStatus.UNVERIFIED,
        index=True,
    )
    is_first_payment: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    installment_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    payment_type: Mapped[PaymentType] = mapped_column(
        Enum(PaymentType, native_enum=False),
        nullable=False,
        default=PaymentType.RENTAL,
        index=True,
    )

    payment_method: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    transaction_reference: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    ledger: Mapped[List["PaymentLedger"]] = relationship(
        "PaymentLedger",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentLedger.id",
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        CheckConstraint(
            "NOT is_first_payment OR installment_number >= 1",
            name="ck_first_payment_has_installment",
        ),
        Index(
            "uq_first_payment_per_lease",
            "lease_id",
            unique=True,
            sqlite_where=text("is_first_payment = 1"),
            postgresql_where=text("is_first_payment"),
        ),
    )

    @validates("amount")
    def validate_amount(self, key, value):
        if value is not None and value <= 0:
            raise ValueError("Payment amount must be positive.")
        return value


class PaymentLedger(Base):
    __tablename__ = "payment_ledgers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("rental_payments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payment: Mapped["Payment"] = relationship("Payment", back_populates="ledger")

    event: Mapped[str] = mapped_column(String(100), nullable=False)
    old_value: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    new_value: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
