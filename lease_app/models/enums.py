from enum import Enum


class PropertyStatus(str, Enum):
    AVAILABLE = "available"
    PENDING = "pending"
    RENTED = "rented"
    SOLD = "sold"


class LeaseStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    RENEWAL_PENDING = "renewal_pending"
    EXPIRED = "expired"
    TERMINATED = "terminated"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class VerificationStatus(str, Enum):
    UNVERIFIED = "unverified"
    PENDING_REVIEW = "pending_review"
    VERIFIED = "verified"
    REJECTED = "rejected"


REVIEWABLE_STATUSES = (
    VerificationStatus.UNVERIFIED,
    VerificationStatus.PENDING_REVIEW,
)


class PaymentType(str, Enum):
    RENTAL = "rental"
    SALE = "sale"
    SERVICE = "service"


class PaymentPlan(str, Enum):
    FULL = "full"
    FLEXI75 = "flexi75"
    FLEXI50 = "flexi50"


class PaymentLedgerEvent(str, Enum):
    PAYMENT_APPROVED = "PAYMENT_APPROVED"
    PAYMENT_REJECTED = "PAYMENT_REJECTED"
    PAYMENT_REOPENED = "PAYMENT_REOPENED"
    PAYMENT_EDITED = "PAYMENT_EDITED"
    PAYMENT_PROOF_ATTACHED = "PAYMENT_PROOF_ATTACHED"
