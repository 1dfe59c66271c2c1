"""create lease and payment tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:12:41.318204
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Enum columns store member names, as the models do
property_status_enum = sa.Enum(
    "AVAILABLE", "PENDING", "RENTED", "SOLD",
    name="propertystatus",
    native_enum=False,
)
lease_status_enum = sa.Enum(
    "PENDING", "ACTIVE", "RENEWAL_PENDING", "EXPIRED", "TERMINATED",
    name="leasestatus",
    native_enum=False,
)
payment_status_enum = sa.Enum(
    "PENDING", "COMPLETED", "OVERDUE", "CANCELLED",
    name="paymentstatus",
    native_enum=False,
)
verification_status_enum = sa.Enum(
    "UNVERIFIED", "PENDING_REVIEW", "VERIFIED", "REJECTED",
    name="verificationstatus",
    native_enum=False,
)
payment_type_enum = sa.Enum(
    "RENTAL", "SALE", "SERVICE",
    name="paymenttype",
    native_enum=False,
)


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "properties",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("status", property_status_enum, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_properties_owner_id", "properties", ["owner_id"])
    op.create_index("ix_properties_status", "properties", ["status"])

    op.create_table(
        "rental_leases",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("landlord_id", sa.Uuid(), nullable=True),
        sa.Column("monthly_rent", sa.Numeric(12, 2), nullable=False),
        sa.Column("lease_duration_months", sa.Integer(), nullable=False),
        sa.Column("lease_start_date", sa.Date(), nullable=False),
        sa.Column("first_payment_date", sa.Date(), nullable=True),
        sa.Column("rent_expiration_date", sa.Date(), nullable=False),
        sa.Column("status", lease_status_enum, nullable=False),
        sa.Column("renewed_from_id", sa.Uuid(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("monthly_rent > 0", name="ck_lease_monthly_rent_positive"),
        sa.CheckConstraint(
            "lease_duration_months >= 1", name="ck_lease_duration_positive"
        ),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["renewed_from_id"], ["rental_leases.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_rental_leases_property_id", "rental_leases", ["property_id"])
    op.create_index("ix_rental_leases_tenant_id", "rental_leases", ["tenant_id"])
    op.create_index("ix_rental_leases_landlord_id", "rental_leases", ["landlord_id"])
    op.create_index("ix_rental_leases_status", "rental_leases", ["status"])
    op.create_index(
        "ix_rental_leases_rent_expiration_date",
        "rental_leases",
        ["rent_expiration_date"],
    )

    op.create_table(
        "rental_payments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("lease_id", sa.Uuid(), nullable=True),
        sa.Column("property_id", sa.Uuid(), nullable=True),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("landlord_id", sa.Uuid(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("payment_date", sa.DateTime(), nullable=True),
        sa.Column("status", payment_status_enum, nullable=False),
        sa.Column("verification_status", verification_status_enum, nullable=False),
        sa.Column("is_first_payment", sa.Boolean(), nullable=False),
        sa.Column("installment_number", sa.Integer(), nullable=True),
        sa.Column("payment_type", payment_type_enum, nullable=False),
        sa.Column("payment_method", sa.String(length=120), nullable=True),
        sa.Column("transaction_reference", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        sa.CheckConstraint(
            "NOT is_first_payment OR installment_number >= 1",
            name="ck_first_payment_has_installment",
        ),
        sa.ForeignKeyConstraint(["lease_id"], ["rental_leases.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_rental_payments_lease_id", "rental_payments", ["lease_id"])
    op.create_index("ix_rental_payments_property_id", "rental_payments", ["property_id"])
    op.create_index("ix_rental_payments_tenant_id", "rental_payments", ["tenant_id"])
    op.create_index("ix_rental_payments_landlord_id", "rental_payments", ["landlord_id"])
    op.create_index("ix_rental_payments_status", "rental_payments", ["status"])
    op.create_index(
        "ix_rental_payments_verification_status",
        "rental_payments",
        ["verification_status"],
    )
    op.create_index("ix_rental_payments_payment_type", "rental_payments", ["payment_type"])
    op.create_index(
        "uq_first_payment_per_lease",
        "rental_payments",
        ["lease_id"],
        unique=True,
        sqlite_where=sa.text("is_first_payment = 1"),
        postgresql_where=sa.text("is_first_payment"),
    )

    op.create_table(
        "payment_ledgers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("payment_id", sa.Uuid(), nullable=False),
        sa.Column("event", sa.String(length=100), nullable=False),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["payment_id"], ["rental_payments.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payment_ledgers_payment_id", "payment_ledgers", ["payment_id"])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_payment_ledgers_payment_id", table_name="payment_ledgers")
    op.drop_table("payment_ledgers")

    for index in (
        "uq_first_payment_per_lease",
        "ix_rental_payments_payment_type",
        "ix_rental_payments_verification_status",
        "ix_rental_payments_status",
        "ix_rental_payments_landlord_id",
        "ix_rental_payments_tenant_id",
        "ix_rental_payments_property_id",
        "ix_rental_payments_lease_id",
    ):
        op.drop_index(index, table_name="rental_payments")
    op.drop_table("rental_payments")

    for index in (
        "ix_rental_leases_rent_expiration_date",
        "ix_rental_leases_status",
        "ix_rental_leases_landlord_id",
        "ix_rental_leases_tenant_id",
        "ix_rental_leases_property_id",
    ):
        op.drop_index(index, table_name="rental_leases")
    op.drop_table("rental_leases")

    op.drop_index("ix_properties_status", table_name="properties")
    op.drop_index("ix_properties_owner_id", table_name="properties")
    op.drop_table("properties")
