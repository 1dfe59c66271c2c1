"""add payment_plan to rental leases

Revision ID: 9b4e7d21c6a3
Revises: 3f1c2a9d7b10
Create Date: 2026-10-19 14:02:17.554310
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "9b4e7d21c6a3"
down_revision: Union[str, Sequence[str], None] = "3f1c2a9d7b10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


payment_plan_enum = sa.Enum(
    "FULL",
    "FLEXI75",
    "FLEXI50",
    name="paymentplan",
    native_enum=False,
)


def upgrade() -> None:
    """Upgrade schema."""

    op.add_column(
        "rental_leases",
        sa.Column("payment_plan", payment_plan_enum, nullable=True),
    )

    # existing rows take the checkout default
    op.execute(
        "UPDATE rental_leases SET payment_plan = 'FLEXI50' WHERE payment_plan IS NULL"
    )

    with op.batch_alter_table("rental_leases") as batch_op:
        batch_op.alter_column(
            "payment_plan",
            existing_type=payment_plan_enum,
            nullable=False,
        )


def downgrade() -> None:
    """Downgrade schema."""

    with op.batch_alter_table("rental_leases") as batch_op:
        batch_op.drop_column("payment_plan")
