"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

Creates the booking engine tables:
- Rentals (read by the booking engine, owned by the rental directory)
- Bookings with the no-overlap exclusion constraint
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""
    # Needed for "rental_id WITH =" inside a gist exclusion constraint
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # ==================== RENTALS ====================
    op.create_table(
        "rentals",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("host_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("city", sa.String(100), index=True),
        sa.Column("max_guests", sa.Integer, nullable=False, server_default="1"),
        sa.Column("price_per_night", sa.Numeric(10, 2), nullable=False),
        sa.Column("cleaning_fee", sa.Numeric(10, 2)),
        sa.Column("security_deposit", sa.Numeric(10, 2)),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_approved", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("max_guests > 0", name="ck_rentals_max_guests_positive"),
        sa.CheckConstraint("price_per_night >= 0", name="ck_rentals_price_non_negative"),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("rental_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("rentals.id"), nullable=False, index=True),
        sa.Column("guest_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("check_in_date", sa.Date, nullable=False, index=True),
        sa.Column("check_out_date", sa.Date, nullable=False, index=True),
        sa.Column("number_of_guests", sa.Integer, nullable=False),
        sa.Column("price_per_night", sa.Numeric(10, 2), nullable=False),
        sa.Column("number_of_nights", sa.Integer, nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("cleaning_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("service_fee", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING", index=True),
        sa.Column("guest_message", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.CheckConstraint("check_out_date > check_in_date", name="ck_bookings_min_one_night"),
        sa.CheckConstraint("number_of_guests > 0", name="ck_bookings_guests_positive"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'DECLINED', 'CANCELLED', 'COMPLETED')",
            name="ck_bookings_status",
        ),
    )

    op.execute(
        """
        ALTER TABLE bookings
        ADD CONSTRAINT ex_bookings_rental_no_overlap
        EXCLUDE USING gist (
            rental_id WITH =,
            daterange(check_in_date, check_out_date, '[)') WITH &&
        )
        WHERE (status IN ('PENDING', 'CONFIRMED'))
        """
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("bookings")
    op.drop_table("rentals")
