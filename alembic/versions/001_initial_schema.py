"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates the settlement tables:
- Properties and bookings
- Check-in codes
- Invoices (one per booking)
- Transport bookings
- System settings (singleton row)
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

    # ==================== PROPERTIES ====================
    op.create_table(
        "properties",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.Integer, nullable=False, index=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("type", sa.String(50)),
        sa.Column("description", sa.Text),
        sa.Column("status", sa.String(20), default="DRAFT", index=True),
        sa.Column("base_price", sa.Numeric(12, 2)),
        sa.Column("currency", sa.String(3), default="TZS"),
        sa.Column("street", sa.String(200)),
        sa.Column("ward", sa.String(100)),
        sa.Column("district", sa.String(100)),
        sa.Column("region", sa.String(100)),
        sa.Column("city", sa.String(100)),
        sa.Column("latitude", sa.Numeric(10, 6)),
        sa.Column("longitude", sa.Numeric(10, 6)),
        sa.Column("photos", postgresql.JSONB),
        sa.Column("services", postgresql.JSONB),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("property_id", sa.Integer, sa.ForeignKey("properties.id"), nullable=False, index=True),
        sa.Column("user_id", sa.Integer, index=True),
        sa.Column("check_in", sa.DateTime(timezone=True), nullable=False),
        sa.Column("check_out", sa.DateTime(timezone=True), nullable=False),
        sa.Column("rooms_qty", sa.Integer, default=1),
        sa.Column("adults", sa.Integer, default=1),
        sa.Column("children", sa.Integer, default=0),
        sa.Column("total_amount", sa.Numeric(12, 2)),
        sa.Column("status", sa.String(20), default="NEW"),
        sa.Column("include_transport", sa.Boolean, default=False),
        sa.Column("transport_fare", sa.Numeric(12, 2)),
        sa.Column("transport_vehicle_type", sa.String(20)),
        sa.Column("transport_origin_address", sa.String(255)),
        sa.Column("transport_scheduled_date", sa.DateTime(timezone=True)),
        sa.Column("special_requests", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "checkin_codes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer, sa.ForeignKey("bookings.id"), nullable=False, unique=True),
        sa.Column("code", sa.String(16), nullable=False, unique=True),
        sa.Column("code_hash", sa.String(64), nullable=False),
        sa.Column("code_visible", sa.String(16)),
        sa.Column("status", sa.String(20), default="ACTIVE"),
        sa.Column("generated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("used_at", sa.DateTime(timezone=True)),
    )

    # ==================== INVOICES ====================
    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("invoice_number", sa.String(64), nullable=False, unique=True),
        sa.Column("owner_id", sa.Integer, nullable=False, index=True),
        sa.Column("booking_id", sa.Integer, sa.ForeignKey("bookings.id"), nullable=False, unique=True),
        sa.Column("checkin_code_id", sa.Integer, sa.ForeignKey("checkin_codes.id")),
        sa.Column("title", sa.String(255)),
        sa.Column("subtotal", sa.Numeric(12, 2)),
        sa.Column("tax_percent", sa.Numeric(5, 2), default=0),
        sa.Column("tax_amount", sa.Numeric(12, 2), default=0),
        sa.Column("total", sa.Numeric(12, 2)),
        sa.Column("net_payable", sa.Numeric(12, 2)),
        sa.Column("commission_percent", sa.Numeric(5, 2)),
        sa.Column("commission_amount", sa.Numeric(12, 2)),
        sa.Column("status", sa.String(20), default="REQUESTED", index=True),
        sa.Column("payment_ref", sa.String(100), index=True),
        sa.Column("payment_method", sa.String(30)),
        sa.Column("notes", sa.Text),
        sa.Column("receipt_number", sa.String(64)),
        sa.Column("issued_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== TRANSPORT ====================
    op.create_table(
        "transport_bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, index=True),
        sa.Column("property_id", sa.Integer),
        sa.Column("booking_ref", sa.String(50), index=True),
        sa.Column("status", sa.String(30), default="PENDING_PAYMENT", index=True),
        sa.Column("driver_id", sa.Integer),
        sa.Column("vehicle_type", sa.String(20)),
        sa.Column("scheduled_date", sa.DateTime(timezone=True)),
        sa.Column("from_address", sa.String(255)),
        sa.Column("from_latitude", sa.Numeric(10, 6)),
        sa.Column("from_longitude", sa.Numeric(10, 6)),
        sa.Column("to_address", sa.String(255)),
        sa.Column("to_latitude", sa.Numeric(10, 6)),
        sa.Column("to_longitude", sa.Numeric(10, 6)),
        sa.Column("number_of_passengers", sa.Integer, default=1),
        sa.Column("trip_code", sa.String(16)),
        sa.Column("amount", sa.Numeric(12, 2)),
        sa.Column("currency", sa.String(3)),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("payment_ref", sa.String(100)),
        sa.Column("payment_method", sa.String(30)),
        sa.Column("notes", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== SETTINGS ====================
    op.create_table(
        "system_settings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("commission_percent", sa.Numeric(5, 2)),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("system_settings")
    op.drop_table("transport_bookings")
    op.drop_table("invoices")
    op.drop_table("checkin_codes")
    op.drop_table("bookings")
    op.drop_table("properties")
