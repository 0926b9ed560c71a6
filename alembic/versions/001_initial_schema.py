"""Initial schema — customers, staff, tattoo requests, appointments, audit log.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # ── Standalone tables (no FKs) ─────────────────────────────────────

    op.create_table(
        "audit_log",
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=False),
        sa.Column("resource_id", postgresql.UUID(as_uuid=True)),
        sa.Column("actor_id", sa.String(100), comment="Staff ID or 'system'"),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_resource_id", "audit_log", ["resource_id"])

    op.create_table(
        "customers",
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), unique=True),
        sa.Column("phone", sa.String(30)),
        sa.Column("notes", sa.Text()),
        sa.Column("external_customer_id", sa.String(255), comment="Square customer ID"),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_external_customer_id", "customers", ["external_customer_id"])

    op.create_table(
        "staff_members",
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("external_team_member_id", sa.String(255), comment="Square team member ID"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    # ── Tables with FKs ────────────────────────────────────────────────

    op.create_table(
        "tattoo_requests",
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id")),
        sa.Column("contact_email", sa.String(255)),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("placement", sa.String(100)),
        sa.Column("size", sa.String(50)),
        sa.Column("style", sa.String(100)),
        sa.Column("status", sa.String(20), nullable=False),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tattoo_requests_customer_id", "tattoo_requests", ["customer_id"])

    op.create_table(
        "appointments",
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id")),
        sa.Column("artist_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("staff_members.id")),
        sa.Column("tattoo_request_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tattoo_requests.id")),
        sa.Column("contact_email", sa.String(255)),
        sa.Column("contact_phone", sa.String(30)),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, comment="Minutes"),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("external_reference_id", sa.String(255), comment="Square booking ID"),
        sa.Column("price_quote", sa.Numeric(10, 2)),
        sa.Column("notes", sa.Text()),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_appointments_customer_id", "appointments", ["customer_id"])
    op.create_index("ix_appointments_artist_id", "appointments", ["artist_id"])
    op.create_index("ix_appointments_start_time", "appointments", ["start_time"])
    op.create_index("ix_appointments_status", "appointments", ["status"])
    op.create_index("ix_appointments_external_reference_id", "appointments", ["external_reference_id"])


def downgrade() -> None:
    # Drop in reverse dependency order
    op.drop_table("appointments")
    op.drop_table("tattoo_requests")
    op.drop_table("staff_members")
    op.drop_table("customers")
    op.drop_table("audit_log")
