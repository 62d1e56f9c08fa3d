"""Initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    booking_status = postgresql.ENUM(
        "pending", "confirmed", "completed", "cancelled", name="bookingstatus", create_type=False
    )
    booking_source = postgresql.ENUM("public", "admin", name="bookingsource", create_type=False)
    admin_role = postgresql.ENUM("admin", "manager", "viewer", name="adminrole", create_type=False)
    actor_type = postgresql.ENUM("customer", "admin", "system", name="actortype", create_type=False)
    for enum in (booking_status, booking_source, admin_role, actor_type):
        enum.create(bind, checkfirst=True)

    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), server_default=""),
        sa.Column("image_url", sa.String(length=1024)),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="40"),
        sa.Column("price", sa.Numeric(10, 2)),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), index=True),
        sa.Column("display_order", sa.Integer(), server_default="0"),
        sa.Column("is_callout", sa.Boolean(), server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_number", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.String(length=64), index=True),
        sa.Column("status", booking_status, server_default="pending", index=True),
        sa.Column("source", booking_source, server_default="public"),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.String(length=5), nullable=False),
        sa.Column("slot_duration", sa.Integer(), nullable=False, server_default="40"),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
        sa.Column("customer_phone", sa.String(length=32), nullable=False),
        sa.Column("booking_for_name", sa.String(length=255)),
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id", ondelete="SET NULL")),
        sa.Column("special_request", sa.Text()),
        sa.Column("admin_notes", sa.Text()),
        sa.Column("inspiration_photos", sa.JSON()),
        sa.Column("is_prepaid", sa.Boolean(), server_default=sa.false()),
        sa.Column("over_capacity", sa.Boolean(), server_default=sa.false()),
        sa.Column(
            "original_booking_id",
            sa.Integer(),
            sa.ForeignKey("bookings.id", ondelete="SET NULL"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("cancellation_reason", sa.String(length=255)),
        sa.Column("cancelled_by", sa.String(length=64)),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("ticket_number", name="uq_bookings_ticket_number"),
    )
    op.create_index("ix_bookings_slot", "bookings", ["appointment_date", "appointment_time"])

    op.create_table(
        "capacity_overrides",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("override_date", sa.Date(), nullable=False, index=True),
        sa.Column("time_slot", sa.String(length=5), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("capacity >= 0", name="ck_capacity_override_non_negative"),
    )
    op.create_index(
        "uq_capacity_override_active_slot",
        "capacity_overrides",
        ["override_date", "time_slot"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "settings",
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("key"),
    )

    op.create_table(
        "customer_notes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.String(length=320), nullable=False, index=True),
        sa.Column("note_text", sa.Text(), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "admin_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("login", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", admin_role, server_default="viewer"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_type", actor_type),
        sa.Column("actor_id", sa.String(length=64)),
        sa.Column("action", sa.String(length=255), index=True),
        sa.Column("payload", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("admin_users")
    op.drop_table("customer_notes")
    op.drop_table("settings")
    op.drop_index("uq_capacity_override_active_slot", table_name="capacity_overrides")
    op.drop_table("capacity_overrides")
    op.drop_index("ix_bookings_slot", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("services")
    bind = op.get_bind()
    for name in ("actortype", "adminrole", "bookingsource", "bookingstatus"):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
