"""Initial schema: bookings, sale records, follow-ups, ledger, referrals, audit, events.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False,
        server_default=sa.func.now(),
    )


def _sale_columns() -> list[sa.Column]:
    """Commission and attribution columns shared by intro_runs and outside_sales."""
    return [
        sa.Column("tier", sa.String(60), nullable=True),
        sa.Column("previous_tier", sa.String(60), nullable=True),
        sa.Column("commission_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("intro_owner", sa.String(100), nullable=True),
        sa.Column("attribution_provenance", sa.String(40), nullable=True),
        sa.Column("attribution_flagged", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("last_edited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_edited_by", sa.String(100), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "bookings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("client_key", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("class_date", sa.Date, nullable=False),
        sa.Column("intro_time", sa.String(20), nullable=True),
        sa.Column("coach_name", sa.String(100), nullable=True),
        sa.Column("booked_by", sa.String(100), nullable=True),
        sa.Column("intro_owner", sa.String(100), nullable=True),
        sa.Column("intro_owner_locked", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("lead_source", sa.String(100), nullable=True),
        sa.Column("status", sa.String(40), nullable=False, server_default="active"),
        sa.Column(
            "originating_booking_id", UUID(as_uuid=True),
            sa.ForeignKey("bookings.id"), nullable=True,
        ),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_by", sa.String(100), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("last_edited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_edited_by", sa.String(100), nullable=True),
        sa.Column("edit_reason", sa.Text, nullable=True),
    )
    op.create_index("ix_bookings_client_key", "bookings", ["client_key"])
    op.create_index("ix_bookings_class_date", "bookings", ["class_date"])

    op.create_table(
        "intro_runs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", UUID(as_uuid=True), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("run_date", sa.Date, nullable=False),
        sa.Column("result", sa.String(40), nullable=False, server_default="UNRESOLVED"),
        sa.Column("sale_kind", sa.String(20), nullable=True),
        sa.Column("buy_date", sa.Date, nullable=True),
        sa.Column("is_self_gen", sa.Boolean, nullable=False, server_default=sa.false()),
        *_sale_columns(),
        _created_at(),
    )
    op.create_index("ix_intro_runs_booking_id", "intro_runs", ["booking_id"])

    op.create_table(
        "outside_sales",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("client_key", sa.String(200), nullable=False),
        sa.Column("date_closed", sa.Date, nullable=False),
        sa.Column("sale_kind", sa.String(20), nullable=False, server_default="new"),
        sa.Column("lead_source", sa.String(100), nullable=True),
        *_sale_columns(),
        _created_at(),
    )
    op.create_index("ix_outside_sales_client_key", "outside_sales", ["client_key"])

    op.create_table(
        "follow_up_queue",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", UUID(as_uuid=True), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("person_name", sa.String(200), nullable=False),
        sa.Column("person_key", sa.String(200), nullable=False),
        sa.Column("person_type", sa.String(20), nullable=False),
        sa.Column("touch_number", sa.Integer, nullable=False),
        sa.Column("trigger_date", sa.Date, nullable=False),
        sa.Column("scheduled_date", sa.Date, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("converted_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint(
            "booking_id", "person_type", "touch_number", name="uq_follow_up_touch",
        ),
    )
    op.create_index("ix_follow_up_queue_booking_id", "follow_up_queue", ["booking_id"])
    op.create_index("ix_follow_up_queue_person_key", "follow_up_queue", ["person_key"])

    op.create_table(
        "monthly_count_entries",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("client_key", sa.String(200), nullable=False),
        sa.Column("event_date", sa.Date, nullable=False),
        sa.Column("reason", sa.String(30), nullable=False),
        sa.Column("count_value", sa.Integer, nullable=False),
        sa.Column("sale_record_id", UUID(as_uuid=True), nullable=True),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("created_by", sa.String(100), nullable=True),
        _created_at(),
        sa.UniqueConstraint("client_key", "event_date", "reason", name="uq_ledger_event"),
    )
    op.create_index(
        "ix_monthly_count_entries_client_key", "monthly_count_entries", ["client_key"],
    )

    op.create_table(
        "referrals",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "referrer_booking_id", UUID(as_uuid=True),
            sa.ForeignKey("bookings.id"), nullable=True,
        ),
        sa.Column(
            "referred_booking_id", UUID(as_uuid=True),
            sa.ForeignKey("bookings.id"), nullable=True,
        ),
        sa.Column("referrer_name", sa.String(200), nullable=False),
        sa.Column("referred_name", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("discount_applied", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("qualified_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    op.create_table(
        "audit_runs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "run_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("total_checks", sa.Integer, nullable=False),
        sa.Column("pass_count", sa.Integer, nullable=False),
        sa.Column("warn_count", sa.Integer, nullable=False),
        sa.Column("fail_count", sa.Integer, nullable=False),
        sa.Column("results", sa.JSON, nullable=False),
    )
    op.create_index("ix_audit_runs_run_at", "audit_runs", ["run_at"])

    op.create_table(
        "outcome_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", UUID(as_uuid=True), nullable=True),
        sa.Column("sale_record_id", UUID(as_uuid=True), nullable=True),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("event_date", sa.Date, nullable=False),
        sa.Column("event_kind", sa.String(20), nullable=False),
        sa.Column("tier", sa.String(60), nullable=True),
        sa.Column("commission_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("credited_staff", sa.String(100), nullable=False),
        sa.Column("attribution_provenance", sa.String(40), nullable=False),
        sa.Column("attribution_ambiguous", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("final_state", sa.String(30), nullable=False),
        sa.Column("step_statuses", sa.JSON, nullable=False),
        sa.Column("acting_staff", sa.String(100), nullable=True),
        sa.Column("note", sa.Text, nullable=True),
        _created_at(),
    )
    op.create_index("ix_outcome_events_booking_id", "outcome_events", ["booking_id"])


def downgrade() -> None:
    op.drop_table("outcome_events")
    op.drop_table("audit_runs")
    op.drop_table("referrals")
    op.drop_table("monthly_count_entries")
    op.drop_table("follow_up_queue")
    op.drop_table("outside_sales")
    op.drop_table("intro_runs")
    op.drop_table("bookings")
