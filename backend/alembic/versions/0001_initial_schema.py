"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates the events and rsvps tables and the read-only
event_capacity_view (attending count and remaining seats per event).
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

rsvp_status = sa.Enum("attending", "maybe", "declined", name="rsvpstatus")


def upgrade() -> None:
    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.Text, nullable=False),
        sa.Column("capacity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_by", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("capacity >= 0", name="ck_events_capacity_non_negative"),
    )
    op.create_index("ix_events_date", "events", ["date"])
    op.create_index("ix_events_created_by", "events", ["created_by"])

    # --- rsvps ---
    op.create_table(
        "rsvps",
        sa.Column("rsvp_id", sa.String(36), primary_key=True),
        sa.Column(
            "event_id", sa.String(36),
            sa.ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("status", rsvp_status, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "email", name="uq_rsvps_event_email"),
    )
    op.create_index("ix_rsvps_event_id", "rsvps", ["event_id"])

    # --- event_capacity_view ---
    op.execute(
        """
        CREATE VIEW event_capacity_view AS
        SELECT e.event_id,
               e.capacity,
               COUNT(r.rsvp_id) AS attending_count,
               e.capacity - COUNT(r.rsvp_id) AS remaining
        FROM events e
        LEFT JOIN rsvps r
               ON r.event_id = e.event_id AND r.status = 'attending'
        GROUP BY e.event_id, e.capacity
        """
    )


def downgrade() -> None:
    op.execute("DROP VIEW IF EXISTS event_capacity_view")
    op.drop_index("ix_rsvps_event_id", table_name="rsvps")
    op.drop_table("rsvps")
    op.drop_index("ix_events_created_by", table_name="events")
    op.drop_index("ix_events_date", table_name="events")
    op.drop_table("events")
    rsvp_status.drop(op.get_bind(), checkfirst=True)
