"""create_search_alert_tables

Revision ID: 5b1e0c7a9d42
Revises:
Create Date: 2025-06-01 10:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5b1e0c7a9d42"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

SEARCH_ALERT_STATUSES = ("PENDING", "COMPLETED", "FAILED")
NOTIFICATION_KINDS = ("SEATS_FOUND", "ALERT_EXPIRED")
NOTIFICATION_STATUSES = ("sent", "failed", "skipped")


def _common_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        *_common_columns(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column(
            "expo_push_token",
            sa.String(length=255),
            nullable=True,
            comment="Expo push token registered by the mobile app",
        ),
        sa.Column(
            "push_enabled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
            comment="Notification preference: deliver push notifications",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("expo_push_token"),
    )

    op.create_table(
        "search_alerts",
        *_common_columns(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("from_station_id", sa.String(length=64), nullable=False),
        sa.Column("to_station_id", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False, comment="Travel date (no time component)"),
        sa.Column("cabin_class", sa.String(length=64), nullable=False, comment="Upstream cabin class id"),
        sa.Column("departure_time_start", sa.Time(), nullable=True),
        sa.Column("departure_time_end", sa.Time(), nullable=True),
        sa.Column("high_speed_only", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "status",
            sa.Enum(*SEARCH_ALERT_STATUSES, name="search_alert_status", create_constraint=True),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("status_reason", sa.Text(), nullable=True),
        sa.Column("last_checked", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_search_alerts_user_id", "search_alerts", ["user_id"])
    op.create_index(
        "ix_search_alerts_route_date",
        "search_alerts",
        ["from_station_id", "to_station_id", "date"],
    )
    # Partial index matching the eligible-alerts query
    op.create_index(
        "ix_search_alerts_eligible",
        "search_alerts",
        ["created_at"],
        postgresql_where=sa.text(
            "is_active AND status = 'PENDING' AND deleted_at IS NULL "
            "AND departure_time_start IS NOT NULL AND departure_time_end IS NOT NULL"
        ),
    )

    op.create_table(
        "notification_logs",
        *_common_columns(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("alert_id", sa.Uuid(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "kind",
            sa.Enum(*NOTIFICATION_KINDS, name="notification_kind", create_constraint=True),
            nullable=True,
        ),
        sa.Column(
            "status",
            sa.Enum(*NOTIFICATION_STATUSES, name="notification_status", create_constraint=True),
            nullable=False,
        ),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["alert_id"], ["search_alerts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notification_logs_user_id", "notification_logs", ["user_id"])
    op.create_index("ix_notification_logs_alert_id", "notification_logs", ["alert_id"])
    op.create_index("ix_notification_logs_user_sent", "notification_logs", ["user_id", "sent_at"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_notification_logs_user_sent", table_name="notification_logs")
    op.drop_index("ix_notification_logs_alert_id", table_name="notification_logs")
    op.drop_index("ix_notification_logs_user_id", table_name="notification_logs")
    op.drop_table("notification_logs")

    op.drop_index("ix_search_alerts_eligible", table_name="search_alerts")
    op.drop_index("ix_search_alerts_route_date", table_name="search_alerts")
    op.drop_index("ix_search_alerts_user_id", table_name="search_alerts")
    op.drop_table("search_alerts")
    op.drop_table("users")

    sa.Enum(name="notification_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="notification_kind").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="search_alert_status").drop(op.get_bind(), checkfirst=True)
