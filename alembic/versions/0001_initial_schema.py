"""initial schema: offices, users, office_members, attendance

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "offices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("lat", sa.Float(), nullable=False),
        sa.Column("lng", sa.Float(), nullable=False),
        sa.Column("radius", sa.Float(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("radius >= 1", name="ck_offices_radius_positive"),
        sa.CheckConstraint("lat >= -90 AND lat <= 90", name="ck_offices_lat_range"),
        sa.CheckConstraint("lng >= -180 AND lng <= 180", name="ck_offices_lng_range"),
        sa.PrimaryKeyConstraint("id", name="pk_offices"),
        sa.UniqueConstraint("name", name="uq_offices_name"),
    )
    op.create_index("ix_offices_id", "offices", ["id"])
    op.create_index("ix_offices_is_active", "offices", ["is_active"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("badge_number", sa.String(50), nullable=True),
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("office_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["office_id"], ["offices.id"], name="fk_users_office_id_offices", ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_office_id", "users", ["office_id"])

    op.create_table(
        "office_members",
        sa.Column("office_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("added_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["office_id"], ["offices.id"], name="fk_office_members_office_id_offices", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_office_members_user_id_users", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("office_id", "user_id", name="pk_office_members"),
        sa.UniqueConstraint("user_id", name="uq_office_members_user_id"),
    )

    op.create_table(
        "attendance",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("office_id", sa.Integer(), nullable=False),
        sa.Column("officer_name", sa.String(100), nullable=False),
        sa.Column("office_name", sa.String(120), nullable=False),
        sa.Column("checkin_date", sa.Date(), nullable=False),
        # check-in facet
        sa.Column("checkin_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("checkin_lat", sa.Float(), nullable=False),
        sa.Column("checkin_lng", sa.Float(), nullable=False),
        sa.Column("distance", sa.Float(), nullable=False),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column("checkin_status", sa.String(10), nullable=False),
        sa.Column("checkin_approved_by", sa.Integer(), nullable=True),
        sa.Column("checkin_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checkin_rejection_reason", sa.Text(), nullable=True),
        sa.Column("checkin_photo", sa.Text(), nullable=True),
        sa.Column("checkin_reason", sa.Text(), nullable=True),
        sa.Column("checkin_reason_photo", sa.Text(), nullable=True),
        # check-out facet
        sa.Column("checkout_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checkout_lat", sa.Float(), nullable=True),
        sa.Column("checkout_lng", sa.Float(), nullable=True),
        sa.Column("checkout_distance", sa.Float(), nullable=True),
        sa.Column("checkout_status", sa.String(10), nullable=True),
        sa.Column("checkout_approved_by", sa.Integer(), nullable=True),
        sa.Column("checkout_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checkout_rejection_reason", sa.Text(), nullable=True),
        sa.Column("checkout_photo", sa.Text(), nullable=True),
        sa.Column("checkout_reason", sa.Text(), nullable=True),
        sa.Column("checkout_reason_photo", sa.Text(), nullable=True),
        sa.Column("total_hours", sa.Float(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_attendance_user_id_users"),
        sa.ForeignKeyConstraint(["office_id"], ["offices.id"], name="fk_attendance_office_id_offices"),
        sa.ForeignKeyConstraint(
            ["checkin_approved_by"], ["users.id"], name="fk_attendance_checkin_approved_by_users"
        ),
        sa.ForeignKeyConstraint(
            ["checkout_approved_by"], ["users.id"], name="fk_attendance_checkout_approved_by_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_attendance"),
        sa.UniqueConstraint("user_id", "checkin_date", name="uq_user_attendance_daily"),
    )
    for column in (
        "id",
        "user_id",
        "office_id",
        "checkin_date",
        "checkin_time",
        "status",
        "checkin_status",
        "checkout_status",
    ):
        op.create_index(f"ix_attendance_{column}", "attendance", [column])


def downgrade() -> None:
    op.drop_table("attendance")
    op.drop_table("office_members")
    op.drop_index("ix_users_office_id", table_name="users")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_offices_is_active", table_name="offices")
    op.drop_index("ix_offices_id", table_name="offices")
    op.drop_table("offices")
