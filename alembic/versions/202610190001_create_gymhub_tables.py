"""create gymhub tables

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19 00:00:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610190001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _address() -> list[sa.Column]:
    return [
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=128), nullable=True),
        sa.Column("state", sa.String(length=128), nullable=True),
        sa.Column("zip_code", sa.String(length=32), nullable=True),
        sa.Column("country", sa.String(length=128), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "user_account",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=128), nullable=True),
        sa.Column("country", sa.String(length=128), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_account_email", "user_account", ["email"], unique=False)
    op.create_index("ix_user_account_role_deleted", "user_account", ["role", "is_deleted"], unique=False)

    op.create_table(
        "plan",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("monthly_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("yearly_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("max_gyms", sa.Integer(), nullable=False),
        sa.Column("max_locations", sa.Integer(), nullable=False),
        sa.Column("max_members", sa.Integer(), nullable=False),
        sa.Column("max_equipment", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("monthly_price >= 0", name="ck_plan_monthly_price_non_negative"),
        sa.CheckConstraint("yearly_price >= 0", name="ck_plan_yearly_price_non_negative"),
        sa.CheckConstraint(
            "max_gyms >= 0 AND max_locations >= 0 AND max_members >= 0 AND max_equipment >= 0",
            name="ck_plan_quotas_non_negative",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_plan_active_deleted", "plan", ["is_active", "is_deleted"], unique=False)

    op.create_table(
        "owner_subscription",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("plan_id", sa.Uuid(), nullable=True),
        sa.Column("billing_model", sa.String(length=16), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_expired", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("reminder_sent_days", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["user_account.id"]),
        sa.ForeignKeyConstraint(["plan_id"], ["plan.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_owner_subscription_owner_state",
        "owner_subscription",
        ["owner_id", "is_active", "is_expired", "is_deleted"],
        unique=False,
    )
    op.create_index("ix_owner_subscription_plan", "owner_subscription", ["plan_id"], unique=False)
    op.create_index("ix_owner_subscription_end_date", "owner_subscription", ["end_date"], unique=False)

    op.create_table(
        "gym",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        *_address(),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_gym_owner_deleted", "gym", ["owner_id", "is_deleted"], unique=False)

    op.create_table(
        "location",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("gym_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        *_address(),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["gym_id"], ["gym.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_location_gym_deleted", "location", ["gym_id", "is_deleted"], unique=False)

    op.create_table(
        "equipment",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("gym_id", sa.Uuid(), nullable=False),
        sa.Column("location_id", sa.Uuid(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("brand", sa.String(length=128), nullable=True),
        sa.Column("serial_number", sa.String(length=128), nullable=True),
        sa.Column("quantity", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("condition", sa.String(length=32), nullable=True),
        sa.Column("status", sa.String(length=32), server_default="ACTIVE", nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("purchase_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["gym_id"], ["gym.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["location.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_equipment_gym_deleted", "equipment", ["gym_id", "is_deleted"], unique=False)
    op.create_index("ix_equipment_location_deleted", "equipment", ["location_id", "is_deleted"], unique=False)

    op.create_table(
        "member",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("gym_id", sa.Uuid(), nullable=False),
        sa.Column("location_id", sa.Uuid(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["user_account.id"]),
        sa.ForeignKeyConstraint(["gym_id"], ["gym.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["location.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", name="uq_member_user"),
    )
    op.create_index("ix_member_location_deleted", "member", ["location_id", "is_deleted"], unique=False)
    op.create_index("ix_member_gym_deleted", "member", ["gym_id", "is_deleted"], unique=False)

    op.create_table(
        "member_subscription",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("member_id", sa.Uuid(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("billing_model", sa.String(length=16), server_default="MONTHLY", nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_expired", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("reminder_sent_days", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["member_id"], ["member.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_member_subscription_member_state",
        "member_subscription",
        ["member_id", "is_active", "is_expired", "is_deleted"],
        unique=False,
    )
    op.create_index("ix_member_subscription_end_date", "member_subscription", ["end_date"], unique=False)

    op.create_table(
        "payment",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", sa.String(length=32), nullable=False),
        sa.Column("transaction_id", sa.String(length=128), nullable=False),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.String(length=1024), nullable=True),
        sa.Column("subscription_type", sa.String(length=16), nullable=False),
        sa.Column("owner_subscription_id", sa.Uuid(), nullable=True),
        sa.Column("member_subscription_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        sa.CheckConstraint(
            "(subscription_type = 'OWNER' AND owner_subscription_id IS NOT NULL AND member_subscription_id IS NULL)"
            " OR (subscription_type = 'MEMBER' AND member_subscription_id IS NOT NULL AND owner_subscription_id IS NULL)",
            name="ck_payment_single_subscription",
        ),
        sa.ForeignKeyConstraint(["owner_subscription_id"], ["owner_subscription.id"]),
        sa.ForeignKeyConstraint(["member_subscription_id"], ["member_subscription.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payment_owner_subscription", "payment", ["owner_subscription_id"], unique=False)
    op.create_index("ix_payment_member_subscription", "payment", ["member_subscription_id"], unique=False)
    op.create_index("ix_payment_type_date", "payment", ["subscription_type", "payment_date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_payment_type_date", table_name="payment")
    op.drop_index("ix_payment_member_subscription", table_name="payment")
    op.drop_index("ix_payment_owner_subscription", table_name="payment")
    op.drop_table("payment")
    op.drop_index("ix_member_subscription_end_date", table_name="member_subscription")
    op.drop_index("ix_member_subscription_member_state", table_name="member_subscription")
    op.drop_table("member_subscription")
    op.drop_index("ix_member_gym_deleted", table_name="member")
    op.drop_index("ix_member_location_deleted", table_name="member")
    op.drop_table("member")
    op.drop_index("ix_equipment_location_deleted", table_name="equipment")
    op.drop_index("ix_equipment_gym_deleted", table_name="equipment")
    op.drop_table("equipment")
    op.drop_index("ix_location_gym_deleted", table_name="location")
    op.drop_table("location")
    op.drop_index("ix_gym_owner_deleted", table_name="gym")
    op.drop_table("gym")
    op.drop_index("ix_owner_subscription_end_date", table_name="owner_subscription")
    op.drop_index("ix_owner_subscription_plan", table_name="owner_subscription")
    op.drop_index("ix_owner_subscription_owner_state", table_name="owner_subscription")
    op.drop_table("owner_subscription")
    op.drop_index("ix_plan_active_deleted", table_name="plan")
    op.drop_table("plan")
    op.drop_index("ix_user_account_role_deleted", table_name="user_account")
    op.drop_index("ix_user_account_email", table_name="user_account")
    op.drop_table("user_account")
