"""Initial tables: users, activity logs, asset records and movements

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("assigned_base", sa.String(200), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)
    op.create_index("ix_users_assigned_base", "users", ["assigned_base"], unique=False)

    # Activity logs table
    op.create_table(
        "activity_logs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column("username", sa.String(100), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=False),
        sa.Column("resource_id", sa.BigInteger(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_resource_type", "activity_logs", ["resource_type"])
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"])

    # Asset records table
    op.create_table(
        "asset_records",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("base", sa.String(200), nullable=False),
        sa.Column("opening_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("purchases", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("transfer_in", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("transfer_out", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("assigned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expended", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("closing_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("available", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", "type", "base", name="uq_asset_records_name_type_base"),
    )
    op.create_index("ix_asset_records_name", "asset_records", ["name"])
    op.create_index("ix_asset_records_type", "asset_records", ["type"])
    op.create_index("ix_asset_records_base", "asset_records", ["base"])

    # Purchases table (asset_id has no FK: asset hard delete leaves history intact)
    op.create_table(
        "purchases",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("asset_id", sa.BigInteger(), nullable=True),
        sa.Column("asset_name", sa.String(200), nullable=False),
        sa.Column("asset_type", sa.String(30), nullable=False),
        sa.Column("base", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_cost", sa.Numeric(15, 2), nullable=False),
        sa.Column("total_cost", sa.Numeric(15, 2), nullable=False),
        sa.Column("supplier", sa.String(300), nullable=False),
        sa.Column("invoice_number", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="Ordered"),
        sa.Column("purchase_date", sa.Date(), nullable=False),
        sa.Column("delivery_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("purchased_by_id", sa.BigInteger(), nullable=True),
        sa.Column("approved_by_id", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["purchased_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["approved_by_id"], ["users.id"]),
    )
    op.create_index("ix_purchases_asset_id", "purchases", ["asset_id"])
    op.create_index("ix_purchases_asset_type", "purchases", ["asset_type"])
    op.create_index("ix_purchases_base", "purchases", ["base"])
    op.create_index("ix_purchases_status", "purchases", ["status"])

    # Transfers table
    op.create_table(
        "transfers",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("asset_id", sa.BigInteger(), nullable=False),
        sa.Column("destination_asset_id", sa.BigInteger(), nullable=False),
        sa.Column("asset_name", sa.String(200), nullable=False),
        sa.Column("asset_type", sa.String(30), nullable=False),
        sa.Column("from_base", sa.String(200), nullable=False),
        sa.Column("to_base", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="Pending"),
        sa.Column("transfer_date", sa.Date(), nullable=False),
        sa.Column("completed_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("transferred_by_id", sa.BigInteger(), nullable=True),
        sa.Column("approved_by_id", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["transferred_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["approved_by_id"], ["users.id"]),
    )
    op.create_index("ix_transfers_asset_id", "transfers", ["asset_id"])
    op.create_index("ix_transfers_destination_asset_id", "transfers", ["destination_asset_id"])
    op.create_index("ix_transfers_asset_type", "transfers", ["asset_type"])
    op.create_index("ix_transfers_from_base", "transfers", ["from_base"])
    op.create_index("ix_transfers_to_base", "transfers", ["to_base"])
    op.create_index("ix_transfers_status", "transfers", ["status"])

    # Transfer intents table
    op.create_table(
        "transfer_intents",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("transfer_id", sa.BigInteger(), nullable=False),
        sa.Column("operation", sa.String(10), nullable=False),
        sa.Column("step", sa.String(20), nullable=False, server_default="started"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["transfer_id"], ["transfers.id"]),
        sa.UniqueConstraint("transfer_id", "operation", name="uq_transfer_intents_transfer_op"),
    )
    op.create_index("ix_transfer_intents_transfer_id", "transfer_intents", ["transfer_id"])
    op.create_index("ix_transfer_intents_step", "transfer_intents", ["step"])

    # Assignments table
    op.create_table(
        "assignments",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("asset_id", sa.BigInteger(), nullable=False),
        sa.Column("asset_name", sa.String(200), nullable=False),
        sa.Column("asset_type", sa.String(30), nullable=False),
        sa.Column("base", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("returned_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("assigned_to_name", sa.String(200), nullable=False),
        sa.Column("assigned_to_rank", sa.String(100), nullable=False),
        sa.Column("assigned_to_service_id", sa.String(100), nullable=False),
        sa.Column("purpose", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="Active"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("assigned_by_id", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["assigned_by_id"], ["users.id"]),
    )
    op.create_index("ix_assignments_asset_id", "assignments", ["asset_id"])
    op.create_index("ix_assignments_asset_type", "assignments", ["asset_type"])
    op.create_index("ix_assignments_base", "assignments", ["base"])
    op.create_index("ix_assignments_assigned_to_name", "assignments", ["assigned_to_name"])
    op.create_index("ix_assignments_status", "assignments", ["status"])

    # Expenditures table
    op.create_table(
        "expenditures",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("asset_id", sa.BigInteger(), nullable=False),
        sa.Column("asset_name", sa.String(200), nullable=False),
        sa.Column("asset_type", sa.String(30), nullable=False),
        sa.Column("base", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(20), nullable=False),
        sa.Column("expended_by_name", sa.String(200), nullable=False),
        sa.Column("expended_by_rank", sa.String(100), nullable=False),
        sa.Column("expended_by_service_id", sa.String(100), nullable=False),
        sa.Column("operation_name", sa.String(200), nullable=True),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("expenditure_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("authorized_by_id", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["authorized_by_id"], ["users.id"]),
    )
    op.create_index("ix_expenditures_asset_id", "expenditures", ["asset_id"])
    op.create_index("ix_expenditures_asset_type", "expenditures", ["asset_type"])
    op.create_index("ix_expenditures_base", "expenditures", ["base"])
    op.create_index("ix_expenditures_reason", "expenditures", ["reason"])


def downgrade() -> None:
    op.drop_table("expenditures")
    op.drop_table("assignments")
    op.drop_table("transfer_intents")
    op.drop_table("transfers")
    op.drop_table("purchases")
    op.drop_table("asset_records")
    op.drop_table("activity_logs")
    op.drop_table("users")
