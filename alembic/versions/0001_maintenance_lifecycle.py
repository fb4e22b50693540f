"""maintenance lifecycle tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

role_name = sa.Enum("ADMIN", "MANAGER", "SUPERVISOR", "STAFF", name="rolename")
asset_status = sa.Enum("AVAILABLE", "IN_USE", "MAINTENANCE", "BROKEN", name="assetstatus")
maintenance_status = sa.Enum(
    "DRAFT", "PENDING", "APPROVED", "IN_PROGRESS", "COMPLETED", "CANCELLED",
    name="maintenancestatus",
)
maintenance_priority = sa.Enum("LOW", "MEDIUM", "HIGH", "URGENT", name="maintenancepriority")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", role_name, nullable=False),
        sa.Column("isActive", sa.Boolean(), nullable=False),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updatedAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "assets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("status", asset_status, nullable=False),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updatedAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_assets_id", "assets", ["id"])
    op.create_index("ix_assets_code", "assets", ["code"], unique=True)

    op.create_table(
        "maintenance_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("assetId", sa.Integer(), sa.ForeignKey("assets.id"), nullable=True),
        sa.Column("assetName", sa.String(200), nullable=True),
        sa.Column("assetCode", sa.String(50), nullable=True),
        sa.Column("requestedBy", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("requestedByName", sa.String(150), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("priority", maintenance_priority, nullable=True),
        sa.Column("status", maintenance_status, nullable=False),
        sa.Column("isDraft", sa.Boolean(), nullable=False),
        sa.Column("assignedTo", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("assignedToName", sa.String(150), nullable=True),
        sa.Column("expectedCompletionTime", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completedAt", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updatedAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_maintenance_requests_id", "maintenance_requests", ["id"])
    op.create_index("ix_maintenance_requests_requestedBy", "maintenance_requests", ["requestedBy"])
    op.create_index("ix_maintenance_requests_status", "maintenance_requests", ["status"])
    op.create_index("ix_maintenance_requests_isDraft", "maintenance_requests", ["isDraft"])
    op.create_index("ix_maintenance_requests_assignedTo", "maintenance_requests", ["assignedTo"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("userId", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entityType", sa.String(100), nullable=False),
        sa.Column("entityId", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entityType", "entityId"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("maintenance_requests")
    op.drop_table("assets")
    op.drop_table("users")
    for enum_type in (maintenance_priority, maintenance_status, asset_status, role_name):
        enum_type.drop(op.get_bind(), checkfirst=True)
