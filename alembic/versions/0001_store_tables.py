"""store tables

Revision ID: 0001_store_tables
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = "0001_store_tables"
down_revision = None
branch_labels = None
depends_on = None

operation_action = sa.Enum("install", "redeploy", "uninstall", name="app_operation_action")
operation_status = sa.Enum("queued", "running", "success", "error", name="app_operation_status")
stack_status = sa.Enum(
    "installed",
    "not_installed",
    "installing",
    "updating",
    "uninstalling",
    "error",
    name="app_stack_status",
)


def upgrade() -> None:
    op.create_table(
        "app_operations",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("app_id", sa.String(length=255), nullable=False),
        sa.Column("action", operation_action, nullable=False),
        sa.Column("status", operation_status, nullable=False),
        sa.Column("progress_percent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_step", sa.String(length=100), nullable=False, server_default="queued"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_app_operations_app_id", "app_operations", ["app_id"])
    op.create_index("ix_app_operations_status", "app_operations", ["status"])

    op.create_table(
        "app_stacks",
        sa.Column("app_id", sa.String(length=255), primary_key=True, nullable=False),
        sa.Column("template_name", sa.String(length=255), nullable=False),
        sa.Column("stack_name", sa.String(length=255), nullable=False),
        sa.Column("compose_path", sa.Text(), nullable=False),
        sa.Column("status", stack_status, nullable=False),
        sa.Column("web_ui_port", sa.Integer(), nullable=True),
        sa.Column("env", sa.JSON(), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("icon_url", sa.Text(), nullable=True),
        sa.Column("installed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_up_to_date", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("local_digest", sa.String(length=255), nullable=True),
        sa.Column("remote_digest", sa.String(length=255), nullable=True),
        sa.Column("last_update_check", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_app_stacks_status", "app_stacks", ["status"])
    op.create_index("idx_app_stacks_web_ui_port", "app_stacks", ["web_ui_port"])


def downgrade() -> None:
    op.drop_index("idx_app_stacks_web_ui_port", table_name="app_stacks")
    op.drop_index("ix_app_stacks_status", table_name="app_stacks")
    op.drop_table("app_stacks")

    op.drop_index("ix_app_operations_status", table_name="app_operations")
    op.drop_index("ix_app_operations_app_id", table_name="app_operations")
    op.drop_table("app_operations")

    stack_status.drop(op.get_bind(), checkfirst=True)
    operation_status.drop(op.get_bind(), checkfirst=True)
    operation_action.drop(op.get_bind(), checkfirst=True)
