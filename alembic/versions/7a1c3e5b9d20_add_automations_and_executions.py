"""add automations and executions tables

Revision ID: 7a1c3e5b9d20
Revises:
Create Date: 2026-10-12 10:14:05.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '7a1c3e5b9d20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "automations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("wallet_address", sa.String(length=64), nullable=False),
        sa.Column("definition", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("default_slippage", sa.Float(), nullable=False, server_default="0.01"),
        sa.Column("rpc_endpoint", sa.String(length=256), nullable=True),
        sa.Column("active_execution_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "executions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("automation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("was_scheduled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["automation_id"], ["automations.id"], ondelete="CASCADE"),
    )

    op.create_index(
        "ix_executions_automation_id",
        "executions",
        ["automation_id"],
        unique=False,
    )
    op.create_index(
        "idx_executions_status_started",
        "executions",
        ["status", "started_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("idx_executions_status_started", table_name="executions")
    op.drop_index("ix_executions_automation_id", table_name="executions")
    op.drop_table("executions")
    op.drop_table("automations")
