"""Create user documents and the propagation log.

Revision ID: 0001_relationship_documents
Revises:
Create Date: 2026-10-19 09:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_relationship_documents"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "user_documents",
        sa.Column("user_id", sa.String(length=128), primary_key=True),
        sa.Column("username", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=320), nullable=False, server_default=""),
        sa.Column("friends", sa.JSON(), nullable=False),
        sa.Column("sent_friend_requests", sa.JSON(), nullable=False),
        sa.Column("received_friend_requests", sa.JSON(), nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "pending_propagations",
        sa.Column("pending_id", sa.Uuid(), primary_key=True),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("initiator_id", sa.String(length=128), nullable=False),
        sa.Column("target_id", sa.String(length=128), nullable=False),
        sa.Column("delta", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_pending_propagations_target_id", "pending_propagations", ["target_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_pending_propagations_target_id", table_name="pending_propagations")
    op.drop_table("pending_propagations")
    op.drop_table("user_documents")
