"""initial_tables

Create the indexers table and the durable control queue.

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-18 09:12:44.201337

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # INDEXERS
    op.create_table(
        "indexers",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("indexer_type", sa.String(32), nullable=False),
        sa.Column("target_url", sa.Text(), nullable=False),
        sa.Column("process_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_indexers_status", "indexers", ["status"])

    # QUEUE MESSAGES
    op.create_table(
        "queue_messages",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("queue", sa.String(64), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("receive_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("receipt", sa.String(36), nullable=True),
        sa.Column("visible_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_queue_messages_receive", "queue_messages", ["queue", "status", "visible_at"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_queue_messages_receive", table_name="queue_messages")
    op.drop_table("queue_messages")
    op.drop_index("idx_indexers_status", table_name="indexers")
    op.drop_table("indexers")
