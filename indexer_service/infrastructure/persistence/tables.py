"""SQLAlchemy table definitions - dialect-agnostic (works with SQLite and PostgreSQL)."""

from sqlalchemy import Column, DateTime, Index, Integer, MetaData, String, Table, Text

# Metadata object for all tables
metadata = MetaData()

# ============================================================================
# INDEXERS TABLE
# ============================================================================
indexers_table = Table(
    "indexers",
    metadata,
    Column("id", String(36), primary_key=True),  # UUID as text
    Column("status", String(32), nullable=False),  # IndexerStatus variant name
    Column("indexer_type", String(32), nullable=False),  # IndexerType variant name
    Column("target_url", Text, nullable=False),
    Column("process_id", Integer, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

Index("idx_indexers_status", indexers_table.c.status)


# ============================================================================
# QUEUE MESSAGES TABLE (durable control queues)
# ============================================================================
queue_messages_table = Table(
    "queue_messages",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("queue", String(64), nullable=False),
    Column("body", Text, nullable=False),
    Column("status", String(16), nullable=False),  # pending | dead
    Column("receive_count", Integer, nullable=False, default=0),
    Column("receipt", String(36), nullable=True),  # Handle of the latest delivery
    Column("visible_at", DateTime(timezone=True), nullable=False),
    Column("sent_at", DateTime(timezone=True), nullable=False),
)

Index(
    "idx_queue_messages_receive",
    queue_messages_table.c.queue,
    queue_messages_table.c.status,
    queue_messages_table.c.visible_at,
)
