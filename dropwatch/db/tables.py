"""
SQLAlchemy Table definitions for the tracker database.

Uses SQLAlchemy Core (not ORM) so rows map straight onto Pydantic models.
The schema is created on startup by ``DatabaseConnection.initialize``.
"""

from sqlalchemy import Column, DateTime, Index, MetaData, String, Table, Text

metadata = MetaData()

# =============================================================================
# TABLE: tracking_jobs
# =============================================================================

tracking_jobs = Table(
    "tracking_jobs",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("url", Text, nullable=False),
    Column("guild_id", String(32), nullable=False),
    Column("channel_id", String(32), nullable=False),
    Column("message_id", String(32), nullable=False),
    Column("assignee_user_id", String(32)),
    Column("requester_user_id", String(32)),
    # Scrape state carried across restarts
    Column("static_name", String(256)),
    Column("last_phase", String(20)),
    Column("last_hash", String(64)),
    Column("last_error_at", DateTime(timezone=True)),
    # Timestamps
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("idx_tracking_jobs_message", "message_id", unique=True),
    Index("idx_tracking_jobs_channel", "channel_id"),
    Index("idx_tracking_jobs_url", "url"),
)
