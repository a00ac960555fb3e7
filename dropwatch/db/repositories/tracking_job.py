"""
Tracking job repository.

Rows are addressed by message id for every write, mirroring how the
tracker finds its job from the published message; ``id`` stays stable when
the message id changes.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import Table, delete, select, update

from dropwatch.db.repositories.base import BaseRepository
from dropwatch.db.tables import tracking_jobs
from dropwatch.models.job import Phase, TrackingJob

# Columns callers may change through update_by_message_id
UPDATABLE_FIELDS = frozenset(
    {
        "message_id",
        "assignee_user_id",
        "static_name",
        "last_phase",
        "last_hash",
        "last_error_at",
    }
)


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class TrackingJobRepository(BaseRepository[TrackingJob]):
    """Repository for TrackingJob rows."""

    @property
    def table(self) -> Table:
        return tracking_jobs

    def _row_to_model(self, row: Any) -> TrackingJob:
        """Convert database row to TrackingJob model."""
        return TrackingJob(
            id=row.id,
            url=row.url,
            guild_id=row.guild_id,
            channel_id=row.channel_id,
            message_id=row.message_id,
            assignee_user_id=row.assignee_user_id,
            requester_user_id=row.requester_user_id,
            static_name=row.static_name,
            last_phase=Phase(row.last_phase) if row.last_phase else None,
            last_hash=row.last_hash,
            last_error_at=_as_utc(row.last_error_at),
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    def _model_to_dict(self, model: TrackingJob) -> dict:
        """Convert TrackingJob model to database dict."""
        now = datetime.now(timezone.utc)
        return {
            "id": model.id or str(uuid4()),
            "url": model.url,
            "guild_id": model.guild_id,
            "channel_id": model.channel_id,
            "message_id": model.message_id,
            "assignee_user_id": model.assignee_user_id,
            "requester_user_id": model.requester_user_id,
            "static_name": model.static_name,
            "last_phase": model.last_phase.value if model.last_phase else None,
            "last_hash": model.last_hash,
            "last_error_at": model.last_error_at,
            "created_at": now,
            "updated_at": now,
        }

    def insert(self, job: TrackingJob) -> TrackingJob:
        """
        Insert a new job, stamping created_at and updated_at.

        Returns:
            The stored job
        """
        return self.create(job)

    def get_by_message_id(self, message_id: str) -> TrackingJob | None:
        """
        Get the job that owns a published message.

        Returns:
            TrackingJob or None if no job uses this message
        """
        stmt = select(self.table).where(self.table.c.message_id == message_id)
        row = self.session.execute(stmt).fetchone()

        if row is None:
            return None

        return self._row_to_model(row)

    def list_all(self) -> list[TrackingJob]:
        """Get every persisted job, oldest first."""
        stmt = select(self.table).order_by(self.table.c.created_at.asc())
        return [self._row_to_model(row) for row in self.session.execute(stmt)]

    def list_by_channel(self, channel_id: str) -> list[TrackingJob]:
        """Get the jobs publishing into one channel."""
        stmt = select(self.table).where(self.table.c.channel_id == channel_id)
        return [self._row_to_model(row) for row in self.session.execute(stmt)]

    def update_by_message_id(self, message_id: str, /, **fields) -> bool:
        """
        Partially update the job owning ``message_id``.

        ``message_id`` itself may be among the fields (the message was
        recreated). ``updated_at`` is always re-stamped.

        Returns:
            True if a row was updated

        Raises:
            ValueError: On an unknown or immutable field
        """
        if not fields:
            return False

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        values = dict(fields)
        if isinstance(values.get("last_phase"), Phase):
            values["last_phase"] = values["last_phase"].value
        values["updated_at"] = datetime.now(timezone.utc)

        stmt = (
            update(self.table)
            .where(self.table.c.message_id == message_id)
            .values(**values)
        )
        result = self.session.execute(stmt)
        return result.rowcount > 0

    def delete_by_message_id(self, message_id: str) -> bool:
        """
        Delete the job owning ``message_id``.

        Returns:
            True if a row was deleted
        """
        stmt = delete(self.table).where(self.table.c.message_id == message_id)
        result = self.session.execute(stmt)
        return result.rowcount > 0
