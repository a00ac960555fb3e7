"""
Unit of Work for job store access.

Each tracker touches only its own row, so a unit of work normally wraps a
single statement, but the pattern keeps session handling in one place.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dropwatch.db.connection import DatabaseConnection
from dropwatch.db.repositories.tracking_job import TrackingJobRepository

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class UnitOfWork:
    """
    Unit of Work for managing database transactions.

    Usage:
        with UnitOfWork() as uow:
            uow.tracking_jobs.update_by_message_id(message_id, last_hash=h)
            uow.commit()

        # Auto-rollback on exception:
        with UnitOfWork() as uow:
            uow.tracking_jobs.delete_by_message_id(message_id)
            raise Exception("Something went wrong")
            # Transaction is automatically rolled back
    """

    def __init__(self):
        self._session: Session | None = None
        self._tracking_jobs: TrackingJobRepository | None = None

    def __enter__(self) -> UnitOfWork:
        self._session = DatabaseConnection.get_session()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.rollback()
        self._close()
        return False  # Don't suppress exceptions

    @property
    def session(self) -> Session:
        """Get current session (raises if not in context)."""
        if self._session is None:
            raise RuntimeError("UnitOfWork must be used within a context manager")
        return self._session

    @property
    def tracking_jobs(self) -> TrackingJobRepository:
        """Tracking job repository for this unit of work."""
        if self._tracking_jobs is None:
            self._tracking_jobs = TrackingJobRepository(self.session)
        return self._tracking_jobs

    def commit(self):
        """Commit the current transaction."""
        self.session.commit()

    def rollback(self):
        """Rollback the current transaction."""
        self.session.rollback()

    def _close(self):
        """Close the session."""
        if self._session is not None:
            self._session.close()
            self._session = None
            self._tracking_jobs = None
