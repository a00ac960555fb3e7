"""
Repository layer for database access.
"""

from dropwatch.db.repositories.base import BaseRepository
from dropwatch.db.repositories.tracking_job import TrackingJobRepository

__all__ = ["BaseRepository", "TrackingJobRepository"]
