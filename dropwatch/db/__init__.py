"""
Dropwatch Database Module.

Provides the SQLite connection and the tracking job repository.
"""

from dropwatch.db.connection import DatabaseConnection
from dropwatch.db.unit_of_work import UnitOfWork

__all__ = ["DatabaseConnection", "UnitOfWork"]
