"""
Tracker lifecycle: runtime registry and the polling service.
"""

from dropwatch.tracker.runtime import JobRuntime, JobState, RuntimeRegistry
from dropwatch.tracker.service import TrackerService

__all__ = ["JobRuntime", "JobState", "RuntimeRegistry", "TrackerService"]
