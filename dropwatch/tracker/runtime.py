"""
In-memory state of running trackers.

Rebuilt from the job store on every start. Entries are keyed by the stable
job id; the message id is only a secondary index because it changes when a
deleted tracker message is recreated.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Iterator

from dropwatch.models.job import Phase


@dataclass
class JobState:
    """Scrape state carried from one cycle to the next."""

    static_name: str | None = None
    last_phase: Phase | None = None
    assignee_user_id: str | None = None


@dataclass
class JobRuntime:
    """
    Live resources of one job.

    ``page`` belongs to this job alone. ``timer`` is the polling task and
    ``lock`` keeps the job's cycles from overlapping.
    """

    job_id: str
    message_id: str
    page: Any
    state: JobState = field(default_factory=JobState)
    icon_url: str | None = None
    timer: asyncio.Task | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class RuntimeRegistry:
    """Job id -> JobRuntime, with a message id -> job id index."""

    def __init__(self):
        self._runtimes: dict[str, JobRuntime] = {}
        self._by_message: dict[str, str] = {}

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._runtimes

    def __iter__(self) -> Iterator[JobRuntime]:
        return iter(list(self._runtimes.values()))

    def __len__(self) -> int:
        return len(self._runtimes)

    def add(self, runtime: JobRuntime) -> None:
        if runtime.job_id in self._runtimes:
            raise ValueError(f"Job {runtime.job_id} is already running")
        self._runtimes[runtime.job_id] = runtime
        self._by_message[runtime.message_id] = runtime.job_id

    def get(self, job_id: str) -> JobRuntime | None:
        return self._runtimes.get(job_id)

    def get_by_message(self, message_id: str) -> JobRuntime | None:
        job_id = self._by_message.get(message_id)
        return self._runtimes.get(job_id) if job_id else None

    def reindex_message(self, job_id: str, message_id: str) -> None:
        """Point the job at its recreated message."""
        runtime = self._runtimes[job_id]
        self._by_message.pop(runtime.message_id, None)
        runtime.message_id = message_id
        self._by_message[message_id] = job_id

    def remove(self, job_id: str) -> JobRuntime | None:
        runtime = self._runtimes.pop(job_id, None)
        if runtime is not None:
            self._by_message.pop(runtime.message_id, None)
        return runtime

    def clear(self) -> None:
        self._runtimes.clear()
        self._by_message.clear()
