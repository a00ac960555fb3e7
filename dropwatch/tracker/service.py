"""
Tracker lifecycle and polling.

``TrackerService`` starts trackers, resumes them after a restart, runs the
scrape / classify / publish cycle on a fixed interval and tears a tracker
down once the order is delivered or can no longer be read.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from dropwatch.chat.gateway import (
    ChannelUnavailableError,
    ChatGateway,
    MessageNotFoundError,
)
from dropwatch.chat.payloads import (
    LOGIN_DIRECT_MESSAGE,
    RESUMING_STATUS,
    STARTING_STATUS,
    Branding,
    build_active_payload,
    build_delivered_payload,
    build_login_payload,
    build_placeholder_payload,
    order_arrived_message,
    scrape_error_message,
    started_tracking_message,
    status_update_message,
)
from dropwatch.config import Settings
from dropwatch.db import UnitOfWork
from dropwatch.models.job import Phase, TrackingJob
from dropwatch.models.message import MessagePayload
from dropwatch.scraping.phase import resolve_phase
from dropwatch.scraping.session_pool import SessionPool, TransientScrapeError
from dropwatch.tracker.runtime import JobRuntime, JobState, RuntimeRegistry

logger = logging.getLogger(__name__)

# Scrape errors are reported to the requester at most once per window
ERROR_REPORT_WINDOW = timedelta(minutes=5)


class TrackerService:
    """
    Owns every running tracker.

    Each tracker is a TrackingJob row, a JobRuntime entry and a polling
    task; they are created together by ``start_job`` / ``resume_all`` and
    removed together by ``terminate``.

    Args:
        pool: Shared browser session pool
        gateway: Chat platform gateway
        settings: Poll interval, notify role and branding
    """

    def __init__(self, pool: SessionPool, gateway: ChatGateway, settings: Settings):
        self.pool = pool
        self.gateway = gateway
        self.poll_interval = settings.poll_interval
        self.notify_role_id = settings.notify_role_id
        self.branding = Branding.from_settings(settings)
        self.registry = RuntimeRegistry()

    # ------------------------------------------------------------------
    # Start / resume
    # ------------------------------------------------------------------

    async def start_job(
        self, channel_id: str, url: str, requester_user_id: str | None = None
    ) -> str:
        """
        Start tracking ``url`` in a channel.

        Publishes a placeholder message, stores the job, runs one cycle
        right away and schedules the rest.

        Returns:
            Id of the tracker message (after the first cycle)

        Raises:
            ChannelUnavailableError: If the channel cannot be used
        """
        channel = await self.gateway.fetch_channel(channel_id)
        if channel is None or channel.guild_id is None:
            raise ChannelUnavailableError("Tracking only works in server channels.")

        page = await self.pool.new_page()
        message_id = None
        try:
            assignee_user_id = None
            if self.notify_role_id:
                assignee_user_id = await self.gateway.resolve_notifier(
                    channel_id, self.notify_role_id
                )

            message_id = await self.gateway.send_message(
                channel_id,
                build_placeholder_payload(
                    STARTING_STATUS, url, self.branding, channel.icon_url
                ),
            )

            with UnitOfWork() as uow:
                job = uow.tracking_jobs.insert(
                    TrackingJob(
                        id=str(uuid4()),
                        url=url,
                        guild_id=channel.guild_id,
                        channel_id=channel_id,
                        message_id=message_id,
                        assignee_user_id=assignee_user_id,
                        requester_user_id=requester_user_id,
                    )
                )
                uow.commit()
        except BaseException:
            await self.pool.close_page(page)
            if message_id is not None:
                await self.gateway.delete_message(channel_id, message_id)
            raise

        runtime = JobRuntime(
            job_id=job.id,
            message_id=message_id,
            page=page,
            state=JobState(assignee_user_id=assignee_user_id),
            icon_url=channel.icon_url,
        )
        self.registry.add(runtime)
        logger.info(
            "Started tracking job %s",
            job.id,
            extra={"json_fields": {"url": url, "channel_id": channel_id}},
        )

        await self.run_cycle(job.id)
        self._schedule(job.id)
        return runtime.message_id

    async def resume_all(self) -> int:
        """
        Rebuild every persisted tracker after a restart.

        A job that fails to resume is logged and skipped; the others still
        resume.

        Returns:
            Number of trackers running afterwards
        """
        with UnitOfWork() as uow:
            jobs = uow.tracking_jobs.list_all()

        if not jobs:
            logger.info("No jobs to resume")
            return 0

        logger.info("Resuming %d job(s) from the database", len(jobs))
        for job in jobs:
            try:
                await self._resume_job(job)
            except Exception:
                logger.exception("Failed to resume job %s", job.id)

        return len(self.registry)

    async def _resume_job(self, job: TrackingJob) -> None:
        channel = await self.gateway.fetch_channel(job.channel_id)
        if channel is None:
            logger.info("Channel %s is gone, dropping job %s", job.channel_id, job.id)
            with UnitOfWork() as uow:
                uow.tracking_jobs.delete_by_message_id(job.message_id)
                uow.commit()
            return

        placeholder = build_placeholder_payload(
            RESUMING_STATUS, job.url, self.branding, channel.icon_url
        )
        message_id = job.message_id
        try:
            message_id = await self._show_placeholder(job, placeholder)
        except Exception as e:
            # The first cycle's publish edits or reposts once the platform answers
            logger.warning("Could not show resume placeholder for job %s: %s", job.id, e)

        # Whatever is shown now is stale, so the next cycle must publish
        with UnitOfWork() as uow:
            uow.tracking_jobs.update_by_message_id(
                job.message_id, message_id=message_id, last_hash=None
            )
            uow.commit()

        page = await self.pool.new_page()
        self.registry.add(
            JobRuntime(
                job_id=job.id,
                message_id=message_id,
                page=page,
                state=JobState(
                    static_name=job.static_name,
                    last_phase=job.last_phase,
                    assignee_user_id=job.assignee_user_id,
                ),
                icon_url=channel.icon_url,
            )
        )

        await self.run_cycle(job.id)
        self._schedule(job.id)

    async def _show_placeholder(
        self, job: TrackingJob, placeholder: MessagePayload
    ) -> str:
        """Put the placeholder on the job's message, reposting it if deleted."""
        if await self.gateway.message_exists(job.channel_id, job.message_id):
            try:
                await self.gateway.edit_message(job.channel_id, job.message_id, placeholder)
                return job.message_id
            except MessageNotFoundError:
                pass

        message_id = await self.gateway.send_message(job.channel_id, placeholder)
        logger.info("Republished tracker message for job %s", job.id)
        return message_id

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def _schedule(self, job_id: str) -> None:
        runtime = self.registry.get(job_id)
        if runtime is None:
            # Finished during its first cycle
            return
        runtime.timer = asyncio.create_task(
            self._poll_forever(job_id), name=f"tracker-{job_id}"
        )

    async def _poll_forever(self, job_id: str) -> None:
        while job_id in self.registry:
            await asyncio.sleep(self.poll_interval)
            await self.run_cycle(job_id)

    async def run_cycle(self, job_id: str) -> None:
        """
        One scrape / classify / publish pass for a job.

        Does nothing if the job is not running, and is skipped if the
        job's previous cycle is still in progress. Faults are logged and
        reported to the operator; they never stop the polling.
        """
        runtime = self.registry.get(job_id)
        if runtime is None or runtime.page is None:
            return
        if runtime.lock.locked():
            logger.debug("Previous cycle of job %s still running, skipping", job_id)
            return

        async with runtime.lock:
            try:
                with UnitOfWork() as uow:
                    job = uow.tracking_jobs.get_by_id(job_id)

                if job is None:
                    logger.info("Job %s no longer stored, stopping its timer", job_id)
                    await self._release(job_id)
                    return

                await self._cycle(runtime, job)
            except Exception as e:
                logger.exception("Tracking cycle failed for job %s", job_id)
                await self.gateway.notify_operator(f"⚠️ Tracking cycle failed: {e}")

    async def _cycle(self, runtime: JobRuntime, job: TrackingJob) -> None:
        try:
            snapshot = await self.pool.fetch_snapshot(runtime.page, job.url)
        except TransientScrapeError as e:
            await self._report_scrape_error(job, e)
            return

        if snapshot.requires_login:
            logger.info("Job %s needs a login, stopping", job.id)
            await self.publish(job, build_login_payload(job.url))
            if job.requester_user_id:
                await self.gateway.send_direct_message(
                    job.requester_user_id, LOGIN_DIRECT_MESSAGE
                )
            await self.terminate(job.id)
            return

        state = runtime.state

        # Name latch: the first name seen sticks
        if state.static_name is None and snapshot.name:
            state.static_name = snapshot.name
        if state.static_name and not snapshot.name:
            snapshot = snapshot.model_copy(update={"name": state.static_name})

        phase = resolve_phase(snapshot.status_line or snapshot.status_text, state.last_phase)
        delivered = snapshot.delivered or phase == Phase.DELIVERED

        if state.assignee_user_id and phase is not None:
            await self._announce_phase(job, state, phase, snapshot.eta_line)
        state.last_phase = phase

        if delivered:
            payload = build_delivered_payload(job.url, self.branding, runtime.icon_url)
        else:
            payload = build_active_payload(
                snapshot, job.url, self.branding, runtime.icon_url
            )

        fields: dict = {}
        fingerprint = payload.fingerprint()
        if fingerprint != job.last_hash:
            await self.publish(job, payload)
            fields.update(last_hash=fingerprint, last_error_at=None)
        if state.last_phase != job.last_phase:
            fields["last_phase"] = state.last_phase
        if state.static_name != job.static_name:
            fields["static_name"] = state.static_name

        if fields:
            with UnitOfWork() as uow:
                uow.tracking_jobs.update_by_message_id(runtime.message_id, **fields)
                uow.commit()

        if delivered:
            if state.assignee_user_id:
                await self.gateway.send_mention(
                    job.channel_id,
                    state.assignee_user_id,
                    order_arrived_message(state.assignee_user_id),
                )
            logger.info("Job %s delivered", job.id)
            await self.terminate(job.id)

    async def _announce_phase(
        self, job: TrackingJob, state: JobState, phase: Phase, eta_line: str | None
    ) -> None:
        """Ping the notifier on the first phase and on every phase change."""
        user_id = state.assignee_user_id
        if state.last_phase is None:
            text = started_tracking_message(user_id, phase, eta_line)
        elif phase != state.last_phase:
            text = status_update_message(user_id, phase, eta_line)
        else:
            return
        await self.gateway.send_mention(job.channel_id, user_id, text)

    async def _report_scrape_error(self, job: TrackingJob, error: Exception) -> None:
        logger.warning("Scrape error for job %s: %s", job.id, error)

        now = datetime.now(timezone.utc)
        if job.last_error_at and now - job.last_error_at < ERROR_REPORT_WINDOW:
            return

        if job.requester_user_id:
            await self.gateway.send_direct_message(
                job.requester_user_id, scrape_error_message(str(error))
            )
        with UnitOfWork() as uow:
            uow.tracking_jobs.update_by_message_id(job.message_id, last_error_at=now)
            uow.commit()

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def publish(self, job: TrackingJob, payload: MessagePayload) -> str:
        """
        Edit the tracker message, recreating it if it was deleted.

        When a new message is posted, the stored row and the runtime index
        move to its id.

        Returns:
            Id of the message now showing the payload
        """
        runtime = self.registry.get(job.id)
        message_id = runtime.message_id if runtime else job.message_id

        try:
            await self.gateway.edit_message(job.channel_id, message_id, payload)
            return message_id
        except MessageNotFoundError:
            logger.info("Tracker message %s was deleted, reposting", message_id)

        new_message_id = await self.gateway.send_message(job.channel_id, payload)
        with UnitOfWork() as uow:
            uow.tracking_jobs.update_by_message_id(message_id, message_id=new_message_id)
            uow.commit()
        if runtime is not None:
            self.registry.reindex_message(job.id, new_message_id)
        return new_message_id

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def _stop(self, runtime: JobRuntime) -> None:
        """Cancel a job's timer and close its page. Best-effort."""
        timer = runtime.timer
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()
        runtime.timer = None

        page, runtime.page = runtime.page, None
        if page is not None:
            try:
                await self.pool.close_page(page)
            except Exception as e:
                logger.warning("Closing page of job %s failed: %s", runtime.job_id, e)

    async def _release(self, job_id: str) -> None:
        """Stop a job and forget it, keeping its row."""
        runtime = self.registry.get(job_id)
        if runtime is not None:
            await self._stop(runtime)
            self.registry.remove(job_id)

    async def terminate(self, job_id: str) -> None:
        """
        Stop a job for good.

        Cancels its timer, closes its page, deletes its row and drops its
        runtime entry. Each step runs even if an earlier one failed.
        """
        runtime = self.registry.get(job_id)
        if runtime is not None:
            await self._stop(runtime)

        try:
            with UnitOfWork() as uow:
                uow.tracking_jobs.delete_by_id(job_id)
                uow.commit()
        except Exception:
            logger.exception("Deleting job %s failed", job_id)

        self.registry.remove(job_id)
        logger.info("Job %s terminated", job_id)

    async def shutdown(self) -> None:
        """Stop every timer, close every page and the browser. Rows are kept."""
        timers = [r.timer for r in self.registry if r.timer is not None]
        for timer in timers:
            timer.cancel()
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)

        for runtime in self.registry:
            await self._stop(runtime)
        self.registry.clear()

        await self.pool.close()
