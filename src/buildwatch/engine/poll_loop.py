"""Periodic fan-out of status requests with single-writer bookkeeping."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from buildwatch.engine.scheduler import DEFAULT_GAP, NotificationScheduler
from buildwatch.engine.store import ProjectStatusStore
from buildwatch.engine.summary import SummaryAggregator
from buildwatch.engine.tasks import schedule
from buildwatch.models.updates import StatusUpdate

if TYPE_CHECKING:
    from buildwatch.engine.fetcher import StatusFetcher
    from buildwatch.models.projects import Project
    from buildwatch.services.protocols import (
        NotificationPresenter,
        ProjectSource,
        ProjectStatusListener,
        SummaryListener,
    )

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 20.0


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class ProjectsListed:
    """Message carrying the project list read at the start of a tick."""

    projects: list[Project]


type EngineMessage = ProjectsListed | StatusUpdate


class PollLoop:
    """Polls every active project on a fixed interval.

    Each tick lists the active projects and starts one fetch per project
    without waiting for the others. Completed fetches are posted to a queue
    drained by a single bookkeeping task, which is the only code that touches
    the status store, the notified set and the notification pacing state.
    Superseded requests are never cancelled; their late results are dropped
    by the store's stale-response check.
    """

    def __init__(
        self,
        source: ProjectSource,
        fetcher: StatusFetcher,
        presenter: NotificationPresenter,
        summary_listener: SummaryListener,
        status_listener: ProjectStatusListener,
        *,
        interval: float = DEFAULT_INTERVAL,
        gap: timedelta = DEFAULT_GAP,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = source
        self._fetcher = fetcher
        self._summary_listener = summary_listener
        self._status_listener = status_listener
        self._interval = interval
        self.store = ProjectStatusStore(clock)
        self.scheduler = NotificationScheduler(presenter, gap=gap, clock=clock)
        self.aggregator = SummaryAggregator()
        self.should_run = False
        self._queue: asyncio.Queue[EngineMessage] = asyncio.Queue()
        self._in_flight: set[asyncio.Task[None]] = set()
        self._writer: asyncio.Task[None] | None = None
        self._ticker: asyncio.Task[None] | None = None

    def start(self) -> None:
        """Start the bookkeeping task and the interval timer (first tick fires now)."""
        self.start_writer()
        if self._ticker is None:
            self._ticker = schedule(self.run())

    def start_writer(self) -> None:
        if self._writer is None:
            self._writer = schedule(self._consume())

    async def stop(self) -> None:
        """Cancel this loop's timer, bookkeeping task and outstanding fetches."""
        tasks = [task for task in (self._ticker, self._writer) if task is not None]
        tasks.extend(self._in_flight)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._ticker = None
        self._writer = None

    async def run(self) -> None:
        """Tick immediately, then every ``interval`` seconds.

        A tick that overruns the interval is followed by one tick, not by a
        burst of the ticks it missed.
        """
        loop = asyncio.get_running_loop()
        next_fire = loop.time()
        while True:
            await self.tick()
            next_fire = max(next_fire + self._interval, loop.time())
            await asyncio.sleep(max(next_fire - loop.time(), 0.0))

    async def tick(self) -> list[asyncio.Task[None]]:
        """List active projects and start one fetch per project.

        Returns:
            The fetch tasks started by this tick.
        """
        try:
            projects = await self._source.list_active_projects()
        except Exception:
            logger.exception("Failed to list projects")
            return []

        if not projects and not self.should_run:
            return []
        self.should_run = True
        await self._queue.put(ProjectsListed(projects))

        logger.debug("Polling %d projects", len(projects))
        started: list[asyncio.Task[None]] = []
        for project in projects:
            task = schedule(self._fetch(project))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
            started.append(task)
        return started

    async def wait_idle(self) -> None:
        """Wait for outstanding fetches and queued bookkeeping to finish."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
        await self.drain()

    async def drain(self) -> None:
        """Wait until every message queued so far has been processed."""
        await self._queue.join()

    async def _fetch(self, project: Project) -> None:
        result = await self._fetcher.fetch(project.url_string, project.username, project.token)
        await self._queue.put(StatusUpdate(project.project_id, result))

    async def _consume(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                match message:
                    case ProjectsListed(projects=projects):
                        self._handle_listing(projects)
                    case StatusUpdate():
                        await self._handle_update(message)
            except Exception:
                logger.exception("Failed to process %s", type(message).__name__)
            finally:
                self._queue.task_done()

    def _handle_listing(self, projects: list[Project]) -> None:
        for removed in self.store.sync(projects):
            logger.info("Project %s is no longer active", removed.project_id)
            self.scheduler.forget(removed.project_id)
        indicator = self.aggregator.summarize(self.store.active_projects())
        self._summary_listener.on_summary_changed(indicator)

    async def _handle_update(self, update: StatusUpdate) -> None:
        project = self.store.get(update.project_id)
        if project is None:
            logger.debug("Discarding response for unknown project %s", update.project_id)
            return

        outcome = self.store.apply(project, update.result)
        if not outcome.applied:
            return
        if outcome.transitioned:
            logger.info(
                "%s: %s -> %s", project.title, outcome.previous.value, outcome.current.value
            )

        self.scheduler.on_status_applied(project, outcome.previous, outcome.current)
        indicator = self.aggregator.summarize(self.store.active_projects())
        self._summary_listener.on_summary_changed(indicator)
        self._status_listener.on_project_status_changed(
            project, outcome.current, project.ignore_for_summary
        )

        try:
            await self._source.save_project_status(project.project_id, project.status)
        except Exception:
            logger.exception("Failed to save status for %s", project.project_id)
