"""Service container with DI wiring."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from buildwatch.data.db import Database
from buildwatch.engine.fetcher import StatusFetcher
from buildwatch.engine.poll_loop import PollLoop
from buildwatch.engine.sweeper import PurgeSweeper
from buildwatch.engine.tasks import schedule
from buildwatch.services.notifier import ConsoleNotifier
from buildwatch.services.project_service import ProjectService

if TYPE_CHECKING:
    from buildwatch.config import Config


@dataclass
class ServiceContainer:
    """Holds all application services. Built once at startup."""

    db: Database
    project_service: ProjectService
    fetcher: StatusFetcher
    notifier: ConsoleNotifier
    poll_loop: PollLoop
    sweeper: PurgeSweeper
    sweeper_task: asyncio.Task[None] | None = None

    @classmethod
    async def create(cls, config: Config) -> ServiceContainer:
        """Async factory that wires all dependencies."""
        db = Database(config.db_path)
        await db.connect()

        project_service = ProjectService(db)
        fetcher = StatusFetcher(timeout=config.request_timeout)
        notifier = ConsoleNotifier()
        poll_loop = PollLoop(
            project_service,
            fetcher,
            notifier,
            notifier,
            notifier,
            interval=config.poll_interval,
            gap=timedelta(seconds=config.notification_gap),
        )
        sweeper = PurgeSweeper(
            project_service,
            retention=timedelta(seconds=config.purge_after),
            interval=config.purge_interval,
        )

        return cls(
            db=db,
            project_service=project_service,
            fetcher=fetcher,
            notifier=notifier,
            poll_loop=poll_loop,
            sweeper=sweeper,
        )

    def start(self) -> None:
        """Start the purge sweep (which sweeps right away) and the poll loop."""
        if self.sweeper_task is None:
            self.sweeper_task = schedule(self.sweeper.run())
        self.poll_loop.start()

    async def close(self) -> None:
        """Shut down all services."""
        await self.poll_loop.stop()
        if self.sweeper_task is not None:
            self.sweeper_task.cancel()
            await asyncio.gather(self.sweeper_task, return_exceptions=True)
            self.sweeper_task = None
        self.notifier.cancel_pending()
        await self.fetcher.close()
        await self.db.close()
