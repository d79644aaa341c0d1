"""Physical removal of soft-deleted projects."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from buildwatch.services.protocols import ProjectSource

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def purge_cutoff(now: datetime, retention: timedelta = DEFAULT_RETENTION) -> datetime:
    """Projects deleted at or before this instant are old enough to purge."""
    return now - max(retention, timedelta(0))


class PurgeSweeper:
    """Purges projects whose deletion is older than the retention window.

    Deleting a project only marks it; this sweep is what removes the rows.
    """

    def __init__(
        self,
        source: ProjectSource,
        *,
        retention: timedelta = DEFAULT_RETENTION,
        interval: float = 3600.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = source
        self._retention = retention
        self._interval = interval
        self._clock = clock

    async def sweep(self) -> int:
        """Run one purge.

        Returns:
            Count of projects removed.
        """
        cutoff = purge_cutoff(self._clock(), self._retention)
        removed = await self._source.purge_projects_deleted_before(cutoff)
        if removed:
            logger.info("Purged %d deleted projects", removed)
        return removed

    async def run(self) -> None:
        """Sweep now, then every ``interval`` seconds."""
        while True:
            try:
                await self.sweep()
            except Exception:
                logger.exception("Project purge failed")
            await asyncio.sleep(self._interval)
