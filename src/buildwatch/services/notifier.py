"""Console stand-ins for the notification banner and status icons."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import typer

if TYPE_CHECKING:
    from buildwatch.models.projects import BuildResult, Project

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ConsoleNotifier:
    """Prints notifications at their delivery time and logs indicator changes."""

    def __init__(
        self,
        *,
        echo: Callable[[str], object] = typer.echo,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._echo = echo
        self._clock = clock
        self._summary: BuildResult | None = None
        self._handles: set[asyncio.TimerHandle] = set()

    @property
    def summary(self) -> BuildResult | None:
        return self._summary

    def present_notification(self, title: str, body: str, delivery_time: datetime) -> None:
        delay = (delivery_time - self._clock()).total_seconds()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deliver(title, body, None)
            return
        handle = loop.call_later(max(delay, 0.0), lambda: self._deliver(title, body, handle))
        self._handles.add(handle)

    def on_summary_changed(self, indicator: BuildResult) -> None:
        if indicator != self._summary:
            logger.info("Overall status: %s", indicator.value)
        self._summary = indicator

    def on_project_status_changed(
        self, project: Project, indicator: BuildResult, annotated: bool
    ) -> None:
        suffix = " (ignored for summary)" if annotated else ""
        logger.debug("%s: %s%s", project.title, indicator.value, suffix)

    def cancel_pending(self) -> None:
        """Drop notifications that have not been delivered yet."""
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()

    def _deliver(self, title: str, body: str, handle: asyncio.TimerHandle | None) -> None:
        if handle is not None:
            self._handles.discard(handle)
        logger.info("Notification: %s", title)
        self._echo(f"{title}: {body}" if body else title)
