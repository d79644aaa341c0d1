"""Failure/fix notifications with process-wide delivery pacing."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from buildwatch.models.notifications import Notification, NotificationKind
from buildwatch.models.projects import BuildResult

if TYPE_CHECKING:
    from buildwatch.models.projects import Project
    from buildwatch.services.protocols import NotificationPresenter

logger = logging.getLogger(__name__)

DEFAULT_GAP = timedelta(seconds=5)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NotificationScheduler:
    """Decides which status transitions notify the user, and when.

    A project enters the notified set when its failure is first reported and
    leaves it when a later success is reported, so a job that keeps failing
    produces a single "failed" notification.
    """

    def __init__(
        self,
        presenter: NotificationPresenter,
        *,
        gap: timedelta = DEFAULT_GAP,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._presenter = presenter
        self._gap = gap
        self._clock = clock
        self._lock = threading.Lock()
        self._next_available_delivery_date = clock()
        self._notified: set[str] = set()

    @property
    def notified_project_ids(self) -> frozenset[str]:
        return frozenset(self._notified)

    @property
    def next_available_delivery_date(self) -> datetime:
        return self._next_available_delivery_date

    def next_available_notification_time(self) -> datetime:
        """Reserve the next delivery slot, at least one gap after the previous one."""
        with self._lock:
            delivery = self._clock() + self._gap
            if self._next_available_delivery_date > delivery:
                delivery = self._next_available_delivery_date
            self._next_available_delivery_date = delivery + self._gap
            return delivery

    def on_status_applied(
        self, project: Project, previous: BuildResult, current: BuildResult
    ) -> Notification | None:
        """React to one applied status update of ``project``."""
        project_id = project.project_id
        if current is BuildResult.FAILURE and project_id not in self._notified:
            self._notified.add(project_id)
            return self._schedule(
                NotificationKind.FAILED,
                project,
                f"{project.title} failed",
                project.status.culprits_string or "",
            )
        if current is BuildResult.SUCCESS and project_id in self._notified:
            self._notified.discard(project_id)
            return self._schedule(NotificationKind.FIXED, project, f"{project.title} fixed", "")
        return None

    def forget(self, project_id: str) -> None:
        self._notified.discard(project_id)

    def _schedule(
        self, kind: NotificationKind, project: Project, title: str, body: str
    ) -> Notification:
        notification = Notification(
            kind=kind,
            project_id=project.project_id,
            title=title,
            body=body,
            delivery_time=self.next_available_notification_time(),
        )
        logger.info("Scheduling %r for %s", title, notification.delivery_time.isoformat())
        self._presenter.present_notification(
            notification.title, notification.body, notification.delivery_time
        )
        return notification
