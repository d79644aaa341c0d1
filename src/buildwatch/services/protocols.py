"""Protocol definitions for the engine's collaborators."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from buildwatch.models.projects import BuildResult, Project, ProjectStatus


class NotificationPresenter(Protocol):
    """Delivers user-facing notifications."""

    def present_notification(self, title: str, body: str, delivery_time: datetime) -> None: ...


class SummaryListener(Protocol):
    """Receives the overall indicator after every applied update."""

    def on_summary_changed(self, indicator: BuildResult) -> None: ...


class ProjectStatusListener(Protocol):
    """Receives one project's indicator after every applied update."""

    def on_project_status_changed(
        self, project: Project, indicator: BuildResult, annotated: bool
    ) -> None: ...


class ProjectSource(Protocol):
    """Persistence collaborator supplying projects and storing their status."""

    async def list_active_projects(self) -> list[Project]: ...

    async def purge_projects_deleted_before(self, cutoff: datetime) -> int: ...

    async def save_project_status(self, project_id: str, status: ProjectStatus) -> None: ...
