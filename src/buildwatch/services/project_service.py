"""Project management and the engine's persistence hooks."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from result import Err, Ok, Result

from buildwatch.data.repositories import ProjectRepository
from buildwatch.models.projects import Project
from buildwatch.services._row_helpers import row_to_project

if TYPE_CHECKING:
    from buildwatch.data.protocols import DatabaseProtocol
    from buildwatch.models.projects import ProjectStatus

logger = logging.getLogger(__name__)

_DEFAULT_TITLE_PREFIX = "Project"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def unique_project_title(existing: set[str]) -> str:
    """Return the first "Project N" title not already taken."""
    count = 0
    while f"{_DEFAULT_TITLE_PREFIX} {count}" in existing:
        count += 1
    return f"{_DEFAULT_TITLE_PREFIX} {count}"


class ProjectService:
    """Service for project queries and edits.

    Also serves as the engine's project source: it lists active projects,
    stores their status and purges old deletions.
    """

    def __init__(
        self, db: DatabaseProtocol, *, clock: Callable[[], datetime] = _utcnow
    ) -> None:
        self._repo = ProjectRepository(db)
        self._clock = clock

    async def list_projects(self) -> Result[list[Project], str]:
        """List active projects in display order."""
        try:
            return Ok(await self.list_active_projects())
        except Exception as exc:
            return Err(f"Listing projects failed: {exc}")

    async def get_project(self, project_id: str) -> Result[Project, str]:
        """Get a single active project by ID."""
        row = await self._repo.get_row(project_id)
        if row is None:
            return Err(f"Project {project_id} not found")
        project = row_to_project(row)
        if project.is_deleted:
            return Err(f"Project {project_id} was deleted")
        return Ok(project)

    async def create_project(
        self,
        title: str = "",
        *,
        url_string: str = "",
        username: str = "",
        token: str = "",
        ignore_for_summary: bool = False,
    ) -> Result[Project, str]:
        """Create a project; an empty title becomes the first free "Project N"."""
        title = title.strip()
        if not title:
            title = unique_project_title(await self._repo.list_active_titles())
        now = self._clock()
        project = Project(
            title=title,
            url_string=url_string.strip(),
            username=username,
            token=token,
            ignore_for_summary=ignore_for_summary,
            created_date=now,
            modified_date=now,
        )
        try:
            await self._repo.insert(project)
        except Exception as exc:
            return Err(f"Creating project failed: {exc}")
        logger.info("Created project %s (%s)", project.title, project.project_id)
        return Ok(project)

    async def update_project(self, project_id: str, **fields: Any) -> Result[Project, str]:
        """Update editable settings of an active project.

        Accepted fields: title, url_string, username, token, ignore_for_summary.
        """
        if not fields:
            return await self.get_project(project_id)
        try:
            updated = await self._repo.update_fields(project_id, fields, self._clock())
        except ValueError as exc:
            return Err(str(exc))
        if not updated:
            return Err(f"Project {project_id} not found")
        return await self.get_project(project_id)

    async def delete_project(self, project_id: str) -> Result[Project, str]:
        """Mark a project deleted; the purge sweep removes it later."""
        found = await self.get_project(project_id)
        if isinstance(found, Err):
            return found
        project = found.ok_value
        project.deletion_date = self._clock()
        await self._repo.mark_deleted(project_id, project.deletion_date)
        logger.info("Deleted project %s (%s)", project.title, project_id)
        return Ok(project)

    async def move_project(self, project_id: str, index: int) -> Result[list[Project], str]:
        """Move a project to ``index`` and renumber the whole list from zero."""
        projects = await self.list_active_projects()
        ids = [project.project_id for project in projects]
        if project_id not in ids:
            return Err(f"Project {project_id} not found")
        ids.remove(project_id)
        ids.insert(max(0, min(index, len(ids))), project_id)
        await self._repo.assign_list_order(ids)
        return await self.list_projects()

    async def purge_deleted(self, cutoff: datetime) -> Result[int, str]:
        try:
            return Ok(await self.purge_projects_deleted_before(cutoff))
        except Exception as exc:
            return Err(f"Purging projects failed: {exc}")

    async def list_active_projects(self) -> list[Project]:
        rows = await self._repo.list_active_rows()
        return [row_to_project(row) for row in rows]

    async def purge_projects_deleted_before(self, cutoff: datetime) -> int:
        return await self._repo.purge_deleted_before(cutoff)

    async def save_project_status(self, project_id: str, status: ProjectStatus) -> None:
        await self._repo.save_status(project_id, status)
