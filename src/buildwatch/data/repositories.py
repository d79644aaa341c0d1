"""Repository layer for SQL persistence and query access."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aiosqlite import Row

    from buildwatch.data.protocols import DatabaseProtocol
    from buildwatch.models.projects import Project, ProjectStatus

_PROJECT_COLUMNS = (
    "p.project_id, p.title, p.url_string, p.username, p.token, p.ignore_for_summary, "
    "p.list_order, p.deletion_date, p.created_date, p.modified_date"
)
_STATUS_COLUMNS = (
    "s.last_known_status, s.had_response, s.last_build_number, s.failed_build_number, "
    "s.culprits_string, s.build_description, s.name, s.building, s.update_date, "
    "s.response_status_code, s.request_error, s.request_error_description, "
    "s.parse_error, s.parse_error_description"
)
_UPDATABLE_FIELDS = {"title", "url_string", "username", "token", "ignore_for_summary"}


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(UTC).isoformat(timespec="microseconds")


class ProjectRepository:
    """SQL query repository for projects and their last known status."""

    def __init__(self, db: DatabaseProtocol) -> None:
        self._db = db

    async def list_active_rows(self) -> list[Row]:
        return await self._db.fetch_all(
            f"""SELECT {_PROJECT_COLUMNS}, {_STATUS_COLUMNS}
                FROM projects p
                LEFT JOIN project_status s ON s.project_id = p.project_id
                WHERE p.deletion_date IS NULL
                ORDER BY p.list_order, p.created_date, p.rowid"""
        )

    async def get_row(self, project_id: str) -> Row | None:
        return await self._db.fetch_one(
            f"""SELECT {_PROJECT_COLUMNS}, {_STATUS_COLUMNS}
                FROM projects p
                LEFT JOIN project_status s ON s.project_id = p.project_id
                WHERE p.project_id = ?""",
            (project_id,),
        )

    async def list_active_titles(self) -> set[str]:
        rows = await self._db.fetch_all("SELECT title FROM projects WHERE deletion_date IS NULL")
        return {str(row["title"]) for row in rows}

    async def insert(self, project: Project) -> None:
        await self._db.execute(
            """INSERT INTO projects (
                   project_id, title, url_string, username, token, ignore_for_summary,
                   list_order, deletion_date, created_date, modified_date
               ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                project.project_id,
                project.title,
                project.url_string,
                project.username,
                project.token,
                int(project.ignore_for_summary),
                project.list_order,
                _iso(project.deletion_date),
                _iso(project.created_date),
                _iso(project.modified_date),
            ),
        )
        await self.save_status(project.project_id, project.status)

    async def update_fields(
        self, project_id: str, fields: dict[str, Any], modified_date: datetime
    ) -> bool:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Cannot update project fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        assignments = [f"{name} = ?" for name in fields]
        params: list[Any] = [
            int(value) if isinstance(value, bool) else value for value in fields.values()
        ]
        assignments.append("modified_date = ?")
        params.extend([_iso(modified_date), project_id])
        cursor = await self._db.execute(
            f"""UPDATE projects SET {", ".join(assignments)}
                WHERE project_id = ? AND deletion_date IS NULL""",
            tuple(params),
        )
        await self._db.commit()
        return cursor.rowcount > 0

    async def mark_deleted(self, project_id: str, deletion_date: datetime) -> bool:
        cursor = await self._db.execute(
            """UPDATE projects SET deletion_date = ?, modified_date = ?
               WHERE project_id = ? AND deletion_date IS NULL""",
            (_iso(deletion_date), _iso(deletion_date), project_id),
        )
        await self._db.commit()
        return cursor.rowcount > 0

    async def purge_deleted_before(self, cutoff: datetime) -> int:
        """Physically remove projects soft-deleted at or before ``cutoff``."""
        cursor = await self._db.execute(
            "DELETE FROM projects WHERE deletion_date IS NOT NULL AND deletion_date <= ?",
            (_iso(cutoff),),
        )
        await self._db.commit()
        return max(cursor.rowcount, 0)

    async def assign_list_order(self, project_ids: list[str], start: int = 0) -> None:
        """Give ``project_ids`` contiguous list_order values beginning at ``start``."""
        await self._db.execute_many(
            "UPDATE projects SET list_order = ? WHERE project_id = ?",
            [(start + offset, project_id) for offset, project_id in enumerate(project_ids)],
        )
        await self._db.commit()

    async def save_status(self, project_id: str, status: ProjectStatus) -> None:
        await self._db.execute(
            """INSERT OR REPLACE INTO project_status (
                   project_id, last_known_status, had_response, last_build_number,
                   failed_build_number, culprits_string, build_description, name, building,
                   update_date, response_status_code, request_error, request_error_description,
                   parse_error, parse_error_description
               ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                project_id,
                status.last_known_status.value,
                int(status.had_response),
                status.last_build_number,
                status.failed_build_number,
                status.culprits_string,
                status.build_description,
                status.name,
                int(status.building),
                _iso(status.update_date),
                status.response_status_code,
                status.request_error,
                status.request_error_description,
                status.parse_error,
                status.parse_error_description,
            ),
        )
        await self._db.commit()
