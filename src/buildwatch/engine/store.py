"""In-memory registry of projects and their last known build status."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from buildwatch.models.projects import BuildResult, Project, ProjectStatus
from buildwatch.models.updates import ApplyOutcome, FetchResult

logger = logging.getLogger(__name__)

PARSE_ERROR_CODE = "invalid_json"
PARSE_ERROR_DESCRIPTION = "Error parsing JSON"

_RESULT_MAP: dict[str, BuildResult] = {
    "SUCCESS": BuildResult.SUCCESS,
    "FAILURE": BuildResult.FAILURE,
    "UNSTABLE": BuildResult.UNSTABLE,
    "ABORTED": BuildResult.ABORTED,
    "NOT_BUILT": BuildResult.NOT_BUILT,
}
_METADATA_FIELDS = (
    "title",
    "url_string",
    "username",
    "token",
    "ignore_for_summary",
    "list_order",
    "deletion_date",
    "modified_date",
)


def parse_build_result(value: Any) -> BuildResult:
    """Map a job's ``result`` field to a :class:`BuildResult`."""
    if isinstance(value, str):
        return _RESULT_MAP.get(value, BuildResult.NOT_BUILT)
    return BuildResult.NOT_BUILT


def strip_display_name(full_name: str, display_name: str | None) -> str:
    """Drop a trailing ``" " + display_name`` repeated inside ``full_name``."""
    if display_name:
        suffix = f" {display_name}"
        if full_name.endswith(suffix):
            return full_name[: -len(suffix)]
    return full_name


def format_culprits(culprits: Any) -> str | None:
    if not isinstance(culprits, list):
        return None
    names: list[str] = []
    for culprit in culprits:
        if isinstance(culprit, str):
            names.append(culprit)
        elif isinstance(culprit, dict) and isinstance(culprit.get("fullName"), str):
            names.append(culprit["fullName"])
    if not names:
        return None
    return "Culprits: " + ", ".join(names)


def _optional_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


class ProjectStatusStore:
    """Owns the last known status of every project the engine knows about.

    Only the engine's bookkeeping task mutates a store; see ``PollLoop``.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._projects: dict[str, Project] = {}
        self._clock = clock or (lambda: datetime.now(UTC))

    def __len__(self) -> int:
        return len(self._projects)

    def get(self, project_id: str) -> Project | None:
        return self._projects.get(project_id)

    def sync(self, projects: Iterable[Project]) -> list[Project]:
        """Merge a freshly listed set of active projects into the registry.

        Known projects keep their status object and take the listed metadata.
        Projects that are no longer listed are marked deleted so results still
        in flight for them are discarded.

        Returns:
            Projects that were newly marked deleted.
        """
        listed: set[str] = set()
        for project in projects:
            listed.add(project.project_id)
            current = self._projects.get(project.project_id)
            if current is None:
                self._projects[project.project_id] = project
                continue
            for field_name in _METADATA_FIELDS:
                setattr(current, field_name, getattr(project, field_name))

        removed: list[Project] = []
        for project_id, project in self._projects.items():
            if project_id not in listed and project.deletion_date is None:
                project.deletion_date = self._clock()
                removed.append(project)
        return removed

    def active_projects(self) -> list[Project]:
        """Non-deleted projects ordered by list_order, then insertion."""
        active = [project for project in self._projects.values() if not project.is_deleted]
        return sorted(active, key=lambda project: project.list_order)

    def apply(self, project: Project, result: FetchResult) -> ApplyOutcome:
        """Apply ``result`` to ``project.status`` unless it is stale or the project is gone."""
        status = project.status
        previous = status.last_known_status
        discarded = ApplyOutcome(applied=False, previous=previous, current=previous)

        if status.update_date is not None and result.start_time <= status.update_date:
            logger.debug("Discarding stale response for %s", project.project_id)
            return discarded
        if project.is_deleted:
            logger.debug("Discarding response for deleted project %s", project.project_id)
            return discarded

        status.update_date = result.start_time
        status.request_error = result.request_error
        status.request_error_description = result.request_error_description
        status.parse_error = None
        status.parse_error_description = None
        status.had_response = result.body_received
        status.response_status_code = result.status_code

        if result.parse_failed:
            status.parse_error = PARSE_ERROR_CODE
            status.parse_error_description = PARSE_ERROR_DESCRIPTION
        else:
            _apply_payload(status, result.payload or {})

        return ApplyOutcome(applied=True, previous=previous, current=status.last_known_status)


def _apply_payload(status: ProjectStatus, payload: dict[str, Any]) -> None:
    building = payload.get("building")
    status.building = building if isinstance(building, bool) else False
    status.last_build_number = _optional_int(payload.get("number"))
    status.culprits_string = format_culprits(payload.get("culprits"))
    status.build_description = _optional_str(payload.get("description"))

    full_name = _optional_str(payload.get("fullDisplayName"))
    if full_name is None:
        status.name = None
    else:
        status.name = strip_display_name(full_name, _optional_str(payload.get("displayName")))

    status.last_known_status = parse_build_result(payload.get("result"))
    if status.last_known_status is BuildResult.FAILURE:
        status.failed_build_number = status.last_build_number
    else:
        status.failed_build_number = None
