"""Project-level models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

# Appended after every explicitly ordered project until the list is renumbered.
DEFAULT_LIST_ORDER = 2**31 - 1


def _now() -> datetime:
    return datetime.now(UTC)


class BuildResult(StrEnum):
    """Status of a build job, also used as the summary indicator."""

    SUCCESS = "success"
    FAILURE = "failure"
    ABORTED = "aborted"
    UNSTABLE = "unstable"
    NOT_BUILT = "not_built"


class ProjectStatus(BaseModel):
    """Last known status of a project's most recent build."""

    last_known_status: BuildResult = BuildResult.NOT_BUILT
    had_response: bool = False
    last_build_number: int | None = None
    failed_build_number: int | None = None
    culprits_string: str | None = None
    build_description: str | None = None
    name: str | None = None
    building: bool = False
    update_date: datetime | None = None
    response_status_code: int | None = None
    request_error: str | None = None
    request_error_description: str | None = None
    parse_error: str | None = None
    parse_error_description: str | None = None


class Project(BaseModel):
    """A monitored build job with credentials and display metadata."""

    project_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str = ""
    url_string: str = ""
    username: str = ""
    token: str = ""
    ignore_for_summary: bool = False
    list_order: int = DEFAULT_LIST_ORDER
    deletion_date: datetime | None = None
    created_date: datetime = Field(default_factory=_now)
    modified_date: datetime = Field(default_factory=_now)
    status: ProjectStatus = Field(default_factory=ProjectStatus)

    @property
    def is_deleted(self) -> bool:
        return self.deletion_date is not None
