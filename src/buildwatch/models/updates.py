"""Models for fetch results and the updates derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from buildwatch.models.projects import BuildResult


class FetchResult(BaseModel):
    """Outcome of one status request, successful or not."""

    start_time: datetime
    request_error: str | None = None
    request_error_description: str | None = None
    status_code: int | None = None
    body_received: bool = False
    payload: dict[str, Any] | None = None
    parse_failed: bool = False


@dataclass(frozen=True)
class StatusUpdate:
    """Message posted to the bookkeeping task when a fetch completes."""

    project_id: str
    result: FetchResult


@dataclass(frozen=True)
class ApplyOutcome:
    """Whether a fetch result was applied, with the statuses around it."""

    applied: bool
    previous: BuildResult
    current: BuildResult

    @property
    def transitioned(self) -> bool:
        return self.applied and self.previous != self.current
