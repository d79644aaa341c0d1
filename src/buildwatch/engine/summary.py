"""Overall build indicator across projects."""

from __future__ import annotations

from collections.abc import Iterable

from buildwatch.models.projects import BuildResult, Project

# First status present among counted projects wins.
_PRIORITY = (BuildResult.FAILURE, BuildResult.SUCCESS, BuildResult.UNSTABLE)


class SummaryAggregator:
    """Combines active, non-ignored project statuses into one indicator."""

    def __init__(self) -> None:
        self._indicator = BuildResult.NOT_BUILT

    @property
    def indicator(self) -> BuildResult:
        return self._indicator

    def summarize(self, projects: Iterable[Project]) -> BuildResult:
        present = {
            project.status.last_known_status
            for project in projects
            if not project.is_deleted and not project.ignore_for_summary
        }
        self._indicator = next(
            (status for status in _PRIORITY if status in present), BuildResult.NOT_BUILT
        )
        return self._indicator
