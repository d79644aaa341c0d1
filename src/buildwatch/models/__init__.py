"""Pydantic models for buildwatch."""

from buildwatch.models.notifications import Notification, NotificationKind
from buildwatch.models.projects import DEFAULT_LIST_ORDER, BuildResult, Project, ProjectStatus
from buildwatch.models.updates import ApplyOutcome, FetchResult, StatusUpdate

__all__ = [
    "ApplyOutcome",
    "BuildResult",
    "FetchResult",
    "Notification",
    "NotificationKind",
    "Project",
    "ProjectStatus",
    "StatusUpdate",
    "DEFAULT_LIST_ORDER",
]
