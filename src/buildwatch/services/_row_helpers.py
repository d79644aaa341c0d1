"""Shared row-to-model conversion helpers for service modules."""

from __future__ import annotations

from datetime import UTC, datetime

from buildwatch.models.projects import BuildResult, Project, ProjectStatus


def row_str(row: dict[str, object], key: str, default: str = "") -> str:
    """Extract a string value from a database row dict."""
    v = row.get(key, default)
    return str(v) if v else default


def row_optional_str(row: dict[str, object], key: str) -> str | None:
    v = row.get(key)
    return None if v is None else str(v)


def row_int(row: dict[str, object], key: str) -> int:
    """Extract an integer value from a database row dict."""
    v = row.get(key, 0)
    if isinstance(v, bool):
        return int(v)
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v)
    if isinstance(v, str):
        try:
            return int(v)
        except ValueError:
            return 0
    return 0


def row_optional_int(row: dict[str, object], key: str) -> int | None:
    if row.get(key) is None:
        return None
    return row_int(row, key)


def row_datetime(row: dict[str, object], key: str) -> datetime | None:
    """Parse a stored ISO timestamp; naive values are taken as UTC."""
    v = row.get(key)
    if not isinstance(v, str) or not v:
        return None
    try:
        parsed = datetime.fromisoformat(v)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def row_to_status(row: dict[str, object]) -> ProjectStatus:
    raw_status = row_str(row, "last_known_status", BuildResult.NOT_BUILT.value)
    try:
        last_known_status = BuildResult(raw_status)
    except ValueError:
        last_known_status = BuildResult.NOT_BUILT
    return ProjectStatus(
        last_known_status=last_known_status,
        had_response=bool(row_int(row, "had_response")),
        last_build_number=row_optional_int(row, "last_build_number"),
        failed_build_number=row_optional_int(row, "failed_build_number"),
        culprits_string=row_optional_str(row, "culprits_string"),
        build_description=row_optional_str(row, "build_description"),
        name=row_optional_str(row, "name"),
        building=bool(row_int(row, "building")),
        update_date=row_datetime(row, "update_date"),
        response_status_code=row_optional_int(row, "response_status_code"),
        request_error=row_optional_str(row, "request_error"),
        request_error_description=row_optional_str(row, "request_error_description"),
        parse_error=row_optional_str(row, "parse_error"),
        parse_error_description=row_optional_str(row, "parse_error_description"),
    )


def row_to_project(row: object) -> Project:
    r: dict[str, object] = dict(row)  # type: ignore[call-overload]
    now = datetime.now(UTC)
    return Project(
        project_id=row_str(r, "project_id"),
        title=row_str(r, "title"),
        url_string=row_str(r, "url_string"),
        username=row_str(r, "username"),
        token=row_str(r, "token"),
        ignore_for_summary=bool(row_int(r, "ignore_for_summary")),
        list_order=row_int(r, "list_order"),
        deletion_date=row_datetime(r, "deletion_date"),
        created_date=row_datetime(r, "created_date") or now,
        modified_date=row_datetime(r, "modified_date") or now,
        status=row_to_status(r),
    )
