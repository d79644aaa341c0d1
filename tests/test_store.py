"""Tests for applying fetch results to project status."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

import pytest

from buildwatch.engine.store import (
    PARSE_ERROR_CODE,
    ProjectStatusStore,
    format_culprits,
    parse_build_result,
    strip_display_name,
)
from buildwatch.models.projects import BuildResult, Project
from buildwatch.models.updates import FetchResult

if TYPE_CHECKING:
    from conftest import FakeClock


def _result(
    clock: FakeClock, payload: dict[str, Any] | None = None, **kwargs: Any
) -> FetchResult:
    defaults: dict[str, Any] = {"status_code": 200, "body_received": payload is not None}
    defaults.update(kwargs)
    return FetchResult(start_time=clock(), payload=payload, **defaults)


@pytest.fixture
def store(clock: FakeClock) -> ProjectStatusStore:
    return ProjectStatusStore(clock)


def test_failure_records_failed_build_number(store: ProjectStatusStore, clock: FakeClock) -> None:
    project = Project(title="App")
    outcome = store.apply(project, _result(clock, {"result": "FAILURE", "number": 42}))

    assert outcome.applied is True
    assert outcome.previous is BuildResult.NOT_BUILT
    assert outcome.current is BuildResult.FAILURE
    assert outcome.transitioned is True
    assert project.status.last_known_status is BuildResult.FAILURE
    assert project.status.failed_build_number == 42
    assert project.status.last_build_number == 42
    assert project.status.update_date == clock.now
    assert project.status.had_response is True


def test_non_failure_clears_failed_build_number(
    store: ProjectStatusStore, clock: FakeClock
) -> None:
    project = Project()
    store.apply(project, _result(clock, {"result": "FAILURE", "number": 1}))
    clock.advance(1)
    store.apply(project, _result(clock, {"result": "UNSTABLE", "number": 2}))

    assert project.status.last_known_status is BuildResult.UNSTABLE
    assert project.status.failed_build_number is None
    assert project.status.last_build_number == 2


def test_full_display_name_drops_repeated_display_name(
    store: ProjectStatusStore, clock: FakeClock
) -> None:
    project = Project()
    store.apply(project, _result(clock, {"fullDisplayName": "MyJob #42", "displayName": "#42"}))
    assert project.status.name == "MyJob"


def test_payload_fields_are_mapped(store: ProjectStatusStore, clock: FakeClock) -> None:
    project = Project()
    store.apply(
        project,
        _result(
            clock,
            {
                "result": None,
                "building": True,
                "number": 9,
                "culprits": [{"fullName": "Ada"}, "Grace"],
                "description": "nightly",
                "fullDisplayName": "Pipeline » main #9",
                "displayName": "#9",
            },
        ),
    )
    status = project.status
    assert status.building is True
    assert status.last_known_status is BuildResult.NOT_BUILT
    assert status.culprits_string == "Culprits: Ada, Grace"
    assert status.build_description == "nightly"
    assert status.name == "Pipeline » main"


def test_stale_or_equal_start_time_is_discarded(
    store: ProjectStatusStore, clock: FakeClock
) -> None:
    project = Project()
    store.apply(project, _result(clock, {"result": "SUCCESS", "number": 5}))
    before = project.status.model_dump()

    older = _result(clock, {"result": "FAILURE", "number": 6})
    older = older.model_copy(update={"start_time": clock.now - timedelta(seconds=1)})
    same = _result(clock, {"result": "FAILURE", "number": 6})

    for result in (older, same):
        outcome = store.apply(project, result)
        assert outcome.applied is False
        assert outcome.current is BuildResult.SUCCESS
        assert project.status.model_dump() == before


def test_deleted_project_is_not_updated(store: ProjectStatusStore, clock: FakeClock) -> None:
    project = Project(deletion_date=clock.now)
    outcome = store.apply(project, _result(clock, {"result": "FAILURE"}))

    assert outcome.applied is False
    assert project.status.update_date is None
    assert project.status.last_known_status is BuildResult.NOT_BUILT


def test_parse_failure_keeps_build_fields(store: ProjectStatusStore, clock: FakeClock) -> None:
    project = Project()
    store.apply(project, _result(clock, {"result": "FAILURE", "number": 3}))
    clock.advance(1)

    outcome = store.apply(project, _result(clock, None, body_received=True, parse_failed=True))

    assert outcome.applied is True
    assert outcome.transitioned is False
    assert project.status.parse_error == PARSE_ERROR_CODE
    assert project.status.parse_error_description == "Error parsing JSON"
    assert project.status.last_known_status is BuildResult.FAILURE
    assert project.status.last_build_number == 3

    clock.advance(1)
    store.apply(project, _result(clock, {"result": "SUCCESS", "number": 4}))
    assert project.status.parse_error is None
    assert project.status.parse_error_description is None


def test_request_error_is_recorded_and_status_defaults(
    store: ProjectStatusStore, clock: FakeClock
) -> None:
    project = Project()
    store.apply(project, _result(clock, {"result": "SUCCESS", "number": 1}))
    clock.advance(1)

    store.apply(
        project,
        _result(
            clock,
            None,
            status_code=None,
            request_error="ConnectTimeout",
            request_error_description="timed out",
        ),
    )

    status = project.status
    assert status.request_error == "ConnectTimeout"
    assert status.request_error_description == "timed out"
    assert status.response_status_code is None
    assert status.had_response is False
    assert status.last_known_status is BuildResult.NOT_BUILT
    assert status.last_build_number is None


def test_sync_keeps_status_and_marks_missing_deleted(
    store: ProjectStatusStore, clock: FakeClock
) -> None:
    first = Project(project_id="a", title="A", list_order=1)
    other = Project(project_id="b", title="B", list_order=0)
    store.sync([first, other])
    store.apply(first, _result(clock, {"result": "SUCCESS"}))
    status = first.status

    renamed = Project(project_id="a", title="A2", list_order=5, ignore_for_summary=True)
    removed = store.sync([renamed])

    kept = store.get("a")
    assert kept is first
    assert kept.status is status
    assert kept.title == "A2"
    assert kept.list_order == 5
    assert kept.ignore_for_summary is True
    assert [p.project_id for p in removed] == ["b"]
    assert len(store) == 2
    assert other.deletion_date == clock.now
    assert [p.project_id for p in store.active_projects()] == ["a"]


def test_active_projects_order_ties_by_insertion(store: ProjectStatusStore) -> None:
    store.sync(
        [
            Project(project_id="x", list_order=2),
            Project(project_id="y", list_order=1),
            Project(project_id="z", list_order=2),
        ]
    )
    assert [p.project_id for p in store.active_projects()] == ["y", "x", "z"]


def test_helpers() -> None:
    assert parse_build_result("ABORTED") is BuildResult.ABORTED
    assert parse_build_result("NOT_BUILT") is BuildResult.NOT_BUILT
    assert parse_build_result("weird") is BuildResult.NOT_BUILT
    assert parse_build_result(3) is BuildResult.NOT_BUILT
    assert strip_display_name("Job #1", "#2") == "Job #1"
    assert strip_display_name("Job#1", "#1") == "Job#1"
    assert strip_display_name("Job #1", None) == "Job #1"
    assert format_culprits([]) is None
    assert format_culprits("bob") is None
    assert format_culprits(["bob"]) == "Culprits: bob"
