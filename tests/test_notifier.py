"""Tests for the console notifier."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from buildwatch.models.projects import BuildResult, Project
from buildwatch.services.notifier import ConsoleNotifier

if TYPE_CHECKING:
    from conftest import FakeClock


def test_delivers_immediately_without_event_loop(clock: FakeClock) -> None:
    printed: list[str] = []
    notifier = ConsoleNotifier(echo=printed.append, clock=clock)

    notifier.present_notification("App failed", "Culprits: ada", clock.now + timedelta(seconds=5))
    notifier.present_notification("App fixed", "", clock.now)

    assert printed == ["App failed: Culprits: ada", "App fixed"]


@pytest.mark.asyncio
async def test_waits_for_delivery_time(clock: FakeClock) -> None:
    printed: list[str] = []
    notifier = ConsoleNotifier(echo=printed.append, clock=clock)

    notifier.present_notification("Later", "", clock.now + timedelta(seconds=0.05))
    notifier.present_notification("Past", "", clock.now - timedelta(seconds=10))
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert printed == ["Past"]

    await asyncio.sleep(0.2)
    assert printed == ["Past", "Later"]


@pytest.mark.asyncio
async def test_cancel_pending_drops_undelivered(clock: FakeClock) -> None:
    printed: list[str] = []
    notifier = ConsoleNotifier(echo=printed.append, clock=clock)

    notifier.present_notification("Later", "", clock.now + timedelta(seconds=0.05))
    notifier.cancel_pending()
    await asyncio.sleep(0.2)

    assert printed == []


def test_listener_callbacks_track_summary(clock: FakeClock) -> None:
    notifier = ConsoleNotifier(echo=lambda _: None, clock=clock)
    assert notifier.summary is None

    notifier.on_summary_changed(BuildResult.FAILURE)
    notifier.on_project_status_changed(Project(title="App"), BuildResult.FAILURE, True)

    assert notifier.summary is BuildResult.FAILURE
