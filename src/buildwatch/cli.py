"""Typer CLI for buildwatch: run the poller and manage watched projects."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from result import Err, Result

from buildwatch.config import Config

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from buildwatch.models.projects import Project
    from buildwatch.services.project_service import ProjectService

    type ServiceOperation[T] = Callable[[ProjectService], Awaitable[Result[T, str]]]

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="buildwatch",
    help="Watch build jobs and get notified when they fail or get fixed.",
    invoke_without_command=True,
)

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", help="Directory holding the project database"),
]


def _config(data_dir: Path | None, **overrides: float) -> Config:
    if data_dir is None:
        return Config(**overrides)
    return Config(data_dir=data_dir, **overrides)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.callback(invoke_without_command=True)
def run(
    ctx: typer.Context,
    data_dir: DataDirOption = None,
    interval: Annotated[
        float, typer.Option("--interval", min=1.0, help="Seconds between polls")
    ] = 20.0,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Poll all projects until interrupted."""
    if ctx.invoked_subcommand is not None:
        return
    _configure_logging(verbose)
    config = _config(data_dir, poll_interval=interval)
    try:
        asyncio.run(_run(config))
    except KeyboardInterrupt:
        typer.echo("Stopped.")


async def _run(config: Config) -> None:
    """Start the purge sweep and the poll loop, and wait forever."""
    from buildwatch.services.container import ServiceContainer

    services = await ServiceContainer.create(config)
    try:
        services.start()
        logger.info("Polling every %.0fs using %s", config.poll_interval, config.db_path)
        await asyncio.Event().wait()
    finally:
        await services.close()


@app.command()
def add(
    title: Annotated[str, typer.Argument(help="Display title (default: Project N)")] = "",
    url: Annotated[str, typer.Option("--url", help="Base URL of the job")] = "",
    username: Annotated[str, typer.Option("--username", help="User for basic auth")] = "",
    token: Annotated[str, typer.Option("--token", help="API token for basic auth")] = "",
    ignore_for_summary: Annotated[
        bool, typer.Option("--ignore-for-summary", help="Leave out of the overall status")
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """Add a project to watch."""
    project = _call(
        _config(data_dir),
        lambda service: service.create_project(
            title,
            url_string=url,
            username=username,
            token=token,
            ignore_for_summary=ignore_for_summary,
        ),
    )
    typer.echo(f"Added {project.title} ({project.project_id})")


@app.command()
def update(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
    title: Annotated[str | None, typer.Option("--title")] = None,
    url: Annotated[str | None, typer.Option("--url")] = None,
    username: Annotated[str | None, typer.Option("--username")] = None,
    token: Annotated[str | None, typer.Option("--token")] = None,
    ignore_for_summary: Annotated[
        bool | None, typer.Option("--ignore-for-summary/--include-in-summary")
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Change a project's settings."""
    fields = {
        key: value
        for key, value in {
            "title": title,
            "url_string": url,
            "username": username,
            "token": token,
            "ignore_for_summary": ignore_for_summary,
        }.items()
        if value is not None
    }
    project = _call(
        _config(data_dir), lambda service: service.update_project(project_id, **fields)
    )
    typer.echo(f"Updated {project.title}")


@app.command()
def remove(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
    data_dir: DataDirOption = None,
) -> None:
    """Stop watching a project."""
    project = _call(_config(data_dir), lambda service: service.delete_project(project_id))
    typer.echo(f"Removed {project.title}")


@app.command()
def move(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
    index: Annotated[int, typer.Argument(min=0, help="New zero-based position")],
    data_dir: DataDirOption = None,
) -> None:
    """Move a project to a new position in the list."""
    projects = _call(_config(data_dir), lambda service: service.move_project(project_id, index))
    _print_projects(projects)


@app.command("list")
def list_projects(data_dir: DataDirOption = None) -> None:
    """List watched projects with their last known status."""
    projects = _call(_config(data_dir), lambda service: service.list_projects())
    _print_projects(projects)


@app.command()
def purge(
    data_dir: DataDirOption = None,
    older_than_hours: Annotated[
        float, typer.Option("--older-than-hours", min=0.0, help="Deletion age to purge")
    ] = 24.0,
) -> None:
    """Permanently remove projects deleted longer ago than the given age."""
    from buildwatch.engine.sweeper import purge_cutoff

    cutoff = purge_cutoff(datetime.now(UTC), timedelta(hours=older_than_hours))
    removed = _call(_config(data_dir), lambda service: service.purge_deleted(cutoff))
    typer.echo(f"Purged {removed} projects")


def _call[T](config: Config, operation: ServiceOperation[T]) -> T:
    """Run one ProjectService operation against the database and unwrap its result."""
    result = asyncio.run(_with_service(config, operation))
    if isinstance(result, Err):
        typer.echo(f"Error: {result.err_value}", err=True)
        raise typer.Exit(code=1)
    return result.ok_value


async def _with_service[T](config: Config, operation: ServiceOperation[T]) -> Result[T, str]:
    from buildwatch.data.db import Database
    from buildwatch.services.project_service import ProjectService

    async with Database(config.db_path) as db:
        return await operation(ProjectService(db))


def _print_projects(projects: list[Project]) -> None:
    from buildwatch.services.status_text import describe_status

    if not projects:
        typer.echo("No projects.")
        return
    for position, project in enumerate(projects):
        status = project.status
        flags = " [ignored]" if project.ignore_for_summary else ""
        build = f" #{status.last_build_number}" if status.last_build_number is not None else ""
        typer.echo(
            f"{position:>2}. {project.title}{flags}  {status.last_known_status.value}{build}"
            f"  {project.project_id}"
        )
        detail = describe_status(status).replace("\n", " ")
        if detail:
            typer.echo(f"    {detail}")
        if status.culprits_string:
            typer.echo(f"    {status.culprits_string}")
