"""cmvcwatch CLI -- poll a CMVC family and record build changelogs."""
# mypy: disable-error-code="misc,untyped-decorator"

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import NoReturn

import click

from cmvcwatch import __version__, changelog
from cmvcwatch.cli.output import render_clauses, render_error, render_model, render_poll
from cmvcwatch.config.settings import Settings
from cmvcwatch.dates import MIN_DATE
from cmvcwatch.detector import ChangeDetector
from cmvcwatch.errors import CmvcWatchError
from cmvcwatch.logconfig import configure_logging
from cmvcwatch.models import TimeWindow
from cmvcwatch.query import build_file_filter, build_track_filter
from cmvcwatch.runner import SubprocessRunner

_DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]

since_option = click.option(
    "--since",
    type=click.DateTime(formats=_DATE_FORMATS),
    default=None,
    help="Timestamp of the last successful build. Omit when there is none.",
)


def _detector(ctx: click.Context) -> ChangeDetector:
    runner = ctx.obj.get("runner") or SubprocessRunner()
    return ChangeDetector(ctx.obj["settings"], runner)


def _fail(ctx: click.Context, exc: CmvcWatchError | ValueError) -> NoReturn:
    render_error(exc, ctx.obj["format"])
    ctx.exit(1)


@click.group()
@click.option("--family", default=None, help="CMVC family (family@host@port).")
@click.option("--releases", default=None, help="Comma separated release names.")
@click.option("--become", default=None, help="CMVC user to act as.")
@click.option(
    "--log-level",
    envvar="CMVCWATCH_LOG_LEVEL",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level.",
)
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)
@click.version_option(version=__version__)
@click.pass_context
def cli(
    ctx: click.Context,
    family: str | None,
    releases: str | None,
    become: str | None,
    log_level: str,
    json_logs: bool,
    output_format: str,
) -> None:
    """cmvcwatch -- detect integrated CMVC tracks for builds."""
    configure_logging(log_level, json_logs)
    ctx.ensure_object(dict)
    overrides = {
        key: value
        for key, value in {"family": family, "releases": releases, "become": become}.items()
        if value is not None
    }
    settings = ctx.obj.get("settings")
    if settings is None:
        settings = Settings(**overrides)
    elif overrides:
        settings = settings.model_copy(update=overrides)
    ctx.obj["settings"] = settings
    ctx.obj["format"] = output_format


@cli.command()
@since_option
@click.pass_context
def poll(ctx: click.Context, since: datetime | None) -> None:
    """Report whether integrated tracks exist since the last build."""
    try:
        changed = _detector(ctx).poll(since)
    except CmvcWatchError as exc:
        _fail(ctx, exc)
    render_poll(changed, ctx.obj["format"])


@cli.command()
@since_option
@click.option(
    "--workspace",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    help="Directory the checkout script runs in.",
)
@click.option(
    "--changelog",
    "changelog_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("changelog.xml"),
    help="Where to write the build changelog.",
)
@click.pass_context
def checkout(
    ctx: click.Context,
    since: datetime | None,
    workspace: Path,
    changelog_path: Path,
) -> None:
    """Check out integrated tracks and write the build changelog."""
    try:
        model = _detector(ctx).run_checkout_cycle(since, workspace, changelog_path)
    except CmvcWatchError as exc:
        _fail(ctx, exc)
    render_model(model, ctx.obj["format"])


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def show(ctx: click.Context, path: Path) -> None:
    """Display a persisted changelog."""
    try:
        model = changelog.read_file(path)
    except CmvcWatchError as exc:
        _fail(ctx, exc)
    render_model(model, ctx.obj["format"], with_files=True)


@cli.command()
@since_option
@click.option("--until", type=click.DateTime(formats=_DATE_FORMATS), default=None)
@click.option("--track", "track_ids", multiple=True, help="Track id for the ChangeView clause.")
@click.pass_context
def query(
    ctx: click.Context,
    since: datetime | None,
    until: datetime | None,
    track_ids: tuple[str, ...],
) -> None:
    """Print the generated report where clauses."""
    settings: Settings = ctx.obj["settings"]
    try:
        window = TimeWindow(start=since or MIN_DATE, end=until or datetime.now())
        releases = settings.release_list()
        track_clause = build_track_filter(window, releases, settings.track_view_where_clause)
    except (CmvcWatchError, ValueError) as exc:
        _fail(ctx, exc)
    file_clause = build_file_filter(list(track_ids), releases)
    render_clauses({"TrackView": track_clause, "ChangeView": file_clause})


if __name__ == "__main__":
    cli()
