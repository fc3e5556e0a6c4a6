"""Renderers for change models, poll verdicts and errors."""

from __future__ import annotations

import json
from typing import Any

import click

from cmvcwatch.errors import CmvcWatchError
from cmvcwatch.models import ChangeModel

MODEL_HEADERS = ["Track", "Release", "User", "Last update", "Files", "Description"]


def _echo_json(data: Any, *, err: bool = False) -> None:
    click.echo(json.dumps(data, indent=2, default=str), err=err)


def _columns(headers: list[str], rows: list[list[str]]) -> list[str]:
    """Left-aligned columns under a dashed rule; the last column is not padded."""
    widths = [max([len(h), *(len(row[i]) for row in rows)]) for i, h in enumerate(headers)]

    def line(cells: list[str]) -> str:
        padded = [cell.ljust(widths[i]) for i, cell in enumerate(cells[:-1])]
        return "  ".join([*padded, cells[-1]]).rstrip()

    rule = "  ".join("-" * w for w in widths)
    return [line(headers), rule, *(line(row) for row in rows)]


def model_rows(model: ChangeModel) -> list[list[str]]:
    return [
        [
            entry.track_id,
            entry.release_name,
            entry.user,
            entry.last_update.isoformat(sep=" "),
            str(len(entry.files)),
            entry.description,
        ]
        for entry in model.entries
    ]


def render_model(model: ChangeModel, output_format: str, *, with_files: bool = False) -> None:
    """Print a change model; ``with_files`` lists each file revision per track."""
    if output_format == "json":
        _echo_json(model.model_dump(mode="json"))
        return
    if model.is_empty:
        click.echo("no tracks")
        return
    for text in _columns(MODEL_HEADERS, model_rows(model)):
        click.echo(text)
    if not with_files:
        return
    click.echo()
    for entry in model.entries:
        for changed in entry.files:
            click.echo(f"  {entry.track_id}: {changed.file_name} {changed.revision}".rstrip())


def render_poll(changed: bool, output_format: str) -> None:
    if output_format == "json":
        _echo_json({"changes": changed})
    else:
        click.echo("changes" if changed else "no changes")


def render_clauses(clauses: dict[str, str | None]) -> None:
    """Print report where clauses; a missing clause means no report runs."""
    width = max(len(view) for view in clauses)
    for view, clause in clauses.items():
        click.echo(f"{view.ljust(width)}  {clause if clause is not None else '(no tracks)'}")


def render_error(exc: CmvcWatchError | ValueError, output_format: str) -> None:
    """Errors always go to stderr, as JSON when that is the output format."""
    if output_format == "json":
        if isinstance(exc, CmvcWatchError):
            data = exc.to_dict()
        else:
            data = {"error": "ValueError", "detail": str(exc)}
        _echo_json(data, err=True)
    else:
        click.echo(f"Error: {exc}", err=True)
