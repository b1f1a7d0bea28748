"""Shared output plumbing for commands: --format/--json/--out handling."""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable

import click
from rich.console import Console

from yx_core.errors import YxError

console = Console()

FORMATS = ("table", "tsv", "json")


def output_options(func):
    """Attach --format, --json and --out to a command."""
    func = click.option("--out", "out_path", default=None, help="Write tsv/json output to this file.")(func)
    func = click.option("--json", "json_flag", is_flag=True, help="Shorthand for --format json.")(func)
    func = click.option(
        "--format",
        "output_format",
        type=click.Choice(FORMATS),
        default="table",
        show_default=True,
        help="Output format.",
    )(func)
    return func


def resolve_format(output_format: str, json_flag: bool, out_path: str | None) -> str:
    fmt = "json" if json_flag else output_format
    if out_path and fmt == "table":
        raise click.UsageError("--out requires --format tsv/json (or --json).")
    return fmt


def to_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str) + "\n"


def escape_tsv_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        value = "true" if value else "false"
    return str(value).replace("\r\n", " ").replace("\n", " ").replace("\t", " ")


def to_tsv(header: list[str], rows: Iterable[Iterable[Any]]) -> str:
    lines = ["\t".join(header)]
    lines.extend("\t".join(escape_tsv_cell(cell) for cell in row) for row in rows)
    return "\n".join(lines) + "\n"


def emit(content: str, out_path: str | None, label: str) -> None:
    """Print *content* or save it to *out_path*."""
    if out_path:
        Path(out_path).write_text(content, encoding="utf-8")
        click.echo(f"Saved {label} to {out_path}.")
        return
    click.echo(content, nl=False)


@contextmanager
def cli_errors():
    """Surface yx errors as click errors (exit code 1) with their message."""
    try:
        yield
    except YxError as exc:
        raise click.ClickException(str(exc)) from exc
