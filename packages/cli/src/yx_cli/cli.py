"""CLI entry point for yx.

Commands:
  pr    inspect and act on Codeup change requests (patchsets, diff,
        comments, threads, checks, reviews)
  run   follow pipeline runs
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from yx_cli.commands.pr import pr_group
from yx_cli.commands.run import run_group


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _build_client(config: dict):
    """Create the API client on first use so commands fail only when they need it."""
    from yx_core.api.client import client_from_config
    from yx_cli.auth import resolve_token

    token = resolve_token(config)
    if not token:
        raise click.UsageError("Missing token. Set YUNXIAO_ACCESS_TOKEN or add `token` to .yx.yml.")
    return client_from_config(config, token)


@click.group()
@click.version_option(
    version=importlib.metadata.version("yx-cli"),
    prog_name="yx",
)
@click.option(
    "--config",
    "config_path",
    default=".yx.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="YX_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log API calls and degraded fallbacks.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """gh-style client for Yunxiao (Codeup) change requests."""
    from yx_core.config import load_config
    from yx_core.errors import YxError

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except YxError as exc:
        raise click.ClickException(str(exc)) from exc

    ctx.obj["config"] = config
    ctx.obj["get_client"] = lambda: _build_client(config)


main.add_command(pr_group)
main.add_command(run_group)
