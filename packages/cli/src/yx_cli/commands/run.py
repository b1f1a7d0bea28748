"""run commands: follow Flow pipeline runs."""

from __future__ import annotations

import click

from yx_core.config import resolve_organization_id
from yx_core.polling import seconds
from yx_core.runs import read_run_status, watch_run
from yx_cli.output import cli_errors, console, to_json


@click.group("run")
def run_group():
    """Work with pipeline runs."""


@run_group.command("watch")
@click.argument("pipeline_id")
@click.argument("run_id")
@click.option("--org", default=None, help="Organization ID. Defaults to organization_id in .yx.yml.")
@click.option("--interval", type=float, default=5, show_default=True, help="Polling interval in seconds.")
@click.option("--timeout", type=float, default=1800, show_default=True, help="Max watch time in seconds.")
@click.option("--json", "json_flag", is_flag=True, help="Print the final run as JSON.")
@click.pass_context
def watch_cmd(ctx, pipeline_id: str, run_id: str, org: str | None, interval: float, timeout: float, json_flag: bool):
    """Poll a pipeline run until it reaches a terminal status or the timeout passes."""
    with cli_errors():
        organization_id = resolve_organization_id(ctx.obj["config"], org)
        client = ctx.obj["get_client"]()

        def announce(run, elapsed: float) -> None:
            if not json_flag:
                click.echo(f"[{int(elapsed)}s] status={read_run_status(run)}")

        result = watch_run(
            client,
            organization_id,
            pipeline_id,
            run_id,
            interval=seconds(interval),
            timeout=seconds(timeout),
            on_change=announce,
        )

    if json_flag:
        click.echo(to_json(result.value), nl=False)
    if result.timed_out:
        status = read_run_status(result.value)
        console.print(f"[yellow]Timed out after {int(result.elapsed)}s; last status={status}[/yellow]")
