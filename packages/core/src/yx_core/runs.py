"""Pipeline run watching."""

from __future__ import annotations

from typing import Any, Callable

from yx_core.api.client import YunxiaoClient
from yx_core.api.flow import get_pipeline_run
from yx_core.fields import extract_first_record, read_str
from yx_core.polling import PollResult, poll

TERMINAL_STATUS_KEYWORDS = [
    "success",
    "succeeded",
    "failed",
    "failure",
    "cancel",
    "canceled",
    "cancelled",
    "stopped",
    "done",
    "finish",
    "finished",
    "complete",
    "completed",
    "pass",
]


def read_run_status(run: Any) -> str:
    record = extract_first_record(run, ["result", "data"]) or run
    return read_str(record, ["status", "pipelineStatus", "state", "result"]) or "UNKNOWN"


def is_terminal_run_status(status: str) -> bool:
    value = status.lower()
    return any(keyword in value for keyword in TERMINAL_STATUS_KEYWORDS)


def watch_run(
    client: YunxiaoClient,
    organization_id: str,
    pipeline_id: str,
    run_id: str,
    interval: float = 5,
    timeout: float = 1800,
    on_change: Callable[[Any, float], Any] | None = None,
    **poll_kwargs: Any,
) -> PollResult[Any]:
    """Poll a run until its status is terminal; every status change is reported, the first included."""
    return poll(
        lambda: get_pipeline_run(client, organization_id, pipeline_id, run_id),
        done=lambda run: is_terminal_run_status(read_run_status(run)),
        key=read_run_status,
        interval=interval,
        timeout=timeout,
        on_change=on_change,
        emit_initial=True,
        **poll_kwargs,
    )
