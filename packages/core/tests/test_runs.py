"""Tests for pipeline run watching."""

from unittest.mock import MagicMock

import pytest

from yx_core.runs import is_terminal_run_status, read_run_status, watch_run


def test_read_run_status():
    assert read_run_status({"result": {"status": "RUNNING"}}) == "RUNNING"
    assert read_run_status({"pipelineStatus": "SUCCESS"}) == "SUCCESS"
    assert read_run_status({}) == "UNKNOWN"
    assert read_run_status("oops") == "UNKNOWN"


@pytest.mark.parametrize(
    "status,terminal",
    [("SUCCESS", True), ("FAILED", True), ("CANCELED", True), ("RUNNING", False), ("QUEUED", False)],
)
def test_is_terminal_run_status(status, terminal):
    assert is_terminal_run_status(status) is terminal


def test_watch_run_reports_first_status_and_changes(mocker):
    fetch = mocker.patch(
        "yx_core.runs.get_pipeline_run",
        side_effect=[{"status": "QUEUED"}, {"status": "RUNNING"}, {"status": "RUNNING"}, {"status": "SUCCESS"}],
    )
    seen = []

    result = watch_run(
        MagicMock(),
        "org",
        "p1",
        "r1",
        interval=1,
        timeout=60,
        on_change=lambda run, elapsed: seen.append(read_run_status(run)),
        sleep=lambda _: None,
        clock=lambda: 0,
    )

    assert fetch.call_count == 4
    assert seen == ["QUEUED", "RUNNING", "SUCCESS"]
    assert result.timed_out is False
