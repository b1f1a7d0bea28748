"""Flow (pipeline) endpoints."""

from __future__ import annotations

from typing import Any

from yx_core.api.client import YunxiaoClient


def get_pipeline_run(client: YunxiaoClient, organization_id: str, pipeline_id: str, run_id: str) -> Any:
    return client.get(f"/oapi/v1/flow/organizations/{organization_id}/pipelines/{pipeline_id}/runs/{run_id}")
