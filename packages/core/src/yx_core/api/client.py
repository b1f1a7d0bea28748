"""HTTP transport for the Yunxiao OpenAPI gateway.

One ``requests.Session`` per client. Calls are never retried; every failure
surfaces as an ApiError whose message is safe to show to a user.
"""

from __future__ import annotations

import importlib.metadata
import logging
import re
from typing import Any
from urllib.parse import quote

import requests

from yx_core.config import DEFAULT_BASE_URL
from yx_core.errors import ApiError, YxError

logger = logging.getLogger(__name__)

USER_AGENT = f"yx-cli/{importlib.metadata.version('yx-cli')}"
MAX_ERROR_MESSAGE_LENGTH = 240

_HTML_RE = re.compile(r"^\s*(<!doctype html|<html\b)", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def encode_repository_id(repository_id: str) -> str:
    """Encode ``group/repo`` as one path segment; plain ids pass through."""
    group, _, name = repository_id.partition("/")
    if not group or not name:
        return repository_id
    return f"{group}%2F{quote(name, safe='')}"


def is_endpoint_unavailable(error: Exception) -> bool:
    """True when *error* means the endpoint does not exist on this gateway."""
    return isinstance(error, ApiError) and (error.status in (404, 405) or error.html)


def _status_hint(status: int) -> str:
    if status == 400:
        return " Check request parameters."
    if status in (401, 403):
        return " Check that the token is valid and has access to this resource."
    if status in (404, 405):
        return " Endpoint may be unavailable in current gateway/tenant."
    if status >= 500:
        return " Yunxiao server error; try again later."
    return ""


def _error_message(payload: Any) -> str | None:
    if isinstance(payload, dict):
        for key in ("message", "errorMessage", "error", "msg"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
        return None
    if isinstance(payload, str) and payload.strip():
        return payload
    return None


def _one_line(text: str) -> str:
    collapsed = _WHITESPACE_RE.sub(" ", text).strip()
    if len(collapsed) > MAX_ERROR_MESSAGE_LENGTH:
        return collapsed[: MAX_ERROR_MESSAGE_LENGTH - 3] + "..."
    return collapsed


def _business_error(payload: Any) -> str | None:
    """Return a message when a 2xx body still reports failure."""
    if not isinstance(payload, dict):
        return None
    http_status = payload.get("httpStatusCode")
    failed = (
        payload.get("success") is False
        or payload.get("status") is False
        or (isinstance(http_status, int) and not isinstance(http_status, bool) and http_status >= 400)
    )
    if not failed:
        return None
    code = payload.get("errorCode") or payload.get("code") or http_status or "unknown"
    message = _error_message(payload) or "request failed"
    return f"{code}: {_one_line(message)}"


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class YunxiaoClient:
    """Thin wrapper around a requests session bound to one token and gateway."""

    def __init__(
        self,
        token: str | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30,
        session: requests.Session | None = None,
    ):
        if not token:
            raise YxError("Missing token. Set YUNXIAO_ACCESS_TOKEN or add `token` to .yx.yml.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
                "x-yunxiao-token": token,
                "User-Agent": USER_AGENT,
            }
        )

    def request(self, method: str, path: str, query: dict | None = None, body: dict | None = None) -> Any:
        """Send one request and return the decoded JSON (or text) body."""
        url = f"{self.base_url}{path}"
        params = {key: _query_value(value) for key, value in (query or {}).items() if value is not None and value != ""}
        payload = {key: value for key, value in body.items() if value is not None} if body is not None else None

        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = self.session.request(method, url, params=params or None, json=payload, timeout=self.timeout)
        except requests.Timeout as exc:
            raise ApiError(f"Request timeout after {self.timeout}s: {method} {path}") from exc
        except requests.RequestException as exc:
            raise ApiError(f"Request failed: {method} {path}: {exc}") from exc

        data = self._decode(response)
        status = response.status_code

        if isinstance(data, str) and _HTML_RE.match(data):
            raise ApiError(
                f"Yunxiao API {status}: Yunxiao API returned HTML document unexpectedly. "
                "Check endpoint/path compatibility.",
                status=status,
                html=True,
            )

        if not response.ok:
            message = _one_line(_error_message(data) or response.reason or "request failed")
            raise ApiError(f"Yunxiao API {status}: {message}{_status_hint(status)}", status=status)

        business = _business_error(data)
        if business:
            raise ApiError(f"Yunxiao API business error: {business}", status=status)

        return data

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        content_type = response.headers.get("Content-Type", "")
        text = response.text
        if "json" in content_type.lower() and text.strip():
            try:
                return response.json()
            except ValueError:
                return text
        return text

    def get(self, path: str, query: dict | None = None) -> Any:
        return self.request("GET", path, query=query)

    def post(self, path: str, query: dict | None = None, body: dict | None = None) -> Any:
        return self.request("POST", path, query=query, body=body)

    def put(self, path: str, query: dict | None = None, body: dict | None = None) -> Any:
        return self.request("PUT", path, query=query, body=body)


def client_from_config(config: dict, token: str | None = None) -> YunxiaoClient:
    return YunxiaoClient(
        token=token or config.get("token"),
        base_url=config.get("base_url") or DEFAULT_BASE_URL,
        timeout=config.get("timeout") or 30,
    )
