"""Tolerant readers for Yunxiao response records.

The same logical field shows up under several names depending on the
endpoint and API generation (``comment_biz_id`` vs ``commentBizId`` vs
``id``). Every reader takes an ordered list of candidate keys and returns the
first usable value, so each entity's aliases are declared once in the tables
below and reused everywhere.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Iterable

# Container keys that wrap list payloads.
RECORD_LIST_KEYS = ["items", "result", "data", "records"]

PATCHSET_ID_KEYS = ["patchSetBizId", "patchsetBizId", "patch_set_biz_id", "bizId", "id"]
PATCHSET_VERSION_KEYS = ["versionNo", "version", "index"]
PATCHSET_TIME_KEYS = ["createTime", "createdAt", "gmtCreate"]
PATCHSET_TYPE_KEYS = ["relatedMergeItemType", "relatedMergeType", "mergeItemType", "patchSetType", "type"]
COMMIT_ID_KEYS = ["commitId", "commit_id", "sha", "revision"]

COMMENT_ID_KEYS = ["comment_biz_id", "commentBizId", "id", "bizId"]
PARENT_ID_KEYS = ["parent_comment_biz_id", "parentCommentBizId", "parentId"]
CHILD_COMMENT_KEYS = ["child_comments_list", "childCommentsList"]
COMMENT_TIME_KEYS = ["comment_time", "commentTime", "createTime", "commentAt"]
COMMENT_CONTENT_KEYS = ["content", "body", "text", "message"]
COMMENT_TYPE_KEYS = ["comment_type", "commentType", "type"]
COMMENT_STATE_KEYS = ["state", "status"]
COMMENT_FILE_KEYS = ["file_path", "filePath", "path", "new_path", "newPath"]
AUTHOR_NAME_KEYS = ["authorName", "username", "userName", "creatorName"]
AUTHOR_ID_KEYS = ["userId", "authorId"]
NESTED_AUTHOR_NAME_KEYS = ["name", "username", "userName"]
NESTED_AUTHOR_ID_KEYS = ["userId", "id", "email"]

DIFF_PATH_KEYS = ["newPath", "new_path", "path", "filePath", "oldPath", "old_path"]
DIFF_ADDITION_KEYS = ["addLines", "additions", "addedLines", "insertions"]
DIFF_DELETION_KEYS = ["delLines", "deletions", "deletedLines"]
DIFF_RENAMED_KEYS = ["renamedFile", "renamed"]
DIFF_BINARY_KEYS = ["isBinary", "binaryFile", "binary"]


def is_record(value: Any) -> bool:
    return isinstance(value, dict)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def read_str(record: Any, keys: Iterable[str]) -> str | None:
    """Return the first non-blank string (or finite number, as text) under *keys*."""
    if not is_record(record):
        return None
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if _is_number(value):
            return str(round(value))
    return None


def read_number(record: Any, keys: Iterable[str]) -> int | float | None:
    """Return the first finite number under *keys*; numeric strings are accepted."""
    if not is_record(record):
        return None
    for key in keys:
        value = record.get(key)
        if _is_number(value):
            return value
        if isinstance(value, str) and value.strip():
            try:
                parsed = float(value.strip())
            except ValueError:
                continue
            if math.isfinite(parsed):
                return int(parsed) if parsed.is_integer() else parsed
    return None


def read_flag(record: Any, keys: Iterable[str]) -> bool:
    """True when any key holds ``True``, ``"true"`` or ``1``."""
    if not is_record(record):
        return False
    for key in keys:
        value = record.get(key)
        if value is True or value == "true" or (_is_number(value) and value == 1):
            return True
    return False


def first_present(record: Any, keys: Iterable[str]) -> Any:
    """Return the first value under *keys* that is not None."""
    if not is_record(record):
        return None
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def collect_strings(record: Any, keys: Iterable[str]) -> list[str]:
    values = []
    for key in keys:
        value = read_str(record, [key])
        if value:
            values.append(value)
    return values


def unique_strings(values: Iterable[str | None]) -> list[str]:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for value in values:
        text = (value or "").strip()
        if not text or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return result


def extract_records(response: Any) -> list[dict]:
    """Return the list of records in *response*.

    Accepts a bare list or a mapping that wraps the list under one of
    ``items``, ``result``, ``data`` or ``records``. Anything else yields ``[]``.
    """
    if isinstance(response, list):
        return [item for item in response if is_record(item)]
    if is_record(response):
        for key in RECORD_LIST_KEYS:
            value = response.get(key)
            if isinstance(value, list):
                return [item for item in value if is_record(item)]
    return []


def extract_first_record(response: Any, keys: Iterable[str]) -> dict | None:
    if not is_record(response):
        return None
    for key in keys:
        value = response.get(key)
        if is_record(value):
            return value
    return None


def parse_time(value: Any) -> float | None:
    """Parse an ISO-8601 string or epoch milliseconds into epoch milliseconds.

    Naive datetimes are taken as UTC. Returns None when *value* is unparseable.
    """
    if _is_number(value):
        return float(value)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.isdigit():
        return float(text)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp() * 1000


def format_epoch_ms(value: float | None) -> str | None:
    """Render epoch milliseconds as an ISO-8601 UTC string; 0/None become None."""
    if not value:
        return None
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_path_filters(paths: Iterable[str] | None) -> list[str]:
    """Trim filter paths, use forward slashes and drop empties."""
    result = []
    for path in paths or []:
        normalized = path.strip().replace("\\", "/")
        if normalized:
            result.append(normalized)
    return result


def matches_path_filters(path: str, filters: list[str]) -> bool:
    """Exact or ``/``-suffix match against normalized *filters*; no filters match everything."""
    if not filters:
        return True
    normalized = path.replace("\\", "/")
    return any(normalized == f or normalized.endswith(f"/{f}") for f in filters)
