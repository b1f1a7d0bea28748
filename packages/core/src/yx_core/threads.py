"""Comment thread reconstruction.

The comment listing API returns a flat, paginated-by-filter set of records.
Replies point at their parent through ``parent_comment_biz_id``; a chain is
followed upward until it reaches a comment with no parent (the root) or a
parent that was never fetched, whose id then names the thread. Replies
nested under ``child_comments_list`` are lifted out and default to their
enclosing comment as parent.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from yx_core.api.client import YunxiaoClient
from yx_core.api.codeup import list_comments
from yx_core.errors import YxError
from yx_core.fields import (
    AUTHOR_ID_KEYS,
    AUTHOR_NAME_KEYS,
    CHILD_COMMENT_KEYS,
    COMMENT_CONTENT_KEYS,
    COMMENT_FILE_KEYS,
    COMMENT_ID_KEYS,
    COMMENT_STATE_KEYS,
    COMMENT_TIME_KEYS,
    COMMENT_TYPE_KEYS,
    NESTED_AUTHOR_ID_KEYS,
    NESTED_AUTHOR_NAME_KEYS,
    PARENT_ID_KEYS,
    collect_strings,
    extract_records,
    first_present,
    is_record,
    matches_path_filters,
    normalize_path_filters,
    parse_time,
    read_flag,
    read_str,
    unique_strings,
)

logger = logging.getLogger(__name__)

SORT_ORDERS = ("latest", "oldest")
COMMENT_TYPES = {"global": "GLOBAL_COMMENT", "inline": "INLINE_COMMENT"}
COMMENT_STATES = {"opened": "OPENED", "draft": "DRAFT"}
PREVIEW_LENGTH = 120


@dataclass
class ThreadNode:
    id: str
    parent_id: str | None = None
    resolved: bool = False
    state: str | None = None
    comment_type: str | None = None
    file_path: str | None = None
    comment_time: str | None = None
    author: str | None = None
    author_candidates: list[str] = field(default_factory=list)
    content: str | None = None
    raw: dict = field(default_factory=dict)


@dataclass
class CommentThread:
    thread_id: str
    resolved: bool
    total_comments: int
    comment_type: str | None
    state: str | None
    file_paths: list[str]
    participants: list[str]
    last_comment_at: str | None
    root_comment: dict
    replies: list[dict]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ThreadFilters:
    file_path: str | None = None
    authors: list[str] = field(default_factory=list)
    with_replies: bool = False
    since: str | None = None
    contains: list[str] = field(default_factory=list)
    sort: str = "latest"


def comment_id(record: Any) -> str | None:
    return read_str(record, COMMENT_ID_KEYS)


def parent_id(record: Any) -> str | None:
    return read_str(record, PARENT_ID_KEYS)


def comment_content(record: Any) -> str | None:
    return read_str(record, COMMENT_CONTENT_KEYS)


def comment_time(record: Any) -> str | None:
    return read_str(record, COMMENT_TIME_KEYS)


def comment_file_path(record: Any) -> str | None:
    direct = read_str(record, COMMENT_FILE_KEYS)
    if direct:
        return direct
    location = record.get("location") if is_record(record) else None
    return read_str(location, COMMENT_FILE_KEYS) if is_record(location) else None


def comment_author(record: Any) -> str | None:
    name = read_str(record, AUTHOR_NAME_KEYS)
    if name:
        return name
    author = record.get("author") if is_record(record) else None
    return read_str(author, NESTED_AUTHOR_NAME_KEYS) if is_record(author) else None


def author_candidates(record: Any) -> list[str]:
    """Every name or id that identifies the comment's author, lowercased."""
    values = collect_strings(record, AUTHOR_NAME_KEYS + AUTHOR_ID_KEYS)
    author = record.get("author") if is_record(record) else None
    if is_record(author):
        values.extend(collect_strings(author, NESTED_AUTHOR_NAME_KEYS + NESTED_AUTHOR_ID_KEYS))
    return unique_strings(value.lower() for value in values)


def comment_queries(comment_type: str = "all", state: str = "opened") -> list[tuple[str, str]]:
    """Expand CLI type/state choices into ``(commentType, state)`` API queries."""
    states = list(COMMENT_STATES.values()) if state == "all" else [COMMENT_STATES.get(state, "OPENED")]
    if comment_type == "all":
        types = list(COMMENT_TYPES.values())
    else:
        types = [COMMENT_TYPES.get(comment_type, "GLOBAL_COMMENT")]
    return [(kind, value) for value in states for kind in types]


def dedupe_records(records: list[dict]) -> list[dict]:
    """Drop repeated comments, keyed by id or by ``content|time`` when no id exists."""
    seen: set[str] = set()
    result = []
    for record in records:
        key = comment_id(record)
        if key is None:
            content = read_str(record, ["content"]) or ""
            time = read_str(record, ["comment_time", "commentTime", "createTime"]) or ""
            key = f"{content}|{time}"
            logger.debug("Comment without id; deduplicating on content and time: %s", key)
        if key in seen:
            continue
        seen.add(key)
        result.append(record)
    return result


def fetch_comments(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    local_id: str,
    comment_type: str = "all",
    state: str = "opened",
    resolved_options: tuple[bool, ...] = (False,),
    file_path: str | None = None,
) -> list[dict]:
    """Run every type/state/resolved query combination and merge the results."""
    items: list[dict] = []
    for kind, value in comment_queries(comment_type, state):
        for resolved in resolved_options:
            response = list_comments(
                client,
                organization_id,
                repository_id,
                local_id,
                comment_type=kind,
                state=value,
                resolved=resolved,
                file_path=file_path,
            )
            items.extend(extract_records(response))
    return dedupe_records(items)


def flatten_records(records: list[dict]) -> list[tuple[dict, str | None]]:
    """Pair every record, nested children included, with its enclosing comment id.

    Children come from ``child_comments_list`` and follow their parent in the
    result. Top-level records are paired with None.
    """
    result: list[tuple[dict, str | None]] = []
    stack: list[tuple[Any, str | None]] = [(record, None) for record in reversed(records)]
    while stack:
        record, enclosing_id = stack.pop()
        if not is_record(record):
            continue
        result.append((record, enclosing_id))
        children = first_present(record, CHILD_COMMENT_KEYS)
        if isinstance(children, list):
            own_id = comment_id(record)
            stack.extend((child, own_id) for child in reversed(children))
    return result


def to_thread_node(record: dict, default_parent_id: str | None = None) -> ThreadNode | None:
    node_id = comment_id(record)
    if not node_id:
        return None
    return ThreadNode(
        id=node_id,
        parent_id=parent_id(record) or default_parent_id,
        resolved=read_flag(record, ["resolved"]),
        state=read_str(record, COMMENT_STATE_KEYS),
        comment_type=read_str(record, COMMENT_TYPE_KEYS),
        file_path=comment_file_path(record),
        comment_time=read_str(record, COMMENT_TIME_KEYS),
        author=comment_author(record),
        author_candidates=author_candidates(record),
        content=read_str(record, COMMENT_CONTENT_KEYS),
        raw=record,
    )


def merge_nodes(current: ThreadNode, incoming: ThreadNode) -> ThreadNode:
    """Combine two records of the same comment; the first non-empty value wins per field."""
    return ThreadNode(
        id=current.id,
        parent_id=current.parent_id or incoming.parent_id,
        resolved=current.resolved or incoming.resolved,
        state=current.state or incoming.state,
        comment_type=current.comment_type or incoming.comment_type,
        file_path=current.file_path or incoming.file_path,
        comment_time=current.comment_time or incoming.comment_time,
        author=current.author or incoming.author,
        author_candidates=unique_strings(current.author_candidates + incoming.author_candidates),
        content=current.content or incoming.content,
        raw=current.raw if current.content else incoming.raw,
    )


def resolve_root_id(node: ThreadNode, nodes: dict[str, ThreadNode]) -> str:
    """Follow parents upward; a parent that was never fetched becomes the thread id."""
    current = node
    visited = {current.id}
    while current.parent_id and current.parent_id in nodes and current.parent_id not in visited:
        current = nodes[current.parent_id]
        visited.add(current.id)
    if current.parent_id and current.parent_id not in nodes:
        return current.parent_id
    return current.id


def _node_time(node: ThreadNode) -> float:
    return parse_time(node.comment_time) or 0


def _author_matches(authors: set[str], candidates: list[str]) -> bool:
    return any(author in candidate for author in authors for candidate in candidates)


def _parse_since(since: str | None) -> float | None:
    if not since:
        return None
    value = parse_time(since)
    if value is None:
        raise YxError(f"Invalid --since value: {since}. Expected ISO-8601 datetime.")
    return value


def _build_thread(thread_id: str, nodes: list[ThreadNode]) -> CommentThread:
    nodes = sorted(nodes, key=lambda n: (_node_time(n), n.id))
    root = next((n for n in nodes if n.id == thread_id), None)
    if root is None:
        root = next((n for n in nodes if not n.parent_id), nodes[0])
    replies = [n for n in nodes if n is not root]
    return CommentThread(
        thread_id=thread_id,
        resolved=all(n.resolved for n in nodes),
        total_comments=len(nodes),
        comment_type=root.comment_type or next((n.comment_type for n in nodes if n.comment_type), None),
        state=root.state or next((n.state for n in nodes if n.state), None),
        file_paths=unique_strings(n.file_path for n in nodes),
        participants=unique_strings(n.author for n in nodes),
        last_comment_at=nodes[-1].comment_time,
        root_comment=root.raw,
        replies=[n.raw for n in replies],
    )


def summarize_threads(records: list[dict], filters: ThreadFilters | None = None) -> list[CommentThread]:
    """Group flat comment records into filtered, sorted threads."""
    filters = filters or ThreadFilters()
    if filters.sort not in SORT_ORDERS:
        raise YxError(f"Invalid --sort value: {filters.sort}. Use latest or oldest.")
    since = _parse_since(filters.since)

    nodes: dict[str, ThreadNode] = {}
    for record, enclosing_id in flatten_records(records):
        node = to_thread_node(record, enclosing_id)
        if node is None:
            logger.debug("Skipping comment record without an id: %s", record)
            continue
        nodes[node.id] = merge_nodes(nodes[node.id], node) if node.id in nodes else node

    buckets: dict[str, list[ThreadNode]] = {}
    for node in nodes.values():
        buckets.setdefault(resolve_root_id(node, nodes), []).append(node)

    path_filters = normalize_path_filters([filters.file_path] if filters.file_path else None)
    authors = {a.strip().lower() for a in filters.authors if a and a.strip()}
    keywords = [k.strip().lower() for k in filters.contains if k and k.strip()]

    threads = []
    for thread_id, members in buckets.items():
        thread = _build_thread(thread_id, members)
        if path_filters and not any(matches_path_filters(p, path_filters) for p in thread.file_paths):
            continue
        if filters.with_replies and not thread.replies:
            continue
        if authors and not any(_author_matches(authors, n.author_candidates) for n in members):
            continue
        if keywords:
            text = "\n".join(n.content or "" for n in members).lower()
            if not all(keyword in text for keyword in keywords):
                continue
        if since is not None:
            last = parse_time(thread.last_comment_at)
            if last is None or last < since:
                continue
        threads.append(thread)

    return sorted(
        threads,
        key=lambda t: parse_time(t.last_comment_at) or 0,
        reverse=filters.sort == "latest",
    )


@dataclass
class CommentsSummary:
    total: int = 0
    by_type: dict = field(default_factory=lambda: {"global": 0, "inline": 0, "unknown": 0})
    by_state: dict = field(default_factory=lambda: {"opened": 0, "draft": 0, "other": 0})
    resolved: dict = field(default_factory=lambda: {"resolved": 0, "unresolved": 0})
    replies: dict = field(default_factory=lambda: {"root": 0, "reply": 0})
    files: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ThreadsSummary:
    total_threads: int = 0
    open_threads: int = 0
    resolved_threads: int = 0
    total_comments: int = 0
    by_type: dict = field(default_factory=lambda: {"global": 0, "inline": 0, "unknown": 0})
    by_state: dict = field(default_factory=lambda: {"opened": 0, "draft": 0, "other": 0})
    files: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _type_bucket(value: str | None) -> str:
    return {"GLOBAL_COMMENT": "global", "INLINE_COMMENT": "inline"}.get((value or "").upper(), "unknown")


def _state_bucket(value: str | None) -> str:
    return {"OPENED": "opened", "DRAFT": "draft"}.get((value or "").upper(), "other")


def summarize_comments(records: list[dict]) -> CommentsSummary:
    summary = CommentsSummary(total=len(records))
    file_counts: dict[str, int] = {}
    for record in records:
        summary.by_type[_type_bucket(read_str(record, COMMENT_TYPE_KEYS))] += 1
        summary.by_state[_state_bucket(read_str(record, ["state"]))] += 1
        summary.resolved["resolved" if read_flag(record, ["resolved"]) else "unresolved"] += 1
        summary.replies["reply" if parent_id(record) else "root"] += 1
        path = comment_file_path(record)
        if path:
            file_counts[path] = file_counts.get(path, 0) + 1
    summary.files = [
        {"path": path, "count": count}
        for path, count in sorted(file_counts.items(), key=lambda item: (-item[1], item[0]))
    ]
    return summary


def summarize_thread_stats(threads: list[CommentThread]) -> ThreadsSummary:
    summary = ThreadsSummary(total_threads=len(threads))
    by_file: dict[str, dict] = {}
    for thread in threads:
        summary.total_comments += thread.total_comments
        if thread.resolved:
            summary.resolved_threads += 1
        else:
            summary.open_threads += 1
        summary.by_type[_type_bucket(thread.comment_type)] += 1
        summary.by_state[_state_bucket(thread.state)] += 1
        for path in thread.file_paths:
            entry = by_file.setdefault(path, {"path": path, "threads": 0, "comments": 0})
            entry["threads"] += 1
            entry["comments"] += thread.total_comments
    summary.files = sorted(by_file.values(), key=lambda e: (-e["threads"], -e["comments"], e["path"]))
    return summary


def compact_threads(threads: list[CommentThread]) -> list[dict]:
    """Id-only projection of threads for scripting."""
    result = []
    for thread in threads:
        root_id = comment_id(thread.root_comment) or thread.thread_id
        reply_ids = [rid for rid in (comment_id(reply) for reply in thread.replies) if rid]
        result.append(
            {
                "thread_id": thread.thread_id,
                "root_comment_id": root_id,
                "reply_comment_ids": reply_ids,
                "comment_ids": [root_id, *reply_ids],
                "total_comments": thread.total_comments,
                "resolved": thread.resolved,
                "last_comment_at": thread.last_comment_at,
                "comment_type": thread.comment_type,
                "state": thread.state,
                "file_paths": thread.file_paths,
                "participants": thread.participants,
            }
        )
    return result


@dataclass
class ThreadSlice:
    items: list[CommentThread]
    total: int
    truncated: bool


def slice_threads(threads: list[CommentThread], limit: int) -> ThreadSlice:
    items = threads[: max(1, limit)]
    return ThreadSlice(items=items, total=len(threads), truncated=len(threads) > len(items))


def comment_preview(content: str | None) -> str:
    compact = " ".join((content or "").split())
    if not compact:
        return "(empty)"
    if len(compact) <= PREVIEW_LENGTH:
        return compact
    return compact[: PREVIEW_LENGTH - 3] + "..."
