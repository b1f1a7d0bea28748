"""Diff snapshots for a change request.

A snapshot is the per-file change summary between two patchsets. The
change-tree endpoint is preferred; when it fails the coarse counters on the
change-request detail are used instead and the snapshot carries a warning.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from yx_core.api.client import YunxiaoClient
from yx_core.api.codeup import get_change_request, get_change_tree, get_compare, list_patchsets
from yx_core.errors import PatchResolutionError, YxError
from yx_core.fields import (
    DIFF_ADDITION_KEYS,
    DIFF_BINARY_KEYS,
    DIFF_DELETION_KEYS,
    DIFF_PATH_KEYS,
    DIFF_RENAMED_KEYS,
    extract_first_record,
    extract_records,
    first_present,
    is_record,
    matches_path_filters,
    normalize_path_filters,
    read_number,
    read_str,
)
from yx_core.patchsets import PatchsetRange, PatchsetRef, extract_patchset_refs, find_ref, resolve_range

logger = logging.getLogger(__name__)

DEFAULT_FILE_LIMIT = 200

_TREE_FILE_KEYS = ["changedTreeItems", "changedFilesInfos", "files", "changedFiles", "items"]


@dataclass
class DiffFile:
    path: str
    additions: int | float | None = None
    deletions: int | float | None = None
    renamed: bool = False
    binary: bool = False


@dataclass
class DiffSummary:
    changed_files_count: int | float = 0
    total_additions: int | float = 0
    total_deletions: int | float = 0
    files: list[DiffFile] = field(default_factory=list)
    truncated: bool = False

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.files]


@dataclass
class DiffSnapshot:
    range: PatchsetRange
    summary: DiffSummary
    from_ref: PatchsetRef | None = None
    to_ref: PatchsetRef | None = None
    raw: Any = None
    warning: str | None = None

    def to_dict(self) -> dict:
        return {
            "range": self.range.to_dict(),
            "from_ref": asdict(self.from_ref) if self.from_ref else None,
            "to_ref": asdict(self.to_ref) if self.to_ref else None,
            "summary": asdict(self.summary),
            "warning": self.warning,
        }


@dataclass
class PatchItem:
    path: str
    patch: str
    renamed: bool = False
    binary: bool = False


def _sum(values: list[int | float | None]) -> int | float:
    return sum(v for v in values if v is not None)


def summarize_diff_tree(response: Any, limit: int = DEFAULT_FILE_LIMIT) -> DiffSummary:
    """Parse a change-tree response, keeping at most ``max(1, limit)`` files."""
    payload = extract_first_record(response, ["result", "data", "body"])
    if payload is None:
        payload = response if is_record(response) else {}

    changed = extract_records(first_present(payload, _TREE_FILE_KEYS))
    kept = changed[: max(1, limit)]
    files = [
        DiffFile(
            path=read_str(item, DIFF_PATH_KEYS) or "(unknown)",
            additions=read_number(item, DIFF_ADDITION_KEYS),
            deletions=read_number(item, DIFF_DELETION_KEYS),
            renamed=bool(first_present(item, DIFF_RENAMED_KEYS)),
            binary=bool(first_present(item, DIFF_BINARY_KEYS)),
        )
        for item in kept
    ]

    count = read_number(payload, ["changedFilesCount", "filesCount", "changed_files_count", "count"])
    additions = read_number(payload, ["totalAddLines", "totalAdditions", "total_add_lines"])
    deletions = read_number(payload, ["totalDelLines", "totalDeletions", "total_del_lines"])

    return DiffSummary(
        changed_files_count=count if count is not None else len(changed),
        total_additions=additions if additions is not None else _sum([f.additions for f in files]),
        total_deletions=deletions if deletions is not None else _sum([f.deletions for f in files]),
        files=files,
        truncated=len(changed) > len(files),
    )


def summarize_diff_from_detail(detail: Any) -> DiffSummary:
    """Coarse summary from change-request counters; never lists files."""
    return DiffSummary(
        changed_files_count=read_number(
            detail, ["changedFilesCount", "changedFileCount", "diffFileCount", "fileCount"]
        )
        or 0,
        total_additions=read_number(detail, ["totalAdditions", "additions", "addLines", "addLineCount"]) or 0,
        total_deletions=read_number(detail, ["totalDeletions", "deletions", "delLines", "deleteLineCount"]) or 0,
    )


def build_snapshot(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    local_id: str,
    from_id: str | None = None,
    to_id: str | None = None,
    limit: int = DEFAULT_FILE_LIMIT,
) -> DiffSnapshot:
    """Resolve the patchset range and summarize the diff between its endpoints.

    Errors from the patchset listing propagate. A failing change-tree call
    degrades to the detail counters with ``warning`` set; that fallback does
    not raise.
    """
    refs = extract_patchset_refs(list_patchsets(client, organization_id, repository_id, local_id))
    patchset_range = resolve_range(refs, from_id, to_id)
    snapshot = DiffSnapshot(
        range=patchset_range,
        summary=DiffSummary(),
        from_ref=find_ref(refs, patchset_range.from_id),
        to_ref=find_ref(refs, patchset_range.to_id),
    )

    try:
        tree = get_change_tree(
            client, organization_id, repository_id, local_id, patchset_range.from_id, patchset_range.to_id
        )
    except YxError as exc:
        logger.warning("Change tree unavailable for %s!%s: %s", repository_id, local_id, exc)
        snapshot.warning = f"Diff detail API not available: {exc}"
        try:
            snapshot.summary = summarize_diff_from_detail(
                get_change_request(client, organization_id, repository_id, local_id)
            )
        except YxError as detail_exc:
            logger.warning("Change request detail unavailable for %s!%s: %s", repository_id, local_id, detail_exc)
            snapshot.warning += f" (detail fallback failed: {detail_exc})"
        return snapshot

    snapshot.raw = tree
    snapshot.summary = summarize_diff_tree(tree, limit)
    return snapshot


def filter_by_files(summary: DiffSummary, paths: list[str] | tuple[str, ...] | None) -> DiffSummary:
    """Keep only files matching *paths* (exact or ``/``-suffix) and recompute totals."""
    filters = normalize_path_filters(paths)
    if not filters:
        return summary
    files = [f for f in summary.files if matches_path_filters(f.path, filters)]
    return DiffSummary(
        changed_files_count=len(files),
        total_additions=_sum([f.additions for f in files]),
        total_deletions=_sum([f.deletions for f in files]),
        files=files,
        truncated=False,
    )


def format_path_tree(paths: list[str]) -> list[str]:
    """Render *paths* as an indented tree, directories before files."""
    root: dict[str, Any] = {}
    for path in paths:
        parts = [part for part in path.replace("\\", "/").split("/") if part]
        node = root
        for index, part in enumerate(parts):
            child = node.setdefault(part, {"children": {}, "is_file": False})
            if index == len(parts) - 1:
                child["is_file"] = True
            node = child["children"]

    lines: list[str] = []

    def walk(children: dict, prefix: str) -> None:
        entries = sorted(children.items(), key=lambda item: (item[1]["is_file"], item[0]))
        for index, (name, child) in enumerate(entries):
            last = index == len(entries) - 1
            lines.append(f"{prefix}{'└── ' if last else '├── '}{name}")
            walk(child["children"], prefix + ("    " if last else "│   "))

    walk(root, "")
    return lines


def extract_patch_items(response: Any) -> list[PatchItem]:
    records = extract_records(response)
    if not records and is_record(response):
        records = extract_records(response.get("diffs"))

    items = []
    for record in records:
        patch = first_present(record, ["diff", "patch"])
        if not isinstance(patch, str):
            continue
        items.append(
            PatchItem(
                path=read_str(record, DIFF_PATH_KEYS) or "(unknown)",
                patch=patch,
                renamed=bool(first_present(record, DIFF_RENAMED_KEYS)),
                binary=bool(first_present(record, DIFF_BINARY_KEYS)),
            )
        )
    return items


def resolve_patches(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    snapshot: DiffSnapshot,
    paths: list[str] | tuple[str, ...] | None = None,
) -> list[PatchItem]:
    """Fetch unified patches for the snapshot range via the repository compare endpoint."""
    from_sha = snapshot.from_ref.commit_id if snapshot.from_ref else None
    to_sha = snapshot.to_ref.commit_id if snapshot.to_ref else None
    if not from_sha or not to_sha:
        raise PatchResolutionError(
            "Cannot resolve commit IDs for patchset range "
            f"(from={snapshot.range.from_id or '-'}, to={snapshot.range.to_id or '-'})."
        )

    items = extract_patch_items(get_compare(client, organization_id, repository_id, from_sha, to_sha))
    filters = normalize_path_filters(paths)
    return [item for item in items if matches_path_filters(item.path, filters)]


def format_patch(items: list[PatchItem]) -> str:
    blocks = []
    for item in items:
        blocks.append(f"# {item.path}")
        blocks.append(item.patch[:-1] if item.patch.endswith("\n") else item.patch)
    return "\n".join(blocks)
