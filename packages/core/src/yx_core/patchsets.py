"""Patchset range resolution.

A change request accumulates patchsets: ``merge_source`` revisions pushed by
the author and ``merge_target`` snapshots of the target branch. Diff and
inline-comment operations need a ``from``/``to`` pair of patchset ids, and
users usually do not pass one. ``resolve_range`` fills in whatever is missing
so that the default comparison is "latest source revision against the target
base it was made on".
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from yx_core.fields import (
    COMMIT_ID_KEYS,
    PATCHSET_ID_KEYS,
    PATCHSET_TIME_KEYS,
    PATCHSET_TYPE_KEYS,
    PATCHSET_VERSION_KEYS,
    extract_records,
    format_epoch_ms,
    parse_time,
    read_number,
    read_str,
)

logger = logging.getLogger(__name__)

MERGE_SOURCE = "merge_source"
MERGE_TARGET = "merge_target"
UNKNOWN = "unknown"


@dataclass(frozen=True)
class PatchsetRef:
    id: str
    version: int | float = 0
    create_time: float = 0
    type: str = UNKNOWN
    commit_id: str | None = None


@dataclass
class PatchsetRange:
    from_id: str | None = None
    to_id: str | None = None

    @property
    def complete(self) -> bool:
        return bool(self.from_id and self.to_id)

    def to_dict(self) -> dict:
        return {"from": self.from_id, "to": self.to_id}


@dataclass
class PatchsetsSummary:
    total: int
    patchsets: list[dict]
    suggested_range: PatchsetRange

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "patchsets": self.patchsets,
            "suggested_range": self.suggested_range.to_dict(),
        }


def classify_patchset(record: dict) -> str:
    """Return ``merge_source``, ``merge_target`` or ``unknown`` for a raw patchset."""
    raw_type = (read_str(record, PATCHSET_TYPE_KEYS) or "").upper()
    if "SOURCE" in raw_type:
        return MERGE_SOURCE
    if "TARGET" in raw_type:
        return MERGE_TARGET

    ref = (read_str(record, ["ref"]) or "").lower()
    if "/target/" in ref:
        return MERGE_TARGET
    if "/changes/" in ref:
        return MERGE_SOURCE
    return UNKNOWN


def sort_refs(refs: list[PatchsetRef]) -> list[PatchsetRef]:
    return sorted(refs, key=lambda ref: (ref.version, ref.create_time))


def extract_patchset_refs(response: Any) -> list[PatchsetRef]:
    """Build sorted refs from a raw patchset listing; records without an id are dropped."""
    refs = []
    for record in extract_records(response):
        patchset_id = read_str(record, PATCHSET_ID_KEYS)
        if not patchset_id:
            logger.debug("Skipping patchset record without an id: %s", record)
            continue
        refs.append(
            PatchsetRef(
                id=patchset_id,
                version=read_number(record, PATCHSET_VERSION_KEYS) or 0,
                create_time=parse_time(read_str(record, PATCHSET_TIME_KEYS)) or 0,
                type=classify_patchset(record),
                commit_id=read_str(record, COMMIT_ID_KEYS),
            )
        )
    return sort_refs(refs)


def find_ref(refs: list[PatchsetRef], patchset_id: str | None) -> PatchsetRef | None:
    if not patchset_id:
        return None
    return next((ref for ref in refs if ref.id == patchset_id), None)


def latest_of_type(refs: list[PatchsetRef], kind: str, exclude: str | None = None) -> PatchsetRef | None:
    matches = [ref for ref in refs if ref.type == kind and ref.id != exclude]
    return matches[-1] if matches else None


def latest_excluding(refs: list[PatchsetRef], exclude: str | None) -> PatchsetRef | None:
    matches = [ref for ref in refs if ref.id != exclude]
    return matches[-1] if matches else None


def latest_source_patchset(refs: list[PatchsetRef]) -> PatchsetRef | None:
    """The patchset a new global comment attaches to."""
    return latest_of_type(refs, MERGE_SOURCE) or (refs[-1] if refs else None)


def pick_best_base(refs: list[PatchsetRef], to_ref: PatchsetRef) -> PatchsetRef | None:
    """Choose the ``from`` patchset that pairs best with *to_ref*.

    Prefers the newest target snapshot not newer than *to_ref*, then any
    target snapshot, then the newest other source revision, then anything.
    """
    targets = [ref for ref in refs if ref.type == MERGE_TARGET and ref.id != to_ref.id]
    if targets:
        not_newer = [ref for ref in targets if ref.version <= to_ref.version]
        return not_newer[-1] if not_newer else targets[-1]

    source = latest_of_type(refs, MERGE_SOURCE, exclude=to_ref.id)
    if source:
        return source
    return latest_excluding(refs, to_ref.id)


def suggest_range(refs: list[PatchsetRef]) -> PatchsetRange:
    if not refs:
        return PatchsetRange()
    to_ref = latest_of_type(refs, MERGE_SOURCE) or refs[-1]
    base = pick_best_base(refs, to_ref)
    return PatchsetRange(from_id=base.id if base else None, to_id=to_ref.id)


def resolve_range(
    refs: list[PatchsetRef],
    explicit_from: str | None = None,
    explicit_to: str | None = None,
) -> PatchsetRange:
    """Fill in a from/to patchset pair, honoring explicit ids where given.

    Explicit ids are kept even when they do not appear in *refs*. Whenever two
    distinct patchsets exist the result never has ``from_id == to_id``.
    """
    refs = sort_refs(refs)
    if not refs:
        return PatchsetRange()

    to_id = explicit_to or suggest_range(refs).to_id
    if not to_id:
        fallback = latest_of_type(refs, MERGE_SOURCE, exclude=explicit_from) or latest_excluding(refs, explicit_from)
        to_id = fallback.id if fallback else None

    from_id = explicit_from
    if not from_id:
        to_ref = find_ref(refs, to_id)
        base = pick_best_base(refs, to_ref) if to_ref else latest_excluding(refs, to_id)
        from_id = base.id if base else None

    if from_id and from_id == to_id:
        other = latest_excluding(refs, to_id)
        from_id = other.id if other else None

    return PatchsetRange(from_id=from_id, to_id=to_id)


def summarize_patchsets(response: Any) -> PatchsetsSummary:
    refs = extract_patchset_refs(response)
    rows = []
    for ref in refs:
        row = asdict(ref)
        row["create_time"] = format_epoch_ms(ref.create_time)
        rows.append(row)
    return PatchsetsSummary(total=len(refs), patchsets=rows, suggested_range=suggest_range(refs))
