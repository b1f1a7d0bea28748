"""Check and review status aggregation for a change request.

Status signals come from three places: check runs and commit statuses
attached to the source head, and fields embedded in the change-request
detail itself (conflict check, merge requirements, pipeline arrays). Each is
normalized to a CheckItem and classified as pass / fail / pending / neutral.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

from yx_core.api.client import YunxiaoClient
from yx_core.api.codeup import (
    get_change_request,
    list_branches,
    list_check_runs,
    list_commit_statuses,
    submit_review as submit_review_opinion,
)
from yx_core.attempts import Attempt, first_success
from yx_core.errors import YxError
from yx_core.fields import extract_records, is_record, read_str
from yx_core.polling import PollResult, poll

logger = logging.getLogger(__name__)

PASS = "pass"
FAIL = "fail"
PENDING = "pending"
NEUTRAL = "neutral"

EXACT_CONCLUSIONS = {"no_conflict": PASS, "has_conflict": FAIL, "checking": PENDING}
FAIL_KEYWORDS = ["fail", "error", "conflict", "reject", "cancel", "timeout", "blocked"]
PASS_KEYWORDS = ["success", "succeed", "passed", "pass", "ok", "approve", "merge", "done", "resolved"]
PENDING_KEYWORDS = ["pending", "running", "checking", "wait", "queue", "process", "review", "open", "under_"]

CHECK_NAME_KEYS = ["name", "title", "context", "jobName", "pipelineName", "checkName", "displayName"]
CHECK_ID_KEYS = ["id", "jobId", "pipelineId"]
CHECK_STATUS_KEYS = ["status", "state", "conclusion", "result", "checkStatus", "reviewOpinionStatus"]
CHECK_DESCRIPTION_KEYS = ["description", "message", "summary", "detail"]
CHECK_URL_KEYS = ["url", "webUrl", "detailUrl", "detailsUrl", "targetUrl", "link"]
EMBEDDED_CHECK_KEYS = [
    "checks",
    "checkRuns",
    "check_runs",
    "pipelines",
    "pipelineRuns",
    "jobs",
    "builds",
    "statuses",
    "contexts",
]
HEAD_SHA_KEYS = [
    "sourceCommitSha",
    "sourceHeadSha",
    "headSha",
    "sourceSha",
    "lastCommitSha",
    "sourceLatestCommitSha",
    "latestCommitSha",
]
SOURCE_BRANCH_KEYS = ["sourceBranch", "source_branch", "sourceRef", "sourceRefName"]


@dataclass
class CheckItem:
    name: str
    status: str
    conclusion: str
    description: str | None = None
    url: str | None = None


@dataclass
class ChecksResult:
    total: int = 0
    passed: int = 0
    failed: int = 0
    pending: int = 0
    neutral: int = 0
    checks: list[CheckItem] = field(default_factory=list)
    pull_request_status: str | None = None

    @property
    def status_key(self) -> tuple[int, int, int, int]:
        return (self.passed, self.failed, self.pending, self.total)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "pass": self.passed,
            "fail": self.failed,
            "pending": self.pending,
            "neutral": self.neutral,
            "checks": [asdict(c) for c in self.checks],
            "pull_request_status": self.pull_request_status,
        }


def classify_conclusion(status: str | None) -> str:
    """Map a free-form status string to pass / fail / pending / neutral.

    Exact values win, then fail keywords, then pass, then pending, so a
    string matching several categories resolves to the most severe one.
    """
    value = (status or "").lower()
    if not value:
        return NEUTRAL
    if value in EXACT_CONCLUSIONS:
        return EXACT_CONCLUSIONS[value]
    for conclusion, keywords in ((FAIL, FAIL_KEYWORDS), (PASS, PASS_KEYWORDS), (PENDING, PENDING_KEYWORDS)):
        if any(keyword in value for keyword in keywords):
            return conclusion
    return NEUTRAL


def normalize_check(record: dict) -> CheckItem | None:
    name = read_str(record, CHECK_NAME_KEYS) or read_str(record, CHECK_ID_KEYS)
    status = read_str(record, CHECK_STATUS_KEYS)
    if not name and not status:
        return None
    status = status or "UNKNOWN"
    return CheckItem(
        name=name or "check",
        status=status,
        conclusion=classify_conclusion(status),
        description=read_str(record, CHECK_DESCRIPTION_KEYS),
        url=read_str(record, CHECK_URL_KEYS),
    )


def _dedupe_checks(checks: list[CheckItem]) -> list[CheckItem]:
    seen: set[tuple] = set()
    result = []
    for check in checks:
        key = (check.name, check.status, check.description or "")
        if key in seen:
            continue
        seen.add(key)
        result.append(check)
    return result


def _embedded_checks(detail: dict) -> list[CheckItem]:
    checks = []
    conflict = read_str(detail, ["conflictCheckStatus"])
    if conflict:
        checks.append(CheckItem(name="conflict", status=conflict, conclusion=classify_conclusion(conflict)))

    requirements = detail.get("allRequirementsPass")
    if isinstance(requirements, bool):
        checks.append(
            CheckItem(
                name="requirements",
                status="PASS" if requirements else "FAIL",
                conclusion=PASS if requirements else FAIL,
            )
        )

    for key in EMBEDDED_CHECK_KEYS:
        value = detail.get(key)
        if not isinstance(value, list):
            continue
        for item in value:
            check = normalize_check(item) if is_record(item) else None
            if check:
                checks.append(check)
    return checks


def summarize_checks(
    detail: Any,
    check_runs: list[dict] | None = None,
    commit_statuses: list[dict] | None = None,
) -> ChecksResult:
    checks = [c for c in (normalize_check(r) for r in (check_runs or []) + (commit_statuses or [])) if c]
    pr_status = read_str(detail, ["status", "state"]) if is_record(detail) else None

    if is_record(detail):
        checks.extend(_embedded_checks(detail))
        if not checks and pr_status:
            checks.append(CheckItem(name="pull-request", status=pr_status, conclusion=classify_conclusion(pr_status)))

    checks = _dedupe_checks(checks)
    return ChecksResult(
        total=len(checks),
        passed=sum(1 for c in checks if c.conclusion == PASS),
        failed=sum(1 for c in checks if c.conclusion == FAIL),
        pending=sum(1 for c in checks if c.conclusion == PENDING),
        neutral=sum(1 for c in checks if c.conclusion == NEUTRAL),
        checks=checks,
        pull_request_status=pr_status,
    )


def read_head_sha(detail: dict) -> str | None:
    return read_str(detail, HEAD_SHA_KEYS)


def read_source_branch(detail: dict) -> str | None:
    branch = read_str(detail, SOURCE_BRANCH_KEYS)
    if branch:
        return branch
    for key in ("source", "sourceRepository", "sourceProject"):
        nested = detail.get(key)
        if is_record(nested):
            value = read_str(nested, ["branch", "name", "ref"])
            if value:
                return value
    return None


def _branch_commit_sha(branch: dict) -> str | None:
    direct = read_str(branch, ["commitId", "headSha", "sha"])
    if direct:
        return direct
    commit = branch.get("commit")
    return read_str(commit, ["id", "sha", "commitId"]) if is_record(commit) else None


def resolve_head_sha(client: YunxiaoClient, organization_id: str, repository_id: str, detail: dict) -> str | None:
    """Head SHA from the detail, else from the source branch listing; None if unknown."""
    direct = read_head_sha(detail)
    if direct:
        return direct
    branch_name = read_source_branch(detail)
    if not branch_name:
        return None
    try:
        branches = extract_records(list_branches(client, organization_id, repository_id, search=branch_name))
    except YxError as exc:
        logger.debug("Branch lookup for %s failed: %s", branch_name, exc)
        return None
    exact = next((b for b in branches if read_str(b, ["name"]) == branch_name), None)
    if exact:
        return _branch_commit_sha(exact)
    return next((sha for sha in (_branch_commit_sha(b) for b in branches) if sha), None)


def _safe_records(label: str, fn: Callable[[], Any]) -> list[dict]:
    try:
        return extract_records(fn())
    except YxError as exc:
        logger.debug("Listing %s failed; treating as empty: %s", label, exc)
        return []


def collect_checks(client: YunxiaoClient, organization_id: str, repository_id: str, local_id: str) -> ChecksResult:
    """Fetch detail, check runs and commit statuses and aggregate them.

    Only the detail fetch may raise; list failures count as no entries.
    """
    detail = get_change_request(client, organization_id, repository_id, local_id)
    runs: list[dict] = []
    statuses: list[dict] = []
    if is_record(detail):
        ref = read_head_sha(detail) or read_source_branch(detail)
        if ref:
            runs = _safe_records(
                "check runs", lambda: list_check_runs(client, organization_id, repository_id, ref)
            )
        sha = resolve_head_sha(client, organization_id, repository_id, detail)
        if sha:
            statuses = _safe_records(
                "commit statuses", lambda: list_commit_statuses(client, organization_id, repository_id, sha)
            )
    return summarize_checks(detail, runs, statuses)


def watch_checks(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    local_id: str,
    interval: float = 5,
    timeout: float = 1800,
    on_change: Callable[[ChecksResult, float], Any] | None = None,
    **poll_kwargs: Any,
) -> PollResult[ChecksResult]:
    """Re-aggregate checks until nothing is pending or *timeout* seconds pass."""
    return poll(
        lambda: collect_checks(client, organization_id, repository_id, local_id),
        done=lambda result: result.pending == 0,
        key=lambda result: result.status_key,
        interval=interval,
        timeout=timeout,
        on_change=on_change,
        **poll_kwargs,
    )


APPROVED = "approved"
CHANGES_REQUESTED = "changes_requested"
COMMENTED = "commented"
REVIEW_PENDING = "pending"


@dataclass
class ReviewerStatus:
    name: str
    state: str
    user_id: str | None = None
    review_opinion_status: str | None = None
    review_time: str | None = None


@dataclass
class ReviewsResult:
    reviewers: list[ReviewerStatus] = field(default_factory=list)
    summary: dict = field(
        default_factory=lambda: {APPROVED: 0, CHANGES_REQUESTED: 0, COMMENTED: 0, REVIEW_PENDING: 0}
    )
    pull_request_status: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def classify_reviewer(raw_status: str | None, reviewer: dict) -> str:
    status = (raw_status or "").lower()
    if status:
        if any(word in status for word in ("reject", "changes", "disagree")):
            return CHANGES_REQUESTED
        if "approve" in status or "pass" in status:
            return APPROVED
        if "comment" in status:
            return COMMENTED
        if any(word in status for word in ("pending", "waiting", "reviewing")):
            return REVIEW_PENDING
    if reviewer.get("hasReviewed") is True or reviewer.get("hasCommented") is True:
        return COMMENTED
    return REVIEW_PENDING


def extract_reviewers(detail: Any) -> list[ReviewerStatus]:
    raw = detail.get("reviewers") if is_record(detail) else None
    if not isinstance(raw, list):
        return []
    reviewers = []
    for item in raw:
        if not is_record(item):
            continue
        opinion = read_str(item, ["reviewOpinionStatus", "status", "state"])
        reviewers.append(
            ReviewerStatus(
                name=read_str(item, ["name", "username", "userName"]) or "(unknown)",
                state=classify_reviewer(opinion, item),
                user_id=read_str(item, ["userId", "id"]),
                review_opinion_status=opinion,
                review_time=read_str(item, ["reviewTime"]),
            )
        )
    return reviewers


def summarize_reviews(detail: Any) -> ReviewsResult:
    result = ReviewsResult(
        reviewers=extract_reviewers(detail),
        pull_request_status=read_str(detail, ["status", "state"]),
    )
    for reviewer in result.reviewers:
        result.summary[reviewer.state] += 1
    return result


def review_opinions(
    approve: bool = False,
    request_changes: bool = False,
    comment: bool = False,
    opinion: str | None = None,
) -> list[str]:
    """Vendor opinion values to try, in order, for the chosen review mode."""
    if opinion:
        return [opinion]
    if sum(bool(flag) for flag in (approve, request_changes, comment)) > 1:
        raise YxError("Choose only one review mode: --approve, --request-changes, or --comment.")
    if request_changes:
        return ["REJECT", "REQUEST_CHANGES"]
    if comment:
        return ["COMMENT", "NO_OPINION"]
    return ["PASS", "APPROVE"]


def submit_review(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    local_id: str,
    opinions: list[str],
    body: str | None = None,
) -> Attempt[Any]:
    """Submit the first opinion value the gateway accepts."""
    return first_success(
        [
            (
                opinion,
                lambda opinion=opinion: submit_review_opinion(
                    client, organization_id, repository_id, local_id, opinion, comment=body
                ),
            )
            for opinion in opinions
        ],
        f"Failed to submit review for pull request {local_id}",
    )
