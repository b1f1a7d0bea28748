"""Codeup change-request endpoints.

Each function is a single logical call; where Yunxiao exposes the same
operation under several paths the candidates are tried in order with
``request_with_fallback``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from yx_core.api.client import YunxiaoClient, encode_repository_id, is_endpoint_unavailable
from yx_core.attempts import first_success
from yx_core.errors import RangeResolutionError
from yx_core.fields import first_present, is_record, read_str

CODEUP = "/oapi/v1/codeup/organizations"


@dataclass
class RequestCandidate:
    method: str
    path: str
    query: dict | None = None
    body: dict | None = None


def request_with_fallback(
    client: YunxiaoClient,
    candidates: list[RequestCandidate],
    failure_message: str,
    any_error: bool = False,
) -> Any:
    """Try *candidates* in order; only unavailable endpoints fall through unless *any_error*."""
    attempts = [
        (
            f"{c.method} {c.path}",
            lambda c=c: client.request(c.method, c.path, query=c.query, body=c.body),
        )
        for c in candidates
    ]
    should_continue = None if any_error else is_endpoint_unavailable
    return first_success(attempts, failure_message, should_continue=should_continue).value


def _repo_path(organization_id: str, repository_id: str) -> str:
    return f"{CODEUP}/{organization_id}/repositories/{encode_repository_id(repository_id)}"


def _cr_path(organization_id: str, repository_id: str, local_id: str) -> str:
    return f"{_repo_path(organization_id, repository_id)}/changeRequests/{local_id}"


def get_change_request(client: YunxiaoClient, organization_id: str, repository_id: str, local_id: str) -> Any:
    return client.get(_cr_path(organization_id, repository_id, local_id))


def list_patchsets(client: YunxiaoClient, organization_id: str, repository_id: str, local_id: str) -> Any:
    return client.get(f"{_cr_path(organization_id, repository_id, local_id)}/diffs/patches")


def get_change_tree(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    local_id: str,
    from_id: str | None,
    to_id: str | None,
) -> Any:
    if not from_id or not to_id:
        raise RangeResolutionError("Missing patchset range. Both from and to patchset IDs are required (--from/--to).")
    base = _cr_path(organization_id, repository_id, local_id)
    query = {"fromPatchSetId": from_id, "toPatchSetId": to_id}
    return request_with_fallback(
        client,
        [
            RequestCandidate("GET", f"{base}/diffs/changeTree", query=query),
            RequestCandidate("GET", f"{base}/diffs/change_tree", query=query),
        ],
        f"Failed to get diff tree for pull request {local_id}",
    )


def get_compare(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    from_sha: str,
    to_sha: str,
    straight: bool = True,
) -> Any:
    return client.get(
        f"{_repo_path(organization_id, repository_id)}/compares",
        query={"from": from_sha, "to": to_sha, "straight": straight},
    )


def list_comments(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    local_id: str,
    comment_type: str = "GLOBAL_COMMENT",
    state: str = "OPENED",
    resolved: bool = False,
    file_path: str | None = None,
    patchset_ids: list[str] | None = None,
) -> Any:
    return client.post(
        f"{_cr_path(organization_id, repository_id, local_id)}/comments/list",
        body={
            "patchSetBizIds": patchset_ids or [],
            "commentType": comment_type,
            "state": state,
            "resolved": resolved,
            "filePath": file_path,
        },
    )


def create_comment(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    local_id: str,
    content: str,
    comment_type: str = "GLOBAL_COMMENT",
    draft: bool = False,
    patchset_id: str | None = None,
    file_path: str | None = None,
    line_number: int | None = None,
    from_patchset_id: str | None = None,
    to_patchset_id: str | None = None,
    parent_comment_id: str | None = None,
) -> Any:
    payload: dict[str, Any] = {
        "comment_type": comment_type,
        "content": content,
        "draft": draft,
        "resolved": False,
    }
    if patchset_id:
        payload["patchset_biz_id"] = patchset_id
    if comment_type == "INLINE_COMMENT":
        payload["file_path"] = file_path
        payload["line_number"] = line_number
        payload["from_patchset_biz_id"] = from_patchset_id
        payload["to_patchset_biz_id"] = to_patchset_id
    if parent_comment_id:
        payload["parent_comment_biz_id"] = parent_comment_id
    return client.post(f"{_cr_path(organization_id, repository_id, local_id)}/comments", body=payload)


def set_comment_resolved(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    local_id: str,
    comment_id: str,
    resolved: bool,
) -> Any:
    path = f"{_cr_path(organization_id, repository_id, local_id)}/comments/{comment_id}"
    action = "resolve" if resolved else "unresolve"
    body = {"resolved": resolved}
    return request_with_fallback(
        client,
        [
            RequestCandidate("PUT", path, body=body),
            RequestCandidate("PATCH", path, body=body),
            RequestCandidate("POST", f"{path}/{action}"),
            RequestCandidate("POST", f"{path}/resolved", body=body),
        ],
        f"Failed to {action} pull request comment {comment_id}",
    )


def submit_review(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    local_id: str,
    opinion: str,
    comment: str | None = None,
    draft_comment_ids: list[str] | None = None,
) -> Any:
    body = {"reviewOpinion": opinion, "reviewComment": comment, "draftCommentIds": draft_comment_ids}
    base = _cr_path(organization_id, repository_id, local_id)
    legacy = f"/api/v4/projects/{encode_repository_id(repository_id)}/merge_requests/{local_id}/submit_review_opinion"
    return request_with_fallback(
        client,
        [
            RequestCandidate("POST", legacy, query={"organizationId": organization_id}, body=body),
            RequestCandidate("POST", f"{base}/review", body=body),
            RequestCandidate("POST", f"{base}/submitReview", body=body),
        ],
        f"Failed to submit review for pull request {local_id}",
        any_error=True,
    )


def list_check_runs(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    ref: str,
    page: int = 1,
    per_page: int = 100,
) -> Any:
    encoded = encode_repository_id(repository_id)
    return request_with_fallback(
        client,
        [
            RequestCandidate(
                "GET",
                f"{_repo_path(organization_id, repository_id)}/checkRuns",
                query={"ref": ref, "page": page, "perPage": per_page},
            ),
            RequestCandidate(
                "GET",
                f"/repository/{encoded}/checkRuns",
                query={"organizationId": organization_id, "ref": ref, "page": page, "perPage": per_page},
            ),
        ],
        f"Failed to list check runs in repository {repository_id}",
    )


def list_commit_statuses(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    sha: str,
    page: int = 1,
    per_page: int = 100,
) -> Any:
    encoded = encode_repository_id(repository_id)
    return request_with_fallback(
        client,
        [
            RequestCandidate(
                "GET",
                f"{_repo_path(organization_id, repository_id)}/commits/{sha}/statuses",
                query={"page": page, "perPage": per_page},
            ),
            RequestCandidate(
                "GET",
                f"/repository/{encoded}/commits/{sha}/statuses",
                query={"organizationId": organization_id, "page": page, "perPage": per_page},
            ),
        ],
        f"Failed to list commit statuses for {sha} in repository {repository_id}",
    )


def list_branches(
    client: YunxiaoClient,
    organization_id: str,
    repository_id: str,
    search: str | None = None,
    page: int = 1,
    per_page: int = 100,
) -> Any:
    encoded = encode_repository_id(repository_id)
    return request_with_fallback(
        client,
        [
            RequestCandidate(
                "GET",
                f"{_repo_path(organization_id, repository_id)}/branches",
                query={"page": page, "perPage": per_page, "search": search},
            ),
            RequestCandidate(
                "GET",
                f"/repository/{encoded}/branches",
                query={"organizationId": organization_id, "page": page, "pageSize": per_page, "search": search},
            ),
        ],
        f"Failed to list branches for repository {repository_id}",
    )


def get_current_user_id(client: YunxiaoClient) -> str | None:
    response = client.get("/oapi/v1/platform/user")
    user = first_present(response, ["result", "data"]) if is_record(response) else None
    if not is_record(user):
        user = response
    return read_str(user, ["id", "userId"])
