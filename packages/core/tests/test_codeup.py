"""Tests for the Codeup endpoint wrappers."""

from unittest.mock import MagicMock

import pytest

from yx_core.api.codeup import (
    create_comment,
    get_change_tree,
    get_current_user_id,
    list_comments,
    set_comment_resolved,
    submit_review,
)
from yx_core.api.flow import get_pipeline_run
from yx_core.errors import ApiError, AttemptsExhaustedError, RangeResolutionError

CR = "/oapi/v1/codeup/organizations/org/repositories/g%2Fr/changeRequests/7"


def _client(*results):
    client = MagicMock()
    client.request.side_effect = list(results)
    return client


def _paths(client):
    return [(c.args[0], c.args[1]) for c in client.request.call_args_list]


class TestChangeTree:
    def test_missing_range_raises_before_any_call(self):
        client = _client()
        with pytest.raises(RangeResolutionError):
            get_change_tree(client, "org", "g/r", "7", "a", None)
        client.request.assert_not_called()

    def test_falls_back_to_snake_case_path_when_unavailable(self):
        client = _client(ApiError("gone", status=404), {"files": []})
        assert get_change_tree(client, "org", "g/r", "7", "a", "b") == {"files": []}
        assert _paths(client) == [
            ("GET", f"{CR}/diffs/changeTree"),
            ("GET", f"{CR}/diffs/change_tree"),
        ]
        assert client.request.call_args.kwargs["query"] == {"fromPatchSetId": "a", "toPatchSetId": "b"}

    def test_other_errors_do_not_fall_back(self):
        client = _client(ApiError("denied", status=403), {"files": []})
        with pytest.raises(ApiError, match="denied"):
            get_change_tree(client, "org", "g/r", "7", "a", "b")
        assert client.request.call_count == 1


class TestComments:
    def test_list_comments_body(self):
        client = MagicMock()
        list_comments(client, "org", "g/r", "7", comment_type="INLINE_COMMENT", state="DRAFT", resolved=True)
        client.post.assert_called_once_with(
            f"{CR}/comments/list",
            body={
                "patchSetBizIds": [],
                "commentType": "INLINE_COMMENT",
                "state": "DRAFT",
                "resolved": True,
                "filePath": None,
            },
        )

    def test_create_inline_comment_payload(self):
        client = MagicMock()
        create_comment(
            client,
            "org",
            "g/r",
            "7",
            "hi",
            comment_type="INLINE_COMMENT",
            patchset_id="p2",
            file_path="a.py",
            line_number=3,
            from_patchset_id="p1",
            to_patchset_id="p2",
            parent_comment_id="c1",
        )
        body = client.post.call_args.kwargs["body"]
        assert body["comment_type"] == "INLINE_COMMENT"
        assert body["file_path"] == "a.py"
        assert body["line_number"] == 3
        assert body["from_patchset_biz_id"] == "p1"
        assert body["to_patchset_biz_id"] == "p2"
        assert body["parent_comment_biz_id"] == "c1"

    def test_create_global_comment_has_no_inline_fields(self):
        client = MagicMock()
        create_comment(client, "org", "g/r", "7", "hi", patchset_id="p2")
        body = client.post.call_args.kwargs["body"]
        assert body == {
            "comment_type": "GLOBAL_COMMENT",
            "content": "hi",
            "draft": False,
            "resolved": False,
            "patchset_biz_id": "p2",
        }

    def test_resolve_tries_candidates_in_order(self):
        client = _client(
            ApiError("no", status=405),
            ApiError("no", status=404),
            {"ok": True},
        )
        assert set_comment_resolved(client, "org", "g/r", "7", "c1", True) == {"ok": True}
        assert _paths(client) == [
            ("PUT", f"{CR}/comments/c1"),
            ("PATCH", f"{CR}/comments/c1"),
            ("POST", f"{CR}/comments/c1/resolve"),
        ]

    def test_unresolve_exhausted(self):
        client = _client(*[ApiError("no", status=404)] * 4)
        with pytest.raises(AttemptsExhaustedError, match="Failed to unresolve pull request comment c1"):
            set_comment_resolved(client, "org", "g/r", "7", "c1", False)
        assert _paths(client)[2] == ("POST", f"{CR}/comments/c1/unresolve")


def test_submit_review_falls_through_any_error():
    client = _client(ApiError("server", status=500), {"ok": True})
    assert submit_review(client, "org", "g/r", "7", "PASS", comment="lgtm") == {"ok": True}
    first, second = _paths(client)
    assert first == ("POST", "/api/v4/projects/g%2Fr/merge_requests/7/submit_review_opinion")
    assert second == ("POST", f"{CR}/review")
    assert client.request.call_args.kwargs["body"]["reviewOpinion"] == "PASS"


class TestCurrentUser:
    def test_wrapped_result(self):
        client = MagicMock()
        client.get.return_value = {"result": {"id": "u1"}}
        assert get_current_user_id(client) == "u1"

    def test_bare_record(self):
        client = MagicMock()
        client.get.return_value = {"userId": "u2"}
        assert get_current_user_id(client) == "u2"


def test_get_pipeline_run_path():
    client = MagicMock()
    get_pipeline_run(client, "org", "p1", "r1")
    client.get.assert_called_once_with("/oapi/v1/flow/organizations/org/pipelines/p1/runs/r1")
