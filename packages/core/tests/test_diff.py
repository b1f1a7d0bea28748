"""Tests for diff snapshots, path filters and patch retrieval."""

from unittest.mock import MagicMock

import pytest

from yx_core.diff import (
    DiffFile,
    DiffSnapshot,
    DiffSummary,
    PatchItem,
    build_snapshot,
    filter_by_files,
    format_patch,
    format_path_tree,
    resolve_patches,
    summarize_diff_tree,
)
from yx_core.errors import ApiError, PatchResolutionError
from yx_core.patchsets import MERGE_SOURCE, MERGE_TARGET, PatchsetRange, PatchsetRef

PATCHSETS = {
    "result": [
        {"patchSetBizId": "t1", "versionNo": 1, "relatedMergeItemType": "MERGE_TARGET", "commitId": "aaa"},
        {"patchSetBizId": "s1", "versionNo": 1, "relatedMergeItemType": "MERGE_SOURCE", "commitId": "bbb"},
    ]
}


def _tree(count):
    return {"changedTreeItems": [{"newPath": f"src/f{i}.py", "addLines": i, "delLines": 1} for i in range(count)]}


class TestSummarizeDiffTree:
    def test_truncates_to_limit(self):
        summary = summarize_diff_tree(_tree(5), limit=3)
        assert len(summary.files) == 3
        assert summary.truncated is True
        assert summary.changed_files_count == 5

    def test_not_truncated_under_limit(self):
        summary = summarize_diff_tree(_tree(5), limit=10)
        assert len(summary.files) == 5
        assert summary.truncated is False

    def test_limit_floor_is_one(self):
        assert len(summarize_diff_tree(_tree(2), limit=0).files) == 1

    def test_totals_summed_when_absent(self):
        summary = summarize_diff_tree(_tree(3))
        assert summary.total_additions == 0 + 1 + 2
        assert summary.total_deletions == 3

    def test_top_level_totals_preferred(self):
        response = {"result": {"files": [{"path": "a", "additions": 1}], "totalAddLines": 50, "totalDelLines": 7}}
        summary = summarize_diff_tree(response)
        assert summary.total_additions == 50
        assert summary.total_deletions == 7

    def test_file_flags_and_path_aliases(self):
        response = {"changedFiles": [{"oldPath": "old.txt", "renamedFile": True, "isBinary": True}]}
        (diff_file,) = summarize_diff_tree(response).files
        assert diff_file.path == "old.txt"
        assert diff_file.renamed and diff_file.binary
        assert diff_file.additions is None

    def test_empty_response(self):
        summary = summarize_diff_tree(None)
        assert summary.files == []
        assert summary.changed_files_count == 0


class TestBuildSnapshot:
    def test_primary_path(self, mocker):
        mocker.patch("yx_core.diff.list_patchsets", return_value=PATCHSETS)
        tree = mocker.patch("yx_core.diff.get_change_tree", return_value=_tree(2))

        snapshot = build_snapshot(MagicMock(), "org", "g/r", "7")

        tree.assert_called_once()
        assert tree.call_args.args[4:] == ("t1", "s1")
        assert snapshot.range.to_dict() == {"from": "t1", "to": "s1"}
        assert snapshot.from_ref.commit_id == "aaa"
        assert snapshot.summary.paths == ["src/f0.py", "src/f1.py"]
        assert snapshot.warning is None

    def test_falls_back_to_detail_counts(self, mocker):
        mocker.patch("yx_core.diff.list_patchsets", return_value=PATCHSETS)
        mocker.patch("yx_core.diff.get_change_tree", side_effect=ApiError("Yunxiao API 404: gone", status=404))
        mocker.patch(
            "yx_core.diff.get_change_request",
            return_value={"changedFilesCount": 4, "totalAdditions": 10, "totalDeletions": 2},
        )

        snapshot = build_snapshot(MagicMock(), "org", "g/r", "7")

        assert snapshot.summary.files == []
        assert snapshot.summary.changed_files_count == 4
        assert snapshot.summary.total_additions == 10
        assert snapshot.warning == "Diff detail API not available: Yunxiao API 404: gone"

    def test_detail_failure_does_not_raise(self, mocker):
        mocker.patch("yx_core.diff.list_patchsets", return_value=PATCHSETS)
        mocker.patch("yx_core.diff.get_change_tree", side_effect=ApiError("tree down"))
        mocker.patch("yx_core.diff.get_change_request", side_effect=ApiError("detail down"))

        snapshot = build_snapshot(MagicMock(), "org", "g/r", "7")

        assert snapshot.summary.changed_files_count == 0
        assert "tree down" in snapshot.warning
        assert "detail fallback failed: detail down" in snapshot.warning

    def test_single_patchset_degrades_with_warning(self, mocker):
        mocker.patch("yx_core.diff.list_patchsets", return_value={"result": PATCHSETS["result"][1:]})
        mocker.patch("yx_core.diff.get_change_request", return_value={})

        snapshot = build_snapshot(MagicMock(), "org", "g/r", "7")

        assert snapshot.range.from_id is None
        assert snapshot.warning.startswith("Diff detail API not available")


class TestFilterByFiles:
    def _summary(self):
        files = [
            DiffFile(path="src/app/main.py", additions=3, deletions=1),
            DiffFile(path="main.py", additions=2, deletions=0),
            DiffFile(path="src/domain.py", additions=5, deletions=5),
        ]
        return DiffSummary(changed_files_count=10, total_additions=99, total_deletions=99, files=files, truncated=True)

    def test_exact_or_slash_suffix(self):
        result = filter_by_files(self._summary(), ["main.py"])
        assert [f.path for f in result.files] == ["src/app/main.py", "main.py"]
        assert result.changed_files_count == 2
        assert result.total_additions == 5
        assert result.truncated is False

    def test_suffix_must_start_at_segment(self):
        result = filter_by_files(self._summary(), ["ain.py"])
        assert result.files == []

    def test_backslashes_normalized(self):
        result = filter_by_files(self._summary(), ["app\\main.py"])
        assert [f.path for f in result.files] == ["src/app/main.py"]

    def test_no_filters_returns_summary_unchanged(self):
        summary = self._summary()
        assert filter_by_files(summary, ()) is summary


def test_format_path_tree_puts_directories_first():
    lines = format_path_tree(["README.md", "src/b.py", "src/a/x.py", "docs/guide.md"])
    assert lines == [
        "├── docs",
        "│   └── guide.md",
        "├── src",
        "│   ├── a",
        "│   │   └── x.py",
        "│   └── b.py",
        "└── README.md",
    ]


class TestResolvePatches:
    def _snapshot(self, from_commit="aaa", to_commit="bbb"):
        return DiffSnapshot(
            range=PatchsetRange("t1", "s1"),
            summary=DiffSummary(),
            from_ref=PatchsetRef(id="t1", type=MERGE_TARGET, commit_id=from_commit),
            to_ref=PatchsetRef(id="s1", type=MERGE_SOURCE, commit_id=to_commit),
        )

    def test_missing_commit_fails_fast(self, mocker):
        compare = mocker.patch("yx_core.diff.get_compare")
        with pytest.raises(PatchResolutionError, match=r"\(from=t1, to=s1\)"):
            resolve_patches(MagicMock(), "org", "g/r", self._snapshot(to_commit=None))
        compare.assert_not_called()

    def test_fetches_compare_and_filters(self, mocker):
        compare = mocker.patch(
            "yx_core.diff.get_compare",
            return_value={
                "diffs": [
                    {"newPath": "src/a.py", "diff": "@@ -1 +1 @@\n-a\n+b\n"},
                    {"newPath": "src/b.py", "diff": "@@ -1 +1 @@\n-c\n+d\n"},
                    {"newPath": "img.png", "diff": None},
                ]
            },
        )
        items = resolve_patches(MagicMock(), "org", "g/r", self._snapshot(), ["a.py"])

        assert compare.call_args.args[3:] == ("aaa", "bbb")
        assert [i.path for i in items] == ["src/a.py"]


def test_format_patch():
    items = [PatchItem(path="a.py", patch="-x\n+y\n"), PatchItem(path="b.py", patch="+z")]
    assert format_patch(items) == "# a.py\n-x\n+y\n# b.py\n+z"
