"""Tests for comment fetching, deduplication and thread reconstruction."""

from unittest.mock import MagicMock

import pytest

from yx_core.errors import YxError
from yx_core.threads import (
    ThreadFilters,
    comment_preview,
    comment_queries,
    compact_threads,
    dedupe_records,
    fetch_comments,
    slice_threads,
    summarize_comments,
    summarize_thread_stats,
    summarize_threads,
)


def _comment(cid, parent=None, content="text", time="2024-01-01T00:00:00Z", **extra):
    record = {"comment_biz_id": cid, "content": content, "comment_time": time}
    if parent:
        record["parent_comment_biz_id"] = parent
    record.update(extra)
    return record


class TestDedupeRecords:
    def test_first_occurrence_wins(self):
        records = [_comment("1", content="first"), _comment("1", content="second"), _comment("2")]
        result = dedupe_records(records)
        assert [r["content"] for r in result] == ["first", "text"]

    def test_idless_records_keyed_on_content_and_time(self):
        records = [{"content": "a", "comment_time": "t"}, {"content": "a", "comment_time": "t"}, {"content": "b"}]
        assert len(dedupe_records(records)) == 2

    def test_idempotent(self):
        records = [_comment("1"), _comment("1"), {"content": "x"}, {"content": "x"}, _comment("2")]
        once = dedupe_records(records)
        assert dedupe_records(once) == once


class TestFetchComments:
    def test_queries_every_combination_and_dedupes(self, mocker):
        listing = mocker.patch(
            "yx_core.threads.list_comments",
            side_effect=lambda *args, **kwargs: {"result": [_comment("1"), _comment(kwargs["comment_type"])]},
        )

        records = fetch_comments(MagicMock(), "org", "g/r", "7", state="all", resolved_options=(False, True))

        assert listing.call_count == 2 * 2 * 2
        assert [r["comment_biz_id"] for r in records] == ["1", "GLOBAL_COMMENT", "INLINE_COMMENT"]

    def test_comment_queries(self):
        assert comment_queries("inline", "draft") == [("INLINE_COMMENT", "DRAFT")]
        assert comment_queries("all", "opened") == [("GLOBAL_COMMENT", "OPENED"), ("INLINE_COMMENT", "OPENED")]


class TestSummarizeThreads:
    def test_root_and_reply_form_one_thread(self):
        threads = summarize_threads([_comment("1", content="root"), _comment("2", parent="1", content="reply")])
        assert len(threads) == 1
        thread = threads[0]
        assert thread.thread_id == "1"
        assert thread.total_comments == 2
        assert thread.root_comment["comment_biz_id"] == "1"
        assert [r["comment_biz_id"] for r in thread.replies] == ["2"]

    def test_orphans_group_under_missing_parent_id(self):
        records = [
            _comment("2", parent="gone", time="2024-01-01T00:00:02Z"),
            _comment("3", parent="gone", time="2024-01-01T00:00:01Z"),
            _comment("4", parent="2", time="2024-01-01T00:00:03Z"),
        ]
        (thread,) = summarize_threads(records)
        assert thread.thread_id == "gone"
        assert thread.total_comments == 3
        assert thread.root_comment["comment_biz_id"] == "3"

    def test_nested_children_default_to_enclosing_parent(self):
        record = _comment(
            "1",
            child_comments_list=[
                {"comment_biz_id": "2", "content": "child", "comment_time": "2024-01-02T00:00:00Z"},
                {"comment_biz_id": "3", "parent_comment_biz_id": "2", "content": "grandchild"},
            ],
        )
        (thread,) = summarize_threads([record])
        assert thread.thread_id == "1"
        assert thread.total_comments == 3

    def test_cycle_does_not_hang(self):
        records = [_comment("a", parent="b"), _comment("b", parent="a")]
        threads = summarize_threads(records)
        assert sum(t.total_comments for t in threads) == 2

    def test_duplicate_ids_merge_and_or_resolved(self):
        records = [
            _comment("1", resolved=False),
            {"comment_biz_id": "1", "resolved": True, "file_path": "a.py"},
        ]
        (thread,) = summarize_threads(records)
        assert thread.total_comments == 1
        assert thread.resolved is True
        assert thread.file_paths == ["a.py"]

    def test_resolved_only_when_every_node_resolved(self):
        records = [_comment("1", resolved=True), _comment("2", parent="1", resolved=False)]
        assert summarize_threads(records)[0].resolved is False
        records[1]["resolved"] = "true"
        assert summarize_threads(records)[0].resolved is True

    def test_every_identified_record_lands_in_exactly_one_thread(self):
        records = [
            _comment("1"),
            _comment("2", parent="1"),
            _comment("3", parent="9"),
            _comment("4"),
            {"content": "no id"},
        ]
        seen = []
        for thread in summarize_threads(records):
            seen.append(thread.root_comment["comment_biz_id"])
            seen.extend(r["comment_biz_id"] for r in thread.replies)
        assert sorted(seen) == ["1", "2", "3", "4"]

    def test_sort_latest_and_oldest(self):
        records = [_comment("old", time="2024-01-01T00:00:00Z"), _comment("new", time="2024-02-01T00:00:00Z")]
        assert [t.thread_id for t in summarize_threads(records)] == ["new", "old"]
        oldest = summarize_threads(records, ThreadFilters(sort="oldest"))
        assert [t.thread_id for t in oldest] == ["old", "new"]

    def test_invalid_sort(self):
        with pytest.raises(YxError, match="Invalid --sort value: newest"):
            summarize_threads([], ThreadFilters(sort="newest"))


class TestThreadFilters:
    RECORDS = [
        _comment("1", content="URGENT: please review", authorName="Alice", file_path="src/a.py"),
        _comment("2", parent="1", content="on it", author={"name": "Bob", "userId": "u-bob"}),
        _comment("3", content="nit", authorName="Carol", time="2023-01-01T00:00:00Z"),
        _comment("4", content="no author or time", time="not a time"),
    ]

    def _ids(self, **filters):
        return sorted(t.thread_id for t in summarize_threads(self.RECORDS, ThreadFilters(**filters)))

    def test_contains_case_insensitive_all_keywords(self):
        assert self._ids(contains=["urgent"]) == ["1"]
        assert self._ids(contains=["urgent", "on it"]) == ["1"]
        assert self._ids(contains=["urgent", "missing"]) == []

    def test_file_path(self):
        assert self._ids(file_path="src/a.py") == ["1"]

    def test_file_path_suffix_and_backslashes(self):
        assert self._ids(file_path="a.py") == ["1"]
        assert self._ids(file_path="src\\a.py") == ["1"]
        assert self._ids(file_path="rc/a.py") == []
        records = [_comment("1", file_path="src\\pkg\\a.py")]
        assert [t.thread_id for t in summarize_threads(records, ThreadFilters(file_path="pkg/a.py"))] == ["1"]

    def test_with_replies(self):
        assert self._ids(with_replies=True) == ["1"]

    def test_author_matches_any_participant_by_name_or_id(self):
        assert self._ids(authors=["u-bob"]) == ["1"]
        assert self._ids(authors=["CAROL"]) == ["3"]
        assert self._ids(authors=["car"]) == ["3"]

    def test_since_excludes_old_and_unparseable(self):
        assert self._ids(since="2023-06-01T00:00:00Z") == ["1"]

    def test_invalid_since(self):
        with pytest.raises(YxError, match="Invalid --since value: soon"):
            summarize_threads(self.RECORDS, ThreadFilters(since="soon"))

    def test_missing_times_sort_last_for_latest(self):
        threads = summarize_threads(self.RECORDS)
        assert threads[-1].thread_id == "4"


class TestSummaries:
    def test_comment_summary(self):
        records = [
            _comment("1", comment_type="INLINE_COMMENT", state="OPENED", file_path="a.py"),
            _comment("2", parent="1", comment_type="INLINE_COMMENT", state="DRAFT", file_path="a.py", resolved=True),
            _comment("3", comment_type="GLOBAL_COMMENT"),
        ]
        summary = summarize_comments(records)
        assert summary.total == 3
        assert summary.by_type == {"global": 1, "inline": 2, "unknown": 0}
        assert summary.by_state == {"opened": 1, "draft": 1, "other": 1}
        assert summary.resolved == {"resolved": 1, "unresolved": 2}
        assert summary.replies == {"root": 2, "reply": 1}
        assert summary.files == [{"path": "a.py", "count": 2}]

    def test_thread_stats_and_compact(self):
        threads = summarize_threads(
            [
                _comment("1", file_path="a.py", comment_type="INLINE_COMMENT", state="OPENED"),
                _comment("2", parent="1"),
                _comment("3", resolved=True),
            ]
        )
        stats = summarize_thread_stats(threads)
        assert stats.total_threads == 2
        assert stats.open_threads == 1
        assert stats.resolved_threads == 1
        assert stats.total_comments == 3
        assert stats.files == [{"path": "a.py", "threads": 1, "comments": 2}]

        compact = {t["thread_id"]: t for t in compact_threads(threads)}
        assert compact["1"]["comment_ids"] == ["1", "2"]
        assert compact["3"]["reply_comment_ids"] == []


def test_slice_threads():
    threads = summarize_threads([_comment(str(i)) for i in range(5)])
    sliced = slice_threads(threads, 2)
    assert len(sliced.items) == 2
    assert sliced.total == 5
    assert sliced.truncated


def test_comment_preview():
    assert comment_preview("  a\n b ") == "a b"
    assert comment_preview(None) == "(empty)"
    assert comment_preview("x" * 200).endswith("...")
    assert len(comment_preview("x" * 200)) == 120
