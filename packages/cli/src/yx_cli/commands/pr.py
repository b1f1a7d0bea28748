"""pr commands: change-request patchsets, diffs, comments, threads, checks and reviews."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path

import click
from rich.table import Table

from yx_core.api.codeup import (
    create_comment,
    get_change_request,
    get_current_user_id,
    list_patchsets,
    set_comment_resolved,
)
from yx_core.checks import ChecksResult, collect_checks, review_opinions, submit_review, summarize_reviews, watch_checks
from yx_core.config import resolve_organization_id
from yx_core.diff import (
    DEFAULT_FILE_LIMIT,
    DiffSnapshot,
    build_snapshot,
    filter_by_files,
    format_patch,
    format_path_tree,
    resolve_patches,
)
from yx_core.errors import RangeResolutionError, YxError
from yx_core.patchsets import extract_patchset_refs, latest_source_patchset, resolve_range, summarize_patchsets
from yx_core.polling import seconds
from yx_core.threads import (
    ThreadFilters,
    comment_author,
    comment_content,
    comment_file_path,
    comment_id,
    comment_preview,
    comment_time,
    compact_threads,
    fetch_comments,
    slice_threads,
    summarize_comments,
    summarize_thread_stats,
    summarize_threads,
)
from yx_cli.output import cli_errors, console, emit, output_options, resolve_format, to_json, to_tsv

_CONCLUSION_STYLE = {"pass": "green", "fail": "red", "pending": "yellow", "neutral": "white"}
_REVIEW_STYLE = {"approved": "green", "changes_requested": "red", "commented": "yellow", "pending": "white"}

org_option = click.option("--org", default=None, help="Organization ID. Defaults to organization_id in .yx.yml.")
limit_option = click.option(
    "--limit",
    "-L",
    type=click.IntRange(min=1),
    default=DEFAULT_FILE_LIMIT,
    show_default=True,
    help="Max files to list.",
)
body_file_option = click.option(
    "--body-file",
    "-F",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read the body from a file.",
)
range_options = [
    click.option("--from", "from_id", default=None, help="Base patchset biz ID."),
    click.option("--to", "to_id", default=None, help="Head patchset biz ID."),
]


def _with_range(func):
    for option in reversed(range_options):
        func = option(func)
    return func


def _session(ctx: click.Context, org: str | None):
    """Return (client, organization_id) for the current invocation."""
    with cli_errors():
        organization_id = resolve_organization_id(ctx.obj["config"], org)
        client = ctx.obj["get_client"]()
    return client, organization_id


def _read_body(body: str | None, body_file: str | None) -> str | None:
    if body and body.strip():
        return body
    if body_file:
        content = Path(body_file).read_text(encoding="utf-8")
        return content if content.strip() else None
    return None


@click.group("pr")
def pr_group():
    """Work with Codeup change requests."""


@pr_group.command("patchsets")
@click.argument("repository_id")
@click.argument("local_id")
@org_option
@output_options
@click.pass_context
def patchsets_cmd(ctx, repository_id: str, local_id: str, org: str | None, output_format, json_flag, out_path):
    """List patchsets of a change request and the suggested diff range."""
    fmt = resolve_format(output_format, json_flag, out_path)
    client, organization_id = _session(ctx, org)
    with cli_errors():
        summary = summarize_patchsets(list_patchsets(client, organization_id, repository_id, local_id))

    if fmt == "json":
        emit(to_json(summary.to_dict()), out_path, "patchsets")
        return
    rows = [[p["id"], p["version"], p["type"], p["create_time"], p["commit_id"]] for p in summary.patchsets]
    if fmt == "tsv":
        emit(to_tsv(["id", "version", "type", "created_at", "commit_id"], rows), out_path, "patchsets")
        return

    table = Table(title=f"Patchsets — {repository_id}!{local_id}", show_header=True, header_style="bold cyan")
    for column in ("ID", "Version", "Type", "Created At", "Commit"):
        table.add_column(column)
    for row in rows:
        table.add_row(*["" if cell is None else str(cell) for cell in row[:4]], (row[4] or "")[:8])
    console.print(table)
    suggested = summary.suggested_range
    console.print(f"Suggested range: from={suggested.from_id or '-'} to={suggested.to_id or '-'}")


def _print_snapshot_table(snapshot: DiffSnapshot, title: str) -> None:
    summary = snapshot.summary
    if snapshot.warning:
        console.print(f"[yellow]{snapshot.warning}[/yellow]")
    console.print(
        f"Range: from={snapshot.range.from_id or '-'} to={snapshot.range.to_id or '-'}  "
        f"files={summary.changed_files_count} [green]+{summary.total_additions}[/green] "
        f"[red]-{summary.total_deletions}[/red]"
    )
    if not summary.files:
        return
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Path")
    table.add_column("+", justify="right", style="green")
    table.add_column("-", justify="right", style="red")
    table.add_column("Flags")
    for f in summary.files:
        flags = ", ".join(name for name, on in (("renamed", f.renamed), ("binary", f.binary)) if on)
        table.add_row(f.path, str(f.additions or 0), str(f.deletions or 0), flags)
    console.print(table)
    if summary.truncated:
        console.print(f"Showing first {len(summary.files)} files. Use --limit to adjust.")


def _snapshot_tsv(snapshot: DiffSnapshot) -> str:
    rows = [[f.path, f.additions, f.deletions, f.renamed, f.binary] for f in snapshot.summary.files]
    return to_tsv(["path", "additions", "deletions", "renamed", "binary"], rows)


@pr_group.command("files")
@click.argument("repository_id")
@click.argument("local_id")
@org_option
@_with_range
@click.option("--tree", is_flag=True, help="Render changed files as a directory tree.")
@click.option("--stat", is_flag=True, help="Only print the change summary.")
@limit_option
@output_options
@click.pass_context
def files_cmd(ctx, repository_id, local_id, org, from_id, to_id, tree, stat, limit, output_format, json_flag, out_path):
    """List files changed between two patchsets."""
    if tree and stat:
        raise click.UsageError("Choose only one of --tree or --stat.")
    fmt = resolve_format(output_format, json_flag, out_path)
    client, organization_id = _session(ctx, org)
    with cli_errors():
        snapshot = build_snapshot(client, organization_id, repository_id, local_id, from_id, to_id, limit)

    if fmt == "json":
        payload = snapshot.to_dict()
        if tree:
            payload["tree"] = format_path_tree(snapshot.summary.paths)
        emit(to_json(payload), out_path, "files")
        return
    if fmt == "tsv":
        emit(_snapshot_tsv(snapshot), out_path, "files")
        return

    if tree:
        if snapshot.warning:
            console.print(f"[yellow]{snapshot.warning}[/yellow]")
        for line in format_path_tree(snapshot.summary.paths):
            click.echo(line)
        return
    if stat:
        snapshot.summary.files = []
    _print_snapshot_table(snapshot, f"Changed files — {repository_id}!{local_id}")


@pr_group.command("diff")
@click.argument("repository_id")
@click.argument("local_id")
@org_option
@_with_range
@click.option("--file", "files", multiple=True, help="Limit to this path (exact or suffix match). Repeatable.")
@click.option("--name-only", is_flag=True, help="Only print changed file paths.")
@click.option("--stat", is_flag=True, help="Print per-file line counts.")
@click.option("--patch", "show_patch", is_flag=True, help="Print unified patch text.")
@click.option("--save", "save_path", default=None, help="Write the patch to this file (requires --patch).")
@limit_option
@output_options
@click.pass_context
def diff_cmd(
    ctx, repository_id, local_id, org, from_id, to_id, files, name_only, stat, show_patch, save_path, limit,
    output_format, json_flag, out_path,
):
    """Show the diff between two patchsets of a change request."""
    if sum((name_only, stat, show_patch)) > 1:
        raise click.UsageError("Choose only one of --name-only, --stat or --patch.")
    if save_path and not show_patch:
        raise click.UsageError("--save requires --patch.")
    fmt = resolve_format(output_format, json_flag, out_path)
    client, organization_id = _session(ctx, org)

    with cli_errors():
        snapshot = build_snapshot(client, organization_id, repository_id, local_id, from_id, to_id, limit)
        snapshot.summary = filter_by_files(snapshot.summary, files)

        if show_patch:
            items = resolve_patches(client, organization_id, repository_id, snapshot, files)
            if fmt == "json":
                payload = {"range": snapshot.range.to_dict(), "files": [asdict(i) for i in items]}
                emit(to_json(payload), out_path, "patch")
                return
            text = format_patch(items)
            if save_path:
                Path(save_path).write_text(f"{text}\n" if text else "", encoding="utf-8")
                click.echo(f"Saved patch to {save_path}.")
                return
            click.echo(text)
            return

    if fmt == "json":
        emit(to_json(snapshot.to_dict()), out_path, "diff")
        return
    if fmt == "tsv":
        emit(_snapshot_tsv(snapshot), out_path, "diff")
        return
    if name_only:
        for path in snapshot.summary.paths:
            click.echo(path)
        return
    if stat:
        for f in snapshot.summary.files:
            click.echo(f" {f.path} | +{f.additions or 0} -{f.deletions or 0}")
        s = snapshot.summary
        click.echo(
            f" {s.changed_files_count} files changed, "
            f"{s.total_additions} insertions(+), {s.total_deletions} deletions(-)"
        )
        return
    _print_snapshot_table(snapshot, f"Diff — {repository_id}!{local_id}")


@pr_group.command("comments")
@click.argument("repository_id")
@click.argument("local_id")
@org_option
@click.option(
    "--type", "comment_type", type=click.Choice(["all", "global", "inline"]), default="all", show_default=True
)
@click.option("--state", type=click.Choice(["opened", "draft", "all"]), default="opened", show_default=True)
@click.option("--file", "file_path", default=None, help="Filter by file path (inline comments).")
@click.option("--resolved", is_flag=True, help="Only resolved comments.")
@click.option("--summary", is_flag=True, help="Print aggregated comment counts.")
@output_options
@click.pass_context
def comments_cmd(
    ctx, repository_id, local_id, org, comment_type, state, file_path, resolved, summary,
    output_format, json_flag, out_path,
):
    """List change-request comments as a flat list."""
    fmt = resolve_format(output_format, json_flag, out_path)
    client, organization_id = _session(ctx, org)
    with cli_errors():
        records = fetch_comments(
            client,
            organization_id,
            repository_id,
            local_id,
            comment_type=comment_type,
            state=state,
            resolved_options=(resolved,),
            file_path=file_path,
        )

    if summary:
        stats = summarize_comments(records)
        if fmt == "json":
            emit(to_json(stats.to_dict()), out_path, "comments summary")
        elif fmt == "tsv":
            rows = [["total", "", stats.total]]
            rows += [[f"type.{k}", "", v] for k, v in stats.by_type.items()]
            rows += [[f"state.{k}", "", v] for k, v in stats.by_state.items()]
            rows += [[k, "", v] for k, v in {**stats.resolved, **stats.replies}.items()]
            rows += [["file", f["path"], f["count"]] for f in stats.files]
            emit(to_tsv(["key", "path", "value"], rows), out_path, "comments summary")
        else:
            console.print_json(data=stats.to_dict())
        return

    if fmt == "json":
        emit(to_json(records), out_path, "comments")
        return
    rows = [
        [
            comment_id(r),
            comment_author(r) or "(unknown)",
            comment_file_path(r),
            comment_time(r),
            comment_preview(comment_content(r)),
        ]
        for r in records
    ]
    if fmt == "tsv":
        emit(to_tsv(["id", "author", "file", "time", "content"], rows), out_path, "comments")
        return
    table = Table(title=f"Comments — {repository_id}!{local_id}", show_header=True, header_style="bold cyan")
    for column in ("ID", "Author", "File", "Time", "Content"):
        table.add_column(column)
    for row in rows:
        table.add_row(*["" if cell is None else str(cell) for cell in row])
    console.print(table)


@pr_group.command("threads")
@click.argument("repository_id")
@click.argument("local_id")
@org_option
@click.option("--state", type=click.Choice(["opened", "draft", "all"]), default="opened", show_default=True)
@click.option("--file", "file_path", default=None, help="Only threads touching this file.")
@click.option("--author", "authors", multiple=True, help="Filter by author name or user ID. Repeatable.")
@click.option("--mine", is_flag=True, help="Only threads the current user took part in.")
@click.option("--with-replies", is_flag=True, help="Only threads with at least one reply.")
@click.option("--since", default=None, help="Only threads active since this ISO-8601 time.")
@click.option("--contains", "keywords", multiple=True, help="Require this keyword in the thread. Repeatable.")
@click.option("--sort", type=click.Choice(["latest", "oldest"]), default="latest", show_default=True)
@click.option("--all", "include_resolved", is_flag=True, help="Include resolved threads.")
@click.option("--limit", "-L", type=click.IntRange(min=1), default=200, show_default=True, help="Max threads to show.")
@click.option("--ids-only", is_flag=True, help="Only print compact thread identifiers.")
@click.option("--summary", is_flag=True, help="Print aggregated thread counts.")
@output_options
@click.pass_context
def threads_cmd(
    ctx, repository_id, local_id, org, state, file_path, authors, mine, with_replies, since, keywords, sort,
    include_resolved, limit, ids_only, summary, output_format, json_flag, out_path,
):
    """Reconstruct comment threads (root comment plus replies)."""
    fmt = resolve_format(output_format, json_flag, out_path)
    client, organization_id = _session(ctx, org)
    with cli_errors():
        author_filters = list(authors)
        if mine:
            user_id = get_current_user_id(client)
            if not user_id:
                raise YxError("Cannot resolve current user ID for `pr threads --mine`.")
            author_filters.append(user_id)
        records = fetch_comments(
            client,
            organization_id,
            repository_id,
            local_id,
            state=state,
            resolved_options=(False, True) if include_resolved else (False,),
            file_path=file_path,
        )
        threads = summarize_threads(
            records,
            ThreadFilters(
                file_path=file_path,
                authors=author_filters,
                with_replies=with_replies,
                since=since,
                contains=list(keywords),
                sort=sort,
            ),
        )

    if summary:
        stats = summarize_thread_stats(threads)
        if fmt == "tsv":
            counters = ("total_threads", "open_threads", "resolved_threads", "total_comments")
            rows = [[k, "", getattr(stats, k)] for k in counters]
            rows += [[f"type.{k}", "", v] for k, v in stats.by_type.items()]
            rows += [[f"state.{k}", "", v] for k, v in stats.by_state.items()]
            rows += [["file", f["path"], f"{f['threads']}/{f['comments']}"] for f in stats.files]
            emit(to_tsv(["key", "path", "value"], rows), out_path, "threads summary")
        elif fmt == "json":
            emit(to_json(stats.to_dict()), out_path, "threads summary")
        else:
            console.print_json(data=stats.to_dict())
        return

    sliced = slice_threads(threads, limit)
    if ids_only or fmt == "tsv":
        compact = compact_threads(sliced.items)
        if fmt == "tsv":
            rows = [
                [
                    t["thread_id"],
                    t["root_comment_id"],
                    ",".join(t["reply_comment_ids"]),
                    t["total_comments"],
                    t["resolved"],
                    t["last_comment_at"],
                    ",".join(t["file_paths"]),
                ]
                for t in compact
            ]
            header = [
                "thread_id", "root_comment_id", "reply_comment_ids", "total", "resolved", "last_comment_at", "files"
            ]
            emit(to_tsv(header, rows), out_path, "threads")
        elif fmt == "json":
            emit(to_json(compact), out_path, "threads")
        else:
            for t in compact:
                click.echo(" ".join(t["comment_ids"]))
    elif fmt == "json":
        emit(to_json([t.to_dict() for t in sliced.items]), out_path, "threads")
    else:
        for thread in sliced.items:
            marker = "[green]resolved[/green]" if thread.resolved else "[yellow]open[/yellow]"
            where = ", ".join(thread.file_paths) or "(global)"
            console.print(
                f"[bold]{thread.thread_id}[/bold] {marker} {where} "
                f"comments={thread.total_comments} last={thread.last_comment_at or '-'}"
            )
            for raw in [thread.root_comment, *thread.replies]:
                author = comment_author(raw) or "(unknown)"
                console.print(f"  {author}: {comment_preview(comment_content(raw))}", markup=False)

    if sliced.truncated and not out_path:
        click.echo(f"Showing first {len(sliced.items)} of {sliced.total} threads. Use --limit to adjust.", err=True)


@pr_group.command("comment")
@click.argument("repository_id")
@click.argument("local_id")
@org_option
@click.option("--body", "-b", default=None, help="Comment body.")
@body_file_option
@click.option("--inline", is_flag=True, help="Comment on one file/line.")
@click.option("--file", "file_path", default=None, help="Inline comment file path.")
@click.option("--line", type=click.IntRange(min=1), default=None, help="Inline comment line number.")
@click.option("--patchset", default=None, help="Patchset biz ID for a global comment.")
@_with_range
@click.option("--reply-to", default=None, help="Parent comment biz ID.")
@click.option("--draft", is_flag=True, help="Create a draft comment.")
@output_options
@click.pass_context
def comment_cmd(
    ctx, repository_id, local_id, org, body, body_file, inline, file_path, line, patchset, from_id, to_id, reply_to,
    draft, output_format, json_flag, out_path,
):
    """Create a global or inline comment."""
    fmt = resolve_format(output_format, json_flag, out_path)
    content = _read_body(body, body_file)
    if not content:
        raise click.UsageError("Missing comment body. Use --body <text> or --body-file <path>.")
    if inline and patchset:
        raise click.UsageError("Do not combine --inline with --patchset. Use --from/--to for inline comments.")
    if inline and not file_path:
        raise click.UsageError("Missing inline file path. Use --file <path> with --inline.")
    if inline and not line:
        raise click.UsageError("Missing inline line number. Use --line <number> with --inline.")

    client, organization_id = _session(ctx, org)
    with cli_errors():
        refs = extract_patchset_refs(list_patchsets(client, organization_id, repository_id, local_id))
        if inline:
            patchset_range = resolve_range(refs, from_id, to_id)
            if not patchset_range.complete:
                raise RangeResolutionError("Cannot resolve inline patchset range. Pass --from and --to explicitly.")
            result = create_comment(
                client,
                organization_id,
                repository_id,
                local_id,
                content,
                comment_type="INLINE_COMMENT",
                draft=draft,
                patchset_id=patchset_range.to_id,
                file_path=file_path,
                line_number=line,
                from_patchset_id=patchset_range.from_id,
                to_patchset_id=patchset_range.to_id,
                parent_comment_id=reply_to,
            )
        else:
            latest = latest_source_patchset(refs)
            patchset_id = patchset or (latest.id if latest else None)
            if not patchset_id:
                raise RangeResolutionError(
                    "Cannot resolve patchset biz ID. Pass --patchset <patchsetBizId> explicitly."
                )
            result = create_comment(
                client,
                organization_id,
                repository_id,
                local_id,
                content,
                draft=draft,
                patchset_id=patchset_id,
                parent_comment_id=reply_to,
            )

    if fmt == "table":
        console.print(f"[green]Created comment {comment_id(result) or ''}[/green]".rstrip())
        return
    if fmt == "tsv":
        row = [comment_id(result), comment_file_path(result), content]
        emit(to_tsv(["id", "file", "content"], [row]), out_path, "comment")
        return
    emit(to_json(result), out_path, "comment")


def _toggle_resolved(
    ctx, repository_id, local_id, comment_biz_id, org, resolved: bool, output_format, json_flag, out_path
):
    fmt = resolve_format(output_format, json_flag, out_path)
    client, organization_id = _session(ctx, org)
    with cli_errors():
        result = set_comment_resolved(client, organization_id, repository_id, local_id, comment_biz_id, resolved)
    if fmt == "table":
        console.print(f"[green]Comment {comment_biz_id} {'resolved' if resolved else 'reopened'}.[/green]")
        return
    if fmt == "tsv":
        emit(to_tsv(["id", "resolved"], [[comment_biz_id, resolved]]), out_path, "comment")
        return
    emit(to_json({"comment_id": comment_biz_id, "resolved": resolved, "response": result}), out_path, "comment")


@pr_group.command("comment-resolve")
@click.argument("repository_id")
@click.argument("local_id")
@click.argument("comment_biz_id")
@org_option
@output_options
@click.pass_context
def comment_resolve_cmd(ctx, repository_id, local_id, comment_biz_id, org, output_format, json_flag, out_path):
    """Mark a comment thread as resolved."""
    _toggle_resolved(ctx, repository_id, local_id, comment_biz_id, org, True, output_format, json_flag, out_path)


@pr_group.command("comment-unresolve")
@click.argument("repository_id")
@click.argument("local_id")
@click.argument("comment_biz_id")
@org_option
@output_options
@click.pass_context
def comment_unresolve_cmd(ctx, repository_id, local_id, comment_biz_id, org, output_format, json_flag, out_path):
    """Reopen a resolved comment thread."""
    _toggle_resolved(ctx, repository_id, local_id, comment_biz_id, org, False, output_format, json_flag, out_path)


def _checks_tsv(result: ChecksResult) -> str:
    counts = {k: v for k, v in result.to_dict().items() if k != "checks" and v is not None}
    rows = [["summary", "", "", "", "", "", key, value] for key, value in counts.items()]
    rows += [["check", c.name, c.status, c.conclusion, c.description, c.url, "", ""] for c in result.checks]
    return to_tsv(["section", "name", "status", "conclusion", "description", "url", "key", "value"], rows)


def _print_checks_table(result: ChecksResult, title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Conclusion")
    table.add_column("Description", max_width=50)
    for check in result.checks:
        style = _CONCLUSION_STYLE.get(check.conclusion, "white")
        table.add_row(check.name, check.status, f"[{style}]{check.conclusion}[/{style}]", check.description or "")
    console.print(table)
    console.print(
        f"pass={result.passed} fail={result.failed} pending={result.pending} neutral={result.neutral} "
        f"total={result.total}" + (f"  status={result.pull_request_status}" if result.pull_request_status else "")
    )


@pr_group.command("checks")
@click.argument("repository_id")
@click.argument("local_id")
@org_option
@click.option("--watch", is_flag=True, help="Poll until no check is pending.")
@click.option("--interval", type=float, default=5, show_default=True, help="Polling interval in seconds.")
@click.option("--timeout", type=float, default=1800, show_default=True, help="Max watch time in seconds.")
@output_options
@click.pass_context
def checks_cmd(ctx, repository_id, local_id, org, watch, interval, timeout, output_format, json_flag, out_path):
    """Show CI checks and merge requirements for a change request."""
    fmt = resolve_format(output_format, json_flag, out_path)
    client, organization_id = _session(ctx, org)

    def announce(result: ChecksResult, elapsed: float) -> None:
        if fmt == "table" and not out_path:
            click.echo(f"[{int(elapsed)}s] checks: pass={result.passed} fail={result.failed} pending={result.pending}")

    with cli_errors():
        if watch:
            result = watch_checks(
                client,
                organization_id,
                repository_id,
                local_id,
                interval=seconds(interval),
                timeout=seconds(timeout),
                on_change=announce,
            ).value
        else:
            result = collect_checks(client, organization_id, repository_id, local_id)

    if fmt == "json":
        emit(to_json(result.to_dict()), out_path, "checks")
    elif fmt == "tsv":
        emit(_checks_tsv(result), out_path, "checks")
    else:
        _print_checks_table(result, f"Checks — {repository_id}!{local_id}")


@pr_group.command("reviews")
@click.argument("repository_id")
@click.argument("local_id")
@org_option
@output_options
@click.pass_context
def reviews_cmd(ctx, repository_id, local_id, org, output_format, json_flag, out_path):
    """Show reviewer opinions on a change request."""
    fmt = resolve_format(output_format, json_flag, out_path)
    client, organization_id = _session(ctx, org)
    with cli_errors():
        result = summarize_reviews(get_change_request(client, organization_id, repository_id, local_id))

    if fmt == "json":
        emit(to_json(result.to_dict()), out_path, "reviews")
        return
    if fmt == "tsv":
        rows = [["summary", "", "", "", "", "", k, v] for k, v in result.summary.items()]
        rows += [
            ["reviewer", r.name, r.state, r.user_id, r.review_opinion_status, r.review_time, "", ""]
            for r in result.reviewers
        ]
        header = ["section", "name", "state", "user_id", "review_opinion_status", "review_time", "key", "value"]
        emit(to_tsv(header, rows), out_path, "reviews")
        return

    table = Table(title=f"Reviews — {repository_id}!{local_id}", show_header=True, header_style="bold cyan")
    table.add_column("Reviewer")
    table.add_column("State")
    table.add_column("Opinion")
    table.add_column("Reviewed At")
    for r in result.reviewers:
        style = _REVIEW_STYLE.get(r.state, "white")
        table.add_row(r.name, f"[{style}]{r.state}[/{style}]", r.review_opinion_status or "", r.review_time or "")
    console.print(table)
    console.print(" ".join(f"{k}={v}" for k, v in result.summary.items()))


@pr_group.command("review")
@click.argument("repository_id")
@click.argument("local_id")
@org_option
@click.option("--approve", is_flag=True, help="Approve the change request.")
@click.option("--request-changes", is_flag=True, help="Request changes.")
@click.option("--comment", "comment_only", is_flag=True, help="Leave a review comment without an opinion.")
@click.option("--opinion", default=None, help="Raw reviewOpinion value to send.")
@click.option("--body", "-b", default=None, help="Review comment.")
@body_file_option
@output_options
@click.pass_context
def review_cmd(
    ctx, repository_id, local_id, org, approve, request_changes, comment_only, opinion, body, body_file,
    output_format, json_flag, out_path,
):
    """Submit a review opinion."""
    fmt = resolve_format(output_format, json_flag, out_path)
    try:
        opinions = review_opinions(approve, request_changes, comment_only, opinion)
    except YxError as exc:
        raise click.UsageError(str(exc)) from exc
    review_body = _read_body(body, body_file)

    client, organization_id = _session(ctx, org)
    with cli_errors():
        attempt = submit_review(client, organization_id, repository_id, local_id, opinions, review_body)

    if fmt == "table":
        console.print(f"[green]Submitted review ({attempt.label}) on {repository_id}!{local_id}.[/green]")
        return
    if fmt == "tsv":
        emit(to_tsv(["local_id", "opinion"], [[local_id, attempt.label]]), out_path, "review")
        return
    emit(to_json({"opinion": attempt.label, "response": attempt.value}), out_path, "review")
