"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from forumkit.output.console import create_console, flag_style, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from forumkit.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    d = result.data
    if isinstance(d.get("topics"), list):
        return "\n".join(str(t["topic_id"]) for t in d["topics"])
    if isinstance(d.get("groups"), list):
        return "\n".join(str(f["forum_id"]) for g in d["groups"] for f in g["forums"])
    for key in ("forum", "topic", "post", "user"):
        entity = d.get(key)
        if isinstance(entity, dict) and f"{key}_id" in entity:
            return str(entity[f"{key}_id"])

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    label = Text("OK", style="fk.ok")
    op = Text(f"  {result.op}", style="fk.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="fk.key")
    if key.endswith("_id"):
        v = Text(str(value), style="fk.id")
    elif key in ("title", "name"):
        v = Text(str(value), style="fk.title")
    elif isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    if span_data.get("annotations"):
        extras = [f"{ak}={av}" for ak, av in span_data["annotations"].items()]
        line += f"  ({', '.join(extras)})"

    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _forum_table(forums: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="fk.id", no_wrap=True)
    table.add_column("Title", style="fk.title")
    table.add_column("Url name")
    table.add_column("Order", justify="right")
    table.add_column("Topics", justify="right")
    table.add_column("Posts", justify="right")
    if verbose:
        table.add_column("Last post", style="dim")

    for forum in forums:
        title = str(forum.get("title", ""))
        if forum.get("is_archived"):
            title += " (archived)"
        row = [
            str(forum.get("forum_id", "")),
            title,
            str(forum.get("url_name", "")),
            str(forum.get("sort_order", "")),
            str(forum.get("topic_count", 0)),
            str(forum.get("post_count", 0)),
        ]
        if verbose:
            row.append(f"{forum.get('last_post_time') or ''} {forum.get('last_post_name', '')}")
        table.add_row(*row)
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="fk.error")
    op = Text(f"  {result.op}", style="fk.op")
    sep = Text(" — ")
    console.print(label, op, sep, msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Entity renderers ──────────────────────────────────────────────────


def _render_entity(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a result carrying one forum, topic, post, or user."""
    _status_line(console, result)
    shown = {
        "forum": ("forum_id", "title", "url_name", "category_id", "sort_order", "is_archived"),
        "topic": ("topic_id", "forum_id", "title", "url_name", "reply_count"),
        "post": ("post_id", "topic_id", "name", "title", "is_edited"),
        "user": ("user_id", "name", "is_approved", "roles"),
    }
    for entity_key, keys in shown.items():
        entity = result.data.get(entity_key)
        if not isinstance(entity, dict):
            continue
        for key in keys:
            if key in entity:
                _field(console, key, entity[key])
    for key in ("post_id", "topic_link", "effects"):
        if key in result.data and verbose:
            _field(console, key, result.data[key])
    if verbose:
        _render_meta(console, result)


def _render_move(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    moved = result.data.get("forum_id")
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Order", justify="right")
    table.add_column("ID", style="fk.id")
    table.add_column("Title")
    for item in result.data.get("order", []):
        style = "fk.title" if item["forum_id"] == moved else ""
        table.add_row(
            str(item["sort_order"]), str(item["forum_id"]), Text(item["title"], style=style)
        )
    console.print(table)


def _render_categorized(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    console.print(Text(str(result.data.get("forum_title", "")), style="fk.title"))
    for group in result.data.get("groups", []):
        console.print()
        console.print(Text(group["title"], style="fk.op"))
        if group["forums"]:
            console.print(_forum_table(group["forums"], verbose=verbose))
        else:
            console.print(Text("  (no forums)", style="dim"))


def _render_permissions(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    context = result.data.get("context", {})
    for flag in ("can_view", "can_post", "can_moderate"):
        value = bool(context.get(flag))
        console.print(
            Text(f"  {flag}: ", style="fk.key"),
            Text("yes" if value else "no", style=flag_style(value)),
            sep="",
        )
    for reason in context.get("denial_reasons", []):
        console.print(Text(f"  - {reason}", style="fk.warning"))


def _render_recent(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    topics = result.data.get("topics", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="fk.id", no_wrap=True)
    table.add_column("Forum", justify="right")
    table.add_column("Title", style="fk.title")
    table.add_column("Replies", justify="right")
    table.add_column("Last post")
    for topic in topics:
        table.add_row(
            str(topic["topic_id"]),
            str(topic["forum_id"]),
            str(topic["title"]),
            str(topic.get("reply_count", 0)),
            f"{topic.get('last_post_name', '')} {topic.get('last_post_time') or ''}".strip(),
        )
    console.print(table)
    pager = result.data.get("pager", {})
    console.print(
        f"\n{result.data.get('count', len(topics))} topics, "
        f"page {pager.get('page_index', 1)} of {pager.get('page_count', 1)}"
    )


def _qa_label(node: dict[str, Any], *, accepted: bool = False) -> Text:
    post = node["post"]
    label = Text(f"#{post['post_id']} ", style="fk.id")
    label.append(str(post.get("name", "")), style="fk.title")
    label.append(f"  votes={post.get('votes', 0)}", style="fk.votes")
    if accepted:
        label.append("  accepted", style="fk.accepted")
    return label


def _render_qa(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    topic = result.data["topic"]
    question = result.data["question"]
    tree = Tree(Text(str(topic["title"]), style="fk.title"))
    q_branch = tree.add(Text("Question ", style="fk.op").append_text(_qa_label(question)))
    for comment in question.get("children", []):
        q_branch.add(f"#{comment['post_id']} {comment.get('name', '')}")
    answer_id = topic.get("answer_post_id")
    for answer in result.data.get("answers", []):
        branch = tree.add(_qa_label(answer, accepted=answer["post"]["post_id"] == answer_id))
        for comment in answer.get("children", []):
            branch.add(f"#{comment['post_id']} {comment.get('name', '')}")
    console.print(tree)


def _render_roles(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    _field(console, "forum_id", d.get("forum_id"))
    if "view_roles" in d:
        _field(console, "view_roles", ", ".join(d["view_roles"]) or "(everyone)")
        _field(console, "post_roles", ", ".join(d["post_roles"]) or "(everyone)")
    else:
        _field(console, "roles", ", ".join(d.get("roles", [])) or "(everyone)")


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Forums
    "get_forum": _render_entity,
    "create_forum": _render_entity,
    "update_forum": _render_entity,
    "move_forum_up": _render_move,
    "move_forum_down": _render_move,
    "get_categorized_forums": _render_categorized,
    "get_permission_context": _render_permissions,
    "get_recent_topics": _render_recent,
    "modify_forum_roles": _render_roles,
    "get_forum_view_roles": _render_roles,
    "get_forum_post_roles": _render_roles,
    "map_topic_for_qa": _render_qa,
    # Authoring
    "post_new_topic": _render_entity,
    "post_reply": _render_entity,
    "edit_post": _render_entity,
    # Users and topics
    "create_user": _render_entity,
    "get_user": _render_entity,
    "get_topic": _render_entity,
    "get_post": _render_entity,
}
