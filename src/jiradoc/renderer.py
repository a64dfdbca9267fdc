"""Renderer — converts an ADF document into editable, Markdown-flavoured lines.

The walk is a dispatch table keyed by node type. Every handler receives the
node and an immutable ``RenderContext`` and returns a list of lines; the
containers (lists, quotes, expands) prefix their children's lines
themselves, so no indent string has to be threaded through the recursion.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from jiradoc.nodes import MAX_DEPTH, Mark, Node

logger = logging.getLogger(__name__)

ERROR_LINE = "[Error parsing description]"
TRUNCATED_LINE = "[content truncated: max depth exceeded]"

LIST_INDENT = "   "
EXPAND_INDENT = "  "


@dataclass(frozen=True)
class RenderContext:
    """Formatting state for one node: nesting depth plus list position."""

    depth: int = 0
    max_depth: int = MAX_DEPTH
    list_type: Optional[str] = None
    list_index: int = 1
    task_ids: bool = True
    media_markers: bool = False

    def descend(self, **changes: Any) -> RenderContext:
        """Return the context for a child node (list state resets unless given)."""
        changes.setdefault("list_type", None)
        changes.setdefault("list_index", 1)
        return replace(self, depth=self.depth + 1, **changes)


# ── Inline rendering ───────────────────────────────────────────────────


def apply_marks(text: str, marks: list[Mark] | None) -> str:
    """Wrap ``text`` in mark delimiters, in the order the marks are listed.

    >>> apply_marks("x", [Mark(type="strong"), Mark(type="em")])
    '_*x*_'
    """
    for mark in marks or []:
        if mark.type == "strong":
            text = f"*{text}*"
        elif mark.type == "em":
            text = f"_{text}_"
        elif mark.type == "code":
            text = f"`{text}`"
        elif mark.type == "strike":
            text = f"~{text}~"
        elif mark.type == "link":
            href = (mark.attrs or {}).get("href") or ""
            if href:
                text = f"{text} ({href})"
    return text


def format_date(timestamp: Any) -> str:
    """Format an ADF millisecond timestamp as ``YYYY-MM-DD`` (UTC)."""
    if timestamp is None or isinstance(timestamp, bool):
        return "[date]"
    try:
        seconds = float(timestamp) / 1000
        return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%d")
    except (TypeError, ValueError, OverflowError, OSError):
        return "[date]"


def _status_text(node: Node) -> str:
    return f"[{node.attr('text', 'STATUS')}]"


def render_inline(nodes: list[Node], ctx: RenderContext) -> str:
    """Flatten inline nodes into one string; hard breaks become ``\\n``."""
    parts: list[str] = []
    for node in nodes:
        node_type = node.type
        if node_type == "text":
            parts.append(apply_marks(node.text or "", node.marks))
        elif node_type == "hardBreak":
            parts.append("\n")
        elif node_type == "mention":
            parts.append(str(node.attr("text", "@user")))
        elif node_type == "emoji":
            parts.append(str(node.attr("shortName", ":emoji:")))
        elif node_type == "inlineCard":
            parts.append(str(node.attr("url", "")))
        elif node_type == "status":
            parts.append(_status_text(node))
        elif node_type == "date":
            parts.append(format_date(node.attr("timestamp")))
        elif node.content is not None:
            if ctx.depth >= ctx.max_depth:
                parts.append(TRUNCATED_LINE)
            else:
                parts.append(render_inline(node.content, ctx.descend()))
        elif node.text is not None:
            parts.append(node.text)
    return "".join(parts)


def _single_line(text: str) -> str:
    return text.replace("\n", " ")


# ── Block rendering ────────────────────────────────────────────────────


def render_node(node: Node, ctx: RenderContext) -> list[str]:
    """Render one node (and its subtree) into lines."""
    if ctx.depth > ctx.max_depth:
        logger.debug(
            "ADF nesting deeper than %d levels, truncating",
            ctx.max_depth,
            extra={"node_type": node.type, "depth": ctx.depth},
        )
        return [TRUNCATED_LINE]
    handler = _HANDLERS.get(node.type, _render_unknown)
    return handler(node, ctx)


def render_content(nodes: list[Node], ctx: RenderContext) -> list[str]:
    """Render a list of sibling nodes that all share ``ctx``."""
    lines: list[str] = []
    for node in nodes:
        lines.extend(render_node(node, ctx))
    return lines


def _render_children(node: Node, ctx: RenderContext) -> list[str]:
    return render_content(node.children, ctx.descend())


def _render_unknown(node: Node, ctx: RenderContext) -> list[str]:
    if not node.is_known:
        logger.debug(
            "Unrecognized ADF node type %r",
            node.type,
            extra={"node_type": node.type, "depth": ctx.depth},
        )
    if node.content is None:
        return []
    return _render_children(node, ctx)


def _render_stray_inline(node: Node, ctx: RenderContext) -> list[str]:
    # Inline node sitting directly in block content
    text = render_inline([node], ctx)
    return text.split("\n") if text else []


def _render_paragraph(node: Node, ctx: RenderContext) -> list[str]:
    text = render_inline(node.children, ctx.descend())
    if not text:
        return [""]
    return text.split("\n")


def _heading_level(value: Any) -> int:
    try:
        level = int(value)
    except (TypeError, ValueError):
        return 1
    return min(max(level, 1), 6)


def _render_heading(node: Node, ctx: RenderContext) -> list[str]:
    level = _heading_level(node.attr("level", 1))
    text = _single_line(render_inline(node.children, ctx.descend()))
    return ["", "#" * level + " " + text, ""]


def _render_bullet_list(node: Node, ctx: RenderContext) -> list[str]:
    lines: list[str] = []
    for item in node.children:
        lines.extend(render_node(item, ctx.descend(list_type="bullet")))
    return lines


def _render_ordered_list(node: Node, ctx: RenderContext) -> list[str]:
    try:
        start = int(node.attr("order", 1))
    except (TypeError, ValueError):
        start = 1
    lines: list[str] = []
    for index, item in enumerate(node.children, start):
        lines.extend(
            render_node(item, ctx.descend(list_type="ordered", list_index=index))
        )
    return lines


def _render_list_item(node: Node, ctx: RenderContext) -> list[str]:
    prefix = f"{ctx.list_index}. " if ctx.list_type == "ordered" else "- "
    lines: list[str] = []
    prefixed = False
    for line in _render_children(node, ctx):
        if not prefixed:
            if not line.strip():
                continue
            lines.append(prefix + line.lstrip())
            prefixed = True
        elif line.strip():
            lines.append(LIST_INDENT + line)
        else:
            lines.append("")
    if not prefixed:
        lines.append(prefix)
    return lines


def _render_code_block(node: Node, ctx: RenderContext) -> list[str]:
    lines = ["```" + str(node.attr("language", ""))]
    for child in node.children:
        if child.type != "text":
            continue
        code = (child.text or "").split("\n")
        if code[-1] == "":
            code.pop()
        lines.extend(code)
    lines.append("```")
    return lines


def _render_blockquote(node: Node, ctx: RenderContext) -> list[str]:
    return [
        f"> {line}" if line.strip() else ">"
        for line in _render_children(node, ctx)
    ]


def _render_rule(node: Node, ctx: RenderContext) -> list[str]:
    return ["---"]


def media_marker(node: Node) -> str:
    """Serialize a media node into the comment form the parser restores verbatim."""
    payload = json.dumps(
        node.model_dump(exclude_none=True),
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return f"<!-- jira:{node.type} {payload} -->"


def _render_media(node: Node, ctx: RenderContext) -> list[str]:
    if ctx.media_markers:
        return [media_marker(node)]
    if node.content:
        return _render_children(node, ctx)
    return [str(node.attr("alt", "[media]"))]


def _render_table(node: Node, ctx: RenderContext) -> list[str]:
    return [""] + _render_children(node, ctx) + [""]


def _cell_text(cell: Node, ctx: RenderContext) -> str:
    text = render_inline(cell.children, ctx)
    return _single_line(text).replace("|", "\\|")


def _render_table_row(node: Node, ctx: RenderContext) -> list[str]:
    cell_ctx = ctx.descend()
    cells = [_cell_text(cell, cell_ctx) for cell in node.children]
    return ["| " + " | ".join(cells) + " |"]


def _render_panel(node: Node, ctx: RenderContext) -> list[str]:
    panel_type = str(node.attr("panelType", "info"))
    return [f"[{panel_type.upper()}]"] + _render_children(node, ctx)


def _render_expand(node: Node, ctx: RenderContext) -> list[str]:
    lines = [f"▸ {node.attr('title', 'Details')}"]
    for line in _render_children(node, ctx):
        lines.append(EXPAND_INDENT + line if line.strip() else "")
    return lines


def _render_task_item(node: Node, ctx: RenderContext) -> list[str]:
    check = "x" if node.attr("state", "TODO") == "DONE" else " "
    local_id = node.attr("localId") if ctx.task_ids else None
    box = f"[{check}|{local_id}]" if local_id else f"[{check}]"
    text = _single_line(render_inline(node.children, ctx.descend()))
    return [f"{box} {text}"]


def _render_decision_item(node: Node, ctx: RenderContext) -> list[str]:
    prefix = "✓ " if node.attr("state", "DECIDED") == "DECIDED" else "? "
    text = _single_line(render_inline(node.children, ctx.descend()))
    return [prefix + text]


def _render_status(node: Node, ctx: RenderContext) -> list[str]:
    return [_status_text(node)]


def _render_date(node: Node, ctx: RenderContext) -> list[str]:
    return [format_date(node.attr("timestamp"))]


_HANDLERS: dict[str, Callable[[Node, RenderContext], list[str]]] = {
    "doc": _render_children,
    "paragraph": _render_paragraph,
    "heading": _render_heading,
    "bulletList": _render_bullet_list,
    "orderedList": _render_ordered_list,
    "listItem": _render_list_item,
    "codeBlock": _render_code_block,
    "blockquote": _render_blockquote,
    "rule": _render_rule,
    "media": _render_media,
    "mediaSingle": _render_media,
    "table": _render_table,
    "tableRow": _render_table_row,
    "tableCell": _render_children,
    "tableHeader": _render_children,
    "panel": _render_panel,
    "expand": _render_expand,
    "nestedExpand": _render_expand,
    "taskList": _render_children,
    "taskItem": _render_task_item,
    "decisionList": _render_children,
    "decisionItem": _render_decision_item,
    "status": _render_status,
    "date": _render_date,
    "text": _render_stray_inline,
    "mention": _render_stray_inline,
    "emoji": _render_stray_inline,
    "inlineCard": _render_stray_inline,
}


# ── Public API ─────────────────────────────────────────────────────────


def clean_lines(lines: list[str]) -> list[str]:
    """Collapse blank-line runs to at most two and trim blank edges.

    Whitespace-only lines count as blank and come back as ``""``.
    """
    result: list[str] = []
    blank_run = 0
    for line in lines:
        if line.strip():
            blank_run = 0
            result.append(line)
            continue
        blank_run += 1
        if blank_run <= 2:
            result.append("")

    while result and result[0] == "":
        result.pop(0)
    while result and result[-1] == "":
        result.pop()
    return result


def to_lines(
    adf: Any,
    *,
    max_depth: int = MAX_DEPTH,
    task_ids: bool = True,
    media_markers: bool = False,
) -> list[str]:
    """Convert an ADF document (or legacy plain string) into text lines.

    Args:
        adf: ADF document dict, a ``Node``, a plain string, or ``None``.
        max_depth: Nesting depth after which content is truncated.
        task_ids: Keep task ``localId`` values in the checkbox (``[x|id]``).
        media_markers: Emit media nodes as restorable comment markers.

    Returns:
        Display lines. Never raises; a failed walk gives a one-line sentinel.
    """
    if adf is None:
        return []
    if isinstance(adf, str):
        return clean_lines(adf.split("\n"))
    if not isinstance(adf, (dict, Node)):
        return []

    ctx = RenderContext(
        max_depth=max_depth,
        task_ids=task_ids,
        media_markers=media_markers,
    )
    try:
        root = adf if isinstance(adf, Node) else Node.from_adf(adf, max_depth=max_depth)
        lines = render_node(root, ctx)
    except Exception:
        logger.warning("Failed to render ADF description", exc_info=True)
        return [ERROR_LINE]
    return clean_lines(lines)
