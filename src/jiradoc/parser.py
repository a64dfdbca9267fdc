"""Parser — rebuilds an ADF document from edited, Markdown-flavoured lines.

Single top-to-bottom scan. Each unconsumed line is tested against the block
starters in priority order; multi-line constructs (code fences, tables,
lists, task lists, quotes) look ahead and consume their run of lines.
Anything that matches nothing becomes paragraph text, so every input
produces a document.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from typing import Any

from jiradoc.nodes import MAX_DEPTH

logger = logging.getLogger(__name__)

# ── Line patterns ──────────────────────────────────────────────────────

BLANK_RE = re.compile(r"^\s*$")
RULE_RE = re.compile(r"^-{3,}\s*$")
MEDIA_RE = re.compile(r"^<!--\s*jira:(media\S*)\s+(.*?)\s*-->\s*$")
HEADING_RE = re.compile(r"^(#+)\s+(.*)$")
FENCE_OPEN_RE = re.compile(r"^```([\w+#.-]*)\s*$")
FENCE_CLOSE_RE = re.compile(r"^```\s*$")
TABLE_RE = re.compile(r"^\|")
TASK_WITH_ID_RE = re.compile(r"^\[([ x])\|([^\]]+)\]\s+(.*)$")
TASK_RE = re.compile(r"^\[([ x])\]\s+(.*)$")
BULLET_RE = re.compile(r"^-\s+(.*)$")
ORDERED_RE = re.compile(r"^(\d+)\.\s+(.*)$")
QUOTE_RE = re.compile(r"^>\s*(.*)$")

# ── Inline patterns ────────────────────────────────────────────────────

LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
INLINE_MARKS = (
    (re.compile(r"\*([^*]+)\*"), "strong"),
    (re.compile(r"_([^_]+)_"), "em"),
    (re.compile(r"`([^`]+)`"), "code"),
    (re.compile(r"~([^~]+)~"), "strike"),
)
MARK_CHARS_RE = re.compile(r"[*_`~\[]")
CELL_SPLIT_RE = re.compile(r"(?<!\\)\|")

INLINE_CARD_LABEL = "jira:inlineCard"


def generate_local_id() -> str:
    """Return a fresh task/list ``localId`` (UUID v4 text)."""
    return str(uuid.uuid4())


# ── Inline tokenizer ───────────────────────────────────────────────────


def _append_plain(content: list[dict[str, Any]], text: str) -> None:
    if not text:
        return
    last = content[-1] if content else None
    if last is not None and last.get("type") == "text" and "marks" not in last:
        last["text"] += text
    else:
        content.append({"type": "text", "text": text})


def parse_inline(text: str) -> list[dict[str, Any]]:
    """Tokenize one line of text into ADF inline nodes.

    Recognized at each position, in order: ``[text](url)``, ``*strong*``,
    ``_em_``, ``` `code` ```, ``~strike~``. A link labelled
    ``jira:inlineCard`` becomes an ``inlineCard`` node. Marks do not nest:
    a consumed span is not scanned again.
    """
    content: list[dict[str, Any]] = []
    pos = 0
    length = len(text)

    while pos < length:
        link = LINK_RE.match(text, pos)
        if link:
            label, url = link.group(1), link.group(2)
            if label == INLINE_CARD_LABEL:
                content.append({"type": "inlineCard", "attrs": {"url": url}})
            else:
                content.append({
                    "type": "text",
                    "text": label,
                    "marks": [{"type": "link", "attrs": {"href": url}}],
                })
            pos = link.end()
            continue

        for pattern, mark_type in INLINE_MARKS:
            match = pattern.match(text, pos)
            if match:
                content.append({
                    "type": "text",
                    "text": match.group(1),
                    "marks": [{"type": mark_type}],
                })
                pos = match.end()
                break
        else:
            next_mark = MARK_CHARS_RE.search(text, pos + 1)
            end = next_mark.start() if next_mark else length
            _append_plain(content, text[pos:end])
            pos = end

    return content


# ── Node builders ──────────────────────────────────────────────────────


def _inline_or_empty(text: str) -> list[dict[str, Any]]:
    return parse_inline(text) or [{"type": "text", "text": ""}]


def make_paragraph(text: str) -> dict[str, Any]:
    if text == "":
        return {"type": "paragraph", "content": []}
    return {"type": "paragraph", "content": parse_inline(text)}


def make_heading(level: int, text: str) -> dict[str, Any]:
    return {
        "type": "heading",
        "attrs": {"level": min(level, 6)},
        "content": parse_inline(text),
    }


def make_code_block(language: str, lines: list[str]) -> dict[str, Any]:
    node: dict[str, Any] = {
        "type": "codeBlock",
        "content": [{"type": "text", "text": "\n".join(lines)}],
    }
    if language:
        node["attrs"] = {"language": language}
    return node


def make_list(list_type: str, items: list[str], order: int | None = None) -> dict[str, Any]:
    node: dict[str, Any] = {
        "type": list_type,
        "content": [
            {"type": "listItem", "content": [make_paragraph(text)]}
            for text in items
        ],
    }
    if order is not None:
        node["attrs"] = {"order": order}
    return node


def make_task_list(items: list[tuple[bool, str | None, str]]) -> dict[str, Any]:
    """Build a taskList from ``(checked, local_id, text)`` tuples."""
    task_items = []
    for checked, local_id, text in items:
        task_items.append({
            "type": "taskItem",
            "attrs": {
                "localId": local_id or generate_local_id(),
                "state": "DONE" if checked else "TODO",
            },
            "content": _inline_or_empty(text),
        })
    return {
        "type": "taskList",
        "attrs": {"localId": generate_local_id()},
        "content": task_items,
    }


def parse_table_row(line: str) -> list[str]:
    """Split ``| a | b |`` into trimmed cell strings (``\\|`` stays literal)."""
    if not line.startswith("|"):
        return []
    body = re.sub(r"(?<!\\)\|\s*$", "", line[1:])
    return [cell.strip().replace("\\|", "|") for cell in CELL_SPLIT_RE.split(body)]


def make_table(rows: list[list[str]], header_row: bool) -> dict[str, Any]:
    table_rows = []
    for index, row in enumerate(rows):
        cell_type = "tableHeader" if header_row and index == 0 else "tableCell"
        table_rows.append({
            "type": "tableRow",
            "content": [
                {
                    "type": cell_type,
                    "attrs": {},
                    "content": [
                        {"type": "paragraph", "content": _inline_or_empty(cell)}
                    ],
                }
                for cell in row
            ],
        })
    return {"type": "table", "content": table_rows}


# ── Block scanning ─────────────────────────────────────────────────────


def _match_task(line: str) -> tuple[bool, str | None, str] | None:
    match = TASK_WITH_ID_RE.match(line)
    if match:
        return match.group(1) == "x", match.group(2), match.group(3)
    match = TASK_RE.match(line)
    if match:
        return match.group(1) == "x", None, match.group(2)
    return None


def _starts_block(line: str) -> bool:
    """True when ``line`` would open something other than paragraph text."""
    return bool(
        BLANK_RE.match(line)
        or RULE_RE.match(line)
        or MEDIA_RE.match(line)
        or HEADING_RE.match(line)
        or line.startswith("```")
        or TABLE_RE.match(line)
        or _match_task(line)
        or BULLET_RE.match(line)
        or ORDERED_RE.match(line)
        or QUOTE_RE.match(line)
    )


def _decode_media(raw: str) -> dict[str, Any] | None:
    try:
        node = json.loads(raw)
    except ValueError:
        logger.debug("Undecodable media marker: %.80s", raw)
        return None
    return node if isinstance(node, dict) else None


def _collect_list(lines: list[str], i: int, pattern: re.Pattern[str]) -> tuple[list[re.Match[str]], int]:
    """Consume list lines matching ``pattern``, skipping blank lines between items."""
    matches: list[re.Match[str]] = []
    n = len(lines)
    while i < n:
        while i < n and BLANK_RE.match(lines[i]):
            i += 1
        if i >= n:
            break
        match = pattern.match(lines[i])
        if not match:
            break
        matches.append(match)
        i += 1
    return matches, i


def _parse_blocks(lines: list[str], depth: int, max_quote_depth: int) -> list[dict[str, Any]]:
    content: list[dict[str, Any]] = []
    i = 0
    n = len(lines)

    while i < n:
        line = lines[i]

        # Leading blank lines
        if not content and BLANK_RE.match(line):
            i += 1
            continue

        if RULE_RE.match(line):
            content.append({"type": "rule"})
            i += 1
            continue

        media = MEDIA_RE.match(line)
        if media:
            node = _decode_media(media.group(2))
            content.append(node if node is not None else make_paragraph(line.strip()))
            i += 1
            continue

        heading = HEADING_RE.match(line)
        if heading:
            content.append(make_heading(len(heading.group(1)), heading.group(2)))
            i += 1
            continue

        fence = FENCE_OPEN_RE.match(line)
        if fence:
            code_lines: list[str] = []
            i += 1
            while i < n and not FENCE_CLOSE_RE.match(lines[i]):
                code_lines.append(lines[i])
                i += 1
            content.append(make_code_block(fence.group(1), code_lines))
            i += 1  # closing fence
            continue

        if TABLE_RE.match(line):
            rows: list[list[str]] = []
            while i < n and TABLE_RE.match(lines[i]):
                cells = parse_table_row(lines[i])
                if cells:
                    rows.append(cells)
                i += 1
            if rows:
                first = rows[0][0] if rows[0] else ""
                is_header = len(first) >= 2 and first.startswith("*") and first.endswith("*")
                content.append(make_table(rows, is_header))
            continue

        if _match_task(line):
            items = []
            while i < n:
                task = _match_task(lines[i])
                if task is None:
                    break
                items.append(task)
                i += 1
            content.append(make_task_list(items))
            continue

        if BULLET_RE.match(line):
            matches, i = _collect_list(lines, i, BULLET_RE)
            content.append(make_list("bulletList", [m.group(1) for m in matches]))
            continue

        ordered = ORDERED_RE.match(line)
        if ordered:
            matches, i = _collect_list(lines, i, ORDERED_RE)
            content.append(make_list(
                "orderedList",
                [m.group(2) for m in matches],
                order=int(ordered.group(1)),
            ))
            continue

        if QUOTE_RE.match(line):
            quoted: list[str] = []
            while i < n:
                match = QUOTE_RE.match(lines[i])
                if not match:
                    break
                quoted.append(match.group(1))
                i += 1
            if depth >= max_quote_depth:
                logger.debug(
                    "Blockquote nesting reached %d, keeping text flat",
                    max_quote_depth,
                    extra={"node_type": "blockquote", "depth": depth},
                )
                text = " ".join(q for q in quoted if q.strip())
                content.append({"type": "blockquote", "content": [make_paragraph(text)]})
            else:
                content.append({
                    "type": "blockquote",
                    "content": _parse_blocks(quoted, depth + 1, max_quote_depth),
                })
            continue

        if BLANK_RE.match(line):
            i += 1
            continue

        # Paragraph: this line plus any following plain lines
        para_lines = [line]
        i += 1
        while i < n and not _starts_block(lines[i]):
            para_lines.append(lines[i])
            i += 1
        content.append(make_paragraph(" ".join(para_lines)))

    return content


def from_lines(lines: list[str], *, max_quote_depth: int = MAX_DEPTH) -> dict[str, Any]:
    """Convert edited text lines into an ADF document.

    Args:
        lines: Buffer contents, one string per line, no trailing newlines.
        max_quote_depth: Blockquote nesting at which quoted text stops being
            parsed for further structure.

    Returns:
        ``{"type": "doc", "version": 1, "content": [...]}``. Never raises.
    """
    return {
        "type": "doc",
        "version": 1,
        "content": _parse_blocks(list(lines), 0, max_quote_depth),
    }
