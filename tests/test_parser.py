"""Tests for parser — edited text lines back to ADF documents."""

import re

import pytest

from jiradoc.parser import from_lines, parse_inline, parse_table_row
from jiradoc.renderer import to_lines

UUID_V4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


def _blocks(lines, **kwargs):
    return from_lines(lines, **kwargs)["content"]


# ── Inline tokenizer ──────────────────────────────────────────────────


class TestParseInline:
    def test_plain_text(self):
        assert parse_inline("hello world") == [{"type": "text", "text": "hello world"}]

    def test_empty_text(self):
        assert parse_inline("") == []

    @pytest.mark.parametrize("source, mark, inner", [
        ("*bold*", "strong", "bold"),
        ("_italic_", "em", "italic"),
        ("`code`", "code", "code"),
        ("~gone~", "strike", "gone"),
    ])
    def test_single_marks(self, source, mark, inner):
        assert parse_inline(source) == [
            {"type": "text", "text": inner, "marks": [{"type": mark}]}
        ]

    def test_mixed_text(self):
        assert parse_inline("a *b* c") == [
            {"type": "text", "text": "a "},
            {"type": "text", "text": "b", "marks": [{"type": "strong"}]},
            {"type": "text", "text": " c"},
        ]

    def test_link(self):
        assert parse_inline("see [docs](https://example.com/docs)") == [
            {"type": "text", "text": "see "},
            {
                "type": "text",
                "text": "docs",
                "marks": [{"type": "link", "attrs": {"href": "https://example.com/docs"}}],
            },
        ]

    def test_inline_card(self):
        nodes = parse_inline("[jira:inlineCard](https://jira.example.com/browse/AB-1)")
        assert nodes == [
            {"type": "inlineCard", "attrs": {"url": "https://jira.example.com/browse/AB-1"}}
        ]

    def test_unmatched_delimiters_stay_plain(self):
        assert parse_inline("2 * 3 = 6 [not a link") == [
            {"type": "text", "text": "2 * 3 = 6 [not a link"}
        ]

    def test_marks_do_not_nest(self):
        assert parse_inline("_*x*_") == [
            {"type": "text", "text": "*x*", "marks": [{"type": "em"}]}
        ]


# ── Document shape ────────────────────────────────────────────────────


class TestDocument:
    def test_empty_input(self):
        assert from_lines([]) == {"type": "doc", "version": 1, "content": []}

    def test_leading_blank_lines_skipped(self):
        blocks = _blocks(["", "   ", "text"])
        assert blocks == [{"type": "paragraph", "content": [{"type": "text", "text": "text"}]}]

    def test_paragraph_lines_are_joined(self):
        blocks = _blocks(["line one", "line two", "", "line three"])
        assert len(blocks) == 2
        assert blocks[0]["content"] == [{"type": "text", "text": "line one line two"}]
        assert blocks[1]["content"] == [{"type": "text", "text": "line three"}]

    def test_paragraph_stops_at_block_starter(self):
        blocks = _blocks(["intro", "- item"])
        assert [b["type"] for b in blocks] == ["paragraph", "bulletList"]

    def test_broken_fence_is_paragraph_text(self):
        blocks = _blocks(["```not a fence", "text"])
        assert blocks == [{
            "type": "paragraph",
            "content": [{"type": "text", "text": "```not a fence text"}],
        }]


# ── Blocks ────────────────────────────────────────────────────────────


class TestBlocks:
    @pytest.mark.parametrize("line", ["---", "-----", "---   "])
    def test_rule(self, line):
        assert _blocks([line]) == [{"type": "rule"}]

    def test_heading(self):
        assert _blocks(["## Title"]) == [{
            "type": "heading",
            "attrs": {"level": 2},
            "content": [{"type": "text", "text": "Title"}],
        }]

    def test_heading_level_clamped(self):
        assert _blocks(["####### Title"])[0]["attrs"] == {"level": 6}

    def test_hash_without_space_is_text(self):
        assert _blocks(["#hashtag"])[0]["type"] == "paragraph"

    def test_code_block(self):
        blocks = _blocks(["```python", "x = *not bold*", "  y", "```", "after"])
        assert blocks[0] == {
            "type": "codeBlock",
            "attrs": {"language": "python"},
            "content": [{"type": "text", "text": "x = *not bold*\n  y"}],
        }
        assert blocks[1]["type"] == "paragraph"

    def test_code_block_without_language(self):
        assert "attrs" not in _blocks(["```", "x", "```"])[0]

    def test_unterminated_code_block(self):
        blocks = _blocks(["```", "a", "", "- b"])
        assert len(blocks) == 1
        assert blocks[0]["content"][0]["text"] == "a\n\n- b"

    def test_bullet_list(self):
        blocks = _blocks(["- one", "", "- two", "after"])
        assert blocks[0] == {"type": "bulletList", "content": [
            {"type": "listItem", "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "one"}]},
            ]},
            {"type": "listItem", "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "two"}]},
            ]},
        ]}
        assert blocks[1]["type"] == "paragraph"

    def test_ordered_list_keeps_start(self):
        blocks = _blocks(["3. first", "4. second"])
        assert blocks[0]["type"] == "orderedList"
        assert blocks[0]["attrs"] == {"order": 3}
        assert len(blocks[0]["content"]) == 2
        assert to_lines(from_lines(["3. first", "4. second"])) == ["3. first", "4. second"]

    def test_blockquote_is_parsed_recursively(self):
        blocks = _blocks(["> quoted *bold*", "> - item"])
        quote = blocks[0]
        assert quote["type"] == "blockquote"
        assert [b["type"] for b in quote["content"]] == ["paragraph", "bulletList"]
        assert quote["content"][0]["content"][1] == {
            "type": "text", "text": "bold", "marks": [{"type": "strong"}],
        }

    def test_blockquote_paragraphs(self):
        quote = _blocks(["> a", ">", "> b"])[0]
        assert [p["content"][0]["text"] for p in quote["content"]] == ["a", "b"]

    def test_nested_blockquote(self):
        quote = _blocks(["> > inner"])[0]
        assert quote["content"][0]["type"] == "blockquote"
        assert quote["content"][0]["content"][0]["content"][0]["text"] == "inner"

    def test_blockquote_depth_cap(self):
        quote = _blocks(["> > > deep"], max_quote_depth=1)[0]
        inner = quote["content"][0]
        assert inner["type"] == "blockquote"
        assert inner["content"] == [
            {"type": "paragraph", "content": [{"type": "text", "text": "> deep"}]}
        ]

    def test_media_marker(self):
        line = (
            '<!-- jira:mediaSingle {"type":"mediaSingle","attrs":{"layout":"center"},'
            '"content":[{"type":"media","attrs":{"id":"abc","type":"file","collection":"c"}}]} -->'
        )
        assert _blocks([line]) == [{
            "type": "mediaSingle",
            "attrs": {"layout": "center"},
            "content": [{"type": "media", "attrs": {"id": "abc", "type": "file", "collection": "c"}}],
        }]

    def test_bad_media_marker_is_text(self):
        blocks = _blocks(["<!-- jira:media {oops -->"])
        assert blocks[0]["type"] == "paragraph"


# ── Tables ────────────────────────────────────────────────────────────


class TestTables:
    def test_row_splitting(self):
        assert parse_table_row("| a | b |") == ["a", "b"]
        assert parse_table_row("| a | b") == ["a", "b"]
        assert parse_table_row("| a\\|b | c |") == ["a|b", "c"]

    def test_bold_first_cell_makes_header(self):
        table = _blocks(["| *Name* | *Role* |", "| Ada | Eng |"])[0]
        assert table["type"] == "table"
        header, row = table["content"]
        assert [c["type"] for c in header["content"]] == ["tableHeader", "tableHeader"]
        assert [c["type"] for c in row["content"]] == ["tableCell", "tableCell"]
        assert header["content"][0]["attrs"] == {}
        assert header["content"][0]["content"] == [{
            "type": "paragraph",
            "content": [{"type": "text", "text": "Name", "marks": [{"type": "strong"}]}],
        }]

    def test_plain_first_row_is_not_header(self):
        table = _blocks(["| a | b |"])[0]
        assert table["content"][0]["content"][0]["type"] == "tableCell"

    def test_empty_cell_gets_empty_text(self):
        table = _blocks(["|  | x |"])[0]
        cell = table["content"][0]["content"][0]
        assert cell["content"][0]["content"] == [{"type": "text", "text": ""}]


# ── Task lists ────────────────────────────────────────────────────────


class TestTasks:
    def test_task_list(self):
        task_list = _blocks(["[x|abc-123] done thing", "[ ] todo thing"])[0]
        assert task_list["type"] == "taskList"
        assert UUID_V4.match(task_list["attrs"]["localId"])
        done, todo = task_list["content"]
        assert done["attrs"] == {"localId": "abc-123", "state": "DONE"}
        assert done["content"] == [{"type": "text", "text": "done thing"}]
        assert todo["attrs"]["state"] == "TODO"
        assert UUID_V4.match(todo["attrs"]["localId"])

    def test_supplied_id_survives_round_trip(self):
        first = from_lines(["[x|abc-123] done thing"])
        lines = to_lines(first)
        assert lines == ["[x|abc-123] done thing"]
        second = from_lines(lines)
        assert second["content"][0]["content"][0]["attrs"]["localId"] == "abc-123"

    def test_fresh_tasks_get_new_ids(self):
        first = from_lines(["[x] done thing"])["content"][0]["content"][0]
        second = from_lines(["[x] done thing"])["content"][0]["content"][0]
        assert first["attrs"]["localId"] != second["attrs"]["localId"]

    def test_empty_task_text(self):
        item = _blocks(["[ ] "])[0]["content"][0]
        assert item["content"] == [{"type": "text", "text": ""}]


# ── Round trips ───────────────────────────────────────────────────────


class TestRoundTrip:
    def test_plain_paragraphs(self):
        lines = ["First paragraph.", "", "Second paragraph.", "", "Third."]
        assert to_lines(from_lines(lines)) == [line for line in lines if line.strip()]

    def test_plan_example(self):
        lines = ["## Plan", "", "- step one"]
        assert to_lines(from_lines(lines)) == lines

    def test_media_marker_round_trip(self):
        node = {"type": "mediaSingle", "attrs": {"layout": "center"}, "content": [
            {"type": "media", "attrs": {"id": "abc", "type": "file", "collection": "c"}},
        ]}
        doc = {"type": "doc", "version": 1, "content": [node]}
        lines = to_lines(doc, media_markers=True)
        assert from_lines(lines)["content"] == [node]

    def test_mixed_document_is_stable(self):
        lines = [
            "# Title",
            "",
            "Some *bold* and _em_ text.",
            "---",
            "```sh",
            "make test",
            "```",
            "> quoted",
            "",
            "| *A* | *B* |",
            "| 1 | 2 |",
        ]
        once = to_lines(from_lines(lines))
        assert to_lines(from_lines(once)) == once
