"""ADF node models — a lenient, typed view over Jira's document JSON.

Jira hands us descriptions as plain JSON. We validate that JSON into
``Node``/``Mark`` models before walking it, so the renderer never has to
guess whether ``attrs`` is a dict or ``content`` is a list. Malformed
pieces are dropped or coerced, never rejected.

Reference: https://developer.atlassian.com/cloud/jira/platform/apis/document/structure/
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

# Maximum nesting the renderer will walk before emitting a truncation marker.
MAX_DEPTH = 20

# ── Node type names ───────────────────────────────────────────────────

BLOCK_TYPES = frozenset({
    "doc",
    "paragraph",
    "heading",
    "bulletList",
    "orderedList",
    "listItem",
    "codeBlock",
    "blockquote",
    "rule",
    "media",
    "mediaSingle",
    "table",
    "tableRow",
    "tableCell",
    "tableHeader",
    "panel",
    "expand",
    "nestedExpand",
    "taskList",
    "taskItem",
    "decisionList",
    "decisionItem",
    "status",
    "date",
})

INLINE_TYPES = frozenset({
    "text",
    "hardBreak",
    "mention",
    "emoji",
    "inlineCard",
    "status",
    "date",
})


def _objects_only(value: Any) -> list[Any] | None:
    if value is None or not isinstance(value, (list, tuple)):
        return None
    return [item for item in value if isinstance(item, (dict, BaseModel))]


def prune(value: Any, max_depth: int, depth: int = 0) -> Any:
    """Copy a raw ADF tree, emptying ``content`` below ``max_depth``.

    The renderer never reads past ``max_depth + 1`` levels, so nothing
    deeper needs validating. Nodes at the cut keep an empty ``content``
    list, which still renders as a truncation marker.
    """
    if not isinstance(value, dict):
        return value
    pruned = dict(value)
    content = value.get("content")
    if isinstance(content, (list, tuple)):
        if depth > max_depth:
            pruned["content"] = []
        else:
            pruned["content"] = [prune(child, max_depth, depth + 1) for child in content]
    return pruned


class Mark(BaseModel):
    """Inline formatting annotation attached to a text node."""

    model_config = ConfigDict(extra="allow")

    type: str = ""
    attrs: Optional[dict[str, Any]] = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("attrs", mode="before")
    @classmethod
    def _coerce_attrs(cls, value: Any) -> dict[str, Any] | None:
        return value if isinstance(value, dict) else None


class Node(BaseModel):
    """One element of an ADF tree, block or inline."""

    model_config = ConfigDict(extra="allow")

    type: str = ""
    attrs: Optional[dict[str, Any]] = None
    content: Optional[list[Node]] = None
    text: Optional[str] = None
    marks: Optional[list[Mark]] = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("attrs", mode="before")
    @classmethod
    def _coerce_attrs(cls, value: Any) -> dict[str, Any] | None:
        return value if isinstance(value, dict) else None

    @field_validator("content", "marks", mode="before")
    @classmethod
    def _drop_non_objects(cls, value: Any) -> list[Any] | None:
        return _objects_only(value)

    @field_validator("text", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (dict, list, tuple)):
            return None
        return str(value)

    @classmethod
    def from_adf(cls, value: Any, max_depth: int | None = None) -> Node | None:
        """Validate a raw JSON value into a ``Node``; non-mappings give ``None``.

        With ``max_depth`` the tree is pruned first (see ``prune``).
        """
        if not isinstance(value, dict):
            return None
        if max_depth is not None:
            value = prune(value, max_depth)
        return cls.model_validate(value)

    def attr(self, name: str, default: Any = None) -> Any:
        """Return ``attrs[name]``, treating a missing or null value as absent."""
        value = (self.attrs or {}).get(name)
        return default if value is None else value

    @property
    def children(self) -> list[Node]:
        return self.content or []

    @property
    def is_known(self) -> bool:
        return self.type in BLOCK_TYPES or self.type in INLINE_TYPES
