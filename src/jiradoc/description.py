"""Description helpers — raw Jira issue JSON in, editable lines out, and back."""

from __future__ import annotations

import logging
from typing import Any

from jiradoc.config import Settings, get_settings
from jiradoc.parser import from_lines
from jiradoc.renderer import to_lines

logger = logging.getLogger(__name__)


def is_adf(value: Any) -> bool:
    """True for an ADF document root (Jira Cloud descriptions)."""
    return isinstance(value, dict) and value.get("type") == "doc"


def extract_description(issue: dict[str, Any]) -> Any:
    """Pull the raw description out of a Jira issue or a bare ``fields`` dict.

    Jira Server returns a plain string, Jira Cloud an ADF document, and an
    issue without a description has ``None``.
    """
    if not isinstance(issue, dict):
        return None
    fields = issue.get("fields")
    if isinstance(fields, dict):
        return fields.get("description")
    return issue.get("description")


def description_lines(issue: dict[str, Any], settings: Settings | None = None) -> list[str]:
    """Render an issue's description as editable buffer lines."""
    settings = settings or get_settings()
    raw = extract_description(issue)
    if raw is not None and not isinstance(raw, str) and not is_adf(raw):
        # Unknown format — render whatever structure it has
        kind = raw.get("type") if isinstance(raw, dict) else type(raw).__name__
        logger.debug("Description is not an ADF doc (type=%r)", kind)
    return to_lines(raw, **settings.render_options)


def build_description_update(lines: list[str], settings: Settings | None = None) -> dict[str, Any]:
    """Parse edited lines into the body of a Jira ``PUT /issue/{key}`` request."""
    settings = settings or get_settings()
    doc = from_lines(lines, **settings.parse_options)
    return {"fields": {"description": doc}}


def description_is_empty(doc: dict[str, Any]) -> bool:
    """True when a parsed document has no block content."""
    return not doc.get("content")
