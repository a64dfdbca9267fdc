"""jiradoc — Jira ADF descriptions to editable text lines, and back."""

from jiradoc.parser import from_lines, parse_inline
from jiradoc.renderer import clean_lines, to_lines

__all__ = ["clean_lines", "from_lines", "parse_inline", "to_lines"]
