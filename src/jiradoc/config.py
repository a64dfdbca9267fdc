"""Configuration management — loads .env and validates with Pydantic."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings


def _find_project_root() -> Path:
    """Walk up from CWD to find directory containing pyproject.toml or .env."""
    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".env").exists():
            return parent
    return cwd


PROJECT_ROOT = _find_project_root()

# Load .env from project root (if it exists)
_env_path = PROJECT_ROOT / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


class Settings(BaseSettings):
    """All jiradoc configuration, loaded from env vars / .env file."""

    # ── Renderer ──────────────────────────────────────────────────────
    adf_max_depth: int = Field(
        default=20, description="Nesting depth after which rendered content is truncated"
    )
    adf_task_ids: bool = Field(
        default=True, description="Keep task localIds in rendered checkboxes ([x|id])"
    )
    adf_media_markers: bool = Field(
        default=False, description="Render media nodes as restorable <!-- jira:media --> markers"
    )

    # ── Parser ────────────────────────────────────────────────────────
    adf_quote_max_depth: int = Field(
        default=20, description="Blockquote nesting at which quoted text stays flat"
    )

    # ── Logging ───────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="", description="Log file path (empty = console only)")
    log_json: bool = Field(default=False, description="Output logs in JSON")

    # Use absolute env_file path so Pydantic-settings finds it regardless of CWD
    model_config = {
        "env_file": str(_env_path),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # ── Derived helpers ───────────────────────────────────────────────

    @property
    def render_options(self) -> dict[str, Any]:
        """Keyword arguments for ``renderer.to_lines``."""
        return {
            "max_depth": self.adf_max_depth,
            "task_ids": self.adf_task_ids,
            "media_markers": self.adf_media_markers,
        }

    @property
    def parse_options(self) -> dict[str, Any]:
        """Keyword arguments for ``parser.from_lines``."""
        return {"max_quote_depth": self.adf_quote_max_depth}

    def validate_converter_config(self) -> list[str]:
        """Validate converter and logging settings.

        Returns a list of error messages (empty = valid).
        """
        errors: list[str] = []
        if self.adf_max_depth < 1:
            errors.append(f"ADF_MAX_DEPTH must be at least 1, got: {self.adf_max_depth}")
        if self.adf_quote_max_depth < 1:
            errors.append(
                f"ADF_QUOTE_MAX_DEPTH must be at least 1, got: {self.adf_quote_max_depth}"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            errors.append(f"LOG_LEVEL is not a known level name: {self.log_level!r}")
        return errors

    def as_display_dict(self) -> dict[str, str]:
        """Return a dict of all config values for display."""
        return {
            "ADF_MAX_DEPTH": str(self.adf_max_depth),
            "ADF_TASK_IDS": str(self.adf_task_ids),
            "ADF_MEDIA_MARKERS": str(self.adf_media_markers),
            "ADF_QUOTE_MAX_DEPTH": str(self.adf_quote_max_depth),
            "LOG_LEVEL": self.log_level,
            "LOG_FILE": self.log_file or "(console only)",
            "LOG_JSON": str(self.log_json),
        }


# ── Singleton accessor ────────────────────────────────────────────────

_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Return a cached Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def reset_settings() -> None:
    """Invalidate the cached Settings so the next call to get_settings() reloads."""
    global _settings_instance
    _settings_instance = None
