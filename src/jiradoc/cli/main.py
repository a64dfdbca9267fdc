"""Main CLI commands — render, parse, check, config."""

from __future__ import annotations

import json
import sys
from itertools import zip_longest
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="jiradoc",
    help="jiradoc — convert Jira ADF descriptions to editable text and back.",
    add_completion=False,
    rich_markup_mode="rich",
)

# Converted output goes to stdout via typer.echo; status messages go here.
console = Console(stderr=True)


def _setup_logging(verbose: bool = False) -> None:
    from jiradoc.config import get_settings
    from jiradoc.logging_config import configure_logging

    settings = get_settings()
    level = "DEBUG" if verbose else settings.log_level
    configure_logging(level=level, log_file=settings.log_file or None, json_format=settings.log_json)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """jiradoc CLI root."""
    _setup_logging(verbose)


# ── input helpers ─────────────────────────────────────────────────────

def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        console.print(f"[bold red]❌ Cannot read {escape(path)}:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1)


def _load_json(path: str) -> Any:
    text = _read_source(path)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        console.print(f"[bold red]❌ Invalid JSON in {escape(path)}:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1)


def _split_lines(text: str) -> list[str]:
    lines = [line.rstrip("\r") for line in text.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


# ── render ────────────────────────────────────────────────────────────

@app.command()
def render(
    path: str = typer.Argument("-", help="ADF JSON file ('-' reads stdin)"),
    issue: bool = typer.Option(False, "--issue", help="Input is a raw Jira issue; render its description"),
) -> None:
    """Render an ADF document as editable text lines."""
    from jiradoc.config import get_settings
    from jiradoc.description import description_lines
    from jiradoc.renderer import to_lines

    settings = get_settings()
    data = _load_json(path)
    if issue:
        lines = description_lines(data, settings)
    else:
        lines = to_lines(data, **settings.render_options)

    for line in lines:
        typer.echo(line)


# ── parse ─────────────────────────────────────────────────────────────

@app.command()
def parse(
    path: str = typer.Argument("-", help="Text file ('-' reads stdin)"),
    payload: bool = typer.Option(False, "--payload", help="Wrap the document in a Jira update body"),
    indent: int = typer.Option(2, "--indent", help="JSON indent (0 for compact output)"),
) -> None:
    """Parse edited text lines into an ADF document."""
    from jiradoc.config import get_settings
    from jiradoc.description import build_description_update
    from jiradoc.parser import from_lines

    settings = get_settings()
    lines = _split_lines(_read_source(path))
    if payload:
        result = build_description_update(lines, settings)
    else:
        result = from_lines(lines, **settings.parse_options)

    typer.echo(json.dumps(result, indent=indent or None, ensure_ascii=False))


# ── check ─────────────────────────────────────────────────────────────

@app.command()
def check(
    path: str = typer.Argument("-", help="ADF JSON file ('-' reads stdin)"),
) -> None:
    """Render, parse and re-render an ADF document; report whether the text is stable.

    Adjacent paragraphs render as adjacent lines and parse back as one
    paragraph, so a document with several consecutive paragraphs is
    expected to be reported as changed (exit code 1).
    """
    from jiradoc.config import get_settings
    from jiradoc.parser import from_lines
    from jiradoc.renderer import to_lines

    settings = get_settings()
    data = _load_json(path)

    first = to_lines(data, **settings.render_options)
    second = to_lines(from_lines(first, **settings.parse_options), **settings.render_options)

    if first == second:
        console.print(Panel(
            f"✅ [bold green]Text form is stable[/bold green]\n\n"
            f"  Lines: {len(first)}",
            style="green",
        ))
        return

    table = Table(
        title="Round-trip differences",
        show_lines=True,
        header_style="bold cyan",
    )
    table.add_column("Line", style="bold yellow", no_wrap=True)
    table.add_column("Rendered")
    table.add_column("Re-rendered")

    for number, (before, after) in enumerate(zip_longest(first, second, fillvalue=""), 1):
        if before != after:
            table.add_row(str(number), escape(before), escape(after))

    console.print(table)
    console.print("[bold red]⚠️  Text form changes after a round trip[/bold red]")
    raise typer.Exit(1)


# ── config show ──────────────────────────────────────────────────────

@app.command(name="config")
def config_show() -> None:
    """Print resolved configuration."""
    from jiradoc.config import get_settings

    settings = get_settings()
    display = settings.as_display_dict()

    table = Table(
        title="jiradoc Configuration",
        show_lines=True,
        header_style="bold cyan",
    )
    table.add_column("Setting", style="bold yellow", no_wrap=True)
    table.add_column("Value")

    for key, val in display.items():
        table.add_row(key, val)

    console.print(table)

    errors = settings.validate_converter_config()
    if errors:
        console.print("\n[bold red]⚠️  Configuration issues:[/bold red]")
        for err in errors:
            console.print(f"  • {escape(err)}")
        raise typer.Exit(1)

    console.print("\n[bold green]✅ Configuration looks valid[/bold green]")
