"""Rich terminal output for resolved contacts."""

from __future__ import annotations

import re

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .colors import hsl_to_hex
from .models import ContactRecord

console = Console()

_HSL_RE = re.compile(r"hsl\((\d+),\s*(\d+)%,\s*(\d+)%\)")


def color_swatch(color: str) -> Text:
    """Render an ``hsl(...)`` color string as a colored block plus its text."""
    m = _HSL_RE.fullmatch(color)
    if not m:
        return Text(color)
    hex_color = hsl_to_hex(*(int(g) for g in m.groups()))
    swatch = Text()
    swatch.append("██", style=hex_color)
    swatch.append(f" {color}")
    return swatch


def _photo_label(photo_uri: str | None) -> str:
    if not photo_uri:
        return ""
    if photo_uri.startswith("data:"):
        return "(embedded)"
    return photo_uri


def display_contacts(results: list[tuple[str, ContactRecord]]) -> None:
    """Print one table row per ``(email, record)`` pair."""
    if not results:
        console.print("\n[yellow]No addresses given.[/yellow]")
        return

    table = Table(title="Contacts")
    table.add_column("Email", style="bold")
    table.add_column("Name")
    table.add_column("Color")
    table.add_column("Contact ID", style="dim")
    table.add_column("Identity ID", style="dim")
    table.add_column("Photo", overflow="fold")

    for email, record in results:
        table.add_row(
            email,
            record.name or "[dim]-[/dim]",
            color_swatch(record.color),
            record.contact_id or "",
            record.identity_id or "",
            _photo_label(record.photo_uri),
        )

    console.print(table)


def display_colors(values: list[tuple[str, str]]) -> None:
    table = Table(title="Colors")
    table.add_column("Input", style="bold")
    table.add_column("Color")
    for text, color in values:
        table.add_row(text, color_swatch(color))
    console.print(table)
