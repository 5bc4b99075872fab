from __future__ import annotations

from rich.columns import Columns
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .importer import CREATED, FAILED, UPDATED, CardOutcome, ImportReport
from .model import ContactRecord

console = Console()

# ── Palette ────────────────────────────────────────────────────────────────────
_ACCENT  = "#4d9fff"
_GREEN   = "#3ecf8e"
_RED     = "#f05c5c"
_TEXT    = "#c9d1e0"
_MID     = "#8896af"
_DIM     = "#546075"
_BORDER  = "#2a3347"

_ICONS = {
    CREATED: ("+", _GREEN),
    UPDATED: ("⟐", _ACCENT),
    FAILED:  ("✗", _RED),
}


def format_outcome(outcome: CardOutcome) -> Text:
    """One status line per processed card."""
    icon, colour = _ICONS.get(outcome.outcome, ("·", _DIM))
    row = Text()
    row.append(f"  {icon} ", style=f"bold {colour}")
    row.append(f"{outcome.name[:38]:<38}", style=_TEXT)
    row.append(f"  {outcome.outcome}", style=f"dim {colour}")
    if outcome.tier:
        row.append(f" ({outcome.tier})", style=f"dim {_MID}")
    if outcome.record_id:
        row.append(f"  {outcome.record_id[:8]}", style=f"dim {_DIM}")
    if outcome.message:
        row.append(f"  {outcome.message}", style=f"dim {_RED}")
    return row


def print_outcome(outcome: CardOutcome) -> None:
    console.print(format_outcome(outcome))


def _stat_panel(value: str, label: str, colour: str) -> Panel:
    body = Text()
    body.append(f"{value}\n", style=f"bold {colour}")
    body.append(label, style=f"dim {_DIM}")
    return Panel(body, border_style=_BORDER, padding=(0, 2), expand=True)


def print_summary(report: ImportReport, db_path: str | None = None) -> None:
    counts = report.counts()

    console.print()
    console.print(Text("  IMPORT SUMMARY", style=f"dim {_DIM}"))
    console.print()
    console.print(Columns([
        _stat_panel(str(counts[CREATED]), "contacts created", _GREEN),
        _stat_panel(str(counts[UPDATED]), "contacts updated", _ACCENT),
        _stat_panel(str(counts[FAILED]),  "cards failed",     _RED if counts[FAILED] else _TEXT),
    ], equal=True, expand=True))
    console.print()

    if db_path:
        body = Text()
        if counts[FAILED]:
            body.append("!  Saved with failures\n", style=f"bold {_RED}")
        else:
            body.append("✓  Saved successfully\n", style=f"bold {_GREEN}")
        body.append(db_path, style=f"dim {_MID}")
        console.print(Panel(body, border_style=_RED if counts[FAILED] else _GREEN, padding=(0, 2)))


def records_table(records: list[ContactRecord]) -> Table:
    table = Table(show_lines=True)
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Company")
    table.add_column("Emails")
    table.add_column("Phones")
    table.add_column("Notes")
    for r in sorted(records, key=lambda r: (r.lastname.lower(), r.firstname.lower())):
        aka = f"\n[dim]aka {escape(', '.join(r.aka))}[/dim]" if r.aka else ""
        table.add_row(
            r.id[:8],
            escape(r.fullname) + aka,
            escape(r.company or ""),
            escape("\n".join(r.net)),
            escape("\n".join(f"{p.label}: {p.number}" for p in r.phones)),
            escape("\n".join(f"{k}: {v}" for k, v in r.notes)),
        )
    return table
