from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from .config import ImportSettings, ensure_workspace, load_settings
from .database import JsonContactDatabase
from .errors import ConfigError, ContactDatabaseError
from .importer import ImportReport, import_vcards
from .io import collect_import_sources, read_vcard_text
from .report import print_outcome, print_summary, records_table

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="vcard-import: import vCard 3.0 files into a contact database, merging with existing contacts.",
)
console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_settings(config: Path | None) -> ImportSettings:
    try:
        if config is not None:
            return load_settings(config)
        _, settings = ensure_workspace()
        return settings
    except ConfigError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=2)


def _open_database(path: Path, autosave: bool) -> JsonContactDatabase:
    try:
        return JsonContactDatabase.load(path, autosave=autosave)
    except ContactDatabaseError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)


# ── `import` command ───────────────────────────────────────────────────────────

@app.command("import")
def import_(
    files: list[Path] | None = typer.Argument(
        None, help="vCard files to import; '-' reads standard input. Default: every file in --dir.",
    ),
    import_dir: Path = typer.Option(
        Path("cards-import"), "--dir", "-d",
        help="Folder scanned for .vcf files when no files are given",
    ),
    db_path: Path | None = typer.Option(
        None, "--db", help="Contact database (JSON). Falls back to local/vcard-import.conf.",
    ),
    skip: str | None = typer.Option(
        None, "--skip", "-s", help="Regex of property types not copied into notes, e.g. '^X-'",
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Explicit TOML config file"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Import without saving the database"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Import vCards, creating new contacts or merging into matching ones.

    \b
    A card is merged into an existing contact when its name matches and
    either its organisation or one of its email addresses matches too.
    Everything without a dedicated field is kept in the contact's notes.
    """
    _setup_logging(verbose)
    settings = _load_settings(config)
    if skip is not None:
        settings.skip_pattern = skip
        try:
            settings.skip_regex()
        except ConfigError as exc:
            console.print(f"[bold red]{exc}[/bold red]")
            raise typer.Exit(code=2)

    sources = list(files) if files else collect_import_sources(import_dir)
    if not sources:
        console.print(Panel(
            f"[bold red]No vCard files found in [white]{import_dir}/[/white][/bold red]\n\n"
            "Drop exported .vcf files there or pass them as arguments.",
            title="Nothing to import",
            border_style="red",
        ))
        raise typer.Exit(code=2)

    path = db_path or Path(settings.database)
    db = _open_database(path, autosave=not dry_run)

    report = ImportReport()
    for source in sources:
        label = "<stdin>" if str(source) == "-" else str(source)
        console.print(f"\n[bold]Importing {label}…[/bold]")
        try:
            text = read_vcard_text(source)
        except OSError as exc:
            logger.warning("cannot read %s: %s", label, exc)
            console.print(f"  [red]Cannot read {label}: {exc}[/red]")
            continue
        part = import_vcards(text, db, settings, notify=print_outcome)
        report.outcomes.extend(part.outcomes)

    if dry_run:
        console.print("\n[yellow bold]Dry-run mode — database not saved.[/yellow bold]")
    print_summary(report, db_path=None if dry_run else str(path))

    if report.failed:
        raise typer.Exit(code=1)


# ── `list` command ─────────────────────────────────────────────────────────────

@app.command("list")
def list_(
    db_path: Path | None = typer.Option(None, "--db", help="Contact database (JSON)"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Explicit TOML config file"),
) -> None:
    """Show the contacts stored in the database."""
    settings = _load_settings(config)
    db = _open_database(db_path or Path(settings.database), autosave=False)
    records = db.all_records()
    if not records:
        console.print("[dim]The contact database is empty.[/dim]")
        return
    console.print(records_table(records))
    console.print(f"[dim]{len(records)} contact(s)[/dim]")


def main() -> None:
    app()


if __name__ == "__main__":
    app()
