"""
CLI interface for YoRC Stats.

Provides command-line access to ingestion and the distribution reports.
"""

import sys
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterator, Optional

import typer
from rich.console import Console
from rich.table import Table

from yorc_stats.config.loader import StatsConfig, load_config
from yorc_stats.core.aggregation import (
    count_all,
    count_by_category_per_month,
    count_by_day,
    count_by_month,
    count_by_year
)
from yorc_stats.core.errors import ConfigError, StorageError
from yorc_stats.core.ingestion import IngestionPipeline
from yorc_stats.core.logging_config import configure_logging
from yorc_stats.demo.seed_demo_data import seed_database
from yorc_stats.storage.repository import get_repository, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

SINCE_HELP = "Only count snapshots created after this date (YYYY-MM-DD)"
DAYS_HELP = "Only count snapshots from the last N days"


@dataclass
class CliState:
    """Options shared by every command."""
    config: StatsConfig
    db_path: str


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    db: Optional[str] = typer.Option(
        None,
        "--db",
        help="SQLite database file (overrides configuration)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """YoRC Stats CLI."""
    try:
        config = load_config(str(config_path) if config_path else None)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[red]Invalid configuration:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    configure_logging("DEBUG" if verbose else config.log_level)
    ctx.obj = CliState(config=config, db_path=db or config.database.path)

    if ctx.invoked_subcommand is None:
        console.print("YoRC Stats - Use --help to see available commands")


@app.command()
def init(ctx: typer.Context):
    """Initialize the YoRC Stats database."""
    try:
        initialize_schema(ctx.obj.db_path)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except StorageError as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def ingest(
    ctx: typer.Context,
    document: Path = typer.Argument(..., help="Path to a .yo-rc.json document"),
    login: Optional[str] = typer.Option(
        None,
        "--login",
        "-l",
        help="Attribute the snapshot to this user login"
    )
):
    """Ingest one generator configuration document."""
    try:
        raw_document = document.read_bytes()
    except OSError as e:
        console.print(f"[red]Cannot read document:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    pipeline = IngestionPipeline(
        get_repository(ctx.obj.db_path),
        current_login=lambda: login
    )
    with _storage_errors():
        result = pipeline.ingest(raw_document)

    if not result.succeeded:
        console.print(f"[red]Rejected:[/] {result.error}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Stored snapshot {result.record_id}")


@app.command()
def count(ctx: typer.Context):
    """Show the total number of stored snapshots."""
    with _storage_errors():
        total = count_all(get_repository(ctx.obj.db_path))
    console.print(f"Total snapshots: {total:,}")


@app.command()
def delete(
    ctx: typer.Context,
    record_id: int = typer.Argument(..., help="Id of the snapshot to delete")
):
    """Delete one snapshot by id."""
    with _storage_errors():
        deleted = get_repository(ctx.obj.db_path).delete(record_id)
    if not deleted:
        console.print(f"[yellow]No snapshot with id {record_id}[/]")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Deleted snapshot {record_id}")


@app.command()
def years(
    ctx: typer.Context,
    since: Optional[str] = typer.Option(None, "--since", "-s", help=SINCE_HELP),
    days: Optional[int] = typer.Option(None, "--days", "-d", help=DAYS_HELP)
):
    """Snapshots per year."""
    lower_bound = _resolve_since(ctx.obj, since, days)
    with _storage_errors():
        counts = count_by_year(get_repository(ctx.obj.db_path), lower_bound)
    _print_series("Snapshots per year", "Year", {c.date: c.count for c in counts}, "%Y")


@app.command()
def months(
    ctx: typer.Context,
    since: Optional[str] = typer.Option(None, "--since", "-s", help=SINCE_HELP),
    days: Optional[int] = typer.Option(None, "--days", "-d", help=DAYS_HELP)
):
    """Snapshots per month."""
    lower_bound = _resolve_since(ctx.obj, since, days)
    with _storage_errors():
        counts = count_by_month(get_repository(ctx.obj.db_path), lower_bound)
    _print_series("Snapshots per month", "Month", counts, "%Y-%m")


@app.command("days")
def days_command(
    ctx: typer.Context,
    since: Optional[str] = typer.Option(None, "--since", "-s", help=SINCE_HELP),
    days: Optional[int] = typer.Option(None, "--days", "-d", help=DAYS_HELP)
):
    """Snapshots per day."""
    lower_bound = _resolve_since(ctx.obj, since, days)
    with _storage_errors():
        counts = count_by_day(get_repository(ctx.obj.db_path), lower_bound)
    _print_series("Snapshots per day", "Day", counts, "%Y-%m-%d")


@app.command()
def categories(
    ctx: typer.Context,
    category: Optional[str] = typer.Option(
        None,
        "--category",
        "-k",
        help="Categorical field to break down, e.g. clientFramework"
    ),
    since: Optional[str] = typer.Option(None, "--since", "-s", help=SINCE_HELP),
    days: Optional[int] = typer.Option(None, "--days", "-d", help=DAYS_HELP)
):
    """Per-month breakdown of one categorical field."""
    lower_bound = _resolve_since(ctx.obj, since, days)
    category = category or ctx.obj.config.reporting.category
    try:
        with _storage_errors():
            distributions = count_by_category_per_month(
                get_repository(ctx.obj.db_path),
                lower_bound,
                category=category
            )
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    if not distributions:
        console.print("\n[dim]No snapshots found in this period.[/]")
        return

    values = sorted({value for d in distributions for value in d.values})
    table = Table(title=f"{category} per month")
    table.add_column("Month")
    for value in values:
        table.add_column(value or "(none)", justify="right")
    table.add_column("Total", justify="right")
    for distribution in distributions:
        table.add_row(
            distribution.date.strftime("%Y-%m"),
            *[str(distribution.values.get(value, 0)) for value in values],
            str(distribution.total)
        )
    console.print(table)


@app.command()
def seed(
    ctx: typer.Context,
    count: int = typer.Option(3000, "--count", "-n", help="Number of records to create"),
    seed: int = typer.Option(42, "--seed", help="Random seed")
):
    """Insert synthetic snapshots for development dashboards."""
    with _storage_errors():
        inserted = seed_database(get_repository(ctx.obj.db_path), count=count, seed=seed)
    console.print(f"[green]✓[/] Inserted {inserted:,} synthetic snapshots")


def _resolve_since(state: CliState, since: Optional[str], days: Optional[int]) -> datetime:
    """Turn --since / --days into a lower bound, defaulting to the configured window."""
    if since is not None and days is not None:
        console.print("[red]Error:[/] use either --since or --days, not both")
        sys.exit(EXIT_CODE_FAIL)
    if since is not None:
        try:
            return datetime.strptime(since, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError:
            console.print(f"[red]Error:[/] invalid date '{since}', expected YYYY-MM-DD")
            sys.exit(EXIT_CODE_FAIL)
    window = days if days is not None else state.config.reporting.window_days
    return datetime.now(timezone.utc) - timedelta(days=window)


@contextmanager
def _storage_errors() -> Iterator[None]:
    """Report storage failures and exit with a failing code."""
    try:
        yield
    except StorageError as e:
        if "no such table" in str(e).lower():
            console.print("\n[bold yellow]Database is not initialized[/]")
            console.print("Run `yorc-stats init` first.\n")
        else:
            console.print(f"[red]Storage error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)


def _print_series(title: str, label: str, series: Dict, date_format: str) -> None:
    """Display a date -> count series as a table."""
    if not series:
        console.print("\n[dim]No snapshots found in this period.[/]")
        return
    table = Table(title=title)
    table.add_column(label)
    table.add_column("Snapshots", justify="right")
    for bucket, value in series.items():
        table.add_row(bucket.strftime(date_format), f"{value:,}")
    console.print(table)


if __name__ == "__main__":
    app()
