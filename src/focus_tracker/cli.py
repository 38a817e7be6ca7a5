"""Command-line interface for the focus tracker."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

import typer

from .categories import CategoryStoreError
from .config import TrackerSettings
from .dates import date_id_for
from .ledger import ActivityLedger
from .paths import get_data_dir
from .preferences import PreferencesError
from .server_runner import run_dashboard

app = typer.Typer(help="Usage statistics from focus-tracker day logs.")

_DATA_DIR_HELP = "Directory holding day logs and preferences.json."


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _parse_day(value: Optional[str], option: str) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise typer.BadParameter("expected YYYY-MM-DD", param_hint=option) from exc


def _parse_filters(values: List[str]) -> dict[str, str]:
    filters: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter("expected KEY=VALUE", param_hint="--filter")
        filters[key.strip()] = value
    return filters


def _open_ledger(
    data_dir: Optional[Path], settings: Optional[TrackerSettings] = None
) -> ActivityLedger:
    return ActivityLedger.from_data_dir(data_dir or get_data_dir(), settings=settings)


def _run_store_operation(operation, *args) -> None:
    try:
        operation(*args)
    except (CategoryStoreError, PreferencesError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def summary(
    group: Optional[List[str]] = typer.Option(
        None,
        "--group",
        "-g",
        help="Dimension to group by (date, week, month, year, day_of_week, "
        "is_weekend, category, url, exe_path, name). Repeatable.",
    ),
    start: Optional[str] = typer.Option(
        None, "--start", help="First day (YYYY-MM-DD). Defaults to the history start."
    ),
    end: Optional[str] = typer.Option(
        None, "--end", help="Last day (YYYY-MM-DD). Defaults to today."
    ),
    filters: Optional[List[str]] = typer.Option(
        None,
        "--filter",
        "-f",
        help="Extra filter as KEY=VALUE (category, url, exe_path, name, is_weekend).",
    ),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Rows to show."),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", path_type=Path, help=_DATA_DIR_HELP),
    gap_seconds: float = typer.Option(
        15.0, "--gap", min=1.0, help="Seconds between samples treated as the tracker being off."
    ),
    idle_seconds: float = typer.Option(
        120.0, "--idle-grace", min=1.0, help="Seconds of inactivity that end an activity."
    ),
) -> None:
    """Aggregate tracked time for a date range."""
    from .reporting import print_aggregations

    start_day = _parse_day(start, "--start")
    end_day = _parse_day(end, "--end")
    if start_day and end_day and end_day < start_day:
        raise typer.BadParameter("must be on or after --start", param_hint="--end")

    query = _parse_filters(filters or [])
    if start_day:
        query["start_date"] = str(date_id_for(start_day))
    if end_day:
        query["end_date"] = str(date_id_for(end_day))

    settings = TrackerSettings.from_seconds(gap_seconds, idle_seconds, history_start=start_day)
    ledger = _open_ledger(data_dir, settings)
    ledger.load_history(start_day, end_day)
    groupers = list(group or ["category"])
    try:
        results = ledger.get_aggregations(groupers, query)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    print_aggregations(results, groupers, limit=limit)

    for date_id, message in sorted(ledger.day_errors.items()):
        typer.echo(f"Warning: day {date_id} unreadable: {message}", err=True)


@app.command()
def categories(
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", path_type=Path, help=_DATA_DIR_HELP),
) -> None:
    """List categories in display order with their members."""
    response = _open_ledger(data_dir).get_categories()
    for name in response.order:
        items = response.categories[name]
        typer.echo(name)
        for app_name in items.apps:
            typer.echo(f"  app:  {app_name}")
        for site in items.sites:
            typer.echo(f"  site: {site}")


@app.command("create-category")
def create_category(
    name: str = typer.Argument(..., help="Name of the new category."),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", path_type=Path, help=_DATA_DIR_HELP),
) -> None:
    """Add an empty category at the end of the display order."""
    _run_store_operation(_open_ledger(data_dir).create_category, name)
    typer.echo(f"Created category {name}.")


@app.command("set-category")
def set_category(
    identifier: str = typer.Argument(..., help="Executable name or site identity."),
    category: str = typer.Argument("", help="Target category; omit to uncategorize."),
    is_app: bool = typer.Option(False, "--app", help="Treat the identifier as an application."),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", path_type=Path, help=_DATA_DIR_HELP),
) -> None:
    """Assign an application or site to a category."""
    _run_store_operation(_open_ledger(data_dir).set_item_category, identifier, category, is_app)
    if category:
        typer.echo(f"{identifier} -> {category}")
    else:
        typer.echo(f"{identifier} uncategorized")


@app.command()
def reorder(
    order: List[str] = typer.Argument(..., help="Every category name, in the new order."),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", path_type=Path, help=_DATA_DIR_HELP),
) -> None:
    """Change the display order of categories."""
    _run_store_operation(_open_ledger(data_dir).reorder_categories, order)
    typer.echo(", ".join(order))


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", path_type=Path, help=_DATA_DIR_HELP),
    gap_seconds: float = typer.Option(
        15.0, "--gap", min=1.0, help="Seconds between samples treated as the tracker being off."
    ),
    idle_seconds: float = typer.Option(
        120.0, "--idle-grace", min=1.0, help="Seconds of inactivity that end an activity."
    ),
    open_browser: bool = typer.Option(
        False,
        "--open-browser/--no-open-browser",
        help="Open the interactive API docs in your default browser.",
    ),
) -> None:
    """Serve the query API while loading the day-log history in the background."""
    run_dashboard(
        host=host,
        port=port,
        data_dir=data_dir or get_data_dir(),
        settings=TrackerSettings.from_seconds(gap_seconds, idle_seconds),
        open_browser=open_browser,
    )
