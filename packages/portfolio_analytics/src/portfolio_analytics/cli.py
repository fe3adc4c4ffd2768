"""Typer CLI for portfolio_analytics."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from portfolio_analytics.data_loader import FileRecordStore
from portfolio_analytics.engine import PortfolioEngine
from portfolio_analytics.exceptions import ConfigError, PortfolioError
from portfolio_analytics.filters import FacetFilters
from portfolio_analytics.logging_setup import setup_logging
from portfolio_analytics.settings import Settings

app = typer.Typer(help="Insurance portfolio analytics: metrics, evolution, cross-sell and churn risk.")
console = Console()

_LEVEL_STYLES = {"critical": "bold red", "warning": "yellow", "success": "green", "info": "cyan"}

DATA_DIR = typer.Option(None, "--data-dir", "-d", help="Directory holding the policy/registry workbooks")
CONFIG = typer.Option(None, "--config", "-c", help="Path to config.yaml")
VERBOSE = typer.Option(False, "--verbose", "-v", help="Verbose logging")
YEAR = typer.Option(None, "--year", help="Production year (repeatable)")
MONTH = typer.Option(None, "--month", help="Production month (repeatable)")
STATUS = typer.Option(None, "--status", help="Policy status (repeatable)")
ADVISOR = typer.Option(None, "--advisor", help="Advisor name (repeatable)")
ENTITY = typer.Option(None, "--entity", help="Entity name as registered (repeatable)")
CATEGORY = typer.Option(None, "--category", help="Product category (repeatable)")
PRODUCT = typer.Option(None, "--product", help="Product name (repeatable)")
LIMIT = typer.Option(20, "--limit", "-n", help="Rows to print per table")
AS_OF = typer.Option(
    None, "--as-of", formats=["%Y-%m-%d"], help="Reference date YYYY-MM-DD for ages and renewals (default: today)"
)


def _build_engine(
    data_dir: Path | None, config: Path | None, verbose: bool, as_of: datetime | None = None
) -> PortfolioEngine:
    setup_logging(verbose=verbose)
    overrides = {"data_dir": data_dir}
    if config and config.exists():
        settings = Settings.from_yaml(config, **overrides)
    else:
        settings = Settings.from_args(**{k: v for k, v in overrides.items() if v is not None})
    if settings.data_dir is None:
        raise ConfigError("No data directory given: pass --data-dir or set data_dir in the config")
    if settings.log_dir:
        setup_logging(settings.log_dir, verbose)
    return PortfolioEngine(FileRecordStore(settings.data_dir), settings, as_of.date() if as_of else None)


def _filters(
    year: list[str] | None,
    month: list[str] | None,
    status: list[str] | None,
    advisor: list[str] | None,
    entity: list[str] | None,
    category: list[str] | None,
    product: list[str] | None,
) -> FacetFilters:
    return FacetFilters.from_params(
        year=year,
        month=month,
        status=status,
        advisor=advisor,
        entity=entity,
        category=category,
        product=product,
    )


def _print_frame(df: pd.DataFrame, title: str, limit: int) -> None:
    table = Table(title=title, show_lines=False)
    for col in df.columns:
        justify = "right" if pd.api.types.is_numeric_dtype(df[col]) else "left"
        table.add_column(str(col), justify=justify)
    for row in df.head(limit).itertuples(index=False):
        table.add_row(*("" if v is None else str(v) for v in row))
    console.print(table)
    if len(df) > limit:
        console.print(f"  ... {len(df) - limit} more rows")


def _fail(error: PortfolioError) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {error}")
    return typer.Exit(code=1)


@app.command()
def metrics(
    data_dir: Path = DATA_DIR,
    config: Path = CONFIG,
    verbose: bool = VERBOSE,
    year: list[str] = YEAR,
    month: list[str] = MONTH,
    status: list[str] = STATUS,
    advisor: list[str] = ADVISOR,
    entity: list[str] = ENTITY,
    category: list[str] = CATEGORY,
    product: list[str] = PRODUCT,
    limit: int = LIMIT,
    as_of: datetime = AS_OF,
) -> None:
    """Totals, breakdowns and insights for the filtered portfolio."""
    try:
        engine = _build_engine(data_dir, config, verbose, as_of)
        result = engine.compute_metrics(_filters(year, month, status, advisor, entity, category, product))
    except PortfolioError as e:
        raise _fail(e) from e

    console.print("[bold]Portfolio Metrics[/bold]")
    for key, value in result.totals.items():
        console.print(f"  {key}: {value}")
    for breakdown in result.breakdowns:
        _print_frame(breakdown.df, breakdown.title, limit)
    for insight in result.insights:
        style = _LEVEL_STYLES.get(insight.level, "white")
        console.print(f"[{style}]{insight.title}[/{style}]: {insight.text}")


@app.command("entity-evolution")
def entity_evolution(
    entity_id: str = typer.Argument(..., help="Entity code or 'Name - Code' identifier"),
    data_dir: Path = DATA_DIR,
    config: Path = CONFIG,
    verbose: bool = VERBOSE,
    year: list[str] = YEAR,
    month: list[str] = MONTH,
    status: list[str] = STATUS,
    category: list[str] = CATEGORY,
    product: list[str] = PRODUCT,
    limit: int = LIMIT,
    as_of: datetime = AS_OF,
) -> None:
    """Monthly series and product mix for one entity."""
    try:
        engine = _build_engine(data_dir, config, verbose, as_of)
        filters = _filters(year, month, status, None, None, category, product)
        result = engine.compute_entity_evolution(entity_id, filters)
    except PortfolioError as e:
        raise _fail(e) from e
    _print_evolution(result, limit)


@app.command("advisor-evolution")
def advisor_evolution(
    advisor_id: str = typer.Argument(..., help="Advisor name"),
    data_dir: Path = DATA_DIR,
    config: Path = CONFIG,
    verbose: bool = VERBOSE,
    limit: int = LIMIT,
    as_of: datetime = AS_OF,
) -> None:
    """Monthly series and product mix for one advisor."""
    try:
        engine = _build_engine(data_dir, config, verbose, as_of)
        result = engine.compute_advisor_evolution(advisor_id)
    except PortfolioError as e:
        raise _fail(e) from e
    _print_evolution(result, limit)


def _print_evolution(result, limit: int) -> None:
    stock = result.metadata["stock"]
    console.print(f"[bold]{result.title}[/bold]")
    console.print(
        f"  In force: {stock['in_force']}  Suspended: {stock['suspended']}  Cancelled: {stock['cancelled']}"
    )
    _print_frame(result.df, "Monthly Series", limit)
    _print_frame(result.data["products"], "Product Mix", limit)


@app.command("cross-sell")
def cross_sell(
    data_dir: Path = DATA_DIR,
    config: Path = CONFIG,
    verbose: bool = VERBOSE,
    advisor_name: str = typer.Option(None, "--advisor", help="Restrict to one advisor's entities"),
    year: list[str] = YEAR,
    month: list[str] = MONTH,
    category: list[str] = CATEGORY,
    limit: int = LIMIT,
    as_of: datetime = AS_OF,
) -> None:
    """Sequential cross-sell rules (A bought before B)."""
    try:
        engine = _build_engine(data_dir, config, verbose, as_of)
        filters = _filters(year, month, None, None, None, category, None)
        result = engine.mine_cross_sell_rules(advisor=advisor_name, filters=filters)
    except PortfolioError as e:
        raise _fail(e) from e
    console.print(f"[bold]Cross-sell rules[/bold] -- {result.population} entities with dated purchases")
    _print_frame(result.to_frame(), "Rules", limit)


@app.command()
def churn(
    data_dir: Path = DATA_DIR,
    config: Path = CONFIG,
    verbose: bool = VERBOSE,
    year: list[str] = YEAR,
    month: list[str] = MONTH,
    status: list[str] = STATUS,
    advisor: list[str] = ADVISOR,
    entity: list[str] = ENTITY,
    category: list[str] = CATEGORY,
    product: list[str] = PRODUCT,
    limit: int = LIMIT,
    as_of: datetime = AS_OF,
) -> None:
    """Active policies ranked by cancellation risk."""
    try:
        engine = _build_engine(data_dir, config, verbose, as_of)
        result = engine.score_churn_risk(_filters(year, month, status, advisor, entity, category, product))
    except PortfolioError as e:
        raise _fail(e) from e
    console.print(
        f"[bold]Churn risk[/bold] -- baseline {result.baseline:.1%}, "
        f"{result.active} active, {result.high_risk} high risk"
    )
    _print_frame(result.to_frame(), "At-risk policies", limit)


@app.command()
def policies(
    data_dir: Path = DATA_DIR,
    config: Path = CONFIG,
    verbose: bool = VERBOSE,
    year: list[str] = YEAR,
    month: list[str] = MONTH,
    status: list[str] = STATUS,
    advisor: list[str] = ADVISOR,
    entity: list[str] = ENTITY,
    category: list[str] = CATEGORY,
    product: list[str] = PRODUCT,
    period: str = typer.Option(None, "--period", help="Production range YYYY-MM:YYYY-MM"),
    limit: int = LIMIT,
    as_of: datetime = AS_OF,
) -> None:
    """Policy listing with days alive."""
    try:
        engine = _build_engine(data_dir, config, verbose, as_of)
        filters = _filters(year, month, status, advisor, entity, category, product)
        result = engine.list_policies(filters, _parse_period(period) if period else None)
    except PortfolioError as e:
        raise _fail(e) from e
    console.print(
        f"[bold]Policies[/bold] -- {result.metadata['policies']} rows, premium {result.metadata['premium']}"
    )
    _print_frame(result.df, "Policy Listing", limit)


def _parse_period(text: str) -> tuple[int, int, int, int]:
    try:
        start, end = text.split(":")
        start_year, start_month = start.split("-")
        end_year, end_month = end.split("-")
        return int(start_year), int(start_month), int(end_year), int(end_month)
    except ValueError as e:
        raise typer.BadParameter(f"Expected YYYY-MM:YYYY-MM, got {text!r}") from e
