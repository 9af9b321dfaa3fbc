"""
CLI interface for the AI Writing Assistant.

Initializes the ledger, runs the API server and reports usage.
"""

import sqlite3
import sys
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from ai_writing_assistant.api.app import create_app
from ai_writing_assistant.config.loader import load_config
from ai_writing_assistant.core.features import FeatureType
from ai_writing_assistant.core.log import setup_logging
from ai_writing_assistant.core.quota import CAPABILITIES, UNLIMITED
from ai_writing_assistant.storage.repository import PERIODS, UsageLedger, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to YAML configuration file",
)


def _load(config_path: Optional[str]):
    try:
        return load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """AI Writing Assistant CLI."""
    if ctx.invoked_subcommand is None:
        console.print("AI Writing Assistant - Use --help to see available commands")


@app.command()
def init(config_path: Optional[str] = ConfigOption):
    """Initialize the usage ledger database."""
    config = _load(config_path)
    try:
        initialize_schema(config.storage.db_path)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except sqlite3.Error as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def serve(
    config_path: Optional[str] = ConfigOption,
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
):
    """Run the HTTP API."""
    config = _load(config_path)
    setup_logging(config.log.level, config.log.file)
    uvicorn.run(create_app(config), host=host, port=port, log_config=None)


@app.command()
def stats(
    user_id: str = typer.Argument(..., help="User to report on"),
    period: str = typer.Option("day", "--period", help="day, week or month"),
    config_path: Optional[str] = ConfigOption,
):
    """Show usage statistics for a user."""
    if period not in PERIODS:
        console.print(f"[red]Error:[/] period must be one of: {', '.join(PERIODS)}")
        sys.exit(EXIT_CODE_FAIL)

    config = _load(config_path)
    ledger = UsageLedger(db_path=config.storage.db_path, pricing=config.pricing)
    try:
        result = ledger.get_stats(user_id, period)
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            console.print("\n[bold yellow]No usage data found[/]")
            console.print("Run `ai-writing-assistant init` to initialize the database\n")
            sys.exit(EXIT_CODE_PASS)
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"\n[bold]AI usage for {user_id} ({period})[/bold]")
    console.print("-" * 40)
    console.print(f"Total requests: {result.total_requests}")
    console.print(f"Total tokens: {result.total_tokens:,}")
    console.print(f"Cost: ${result.cost_usd:,.6f}")

    if result.features:
        table = Table(title="Requests by feature")
        table.add_column("Feature")
        table.add_column("Requests", justify="right")
        for feature, count in sorted(result.features.items()):
            table.add_row(feature, str(count))
        console.print(table)


@app.command()
def limits(
    tier: Optional[str] = typer.Option(None, "--tier", "-t", help="Show a single tier"),
    config_path: Optional[str] = ConfigOption,
):
    """Show daily quotas and capabilities per subscription tier."""
    config = _load(config_path)
    tiers = config.quotas.tiers
    names = [config.quotas.normalize_tier(tier)] if tier else list(tiers)

    table = Table(title="Daily limits")
    table.add_column("Feature")
    for name in names:
        table.add_column(name, justify="right")
    for feature in FeatureType:
        row = []
        for name in names:
            cap = tiers[name].limit_for(feature)
            row.append("unlimited" if cap == UNLIMITED else str(cap))
        table.add_row(feature.value, *row)
    for capability in CAPABILITIES:
        table.add_row(
            capability,
            *("yes" if tiers[name].has_capability(capability) else "no" for name in names),
        )
    console.print(table)


if __name__ == "__main__":
    app()
