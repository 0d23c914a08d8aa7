"""Statistics command."""

import json
import sys
from decimal import Decimal
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from tradejournal.cli.loader import apply_log_level, load_trade_file, log_level_option
from tradejournal.cli.ui import create_breakdown_table, create_statistics_table
from tradejournal.engine import AppContext

console = Console()


@click.command("stats")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--balance", "-b", type=str, help="Account balance (default: configured starting balance)")
@click.option("--json", "as_json", is_flag=True, help="Print the full statistics snapshot as JSON")
@log_level_option
def stats_command(file: Path, balance: Optional[str], as_json: bool, log_level: Optional[str]):
    """
    Compute performance statistics for a trade file.

    FILE is a JSON array of trades (or an export payload) or a CSV file.

    \b
    Examples:
        tradejournal stats trades.csv
        tradejournal stats trades.json --balance 25000 --json
    """
    apply_log_level(log_level)
    records = load_trade_file(file)

    context = AppContext.create()
    try:
        store = context.store
        store.set_trades(records, Decimal(balance) if balance else None)
        snapshot = store.get_statistics()

        if as_json:
            payload = snapshot.model_dump(mode="json")
            payload["quarantined"] = len(store.quarantined)
            click.echo(json.dumps(payload, indent=2))
            return

        console.print()
        console.print(create_statistics_table(snapshot))
        if snapshot.pair_performance:
            console.print(create_breakdown_table("By Pair", snapshot.pair_performance))
        if snapshot.setup_performance:
            console.print(create_breakdown_table("By Setup", snapshot.setup_performance))

        if store.quarantined:
            console.print(f"[yellow]{len(store.quarantined)} record(s) skipped:[/yellow]")
            for index, err in store.quarantined[:10]:
                console.print(f"  [dim]#{index + 1}[/dim] {err.reason.value}: {err.message}")
        console.print()
    except ArithmeticError as e:
        console.print(f"[bold red]✗ Invalid balance:[/bold red] {e}")
        sys.exit(1)
    finally:
        context.dispose()
