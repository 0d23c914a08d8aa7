"""Bulk import command."""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from tradejournal.cli.loader import apply_log_level, load_trade_file, log_level_option
from tradejournal.cli.ui import create_import_progress, create_import_summary_table, pnl_markup
from tradejournal.engine import AppContext
from tradejournal.services.importing import ImportProgress, ImportStatus, JsonLinesBackend

console = Console()


@click.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--user", "-u", "user_id", required=True, help="User the trades belong to")
@click.option(
    "--store",
    "store_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path(".tradejournal"),
    show_default=True,
    help="Directory holding one .jsonl trade store per user",
)
@click.option("--chunk-size", type=click.IntRange(min=1), help="Persist chunk size (default: sized from memory budget)")
@click.option("--no-dedup", is_flag=True, help="Import records even if an identical trade exists")
@log_level_option
def import_command(
    file: Path,
    user_id: str,
    store_dir: Path,
    chunk_size: Optional[int],
    no_dedup: bool,
    log_level: Optional[str],
):
    """
    Import trades from a JSON or CSV file into a user's trade store.

    \b
    Examples:
        tradejournal import trades.csv --user alice
        tradejournal import export.json -u alice --store data/ --chunk-size 250
    """
    apply_log_level(log_level)
    records = load_trade_file(file)

    context = AppContext.create(backend=JsonLinesBackend(store_dir), scope=user_id)
    pipeline = context.pipeline
    overrides = {"deduplicate": not no_dedup}
    if chunk_size is not None:
        overrides["chunk_size"] = chunk_size
    pipeline.config = pipeline.config.model_copy(update=overrides)

    console.rule("[bold blue]TradeJournal Import[/bold blue]")
    console.print(f"  File: [yellow]{file}[/yellow] ({len(records):,} records)")
    console.print(f"  User: [magenta]{user_id}[/magenta]  Store: [dim]{store_dir}[/dim]")
    console.print()

    try:
        with create_import_progress(console) as progress:
            task = progress.add_task("initializing", total=100, counts="")

            def on_progress(update: ImportProgress) -> None:
                progress.update(
                    task,
                    completed=update.progress,
                    description=update.phase,
                    counts=f"{update.succeeded} ok, {update.failed} failed, {update.duplicate} dup",
                )

            result = asyncio.run(pipeline.run(records, user_id, filename=file.name, on_progress=on_progress))

        console.print()
        console.print(create_import_summary_table(result))
        for issue in result.issues:
            console.print(f"  [yellow]•[/yellow] {issue}")

        if result.status == ImportStatus.FAILED:
            console.print(f"[bold red]✗ Import failed:[/bold red] {result.error}")
            sys.exit(1)

        snapshot = context.store.get_statistics()
        console.print()
        console.print(
            f"[cyan]Journal:[/cyan] {snapshot.total_trades:,} trades, "
            f"total P&L {pnl_markup(snapshot.total_pnl)}, win rate {snapshot.win_rate}%"
        )
    finally:
        context.dispose()
