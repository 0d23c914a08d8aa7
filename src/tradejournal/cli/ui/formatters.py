"""Rich table formatters for CLI output."""

from decimal import Decimal
from typing import Sequence

from rich.table import Table

from tradejournal.libraries.calculations import format_pnl
from tradejournal.libraries.performance import BreakdownRow, StatisticsSnapshot
from tradejournal.services.importing import ImportResult, ImportStatus


def pnl_markup(value: Decimal) -> str:
    """Signed money string colored by sign."""
    color = "green" if value > 0 else "red" if value < 0 else "white"
    return f"[{color}]{format_pnl(value)}[/{color}]"


def create_statistics_table(snapshot: StatisticsSnapshot) -> Table:
    """
    Create a Rich table with the headline statistics of a snapshot.

    Args:
        snapshot: Aggregated statistics

    Returns:
        Two-column Metric/Value table
    """
    table = Table(title="Performance Summary", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Account Balance", f"${snapshot.account_balance:,.2f}")
    table.add_row("Trades", f"{snapshot.total_trades} ({snapshot.closed_trades} closed, {snapshot.open_trades} open)")
    table.add_row(
        "Wins / Losses / BE", f"{snapshot.winning_trades} / {snapshot.losing_trades} / {snapshot.breakeven_trades}"
    )
    table.add_row("Win Rate", f"{snapshot.win_rate}%")
    table.add_row("Total P&L", pnl_markup(snapshot.total_pnl))
    table.add_row("Profit Factor", str(snapshot.profit_factor))
    table.add_row("Avg Win / Avg Loss", f"{format_pnl(snapshot.avg_win)} / {format_pnl(-snapshot.avg_loss)}")
    table.add_row("Expectancy", pnl_markup(snapshot.expectancy))
    table.add_row("Max Drawdown", f"{snapshot.max_drawdown}%")
    table.add_row("Sharpe / Sortino", f"{snapshot.sharpe_ratio} / {snapshot.sortino_ratio}")
    table.add_row("Streaks (win / loss)", f"{snapshot.max_win_streak} / {snapshot.max_loss_streak}")
    table.add_row("Kelly", f"{snapshot.kelly_criterion}")

    worth = snapshot.worth_score
    table.add_row("Worth Score", f"[bold]{worth.score}[/bold] ({worth.grade}, {worth.label})", style="magenta")
    return table


def create_breakdown_table(title: str, rows: Sequence[BreakdownRow]) -> Table:
    """
    Create a Rich table for a pair or setup breakdown.

    Args:
        title: Table title
        rows: Breakdown rows, already sorted by total P&L

    Returns:
        Configured Rich Table with one row per key
    """
    table = Table(title=title)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Trades", justify="right", style="yellow")
    table.add_column("Win Rate", justify="right")
    table.add_column("Total P&L", justify="right")
    table.add_column("Avg P&L", justify="right")
    table.add_column("Avg R:R", justify="right", style="dim")
    for row in rows:
        table.add_row(
            row.key,
            str(row.total_trades),
            f"{row.win_rate}%",
            pnl_markup(row.total_pnl),
            format_pnl(row.avg_pnl),
            str(row.avg_risk_reward),
        )
    return table


def create_import_summary_table(result: ImportResult) -> Table:
    """
    Create a Rich table summarizing an import.

    Args:
        result: Pipeline result

    Returns:
        Two-column Field/Value table
    """
    if result.status == ImportStatus.COMPLETED:
        status = "[green]✓ Completed[/green]"
    elif result.status == ImportStatus.CANCELLED:
        status = "[yellow]⊘ Cancelled[/yellow]"
    else:
        status = "[red]✗ Failed[/red]"

    table = Table(title=f"Import {result.job_id}")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")
    table.add_row("Status", status)
    table.add_row("Records", f"{result.total:,}")
    table.add_row("Imported", f"[green]{result.succeeded:,}[/green]")
    table.add_row("Failed", f"[red]{result.failed:,}[/red]" if result.failed else "0")
    table.add_row("Duplicates", f"[yellow]{result.duplicate:,}[/yellow]" if result.duplicate else "0")
    if result.verification is not None:
        verified = "[green]✓[/green]" if result.verification.verified else "[red]✗[/red]"
        table.add_row("Verified", f"{verified} {result.verification.actual} rows (expected {result.verification.expected})")
    table.add_row("Duration", f"{result.duration_seconds:.2f}s")
    return table
