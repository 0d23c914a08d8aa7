"""Calculator commands for single trades."""

import sys

import click
from rich.console import Console

from tradejournal.cli.ui import pnl_markup
from tradejournal.libraries.calculations import (
    calculate_pips,
    calculate_position_size,
    calculate_risk_amount,
    calculate_risk_reward,
    try_calculate_pnl,
)
from tradejournal.libraries.instruments import normalize_symbol, resolve_instrument

console = Console()

direction_option = click.option(
    "--direction",
    "-d",
    default="buy",
    show_default=True,
    help="Trade direction (buy/sell, long/short)",
)


@click.group("calc")
def calc_group():
    """Trade calculators - P&L, risk/reward, position size and pips"""
    pass


@calc_group.command("pnl")
@click.option("--pair", "-p", required=True, help="Instrument symbol (e.g., EURUSD, XAUUSD)")
@click.option("--entry", required=True, help="Entry price")
@click.option("--exit", "exit_price", required=True, help="Exit price")
@click.option("--lots", default="1", show_default=True, help="Lot size")
@direction_option
def pnl_command(pair: str, entry: str, exit_price: str, lots: str, direction: str):
    """
    Profit or loss of a closed trade.

    Example:
        tradejournal calc pnl -p EURUSD --entry 1.2500 --exit 1.2580 --lots 1
    """
    result = try_calculate_pnl(entry, exit_price, lots, direction, pair)
    if result.is_err():
        console.print(f"[red]Error ({result.reason.value}): {result.message}[/red]")
        sys.exit(1)
    kind = resolve_instrument(pair).kind.value
    console.print(f"{normalize_symbol(pair)} [dim]({kind})[/dim] {direction} {lots} lot(s): {pnl_markup(result.unwrap())}")
    console.print(f"[dim]Pips: {calculate_pips(entry, exit_price, pair)}[/dim]")


@calc_group.command("rr")
@click.option("--entry", required=True, help="Entry price")
@click.option("--stop", required=True, help="Stop loss")
@click.option("--target", required=True, help="Take profit")
@direction_option
def rr_command(entry: str, stop: str, target: str, direction: str):
    """
    Risk/reward ratio of a planned trade.

    Example:
        tradejournal calc rr --entry 1.2500 --stop 1.2450 --target 1.2600
    """
    ratio = calculate_risk_reward(entry, stop, target, direction)
    if ratio == 0:
        console.print("[yellow]R:R is 0 - check that stop and target sit on the right sides of entry[/yellow]")
    else:
        console.print(f"R:R [bold]1:{ratio}[/bold]")


@calc_group.command("size")
@click.option("--pair", "-p", required=True, help="Instrument symbol")
@click.option("--balance", required=True, help="Account balance")
@click.option("--risk", required=True, help="Risk per trade in percent")
@click.option("--entry", required=True, help="Entry price")
@click.option("--stop", required=True, help="Stop loss")
@direction_option
def size_command(pair: str, balance: str, risk: str, entry: str, stop: str, direction: str):
    """
    Position size that risks a percentage of the account at the stop.

    Example:
        tradejournal calc size -p EURUSD --balance 10000 --risk 1 --entry 1.2500 --stop 1.2450
    """
    size = calculate_position_size(balance, risk, entry, stop, pair, direction)
    if size == 0:
        console.print("[red]Cannot size position - inputs must be positive and the stop on the losing side[/red]")
        sys.exit(1)
    risk_amount = calculate_risk_amount(entry, stop, size, pair)
    console.print(f"Position size: [bold]{size}[/bold] lot(s)  [dim](risk ${risk_amount:,.2f})[/dim]")


@calc_group.command("pips")
@click.option("--pair", "-p", required=True, help="Instrument symbol")
@click.option("--entry", required=True, help="Entry price")
@click.option("--exit", "exit_price", required=True, help="Exit price")
def pips_command(pair: str, entry: str, exit_price: str):
    """
    Price distance in pips.

    Example:
        tradejournal calc pips -p USDJPY --entry 150.00 --exit 150.50
    """
    console.print(f"{calculate_pips(entry, exit_price, pair)} pips")
