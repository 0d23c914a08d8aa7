"""Trade P&L, pips, risk/reward and position sizing.

Pure functions over prices, lot sizes and instrument conventions. All
monetary results are Decimal rounded half-up; all functions accept numbers
or formatted numeric strings (see parsing.parse_financial_number).

Philosophy:
- Pure functions: same inputs always produce same outputs
- Never raise on bad input: degenerate inputs produce 0
- Instrument arithmetic comes from one place (resolve_instrument)

Usage:
    >>> from tradejournal.libraries.calculations import calculate_pnl, calculate_risk_reward
    >>> calculate_pnl("1.2500", "1.2580", "1.0", "buy", "EURUSD")
    Decimal('800.00')
    >>> calculate_risk_reward("1.2500", "1.2450", "1.2600", "buy")
    Decimal('2.00')
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from tradejournal.libraries.calculations.parsing import Direction, parse_financial_number
from tradejournal.libraries.calculations.results import Err, ErrorReason, Ok, Result
from tradejournal.libraries.instruments import InstrumentKind, is_usd_base_pair, resolve_instrument
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()

ZERO = Decimal("0")


def _round(value: Decimal, places: str = "0.01") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


def match_direction(direction: Any) -> Direction | None:
    """Loose direction match used by calculators: anything containing buy/long or sell/short."""
    if isinstance(direction, Direction):
        return direction
    text = str(direction or "").strip().lower()
    if "buy" in text or text == "long":
        return Direction.BUY
    if "sell" in text or text == "short":
        return Direction.SELL
    return None


def calculate_pips(entry: Any, exit: Any, symbol: Any) -> Decimal:
    """
    Price movement in pips: (exit - entry) / pip_value, rounded to 1 decimal.

    Returns 0 if either price is 0 or missing.

    Example:
        >>> calculate_pips("1.2500", "1.2580", "EURUSD")
        Decimal('80.0')
    """
    entry_price = parse_financial_number(entry)
    exit_price = parse_financial_number(exit)
    if entry_price == ZERO or exit_price == ZERO:
        return Decimal("0.0")

    spec = resolve_instrument(symbol)
    return _round((exit_price - entry_price) / spec.pip_value, "0.1")


def try_calculate_pnl(entry: Any, exit: Any, lot_size: Any, direction: Any, symbol: Any) -> Result[Decimal]:
    """
    Calculate realized P&L for a closed position.

    Formula: signed price delta (negated for sell) x lots x contract size.
    Crypto contracts are 1 unit, so this is a direct multiply by lots.
    Forex pairs with USD as base currency divide by the exit price to
    express the result in USD.

    Args:
        entry: Entry price
        exit: Exit price
        lot_size: Position size in lots
        direction: buy/long or sell/short
        symbol: Instrument symbol

    Returns:
        Ok(P&L rounded to 2 decimals), or Err when an input is zero/invalid
    """
    entry_price = parse_financial_number(entry)
    exit_price = parse_financial_number(exit)
    lots = parse_financial_number(lot_size)

    if entry_price == ZERO or exit_price == ZERO or lots == ZERO:
        return Err(ErrorReason.ZERO_INPUT, "entry, exit and lot size are required")

    side = match_direction(direction)
    if side is None:
        return Err(ErrorReason.INVALID_ENUM, f"unknown direction: {direction!r}")

    price_diff = exit_price - entry_price
    if side == Direction.SELL:
        price_diff = -price_diff

    spec = resolve_instrument(symbol)
    pnl = price_diff * lots * spec.contract_size

    # TODO: verify USD-base conversion against broker statements before changing it
    if is_usd_base_pair(symbol):
        pnl = pnl / exit_price

    return Ok(_round(pnl))


def calculate_pnl(entry: Any, exit: Any, lot_size: Any, direction: Any, symbol: Any) -> Decimal:
    """
    Calculate P&L, returning Decimal("0") when inputs are missing or invalid.

    Example:
        >>> calculate_pnl(2000, 2010, 1, "buy", "XAUUSD")
        Decimal('1000.00')
    """
    return try_calculate_pnl(entry, exit, lot_size, direction, symbol).unwrap_or(Decimal("0.00"))


def calculate_risk_reward(entry: Any, stop_loss: Any, take_profit: Any, direction: Any) -> Decimal:
    """
    Risk/reward ratio from entry, stop and target.

    buy:  risk = entry - stop, reward = target - entry
    sell: risk = stop - entry, reward = entry - target

    A stop on the wrong side of entry gives risk <= 0 and the ratio is 0,
    exposing a misconfigured trade instead of raising. For an unknown
    direction the risk is taken as absolute while the reward keeps its sign.

    Returns:
        reward / risk rounded to 2 decimals, or 0
    """
    entry_price = parse_financial_number(entry)
    stop = parse_financial_number(stop_loss)
    target = parse_financial_number(take_profit)

    if entry_price == ZERO or stop == ZERO or target == ZERO:
        return Decimal("0.00")

    side = match_direction(direction)
    if side == Direction.BUY:
        risk = entry_price - stop
        reward = target - entry_price
    elif side == Direction.SELL:
        risk = stop - entry_price
        reward = entry_price - target
    else:
        risk = abs(entry_price - stop)
        reward = target - entry_price

    if risk <= ZERO:
        return Decimal("0.00")

    return _round(reward / risk)


def _size_precision(size: Decimal) -> str:
    if size > 100:
        return "0.01"
    if size > 1:
        return "0.001"
    return "0.00001"


def calculate_position_size(
    balance: Any,
    risk_percent: Any,
    entry: Any,
    stop_loss: Any,
    symbol: Any,
    direction: Any = "buy",
) -> Decimal:
    """
    Lot size that loses exactly ``risk_percent`` of ``balance`` at the stop.

    size = risk_amount / (|entry - stop| x contract_size), so that
    calculate_risk_amount(entry, stop, size, symbol) equals the risk amount.
    Precision scales with magnitude: 2 decimals above 100 lots, 3 above 1,
    5 otherwise.

    Returns 0 and logs a warning when any input is non-positive or the stop
    sits on the wrong side of entry for the direction.
    """
    account = parse_financial_number(balance)
    risk = parse_financial_number(risk_percent)
    entry_price = parse_financial_number(entry)
    stop = parse_financial_number(stop_loss)

    if account <= ZERO or risk <= ZERO or entry_price <= ZERO or stop <= ZERO:
        logger.warning(
            "calculator.position_size_rejected",
            reason="non_positive_input",
            balance=str(account),
            risk_percent=str(risk),
        )
        return Decimal("0")

    side = match_direction(direction)
    if side == Direction.BUY and stop >= entry_price:
        logger.warning("calculator.position_size_rejected", reason="buy_stop_not_below_entry", symbol=str(symbol))
        return Decimal("0")
    if side == Direction.SELL and stop <= entry_price:
        logger.warning("calculator.position_size_rejected", reason="sell_stop_not_above_entry", symbol=str(symbol))
        return Decimal("0")

    price_risk = abs(entry_price - stop)
    if price_risk == ZERO:
        logger.warning("calculator.position_size_rejected", reason="zero_risk_distance", symbol=str(symbol))
        return Decimal("0")

    risk_amount = account * risk / Decimal("100")
    spec = resolve_instrument(symbol)

    if spec.kind == InstrumentKind.CRYPTO:
        size = risk_amount / price_risk
    else:
        size = risk_amount / (price_risk * spec.contract_size)

    return _round(size, _size_precision(size))


def calculate_risk_amount(entry: Any, stop_loss: Any, lot_size: Any, symbol: Any) -> Decimal:
    """
    Money at risk between entry and stop for a position.

    Crypto: |entry - stop| x lots; otherwise also multiplied by contract size.
    """
    entry_price = parse_financial_number(entry)
    stop = parse_financial_number(stop_loss)
    lots = parse_financial_number(lot_size)
    if entry_price == ZERO or stop == ZERO or lots == ZERO:
        return Decimal("0.00")

    spec = resolve_instrument(symbol)
    price_risk = abs(entry_price - stop)
    if spec.kind == InstrumentKind.CRYPTO:
        return _round(price_risk * lots)
    return _round(price_risk * lots * spec.contract_size)


def lots_to_units(lots: Any, symbol: Any) -> Decimal:
    """Convert lots to instrument units (lots x contract size)."""
    return parse_financial_number(lots) * resolve_instrument(symbol).contract_size


def units_to_lots(units: Any, symbol: Any) -> Decimal:
    """Convert instrument units to lots (units / contract size)."""
    return parse_financial_number(units) / resolve_instrument(symbol).contract_size


def format_pnl(pnl: Any, currency: str = "$") -> str:
    """
    Format P&L with explicit sign and currency symbol.

    Example:
        >>> format_pnl(Decimal("12"))
        '+$12.00'
        >>> format_pnl("-5.5", currency="€")
        '-€5.50'
    """
    value = _round(parse_financial_number(pnl))
    sign = "+" if value >= ZERO else "-"
    return f"{sign}{currency}{abs(value):,.2f}"
