"""Root conftest - shared trade builders for all tests."""

import datetime
from decimal import Decimal

import pytest

from tradejournal.libraries.calculations import Direction
from tradejournal.libraries.trades import Provenance, Trade, TradeStatus


def build_trade(
    id: str = "t1",
    date: str = "2025-01-02",
    pair: str = "EURUSD",
    direction: str = "buy",
    entry: str = "1.2500",
    exit: str | None = "1.2580",
    pnl: str = "800.00",
    lot_size: str = "1",
    stop_loss: str | None = None,
    take_profit: str | None = None,
    risk_reward: str | None = None,
    setup: str = "",
    notes: str = "",
    provenance: Provenance = Provenance.MANUAL,
) -> Trade:
    """Build a Trade directly (no normalization); open when exit is None."""
    return Trade(
        id=id,
        date=datetime.date.fromisoformat(date),
        pair=pair,
        direction=Direction(direction),
        entry_price=Decimal(entry),
        exit_price=Decimal(exit) if exit is not None else None,
        stop_loss=Decimal(stop_loss) if stop_loss is not None else None,
        take_profit=Decimal(take_profit) if take_profit is not None else None,
        lot_size=Decimal(lot_size),
        pnl=Decimal(pnl) if exit is not None else Decimal("0"),
        status=TradeStatus.CLOSED if exit is not None else TradeStatus.OPEN,
        risk_reward=Decimal(risk_reward) if risk_reward is not None else None,
        setup_tag=setup,
        notes=notes,
        provenance=provenance,
    )


@pytest.fixture
def make_trade():
    """Factory fixture: make_trade(id=..., pnl=..., ...)."""
    return build_trade


@pytest.fixture
def raw_eurusd_win():
    """Raw form record: EURUSD buy 1.2500 -> 1.2580, 1 lot (+800.00)."""
    return {
        "date": "2025-01-02",
        "pair": "eurusd",
        "type": "buy",
        "entry": "1.2500",
        "exit": "1.2580",
        "lotSize": "1",
    }


@pytest.fixture
def scenario_d_trades(make_trade):
    """+100, -200, +150 on consecutive days (balance 10000 -> 10100 -> 9900 -> 10050)."""
    return [
        make_trade(id="d1", date="2025-01-02", pnl="100"),
        make_trade(id="d2", date="2025-01-03", pnl="-200"),
        make_trade(id="d3", date="2025-01-06", pnl="150"),
    ]
