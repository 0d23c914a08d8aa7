"""
Journal store.

JournalStore is the single authoritative holder of the journal state: the
trade list (sorted by date, id) and the StatisticsSnapshot computed from
it. Every view reads from here; nothing else aggregates.

Mutations replace state wholesale and publish a StoreUpdatedEvent on the
event bus. A mutation issued from inside a subscriber is queued and applied
after the current one finishes, so subscribers never observe interleaved
state.

Example:
    >>> store = JournalStore.create(EventBus(), TradeCache.create())
    >>> token = store.subscribe(lambda update: print(update.statistics.total_pnl))
    >>> store.add_trade({"date": "2025-01-02", "pair": "EURUSD", "type": "buy",
    ...                  "entry": "1.2500", "exit": "1.2580", "lotSize": "1"})
    800.00
    >>> token()  # unsubscribe
"""

import datetime
import time
from collections import deque
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Union

from tradejournal.errors import TradeNotFoundError, TradeValidationError
from tradejournal.events import EventBus, StoreUpdatedEvent, SubscriptionToken
from tradejournal.libraries.calculations import Err, parse_financial_number
from tradejournal.libraries.performance import StatisticsSnapshot, aggregate, empty_snapshot, sort_trades
from tradejournal.libraries.performance.models import BreakdownRow
from tradejournal.libraries.trades import Provenance, Trade, apply_patch, normalize_trade, trade_to_raw
from tradejournal.services.cache import TradeCache, fingerprint_trades, make_cache_key
from tradejournal.services.journal import views
from tradejournal.services.journal.models import (
    CalendarDay,
    DataSummary,
    EquityPoint,
    FilterOptions,
    ImportAnalytics,
    MonthlyGrowthPoint,
    PortfolioMetrics,
    RiskRewardPoint,
    TradeFilters,
    TradePage,
    WinLossDistribution,
)
from tradejournal.system import LoggerFactory
from tradejournal.system.config import JournalSettings

logger = LoggerFactory.get_logger()

# What subscribers receive
StoreUpdate = StoreUpdatedEvent

TradeInput = Union[Trade, Mapping[str, Any]]
FilterInput = Union[TradeFilters, Mapping[str, Any], None]

EXPORT_VERSION = "2.0"


def _as_filters(filters: FilterInput) -> TradeFilters:
    if filters is None:
        return TradeFilters()
    if isinstance(filters, TradeFilters):
        return filters
    return TradeFilters.model_validate(dict(filters))


def _as_date(value: Union[datetime.date, str]) -> datetime.date:
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(value)


@dataclass(frozen=True)
class _CachedStatistics:
    """A snapshot and the exact trade set it was computed from."""

    trades: tuple[Trade, ...]
    statistics: StatisticsSnapshot


class JournalStore:
    """
    Observable store of trades and statistics.

    Attributes:
        scope: Cache scope for this store's entries (user id or "global")
        settings: Starting balance and batching policy
    """

    def __init__(
        self,
        event_bus: EventBus,
        cache: Optional[TradeCache] = None,
        settings: Optional[JournalSettings] = None,
        scope: Optional[str] = None,
    ) -> None:
        """
        Initialize store.

        Args:
            event_bus: Bus that carries StoreUpdatedEvents to subscribers
            cache: Statistics cache; None disables snapshot reuse
            settings: Journal settings (defaults: 10000 starting balance,
                      batch normalization above 500 trades in batches of 1000)
            scope: Cache scope; defaults to settings.default_scope
        """
        self.settings = settings or JournalSettings()
        self.scope = scope or self.settings.default_scope
        self._bus = event_bus
        self._cache = cache
        self._trades: tuple[Trade, ...] = ()
        self._explicit_balance: Optional[Decimal] = None
        self._statistics = empty_snapshot(self.settings.starting_balance)
        self._quarantined: list[tuple[int, Err]] = []
        self._last_update: Optional[datetime.datetime] = None
        self._last_update_clock: Optional[float] = None
        self._mutating = False
        self._pending: deque[tuple[str, Callable[[], None]]] = deque()

    @classmethod
    def create(
        cls,
        event_bus: EventBus,
        cache: Optional[TradeCache] = None,
        config: Optional[JournalSettings] = None,
        scope: Optional[str] = None,
    ) -> "JournalStore":
        """Factory used by AppContext."""
        store = cls(event_bus, cache, config, scope)
        logger.debug("journal.created", scope=store.scope, cache_enabled=bool(cache and cache.enabled))
        return store

    def dispose(self) -> None:
        """Drop state and any queued mutations; does not notify."""
        self._pending.clear()
        self._trades = ()
        self._quarantined = []
        self._statistics = empty_snapshot(self.settings.starting_balance)
        logger.debug("journal.disposed", scope=self.scope)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def trades(self) -> tuple[Trade, ...]:
        """Current trades, sorted by (date, id)."""
        return self._trades

    @property
    def statistics(self) -> StatisticsSnapshot:
        return self._statistics

    @property
    def quarantined(self) -> list[tuple[int, Err]]:
        """(input index, reason) of raw rows rejected by the last set_trades."""
        return list(self._quarantined)

    @property
    def account_balance(self) -> Decimal:
        """Balance statistics are computed against: explicit, else the starting balance."""
        if self._explicit_balance is not None:
            return self._explicit_balance
        return self.settings.starting_balance

    def get_trades(self) -> tuple[Trade, ...]:
        return self._trades

    def get_statistics(self) -> StatisticsSnapshot:
        return self._statistics

    def get_trade(self, trade_id: str) -> Trade:
        """
        Raises:
            TradeNotFoundError: If no trade has this id
        """
        for trade in self._trades:
            if trade.id == trade_id:
                return trade
        raise TradeNotFoundError(trade_id)

    def set_account_balance(self, balance: Union[Decimal, str, float, None]) -> None:
        """Configure (or with None, clear) the explicit account balance and recompute."""
        explicit = None if balance is None else parse_financial_number(balance)
        self._mutate("balance_changed", lambda: self._apply_balance(explicit))

    def _apply_balance(self, explicit: Optional[Decimal]) -> None:
        self._explicit_balance = explicit
        self._recompute(use_cache=True)

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[StoreUpdate], None], priority: int = 0) -> SubscriptionToken:
        """
        Register a callback for every successful mutation.

        Callbacks run synchronously, in registration order within a priority.
        The returned token unsubscribes when called; calling it twice is a no-op.
        """
        return self._bus.subscribe(StoreUpdatedEvent, callback, priority=priority)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _mutate(self, reason: str, apply: Callable[[], None]) -> None:
        if self._mutating:
            self._pending.append((reason, apply))
            logger.debug("journal.mutation_queued", reason=reason, queued=len(self._pending))
            return

        self._mutating = True
        try:
            apply()
            self._notify(reason)
            while self._pending:
                queued_reason, queued_apply = self._pending.popleft()
                try:
                    queued_apply()
                except Exception as e:
                    logger.error("journal.queued_mutation_failed", reason=queued_reason, error=str(e))
                    continue
                self._notify(queued_reason)
        finally:
            self._mutating = False

    def _notify(self, reason: str) -> None:
        self._last_update = datetime.datetime.now(datetime.timezone.utc)
        self._last_update_clock = time.monotonic()
        self._bus.publish(
            StoreUpdatedEvent(
                trades=self._trades,
                statistics=self._statistics,
                reason=reason,
                correlation_id=self.scope,
            )
        )

    def _cache_key(self, trades: Sequence[Trade], balance: Decimal) -> str:
        return make_cache_key(self.scope, f"{fingerprint_trades(trades)}@{balance}")

    def _recompute(self, use_cache: bool) -> None:
        balance = self.account_balance
        key = self._cache_key(self._trades, balance)

        if use_cache and self._cache is not None:
            cached = self._cache.get("statistics", key)
            # the fingerprint is cheap; only the exact trade set may reuse a snapshot
            if isinstance(cached, _CachedStatistics) and cached.trades == self._trades:
                self._statistics = cached.statistics
                logger.debug("journal.statistics_cache_hit", scope=self.scope, trades=len(self._trades))
                return

        started = time.perf_counter()
        self._statistics = aggregate(self._trades, balance)
        if self._cache is not None:
            self._cache.set("statistics", key, _CachedStatistics(self._trades, self._statistics))
        logger.debug(
            "journal.statistics_computed",
            scope=self.scope,
            trades=len(self._trades),
            duration=round(time.perf_counter() - started, 4),
        )

    def _normalize_all(self, items: Sequence[TradeInput], batch_process: bool) -> list[Trade]:
        self._quarantined = []
        threshold = self.settings.batch_threshold
        size = self.settings.batch_size
        if batch_process and len(items) > threshold:
            batches = [range(i, min(i + size, len(items))) for i in range(0, len(items), size)]
        else:
            batches = [range(len(items))]

        trades: list[Trade] = []
        for number, batch in enumerate(batches, start=1):
            for index in batch:
                item = items[index]
                if isinstance(item, Trade):
                    trades.append(item)
                    continue
                result = normalize_trade(item, provenance=Provenance.IMPORTED)
                if result.is_ok():
                    trades.append(result.unwrap())
                else:
                    self._quarantined.append((index, result))
            if len(batches) > 1:
                logger.debug("journal.batch_normalized", batch=number, batches=len(batches), processed=batch.stop)

        if self._quarantined:
            logger.warning(
                "journal.rows_quarantined",
                scope=self.scope,
                quarantined=len(self._quarantined),
                reasons=sorted({err.reason.value for _, err in self._quarantined}),
            )
        return trades

    def set_trades(
        self,
        trades: Iterable[TradeInput],
        account_balance: Union[Decimal, str, float, None] = None,
        *,
        use_cache: bool = True,
        batch_process: bool = True,
    ) -> None:
        """
        Replace the whole trade list.

        Raw mappings go through normalize_trade (provenance "imported");
        rows that fail are quarantined (see `quarantined`) rather than raising.
        When the trade-set fingerprint matches a cached snapshot computed from
        an equal trade list, that exact snapshot object is adopted without
        recomputing. A different list that merely shares the fingerprint is
        recomputed.

        Args:
            trades: Trade models and/or raw mappings
            account_balance: Explicit balance; None keeps the current setting
            use_cache: Reuse a cached snapshot on fingerprint match
            batch_process: Normalize large lists in batches
        """
        items = list(trades)
        explicit = None if account_balance is None else parse_financial_number(account_balance)

        def apply() -> None:
            if explicit is not None:
                self._explicit_balance = explicit
            self._trades = tuple(sort_trades(self._normalize_all(items, batch_process)))
            self._recompute(use_cache=use_cache)
            logger.info(
                "journal.trades_set",
                scope=self.scope,
                trades=len(self._trades),
                quarantined=len(self._quarantined),
                total_pnl=str(self._statistics.total_pnl),
            )

        self._mutate("set_trades", apply)

    def _coerce(self, item: TradeInput, provenance: Provenance) -> Trade:
        if isinstance(item, Trade):
            return item
        result = normalize_trade(item, provenance=provenance)
        if result.is_err():
            raise TradeValidationError(result.message, reason=result.reason.value)
        return result.unwrap()

    def add_trade(self, item: TradeInput) -> Trade:
        """
        Normalize and append one trade (provenance "manual" for raw input).

        Raises:
            TradeValidationError: If the raw record cannot be normalized
        """
        trade = self._coerce(item, Provenance.MANUAL)

        def apply() -> None:
            self._trades = tuple(sort_trades([*self._trades, trade]))
            self._recompute(use_cache=False)

        self._mutate("add_trade", apply)
        logger.info("journal.trade_added", scope=self.scope, trade_id=trade.id, pair=trade.pair)
        return trade

    def update_trade(self, trade_id: str, patch: Mapping[str, Any]) -> Trade:
        """
        Apply raw field changes to one trade and re-normalize it.

        Raises:
            TradeNotFoundError: Unknown id
            TradeValidationError: The patched record is invalid
        """
        existing = self.get_trade(trade_id)
        result = apply_patch(existing, patch)
        if result.is_err():
            raise TradeValidationError(result.message, reason=result.reason.value)
        updated = result.unwrap()

        def apply() -> None:
            if not any(t.id == trade_id for t in self._trades):
                raise TradeNotFoundError(trade_id)
            self._trades = tuple(sort_trades([updated if t.id == trade_id else t for t in self._trades]))
            self._recompute(use_cache=False)

        self._mutate("update_trade", apply)
        logger.info("journal.trade_updated", scope=self.scope, trade_id=trade_id, fields=sorted(patch))
        return updated

    def remove_trade(self, trade_id: str) -> None:
        """
        Raises:
            TradeNotFoundError: Unknown id
        """
        self.remove_trades([trade_id])

    def remove_trades(self, trade_ids: Iterable[str]) -> None:
        """
        Remove several trades in one mutation (one notification).

        Raises:
            TradeNotFoundError: If any id is unknown; nothing is removed
        """
        ids = set(trade_ids)
        known = {t.id for t in self._trades}
        unknown = sorted(ids - known)
        if unknown:
            raise TradeNotFoundError(unknown[0])

        def apply() -> None:
            self._trades = tuple(t for t in self._trades if t.id not in ids)
            self._recompute(use_cache=False)

        self._mutate("remove_trades", apply)
        logger.info("journal.trades_removed", scope=self.scope, removed=len(ids))

    def clear_all(self) -> None:
        """Empty the journal and notify."""

        def apply() -> None:
            self._trades = ()
            self._quarantined = []
            self._statistics = empty_snapshot(self.account_balance)
            if self._cache is not None:
                self._cache.invalidate(self.scope)

        self._mutate("clear_all", apply)
        logger.info("journal.cleared", scope=self.scope)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_filtered_trades(self, filters: FilterInput = None) -> list[Trade]:
        """
        Trades matching every set criterion, in date order.

        Accepts a TradeFilters or a mapping of its fields ("all" = no filter).
        """
        return views.filter_trades(self._trades, _as_filters(filters))

    def get_paginated_trades(self, page: int = 1, page_size: int = 10, filters: FilterInput = None) -> TradePage:
        return views.paginate(self.get_filtered_trades(filters), page, page_size)

    def get_trades_for_date(self, day: Union[datetime.date, str]) -> list[Trade]:
        return views.trades_for_date(self._trades, _as_date(day))

    def get_pnl_for_date(self, day: Union[datetime.date, str]) -> Decimal:
        return views.pnl_for_date(self._trades, _as_date(day))

    def get_calendar_data(self, year: int, month: int) -> dict[int, CalendarDay]:
        """Calendar cells for a month (1-12), keyed by day of month."""
        return views.calendar_data(self._trades, year, month)

    def get_portfolio_metrics(self, initial_balance: Union[Decimal, str, float, None] = None) -> PortfolioMetrics:
        """Portfolio value path; initial_balance defaults to the store's account balance."""
        balance = self.account_balance if initial_balance is None else parse_financial_number(initial_balance)
        return views.portfolio_metrics(self._trades, self._statistics, balance)

    def get_filter_options(self) -> FilterOptions:
        return views.filter_options(self._trades)

    def get_import_analytics(self, trades: Iterable[TradeInput]) -> ImportAnalytics:
        """Preview numbers for a batch before importing; invalid raw rows are skipped."""
        normalized = []
        for item in trades:
            if isinstance(item, Trade):
                normalized.append(item)
                continue
            result = normalize_trade(item, provenance=Provenance.IMPORTED)
            if result.is_ok():
                normalized.append(result.unwrap())
        return views.import_analytics(normalized)

    def get_equity_curve(self) -> list[EquityPoint]:
        return views.equity_curve(self._trades)

    def get_win_loss_distribution(self) -> WinLossDistribution:
        return views.win_loss_distribution(self._trades)

    def get_risk_reward_scatter(self) -> list[RiskRewardPoint]:
        return views.risk_reward_scatter(self._trades)

    def get_monthly_growth(self) -> list[MonthlyGrowthPoint]:
        return views.monthly_growth(self._trades, self.account_balance)

    def get_pair_performance(self) -> list[BreakdownRow]:
        return self._statistics.pair_performance

    def get_setup_performance(self) -> list[BreakdownRow]:
        return self._statistics.setup_performance

    def get_chart_data(self) -> dict[str, Any]:
        """
        Every chart series in one new mapping, built from the current state.

        Keys: equity_curve, monthly_performance, daily_performance,
        pair_performance, setup_performance, drawdown_history,
        win_loss_distribution, risk_reward_scatter, monthly_growth.
        """
        stats = self._statistics
        return {
            "equity_curve": self.get_equity_curve(),
            "monthly_performance": stats.monthly_performance,
            "daily_performance": stats.daily_performance,
            "pair_performance": stats.pair_performance,
            "setup_performance": stats.setup_performance,
            "drawdown_history": stats.drawdown_history,
            "win_loss_distribution": self.get_win_loss_distribution(),
            "risk_reward_scatter": self.get_risk_reward_scatter(),
            "monthly_growth": self.get_monthly_growth(),
        }

    def get_dynamic_account_balance(self) -> Decimal:
        """
        Explicit balance when configured, otherwise starting balance + closed P&L.

        The fallback fabricates a balance from the configured starting
        balance (10000 by default) when the user never set one.
        """
        if self._explicit_balance is not None:
            return self._explicit_balance
        closed_pnl = sum((t.pnl for t in self._trades if t.is_closed), Decimal("0"))
        return self.settings.starting_balance + closed_pnl

    def get_data_summary(self) -> DataSummary:
        age = 0.0
        if self._last_update_clock is not None:
            age = round(time.monotonic() - self._last_update_clock, 3)
        return DataSummary(
            total_trades=len(self._trades),
            quarantined=len(self._quarantined),
            worth_score=self._statistics.worth_score.score,
            win_rate=self._statistics.win_rate,
            total_pnl=self._statistics.total_pnl,
            last_update=self._last_update,
            data_age_seconds=age,
            subscriber_count=self._bus.get_subscriber_count("store_updated"),
        )

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_data(self) -> dict[str, Any]:
        """
        JSON-ready dump of the journal.

        Trades use the raw camelCase shape so import_data (or
        normalize_trade) reads them back.
        """
        chart = self.get_chart_data()
        return {
            "version": EXPORT_VERSION,
            "export_timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z"),
            "account_balance": str(self.account_balance),
            "trades": [trade_to_raw(t) for t in self._trades],
            "statistics": self._statistics.model_dump(mode="json"),
            "chart_data": {
                name: (
                    [item.model_dump(mode="json") for item in value]
                    if isinstance(value, list)
                    else value.model_dump(mode="json")
                )
                for name, value in chart.items()
            },
            "portfolio_metrics": self.get_portfolio_metrics().model_dump(mode="json"),
        }

    def import_data(self, payload: Mapping[str, Any]) -> bool:
        """
        Load an export_data payload.

        Statistics in the payload are ignored and recomputed from the trades.

        Returns:
            False when the payload has no trade list, True otherwise
        """
        trades = payload.get("trades")
        if not isinstance(trades, list):
            logger.warning("journal.import_data_rejected", scope=self.scope, reason="no trade list")
            return False
        self.set_trades(trades, payload.get("account_balance"))
        return True
