"""
Application context.

Wires the event bus, cache, journal store and import pipeline together from
one SystemConfig. There are no module-level singletons: callers build a
context with AppContext.create() and tear it down with dispose().
"""

from dataclasses import dataclass
from typing import Optional

from tradejournal.events import EventBus
from tradejournal.services.cache import TradeCache
from tradejournal.services.importing import ImportPipeline, InMemoryBackend, PersistenceBackend, record_to_trade
from tradejournal.services.journal import JournalStore
from tradejournal.system import LoggerFactory, SystemConfig, get_system_config

logger = LoggerFactory.get_logger()


@dataclass
class AppContext:
    """
    Fully wired engine.

    Attributes:
        config: System configuration the context was built from
        event_bus: Shared bus (store updates, import progress)
        cache: Shared statistics cache
        store: Journal store scoped to `scope`
        backend: Persistence backend used by the pipeline
        pipeline: Bulk import pipeline; refreshes the store after imports
    """

    config: SystemConfig
    event_bus: EventBus
    cache: TradeCache
    store: JournalStore
    backend: PersistenceBackend
    pipeline: ImportPipeline

    @classmethod
    def create(
        cls,
        config: Optional[SystemConfig] = None,
        backend: Optional[PersistenceBackend] = None,
        scope: Optional[str] = None,
    ) -> "AppContext":
        """
        Build a context.

        Args:
            config: System configuration (defaults to get_system_config())
            backend: Persistence backend (defaults to an InMemoryBackend)
            scope: Store cache scope, usually the user id
        """
        config = config or get_system_config()
        backend = backend or InMemoryBackend()

        event_bus = EventBus()
        cache = TradeCache.create(config.cache.to_cache_config())
        store = JournalStore.create(event_bus, cache, config.journal, scope)

        async def refresh_store(user_id: str) -> None:
            if user_id != store.scope:
                return
            trades = []
            for record in await backend.fetch_records(user_id):
                result = record_to_trade(record)
                if result.is_err():
                    logger.warning("journal.refresh_record_skipped", record_id=record.get("id"), error=result.message)
                    continue
                trades.append(result.unwrap())
            store.set_trades(trades)

        pipeline = ImportPipeline(
            backend,
            config.importing.to_import_config(),
            event_bus=event_bus,
            cache=cache,
            on_refresh=refresh_store,
        )
        logger.debug("context.created", scope=store.scope, backend=type(backend).__name__)
        return cls(config, event_bus, cache, store, backend, pipeline)

    def dispose(self) -> None:
        """Release store state, cache entries and subscriptions."""
        self.store.dispose()
        self.cache.dispose()
        self.event_bus.clear_subscribers()
        self.event_bus.clear_history()
        logger.debug("context.disposed", scope=self.store.scope)
