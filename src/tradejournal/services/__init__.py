"""TradeJournal services package.

Stateful services built on the pure libraries. Each service is
independently testable and receives its collaborators (event bus, cache,
persistence backend) through its constructor.
"""

from tradejournal.services.cache import TradeCache
from tradejournal.services.importing import ImportPipeline
from tradejournal.services.journal import JournalStore

__all__: list[str] = [
    "ImportPipeline",
    "JournalStore",
    "TradeCache",
]
