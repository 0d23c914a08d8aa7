"""TradeJournal command line interface."""
