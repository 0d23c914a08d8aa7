"""CLI UI components - formatters and progress bars."""

from tradejournal.cli.ui.formatters import (
    create_breakdown_table,
    create_import_summary_table,
    create_statistics_table,
    pnl_markup,
)
from tradejournal.cli.ui.progress import create_import_progress

__all__ = [
    "create_breakdown_table",
    "create_import_progress",
    "create_import_summary_table",
    "create_statistics_table",
    "pnl_markup",
]
