"""Commands __init__ - exports all command groups."""

from tradejournal.cli.commands.calc import calc_group
from tradejournal.cli.commands.importing import import_command
from tradejournal.cli.commands.stats import stats_command

__all__ = ["calc_group", "import_command", "stats_command"]
