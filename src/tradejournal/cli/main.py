"""TradeJournal CLI main entry point."""

import click

from tradejournal import __version__
from tradejournal.cli.commands import calc_group, import_command, stats_command


@click.group()
@click.version_option(version=__version__)
def main():
    """TradeJournal - Trading Performance Analytics"""
    pass


# Register commands
main.add_command(stats_command)
main.add_command(import_command)
main.add_command(calc_group)


if __name__ == "__main__":
    main()
