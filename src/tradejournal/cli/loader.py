"""Trade file loading and logging setup shared by CLI commands."""

import json
from pathlib import Path
from typing import Any, Literal, Optional, cast

import click
import pandas as pd

from tradejournal.system import LoggerFactory, get_system_config


def load_trade_file(path: Path) -> list[dict[str, Any]]:
    """
    Read raw trade records from a JSON or CSV file.

    JSON may be an array of records or an export payload with a "trades"
    key. CSV columns are read as strings (numbers are parsed later by the
    normalization path); empty cells are dropped from each record.

    Raises:
        click.BadParameter: If the file format is unsupported or malformed
    """
    suffix = path.suffix.lower()
    if suffix == ".csv":
        frame = pd.read_csv(path, dtype=str, keep_default_na=False)
        return [{k: v for k, v in row.items() if v != ""} for row in frame.to_dict(orient="records")]

    if suffix == ".json":
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"invalid JSON: {e}", param_hint="FILE") from e
        if isinstance(data, dict):
            data = data.get("trades", [])
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise click.BadParameter("expected a JSON array of trade objects", param_hint="FILE")
        return data

    raise click.BadParameter(f"unsupported file type '{suffix}' (use .json or .csv)", param_hint="FILE")


def apply_log_level(log_level: Optional[str]) -> None:
    """Reconfigure logging with a CLI level override."""
    if not log_level:
        return
    system_config = get_system_config()
    # Type cast since click already validated the choice
    level = cast(Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], log_level.upper())
    system_config.logging.level = level
    LoggerFactory.configure(system_config.logging.to_logger_config())


log_level_option = click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set logging level (DEBUG shows cache and chunk details)",
)
