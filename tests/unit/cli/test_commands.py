"""
Unit tests for the tradejournal CLI commands.

Tests cover:
- stats on JSON and CSV files, table and --json output
- import into a JSON-lines store, including re-import dedup
- calculator subcommands and their error exits
"""

import json

import pytest
from click.testing import CliRunner

from tradejournal.cli.main import main


@pytest.fixture
def cli_runner():
    """Fixture providing Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def trades_json(tmp_path):
    """Three closed trades: +100, -200, +150."""
    path = tmp_path / "trades.json"
    path.write_text(
        json.dumps(
            [
                {"date": "2025-01-02", "pair": "EURUSD", "type": "buy", "entry": "1.1000", "exit": "1.1010", "pnl": "100"},
                {"date": "2025-01-03", "pair": "GBPUSD", "type": "sell", "entry": "1.2500", "exit": "1.2520", "pnl": "-200"},
                {"date": "2025-01-06", "pair": "XAUUSD", "type": "buy", "entry": "2000", "exit": "2001.5", "pnl": "150"},
            ]
        )
    )
    return path


@pytest.fixture
def trades_csv(tmp_path):
    path = tmp_path / "trades.csv"
    path.write_text(
        "date,pair,type,entry,exit,lotSize,notes\n"
        "2025-01-02,EURUSD,buy,1.2500,1.2580,1,\n"
        "2025-01-03,EURUSD,sell,1.2600,1.2650,1,late entry\n"
        ",EURUSD,buy,1.2500,,1,\n"
    )
    return path


def _json_block(output: str) -> dict:
    return json.loads(output[output.index("{\n") : output.rindex("\n}") + 2])


class TestStatsCommand:
    """Test `tradejournal stats`."""

    def test_json_output(self, cli_runner, trades_json) -> None:
        """JSON output."""
        result = cli_runner.invoke(main, ["stats", str(trades_json), "--json"])

        assert result.exit_code == 0, result.output
        payload = _json_block(result.output)
        assert payload["total_trades"] == 3
        assert payload["winning_trades"] == 2
        assert float(payload["win_rate"]) == 66.67
        assert float(payload["total_pnl"]) == 50.0
        assert payload["quarantined"] == 0

    def test_csv_with_bad_row(self, cli_runner, trades_csv) -> None:
        """CSV with bad row."""
        result = cli_runner.invoke(main, ["stats", str(trades_csv), "--json"])

        assert result.exit_code == 0, result.output
        payload = _json_block(result.output)
        assert payload["total_trades"] == 2
        # +800 and -500 at one standard lot
        assert float(payload["total_pnl"]) == 300.0
        assert payload["quarantined"] == 1

    def test_table_output(self, cli_runner, trades_json) -> None:
        """Table output."""
        result = cli_runner.invoke(main, ["stats", str(trades_json), "--balance", "25000"])

        assert result.exit_code == 0, result.output
        assert "Performance Summary" in result.output
        assert "Worth Score" in result.output
        assert "By Pair" in result.output

    def test_invalid_balance(self, cli_runner, trades_json) -> None:
        """Invalid balance."""
        result = cli_runner.invoke(main, ["stats", str(trades_json), "--balance", "lots"])
        assert result.exit_code == 1
        assert "Invalid balance" in result.output

    def test_unsupported_file(self, cli_runner, tmp_path) -> None:
        """Unsupported file."""
        path = tmp_path / "trades.txt"
        path.write_text("nope")
        result = cli_runner.invoke(main, ["stats", str(path)])
        assert result.exit_code == 2
        assert "unsupported file type" in result.output

    def test_malformed_json(self, cli_runner, tmp_path) -> None:
        """Malformed JSON."""
        path = tmp_path / "trades.json"
        path.write_text('{"trades": "not a list"}')
        result = cli_runner.invoke(main, ["stats", str(path)])
        assert result.exit_code == 2


class TestImportCommand:
    """Test `tradejournal import`."""

    def test_import_then_reimport(self, cli_runner, trades_json, tmp_path) -> None:
        """Import then reimport."""
        store = tmp_path / "store"
        args = ["import", str(trades_json), "--user", "alice", "--store", str(store)]

        first = cli_runner.invoke(main, args)
        assert first.exit_code == 0, first.output
        assert "Completed" in first.output
        assert "Journal:" in first.output
        assert len(next(store.glob("alice-*.jsonl")).read_text().splitlines()) == 3

        second = cli_runner.invoke(main, args)
        assert second.exit_code == 0, second.output
        assert "3 duplicate trades detected" in second.output
        assert len(next(store.glob("alice-*.jsonl")).read_text().splitlines()) == 3

    def test_no_dedup_reports_chunk_failure(self, cli_runner, trades_json, tmp_path) -> None:
        """No dedup reports chunk failure."""
        store = tmp_path / "store"
        cli_runner.invoke(main, ["import", str(trades_json), "-u", "alice", "--store", str(store)])
        result = cli_runner.invoke(
            main, ["import", str(trades_json), "-u", "alice", "--store", str(store), "--no-dedup", "--chunk-size", "2"]
        )
        assert result.exit_code == 0, result.output
        assert "Chunk 1 failed (duplicate_key)" in result.output

    def test_empty_file_fails(self, cli_runner, tmp_path) -> None:
        """Empty file fails."""
        path = tmp_path / "empty.json"
        path.write_text("[]")
        result = cli_runner.invoke(main, ["import", str(path), "-u", "alice", "--store", str(tmp_path / "store")])
        assert result.exit_code == 1
        assert "No records to import" in result.output

    def test_user_required(self, cli_runner, trades_json) -> None:
        """User required."""
        result = cli_runner.invoke(main, ["import", str(trades_json)])
        assert result.exit_code == 2


class TestCalcCommands:
    """Test `tradejournal calc ...`."""

    def test_pnl(self, cli_runner) -> None:
        """P&L."""
        result = cli_runner.invoke(main, ["calc", "pnl", "-p", "eurusd", "--entry", "1.2500", "--exit", "1.2580"])
        assert result.exit_code == 0, result.output
        assert "+$800.00" in result.output
        assert "Pips: 80.0" in result.output

    def test_pnl_invalid_direction(self, cli_runner) -> None:
        """P&L invalid direction."""
        result = cli_runner.invoke(
            main, ["calc", "pnl", "-p", "EURUSD", "--entry", "1.25", "--exit", "1.26", "-d", "sideways"]
        )
        assert result.exit_code == 1
        assert "invalid_enum" in result.output

    def test_rr(self, cli_runner) -> None:
        """R:R."""
        result = cli_runner.invoke(main, ["calc", "rr", "--entry", "1.2500", "--stop", "1.2450", "--target", "1.2600"])
        assert result.exit_code == 0
        assert "1:2.00" in result.output

    def test_rr_wrong_side(self, cli_runner) -> None:
        """R:R wrong side."""
        result = cli_runner.invoke(main, ["calc", "rr", "--entry", "1.2500", "--stop", "1.2550", "--target", "1.2600"])
        assert result.exit_code == 0
        assert "R:R is 0" in result.output

    def test_size(self, cli_runner) -> None:
        """Size."""
        result = cli_runner.invoke(
            main,
            ["calc", "size", "-p", "EURUSD", "--balance", "10000", "--risk", "1", "--entry", "1.2500", "--stop", "1.2450"],
        )
        assert result.exit_code == 0, result.output
        assert "0.20000" in result.output
        assert "$100.00" in result.output

    def test_size_rejected(self, cli_runner) -> None:
        """Size rejected."""
        result = cli_runner.invoke(
            main,
            ["calc", "size", "-p", "EURUSD", "--balance", "10000", "--risk", "1", "--entry", "1.2500", "--stop", "1.2550"],
        )
        assert result.exit_code == 1

    def test_pips(self, cli_runner) -> None:
        """Pips."""
        result = cli_runner.invoke(main, ["calc", "pips", "-p", "USDJPY", "--entry", "150.00", "--exit", "150.50"])
        assert result.exit_code == 0
        assert "50.0 pips" in result.output
