"""
Test that contract examples validate against their schemas.
"""

import json
from pathlib import Path

import pytest
from jsonschema import Draft202012Validator, FormatChecker, ValidationError, validate

CONTRACTS = Path(__file__).parent.parent.parent.parent / "src" / "tradejournal" / "contracts"


def _load(relative: str) -> dict:
    return json.loads((CONTRACTS / relative).read_text())


@pytest.fixture
def trade_record_schema():
    """Load the trade_record.v1.json schema."""
    return _load("schemas/trade_record.v1.json")


@pytest.fixture
def trade_record_example():
    """Load the trade_record.v1.example.json file."""
    return _load("examples/trade_record.v1.example.json")


@pytest.fixture
def import_progress_schema():
    return _load("schemas/import_progress.v1.json")


@pytest.fixture
def import_progress_example():
    return _load("examples/import_progress.v1.example.json")


class TestSchemasAreValid:
    """Every schema file is itself a valid draft 2020-12 schema."""

    @pytest.mark.parametrize("name", ["envelope.v1.json", "import_progress.v1.json", "trade_record.v1.json"])
    def test_check_schema(self, name) -> None:
        """Check schema."""
        Draft202012Validator.check_schema(_load(f"schemas/{name}"))


class TestTradeRecordSchema:
    """Test trade_record.v1 contract."""

    def test_example_validates(self, trade_record_schema, trade_record_example) -> None:
        """Example validates."""
        validate(instance=trade_record_example, schema=trade_record_schema, format_checker=FormatChecker())

    def test_missing_required_field(self, trade_record_schema, trade_record_example) -> None:
        """Missing required field."""
        del trade_record_example["trade_hash"]
        with pytest.raises(ValidationError):
            validate(instance=trade_record_example, schema=trade_record_schema)

    def test_invalid_type(self, trade_record_schema, trade_record_example) -> None:
        """Invalid type."""
        trade_record_example["type"] = "long"
        with pytest.raises(ValidationError):
            validate(instance=trade_record_example, schema=trade_record_schema)

    def test_zero_entry_rejected(self, trade_record_schema, trade_record_example) -> None:
        """Zero entry rejected."""
        trade_record_example["entry"] = 0
        with pytest.raises(ValidationError):
            validate(instance=trade_record_example, schema=trade_record_schema)

    def test_open_trade_has_null_exit(self, trade_record_schema, trade_record_example) -> None:
        """Open trade has null exit."""
        trade_record_example.update(exit=None, status="open", pnl=0, outcome="breakeven")
        validate(instance=trade_record_example, schema=trade_record_schema)

    def test_additional_properties_rejected(self, trade_record_schema, trade_record_example) -> None:
        """Additional properties rejected."""
        trade_record_example["broker"] = "x"
        with pytest.raises(ValidationError):
            validate(instance=trade_record_example, schema=trade_record_schema)


class TestImportProgressSchema:
    """Test import_progress.v1 contract."""

    def test_example_validates(self, import_progress_schema, import_progress_example) -> None:
        """Example validates."""
        validate(instance=import_progress_example, schema=import_progress_schema)

    def test_progress_out_of_range(self, import_progress_schema, import_progress_example) -> None:
        """Progress out of range."""
        import_progress_example["progress"] = 120
        with pytest.raises(ValidationError):
            validate(instance=import_progress_example, schema=import_progress_schema)
