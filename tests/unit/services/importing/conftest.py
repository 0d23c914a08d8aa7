"""Shared fixtures for import pipeline tests."""

import pytest


def build_records(count: int, start: int = 0) -> list[dict]:
    """`count` distinct closed EURUSD buys (unique entry prices, so unique hashes)."""
    return [
        {
            "date": "2025-01-02",
            "pair": "EURUSD",
            "type": "buy",
            "entry": f"1.{2000 + n:04d}",
            "exit": "1.4000",
            "lotSize": "0.1",
        }
        for n in range(start, start + count)
    ]


@pytest.fixture
def make_records():
    return build_records
