"""Unit tests for the NonceManager."""

import json
from pathlib import Path

from funding.tx_engine.nonce_manager import NonceManager


class DummyLedger:
    def __init__(self, start=5):
        self.start = start
        self.calls = 0

    def get_nonce(self, address):
        self.calls += 1
        return self.start


def test_cache_and_reset() -> None:
    ledger = DummyLedger()
    nm = NonceManager(ledger)

    # First call fetches from RPC
    assert nm.get_nonce("0xAbC") == 5
    assert ledger.calls == 1

    # Subsequent calls use the cache, case-insensitively
    assert nm.get_nonce("0xabc") == 6
    assert nm.peek("0xABC") == 6
    assert ledger.calls == 1

    ledger.start = 9
    nm.reset_nonce("0xabc")
    assert nm.peek("0xabc") is None
    assert nm.get_nonce("0xabc") == 9
    assert ledger.calls == 2

    logs = [json.loads(line) for line in Path("logs/nonce_manager.json").read_text().splitlines()]
    assert [e["event"] for e in logs] == ["get", "get", "reset", "get"]
    assert logs[0]["on_chain_nonce"] == 5
    assert logs[1]["on_chain_nonce"] is None


def test_addresses_are_independent() -> None:
    nm = NonceManager(DummyLedger(start=2))
    assert nm.get_nonce("0x1") == 2
    assert nm.get_nonce("0x2") == 2
    assert nm.get_nonce("0x1") == 3
