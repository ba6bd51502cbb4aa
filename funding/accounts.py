"""Account list loading.

The list is a JSON (or YAML, by suffix) array of ``{name, address, amount}``
records, ``amount`` being a decimal ether string. Order is preserved.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List

import yaml
from web3 import Web3

from .config import to_wei
from .errors import ConfigurationError
from .logger import StructuredLogger
from .models import AccountRecord

LOG = StructuredLogger("accounts")


def parse_accounts(data: Any) -> List[AccountRecord]:
    if not isinstance(data, list):
        raise ConfigurationError("account list must be an array of records")
    records: List[AccountRecord] = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            raise ConfigurationError(f"account #{idx + 1} is not a mapping")
        address = str(item.get("address", "")).strip()
        if not Web3.is_address(address):
            raise ConfigurationError(f"account #{idx + 1} has an invalid address: {address!r}")
        if "amount" not in item:
            raise ConfigurationError(f"account #{idx + 1} has no amount")
        amount = to_wei(item["amount"])
        if amount <= 0:
            raise ConfigurationError(f"account #{idx + 1} amount must be > 0")
        name = str(item.get("name") or f"account-{idx + 1}")
        records.append(AccountRecord(name, Web3.to_checksum_address(address), amount))
    return records


def load_accounts(path: str | Path) -> List[AccountRecord]:
    """Read and validate the account list at ``path``."""

    p = Path(path).resolve()
    if not p.exists():
        raise ConfigurationError(f"accounts file not found: {p}")
    text = p.read_text()
    try:
        if p.suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"error reading accounts file {p}: {exc}") from exc
    records = parse_accounts(data)
    LOG.log("loaded", path=str(p), count=len(records))
    return records
