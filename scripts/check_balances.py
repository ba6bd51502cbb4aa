#!/usr/bin/env python3
"""Print L1 and L2 balances for every account in an account list."""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional, Sequence

from adapters.ledger import Web3Ledger
from funding.accounts import load_accounts
from funding.config import from_wei
from funding.errors import ConfigurationError, LedgerUnavailable
from funding.models import AccountRecord

from scripts import common

_log = logging.getLogger("check_balances")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Check account balances on L1 and L2")
    parser.add_argument("l1_rpc_url")
    parser.add_argument("l2_rpc_url")
    parser.add_argument("accounts_file", nargs="?", default="accounts.json")
    parser.add_argument("--log-level", default="INFO")
    return parser


def _fmt(ledger: Web3Ledger, address: str) -> str:
    try:
        return f"{from_wei(ledger.get_balance(address))} ETH"
    except LedgerUnavailable:
        return "ERROR"


def balance_rows(
    accounts: Sequence[AccountRecord], l1: Web3Ledger, l2: Web3Ledger
) -> List[str]:
    rows = [f"{'Account':<20} {'Address':<44} {'L1 Balance':<24} {'L2 Balance':<24}", "=" * 112]
    for account in accounts:
        rows.append(
            f"{account.name:<20} {account.address:<44} {_fmt(l1, account.address):<24} {_fmt(l2, account.address):<24}"
        )
    return rows


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    common.setup_logging(args.log_level)
    try:
        accounts = load_accounts(args.accounts_file)
        l1 = common.connect_ledger(args.l1_rpc_url, None, "L1")
        l2 = common.connect_ledger(args.l2_rpc_url, None, "L2")
    except (ConfigurationError, LedgerUnavailable) as exc:
        _log.error("Error: %s", exc)
        return 1

    _log.info("L1 chain id: %s", l1.chain_id)
    _log.info("L2 chain id: %s", l2.chain_id)
    for row in balance_rows(accounts, l1, l2):
        _log.info(row)

    try:
        _log.info("L1 latest block: %s, gas price: %s wei", l1.block_number(), l1.get_fee_data().gas_price)
        _log.info("L2 latest block: %s, gas price: %s wei", l2.block_number(), l2.get_fee_data().gas_price)
    except Exception as exc:
        _log.warning("Network info error: %s", exc)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI
    raise SystemExit(main())
