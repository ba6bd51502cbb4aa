#!/usr/bin/env python3
"""Fund every account in an account list from the funnel account on L2."""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from funding.accounts import load_accounts
from funding.errors import ConfigurationError, LedgerUnavailable
from funding.logger import StructuredLogger
from funding.tx_engine.cancellation import CancellationToken, install_signal_handlers

from scripts import common

LOGGER = StructuredLogger("fund_all")
_log = logging.getLogger("fund_all")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fund all accounts on L2 from the funnel account")
    parser.add_argument("l2_rpc_url")
    parser.add_argument("funnel_private_key")
    parser.add_argument("accounts_file", nargs="?", default="accounts.json")
    parser.add_argument("--stop-file", help="Stop before the next account once this file exists")
    common.add_common_options(parser)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    common.setup_logging(args.log_level)

    _log.info("Starting L2 account funding...")
    _log.info("L2 RPC: %s", args.l2_rpc_url)
    _log.info("Accounts file: %s", args.accounts_file)
    try:
        config = common.load_config(args)
        accounts = load_accounts(args.accounts_file)
        _log.info("Found %d accounts to fund", len(accounts))
        ledger = common.connect_ledger(
            args.l2_rpc_url, args.funnel_private_key, "L2", read_timeout=config.poll_interval
        )
    except (ConfigurationError, LedgerUnavailable) as exc:
        LOGGER.log("startup_failed", error=str(exc), error_kind=type(exc).__name__)
        _log.error("Error: %s", exc)
        return 1

    common.maybe_start_metrics(args.metrics_port)
    domain = common.make_domain(ledger, "L2")
    token = CancellationToken(flag_file=args.stop_file)
    orchestrator = common.build_orchestrator(domain, domain, config, cancel_token=token)

    restore = install_signal_handlers(token)
    try:
        result = orchestrator.run(accounts)
    except (ConfigurationError, LedgerUnavailable) as exc:
        LOGGER.log("aborted", error=str(exc), error_kind=type(exc).__name__)
        _log.error("Error: %s", exc)
        return 1
    finally:
        restore()

    if result.cancelled:
        _log.warning("Funding process interrupted (%s)", token.reason)
    _log.info("Successfully funded: %d accounts", result.succeeded)
    if result.timed_out:
        _log.info("  of which awaiting balance update: %d", result.timed_out)
    _log.info("Skipped: %d accounts", result.skipped)
    _log.info("Failed: %d accounts", result.failed)
    LOGGER.log("finished", **result.summary())
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI
    raise SystemExit(main())
