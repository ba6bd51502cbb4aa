#!/usr/bin/env python3
"""Fund a single L2 account from the funnel account."""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from funding.config import from_wei, to_wei
from funding.errors import FundingError
from funding.logger import StructuredLogger

from scripts import common

LOGGER = StructuredLogger("fund_account")
_log = logging.getLogger("fund_account")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fund one L2 account from the funnel account")
    parser.add_argument("l2_rpc_url")
    parser.add_argument("funnel_private_key")
    parser.add_argument("recipient_address")
    parser.add_argument("amount_eth")
    common.add_common_options(parser)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    common.setup_logging(args.log_level)

    try:
        config = common.load_config(args)
        amount = to_wei(args.amount_eth)
        ledger = common.connect_ledger(
            args.l2_rpc_url, args.funnel_private_key, "L2", read_timeout=config.poll_interval
        )
        common.maybe_start_metrics(args.metrics_port)
        domain = common.make_domain(ledger, "L2")
        orchestrator = common.build_orchestrator(domain, domain, config)
        request = orchestrator.build_request(args.recipient_address, amount)
        _log.info("Funding %s with %s ETH on L2 from %s", request.recipient_address, args.amount_eth, ledger.address)
        report = orchestrator.execute(request)
    except (FundingError, ValueError) as exc:
        LOGGER.log("fund_fail", account=args.recipient_address, error=str(exc), error_kind=type(exc).__name__)
        _log.error("Error funding account: %s", exc)
        return 1

    if report.confirmation is None:
        _log.warning("Transaction %s included but the recipient balance has not updated yet", report.receipt.tx_hash)
    else:
        _log.info("Recipient balance increased by %s ETH", from_wei(report.confirmation.delta))
    LOGGER.log(
        "fund",
        tx_id=report.receipt.tx_hash,
        account=request.recipient_address,
        block=report.receipt.block_number,
        amount=str(report.amount),
        confirmed=report.confirmed,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI
    raise SystemExit(main())
