#!/usr/bin/env python3
"""Bridge ETH from L1 to L2 through the rollup inbox and record the result."""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from funding.artifact import transfer_summary, write_summary
from funding.config import DEPOSIT_ETH_CALLDATA, from_wei, to_wei
from funding.errors import FundingError
from funding.logger import StructuredLogger

from scripts import common

LOGGER = StructuredLogger("bridge_eth")
_log = logging.getLogger("bridge_eth")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bridge ETH from L1 to L2 via the inbox contract")
    parser.add_argument("l1_rpc_url")
    parser.add_argument("l2_rpc_url")
    parser.add_argument("private_key")
    parser.add_argument("inbox_address")
    parser.add_argument("amount_eth", nargs="?", default="10000")
    parser.add_argument("--deposit-data", default=DEPOSIT_ETH_CALLDATA, help="Call data sent to the inbox")
    parser.add_argument("--output", default="bridge.json", help="Where to write the bridge summary")
    common.add_common_options(parser)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    common.setup_logging(args.log_level)

    _log.info("Bridging %s ETH from L1 to L2", args.amount_eth)
    _log.info("L1 RPC: %s", args.l1_rpc_url)
    _log.info("L2 RPC: %s", args.l2_rpc_url)
    _log.info("Inbox: %s", args.inbox_address)
    try:
        config = common.load_config(args)
        amount = to_wei(args.amount_eth)
        l1 = common.connect_ledger(args.l1_rpc_url, args.private_key, "L1")
        l2 = common.connect_ledger(args.l2_rpc_url, None, "L2", read_timeout=config.poll_interval)
        common.maybe_start_metrics(args.metrics_port)
        source = common.make_domain(l1, "L1")
        destination = common.make_domain(l2, "L2")
        orchestrator = common.build_orchestrator(
            source, destination, config, submit_to=args.inbox_address, data=args.deposit_data
        )
        # depositEth credits the sender's own address on L2
        request = orchestrator.build_request(l1.address or "", amount)
        _log.info("Bridger account: %s", request.recipient_address)
        _log.info("L1 chain id: %s, L2 chain id: %s", source.chain_id, destination.chain_id)
        report = orchestrator.execute(request)
    except (FundingError, ValueError) as exc:
        LOGGER.log("bridge_fail", error=str(exc), error_kind=type(exc).__name__)
        _log.error("Bridge failed: %s", exc)
        if "insufficient" in str(exc).lower():
            _log.info("Try funding the account first")
        return 1

    confirmed_delta = report.confirmation.delta if report.confirmation is not None else None
    summary = transfer_summary(
        request,
        tx_hash=report.receipt.tx_hash,
        amount=report.amount,
        source_block=report.receipt.block_number,
        gas_used=report.receipt.gas_used,
        confirmed_delta=confirmed_delta,
    )
    path = write_summary(args.output, summary)
    if confirmed_delta is None:
        _log.warning(
            "Bridge transaction sent but L2 balance did not update within %ss; the bridge might take longer",
            f"{config.max_wait:g}",
        )
    else:
        _log.info("Bridge successful! L2 balance increased by %s ETH", from_wei(confirmed_delta))
    _log.info("Bridge info saved to %s", path)
    LOGGER.log("bridge", tx_id=report.receipt.tx_hash, block=report.receipt.block_number, status=summary["status"])
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI
    raise SystemExit(main())
