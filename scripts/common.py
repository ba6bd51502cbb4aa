"""Shared plumbing for the funding CLIs: options, config, ledgers, engine."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from adapters.ledger import Web3Ledger
from funding.config import TransferConfig, to_wei
from funding.confirmation import ConfirmationPoller
from funding.models import Domain
from funding.orchestrator import BatchOrchestrator, SkipPredicate
from funding.tx_engine.cancellation import CancellationToken
from funding.tx_engine.nonce_manager import NonceManager
from funding.tx_engine.submitter import TransferSubmitter
from funding import metrics


def add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="YAML file with transfer settings")
    parser.add_argument("--poll-interval", type=float, help="Seconds between destination balance samples")
    parser.add_argument("--max-wait", type=float, help="Seconds to wait for the destination balance change")
    parser.add_argument("--fee-reserve", help="ETH withheld for fees when the balance is short")
    parser.add_argument("--fallback-gas-limit", type=int, help="Gas limit used when estimation fails")
    parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port")
    parser.add_argument("--log-level", default="INFO")


def setup_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format="%(message)s")


def load_config(args: argparse.Namespace) -> TransferConfig:
    """Resolve config from ``--config`` (or ``FUNDING_*`` env) plus CLI overrides."""

    base = TransferConfig.from_yaml(args.config) if args.config else TransferConfig.from_env()
    return base.with_overrides(
        poll_interval=args.poll_interval,
        max_wait=args.max_wait,
        fee_reserve=to_wei(args.fee_reserve) if args.fee_reserve is not None else None,
        fallback_gas_limit=args.fallback_gas_limit,
    )


def maybe_start_metrics(port: Optional[int]) -> None:
    if port:
        metrics.start_metrics_server(port)


def connect_ledger(
    rpc_url: str, private_key: Optional[str], name: str, *, read_timeout: Optional[float] = None
) -> Web3Ledger:
    """Connect to ``rpc_url``; ``read_timeout`` caps each balance read (pass the poll interval)."""
    return Web3Ledger.connect(rpc_url, private_key, name=name, read_timeout=read_timeout)


def make_domain(ledger: Web3Ledger, name: str) -> Domain:
    return Domain(name=name, chain_id=ledger.chain_id, ledger=ledger)


def build_orchestrator(
    source: Domain,
    destination: Domain,
    config: TransferConfig,
    *,
    cancel_token: CancellationToken | None = None,
    skip: SkipPredicate | None = None,
    submit_to: str | None = None,
    data: str | None = None,
) -> BatchOrchestrator:
    submitter = TransferSubmitter(NonceManager(source.ledger), config)
    poller = ConfirmationPoller(config)
    return BatchOrchestrator(
        source,
        destination,
        submitter,
        poller,
        config,
        skip=skip,
        cancel_token=cancel_token,
        submit_to=submit_to,
        data=data,
    )
