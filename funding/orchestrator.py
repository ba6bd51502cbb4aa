"""Batch funding orchestrator.

Module purpose and system role:
    - Walk an ordered account list, funding each account from one credential.
    - Per account: skip check, amount resolution, submission, destination
      confirmation. Each account yields exactly one outcome, in input order.
    - Per-account errors are recorded and the batch moves on; an operator
      stop is honoured only between accounts.

Integration points and dependencies:
    - :class:`TransferSubmitter` owns the credential's nonce sequence, so
      accounts are processed strictly one at a time.
    - :class:`ConfirmationPoller` observes the destination domain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from funding import metrics
from funding.config import TransferConfig, from_wei
from funding.confirmation import Confirmation, ConfirmationPoller
from funding.errors import ConfigurationError, ConfirmationTimeout, LedgerUnavailable, SubmissionError
from funding.logger import StructuredLogger
from funding.models import (
    AccountRecord,
    BatchResult,
    Domain,
    InclusionReceipt,
    OutcomeStatus,
    TransferOutcome,
    TransferRequest,
)
from funding.tx_engine.amount import resolve
from funding.tx_engine.cancellation import CancellationToken, record_cancel_event
from funding.tx_engine.submitter import TransferSubmitter

LOGGER = StructuredLogger("orchestrator")
_log = logging.getLogger(__name__)

SkipPredicate = Callable[[AccountRecord], bool]


def default_skip(names: Iterable[str], funding_address: Optional[str] = None) -> SkipPredicate:
    """Skip accounts named like the funding source, or holding its address."""

    lowered = {n.lower() for n in names}
    funder = funding_address.lower() if funding_address else None

    def _skip(account: AccountRecord) -> bool:
        if account.name.lower() in lowered:
            return True
        return funder is not None and account.address.lower() == funder

    return _skip


@dataclass(frozen=True)
class AttemptReport:
    """Everything observed during one successful submission."""

    amount: int
    fallback: bool
    receipt: InclusionReceipt
    confirmation: Optional[Confirmation] = None
    timeout: Optional[ConfirmationTimeout] = None

    @property
    def confirmed(self) -> bool:
        return self.confirmation is not None


class BatchOrchestrator:
    """Sequentially fund accounts from the source credential."""

    def __init__(
        self,
        source: Domain,
        destination: Domain,
        submitter: TransferSubmitter,
        poller: ConfirmationPoller,
        config: TransferConfig,
        *,
        skip: SkipPredicate | None = None,
        cancel_token: CancellationToken | None = None,
        submit_to: str | None = None,
        data: str | None = None,
    ) -> None:
        self.source = source
        self.destination = destination
        self.submitter = submitter
        self.poller = poller
        self.config = config
        self.skip = skip or default_skip(config.skip_names, source.ledger.address)
        self.cancel_token = cancel_token or CancellationToken()
        self.submit_to = submit_to
        self.data = data

    # ------------------------------------------------------------------
    def build_request(self, recipient: str, requested_amount: int) -> TransferRequest:
        return TransferRequest(
            source_domain=self.source,
            destination_domain=self.destination,
            recipient_address=recipient,
            requested_amount=requested_amount,
            fee_reserve=self.config.fee_reserve,
            submit_to=self.submit_to,
            data=self.data,
        )

    def execute(self, request: TransferRequest) -> AttemptReport:
        """Run one transfer end to end.

        Raises :class:`InsufficientFunds` or :class:`SubmissionError`; a
        destination timeout is reported on the returned value, not raised.
        """

        ledger = request.source_domain.ledger
        sender = ledger.address or ""
        balance = int(ledger.get_balance(sender))
        resolution = resolve(request.requested_amount, balance, request.fee_reserve)
        if resolution.fallback:
            _log.warning(
                "Not enough %s balance. Need %s ETH, have %s ETH; using available balance %s ETH",
                request.source_domain.name,
                from_wei(request.requested_amount),
                from_wei(balance),
                from_wei(int(resolution.amount)),
            )
            LOGGER.log(
                "amount_fallback",
                account=request.recipient_address,
                domain=request.source_domain.name,
                requested=str(request.requested_amount),
                balance=str(balance),
                amount=str(resolution.amount),
            )
        amount = int(resolution.amount)

        baseline = self.poller.capture_baseline(request.destination_domain, request.recipient_address)
        receipt = self.submitter.submit(request, amount)
        _log.info("Transaction %s confirmed in %s block %s", receipt.tx_hash, request.source_domain.name, receipt.block_number)
        try:
            confirmation = self.poller.wait_for_increase(
                request.destination_domain, request.recipient_address, baseline, tx_id=receipt.tx_hash
            )
        except ConfirmationTimeout as exc:
            return AttemptReport(amount, resolution.fallback, receipt, timeout=exc)
        return AttemptReport(amount, resolution.fallback, receipt, confirmation=confirmation)

    # ------------------------------------------------------------------
    def process(self, account: AccountRecord) -> TransferOutcome:
        """Produce the outcome for ``account``.

        Per-account errors become a ``Failed`` outcome. Configuration and
        connectivity errors propagate and end the whole run.
        """

        if self.skip(account):
            return TransferOutcome.skipped()
        try:
            report = self.execute(self.build_request(account.address, account.requested_amount))
        except (ConfigurationError, LedgerUnavailable):
            raise
        except SubmissionError as exc:
            return TransferOutcome.failed(exc, tx_hash=exc.tx_hash)
        except Exception as exc:
            return TransferOutcome.failed(exc)
        if report.confirmation is not None:
            return TransferOutcome(
                OutcomeStatus.SUCCEEDED,
                tx_hash=report.receipt.tx_hash,
                confirmed_delta=report.confirmation.delta,
                amount=report.amount,
            )
        return TransferOutcome(
            OutcomeStatus.TIMED_OUT,
            tx_hash=report.receipt.tx_hash,
            error_kind=ConfirmationTimeout.__name__,
            error=str(report.timeout),
            amount=report.amount,
        )

    def _report(self, index: int, total: int, account: AccountRecord, outcome: TransferOutcome) -> None:
        metrics.record_outcome(outcome.status.value)
        LOGGER.log(
            outcome.status.value,
            tx_id=outcome.tx_hash or "",
            account=account.address,
            domain=self.destination.name,
            name=account.name,
            index=index,
            total=total,
            amount=str(outcome.amount) if outcome.amount is not None else None,
            confirmed_delta=str(outcome.confirmed_delta) if outcome.confirmed_delta is not None else None,
            error_kind=outcome.error_kind,
            error=outcome.error if outcome.status is OutcomeStatus.FAILED else None,
        )
        if outcome.status is OutcomeStatus.SKIPPED:
            _log.info("[%d/%d] Skipping %s (funding source)", index, total, account.name)
        elif outcome.status is OutcomeStatus.SUCCEEDED:
            _log.info(
                "[%d/%d] Funded %s with %s ETH (tx %s)",
                index, total, account.name, from_wei(outcome.amount or 0), outcome.tx_hash,
            )
        elif outcome.status is OutcomeStatus.TIMED_OUT:
            _log.warning(
                "[%d/%d] %s: transfer %s included but %s balance not updated yet",
                index, total, account.name, outcome.tx_hash, self.destination.name,
            )
        else:
            _log.warning(
                "[%d/%d] Failed to fund %s (%s: %s), continuing...",
                index, total, account.name, outcome.error_kind, outcome.error,
            )

    def run(self, accounts: Sequence[AccountRecord]) -> BatchResult:
        """Fund ``accounts`` in order and return the (possibly partial) result.

        :class:`ConfigurationError` and :class:`LedgerUnavailable` abort the
        batch: the partial summary is logged and the error re-raised.
        """

        result = BatchResult()
        total = len(accounts)
        LOGGER.log("batch_start", domain=self.destination.name, total=total, funder=self.source.ledger.address)
        for index, account in enumerate(accounts, start=1):
            if self.cancel_token.cancelled:
                result.cancelled = True
                record_cancel_event("orchestrator", self.cancel_token, processed=result.total, total=total)
                _log.warning("Funding interrupted after %d of %d accounts", result.total, total)
                break
            _log.info("[%d/%d] Funding %s at %s", index, total, account.name, account.address)
            try:
                outcome = self.process(account)
            except (ConfigurationError, LedgerUnavailable) as exc:
                LOGGER.log(
                    "batch_aborted",
                    account=account.address,
                    domain=self.destination.name,
                    error=str(exc),
                    error_kind=type(exc).__name__,
                    **result.summary(),
                )
                _log.error("Funding aborted at %s (%d of %d): %s", account.name, index, total, exc)
                raise
            result.record(account, outcome)
            self._report(index, total, account, outcome)

        LOGGER.log("batch_complete", domain=self.destination.name, **result.summary())
        _log.info(
            "Funding completed: %d succeeded (%d awaiting destination sync), %d skipped, %d failed",
            result.succeeded, result.timed_out, result.skipped, result.failed,
        )
        return result
