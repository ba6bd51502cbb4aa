"""Value types shared by the submitter, poller and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:  # pragma: no cover - typing only
    from adapters.ledger import Ledger


class OutcomeStatus(Enum):
    """Terminal state of one transfer attempt."""

    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class AccountRecord:
    """Funding target loaded from the account list."""

    name: str
    address: str
    requested_amount: int


@dataclass(frozen=True)
class Domain:
    """One side of a transfer: a named ledger and its chain id."""

    name: str
    chain_id: int
    ledger: "Ledger"


@dataclass(frozen=True)
class TransferRequest:
    """A single transfer attempt.

    ``submit_to`` is the address the transaction is sent to on the source
    domain (an inbox for cross-domain deposits); when unset the value goes
    straight to ``recipient_address``.
    """

    source_domain: Domain
    destination_domain: Domain
    recipient_address: str
    requested_amount: int
    fee_reserve: int
    submit_to: Optional[str] = None
    data: Optional[str] = None

    @property
    def target(self) -> str:
        return self.submit_to or self.recipient_address


@dataclass(frozen=True)
class InclusionReceipt:
    """Source-domain inclusion proof for a submitted transfer."""

    tx_hash: str
    block_number: int
    gas_used: int = 0
    status: int = 1


@dataclass(frozen=True)
class TransferOutcome:
    status: OutcomeStatus
    tx_hash: Optional[str] = None
    confirmed_delta: Optional[int] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None
    amount: Optional[int] = None

    @classmethod
    def skipped(cls) -> "TransferOutcome":
        return cls(OutcomeStatus.SKIPPED)

    @classmethod
    def failed(cls, exc: BaseException, *, tx_hash: str | None = None, amount: int | None = None) -> "TransferOutcome":
        return cls(
            OutcomeStatus.FAILED,
            tx_hash=tx_hash,
            error_kind=type(exc).__name__,
            error=str(exc),
            amount=amount,
        )


@dataclass
class BatchResult:
    """Aggregate of a batch run; grows in input order."""

    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: List[Tuple[AccountRecord, TransferOutcome]] = field(default_factory=list)
    cancelled: bool = False

    def record(self, account: AccountRecord, outcome: TransferOutcome) -> None:
        self.outcomes.append((account, outcome))
        if outcome.status in (OutcomeStatus.SUCCEEDED, OutcomeStatus.TIMED_OUT):
            self.succeeded += 1
        elif outcome.status is OutcomeStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    @property
    def timed_out(self) -> int:
        return sum(1 for _, o in self.outcomes if o.status is OutcomeStatus.TIMED_OUT)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def summary(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "timed_out": self.timed_out,
            "skipped": self.skipped,
            "failed": self.failed,
            "total": self.total,
            "cancelled": self.cancelled,
        }
