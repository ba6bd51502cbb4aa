"""Error taxonomy for transfer attempts."""

from __future__ import annotations


class FundingError(Exception):
    """Base class for funding engine errors."""


class ConfigurationError(FundingError):
    """Raised when a required input (URL, credential, file) is missing or invalid."""


class LedgerUnavailable(FundingError):
    """Raised when a ledger RPC endpoint cannot be reached."""


class InsufficientFunds(FundingError):
    """Raised when not even the fee-safe fallback amount is available."""

    def __init__(self, message: str, *, balance: int | None = None, requested: int | None = None) -> None:
        super().__init__(message)
        self.balance = balance
        self.requested = requested


class SubmissionError(FundingError):
    """Raised when the source ledger rejects or never includes a transaction."""

    def __init__(self, message: str, *, tx_hash: str | None = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class ConfirmationTimeout(FundingError):
    """Destination balance change not observed within the wait budget.

    This is a soft signal: the source-side transfer is already final.
    """

    def __init__(self, message: str, *, samples: int = 0, elapsed: float = 0.0) -> None:
        super().__init__(message)
        self.samples = samples
        self.elapsed = elapsed
