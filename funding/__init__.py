"""Value-transfer confirmation engine and batch funding orchestrator."""

from .config import TransferConfig
from .errors import (
    ConfigurationError,
    ConfirmationTimeout,
    FundingError,
    InsufficientFunds,
    LedgerUnavailable,
    SubmissionError,
)
from .models import (
    AccountRecord,
    BatchResult,
    Domain,
    InclusionReceipt,
    OutcomeStatus,
    TransferOutcome,
    TransferRequest,
)

__version__ = "0.1.0"

__all__ = [
    "TransferConfig",
    "ConfigurationError",
    "ConfirmationTimeout",
    "FundingError",
    "InsufficientFunds",
    "LedgerUnavailable",
    "SubmissionError",
    "AccountRecord",
    "BatchResult",
    "Domain",
    "InclusionReceipt",
    "OutcomeStatus",
    "TransferOutcome",
    "TransferRequest",
]
