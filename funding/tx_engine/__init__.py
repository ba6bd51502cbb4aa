"""Transaction engine: amount resolution, nonces, submission, cancellation."""

from .amount import Resolution, resolve, resolve_amount
from .cancellation import CancellationToken, install_signal_handlers, record_cancel_event
from .nonce_manager import NonceManager
from .submitter import TransferSubmitter

__all__ = [
    "Resolution",
    "resolve",
    "resolve_amount",
    "CancellationToken",
    "install_signal_handlers",
    "record_cancel_event",
    "NonceManager",
    "TransferSubmitter",
]
