"""Operator stop handling for batch runs.

A :class:`CancellationToken` is set by SIGINT/SIGTERM or by the presence of
a flag file. The orchestrator only looks at it between accounts, so an
attempt in flight always finishes and is recorded.
"""

from __future__ import annotations

import signal
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from funding import metrics
from funding.logger import StructuredLogger, log_error

LOG = StructuredLogger("cancellation")


class CancellationToken:
    """Cooperative stop flag checked at iteration boundaries."""

    def __init__(self, flag_file: str | Path | None = None) -> None:
        self._event = threading.Event()
        self.reason: str = ""
        self.flag_file = Path(flag_file) if flag_file else None

    def cancel(self, reason: str = "requested") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self.flag_file is not None and self.flag_file.exists():
            self.cancel(f"flag file {self.flag_file}")
            return True
        return False

    def clear(self) -> None:
        """Reset the token and remove the flag file, if any."""
        self._event.clear()
        self.reason = ""
        if self.flag_file is not None and self.flag_file.exists():
            self.flag_file.unlink()


def record_cancel_event(origin_module: str, token: CancellationToken, **extra: Any) -> None:
    """Log that ``origin_module`` stopped because ``token`` was set."""

    LOG.log("cancelled", origin_module=origin_module, reason=token.reason, alert=True, **extra)
    log_error(origin_module, f"run cancelled: {token.reason}", event="cancelled")
    metrics.record_cancel()


def install_signal_handlers(
    token: CancellationToken,
    signals: tuple[int, ...] = (signal.SIGINT, signal.SIGTERM),
) -> Callable[[], None]:
    """Route ``signals`` to ``token.cancel``; returns a function restoring the old handlers."""

    previous: Dict[int, Any] = {}

    def _handler(signum: int, _frame: Optional[Any]) -> None:
        name = signal.Signals(signum).name
        LOG.log("signal", signal=name)
        token.cancel(f"signal {name}")

    for sig in signals:
        previous[sig] = signal.signal(sig, _handler)

    def restore() -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    return restore
