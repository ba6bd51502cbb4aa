"""Structured JSON logger for the funding engine.

Module purpose and system role:
    - Record every transfer attempt, poll heartbeat and batch summary as one
      JSON object per line so runs can be audited after the fact.
    - Mirror entries carrying an ``error`` into a shared error log.

Integration points and dependencies:
    - ``requests`` is used only to POST alerts to ``OPS_ALERT_WEBHOOK``.
    - Other modules instantiate ``StructuredLogger`` at import time.

Simulation/test hooks:
    - ``register_hook`` lets tests observe entries without reading files.
    - Log paths are resolved per call so tests can redirect them.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List

import requests

_log = logging.getLogger(__name__)


def _error_log_file() -> Path:
    """Return the configured error log file path."""

    return Path(os.getenv("ERROR_LOG_FILE", "logs/errors.log"))


def make_json_safe(value: Any) -> Any:
    """Return ``value`` converted into something ``json.dumps`` accepts."""

    if isinstance(value, dict):
        return {str(k): make_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [make_json_safe(v) for v in value]
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Path):
        return str(value)
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return f"<{type(value).__name__}>"


def log_error(
    module: str,
    error: str,
    *,
    tx_id: str = "",
    account: str = "",
    domain: str = "",
    block: int | str | None = None,
    trace_id: str | None = None,
    **extra: Any,
) -> None:
    """Write structured error entry to ``logs/errors.log``."""

    if trace_id is None:
        trace_id = os.getenv("TRACE_ID", "")
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "module": module,
        "error": error,
        "tx_id": tx_id,
        "account": account,
        "domain": domain,
        "block": block if block is not None else "",
        "trace_id": trace_id,
        **extra,
    }
    path = _error_log_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a") as fh:
        fh.write(json.dumps(make_json_safe(entry)) + "\n")


_HOOKS: List[Callable[[Dict[str, Any]], None]] = []


def _alert_webhooks() -> List[str]:
    return [w for w in os.getenv("OPS_ALERT_WEBHOOK", "").split(",") if w]


def _send_alert(message: str) -> None:
    for url in _alert_webhooks():
        try:  # pragma: no cover - network
            requests.post(url, json={"text": message}, timeout=5)
        except requests.RequestException as exc:
            _log.warning("alert webhook %s failed: %s", url, exc)


def register_hook(func: Callable[[Dict[str, Any]], None]) -> None:
    """Register ``func`` to receive every log entry."""
    _HOOKS.append(func)


def unregister_hook(func: Callable[[Dict[str, Any]], None]) -> None:
    if func in _HOOKS:
        _HOOKS.remove(func)


class StructuredLogger:
    """Write structured JSON logs to file and broadcast to hooks."""

    def __init__(self, module: str, log_file: str | None = None) -> None:
        self.module = module
        self._log_file = log_file

    @property
    def path(self) -> Path:
        if self._log_file is not None:
            return Path(self._log_file)
        env_var = f"{self.module.upper()}_LOG"
        return Path(os.getenv(env_var, f"logs/{self.module}.json"))

    # ------------------------------------------------------------------
    def log(
        self,
        event: str,
        *,
        tx_id: str = "",
        account: str = "",
        domain: str = "",
        block: int | str | None = None,
        error: str | None = None,
        trace_id: str | None = None,
        alert: bool = False,
        **extra: Any,
    ) -> None:
        """Append log entry to file and send to hooks."""

        if trace_id is None:
            trace_id = os.getenv("TRACE_ID", "")
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "module": self.module,
            "tx_id": tx_id,
            "account": account,
            "domain": domain,
            "block": block if block is not None else "",
            "error": error,
            "trace_id": trace_id,
        }
        entry.update(make_json_safe(extra))
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a") as fh:
            fh.write(json.dumps(entry) + "\n")
        for hook in list(_HOOKS):
            try:
                hook(entry)
            except Exception as exc:
                # hook errors never interrupt logging
                log_error(
                    self.module,
                    f"hook error: {exc}",
                    event="hook_fail",
                    trace_id=trace_id,
                )
        if error:
            log_error(
                self.module,
                error,
                event=event,
                tx_id=tx_id,
                account=account,
                domain=domain,
                block=block,
                trace_id=trace_id,
            )
        if error or alert:
            _send_alert(f"{self.module}:{event}:{error or ''}")
