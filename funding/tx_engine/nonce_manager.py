"""Nonce manager for the single signing credential of a batch.

Module purpose and system role:
- Hand out sequential nonces for the funding credential so consecutive
  transfers never reuse or skip one.
- Syncs with the pending on-chain nonce when the cache is empty or reset.
- Emits structured logs for auditing nonce drift.

Integration points and dependencies:
- Expects a :class:`adapters.ledger.Ledger` for ``get_nonce`` RPC calls.
- Owned by exactly one :class:`TransferSubmitter`; batches are sequential,
  so there is no locking.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional

from funding.logger import StructuredLogger

if TYPE_CHECKING:  # pragma: no cover - typing only
    from adapters.ledger import Ledger

LOG = StructuredLogger("nonce_manager")


class NonceManager:
    """Per-address nonce cache backed by the source ledger."""

    def __init__(self, ledger: "Ledger") -> None:
        self.ledger = ledger
        self._nonces: Dict[str, int] = {}

    def _fetch_onchain_nonce(self, address: str) -> int:
        return int(self.ledger.get_nonce(address))

    # ------------------------------------------------------------------
    def get_nonce(self, address: str, tx_id: str = "") -> int:
        """Return next nonce for ``address`` using the local cache when available."""

        key = address.lower()
        on_chain: Optional[int] = None
        if key in self._nonces:
            local_nonce = self._nonces[key] + 1
        else:
            on_chain = self._fetch_onchain_nonce(address)
            local_nonce = on_chain
        self._nonces[key] = local_nonce
        LOG.log("get", tx_id=tx_id, account=address, on_chain_nonce=on_chain, local_nonce=local_nonce)
        return local_nonce

    def peek(self, address: str) -> Optional[int]:
        """Return the last nonce handed out for ``address``, if any."""
        return self._nonces.get(address.lower())

    def reset_nonce(self, address: str, tx_id: str = "") -> None:
        """Forget the cached nonce for ``address`` so the next call resyncs."""

        self._nonces.pop(address.lower(), None)
        LOG.log("reset", tx_id=tx_id, account=address)
