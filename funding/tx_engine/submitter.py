"""Transfer submitter: sign, broadcast and wait for source-domain inclusion.

Module purpose and system role:
- Send one value transfer from the funding credential on the source domain.
- Estimate gas, falling back to a fixed limit when estimation fails.
- Retry transport errors on broadcast, then wait for one confirmation.
- Emits JSON tx logs for auditing.

Integration points and dependencies:
- Uses :class:`NonceManager` for nonce assignment.
- Relies on a :class:`adapters.ledger.Ledger` for RPC calls.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional

from funding import metrics
from funding.config import TransferConfig, from_wei
from funding.errors import ConfigurationError, SubmissionError
from funding.logger import StructuredLogger
from funding.models import InclusionReceipt, TransferRequest

from .nonce_manager import NonceManager

LOG = StructuredLogger("tx_submitter")


class TransferSubmitter:
    """Submits transfers for one signing credential."""

    def __init__(
        self,
        nonce_manager: NonceManager,
        config: TransferConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.nonce_manager = nonce_manager
        self.config = config
        self._sleep = sleep

    # ------------------------------------------------------------------
    def _estimate_gas(self, request: TransferRequest, tx: Dict[str, Any]) -> int:
        ledger = request.source_domain.ledger
        try:
            estimated = int(ledger.estimate_gas(tx))
        except Exception as exc:  # estimation failure is not fatal
            metrics.record_gas_fallback()
            LOG.log(
                "gas_estimate_fallback",
                domain=request.source_domain.name,
                account=request.recipient_address,
                gas_limit=self.config.fallback_gas_limit,
                reason=str(exc),
            )
            return self.config.fallback_gas_limit
        return int(estimated * self.config.gas_margin)

    def _log_cost(self, request: TransferRequest, gas_limit: int) -> None:
        try:
            gas_price = request.source_domain.ledger.get_fee_data().gas_price
        except Exception as exc:
            LOG.log("fee_data_unavailable", domain=request.source_domain.name, reason=str(exc))
            return
        LOG.log(
            "estimated_cost",
            domain=request.source_domain.name,
            gas_limit=gas_limit,
            gas_price=gas_price,
            cost_eth=from_wei(gas_limit * gas_price),
        )

    # ------------------------------------------------------------------
    def submit(self, request: TransferRequest, amount: int) -> InclusionReceipt:
        """Send ``amount`` for ``request`` and block until it is included.

        Raises :class:`SubmissionError` when the broadcast is rejected, the
        receipt is not seen within ``inclusion_timeout`` or the transaction
        reverted.
        """

        ledger = request.source_domain.ledger
        sender = ledger.address
        if not sender:
            raise ConfigurationError(f"{request.source_domain.name} ledger has no signing credential")

        tx: Dict[str, Any] = {"from": sender, "to": request.target, "value": int(amount)}
        if request.data:
            tx["data"] = request.data
        gas_limit = self._estimate_gas(request, tx)
        self._log_cost(request, gas_limit)

        nonce = self.nonce_manager.get_nonce(sender)
        tx_hash: Optional[str] = None
        last_err: Optional[Exception] = None
        for attempt in range(1, self.config.send_attempts + 1):
            try:
                tx_hash = ledger.send_transaction(
                    request.target, int(amount), request.data, gas_limit, nonce=nonce
                )
                LOG.log(
                    "sent",
                    tx_id=tx_hash,
                    account=request.recipient_address,
                    domain=request.source_domain.name,
                    to=request.target,
                    amount=str(amount),
                    gas_limit=gas_limit,
                    nonce=nonce,
                    attempt=attempt,
                )
                last_err = None
                break
            except Exception as exc:
                last_err = exc
                LOG.log(
                    "send_failed",
                    account=request.recipient_address,
                    domain=request.source_domain.name,
                    error=str(exc),
                    nonce=nonce,
                    attempt=attempt,
                )
                if attempt < self.config.send_attempts:
                    metrics.record_retry()
                    self._sleep(0.5 * attempt)

        if last_err is not None or tx_hash is None:
            self.nonce_manager.reset_nonce(sender)
            raise SubmissionError(f"broadcast rejected: {last_err}") from last_err

        try:
            receipt = ledger.wait_for_receipt(tx_hash, self.config.inclusion_timeout)
        except SubmissionError:
            self.nonce_manager.reset_nonce(sender, tx_id=tx_hash)
            raise
        except Exception as exc:
            self.nonce_manager.reset_nonce(sender, tx_id=tx_hash)
            raise SubmissionError(f"inclusion wait failed: {exc}", tx_hash=tx_hash) from exc

        if receipt.status != 1:
            LOG.log("reverted", tx_id=tx_hash, block=receipt.block_number, error="transaction reverted")
            raise SubmissionError("transaction reverted", tx_hash=tx_hash)

        LOG.log(
            "included",
            tx_id=tx_hash,
            account=request.recipient_address,
            domain=request.source_domain.name,
            block=receipt.block_number,
            gas_used=receipt.gas_used,
        )
        return receipt
