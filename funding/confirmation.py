"""Destination-domain confirmation polling.

The destination ledger reflects a transfer asynchronously (relay delay), so
completion is observed by sampling the recipient balance until it rises above
a baseline captured before submission, or until ``max_wait`` runs out.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from funding import metrics
from funding.config import TransferConfig, from_wei
from funding.errors import ConfirmationTimeout
from funding.logger import StructuredLogger
from funding.models import Domain

LOG = StructuredLogger("confirmation")
_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Confirmation:
    delta: int
    samples: int
    elapsed: float


class ConfirmationPoller:
    """Sample a destination balance until it increases or the budget expires."""

    def __init__(
        self,
        config: TransferConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._clock = clock
        self._sleep = sleep

    @property
    def max_samples(self) -> int:
        return max(1, math.ceil(self.config.max_wait / self.config.poll_interval))

    def capture_baseline(self, domain: Domain, address: str) -> int:
        """Read the balance the transfer will be measured against."""

        baseline = int(domain.ledger.get_balance(address))
        LOG.log("baseline", account=address, domain=domain.name, balance=str(baseline))
        return baseline

    def wait_for_increase(self, domain: Domain, address: str, baseline: int, *, tx_id: str = "") -> Confirmation:
        """Block until ``address`` on ``domain`` holds more than ``baseline``.

        Raises :class:`ConfirmationTimeout` after ``max_wait`` seconds or
        ``ceil(max_wait / poll_interval)`` samples, whichever comes first.
        """

        interval = self.config.poll_interval
        max_wait = self.config.max_wait
        start = self._clock()
        samples = 0
        while samples < self.max_samples:
            remaining = max_wait - (self._clock() - start)
            if remaining <= 0:
                break
            self._sleep(min(interval, remaining))
            samples += 1
            try:
                current = int(domain.ledger.get_balance(address))
            except Exception as exc:
                LOG.log("sample_failed", tx_id=tx_id, account=address, domain=domain.name, sample=samples, reason=str(exc))
                continue
            delta = current - baseline
            if delta > 0:
                elapsed = self._clock() - start
                metrics.record_confirmation(elapsed)
                LOG.log(
                    "detected",
                    tx_id=tx_id,
                    account=address,
                    domain=domain.name,
                    delta=str(delta),
                    samples=samples,
                    elapsed=round(elapsed, 3),
                )
                return Confirmation(delta, samples, elapsed)
            if samples % self.config.heartbeat_every == 0:
                elapsed = self._clock() - start
                _log.info("Still waiting for %s balance update... (%.0fs elapsed)", domain.name, elapsed)
                LOG.log("heartbeat", tx_id=tx_id, account=address, domain=domain.name, samples=samples, elapsed=round(elapsed, 3))

        elapsed = self._clock() - start
        LOG.log(
            "timed_out",
            tx_id=tx_id,
            account=address,
            domain=domain.name,
            samples=samples,
            elapsed=round(elapsed, 3),
            baseline=from_wei(baseline),
        )
        raise ConfirmationTimeout(
            f"{domain.name} balance of {address} did not change within {max_wait:g}s",
            samples=samples,
            elapsed=elapsed,
        )
