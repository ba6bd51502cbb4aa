"""Summary artifact written after a single transfer."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .config import from_wei
from .logger import StructuredLogger
from .models import TransferRequest

LOG = StructuredLogger("artifact")

STATUS_COMPLETED = "completed"
STATUS_UNCONFIRMED = "unconfirmed"


def transfer_summary(
    request: TransferRequest,
    *,
    tx_hash: str,
    amount: int,
    source_block: int,
    gas_used: int = 0,
    confirmed_delta: Optional[int] = None,
    timestamp: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build the summary record; status follows whether the delta was observed."""

    ts = timestamp or datetime.now(timezone.utc)
    return {
        "txHash": tx_hash,
        "amount": from_wei(amount),
        "sourceDomainId": str(request.source_domain.chain_id),
        "destinationDomainId": str(request.destination_domain.chain_id),
        "recipient": request.recipient_address,
        "inbox": request.submit_to,
        "timestamp": ts.isoformat(),
        "sourceBlock": source_block,
        "gasUsed": str(gas_used),
        "confirmedDelta": from_wei(confirmed_delta) if confirmed_delta is not None else None,
        "status": STATUS_COMPLETED if confirmed_delta is not None else STATUS_UNCONFIRMED,
    }


def write_summary(path: str | Path, summary: Dict[str, Any]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(summary, indent=2) + "\n")
    LOG.log("written", tx_id=summary.get("txHash", ""), path=str(p), status=summary.get("status"))
    return p
