"""Ledger provider adapter.

Module purpose and system role:
    - Expose the handful of RPC capabilities the transfer engine needs
      (balance, nonce, gas estimate, fee data, submit/wait) behind a single
      :class:`Ledger` protocol.
    - Normalize the varying shapes web3 returns (attribute dicts, plain
      mappings, ``HexBytes`` or ``str`` hashes) so callers see plain ints
      and ``0x`` strings.

Integration points and dependencies:
    - ``web3`` for JSON-RPC, ``eth_account`` for local signing.
    - Tests substitute any object implementing :class:`Ledger`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TimeExhausted

from funding.errors import ConfigurationError, LedgerUnavailable, SubmissionError
from funding.logger import StructuredLogger
from funding.models import InclusionReceipt

LOG = StructuredLogger("ledger")

DEFAULT_RPC_TIMEOUT = 30


@dataclass(frozen=True)
class FeeData:
    gas_price: int


class Ledger(Protocol):
    """Capabilities the engine uses on one domain."""

    @property
    def chain_id(self) -> int: ...

    @property
    def address(self) -> Optional[str]: ...

    def block_number(self) -> int: ...

    def get_balance(self, address: str) -> int: ...

    def get_nonce(self, address: str) -> int: ...

    def estimate_gas(self, tx: Dict[str, Any]) -> int: ...

    def get_fee_data(self) -> FeeData: ...

    def send_transaction(
        self,
        to: str,
        value: int,
        data: Optional[str] = None,
        gas_limit: Optional[int] = None,
        *,
        nonce: Optional[int] = None,
    ) -> str: ...

    def wait_for_receipt(self, tx_hash: str, timeout: float) -> InclusionReceipt: ...


# ---------------------------------------------------------------------------
def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping-like or attribute-style response."""

    if isinstance(obj, dict):
        return obj.get(name, default)
    try:
        return obj[name]
    except (KeyError, TypeError, IndexError):
        return getattr(obj, name, default)


def to_hex_hash(value: Any) -> str:
    """Return a ``0x``-prefixed lowercase hex string for a tx hash."""

    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(bytes(value))
    text = str(value)
    return text if text.startswith("0x") else "0x" + text


def normalize_receipt(receipt: Any) -> InclusionReceipt:
    return InclusionReceipt(
        tx_hash=to_hex_hash(_field(receipt, "transactionHash", "")),
        block_number=int(_field(receipt, "blockNumber", 0) or 0),
        gas_used=int(_field(receipt, "gasUsed", 0) or 0),
        status=int(_field(receipt, "status", 1)),
    )


def load_credential(private_key: str) -> LocalAccount:
    """Parse a hex private key into a signing account."""

    if not private_key:
        raise ConfigurationError("private key is required")
    try:
        return Account.from_key(private_key)
    except (ValueError, TypeError) as exc:
        raise ConfigurationError("private key could not be parsed") from exc


def checksum(address: str) -> str:
    if not Web3.is_address(address):
        raise ConfigurationError(f"invalid address: {address!r}")
    return Web3.to_checksum_address(address)


# ---------------------------------------------------------------------------
class Web3Ledger:
    """:class:`Ledger` implementation over a web3 JSON-RPC connection."""

    def __init__(
        self,
        w3: Web3,
        credential: LocalAccount | None = None,
        *,
        name: str = "ledger",
        reader: Web3 | None = None,
    ) -> None:
        self.w3 = w3
        # balance reads go through ``reader``, which may carry a shorter timeout
        self.reader = reader or w3
        self.credential = credential
        self.name = name
        self._chain_id: Optional[int] = None

    @classmethod
    def connect(
        cls,
        rpc_url: str,
        private_key: str | None = None,
        *,
        name: str = "ledger",
        timeout: float = DEFAULT_RPC_TIMEOUT,
        read_timeout: float | None = None,
    ) -> "Web3Ledger":
        """Open ``rpc_url`` and check its chain id; raises :class:`LedgerUnavailable` when unreachable.

        ``read_timeout`` bounds balance reads separately from submissions.
        """

        if not rpc_url:
            raise ConfigurationError(f"{name} RPC URL is not configured")
        credential = load_credential(private_key) if private_key else None
        w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        reader = None
        if read_timeout is not None:
            reader = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": read_timeout}))
        ledger = cls(w3, credential, name=name, reader=reader)
        try:
            chain_id = ledger.chain_id
        except Exception as exc:
            raise LedgerUnavailable(f"unable to connect to {name} RPC {rpc_url}: {exc}") from exc
        LOG.log("connected", domain=name, rpc_url=rpc_url, chain_id=chain_id)
        return ledger

    # ------------------------------------------------------------------
    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(self.w3.eth.chain_id)
        return self._chain_id

    @property
    def address(self) -> Optional[str]:
        return self.credential.address if self.credential is not None else None

    def block_number(self) -> int:
        return int(self.w3.eth.block_number)

    def get_balance(self, address: str) -> int:
        try:
            return int(self.reader.eth.get_balance(checksum(address)))
        except ConfigurationError:
            raise
        except Exception as exc:
            raise LedgerUnavailable(f"{self.name} balance read failed: {exc}") from exc

    def get_nonce(self, address: str) -> int:
        return int(self.w3.eth.get_transaction_count(checksum(address), "pending"))

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return int(self.w3.eth.estimate_gas(tx))  # type: ignore[arg-type]

    def get_fee_data(self) -> FeeData:
        return FeeData(gas_price=int(self.w3.eth.gas_price))

    # ------------------------------------------------------------------
    def send_transaction(
        self,
        to: str,
        value: int,
        data: Optional[str] = None,
        gas_limit: Optional[int] = None,
        *,
        nonce: Optional[int] = None,
    ) -> str:
        """Sign with the bound credential and broadcast; returns the tx hash."""

        if self.credential is None:
            raise ConfigurationError(f"{self.name} ledger has no signing credential")
        sender = self.credential.address
        tx: Dict[str, Any] = {
            "from": sender,
            "to": checksum(to),
            "value": int(value),
            "chainId": self.chain_id,
            "nonce": nonce if nonce is not None else self.get_nonce(sender),
            "gasPrice": self.get_fee_data().gas_price,
        }
        if data:
            tx["data"] = data
        tx["gas"] = gas_limit if gas_limit is not None else self.estimate_gas(tx)
        signed = self.credential.sign_transaction(tx)
        raw = getattr(signed, "raw_transaction", None)
        if raw is None:  # eth-account < 0.13
            raw = signed.rawTransaction
        return to_hex_hash(self.w3.eth.send_raw_transaction(raw))

    def wait_for_receipt(self, tx_hash: str, timeout: float) -> InclusionReceipt:
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)  # type: ignore[arg-type]
        except TimeExhausted as exc:
            raise SubmissionError(
                f"{self.name} transaction not included within {timeout}s", tx_hash=tx_hash
            ) from exc
        return normalize_receipt(receipt)

    def submit_transaction(
        self,
        to: str,
        value: int,
        data: Optional[str] = None,
        gas_limit: Optional[int] = None,
        *,
        timeout: float = 120.0,
    ) -> InclusionReceipt:
        """Send and wait for one confirmation."""

        tx_hash = self.send_transaction(to, value, data, gas_limit)
        return self.wait_for_receipt(tx_hash, timeout)
