"""Explicit configuration for the transfer engine.

Components receive a :class:`TransferConfig` at construction and never read
the process environment themselves. ``from_env`` and ``from_yaml`` are meant
for the CLI layer.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import yaml
from web3 import Web3

from .errors import ConfigurationError

ENV_PREFIX = "FUNDING_"

# Arbitrum inbox ``depositEth`` call, as used by the nitro testnode.
DEPOSIT_ETH_CALLDATA = "0x0f4d14e9000000000000000000000000000000000000000000000000000082f79cd90000"


def to_wei(amount: Any) -> int:
    """Convert a decimal ether amount (str, int, float, Decimal) to wei."""

    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ConfigurationError(f"invalid amount: {amount!r}") from exc
    if not value.is_finite() or value < 0:
        raise ConfigurationError(f"invalid amount: {amount!r}")
    return int(Web3.to_wei(value, "ether"))


def from_wei(amount: int) -> str:
    """Format ``amount`` wei as a plain decimal ether string."""

    value = Web3.from_wei(int(amount), "ether")
    return format(Decimal(value).normalize(), "f")


@dataclass(frozen=True)
class TransferConfig:
    poll_interval: float = 2.0
    max_wait: float = 120.0
    heartbeat_every: int = 5
    fee_reserve: int = 10**16  # 0.01 ether
    fallback_gas_limit: int = 300_000
    gas_margin: float = 1.2
    inclusion_timeout: float = 120.0
    send_attempts: int = 3
    skip_names: Tuple[str, ...] = ("funnel",)

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be > 0")
        if self.max_wait <= 0:
            raise ConfigurationError("max_wait must be > 0")
        if self.heartbeat_every <= 0:
            raise ConfigurationError("heartbeat_every must be > 0")
        if self.fee_reserve < 0:
            raise ConfigurationError("fee_reserve must be >= 0")
        if self.fallback_gas_limit <= 0:
            raise ConfigurationError("fallback_gas_limit must be > 0")
        if self.gas_margin < 1:
            raise ConfigurationError("gas_margin must be >= 1")
        if self.inclusion_timeout <= 0:
            raise ConfigurationError("inclusion_timeout must be > 0")
        if self.send_attempts < 1:
            raise ConfigurationError("send_attempts must be >= 1")

    # ------------------------------------------------------------------
    def with_overrides(self, **overrides: Any) -> "TransferConfig":
        """Return a copy with every non-``None`` override applied."""

        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TransferConfig":
        known = {f.name: f for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, raw in data.items():
            if key not in known:
                raise ConfigurationError(f"unknown config key: {key}")
            kwargs[key] = _coerce(key, raw)
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "TransferConfig":
        """Load config from a YAML file; keys may sit under a ``transfer`` section."""

        p = Path(path)
        if not p.exists():
            raise ConfigurationError(f"config file not found: {p}")
        try:
            data = yaml.safe_load(p.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"invalid YAML in {p}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"config root must be a mapping: {p}")
        section = data.get("transfer", data)
        if not isinstance(section, dict):
            raise ConfigurationError(f"transfer section must be a mapping: {p}")
        return cls.from_mapping(section)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "TransferConfig":
        """Build config from ``FUNDING_*`` variables, e.g. ``FUNDING_MAX_WAIT=60``."""

        env = os.environ if environ is None else environ
        data = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw:
                data[f.name] = raw
        return cls.from_mapping(data)


def _coerce(key: str, raw: Any) -> Any:
    try:
        if key == "fee_reserve":
            # given in ether, held in wei
            return to_wei(raw)
        if key == "skip_names":
            if isinstance(raw, str):
                return tuple(n.strip() for n in raw.split(",") if n.strip())
            return tuple(str(n) for n in raw)
        if key in {"heartbeat_every", "fallback_gas_limit", "send_attempts"}:
            return int(raw)
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid value for {key}: {raw!r}") from exc
