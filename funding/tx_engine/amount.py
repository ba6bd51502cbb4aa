"""Decide how much value can be moved from a live balance.

Pure functions; amounts may be ``int`` wei or ``Decimal`` ether as long as
all three arguments share a unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from funding.errors import InsufficientFunds

Amount = Union[int, Decimal]


@dataclass(frozen=True)
class Resolution:
    amount: Amount
    fallback: bool


def resolve(requested: Amount, balance: Amount, fee_reserve: Amount) -> Resolution:
    """Return the transferable amount and whether the fee-safe fallback applied.

    Raises :class:`InsufficientFunds` when the balance is empty or does not
    exceed ``fee_reserve``.
    """

    if requested <= 0:
        raise ValueError("requested amount must be > 0")
    if balance < 0:
        raise ValueError("balance must be >= 0")
    if fee_reserve < 0:
        raise ValueError("fee reserve must be >= 0")

    if balance == 0:
        raise InsufficientFunds("source balance is zero", balance=balance, requested=requested)
    if balance >= requested:
        return Resolution(requested, False)
    if balance > fee_reserve:
        return Resolution(balance - fee_reserve, True)
    raise InsufficientFunds(
        "insufficient balance even for fee reserve", balance=balance, requested=requested
    )


def resolve_amount(requested: Amount, balance: Amount, fee_reserve: Amount) -> Amount:
    return resolve(requested, balance, fee_reserve).amount
