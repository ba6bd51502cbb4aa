"""Tests for the amount resolver."""

from decimal import Decimal

import pytest

from funding.errors import InsufficientFunds
from funding.tx_engine.amount import resolve, resolve_amount

ETH = 10**18


def test_fallback_uses_balance_minus_reserve() -> None:
    res = resolve(Decimal("10000"), Decimal("5"), Decimal("0.01"))
    assert res.amount == Decimal("4.99")
    assert res.fallback is True
    assert res.amount + Decimal("0.01") == Decimal("5")


def test_full_amount_when_balance_covers_it() -> None:
    res = resolve(3 * ETH, 5 * ETH, ETH // 100)
    assert res.amount == 3 * ETH
    assert res.fallback is False


def test_exact_balance_is_not_fallback() -> None:
    assert resolve_amount(5 * ETH, 5 * ETH, ETH // 100) == 5 * ETH


def test_zero_balance_is_insufficient() -> None:
    with pytest.raises(InsufficientFunds) as info:
        resolve(ETH, 0, ETH // 100)
    assert info.value.balance == 0


@pytest.mark.parametrize("balance", [ETH // 100, ETH // 200])
def test_balance_not_above_reserve_is_insufficient(balance: int) -> None:
    with pytest.raises(InsufficientFunds):
        resolve(ETH, balance, ETH // 100)


def test_zero_reserve_moves_whole_balance() -> None:
    assert resolve_amount(10 * ETH, 7, 0) == 7


def test_resolution_never_exceeds_balance() -> None:
    for balance in (1, 999, ETH // 100 + 1, 2 * ETH, 50 * ETH):
        try:
            res = resolve(10 * ETH, balance, ETH // 100)
        except InsufficientFunds:
            continue
        assert res.amount <= balance
        if res.fallback:
            assert res.amount + ETH // 100 == balance


def test_identical_inputs_identical_output() -> None:
    first = resolve(10 * ETH, 3 * ETH, ETH // 100)
    assert all(resolve(10 * ETH, 3 * ETH, ETH // 100) == first for _ in range(5))


@pytest.mark.parametrize(
    "requested,balance,reserve",
    [(0, 1, 0), (-1, 1, 0), (1, -1, 0), (1, 1, -1)],
)
def test_invalid_inputs(requested: int, balance: int, reserve: int) -> None:
    with pytest.raises(ValueError):
        resolve(requested, balance, reserve)
