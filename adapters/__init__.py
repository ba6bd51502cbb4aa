"""Adapters package for ledger RPC providers."""

from .ledger import FeeData, Ledger, Web3Ledger

__all__ = ["FeeData", "Ledger", "Web3Ledger"]
