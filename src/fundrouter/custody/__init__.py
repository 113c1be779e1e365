"""Custody interfaces and the in-memory token bank."""

from fundrouter.custody.base import GasDelivery, Journaled, TokenTransfers
from fundrouter.custody.memory import InMemoryTokenBank, NativeGasCourier

__all__ = [
    "GasDelivery",
    "Journaled",
    "TokenTransfers",
    "InMemoryTokenBank",
    "NativeGasCourier",
]
