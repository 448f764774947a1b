"""Testing utilities for LedgerForge."""

from .factory import AccountFactory, ShopItemFactory, StackedDeckRandom, card
from .fixtures import app_fixture, memory_app
from .test_client import TestClient

__all__ = [
    "AccountFactory",
    "ShopItemFactory",
    "StackedDeckRandom",
    "card",
    "app_fixture",
    "memory_app",
    "TestClient",
]
