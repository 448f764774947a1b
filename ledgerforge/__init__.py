"""LedgerForge framework public API."""

from .app import EconomyApp
from .config import LedgerForgeConfig
from .domain.blackjack import BlackjackService
from .domain.ledger import LedgerService
from .domain.shop import ShopService

__all__ = [
    "EconomyApp",
    "LedgerForgeConfig",
    "BlackjackService",
    "LedgerService",
    "ShopService",
]
