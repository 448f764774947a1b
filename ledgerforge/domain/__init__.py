"""Domain models and services."""

from .blackjack import BlackjackGame, BlackjackService, GameResult, GameStatus
from .cards import Card, Rank, Suit
from .events import EventBus
from .ledger import Balance, Cooldowns, LeaderboardEntry, LedgerService, RewardClaim, TransferResult
from .locks import KeyedLocks
from .shop import CapabilityGranter, PurchaseResult, ShopService
from .wagers import WagerOutcome, WagerService
from .exceptions import (
    CooldownActive,
    GameAlreadyActive,
    InsufficientFunds,
    InvalidAmount,
    InvalidBet,
    InvalidTarget,
    ItemNotFound,
    LedgerForgeError,
    NoActiveGame,
    OutOfStock,
    SelfTransfer,
    StorageUnavailable,
)

__all__ = [
    "BlackjackGame",
    "BlackjackService",
    "GameResult",
    "GameStatus",
    "Card",
    "Rank",
    "Suit",
    "EventBus",
    "Balance",
    "Cooldowns",
    "LeaderboardEntry",
    "LedgerService",
    "RewardClaim",
    "TransferResult",
    "KeyedLocks",
    "CapabilityGranter",
    "PurchaseResult",
    "ShopService",
    "WagerOutcome",
    "WagerService",
    "CooldownActive",
    "GameAlreadyActive",
    "InsufficientFunds",
    "InvalidAmount",
    "InvalidBet",
    "InvalidTarget",
    "ItemNotFound",
    "LedgerForgeError",
    "NoActiveGame",
    "OutOfStock",
    "SelfTransfer",
    "StorageUnavailable",
]
