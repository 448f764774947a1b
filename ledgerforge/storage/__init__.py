"""Storage backends for LedgerForge."""

from .base import (
    AccountRecord,
    AccountStore,
    AuditStore,
    InventoryRecord,
    PurchaseCommit,
    ShopItemRecord,
    ShopStore,
    TransactionRecord,
    TransactionStore,
)
from .memory import (
    InMemoryAccountStore,
    InMemoryAuditStore,
    InMemoryShopStore,
    InMemoryTransactionStore,
)
from .sqlalchemy import AsyncSQLAlchemyStorage

__all__ = [
    "AccountRecord",
    "AccountStore",
    "AuditStore",
    "InventoryRecord",
    "PurchaseCommit",
    "ShopItemRecord",
    "ShopStore",
    "TransactionRecord",
    "TransactionStore",
    "InMemoryAccountStore",
    "InMemoryAuditStore",
    "InMemoryShopStore",
    "InMemoryTransactionStore",
    "AsyncSQLAlchemyStorage",
]
