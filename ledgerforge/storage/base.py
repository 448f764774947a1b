"""Storage abstractions used by the LedgerForge services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, Sequence


@dataclass(slots=True)
class AccountRecord:
    guild_id: str
    user_id: str
    wallet: int = 0
    bank: int = 0
    daily_streak: int = 0
    last_daily_at: datetime | None = None
    last_work_at: datetime | None = None
    total_earned: int = 0
    total_spent: int = 0

    @property
    def key(self) -> tuple[str, str]:
        return (self.guild_id, self.user_id)


@dataclass(slots=True)
class ShopItemRecord:
    guild_id: str
    item_id: str
    name: str
    price: int
    description: str = ""
    stock: int = -1
    is_active: bool = True
    capability: str | None = None

    @property
    def unlimited(self) -> bool:
        return self.stock == -1


@dataclass(slots=True)
class InventoryRecord:
    guild_id: str
    user_id: str
    item_id: str
    quantity: int = 0
    acquired_at: datetime | None = None


@dataclass(slots=True)
class TransactionRecord:
    guild_id: str
    user_id: str
    amount: int
    kind: str
    description: str
    timestamp: datetime
    counterparty_id: str | None = None


@dataclass(slots=True)
class PurchaseCommit:
    """Everything a purchase writes, committed as one unit."""

    account: AccountRecord
    item: ShopItemRecord
    quantity: int
    transaction: TransactionRecord
    acquired_at: datetime


class AccountStore(Protocol):
    async def get_or_create(
        self, guild_id: str, user_id: str, *, starting_wallet: int = 0
    ) -> AccountRecord:
        ...

    async def save(
        self,
        *records: AccountRecord,
        transactions: Sequence[TransactionRecord] = (),
    ) -> None:
        """Persist every record and journal entry atomically."""
        ...

    async def top(self, guild_id: str, *, by: str = "wallet", limit: int = 10) -> Sequence[AccountRecord]:
        ...


class ShopStore(Protocol):
    async def get_item(self, guild_id: str, item_id: str) -> ShopItemRecord | None:
        ...

    async def list_items(self, guild_id: str, *, active_only: bool = True) -> Sequence[ShopItemRecord]:
        ...

    async def put_item(self, item: ShopItemRecord) -> None:
        ...

    async def commit_purchase(self, commit: PurchaseCommit) -> InventoryRecord:
        """Decrement stock, write the debited account and upsert inventory together."""
        ...

    async def inventory(self, guild_id: str, user_id: str) -> Sequence[InventoryRecord]:
        ...


class TransactionStore(Protocol):
    async def recent_for_user(
        self, guild_id: str, user_id: str, limit: int = 10
    ) -> Sequence[TransactionRecord]:
        ...


class AuditStore(Protocol):
    async def add_entry(self, action: str, payload: dict) -> None:
        ...
