"""In-memory storage backend for LedgerForge."""

from __future__ import annotations

from collections import deque
from dataclasses import replace
from datetime import datetime, timezone
from typing import Deque, Sequence

from ..domain.exceptions import OutOfStock
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

LEADERBOARD_KEYS = {
    "wallet": lambda record: record.wallet,
    "bank": lambda record: record.bank,
    "total": lambda record: record.wallet + record.bank,
}


class InMemoryTransactionStore(TransactionStore):
    def __init__(self, *, maxlen: int = 5000) -> None:
        self._journal: Deque[TransactionRecord] = deque(maxlen=maxlen)

    def append(self, records: Sequence[TransactionRecord]) -> None:
        self._journal.extend(replace(record) for record in records)

    async def recent_for_user(
        self, guild_id: str, user_id: str, limit: int = 10
    ) -> Sequence[TransactionRecord]:
        filtered = [
            replace(rec)
            for rec in reversed(self._journal)
            if rec.guild_id == guild_id and rec.user_id == user_id
        ]
        return filtered[:limit]


class InMemoryAccountStore(AccountStore):
    """Rows live in a dict; callers always receive detached copies."""

    def __init__(self, journal: InMemoryTransactionStore | None = None) -> None:
        self._records: dict[tuple[str, str], AccountRecord] = {}
        self.journal = journal or InMemoryTransactionStore()

    async def get_or_create(
        self, guild_id: str, user_id: str, *, starting_wallet: int = 0
    ) -> AccountRecord:
        key = (guild_id, user_id)
        if key not in self._records:
            self._records[key] = AccountRecord(
                guild_id=guild_id,
                user_id=user_id,
                wallet=starting_wallet,
                total_earned=starting_wallet,
            )
        return replace(self._records[key])

    async def save(
        self,
        *records: AccountRecord,
        transactions: Sequence[TransactionRecord] = (),
    ) -> None:
        for record in records:
            self._records[record.key] = replace(record)
        self.journal.append(transactions)

    async def top(self, guild_id: str, *, by: str = "wallet", limit: int = 10) -> Sequence[AccountRecord]:
        sort_key = LEADERBOARD_KEYS[by]
        rows = [replace(rec) for rec in self._records.values() if rec.guild_id == guild_id]
        rows.sort(key=sort_key, reverse=True)
        return rows[:limit]

    def write_row(self, record: AccountRecord) -> None:
        self._records[record.key] = replace(record)


class InMemoryShopStore(ShopStore):
    def __init__(self, accounts: InMemoryAccountStore) -> None:
        self._accounts = accounts
        self._items: dict[tuple[str, str], ShopItemRecord] = {}
        self._inventory: dict[tuple[str, str, str], InventoryRecord] = {}

    async def get_item(self, guild_id: str, item_id: str) -> ShopItemRecord | None:
        item = self._items.get((guild_id, item_id))
        return replace(item) if item else None

    async def list_items(self, guild_id: str, *, active_only: bool = True) -> Sequence[ShopItemRecord]:
        items = [
            replace(item)
            for item in self._items.values()
            if item.guild_id == guild_id and (item.is_active or not active_only)
        ]
        items.sort(key=lambda item: (item.price, item.name))
        return items

    async def put_item(self, item: ShopItemRecord) -> None:
        self._items[(item.guild_id, item.item_id)] = replace(item)

    async def commit_purchase(self, commit: PurchaseCommit) -> InventoryRecord:
        key = (commit.item.guild_id, commit.item.item_id)
        stored = self._items[key]
        if stored.stock != -1 and stored.stock < commit.quantity:
            raise OutOfStock(stored.stock, commit.quantity)

        inv_key = (commit.account.guild_id, commit.account.user_id, commit.item.item_id)
        entry = self._inventory.get(inv_key)
        if entry is None:
            entry = InventoryRecord(
                guild_id=commit.account.guild_id,
                user_id=commit.account.user_id,
                item_id=commit.item.item_id,
                quantity=0,
                acquired_at=commit.acquired_at,
            )
        entry = replace(entry, quantity=entry.quantity + commit.quantity)

        if stored.stock != -1:
            self._items[key] = replace(stored, stock=stored.stock - commit.quantity)
        self._inventory[inv_key] = entry
        self._accounts.write_row(commit.account)
        self._accounts.journal.append([commit.transaction])
        return replace(entry)

    async def inventory(self, guild_id: str, user_id: str) -> Sequence[InventoryRecord]:
        return [
            replace(entry)
            for (g_id, u_id, _), entry in self._inventory.items()
            if g_id == guild_id and u_id == user_id
        ]


class InMemoryAuditStore(AuditStore):
    def __init__(self, *, maxlen: int = 1000) -> None:
        self._entries: Deque[tuple[datetime, str, dict]] = deque(maxlen=maxlen)

    async def add_entry(self, action: str, payload: dict) -> None:
        self._entries.append((datetime.now(timezone.utc), action, payload))

    def dump(self) -> list[tuple[datetime, str, dict]]:
        return list(self._entries)
