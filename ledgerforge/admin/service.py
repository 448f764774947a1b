"""Administrative operations for LedgerForge bots."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone

from ..domain.events import EventBus
from ..domain.exceptions import InvalidAmount, ItemNotFound
from ..domain.ledger import LedgerService
from ..domain.locks import account_key, item_key
from ..storage.base import AuditStore, ShopItemRecord, ShopStore

logger = logging.getLogger(__name__)

EDITABLE_ITEM_FIELDS = frozenset({"name", "price", "description", "stock", "is_active", "capability"})


class AdminService:
    def __init__(
        self,
        ledger: LedgerService,
        shop_store: ShopStore,
        audit_store: AuditStore,
        event_bus: EventBus,
        *,
        audit_enabled: bool = True,
    ) -> None:
        self._ledger = ledger
        self._shop_store = shop_store
        self._audit_store = audit_store
        self._events = event_bus
        self._audit_enabled = audit_enabled
        self._locks = ledger.locks

    async def grant_coins(
        self, guild_id: str, user_id: str, amount: int, *, actor_id: str | None = None
    ) -> int:
        new_wallet = await self._ledger.add_balance(
            guild_id, user_id, amount, f"Admin grant by {actor_id or 'system'}", kind="admin_grant"
        )
        await self._audit(
            "grant_coins",
            {"guild_id": guild_id, "user_id": user_id, "amount": amount, "actor_id": actor_id},
        )
        await self._events.publish(
            "admin.coins.granted", {"guild_id": guild_id, "user_id": user_id, "amount": amount}
        )
        return new_wallet

    async def create_item(self, item: ShopItemRecord, *, exist_ok: bool = False) -> ShopItemRecord:
        """Add a new shop item.

        With ``exist_ok`` an item that is already stored is returned untouched
        instead of raising, so its sold stock is never reset.
        """
        _check_item(item)
        async with self._locks.hold(item_key(item.guild_id, item.item_id)):
            existing = await self._shop_store.get_item(item.guild_id, item.item_id)
            if existing is not None:
                if exist_ok:
                    return existing
                raise ValueError(f"Item {item.item_id} already exists in guild {item.guild_id}")
            await self._shop_store.put_item(item)
        logger.info("Created shop item %s/%s priced %s", item.guild_id, item.item_id, item.price)
        await self._audit("create_item", _item_payload(item))
        await self._events.publish("admin.item.created", _item_payload(item))
        return replace(item)

    async def update_item(self, guild_id: str, item_id: str, /, **changes) -> ShopItemRecord:
        unknown = set(changes) - EDITABLE_ITEM_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit item fields: {', '.join(sorted(unknown))}")
        async with self._locks.hold(item_key(guild_id, item_id)):
            item = await self._require_item(guild_id, item_id)
            updated = replace(item, **changes)
            _check_item(updated)
            await self._shop_store.put_item(updated)
        await self._audit("update_item", {"guild_id": guild_id, "item_id": item_id, **changes})
        await self._events.publish("admin.item.updated", _item_payload(updated))
        return updated

    async def restock(self, guild_id: str, item_id: str, amount: int) -> ShopItemRecord:
        """Add ``amount`` units; an unlimited item stays unlimited."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"Restock amount must be a positive integer, got {amount!r}")
        async with self._locks.hold(item_key(guild_id, item_id)):
            item = await self._require_item(guild_id, item_id)
            if not item.unlimited:
                item.stock += amount
                await self._shop_store.put_item(item)
        logger.info("Restocked %s/%s by %s (stock now %s)", guild_id, item_id, amount, item.stock)
        await self._audit("restock", {"guild_id": guild_id, "item_id": item_id, "amount": amount})
        await self._events.publish("admin.item.restocked", _item_payload(item))
        return item

    async def disable_item(self, guild_id: str, item_id: str) -> ShopItemRecord:
        async with self._locks.hold(item_key(guild_id, item_id)):
            item = await self._require_item(guild_id, item_id)
            item.is_active = False
            await self._shop_store.put_item(item)
        await self._audit("disable_item", {"guild_id": guild_id, "item_id": item_id})
        await self._events.publish("admin.item.disabled", {"guild_id": guild_id, "item_id": item_id})
        return item

    async def reset_cooldowns(self, guild_id: str, user_id: str) -> None:
        async with self._locks.hold(account_key(guild_id, user_id)):
            record = await self._ledger.load_account(guild_id, user_id)
            record.last_daily_at = None
            record.last_work_at = None
            await self._ledger.store.save(record)
        await self._audit("reset_cooldowns", {"guild_id": guild_id, "user_id": user_id})
        await self._events.publish(
            "admin.cooldowns.reset", {"guild_id": guild_id, "user_id": user_id}
        )

    async def _require_item(self, guild_id: str, item_id: str) -> ShopItemRecord:
        item = await self._shop_store.get_item(guild_id, item_id)
        if item is None:
            raise ItemNotFound(f"Item {item_id} not found in guild {guild_id}")
        return item

    async def _audit(self, action: str, payload: dict) -> None:
        if not self._audit_enabled:
            return
        await self._audit_store.add_entry(
            action,
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                **payload,
            },
        )


def _check_item(item: ShopItemRecord) -> None:
    if not item.item_id:
        raise ValueError("Item id must not be empty")
    if isinstance(item.price, bool) or not isinstance(item.price, int) or item.price <= 0:
        raise ValueError(f"Item {item.item_id} price must be a positive integer")
    if item.stock < -1:
        raise ValueError(f"Item {item.item_id} stock must be -1 (unlimited) or non-negative")


def _item_payload(item: ShopItemRecord) -> dict:
    return {
        "guild_id": item.guild_id,
        "item_id": item.item_id,
        "name": item.name,
        "price": item.price,
        "stock": item.stock,
        "is_active": item.is_active,
    }
