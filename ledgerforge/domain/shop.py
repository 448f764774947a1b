"""Shop catalog lookups and atomic purchases."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from ..storage.base import InventoryRecord, PurchaseCommit, ShopItemRecord, ShopStore
from . import events
from .events import EventBus
from .exceptions import InsufficientFunds, InvalidAmount, ItemNotFound, OutOfStock
from .ledger import LedgerService
from .locks import account_key, item_key

logger = logging.getLogger(__name__)


class CapabilityGranter(Protocol):
    """Platform hook that hands out whatever an item unlocks (a role, a badge...)."""

    async def grant(self, guild_id: str, user_id: str, capability: str) -> None:
        ...


@dataclass(slots=True)
class PurchaseResult:
    item: ShopItemRecord
    quantity: int
    total_price: int
    new_balance: int
    inventory: InventoryRecord
    capability_granted: bool | None = None


class ShopService:
    """Sell catalog items against the ledger.

    A purchase holds the buyer's account lock and the item's lock, then writes
    the stock decrement, wallet debit and inventory increment through one
    store call. Granting the item's capability happens afterwards and is not
    part of that unit.
    """

    def __init__(
        self,
        store: ShopStore,
        ledger: LedgerService,
        event_bus: EventBus,
        *,
        granter: CapabilityGranter | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._events = event_bus
        self._granter = granter
        self._locks = ledger.locks

    def attach_granter(self, granter: CapabilityGranter) -> None:
        self._granter = granter

    async def list_items(self, guild_id: str) -> Sequence[ShopItemRecord]:
        return await self._store.list_items(guild_id, active_only=True)

    async def get_item(self, guild_id: str, item_id: str) -> ShopItemRecord:
        item = await self._store.get_item(guild_id, item_id)
        if item is None or not item.is_active:
            raise ItemNotFound(f"Item {item_id} not found in guild {guild_id}")
        return item

    async def purchase(
        self, guild_id: str, user_id: str, item_id: str, quantity: int = 1
    ) -> PurchaseResult:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidAmount(f"Quantity must be a positive integer, got {quantity!r}")

        async with self._locks.hold(account_key(guild_id, user_id), item_key(guild_id, item_id)):
            item = await self.get_item(guild_id, item_id)
            if not item.unlimited and item.stock < quantity:
                raise OutOfStock(item.stock, quantity)

            total_price = item.price * quantity
            account = await self._ledger.load_account(guild_id, user_id)
            if account.wallet < total_price:
                raise InsufficientFunds(total_price, account.wallet)

            account.wallet -= total_price
            account.total_spent += total_price
            entry = await self._store.commit_purchase(
                PurchaseCommit(
                    account=account,
                    item=item,
                    quantity=quantity,
                    transaction=self._ledger.entry(
                        account, -total_price, "purchase", f"Purchased {quantity}x {item.name}"
                    ),
                    acquired_at=self._ledger.now(),
                )
            )
            if not item.unlimited:
                item.stock -= quantity

        logger.info(
            "User %s/%s purchased %sx %s for %s", guild_id, user_id, quantity, item.item_id, total_price
        )

        granted: bool | None = None
        if item.capability:
            granted = await self._grant_capability(guild_id, user_id, item)

        await self._events.publish(
            events.PURCHASE_COMPLETED,
            {
                "guild_id": guild_id,
                "user_id": user_id,
                "item_id": item.item_id,
                "quantity": quantity,
                "total_price": total_price,
            },
        )
        return PurchaseResult(
            item=item,
            quantity=quantity,
            total_price=total_price,
            new_balance=account.wallet,
            inventory=entry,
            capability_granted=granted,
        )

    async def inventory(self, guild_id: str, user_id: str) -> Sequence[InventoryRecord]:
        return await self._store.inventory(guild_id, user_id)

    async def _grant_capability(self, guild_id: str, user_id: str, item: ShopItemRecord) -> bool:
        if self._granter is None:
            logger.warning(
                "Item %s unlocks '%s' but no capability granter is configured.",
                item.item_id,
                item.capability,
            )
            return False
        try:
            await self._granter.grant(guild_id, user_id, item.capability)
        except Exception:
            # Purchase stays committed; the failure is only reported.
            logger.exception(
                "Failed to grant '%s' to %s/%s after purchase of %s.",
                item.capability,
                guild_id,
                user_id,
                item.item_id,
            )
            return False
        logger.info("Granted '%s' to %s/%s", item.capability, guild_id, user_id)
        return True
