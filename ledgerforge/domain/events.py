"""Domain event dispatch."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, DefaultDict, Iterable, Mapping

logger = logging.getLogger(__name__)

EventPayload = Mapping[str, Any]
EventListener = Callable[[EventPayload], Awaitable[None]]

BALANCE_ADDED = "ledger.balance.added"
BALANCE_REMOVED = "ledger.balance.removed"
TRANSFER_COMPLETED = "ledger.transfer.completed"
DEPOSIT_COMPLETED = "ledger.deposit.completed"
WITHDRAW_COMPLETED = "ledger.withdraw.completed"
DAILY_CLAIMED = "ledger.daily.claimed"
WORK_COMPLETED = "ledger.work.completed"
BLACKJACK_STARTED = "blackjack.started"
BLACKJACK_RESOLVED = "blackjack.resolved"
WAGER_SETTLED = "wager.settled"
PURCHASE_COMPLETED = "shop.purchase.completed"


class EventBus:
    """Async pub-sub for committed ledger mutations.

    Events are published after the state change is stored, so a failing
    listener is logged and never undoes or masks the mutation.
    """

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, list[EventListener]] = defaultdict(list)

    def subscribe(self, event_name: str, listener: EventListener) -> None:
        self._listeners[event_name].append(listener)

    async def publish(self, event_name: str, payload: EventPayload) -> None:
        for listener in list(self._listeners.get(event_name, ())):
            try:
                await listener(payload)
            except Exception:
                logger.exception("Listener %r failed for event '%s'.", listener, event_name)

    def clear(self) -> None:
        self._listeners.clear()

    def listeners(self, event_name: str) -> Iterable[EventListener]:
        return tuple(self._listeners.get(event_name, ()))
