"""Async test client that bypasses Telegram transport."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from ..app import EconomyApp
from ..domain.exceptions import LedgerForgeError


@dataclass(slots=True)
class TestMessage:
    __test__ = False

    text: str
    metadata: Dict[str, Any]


class TestClient:
    __test__ = False

    """Facilitate scenario testing without Telegram HTTP calls."""

    def __init__(self, app: EconomyApp, *, guild_id: str = "guild") -> None:
        self._app = app
        self._guild_id = guild_id
        self._log: List[TestMessage] = []

    async def balance(self, user_id: str) -> int:
        balance = await self._app.ledger.get_balance(self._guild_id, user_id)
        self._record(f"Balance {balance.wallet}/{balance.bank}", wallet=balance.wallet, bank=balance.bank)
        return balance.wallet

    async def daily(self, user_id: str) -> int | None:
        try:
            claim = await self._app.ledger.claim_daily(self._guild_id, user_id)
        except LedgerForgeError as exc:
            self._record(f"Error: {exc}", error=type(exc).__name__)
            return None
        self._record(f"Daily +{claim.amount}", amount=claim.amount, streak=claim.streak)
        return claim.amount

    async def pay(self, user_id: str, recipient_id: str, amount: int) -> bool:
        try:
            result = await self._app.ledger.transfer(self._guild_id, user_id, recipient_id, amount)
        except LedgerForgeError as exc:
            self._record(f"Error: {exc}", error=type(exc).__name__)
            return False
        self._record(f"Paid {amount} to {recipient_id}", wallet=result.sender_wallet)
        return True

    async def blackjack(self, user_id: str, bet: int, *actions: str) -> str | None:
        """Play a hand; ``actions`` are ``"hit"``/``"stand"`` applied while the game is live."""
        service = self._app.blackjack
        try:
            game = await service.start(self._guild_id, user_id, bet)
            for action in actions:
                if game.is_resolved:
                    break
                game = await getattr(service, action)(self._guild_id, user_id)
        except LedgerForgeError as exc:
            self._record(f"Error: {exc}", error=type(exc).__name__)
            return None
        result = game.result.value if game.result else None
        self._record(f"Blackjack {result or 'active'}", payout=game.payout, player=game.player_value)
        return result

    async def buy(self, user_id: str, item_id: str, quantity: int = 1) -> bool:
        try:
            result = await self._app.shop.purchase(self._guild_id, user_id, item_id, quantity)
        except LedgerForgeError as exc:
            self._record(f"Error: {exc}", error=type(exc).__name__)
            return False
        self._record(f"Bought {quantity}x {item_id}", wallet=result.new_balance)
        return True

    def history(self) -> List[TestMessage]:
        return list(self._log)

    def _record(self, text: str, **metadata: Any) -> None:
        self._log.append(TestMessage(text=text, metadata=metadata))
