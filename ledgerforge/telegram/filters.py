"""Reusable aiogram filters for LedgerForge bots."""

from __future__ import annotations

from aiogram.filters import BaseFilter
from aiogram.types import CallbackQuery, Message

from ..config import LedgerForgeConfig
from ..domain.exceptions import LedgerForgeError
from ..domain.ledger import LedgerService


class AdminFilter(BaseFilter):
    def __init__(self, config: LedgerForgeConfig) -> None:
        self._admins = set(config.admin.admin_ids)

    async def __call__(self, message: Message) -> bool:
        user = message.from_user
        return bool(user and user.id in self._admins)


class HumanSenderFilter(BaseFilter):
    """Ignore messages and button presses without a human sender."""

    async def __call__(self, event: Message | CallbackQuery) -> bool:
        user = event.from_user
        return bool(user and not user.is_bot)


class RewardCooldownFilter(BaseFilter):
    """Filter that provides remaining reward cooldowns to the handler.

    A failed lookup still lets the handler run, with ``cooldown_error`` set.
    """

    def __init__(self, ledger: LedgerService) -> None:
        self._ledger = ledger

    async def __call__(self, message: Message) -> dict | bool:
        user = message.from_user
        if not user:
            return False
        try:
            cooldowns = await self._ledger.cooldowns(str(message.chat.id), str(user.id))
        except LedgerForgeError as exc:
            return {"cooldowns": None, "cooldown_error": exc}
        return {"cooldowns": cooldowns, "cooldown_error": None}
