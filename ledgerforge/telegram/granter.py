"""Capability granter that unlocks private chats for shop buyers."""

from __future__ import annotations

import logging

from aiogram import Bot

logger = logging.getLogger(__name__)


class InviteLinkGranter:
    """Treat an item's capability as a private chat id and send a one-time invite.

    The bot must be an administrator of that chat with the right to invite users.
    """

    def __init__(self, bot: Bot, *, link_name: str = "LedgerForge shop") -> None:
        self._bot = bot
        self._link_name = link_name

    async def grant(self, guild_id: str, user_id: str, capability: str) -> None:
        link = await self._bot.create_chat_invite_link(
            chat_id=capability, name=self._link_name, member_limit=1
        )
        await self._bot.send_message(
            chat_id=int(user_id),
            text=f"🔓 Покупка открыла доступ: {link.invite_link}",
        )
        logger.debug("Sent invite to %s for chat %s (bought in %s)", user_id, capability, guild_id)
