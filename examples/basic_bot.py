"""Пример бота LedgerForge: экономика, блэкджек и магазин с закрытым чатом."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from ledgerforge import EconomyApp, LedgerForgeConfig
from ledgerforge.admin import build_admin_router
from ledgerforge.diagnostics import BlackjackSimulator
from ledgerforge.domain import events
from ledgerforge.loaders import load_catalog_from_json
from ledgerforge.telegram import InviteLinkGranter, build_router

CATALOG_PATH = Path(__file__).with_name("catalog") / "shop.json"

logger = logging.getLogger(__name__)


async def announce_big_wins(payload) -> None:
    if payload.get("result") == "win" and payload.get("payout", 0) >= 10_000:
        logger.info("Крупный выигрыш у %s: %s", payload["user_id"], payload["payout"])


async def register(app: EconomyApp, guild_id: str) -> None:
    """Загружаем витрину магазина и подписываемся на события."""
    await load_catalog_from_json(app, CATALOG_PATH, guild_id=guild_id)

    # Пример кастомизации команд администраторов.
    app.config.admin.commands.grant_coins = "gift"

    app.event_bus.subscribe(events.BLACKJACK_RESOLVED, announce_big_wins)


def simulate() -> None:
    config = LedgerForgeConfig.from_env()
    result = BlackjackSimulator(config.blackjack).simulate(hands=5000)
    print(f"Исходы: {result.outcomes}, преимущество казино: {result.house_edge:.2%}")


async def run_bot(guild_id: str) -> None:
    from aiogram import Bot, Dispatcher

    config = LedgerForgeConfig.from_env()
    bot = Bot(config.bot_token)
    app = EconomyApp(config, granter=InviteLinkGranter(bot))
    await app.init_backend()
    await register(app, guild_id)

    dp = Dispatcher()
    dp.include_router(build_admin_router(app))
    dp.include_router(build_router(app))
    try:
        await dp.start_polling(bot)
    finally:
        await app.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    # В Telegram роль "гильдии" играет чат; укажите id своего группового чата.
    asyncio.run(run_bot(guild_id="-1000000000000"))
