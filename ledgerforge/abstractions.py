"""High-level helpers that simplify bootstrapping LedgerForge bots.

This module provides a straightforward, batteries-included API oriented towards
developers who do not want to dive into the full async/config ecosystem.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from aiogram import Bot, Dispatcher
from rich.console import Console

from .admin import build_admin_router
from .app import EconomyApp
from .config import LedgerForgeConfig
from .diagnostics.blackjack_simulator import BlackjackSimulator
from .loaders import load_catalog_from_json, validate_catalog_dict
from .telegram import InviteLinkGranter, build_router

console = Console()


@dataclass(slots=True)
class SimpleBotConfig:
    """Minimal settings required to run a LedgerForge bot."""

    bot_token: str
    catalog_path: Path | None = None
    guild_id: str | None = None
    storage: str = "memory"  # "memory" or path to SQLite file
    admin_ids: Sequence[int] = ()


async def run_simple_bot(config: SimpleBotConfig) -> None:
    """Spin up a ready-to-go aiogram bot with sensible defaults."""

    ledger_config = LedgerForgeConfig.from_env()
    ledger_config.bot_token = config.bot_token
    if config.storage != "memory":
        db_path = Path(config.storage).expanduser().resolve()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        ledger_config.storage.backend = "sqlalchemy"
        ledger_config.storage.dsn = f"sqlite+aiosqlite:///{db_path.as_posix()}"
    if config.admin_ids:
        ledger_config.admin.admin_ids = set(config.admin_ids)

    bot = Bot(ledger_config.bot_token)
    app = EconomyApp(ledger_config, granter=InviteLinkGranter(bot))
    await app.init_backend()
    items = 0
    if config.catalog_path:
        definition = await load_catalog_from_json(app, config.catalog_path, guild_id=config.guild_id)
        items = len(definition.items)

    dp = Dispatcher()
    dp.include_router(build_admin_router(app))
    dp.include_router(build_router(app))

    summary = BlackjackSimulator(ledger_config.blackjack).simulate(hands=2000)
    console.print(
        f"[bold green]LedgerForge ready![/bold green]\n"
        f"Storage: {ledger_config.storage.backend}, shop items: {items}, "
        f"blackjack house edge: {summary.house_edge:.2%}",
    )

    try:
        await dp.start_polling(bot)
    finally:
        await app.close()


def run_simple_bot_sync(config: SimpleBotConfig) -> None:
    """Synchronous wrapper for run_simple_bot."""

    asyncio.run(run_simple_bot(config))


@dataclass(slots=True)
class ShopCatalogBuilder:
    """Imperative builder that produces shop catalog JSON."""

    guild: str = "default"
    items: list[dict] = field(default_factory=list)

    def add_item(
        self,
        item_id: str,
        name: str,
        price: int,
        *,
        description: str = "",
        stock: int = -1,
        active: bool = True,
        capability: str | None = None,
    ) -> "ShopCatalogBuilder":
        item: dict = {
            "id": item_id,
            "name": name,
            "price": price,
            "description": description,
            "stock": stock,
            "active": active,
        }
        if capability is not None:
            item["capability"] = capability
        self.items.append(item)
        return self

    def build(self) -> dict:
        catalog = {"guild": self.guild, "items": self.items}
        errors = validate_catalog_dict(catalog)
        if errors:
            raise ValueError("Catalog validation failed:\n" + "\n".join(f"- {err}" for err in errors))
        return catalog

    def save(self, path: Path) -> None:
        catalog = self.build()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(catalog, ensure_ascii=False, indent=2), encoding="utf-8")


__all__ = [
    "SimpleBotConfig",
    "ShopCatalogBuilder",
    "run_simple_bot",
    "run_simple_bot_sync",
]
