"""Validation utilities for LedgerForge applications."""

from __future__ import annotations

from typing import Iterable

from .app import EconomyApp
from .config import LedgerForgeConfig
from .domain.cards import BLACKJACK
from .storage.base import ShopItemRecord


def validate_config(config: LedgerForgeConfig) -> list[str]:
    """Return list of validation errors discovered in a configuration."""
    errors: list[str] = []

    economy = config.economy
    if economy.starting_balance < 0:
        errors.append("Economy 'starting_balance' cannot be negative.")
    for name in ("daily_cooldown_seconds", "daily_streak_window_seconds", "work_cooldown_seconds"):
        if getattr(economy, name) < 0:
            errors.append(f"Economy '{name}' cannot be negative.")
    if economy.daily_streak_window_seconds < economy.daily_cooldown_seconds:
        errors.append(
            "Economy 'daily_streak_window_seconds' is shorter than the daily cooldown; streaks could never grow."
        )
    if economy.daily_base_reward <= 0:
        errors.append("Economy 'daily_base_reward' must be positive.")
    if economy.daily_streak_bonus < 0 or economy.daily_streak_bonus_cap < 0:
        errors.append("Economy streak bonus and cap cannot be negative.")
    if economy.work_min_reward <= 0:
        errors.append("Economy 'work_min_reward' must be positive.")
    if economy.work_max_reward < economy.work_min_reward:
        errors.append("Economy 'work_max_reward' must not be lower than 'work_min_reward'.")

    blackjack = config.blackjack
    if not 1 <= blackjack.dealer_stands_on <= BLACKJACK:
        errors.append(f"Blackjack 'dealer_stands_on' must be between 1 and {BLACKJACK}.")
    if blackjack.max_bet is not None and blackjack.max_bet <= 0:
        errors.append("Blackjack 'max_bet' must be positive when set.")

    if config.storage.backend not in ("memory", "sqlalchemy"):
        errors.append(f"Unsupported storage backend '{config.storage.backend}'.")

    return errors


def validate_items(items: Iterable[ShopItemRecord]) -> list[str]:
    """Check stored shop items for values a purchase cannot handle."""
    errors: list[str] = []
    seen: set[tuple[str, str]] = set()
    for item in items:
        key = (item.guild_id, item.item_id)
        if key in seen:
            errors.append(f"Item '{item.item_id}' defined multiple times in guild {item.guild_id}.")
        seen.add(key)
        if item.price <= 0:
            errors.append(f"Item '{item.item_id}' has non-positive price '{item.price}'.")
        if item.stock < -1:
            errors.append(f"Item '{item.item_id}' has invalid stock '{item.stock}'.")
        if not item.name.strip():
            errors.append(f"Item '{item.item_id}' has an empty name.")
    return errors


async def validate_app(app: EconomyApp, guild_ids: Iterable[str] = ()) -> list[str]:
    """Validate the app's configuration and the shop catalogs of ``guild_ids``."""
    errors = validate_config(app.config)
    for guild_id in guild_ids:
        items = await app.shop_store.list_items(guild_id, active_only=False)
        errors.extend(validate_items(items))
    return errors


__all__ = ["validate_app", "validate_config", "validate_items"]
