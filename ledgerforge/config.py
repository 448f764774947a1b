"""Configuration models for LedgerForge."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal


StorageBackend = Literal["memory", "sqlalchemy"]

_TRUTHY = {"1", "true", "yes"}


@dataclass(slots=True)
class StorageConfig:
    """Configure how accounts, items and journals are persisted."""

    backend: StorageBackend = "memory"
    dsn: str | None = None
    echo_sql: bool = False

    def resolve_dsn(self) -> str | None:
        if self.dsn:
            return self.dsn
        if self.backend == "sqlalchemy":
            return "sqlite+aiosqlite:///./ledgerforge.db"
        return None


@dataclass(slots=True)
class EconomyConfig:
    """Starting balance, reward sizes and cooldown windows."""

    starting_balance: int = 1000
    daily_cooldown_seconds: int = 24 * 60 * 60
    daily_streak_window_seconds: int = 48 * 60 * 60
    daily_base_reward: int = 500
    daily_streak_bonus: int = 50
    daily_streak_bonus_cap: int = 500
    work_cooldown_seconds: int = 60 * 60
    work_min_reward: int = 100
    work_max_reward: int = 300
    blocked_recipients: set[str] = field(default_factory=set)


@dataclass(slots=True)
class BlackjackConfig:
    """Table rules."""

    dealer_stands_on: int = 17
    max_bet: int | None = None


@dataclass(slots=True)
class AdminCommandConfig:
    """Allows renaming admin bot commands."""

    grant_coins: str = "grantcoins"
    add_item: str = "additem"
    restock: str = "restock"
    disable_item: str = "disableitem"
    reset_cooldowns: str = "resetcooldowns"


@dataclass(slots=True)
class AdminConfig:
    """Feature switches for admin tooling."""

    admin_ids: set[int] = field(default_factory=set)
    enable_audit_logs: bool = True
    commands: AdminCommandConfig = field(default_factory=AdminCommandConfig)


@dataclass(slots=True)
class LedgerForgeConfig:
    """Top-level configuration container."""

    bot_token: str = ""
    storage: StorageConfig = field(default_factory=StorageConfig)
    economy: EconomyConfig = field(default_factory=EconomyConfig)
    blackjack: BlackjackConfig = field(default_factory=BlackjackConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)
    rng_seed: int | None = None

    @classmethod
    def from_env(cls) -> "LedgerForgeConfig":
        """Create config from environment variables prefixed with LEDGERFORGE_."""
        prefix = "LEDGERFORGE_"
        storage_backend = os.getenv(f"{prefix}STORAGE_BACKEND", "memory")
        dsn = os.getenv(f"{prefix}STORAGE_DSN")
        echo_sql = os.getenv(f"{prefix}STORAGE_ECHO_SQL", "false").lower() in _TRUTHY

        defaults = EconomyConfig()
        economy = EconomyConfig(
            starting_balance=_int_env(f"{prefix}STARTING_BALANCE", defaults.starting_balance),
            daily_cooldown_seconds=_int_env(
                f"{prefix}DAILY_COOLDOWN", defaults.daily_cooldown_seconds
            ),
            daily_streak_window_seconds=_int_env(
                f"{prefix}DAILY_STREAK_WINDOW", defaults.daily_streak_window_seconds
            ),
            daily_base_reward=_int_env(f"{prefix}DAILY_REWARD", defaults.daily_base_reward),
            daily_streak_bonus=_int_env(f"{prefix}DAILY_STREAK_BONUS", defaults.daily_streak_bonus),
            daily_streak_bonus_cap=_int_env(
                f"{prefix}DAILY_STREAK_BONUS_CAP", defaults.daily_streak_bonus_cap
            ),
            work_cooldown_seconds=_int_env(f"{prefix}WORK_COOLDOWN", defaults.work_cooldown_seconds),
            work_min_reward=_int_env(f"{prefix}WORK_MIN", defaults.work_min_reward),
            work_max_reward=_int_env(f"{prefix}WORK_MAX", defaults.work_max_reward),
            blocked_recipients={
                user_id.strip()
                for user_id in os.getenv(f"{prefix}BLOCKED_RECIPIENTS", "").split(",")
                if user_id.strip()
            },
        )

        max_bet = os.getenv(f"{prefix}BLACKJACK_MAX_BET")
        blackjack = BlackjackConfig(
            dealer_stands_on=_int_env(f"{prefix}BLACKJACK_DEALER_STANDS_ON", 17),
            max_bet=int(max_bet) if max_bet else None,
        )

        admin_ids = {
            int(_id.strip())
            for _id in os.getenv(f"{prefix}ADMIN_IDS", "").split(",")
            if _id.strip()
        }
        admin = AdminConfig(
            admin_ids=admin_ids,
            enable_audit_logs=os.getenv(f"{prefix}ADMIN_ENABLE_AUDIT_LOGS", "true").lower()
            in _TRUTHY,
        )

        return cls(
            bot_token=os.getenv(f"{prefix}BOT_TOKEN", ""),
            storage=StorageConfig(backend=storage_backend, dsn=dsn, echo_sql=echo_sql),
            economy=economy,
            blackjack=blackjack,
            admin=admin,
            rng_seed=(
                int(os.getenv(f"{prefix}RNG_SEED")) if os.getenv(f"{prefix}RNG_SEED") else None
            ),
        )


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer, got '{raw}'") from exc
