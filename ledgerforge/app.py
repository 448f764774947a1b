"""Top level application object for LedgerForge bots."""

from __future__ import annotations

from random import Random
from typing import Any

from .admin.service import AdminService
from .config import LedgerForgeConfig
from .domain.blackjack import BlackjackService
from .domain.events import EventBus
from .domain.ledger import Clock, LedgerService
from .domain.locks import KeyedLocks
from .domain.shop import CapabilityGranter, ShopService
from .domain.wagers import WagerService
from .storage.base import AccountStore, AuditStore, ShopStore, TransactionStore
from .storage.memory import (
    InMemoryAccountStore,
    InMemoryAuditStore,
    InMemoryShopStore,
    InMemoryTransactionStore,
)
from .storage.sqlalchemy import AsyncSQLAlchemyStorage


class EconomyApp:
    """Central dependency container used by bots and extensions."""

    def __init__(
        self,
        config: LedgerForgeConfig,
        *,
        account_store: AccountStore | None = None,
        shop_store: ShopStore | None = None,
        transaction_store: TransactionStore | None = None,
        audit_store: AuditStore | None = None,
        event_bus: EventBus | None = None,
        rng: Random | None = None,
        clock: Clock | None = None,
        granter: CapabilityGranter | None = None,
    ) -> None:
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.locks = KeyedLocks()

        self._rng = rng or (Random(config.rng_seed) if config.rng_seed is not None else Random())

        self._sqlalchemy_storage: AsyncSQLAlchemyStorage | None = None
        (
            self.account_store,
            self.shop_store,
            self.transaction_store,
            self.audit_store,
        ) = self._wire_storage(account_store, shop_store, transaction_store, audit_store)

        self.ledger = LedgerService(
            self.account_store,
            self.transaction_store,
            config.economy,
            self.event_bus,
            locks=self.locks,
            rng=self._rng,
            clock=clock,
        )
        self.blackjack = BlackjackService(
            self.ledger, config.blackjack, self.event_bus, rng=self._rng
        )
        self.wagers = WagerService(self.ledger, config.blackjack, self.event_bus, rng=self._rng)
        self.shop = ShopService(self.shop_store, self.ledger, self.event_bus, granter=granter)
        self.admin = AdminService(
            ledger=self.ledger,
            shop_store=self.shop_store,
            audit_store=self.audit_store,
            event_bus=self.event_bus,
            audit_enabled=config.admin.enable_audit_logs,
        )

    def _wire_storage(
        self,
        account_store: AccountStore | None,
        shop_store: ShopStore | None,
        transaction_store: TransactionStore | None,
        audit_store: AuditStore | None,
    ) -> tuple[AccountStore, ShopStore, TransactionStore, AuditStore]:
        if account_store and shop_store and transaction_store and audit_store:
            return account_store, shop_store, transaction_store, audit_store

        backend = self.config.storage.backend
        if backend == "memory":
            if account_store is None:
                journal = InMemoryTransactionStore()
                account_store = InMemoryAccountStore(journal)
            if transaction_store is None:
                if not isinstance(account_store, InMemoryAccountStore):
                    raise ValueError("Memory backend needs a transaction store for a custom account store")
                transaction_store = account_store.journal
            if shop_store is None:
                if not isinstance(account_store, InMemoryAccountStore):
                    raise ValueError("Memory backend needs a shop store for a custom account store")
                shop_store = InMemoryShopStore(account_store)
            return account_store, shop_store, transaction_store, audit_store or InMemoryAuditStore()
        if backend == "sqlalchemy":
            dsn = self.config.storage.resolve_dsn()
            if not dsn:
                raise ValueError("SQLAlchemy backend requires a DSN")
            storage = AsyncSQLAlchemyStorage(dsn, echo=self.config.storage.echo_sql)
            self._sqlalchemy_storage = storage
            return (
                account_store or storage.account_store(),
                shop_store or storage.shop_store(),
                transaction_store or storage.transaction_store(),
                audit_store or storage.audit_store(),
            )
        raise ValueError(f"Unsupported storage backend {backend}")

    def snapshot(self) -> dict[str, Any]:
        """Export current configuration for debugging."""
        economy = self.config.economy
        return {
            "storage": self.config.storage.backend,
            "starting_balance": economy.starting_balance,
            "daily_cooldown_seconds": economy.daily_cooldown_seconds,
            "work_cooldown_seconds": economy.work_cooldown_seconds,
            "dealer_stands_on": self.config.blackjack.dealer_stands_on,
            "max_bet": self.config.blackjack.max_bet,
            "active_blackjack_games": self.blackjack.active_games,
            "admins": sorted(self.config.admin.admin_ids),
        }

    async def init_backend(self) -> None:
        """Initialize storage backend resources (e.g., database tables)."""
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.init_models()

    async def close(self) -> None:
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.dispose()
