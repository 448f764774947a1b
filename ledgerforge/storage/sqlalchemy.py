"""SQLAlchemy storage backend for LedgerForge."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Sequence

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    JSON,
    String,
    UniqueConstraint,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..domain.exceptions import OutOfStock, StorageUnavailable
from .base import (
    AccountRecord,
    AccountStore,
    AuditStore,
    InventoryRecord,
    PurchaseCommit,
    ShopItemRecord,
    ShopStore,
    TransactionRecord,
    TransactionStore,
)

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class AccountTable(Base):
    __tablename__ = "ledgerforge_accounts"
    __table_args__ = (UniqueConstraint("guild_id", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str] = mapped_column(String(64))
    wallet: Mapped[int] = mapped_column(Integer, default=0)
    bank: Mapped[int] = mapped_column(Integer, default=0)
    daily_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_daily_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_work_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_earned: Mapped[int] = mapped_column(Integer, default=0)
    total_spent: Mapped[int] = mapped_column(Integer, default=0)


class ShopItemTable(Base):
    __tablename__ = "ledgerforge_shop_items"

    guild_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(String(1024), default="")
    price: Mapped[int] = mapped_column(Integer)
    stock: Mapped[int] = mapped_column(Integer, default=-1)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    capability: Mapped[str | None] = mapped_column(String(128), nullable=True)


class InventoryTable(Base):
    __tablename__ = "ledgerforge_inventories"

    guild_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    acquired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class TransactionTable(Base):
    __tablename__ = "ledgerforge_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    counterparty_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    amount: Mapped[int] = mapped_column(Integer)
    kind: Mapped[str] = mapped_column(String(32))
    description: Mapped[str] = mapped_column(String(255))
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class AuditTable(Base):
    __tablename__ = "ledgerforge_audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    action: Mapped[str] = mapped_column(String(128))
    payload: Mapped[dict] = mapped_column(JSON)


class AsyncSQLAlchemyStorage:
    """Bundle of async stores backed by SQLAlchemy."""

    def __init__(self, dsn: str, *, echo: bool = False) -> None:
        self._engine = create_async_engine(dsn, echo=echo, future=True)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with _guard(self._session_factory) as session:
            yield session

    async def init_models(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Cannot initialise schema: {exc}") from exc

    async def dispose(self) -> None:
        await self._engine.dispose()

    def account_store(self) -> "AsyncSQLAlchemyAccountStore":
        return AsyncSQLAlchemyAccountStore(self._session_factory)

    def shop_store(self) -> "AsyncSQLAlchemyShopStore":
        return AsyncSQLAlchemyShopStore(self._session_factory)

    def transaction_store(self) -> "AsyncSQLAlchemyTransactionStore":
        return AsyncSQLAlchemyTransactionStore(self._session_factory)

    def audit_store(self) -> "AsyncSQLAlchemyAuditStore":
        return AsyncSQLAlchemyAuditStore(self._session_factory)


@asynccontextmanager
async def _guard(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Open a session and surface driver failures as StorageUnavailable."""
    try:
        async with session_factory() as session:
            yield session
    except SQLAlchemyError as exc:
        logger.error("Storage call failed: %s", exc, exc_info=True)
        raise StorageUnavailable(str(exc)) from exc


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _to_account(row: AccountTable) -> AccountRecord:
    return AccountRecord(
        guild_id=row.guild_id,
        user_id=row.user_id,
        wallet=row.wallet,
        bank=row.bank,
        daily_streak=row.daily_streak,
        last_daily_at=_as_utc(row.last_daily_at),
        last_work_at=_as_utc(row.last_work_at),
        total_earned=row.total_earned,
        total_spent=row.total_spent,
    )


def _to_item(row: ShopItemTable) -> ShopItemRecord:
    return ShopItemRecord(
        guild_id=row.guild_id,
        item_id=row.item_id,
        name=row.name,
        description=row.description,
        price=row.price,
        stock=row.stock,
        is_active=row.is_active,
        capability=row.capability,
    )


def _to_inventory(row: InventoryTable) -> InventoryRecord:
    return InventoryRecord(
        guild_id=row.guild_id,
        user_id=row.user_id,
        item_id=row.item_id,
        quantity=row.quantity,
        acquired_at=_as_utc(row.acquired_at),
    )


def _transaction_row(record: TransactionRecord) -> TransactionTable:
    return TransactionTable(
        guild_id=record.guild_id,
        user_id=record.user_id,
        counterparty_id=record.counterparty_id,
        amount=record.amount,
        kind=record.kind,
        description=record.description,
        timestamp=record.timestamp,
    )


def _account_values(record: AccountRecord) -> dict:
    return {
        "wallet": record.wallet,
        "bank": record.bank,
        "daily_streak": record.daily_streak,
        "last_daily_at": record.last_daily_at,
        "last_work_at": record.last_work_at,
        "total_earned": record.total_earned,
        "total_spent": record.total_spent,
    }


async def _write_account(session: AsyncSession, record: AccountRecord) -> None:
    stmt = (
        update(AccountTable)
        .where(AccountTable.guild_id == record.guild_id, AccountTable.user_id == record.user_id)
        .values(**_account_values(record))
    )
    result = await session.execute(stmt)
    if result.rowcount == 0:
        session.add(
            AccountTable(guild_id=record.guild_id, user_id=record.user_id, **_account_values(record))
        )


class AsyncSQLAlchemyAccountStore(AccountStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_or_create(
        self, guild_id: str, user_id: str, *, starting_wallet: int = 0
    ) -> AccountRecord:
        async with _guard(self._session_factory) as session:
            stmt = select(AccountTable).where(
                AccountTable.guild_id == guild_id, AccountTable.user_id == user_id
            )
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                row = AccountTable(
                    guild_id=guild_id,
                    user_id=user_id,
                    wallet=starting_wallet,
                    bank=0,
                    daily_streak=0,
                    total_earned=starting_wallet,
                    total_spent=0,
                )
                session.add(row)
                await session.commit()
                logger.debug("Created account %s/%s with %s", guild_id, user_id, starting_wallet)
            return _to_account(row)

    async def save(
        self,
        *records: AccountRecord,
        transactions: Sequence[TransactionRecord] = (),
    ) -> None:
        async with _guard(self._session_factory) as session:
            async with session.begin():
                for record in records:
                    await _write_account(session, record)
                session.add_all([_transaction_row(tx) for tx in transactions])

    async def top(self, guild_id: str, *, by: str = "wallet", limit: int = 10) -> Sequence[AccountRecord]:
        order = {
            "wallet": AccountTable.wallet.desc(),
            "bank": AccountTable.bank.desc(),
            "total": (AccountTable.wallet + AccountTable.bank).desc(),
        }[by]
        async with _guard(self._session_factory) as session:
            stmt = select(AccountTable).where(AccountTable.guild_id == guild_id).order_by(order).limit(limit)
            rows = (await session.execute(stmt)).scalars().all()
            return [_to_account(row) for row in rows]


class AsyncSQLAlchemyShopStore(ShopStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_item(self, guild_id: str, item_id: str) -> ShopItemRecord | None:
        async with _guard(self._session_factory) as session:
            row = await session.get(ShopItemTable, (guild_id, item_id))
            return _to_item(row) if row else None

    async def list_items(self, guild_id: str, *, active_only: bool = True) -> Sequence[ShopItemRecord]:
        async with _guard(self._session_factory) as session:
            stmt = select(ShopItemTable).where(ShopItemTable.guild_id == guild_id)
            if active_only:
                stmt = stmt.where(ShopItemTable.is_active.is_(True))
            stmt = stmt.order_by(ShopItemTable.price.asc(), ShopItemTable.name.asc())
            rows = (await session.execute(stmt)).scalars().all()
            return [_to_item(row) for row in rows]

    async def put_item(self, item: ShopItemRecord) -> None:
        async with _guard(self._session_factory) as session:
            async with session.begin():
                await session.merge(
                    ShopItemTable(
                        guild_id=item.guild_id,
                        item_id=item.item_id,
                        name=item.name,
                        description=item.description,
                        price=item.price,
                        stock=item.stock,
                        is_active=item.is_active,
                        capability=item.capability,
                    )
                )

    async def commit_purchase(self, commit: PurchaseCommit) -> InventoryRecord:
        item = commit.item
        account = commit.account
        async with _guard(self._session_factory) as session:
            async with session.begin():
                if not item.unlimited:
                    # Conditional decrement: a concurrent catalog edit cannot oversell.
                    stmt = (
                        update(ShopItemTable)
                        .where(
                            ShopItemTable.guild_id == item.guild_id,
                            ShopItemTable.item_id == item.item_id,
                            ShopItemTable.stock >= commit.quantity,
                        )
                        .values(stock=ShopItemTable.stock - commit.quantity)
                    )
                    result = await session.execute(stmt)
                    if result.rowcount == 0:
                        raise OutOfStock(item.stock, commit.quantity)

                await _write_account(session, account)
                session.add(_transaction_row(commit.transaction))

                row = await session.get(
                    InventoryTable, (account.guild_id, account.user_id, item.item_id)
                )
                if row is None:
                    row = InventoryTable(
                        guild_id=account.guild_id,
                        user_id=account.user_id,
                        item_id=item.item_id,
                        quantity=commit.quantity,
                        acquired_at=commit.acquired_at,
                    )
                    session.add(row)
                else:
                    row.quantity += commit.quantity
            return _to_inventory(row)

    async def inventory(self, guild_id: str, user_id: str) -> Sequence[InventoryRecord]:
        async with _guard(self._session_factory) as session:
            stmt = (
                select(InventoryTable)
                .where(InventoryTable.guild_id == guild_id, InventoryTable.user_id == user_id)
                .order_by(InventoryTable.acquired_at.desc())
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [_to_inventory(row) for row in rows]


class AsyncSQLAlchemyTransactionStore(TransactionStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def recent_for_user(
        self, guild_id: str, user_id: str, limit: int = 10
    ) -> Sequence[TransactionRecord]:
        async with _guard(self._session_factory) as session:
            stmt = (
                select(TransactionTable)
                .where(TransactionTable.guild_id == guild_id, TransactionTable.user_id == user_id)
                .order_by(TransactionTable.timestamp.desc(), TransactionTable.id.desc())
                .limit(limit)
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [
                TransactionRecord(
                    guild_id=row.guild_id,
                    user_id=row.user_id,
                    amount=row.amount,
                    kind=row.kind,
                    description=row.description,
                    timestamp=_as_utc(row.timestamp),
                    counterparty_id=row.counterparty_id,
                )
                for row in rows
            ]


class AsyncSQLAlchemyAuditStore(AuditStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_entry(self, action: str, payload: dict) -> None:
        async with _guard(self._session_factory) as session:
            session.add(
                AuditTable(
                    created_at=datetime.now(timezone.utc),
                    action=action,
                    payload=dict(payload),
                )
            )
            await session.commit()
