"""Balance primitives and cooldown-gated rewards."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from random import Random
from typing import Callable, Sequence

from ..config import EconomyConfig
from ..storage.base import AccountRecord, AccountStore, TransactionRecord, TransactionStore
from . import events
from .events import EventBus
from .exceptions import CooldownActive, InsufficientFunds, InvalidAmount, InvalidTarget, SelfTransfer
from .locks import KeyedLocks, account_key

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

WORK_MESSAGES = (
    "You worked as a developer and fixed some bugs!",
    "You delivered packages around town!",
    "You helped at a local restaurant!",
    "You did some freelance work!",
    "You walked dogs in the neighborhood!",
)

LEADERBOARD_FIELDS = ("wallet", "bank", "total")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Balance:
    wallet: int
    bank: int
    total: int


@dataclass(slots=True)
class TransferResult:
    amount: int
    sender_wallet: int
    recipient_wallet: int


@dataclass(slots=True)
class RewardClaim:
    amount: int
    new_balance: int
    streak: int | None = None
    message: str | None = None


@dataclass(slots=True)
class Cooldowns:
    daily_seconds: int
    work_seconds: int


@dataclass(slots=True)
class LeaderboardEntry:
    rank: int
    user_id: str
    wallet: int
    bank: int
    total: int


class LedgerService:
    """Mutate account balances under per-account critical sections.

    Every mutating call holds the account lock across its read-check-write and
    writes the changed rows together with their journal entries in a single
    store call.
    """

    def __init__(
        self,
        store: AccountStore,
        journal: TransactionStore,
        config: EconomyConfig,
        event_bus: EventBus,
        *,
        locks: KeyedLocks | None = None,
        rng: Random | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._journal = journal
        self._config = config
        self._events = event_bus
        self._locks = locks if locks is not None else KeyedLocks()
        self._rng = rng or Random()
        self._clock = clock or utc_now

    @property
    def locks(self) -> KeyedLocks:
        return self._locks

    @property
    def store(self) -> AccountStore:
        return self._store

    def now(self) -> datetime:
        return self._clock()

    async def get_balance(self, guild_id: str, user_id: str) -> Balance:
        async with self._locks.hold(account_key(guild_id, user_id)):
            record = await self.load_account(guild_id, user_id)
        logger.debug("Balance for %s/%s: wallet=%s bank=%s", guild_id, user_id, record.wallet, record.bank)
        return _balance(record)

    async def add_balance(
        self,
        guild_id: str,
        user_id: str,
        amount: int,
        reason: str = "Unknown",
        *,
        kind: str = "add",
    ) -> int:
        _require_positive(amount)
        async with self._locks.hold(account_key(guild_id, user_id)):
            record = await self.load_account(guild_id, user_id)
            record.wallet += amount
            record.total_earned += amount
            await self._store.save(record, transactions=[self.entry(record, amount, kind, reason)])
        logger.info("Added %s to %s/%s (%s)", amount, guild_id, user_id, reason)
        await self._events.publish(
            events.BALANCE_ADDED,
            {"guild_id": guild_id, "user_id": user_id, "amount": amount, "reason": reason},
        )
        return record.wallet

    async def remove_balance(
        self,
        guild_id: str,
        user_id: str,
        amount: int,
        reason: str = "Unknown",
        *,
        kind: str = "remove",
    ) -> int:
        _require_positive(amount)
        async with self._locks.hold(account_key(guild_id, user_id)):
            record = await self.load_account(guild_id, user_id)
            if record.wallet < amount:
                raise InsufficientFunds(amount, record.wallet)
            record.wallet -= amount
            record.total_spent += amount
            await self._store.save(record, transactions=[self.entry(record, -amount, kind, reason)])
        logger.info("Removed %s from %s/%s (%s)", amount, guild_id, user_id, reason)
        await self._events.publish(
            events.BALANCE_REMOVED,
            {"guild_id": guild_id, "user_id": user_id, "amount": amount, "reason": reason},
        )
        return record.wallet

    async def transfer(
        self,
        guild_id: str,
        from_user_id: str,
        to_user_id: str,
        amount: int,
        *,
        recipient_is_bot: bool = False,
    ) -> TransferResult:
        _require_positive(amount)
        if from_user_id == to_user_id:
            raise SelfTransfer("Cannot transfer to yourself")
        if recipient_is_bot or to_user_id in self._config.blocked_recipients:
            raise InvalidTarget(f"User {to_user_id} cannot receive transfers")

        async with self._locks.hold(
            account_key(guild_id, from_user_id), account_key(guild_id, to_user_id)
        ):
            sender = await self.load_account(guild_id, from_user_id)
            recipient = await self.load_account(guild_id, to_user_id)
            if sender.wallet < amount:
                raise InsufficientFunds(amount, sender.wallet)
            sender.wallet -= amount
            sender.total_spent += amount
            recipient.wallet += amount
            recipient.total_earned += amount
            await self._store.save(
                sender,
                recipient,
                transactions=[
                    self.entry(
                        sender, -amount, "transfer_out", f"Transfer to user {to_user_id}",
                        counterparty_id=to_user_id,
                    ),
                    self.entry(
                        recipient, amount, "transfer_in", f"Transfer from user {from_user_id}",
                        counterparty_id=from_user_id,
                    ),
                ],
            )

        logger.info("Transferred %s from %s to %s in guild %s", amount, from_user_id, to_user_id, guild_id)
        await self._events.publish(
            events.TRANSFER_COMPLETED,
            {
                "guild_id": guild_id,
                "from_user_id": from_user_id,
                "to_user_id": to_user_id,
                "amount": amount,
            },
        )
        return TransferResult(
            amount=amount, sender_wallet=sender.wallet, recipient_wallet=recipient.wallet
        )

    async def deposit(self, guild_id: str, user_id: str, amount: int) -> Balance:
        _require_positive(amount)
        async with self._locks.hold(account_key(guild_id, user_id)):
            record = await self.load_account(guild_id, user_id)
            if record.wallet < amount:
                raise InsufficientFunds(amount, record.wallet, source="wallet")
            record.wallet -= amount
            record.bank += amount
            await self._store.save(
                record, transactions=[self.entry(record, amount, "deposit", "Deposit to bank")]
            )
        logger.info("User %s/%s deposited %s", guild_id, user_id, amount)
        await self._events.publish(
            events.DEPOSIT_COMPLETED, {"guild_id": guild_id, "user_id": user_id, "amount": amount}
        )
        return _balance(record)

    async def withdraw(self, guild_id: str, user_id: str, amount: int) -> Balance:
        _require_positive(amount)
        async with self._locks.hold(account_key(guild_id, user_id)):
            record = await self.load_account(guild_id, user_id)
            if record.bank < amount:
                raise InsufficientFunds(amount, record.bank, source="bank")
            record.bank -= amount
            record.wallet += amount
            await self._store.save(
                record, transactions=[self.entry(record, amount, "withdraw", "Withdraw from bank")]
            )
        logger.info("User %s/%s withdrew %s", guild_id, user_id, amount)
        await self._events.publish(
            events.WITHDRAW_COMPLETED, {"guild_id": guild_id, "user_id": user_id, "amount": amount}
        )
        return _balance(record)

    async def settle_wager(
        self, guild_id: str, user_id: str, bet: int, payout: int, game: str
    ) -> int:
        """Take a single-shot bet and pay its outcome in one write."""
        _require_positive(bet)
        if payout < 0:
            raise InvalidAmount(f"Payout cannot be negative, got {payout}")
        async with self._locks.hold(account_key(guild_id, user_id)):
            record = await self.load_account(guild_id, user_id)
            if record.wallet < bet:
                raise InsufficientFunds(bet, record.wallet)
            record.wallet += payout - bet
            record.total_spent += bet
            record.total_earned += payout
            journal = [self.entry(record, -bet, f"{game}_bet", f"{game.title()} bet")]
            if payout:
                journal.append(self.entry(record, payout, f"{game}_payout", f"{game.title()} win"))
            await self._store.save(record, transactions=journal)
        logger.info("Settled %s for %s/%s: bet %s, payout %s", game, guild_id, user_id, bet, payout)
        return record.wallet

    async def claim_daily(self, guild_id: str, user_id: str) -> RewardClaim:
        config = self._config
        async with self._locks.hold(account_key(guild_id, user_id)):
            record = await self.load_account(guild_id, user_id)
            now = self._clock()
            remaining = _cooldown_remaining(record.last_daily_at, now, config.daily_cooldown_seconds)
            if remaining > 0:
                raise CooldownActive(remaining)

            if record.last_daily_at is not None and _elapsed(
                record.last_daily_at, now
            ) < config.daily_streak_window_seconds:
                streak = record.daily_streak + 1
            else:
                streak = 1
            amount = config.daily_base_reward + min(
                streak * config.daily_streak_bonus, config.daily_streak_bonus_cap
            )

            record.wallet += amount
            record.total_earned += amount
            record.daily_streak = streak
            record.last_daily_at = now
            await self._store.save(
                record,
                transactions=[self.entry(record, amount, "daily", f"Daily reward (streak: {streak})")],
            )

        logger.info("User %s/%s claimed daily reward %s (streak %s)", guild_id, user_id, amount, streak)
        await self._events.publish(
            events.DAILY_CLAIMED,
            {"guild_id": guild_id, "user_id": user_id, "amount": amount, "streak": streak},
        )
        return RewardClaim(amount=amount, new_balance=record.wallet, streak=streak)

    async def work(self, guild_id: str, user_id: str) -> RewardClaim:
        config = self._config
        async with self._locks.hold(account_key(guild_id, user_id)):
            record = await self.load_account(guild_id, user_id)
            now = self._clock()
            remaining = _cooldown_remaining(record.last_work_at, now, config.work_cooldown_seconds)
            if remaining > 0:
                raise CooldownActive(remaining)

            amount = self._rng.randint(config.work_min_reward, config.work_max_reward)
            message = self._rng.choice(WORK_MESSAGES)
            record.wallet += amount
            record.total_earned += amount
            record.last_work_at = now
            await self._store.save(record, transactions=[self.entry(record, amount, "work", message)])

        logger.info("User %s/%s worked and earned %s", guild_id, user_id, amount)
        await self._events.publish(
            events.WORK_COMPLETED, {"guild_id": guild_id, "user_id": user_id, "amount": amount}
        )
        return RewardClaim(amount=amount, new_balance=record.wallet, message=message)

    async def cooldowns(self, guild_id: str, user_id: str) -> Cooldowns:
        async with self._locks.hold(account_key(guild_id, user_id)):
            record = await self.load_account(guild_id, user_id)
        now = self._clock()
        return Cooldowns(
            daily_seconds=_cooldown_remaining(
                record.last_daily_at, now, self._config.daily_cooldown_seconds
            ),
            work_seconds=_cooldown_remaining(
                record.last_work_at, now, self._config.work_cooldown_seconds
            ),
        )

    async def transactions(
        self, guild_id: str, user_id: str, limit: int = 10
    ) -> Sequence[TransactionRecord]:
        return await self._journal.recent_for_user(guild_id, user_id, limit)

    async def leaderboard(
        self, guild_id: str, *, by: str = "wallet", limit: int = 10
    ) -> list[LeaderboardEntry]:
        if by not in LEADERBOARD_FIELDS:
            raise ValueError(f"Unknown leaderboard field '{by}'")
        rows = await self._store.top(guild_id, by=by, limit=limit)
        return [
            LeaderboardEntry(
                rank=index,
                user_id=row.user_id,
                wallet=row.wallet,
                bank=row.bank,
                total=row.wallet + row.bank,
            )
            for index, row in enumerate(rows, start=1)
        ]

    async def load_account(self, guild_id: str, user_id: str) -> AccountRecord:
        """Fetch (or lazily open) an account; callers hold its lock."""
        return await self._store.get_or_create(
            guild_id, user_id, starting_wallet=self._config.starting_balance
        )

    def entry(
        self,
        record: AccountRecord,
        amount: int,
        kind: str,
        description: str,
        *,
        counterparty_id: str | None = None,
    ) -> TransactionRecord:
        return TransactionRecord(
            guild_id=record.guild_id,
            user_id=record.user_id,
            amount=amount,
            kind=kind,
            description=description,
            timestamp=self._clock(),
            counterparty_id=counterparty_id,
        )


def _require_positive(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(f"Amount must be a positive integer, got {amount!r}")


def _balance(record: AccountRecord) -> Balance:
    return Balance(wallet=record.wallet, bank=record.bank, total=record.wallet + record.bank)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _elapsed(since: datetime, now: datetime) -> int:
    return int((_as_utc(now) - _as_utc(since)).total_seconds())


def _cooldown_remaining(last: datetime | None, now: datetime, cooldown_seconds: int) -> int:
    if last is None:
        return 0
    return max(0, cooldown_seconds - _elapsed(last, now))
