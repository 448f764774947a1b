import pytest

from ledgerforge.config import EconomyConfig
from ledgerforge.domain import events
from ledgerforge.domain.exceptions import (
    CooldownActive,
    InsufficientFunds,
    InvalidAmount,
    InvalidTarget,
    SelfTransfer,
)
from ledgerforge.testing.fixtures import app_fixture

GUILD = "guild"


@pytest.mark.asyncio()
async def test_get_balance_opens_account_with_starting_balance(app):
    balance = await app.ledger.get_balance(GUILD, "1")
    assert (balance.wallet, balance.bank, balance.total) == (1000, 0, 1000)


@pytest.mark.asyncio()
async def test_add_and_remove_balance(app):
    assert await app.ledger.add_balance(GUILD, "1", 250, "bonus") == 1250
    assert await app.ledger.remove_balance(GUILD, "1", 1250, "spend") == 0
    balance = await app.ledger.get_balance(GUILD, "1")
    assert balance.wallet == 0


@pytest.mark.asyncio()
@pytest.mark.parametrize("amount", [0, -5, True, 1.5])
async def test_non_positive_or_non_integer_amounts_rejected(app, amount):
    with pytest.raises(InvalidAmount):
        await app.ledger.add_balance(GUILD, "1", amount)
    with pytest.raises(InvalidAmount):
        await app.ledger.remove_balance(GUILD, "1", amount)


@pytest.mark.asyncio()
async def test_remove_balance_insufficient_leaves_wallet(app):
    with pytest.raises(InsufficientFunds) as excinfo:
        await app.ledger.remove_balance(GUILD, "1", 1001)
    assert excinfo.value.required == 1001
    assert excinfo.value.available == 1000
    assert (await app.ledger.get_balance(GUILD, "1")).wallet == 1000


@pytest.mark.asyncio()
async def test_transfer_conserves_total(app):
    result = await app.ledger.transfer(GUILD, "1", "2", 300)
    assert result.sender_wallet == 700
    assert result.recipient_wallet == 1300
    sender = await app.ledger.get_balance(GUILD, "1")
    recipient = await app.ledger.get_balance(GUILD, "2")
    assert sender.total + recipient.total == 2000


@pytest.mark.asyncio()
async def test_transfer_rejections_change_nothing(app):
    with pytest.raises(SelfTransfer):
        await app.ledger.transfer(GUILD, "1", "1", 10)
    with pytest.raises(InvalidTarget):
        await app.ledger.transfer(GUILD, "1", "bot", 10, recipient_is_bot=True)
    with pytest.raises(InsufficientFunds):
        await app.ledger.transfer(GUILD, "1", "2", 5000)
    assert (await app.ledger.get_balance(GUILD, "1")).wallet == 1000
    assert (await app.ledger.get_balance(GUILD, "2")).wallet == 1000


@pytest.mark.asyncio()
async def test_transfer_to_blocked_recipient():
    app = app_fixture(economy=EconomyConfig(blocked_recipients={"999"}))
    with pytest.raises(InvalidTarget):
        await app.ledger.transfer(GUILD, "1", "999", 10)


@pytest.mark.asyncio()
async def test_deposit_and_withdraw(app):
    balance = await app.ledger.deposit(GUILD, "1", 400)
    assert (balance.wallet, balance.bank) == (600, 400)
    balance = await app.ledger.withdraw(GUILD, "1", 150)
    assert (balance.wallet, balance.bank) == (750, 250)

    with pytest.raises(InsufficientFunds) as excinfo:
        await app.ledger.withdraw(GUILD, "1", 251)
    assert excinfo.value.source == "bank"
    with pytest.raises(InsufficientFunds):
        await app.ledger.deposit(GUILD, "1", 751)


@pytest.mark.asyncio()
async def test_daily_claim_then_cooldown(app):
    claim = await app.ledger.claim_daily(GUILD, "1")
    assert claim.amount >= 500
    assert claim.amount == 550
    assert claim.streak == 1
    assert claim.new_balance == 1000 + claim.amount

    with pytest.raises(CooldownActive) as excinfo:
        await app.ledger.claim_daily(GUILD, "1")
    assert excinfo.value.seconds_remaining == 24 * 60 * 60


@pytest.mark.asyncio()
async def test_daily_streak_grows_and_resets(app, clock):
    await app.ledger.claim_daily(GUILD, "1")
    clock.advance(hours=25)
    second = await app.ledger.claim_daily(GUILD, "1")
    assert second.streak == 2
    assert second.amount == 600

    clock.advance(hours=49)
    third = await app.ledger.claim_daily(GUILD, "1")
    assert third.streak == 1
    assert third.amount == 550


@pytest.mark.asyncio()
async def test_daily_streak_bonus_is_capped(clock):
    app = app_fixture(
        clock=clock,
        economy=EconomyConfig(daily_streak_bonus=300, daily_streak_bonus_cap=500),
    )
    await app.ledger.claim_daily(GUILD, "1")
    clock.advance(hours=24)
    claim = await app.ledger.claim_daily(GUILD, "1")
    assert claim.streak == 2
    assert claim.amount == 500 + 500


@pytest.mark.asyncio()
async def test_work_reward_and_cooldowns(app, clock):
    claim = await app.ledger.work(GUILD, "1")
    assert 100 <= claim.amount <= 300
    assert claim.message
    assert claim.new_balance == 1000 + claim.amount

    clock.advance(minutes=10)
    with pytest.raises(CooldownActive) as excinfo:
        await app.ledger.work(GUILD, "1")
    assert excinfo.value.seconds_remaining == 50 * 60

    cooldowns = await app.ledger.cooldowns(GUILD, "1")
    assert cooldowns.work_seconds == 50 * 60
    assert cooldowns.daily_seconds == 0

    clock.advance(minutes=50)
    await app.ledger.work(GUILD, "1")


@pytest.mark.asyncio()
async def test_transactions_are_journaled_newest_first(app):
    await app.ledger.add_balance(GUILD, "1", 100, "bonus")
    await app.ledger.transfer(GUILD, "1", "2", 40)

    records = await app.ledger.transactions(GUILD, "1")
    assert [record.kind for record in records] == ["transfer_out", "add"]
    assert records[0].amount == -40
    assert records[0].counterparty_id == "2"

    incoming = await app.ledger.transactions(GUILD, "2")
    assert incoming[0].kind == "transfer_in"
    assert incoming[0].amount == 40


@pytest.mark.asyncio()
async def test_leaderboard_orders_by_field(app):
    await app.ledger.add_balance(GUILD, "rich", 5000)
    await app.ledger.deposit(GUILD, "saver", 900)
    await app.ledger.get_balance(GUILD, "plain")

    by_wallet = await app.ledger.leaderboard(GUILD, by="wallet")
    assert by_wallet[0].user_id == "rich"
    assert by_wallet[-1].user_id == "saver"

    by_bank = await app.ledger.leaderboard(GUILD, by="bank", limit=1)
    assert [entry.user_id for entry in by_bank] == ["saver"]
    assert by_bank[0].rank == 1

    with pytest.raises(ValueError):
        await app.ledger.leaderboard(GUILD, by="karma")


@pytest.mark.asyncio()
async def test_events_published_and_listener_failures_isolated(app):
    seen = []

    async def failing(payload):
        raise RuntimeError("listener exploded")

    async def recorder(payload):
        seen.append(payload)

    app.event_bus.subscribe(events.TRANSFER_COMPLETED, failing)
    app.event_bus.subscribe(events.TRANSFER_COMPLETED, recorder)

    await app.ledger.transfer(GUILD, "1", "2", 10)
    assert seen == [{"guild_id": GUILD, "from_user_id": "1", "to_user_id": "2", "amount": 10}]
    assert (await app.ledger.get_balance(GUILD, "2")).wallet == 1010
