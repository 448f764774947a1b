import pytest

from ledgerforge.config import BlackjackConfig, EconomyConfig
from ledgerforge.domain import events
from ledgerforge.domain.blackjack import GameResult, GameStatus, decide, payout_for
from ledgerforge.domain.exceptions import (
    GameAlreadyActive,
    InsufficientFunds,
    InvalidBet,
    NoActiveGame,
)
from ledgerforge.testing import StackedDeckRandom, card
from ledgerforge.testing.fixtures import app_fixture

GUILD = "guild"


def table(*scripts, **kwargs):
    return app_fixture(rng=StackedDeckRandom(*scripts), **kwargs)


async def wallet(app, user_id="1"):
    return (await app.ledger.get_balance(GUILD, user_id)).wallet


@pytest.mark.asyncio()
async def test_bust_scenario_keeps_post_bet_balance():
    app = table(("10", "6", "9", "7", "K"), economy=EconomyConfig(starting_balance=500))
    game = await app.blackjack.start(GUILD, "1", 200)
    assert game.status is GameStatus.ACTIVE
    assert await wallet(app) == 300

    game = await app.blackjack.hit(GUILD, "1")
    assert game.status is GameStatus.RESOLVED
    assert game.result is GameResult.LOSE
    assert game.payout == 0
    assert await wallet(app) == 300
    assert app.blackjack.get_game(GUILD, "1") is None


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    ("script", "result", "final_wallet"),
    [
        (("10", "9", "10", "7"), GameResult.WIN, 1100),
        (("10", "8", "10", "8"), GameResult.TIE, 1000),
        (("10", "7", "10", "9"), GameResult.LOSE, 900),
        (("10", "9", "10", "6", "K"), GameResult.WIN, 1100),
    ],
)
async def test_payout_law(script, result, final_wallet):
    app = table(script)
    await app.blackjack.start(GUILD, "1", 100)
    assert await wallet(app) == 900
    game = await app.blackjack.stand(GUILD, "1")
    assert game.result is result
    assert game.payout == payout_for(result, 100)
    assert await wallet(app) == final_wallet


@pytest.mark.asyncio()
async def test_dealer_draws_until_seventeen():
    app = table(("10", "9", "2", "3", "4", "5", "6"))
    await app.blackjack.start(GUILD, "1", 100)
    game = await app.blackjack.stand(GUILD, "1")
    assert len(game.dealer_hand) == 5
    assert game.dealer_value == 20
    assert game.result is GameResult.LOSE


@pytest.mark.asyncio()
async def test_dealer_stands_on_soft_seventeen():
    app = table(("10", "8", "A", "6"))
    await app.blackjack.start(GUILD, "1", 100)
    game = await app.blackjack.stand(GUILD, "1")
    assert len(game.dealer_hand) == 2
    assert game.dealer_value == 17
    assert game.result is GameResult.WIN


@pytest.mark.asyncio()
async def test_configured_dealer_threshold():
    app = table(("10", "8", "10", "7", "2"), blackjack=BlackjackConfig(dealer_stands_on=18))
    await app.blackjack.start(GUILD, "1", 100)
    game = await app.blackjack.stand(GUILD, "1")
    assert game.dealer_value == 19
    assert game.result is GameResult.LOSE


@pytest.mark.asyncio()
async def test_natural_blackjack_auto_stands_and_pays_double():
    app = table(("A", "K", "10", "9"))
    game = await app.blackjack.start(GUILD, "1", 100)
    assert game.is_resolved
    assert game.result is GameResult.WIN
    assert game.payout == 200
    assert await wallet(app) == 1100
    assert app.blackjack.active_games == 0


@pytest.mark.asyncio()
async def test_natural_beats_dealer_three_card_twenty_one():
    app = table(("A", "K", "10", "5", "6"))
    game = await app.blackjack.start(GUILD, "1", 100)
    assert game.dealer_value == 21
    assert game.result is GameResult.WIN


@pytest.mark.asyncio()
async def test_dealer_natural_beats_player_three_card_twenty_one():
    app = table(("10", "5", "A", "K", "6"))
    await app.blackjack.start(GUILD, "1", 100)
    game = await app.blackjack.hit(GUILD, "1")
    assert game.player_value == 21
    assert not game.is_resolved
    game = await app.blackjack.stand(GUILD, "1")
    assert game.result is GameResult.LOSE
    assert await wallet(app) == 900


@pytest.mark.asyncio()
async def test_both_naturals_tie():
    app = table(("A", "K", "A", "Q"))
    game = await app.blackjack.start(GUILD, "1", 100)
    assert game.result is GameResult.TIE
    assert await wallet(app) == 1000


def test_decide_without_dealing():
    assert decide([card("K"), card("Q"), card("5")], [card("10"), card("7")]) is GameResult.LOSE
    assert decide([card("10"), card("7")], [card("K"), card("Q"), card("5")]) is GameResult.WIN
    assert payout_for(GameResult.LOSE, 50) == 0


@pytest.mark.asyncio()
async def test_second_start_rejected_without_debit():
    app = table(("10", "6", "9", "7"))
    await app.blackjack.start(GUILD, "1", 100)
    with pytest.raises(GameAlreadyActive):
        await app.blackjack.start(GUILD, "1", 100)
    assert await wallet(app) == 900
    assert app.blackjack.get_game(GUILD, "1").bet == 100


@pytest.mark.asyncio()
@pytest.mark.parametrize("bet", [0, -10, True])
async def test_invalid_bets(bet):
    app = table()
    with pytest.raises(InvalidBet):
        await app.blackjack.start(GUILD, "1", bet)
    assert await wallet(app) == 1000


@pytest.mark.asyncio()
async def test_max_bet_enforced():
    app = table(blackjack=BlackjackConfig(max_bet=50))
    with pytest.raises(InvalidBet):
        await app.blackjack.start(GUILD, "1", 51)


@pytest.mark.asyncio()
async def test_insufficient_funds_creates_no_game():
    app = table()
    with pytest.raises(InsufficientFunds):
        await app.blackjack.start(GUILD, "1", 1001)
    assert app.blackjack.get_game(GUILD, "1") is None
    assert await wallet(app) == 1000


@pytest.mark.asyncio()
async def test_actions_without_game_raise():
    app = table(("10", "9", "10", "7"))
    with pytest.raises(NoActiveGame):
        await app.blackjack.hit(GUILD, "1")
    with pytest.raises(NoActiveGame):
        await app.blackjack.stand(GUILD, "1")

    await app.blackjack.start(GUILD, "1", 100)
    await app.blackjack.stand(GUILD, "1")
    with pytest.raises(NoActiveGame):
        await app.blackjack.hit(GUILD, "1")


@pytest.mark.asyncio()
async def test_abandon_forfeits_bet():
    app = table(("10", "6", "9", "7"))
    await app.blackjack.start(GUILD, "1", 100)
    game = await app.blackjack.abandon(GUILD, "1")
    assert game.result is GameResult.LOSE
    assert await wallet(app) == 900
    assert app.blackjack.get_game(GUILD, "1") is None
    with pytest.raises(NoActiveGame):
        await app.blackjack.abandon(GUILD, "1")


@pytest.mark.asyncio()
async def test_snapshot_is_detached():
    app = table(("10", "6", "9", "7"))
    game = await app.blackjack.start(GUILD, "1", 100)
    game.player_hand.clear()
    assert len(app.blackjack.get_game(GUILD, "1").player_hand) == 2


@pytest.mark.asyncio()
async def test_resolution_is_journaled_and_published():
    app = table(("10", "9", "10", "7"))
    resolved = []

    async def listener(payload):
        resolved.append(payload)

    app.event_bus.subscribe(events.BLACKJACK_RESOLVED, listener)
    await app.blackjack.start(GUILD, "1", 100)
    await app.blackjack.stand(GUILD, "1")

    kinds = [record.kind for record in await app.ledger.transactions(GUILD, "1")]
    assert kinds == ["blackjack_payout", "blackjack_bet"]
    assert resolved[0]["result"] == "win"
    assert resolved[0]["payout"] == 200
