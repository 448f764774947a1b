"""Blackjack state machine with wager settlement through the ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from random import Random

from ..config import BlackjackConfig
from . import events
from .cards import Card, hand_value, is_blackjack, shuffle_deck
from .events import EventBus
from .exceptions import GameAlreadyActive, InvalidBet, NoActiveGame
from .ledger import LedgerService
from .locks import game_key

logger = logging.getLogger(__name__)


class GameStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


class GameResult(str, Enum):
    WIN = "win"
    LOSE = "lose"
    TIE = "tie"


@dataclass(slots=True)
class BlackjackGame:
    guild_id: str
    user_id: str
    bet: int
    player_hand: list[Card]
    dealer_hand: list[Card]
    deck: list[Card] = field(repr=False)
    created_at: datetime
    status: GameStatus = GameStatus.ACTIVE
    result: GameResult | None = None
    payout: int = 0

    @property
    def player_value(self) -> int:
        return hand_value(self.player_hand)

    @property
    def dealer_value(self) -> int:
        return hand_value(self.dealer_hand)

    @property
    def is_resolved(self) -> bool:
        return self.status is GameStatus.RESOLVED

    def snapshot(self) -> "BlackjackGame":
        return replace(
            self,
            player_hand=list(self.player_hand),
            dealer_hand=list(self.dealer_hand),
            deck=list(self.deck),
        )


def decide(player_hand: list[Card], dealer_hand: list[Card]) -> GameResult:
    """Compare final hands; a two-card 21 beats any other 21."""
    player = hand_value(player_hand)
    dealer = hand_value(dealer_hand)
    if player > 21:
        return GameResult.LOSE
    if dealer > 21 or player > dealer:
        return GameResult.WIN
    if player < dealer:
        return GameResult.LOSE
    player_natural = is_blackjack(player_hand)
    dealer_natural = is_blackjack(dealer_hand)
    if player_natural and not dealer_natural:
        return GameResult.WIN
    if dealer_natural and not player_natural:
        return GameResult.LOSE
    return GameResult.TIE


def validate_bet(bet: int, config: BlackjackConfig) -> None:
    if isinstance(bet, bool) or not isinstance(bet, int) or bet <= 0:
        raise InvalidBet(f"Bet must be a positive integer, got {bet!r}")
    if config.max_bet is not None and bet > config.max_bet:
        raise InvalidBet(f"Bet {bet} exceeds table limit {config.max_bet}")


def payout_for(result: GameResult, bet: int) -> int:
    if result is GameResult.WIN:
        return bet * 2
    if result is GameResult.TIE:
        return bet
    return 0


class BlackjackService:
    """Hold at most one live game per (guild, user) and settle it on resolution.

    Each operation runs inside the player's game lock. The bet debit and the
    payout credit go through the ledger, which takes the account lock, so the
    lock order is always game then account.
    """

    def __init__(
        self,
        ledger: LedgerService,
        config: BlackjackConfig,
        event_bus: EventBus,
        *,
        rng: Random | None = None,
    ) -> None:
        self._ledger = ledger
        self._config = config
        self._events = event_bus
        self._rng = rng or Random()
        self._locks = ledger.locks
        self._games: dict[tuple[str, str], BlackjackGame] = {}

    @property
    def active_games(self) -> int:
        return len(self._games)

    def get_game(self, guild_id: str, user_id: str) -> BlackjackGame | None:
        game = self._games.get((guild_id, user_id))
        return game.snapshot() if game else None

    async def start(self, guild_id: str, user_id: str, bet: int) -> BlackjackGame:
        key = (guild_id, user_id)
        async with self._locks.hold(game_key(guild_id, user_id)):
            if key in self._games:
                raise GameAlreadyActive(f"User {user_id} already has a blackjack game running")
            validate_bet(bet, self._config)
            await self._ledger.remove_balance(
                guild_id, user_id, bet, "Blackjack bet", kind="blackjack_bet"
            )

            deck = shuffle_deck(self._rng)
            player_hand = [deck.pop(), deck.pop()]
            dealer_hand = [deck.pop(), deck.pop()]
            game = BlackjackGame(
                guild_id=guild_id,
                user_id=user_id,
                bet=bet,
                player_hand=player_hand,
                dealer_hand=dealer_hand,
                deck=deck,
                created_at=self._ledger.now(),
            )
            self._games[key] = game
            logger.debug("Created blackjack game for %s/%s with bet %s", guild_id, user_id, bet)

            if is_blackjack(player_hand):
                await self._dealer_play_and_settle(game)

        await self._events.publish(
            events.BLACKJACK_STARTED, {"guild_id": guild_id, "user_id": user_id, "bet": bet}
        )
        if game.is_resolved:
            await self._publish_resolved(game)
        return game.snapshot()

    async def hit(self, guild_id: str, user_id: str) -> BlackjackGame:
        async with self._locks.hold(game_key(guild_id, user_id)):
            game = self._require_game(guild_id, user_id)
            game.player_hand.append(game.deck.pop())
            if game.player_value > 21:
                # The bet was taken at start; a bust needs no ledger call.
                self._close(game, GameResult.LOSE, 0)
        if game.is_resolved:
            await self._publish_resolved(game)
        return game.snapshot()

    async def stand(self, guild_id: str, user_id: str) -> BlackjackGame:
        async with self._locks.hold(game_key(guild_id, user_id)):
            game = self._require_game(guild_id, user_id)
            await self._dealer_play_and_settle(game)
        await self._publish_resolved(game)
        return game.snapshot()

    async def abandon(self, guild_id: str, user_id: str) -> BlackjackGame:
        """Drop a live game; the bet stays forfeited."""
        async with self._locks.hold(game_key(guild_id, user_id)):
            game = self._require_game(guild_id, user_id)
            self._close(game, GameResult.LOSE, 0)
        logger.info("User %s/%s abandoned blackjack game (bet %s)", guild_id, user_id, game.bet)
        await self._publish_resolved(game, abandoned=True)
        return game.snapshot()

    def _require_game(self, guild_id: str, user_id: str) -> BlackjackGame:
        game = self._games.get((guild_id, user_id))
        if game is None or game.status is not GameStatus.ACTIVE:
            raise NoActiveGame(f"No active blackjack game for user {user_id}")
        return game

    async def _dealer_play_and_settle(self, game: BlackjackGame) -> None:
        while game.dealer_value < self._config.dealer_stands_on:
            game.dealer_hand.append(game.deck.pop())

        result = decide(game.player_hand, game.dealer_hand)
        payout = payout_for(result, game.bet)
        if payout:
            reason = "Blackjack win" if result is GameResult.WIN else "Blackjack tie (refund)"
            await self._ledger.add_balance(
                game.guild_id, game.user_id, payout, reason, kind="blackjack_payout"
            )
        self._close(game, result, payout)

    def _close(self, game: BlackjackGame, result: GameResult, payout: int) -> None:
        game.status = GameStatus.RESOLVED
        game.result = result
        game.payout = payout
        self._games.pop((game.guild_id, game.user_id), None)
        logger.info(
            "Blackjack game for %s/%s resolved: %s (bet %s, payout %s)",
            game.guild_id,
            game.user_id,
            result.value,
            game.bet,
            payout,
        )

    async def _publish_resolved(self, game: BlackjackGame, *, abandoned: bool = False) -> None:
        await self._events.publish(
            events.BLACKJACK_RESOLVED,
            {
                "guild_id": game.guild_id,
                "user_id": game.user_id,
                "bet": game.bet,
                "result": game.result.value if game.result else None,
                "payout": game.payout,
                "abandoned": abandoned,
            },
        )
