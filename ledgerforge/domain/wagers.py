"""Single-shot casino games settled in one ledger write."""

from __future__ import annotations

from dataclasses import dataclass
from random import Random

from ..config import BlackjackConfig
from . import events
from .blackjack import validate_bet
from .events import EventBus
from .exceptions import InvalidBet
from .ledger import LedgerService

COIN_SIDES = ("heads", "tails")

SLOT_SYMBOLS = ("🍒", "🍋", "🍊", "🍇", "🔔", "💎", "7️⃣")
SLOT_TRIPLE_MULTIPLIERS = {"7️⃣": 10, "💎": 7, "🔔": 5}
SLOT_TRIPLE_DEFAULT = 3
SLOT_PAIR_MULTIPLIER = 1.5

RED_NUMBERS = frozenset({1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36})
ROULETTE_MULTIPLIERS = {
    "red": 2,
    "black": 2,
    "green": 14,
    "even": 2,
    "odd": 2,
    "number": 35,
}


@dataclass(slots=True)
class WagerOutcome:
    game: str
    bet: int
    won: bool
    payout: int
    new_balance: int
    detail: dict


def roulette_color(pocket: int) -> str:
    if pocket == 0:
        return "green"
    return "red" if pocket in RED_NUMBERS else "black"


def roulette_wins(pocket: int, bet_type: str, bet_value: int | None = None) -> bool:
    color = roulette_color(pocket)
    if bet_type in ("red", "black", "green"):
        return color == bet_type
    if bet_type == "even":
        return pocket != 0 and pocket % 2 == 0
    if bet_type == "odd":
        return pocket % 2 == 1
    if bet_type == "number":
        return pocket == bet_value
    raise InvalidBet(f"Unknown roulette bet type '{bet_type}'")


def slots_multiplier(reels: tuple[str, str, str]) -> float:
    first, second, third = reels
    if first == second == third:
        return SLOT_TRIPLE_MULTIPLIERS.get(first, SLOT_TRIPLE_DEFAULT)
    if first == second or second == third or first == third:
        return SLOT_PAIR_MULTIPLIER
    return 0


class WagerService:
    """Coinflip, slots and roulette: bet and payout land in the same write."""

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

    async def coinflip(self, guild_id: str, user_id: str, bet: int, choice: str) -> WagerOutcome:
        validate_bet(bet, self._config)
        choice = choice.lower()
        if choice not in COIN_SIDES:
            raise InvalidBet(f"Choose heads or tails, got '{choice}'")
        side = self._rng.choice(COIN_SIDES)
        won = side == choice
        return await self._settle(
            guild_id, user_id, "coinflip", bet, bet * 2 if won else 0, {"choice": choice, "result": side}
        )

    async def slots(self, guild_id: str, user_id: str, bet: int) -> WagerOutcome:
        validate_bet(bet, self._config)
        reels = (
            self._rng.choice(SLOT_SYMBOLS),
            self._rng.choice(SLOT_SYMBOLS),
            self._rng.choice(SLOT_SYMBOLS),
        )
        payout = int(bet * slots_multiplier(reels))
        return await self._settle(guild_id, user_id, "slots", bet, payout, {"reels": list(reels)})

    async def roulette(
        self,
        guild_id: str,
        user_id: str,
        bet: int,
        bet_type: str,
        bet_value: int | None = None,
    ) -> WagerOutcome:
        validate_bet(bet, self._config)
        bet_type = bet_type.lower()
        if bet_type not in ROULETTE_MULTIPLIERS:
            raise InvalidBet(f"Unknown roulette bet type '{bet_type}'")
        if bet_type == "number" and (bet_value is None or not 0 <= bet_value <= 36):
            raise InvalidBet("Number bets need a pocket between 0 and 36")
        pocket = self._rng.randint(0, 36)
        won = roulette_wins(pocket, bet_type, bet_value)
        payout = bet * ROULETTE_MULTIPLIERS[bet_type] if won else 0
        return await self._settle(
            guild_id,
            user_id,
            "roulette",
            bet,
            payout,
            {"pocket": pocket, "color": roulette_color(pocket), "bet_type": bet_type, "bet_value": bet_value},
        )

    async def _settle(
        self, guild_id: str, user_id: str, game: str, bet: int, payout: int, detail: dict
    ) -> WagerOutcome:
        new_balance = await self._ledger.settle_wager(guild_id, user_id, bet, payout, game)
        outcome = WagerOutcome(
            game=game, bet=bet, won=payout > 0, payout=payout, new_balance=new_balance, detail=detail
        )
        await self._events.publish(
            events.WAGER_SETTLED,
            {"guild_id": guild_id, "user_id": user_id, "game": game, "bet": bet, "payout": payout},
        )
        return outcome
