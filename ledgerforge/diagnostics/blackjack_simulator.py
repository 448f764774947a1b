"""Blackjack house-edge simulation helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from random import Random
from typing import Dict

from ..config import BlackjackConfig
from ..domain.blackjack import GameResult, decide, payout_for
from ..domain.cards import hand_value, is_blackjack, shuffle_deck


@dataclass(slots=True)
class SimulationResult:
    hands: int
    bet: int
    outcomes: Dict[str, int] = field(default_factory=dict)
    naturals: int = 0
    wagered: int = 0
    returned: int = 0

    def record(self, result: GameResult, payout: int, natural: bool) -> None:
        self.outcomes[result.value] = self.outcomes.get(result.value, 0) + 1
        self.wagered += self.bet
        self.returned += payout
        if natural:
            self.naturals += 1

    @property
    def house_edge(self) -> float:
        """Share of every wagered coin the table keeps."""
        if not self.wagered:
            return 0.0
        return (self.wagered - self.returned) / self.wagered


class BlackjackSimulator:
    """Monte-Carlo runs of the table rules against a fixed player policy.

    The player hits while below ``player_stands_on``; the dealer follows the
    configured table rules, the same ones the live service applies.
    """

    def __init__(self, config: BlackjackConfig, *, rng: Random | None = None) -> None:
        self._config = config
        self._rng = rng or Random()

    def simulate(self, *, hands: int = 10000, bet: int = 100, player_stands_on: int = 17) -> SimulationResult:
        result = SimulationResult(hands=hands, bet=bet)
        for _ in range(hands):
            deck = shuffle_deck(self._rng)
            player = [deck.pop(), deck.pop()]
            dealer = [deck.pop(), deck.pop()]
            natural = is_blackjack(player)
            if not natural:
                while hand_value(player) < player_stands_on:
                    player.append(deck.pop())
            if hand_value(player) > 21:
                outcome = GameResult.LOSE
            else:
                while hand_value(dealer) < self._config.dealer_stands_on:
                    dealer.append(deck.pop())
                outcome = decide(player, dealer)
            result.record(outcome, payout_for(outcome, bet), natural)
        return result
