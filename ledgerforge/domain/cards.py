"""Playing-card primitives: deck construction and blackjack scoring."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from random import Random
from typing import Iterable, Sequence


class Suit(str, Enum):
    SPADES = "♠"
    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"


class Rank(str, Enum):
    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    @property
    def points(self) -> int:
        """Base blackjack value; aces report 11 and are softened by hand_value."""
        if self is Rank.ACE:
            return 11
        if self in (Rank.JACK, Rank.QUEEN, Rank.KING):
            return 10
        return int(self.value)


@dataclass(frozen=True, slots=True)
class Card:
    rank: Rank
    suit: Suit

    def __str__(self) -> str:
        return f"{self.rank.value}{self.suit.value}"


BLACKJACK = 21


def new_deck() -> list[Card]:
    return [Card(rank=rank, suit=suit) for suit in Suit for rank in Rank]


def shuffle_deck(rng: Random | None = None) -> list[Card]:
    """Return a freshly shuffled 52-card deck."""
    deck = new_deck()
    (rng or Random()).shuffle(deck)
    return deck


def hand_value(hand: Iterable[Card]) -> int:
    """Score a hand, counting as many aces as 1 as needed to stay at or under 21."""
    value, _ = _score(hand)
    return value


def is_soft(hand: Iterable[Card]) -> bool:
    """True when at least one ace in the hand is still counted as 11."""
    _, soft_aces = _score(hand)
    return soft_aces > 0


def is_blackjack(hand: Sequence[Card]) -> bool:
    return len(hand) == 2 and hand_value(hand) == BLACKJACK


def is_bust(hand: Iterable[Card]) -> bool:
    return hand_value(hand) > BLACKJACK


def format_card(card: Card) -> str:
    return str(card)


def format_hand(hand: Iterable[Card], *, hide_hole: bool = False) -> str:
    cards = [format_card(card) for card in hand]
    if hide_hole and len(cards) > 1:
        cards = [cards[0]] + ["🂠"] * (len(cards) - 1)
    return " ".join(cards)


def _score(hand: Iterable[Card]) -> tuple[int, int]:
    value = 0
    aces = 0
    for card in hand:
        value += card.rank.points
        if card.rank is Rank.ACE:
            aces += 1
    while value > BLACKJACK and aces:
        value -= 10
        aces -= 1
    return value, aces
