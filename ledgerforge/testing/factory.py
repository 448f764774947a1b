"""Factories for tests and prototyping."""

from __future__ import annotations

from dataclasses import dataclass, field
from random import Random
from typing import Iterable, MutableSequence, Sequence

from faker import Faker

from ..domain.cards import Card, Rank, Suit, new_deck
from ..storage.base import AccountRecord, ShopItemRecord


@dataclass(slots=True)
class AccountFactory:
    faker: Faker = field(default_factory=Faker)
    guild_id: str = "guild"

    def build(self, user_id: str | None = None, *, wallet: int = 1000, bank: int = 0) -> AccountRecord:
        return AccountRecord(
            guild_id=self.guild_id,
            user_id=user_id or str(self.faker.unique.random_int(min=10_000, max=99_999_999)),
            wallet=wallet,
            bank=bank,
            total_earned=wallet + bank,
        )


@dataclass(slots=True)
class ShopItemFactory:
    faker: Faker = field(default_factory=Faker)
    rng: Random = field(default_factory=Random)
    guild_id: str = "guild"

    def build(
        self,
        *,
        price: int | None = None,
        stock: int = -1,
        capability: str | None = None,
        is_active: bool = True,
    ) -> ShopItemRecord:
        return ShopItemRecord(
            guild_id=self.guild_id,
            item_id=f"item_{self.faker.unique.lexify(text='????')}",
            name=self.faker.word().title(),
            price=price if price is not None else self.rng.randint(10, 500),
            description=self.faker.sentence(),
            stock=stock,
            is_active=is_active,
            capability=capability,
        )

    def batch(self, count: int, **kwargs) -> Iterable[ShopItemRecord]:
        for _ in range(count):
            yield self.build(**kwargs)


def card(label: str) -> Card:
    """Build a card from a short label such as ``"A"``, ``"10"`` or ``"K"``; suits are spades."""
    return Card(rank=Rank(label), suit=Suit.SPADES)


class StackedDeckRandom:
    """Random stand-in whose ``shuffle`` stacks each dealt deck in a scripted order.

    Every shuffle consumes the next script; cards are dealt from the end of the
    deck with ``pop()``, so a script lists them in dealing order (player,
    player, dealer, dealer, then draws). Once the scripts run out, shuffles
    are random again. Everything else is delegated to a seeded ``Random``.
    """

    def __init__(self, *scripts: Sequence[str], seed: int = 0) -> None:
        self._random = Random(seed)
        self._scripts = [list(script) for script in scripts]

    def __getattr__(self, name: str):
        return getattr(self._random, name)

    def shuffle(self, x: MutableSequence) -> None:
        if not self._scripts:
            self._random.shuffle(x)
            return
        labels = self._scripts.pop(0)
        remaining = new_deck()
        dealt: list[Card] = []
        for label in labels:
            wanted = next(c for c in remaining if c.rank is Rank(label))
            remaining.remove(wanted)
            dealt.append(wanted)
        x[:] = remaining + list(reversed(dealt))
