"""Card definitions and deck utilities for Kadi (Kenyan Poker).

Standard 52-card deck.  Ranks split into two classes:
  - Normal  (4, 5, 6, 7, 9, 10): no effect, the only ranks that can finish a game
  - Special (A, 2, 3, 8, J, Q, K): trigger a rule effect when played
"""

from __future__ import annotations

import random
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple


# ---------------------------------------------------------------------------
#  Suits & ranks
# ---------------------------------------------------------------------------


class Suit(str, Enum):
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"


ALL_SUITS: tuple[Suit, ...] = tuple(Suit)

SUIT_SYMBOLS: dict[Suit, str] = {
    Suit.HEARTS: "♥",
    Suit.DIAMONDS: "♦",
    Suit.CLUBS: "♣",
    Suit.SPADES: "♠",
}


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


ALL_RANKS: tuple[Rank, ...] = tuple(Rank)

NORMAL_RANKS: frozenset[Rank] = frozenset(
    {Rank.FOUR, Rank.FIVE, Rank.SIX, Rank.SEVEN, Rank.NINE, Rank.TEN}
)
SPECIAL_RANKS: frozenset[Rank] = frozenset(
    {Rank.ACE, Rank.TWO, Rank.THREE, Rank.EIGHT, Rank.JACK, Rank.QUEEN, Rank.KING}
)


# ---------------------------------------------------------------------------
#  Card
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Card:
    suit: Suit
    rank: Rank

    @property
    def id(self) -> str:
        return f"{self.rank.value}-{self.suit.value}"

    def short(self) -> str:
        return f"{self.rank.value}{SUIT_SYMBOLS[self.suit]}"

    def __str__(self) -> str:
        return self.short()


def card_from_id(card_id: str) -> Card:
    """Inverse of ``Card.id`` (``"10-hearts"`` -> ``Card(HEARTS, TEN)``)."""
    rank_s, sep, suit_s = card_id.partition("-")
    if not sep:
        raise ValueError(f"Invalid card id: {card_id!r}")
    return Card(Suit(suit_s), Rank(rank_s))


def is_normal(rank: Rank) -> bool:
    return rank in NORMAL_RANKS


def is_special(rank: Rank) -> bool:
    return rank in SPECIAL_RANKS


# ---------------------------------------------------------------------------
#  Deck utilities
# ---------------------------------------------------------------------------


def make_deck() -> List[Card]:
    return [Card(s, r) for s in ALL_SUITS for r in ALL_RANKS]


def shuffle(deck: Sequence[Card], rng: random.Random) -> List[Card]:
    """Fisher–Yates shuffle into a new list; *deck* is left untouched."""
    out = list(deck)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def deal(deck: Sequence[Card], n: int) -> Tuple[List[Card], List[Card]]:
    """Split off the first *n* cards as a hand.  Returns ``(hand, rest)``."""
    if n < 0 or n > len(deck):
        raise ValueError(f"Cannot deal {n} cards from a deck of {len(deck)}.")
    return list(deck[:n]), list(deck[n:])


def draw_start_card(deck: Sequence[Card]) -> Tuple[Optional[Card], List[Card]]:
    """
    Find the opening discard: the first Normal card scanning from the front.

    The card is cut out of the deck wherever it sits, so an opening special
    card (whose effect nobody could have triggered) is impossible.
    Returns ``(None, deck)`` if the deck holds no Normal card.
    """
    for i, c in enumerate(deck):
        if is_normal(c.rank):
            return c, list(deck[:i]) + list(deck[i + 1 :])
    return None, list(deck)


def suit_counts(cards: Iterable[Card]) -> dict[Suit, int]:
    d: dict[Suit, int] = defaultdict(int)
    for c in cards:
        d[c.suit] += 1
    return dict(d)
