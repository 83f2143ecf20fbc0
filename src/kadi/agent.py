from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from kadi.cards import ALL_SUITS, Card, Rank, Suit, is_normal, suit_counts
from kadi.constants import FINISH_GUARD_HAND_SIZE, LOW_HAND_SIZE
from kadi.game import GameState, top_card
from kadi.rules import DRAW_RANKS, DrawStack, PendingEffect, legal_cards, strands_hand


@dataclass(frozen=True, slots=True)
class PlayMove:
    cards: tuple[Card, ...]
    declared_suit: Optional[Suit] = None


@dataclass(frozen=True, slots=True)
class DrawMove:
    pass


Move = Union[PlayMove, DrawMove]


def candidate_plays(hand: Sequence[Card], top: Card, pending: Optional[PendingEffect]) -> list[list[Card]]:
    """
    Every legal single plus every legal multi-card group, led by a legal card.

    Plays that would empty the hand without finishing the game are left out.
    Groups are deduplicated by card set; the first legal leader is kept.
    """
    legal = legal_cards(hand, top, pending)
    plays: list[list[Card]] = [[c] for c in legal]
    seen: set[frozenset[Card]] = set()
    for c in legal:
        if c.rank in DRAW_RANKS:
            mates = [d for d in hand if d != c and d.rank in DRAW_RANKS]
        else:
            mates = [d for d in hand if d != c and d.rank == c.rank]
        if not mates:
            continue
        key = frozenset([c, *mates])
        if key in seen:
            continue
        seen.add(key)
        plays.append([c, *mates])
    return [p for p in plays if not strands_hand(p, hand, pending)]


def choose_ace_suit(remaining: Sequence[Card], ace: Card) -> Suit:
    """Request the suit held most often after the play (ties go by suit order)."""
    if not remaining:
        return ace.suit
    counts = suit_counts(remaining)
    return max(ALL_SUITS, key=lambda s: counts.get(s, 0))


def _to_move(play: Sequence[Card], hand: Sequence[Card], pending: Optional[PendingEffect]) -> PlayMove:
    declared: Optional[Suit] = None
    if play[0].rank == Rank.ACE and not isinstance(pending, DrawStack):
        remaining = [c for c in hand if c not in play]
        declared = choose_ace_suit(remaining, play[0])
    return PlayMove(cards=tuple(play), declared_suit=declared)


@dataclass(slots=True)
class ScriptedAgent:
    """
    Rule-of-thumb opponent.

    Priorities, highest first:
      1. With LOW_HAND_SIZE cards or fewer, a play that wins outright.
      2. Against a draw stack, cancel with an Ace rather than escalate.
      3. The single largest same-rank group (sheds the most cards).
      4. A random legal single, keeping a Normal card for the finish when
         the hand is small.
    No legal play means a forced draw.
    """

    rng: random.Random

    def choose(self, state: GameState, player: int) -> Move:
        hand = state.hands[player]
        pending = state.pending
        plays = candidate_plays(hand, top_card(state), pending)
        if not plays:
            return DrawMove()

        if len(hand) <= LOW_HAND_SIZE:
            finishing = [p for p in plays if len(p) == len(hand)]
            if finishing:
                return _to_move(self.rng.choice(finishing), hand, pending)

        singles = [p for p in plays if len(p) == 1]
        if isinstance(pending, DrawStack):
            aces = [p for p in singles if p[0].rank == Rank.ACE]
            if aces:
                return _to_move(self.rng.choice(aces), hand, pending)

        groups = [p for p in plays if len(p) > 1]
        if groups:
            size = max(len(g) for g in groups)
            largest = [g for g in groups if len(g) == size]
            if len(largest) == 1:
                return _to_move(largest[0], hand, pending)

        pool = singles
        if len(hand) <= FINISH_GUARD_HAND_SIZE:
            keeps_normal = [p for p in singles if any(is_normal(c.rank) for c in hand if c != p[0])]
            if keeps_normal:
                pool = keeps_normal
        return _to_move(self.rng.choice(pool), hand, pending)


@dataclass(slots=True)
class RandomAgent:
    """Baseline: a uniformly random legal single, else draw."""

    rng: random.Random

    def choose(self, state: GameState, player: int) -> Move:
        hand = state.hands[player]
        singles = [p for p in candidate_plays(hand, top_card(state), state.pending) if len(p) == 1]
        if not singles:
            return DrawMove()
        return _to_move(self.rng.choice(singles), hand, state.pending)
