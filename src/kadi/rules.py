"""Legality predicate, pending effects and card actions for Kadi.

A play is judged against the top of the discard pile and the single
pending effect left behind by the previous play:

  - ``SuitRequest(suit)``   next play must follow *suit* (Ace request, King lock)
  - ``DrawStack(count)``    next player draws *count* or counters with 2/3/A
  - ``QuestionChain(suit)`` same player must answer in *suit* or chain Q/8

Several cards of one rank may be played together; 2s and 3s may be mixed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from kadi.cards import Card, Rank, Suit, is_normal


# ---------------------------------------------------------------------------
#  Errors
# ---------------------------------------------------------------------------


class RuleViolation(ValueError):
    """A move the rules do not allow.  State is never mutated when raised."""


class NotYourTurn(RuleViolation):
    pass


class CardNotInHand(RuleViolation):
    pass


class IllegalPlay(RuleViolation):
    pass


class DeclaredSuitError(RuleViolation):
    pass


class IneligibleFinish(RuleViolation):
    """Last card(s) would empty the hand but may not end the game."""


class GameOver(RuleViolation):
    pass


# ---------------------------------------------------------------------------
#  Pending effects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SuitRequest:
    suit: Suit


@dataclass(frozen=True, slots=True)
class DrawStack:
    count: int


@dataclass(frozen=True, slots=True)
class QuestionChain:
    suit: Suit


PendingEffect = Union[SuitRequest, DrawStack, QuestionChain]


# ---------------------------------------------------------------------------
#  Card actions — what a legal play does to the table
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NormalPlay:
    pass


@dataclass(frozen=True, slots=True)
class AcePlay:
    requested_suit: Optional[Suit]  # None: the Ace cancelled a draw stack


@dataclass(frozen=True, slots=True)
class DrawPlay:
    count: int


@dataclass(frozen=True, slots=True)
class QuestionPlay:
    suit: Suit


@dataclass(frozen=True, slots=True)
class SkipPlay:
    pass


@dataclass(frozen=True, slots=True)
class LockPlay:
    suit: Suit


CardAction = Union[NormalPlay, AcePlay, DrawPlay, QuestionPlay, SkipPlay, LockPlay]

DRAW_RANKS: frozenset[Rank] = frozenset({Rank.TWO, Rank.THREE})
QUESTION_RANKS: frozenset[Rank] = frozenset({Rank.QUEEN, Rank.EIGHT})
DRAW_VALUES: dict[Rank, int] = {Rank.TWO: 2, Rank.THREE: 3}


# ---------------------------------------------------------------------------
#  Legality
# ---------------------------------------------------------------------------


def is_legal(card: Card, top: Card, pending: Optional[PendingEffect]) -> bool:
    """Whether *card* may be played on *top* under *pending* (first match wins)."""
    if isinstance(pending, DrawStack):
        # 2/3 escalate, an Ace cancels.
        return card.rank in DRAW_RANKS or card.rank == Rank.ACE
    if isinstance(pending, SuitRequest):
        return card.suit == pending.suit or card.rank == Rank.ACE or card.rank in QUESTION_RANKS
    if isinstance(pending, QuestionChain):
        return card.rank in QUESTION_RANKS or card.suit == pending.suit
    if pending is not None:
        raise TypeError(f"Unknown pending effect: {pending!r}")
    return card.rank == Rank.ACE or card.rank == top.rank or card.suit == top.suit


def legal_cards(hand: Sequence[Card], top: Card, pending: Optional[PendingEffect]) -> List[Card]:
    return [c for c in hand if is_legal(c, top, pending)]


def is_valid_group(cards: Sequence[Card]) -> bool:
    """Same rank throughout, or any mix of 2s and 3s.  No repeats."""
    if not cards or len(set(cards)) != len(cards):
        return False
    first = cards[0].rank
    if all(c.rank == first for c in cards):
        return True
    return all(c.rank in DRAW_RANKS for c in cards)


def is_legal_group(cards: Sequence[Card], top: Card, pending: Optional[PendingEffect]) -> bool:
    # The first card stands for the whole group.
    return is_valid_group(cards) and is_legal(cards[0], top, pending)


def group_draw_count(cards: Sequence[Card]) -> int:
    return sum(DRAW_VALUES.get(c.rank, 0) for c in cards)


def classify_play(
    cards: Sequence[Card],
    pending: Optional[PendingEffect],
    declared_suit: Optional[Suit] = None,
) -> CardAction:
    """
    Map a (legal) group to the action it performs.

    - Ace: cancels a pending draw stack, otherwise requires *declared_suit*.
    - Queen / 8: opens a question in the suit of the last card played; a
      declared suit, if given, must be that suit.
    - All other ranks take no declared suit.
    """
    lead = cards[0].rank
    if lead == Rank.ACE:
        if isinstance(pending, DrawStack):
            if declared_suit is not None:
                raise DeclaredSuitError("An Ace cancelling a draw stack does not request a suit.")
            return AcePlay(requested_suit=None)
        if declared_suit is None:
            raise DeclaredSuitError("An Ace must request a suit.")
        return AcePlay(requested_suit=declared_suit)

    if lead in QUESTION_RANKS:
        suit = cards[-1].suit
        if declared_suit is not None and declared_suit != suit:
            raise DeclaredSuitError(
                f"Question must continue in {suit.value}, the suit of the last card played."
            )
        return QuestionPlay(suit=suit)

    if declared_suit is not None:
        raise DeclaredSuitError(f"{lead.value} does not take a declared suit.")

    if lead in DRAW_RANKS:
        return DrawPlay(count=group_draw_count(cards))
    if lead == Rank.JACK:
        return SkipPlay()
    if lead == Rank.KING:
        return LockPlay(suit=cards[-1].suit)
    return NormalPlay()


def is_win_eligible(cards: Sequence[Card], pending: Optional[PendingEffect]) -> bool:
    """Whether playing *cards* as the last cards in hand ends the game."""
    if all(is_normal(c.rank) for c in cards):
        return True
    if isinstance(pending, SuitRequest):
        return all(c.suit == pending.suit for c in cards)
    return False


def strands_hand(play: Sequence[Card], hand: Sequence[Card], pending: Optional[PendingEffect]) -> bool:
    """Whether *play* would empty *hand* without ending the game."""
    return len(play) == len(hand) and not is_win_eligible(play, pending)


def playable_cards(hand: Sequence[Card], top: Card, pending: Optional[PendingEffect]) -> List[Card]:
    """Legal cards of *hand* that may also be played on their own right now."""
    return [c for c in legal_cards(hand, top, pending) if not strands_hand([c], hand, pending)]


def passes_turn(action: CardAction) -> bool:
    """Jack, Queen and 8 keep the turn with the player who played them."""
    return not isinstance(action, (SkipPlay, QuestionPlay))


def effect_after(action: CardAction, pending: Optional[PendingEffect]) -> Optional[PendingEffect]:
    """The pending effect left on the table once *action* has been applied."""
    if isinstance(action, AcePlay):
        return None if action.requested_suit is None else SuitRequest(action.requested_suit)
    if isinstance(action, DrawPlay):
        base = pending.count if isinstance(pending, DrawStack) else 0
        return DrawStack(base + action.count)
    if isinstance(action, QuestionPlay):
        return QuestionChain(action.suit)
    if isinstance(action, LockPlay):
        return SuitRequest(action.suit)
    if isinstance(action, (SkipPlay, NormalPlay)):
        return None
    raise TypeError(f"Unknown card action: {action!r}")
