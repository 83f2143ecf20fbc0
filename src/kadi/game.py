from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, List, Optional, Sequence

from kadi.cards import Card, Suit, deal, draw_start_card, make_deck, shuffle
from kadi.constants import DECK_SIZE, HAND_SIZE, MAX_SETUP_ATTEMPTS
from kadi.rules import (
    AcePlay,
    CardAction,
    CardNotInHand,
    DrawPlay,
    DrawStack,
    GameOver,
    IllegalPlay,
    IneligibleFinish,
    LockPlay,
    NormalPlay,
    NotYourTurn,
    PendingEffect,
    QuestionPlay,
    SkipPlay,
    classify_play,
    effect_after,
    is_legal_group,
    is_valid_group,
    is_win_eligible,
    passes_turn,
    playable_cards,
)

HUMAN: int = 0
OPPONENT: int = 1
PLAYER_NAMES: tuple[str, str] = ("human", "opponent")


def other(player: int) -> int:
    return 1 - player


class Status(str, Enum):
    SETUP = "setup"
    PLAYING = "playing"
    HUMAN_WON = "human_won"
    OPPONENT_WON = "opponent_won"


class Phase(str, Enum):
    SETUP = "setup"
    AWAITING_HUMAN_PLAY = "awaiting_human_play"
    AWAITING_HUMAN_DRAW = "awaiting_human_draw"
    OPPONENT_TURN = "opponent_turn"
    HUMAN_WON = "human_won"
    OPPONENT_WON = "opponent_won"


WIN_STATUS: tuple[Status, Status] = (Status.HUMAN_WON, Status.OPPONENT_WON)


@dataclass(slots=True)
class GameState:
    hands: list[list[Card]]  # [2][N], index HUMAN / OPPONENT
    deck: Deque[Card]  # drawn from the left
    discard: list[Card]  # last element is the top card
    turn: int = HUMAN
    pending: Optional[PendingEffect] = None
    status: Status = Status.SETUP
    turn_count: int = 0
    draw_count: int = 0  # total cards drawn this game
    last_action: str = ""
    last_drawn: list[Card] = field(default_factory=list)

    def clone(self) -> GameState:
        """Copy the mutable containers; cards and effects are frozen and shared."""
        return GameState(
            hands=[list(h) for h in self.hands],
            deck=deque(self.deck),
            discard=list(self.discard),
            turn=self.turn,
            pending=self.pending,
            status=self.status,
            turn_count=self.turn_count,
            draw_count=self.draw_count,
            last_action=self.last_action,
            last_drawn=list(self.last_drawn),
        )


def empty_state() -> GameState:
    return GameState(hands=[[], []], deck=deque(), discard=[])


def new_game(rng: random.Random, *, first_player: Optional[int] = None) -> GameState:
    """
    Shuffle, deal HAND_SIZE cards each (human first) and turn up a Normal start card.

    A deck without any Normal card left after the deal is reshuffled from
    scratch, up to MAX_SETUP_ATTEMPTS times.
    """
    for _ in range(MAX_SETUP_ATTEMPTS):
        deck = shuffle(make_deck(), rng)
        human, deck = deal(deck, HAND_SIZE)
        opponent, deck = deal(deck, HAND_SIZE)
        start, deck = draw_start_card(deck)
        if start is None:
            continue
        turn = rng.randrange(2) if first_player is None else int(first_player)
        return GameState(
            hands=[human, opponent],
            deck=deque(deck),
            discard=[start],
            turn=turn,
            pending=None,
            status=Status.PLAYING,
            last_action=f"Game started on {start.short()}, {PLAYER_NAMES[turn]} to play",
        )
    raise RuntimeError(f"No Normal start card found after {MAX_SETUP_ATTEMPTS} shuffles.")


def top_card(state: GameState) -> Card:
    return state.discard[-1]


def is_terminal(state: GameState) -> bool:
    return state.status in WIN_STATUS


def winner(state: GameState) -> Optional[int]:
    if state.status == Status.HUMAN_WON:
        return HUMAN
    if state.status == Status.OPPONENT_WON:
        return OPPONENT
    return None


def card_total(state: GameState) -> int:
    return len(state.deck) + len(state.hands[0]) + len(state.hands[1]) + len(state.discard)


def phase(state: GameState) -> Phase:
    if state.status == Status.SETUP:
        return Phase.SETUP
    if state.status == Status.HUMAN_WON:
        return Phase.HUMAN_WON
    if state.status == Status.OPPONENT_WON:
        return Phase.OPPONENT_WON
    if state.turn == OPPONENT:
        return Phase.OPPONENT_TURN
    if playable_cards(state.hands[HUMAN], top_card(state), state.pending):
        return Phase.AWAITING_HUMAN_PLAY
    return Phase.AWAITING_HUMAN_DRAW


def _check_turn(state: GameState, player: int) -> None:
    if state.status != Status.PLAYING:
        raise GameOver(f"Game is not in play (status: {state.status.value}).")
    if state.turn != player:
        raise NotYourTurn(f"It is the {PLAYER_NAMES[state.turn]}'s turn.")


def _describe_play(player: int, cards: Sequence[Card], action: CardAction) -> str:
    who = "You" if player == HUMAN else "Opponent"
    text = f"{who} played {' '.join(c.short() for c in cards)}"
    if isinstance(action, AcePlay):
        if action.requested_suit is None:
            return text + " and cancelled the draw"
        return text + f" and requested {action.requested_suit.value}"
    if isinstance(action, DrawPlay):
        return text + f" - {PLAYER_NAMES[other(player)]} must draw or counter"
    if isinstance(action, QuestionPlay):
        return text + f" - must answer in {action.suit.value}"
    if isinstance(action, SkipPlay):
        return text + " and plays again"
    if isinstance(action, LockPlay):
        return text + f" and locked {action.suit.value}"
    if isinstance(action, NormalPlay):
        return text
    raise TypeError(f"Unknown card action: {action!r}")


def play_cards(
    state: GameState,
    player: int,
    cards: Sequence[Card],
    declared_suit: Optional[Suit] = None,
) -> CardAction:
    """
    Play *cards* (one group, in order) from *player*'s hand.

    Every check runs before anything moves, so a rejected play (including a
    last card that may not finish the game) leaves *state* untouched.
    Returns the applied card action.
    """
    _check_turn(state, player)
    cards = list(cards)
    hand = state.hands[player]
    missing = [c for c in cards if c not in hand]
    if missing:
        raise CardNotInHand(f"Not in hand: {', '.join(c.short() for c in missing)}")
    if not is_valid_group(cards):
        raise IllegalPlay("Cards played together must share a rank (2s and 3s may mix).")
    top = top_card(state)
    if not is_legal_group(cards, top, state.pending):
        raise IllegalPlay(f"{cards[0].short()} cannot be played on {top.short()}.")
    action = classify_play(cards, state.pending, declared_suit)

    finishing = len(cards) == len(hand)
    if finishing and not is_win_eligible(cards, state.pending):
        raise IneligibleFinish("The last card must be a Normal card (or follow the requested suit).")

    for c in cards:
        hand.remove(c)
    state.discard.extend(cards)
    state.turn_count += 1
    state.last_drawn = []

    if finishing:
        state.status = WIN_STATUS[player]
        state.pending = None
        state.last_action = "You won the game!" if player == HUMAN else "Opponent won the game!"
        return action

    state.pending = effect_after(action, state.pending)
    if passes_turn(action):
        state.turn = other(player)
    state.last_action = _describe_play(player, cards, action)
    return action


def reshuffle_discard(state: GameState, rng: random.Random) -> int:
    """Shuffle all but the top discard back under the deck.  Returns cards moved."""
    if len(state.discard) < 2:
        return 0
    top = state.discard[-1]
    rest = shuffle(state.discard[:-1], rng)
    state.discard = [top]
    state.deck.extend(rest)
    return len(rest)


def _draw_one(state: GameState, player: int, rng: random.Random) -> Optional[Card]:
    if not state.deck:
        reshuffle_discard(state, rng)
    if not state.deck:
        return None
    c = state.deck.popleft()
    state.hands[player].append(c)
    return c


def draw_cards(state: GameState, player: int, rng: random.Random) -> List[Card]:
    """
    Draw the pending stack (or one card) and pass the turn.

    Drawing always clears the pending effect and always ends the turn, even
    when deck and discard are both exhausted and nothing could be drawn.
    """
    _check_turn(state, player)
    n = state.pending.count if isinstance(state.pending, DrawStack) else 1
    drawn: list[Card] = []
    for _ in range(n):
        c = _draw_one(state, player, rng)
        if c is None:
            break
        drawn.append(c)

    who = "You" if player == HUMAN else "Opponent"
    if not drawn:
        state.last_action = f"{who} could not draw, the deck is empty - turn passes"
    elif len(drawn) < n:
        state.last_action = f"{who} drew {len(drawn)} of {n} cards, the deck ran out"
    elif n == 1:
        state.last_action = f"{who} drew a card"
    else:
        state.last_action = f"{who} drew {n} cards"

    state.draw_count += len(drawn)
    state.last_drawn = drawn
    state.pending = None
    state.turn = other(player)
    state.turn_count += 1
    return drawn
