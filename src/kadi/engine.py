"""Session engine — the boundary between the rules and a front end.

One ``KadiEngine`` owns one authoritative ``GameState``.  The human acts
through ``play_cards`` / ``draw_cards``; whenever the opponent gains the
turn its move is scheduled on a ``threading.Timer`` after a short
"thinking" delay, one move per timer; a Jack, Queen or 8 that keeps the
turn arms the next one.  Every scheduled callback carries its own schedule
id, so a restart, a reset or an explicit ``advance_opponent_turn`` silently
invalidates it.

Front ends re-render from ``snapshot()`` or subscribe to be pushed one
after every change.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from kadi.agent import DrawMove, Move, PlayMove, ScriptedAgent
from kadi.cards import Card, Suit
from kadi.constants import DEFAULT_THINK_DELAY
from kadi.game import (
    HUMAN,
    OPPONENT,
    PLAYER_NAMES,
    GameState,
    Phase,
    Status,
    draw_cards,
    empty_state,
    new_game,
    phase,
    play_cards,
    top_card,
    winner,
)
from kadi.rules import CardAction, PendingEffect, RuleViolation, playable_cards

log = logging.getLogger(__name__)


@dataclass(slots=True)
class EngineConfig:
    think_delay: float = DEFAULT_THINK_DELAY
    autoplay: bool = True  # False: caller drives advance_opponent_turn()
    seed: Optional[int] = None


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Read-only view of the table for rendering."""

    deck: tuple[Card, ...]
    human_hand: tuple[Card, ...]
    opponent_hand: tuple[Card, ...]
    discard_pile: tuple[Card, ...]
    turn_owner: str
    pending_effect: Optional[PendingEffect]
    status: Status
    phase: Phase
    turn_count: int
    draw_count: int
    last_action_description: str
    is_opponent_thinking: bool
    playable: tuple[str, ...]  # ids of human cards that may be played now
    generation: int

    @property
    def top_card(self) -> Optional[Card]:
        return self.discard_pile[-1] if self.discard_pile else None


Listener = Callable[[Snapshot], None]


class KadiEngine:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        rng: Optional[random.Random] = None,
        agent: Optional[ScriptedAgent] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self._rng = rng or random.Random(self.config.seed)
        self._agent = agent or ScriptedAgent(random.Random(self._rng.randrange(1 << 30)))
        self._lock = threading.RLock()
        self._state: GameState = empty_state()
        self._generation = 0
        self._timer: Optional[threading.Timer] = None
        self._schedule_id = 0
        self._thinking = False
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    #  Session lifecycle
    # ------------------------------------------------------------------

    def start_game(self) -> None:
        with self._lock:
            self._invalidate()
            self._state = new_game(self._rng)
            log.info(
                "game %d started: top=%s first=%s",
                self._generation, top_card(self._state).short(), PLAYER_NAMES[self._state.turn],
            )
            self._maybe_schedule_opponent()
            snap = self._snapshot()
        self._notify(snap)

    def reset_game(self) -> None:
        with self._lock:
            self._invalidate()
            self._state = empty_state()
            log.info("game reset (generation %d)", self._generation)
            snap = self._snapshot()
        self._notify(snap)

    def set_state(self, state: GameState) -> None:
        """Replace the table with *state* (a prepared position) as a new session."""
        with self._lock:
            self._invalidate()
            self._state = state.clone()
            self._maybe_schedule_opponent()
            snap = self._snapshot()
        self._notify(snap)

    def _invalidate(self) -> None:
        self._generation += 1
        self._cancel_timer()
        self._thinking = False

    def _cancel_timer(self) -> None:
        # Any callback already waiting on the lock now holds a stale id.
        self._schedule_id += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # ------------------------------------------------------------------
    #  Human operations
    # ------------------------------------------------------------------

    def is_card_playable(self, card: Card) -> bool:
        with self._lock:
            st = self._state
            if st.status != Status.PLAYING or st.turn != HUMAN:
                return False
            return self._playable(card)

    def _playable(self, card: Card) -> bool:
        st = self._state
        return card in playable_cards(st.hands[HUMAN], top_card(st), st.pending)

    def play_cards(self, cards: Sequence[Card], declared_suit: Optional[Suit] = None) -> CardAction:
        """Play a group for the human.  Raises ``RuleViolation`` with nothing changed."""
        with self._lock:
            action = play_cards(self._state, HUMAN, cards, declared_suit)
            log.debug("human: %s -> %s", action, self._state.last_action)
            self._after_move()
            snap = self._snapshot()
        self._notify(snap)
        return action

    def draw_cards(self) -> bool:
        """Draw for the human.  Off turn (or outside play) this is a no-op returning False."""
        with self._lock:
            st = self._state
            if st.status != Status.PLAYING or st.turn != HUMAN:
                return False
            drawn = draw_cards(st, HUMAN, self._rng)
            log.debug("human drew %d card(s)", len(drawn))
            self._after_move()
            snap = self._snapshot()
        self._notify(snap)
        return True

    # ------------------------------------------------------------------
    #  Opponent
    # ------------------------------------------------------------------

    def _after_move(self) -> None:
        w = winner(self._state)
        if w is not None:
            log.info("game %d won by %s", self._generation, PLAYER_NAMES[w])
            return
        self._maybe_schedule_opponent()

    def _maybe_schedule_opponent(self) -> None:
        st = self._state
        if st.status != Status.PLAYING or st.turn != OPPONENT:
            return
        self._thinking = True
        if not self.config.autoplay:
            return
        self._cancel_timer()
        t = threading.Timer(self.config.think_delay, self._on_timer, args=(self._schedule_id,))
        t.daemon = True
        self._timer = t
        t.start()

    def _on_timer(self, schedule_id: int) -> None:
        """One scheduled opponent move.  Re-arms while the opponent keeps the turn."""
        with self._lock:
            if schedule_id != self._schedule_id:
                return  # cancelled, superseded by a reset or already played through
            self._cancel_timer()
            st = self._state
            if st.status == Status.PLAYING and st.turn == OPPONENT:
                self._apply_opponent(self._agent.choose(st, OPPONENT))
            if st.status == Status.PLAYING and st.turn == OPPONENT:
                self._maybe_schedule_opponent()  # Jack, Queen or 8: think again
            else:
                self._finish_opponent_turn()
            snap = self._snapshot()
        self._notify(snap)

    def advance_opponent_turn(self) -> int:
        """Let the opponent act until the turn leaves it.  Returns moves applied."""
        with self._lock:
            self._cancel_timer()
            n = self._run_opponent()
            snap = self._snapshot()
        self._notify(snap)
        return n

    def _run_opponent(self) -> int:
        st = self._state
        moves = 0
        while st.status == Status.PLAYING and st.turn == OPPONENT:
            self._apply_opponent(self._agent.choose(st, OPPONENT))
            moves += 1
        self._finish_opponent_turn()
        return moves

    def _finish_opponent_turn(self) -> None:
        self._thinking = False
        w = winner(self._state)
        if w is not None:
            log.info("game %d won by %s", self._generation, PLAYER_NAMES[w])

    def _apply_opponent(self, move: Move) -> None:
        st = self._state
        if isinstance(move, PlayMove):
            try:
                action = play_cards(st, OPPONENT, move.cards, move.declared_suit)
            except RuleViolation:
                log.exception("opponent chose a rejected play %s; drawing instead", move)
                draw_cards(st, OPPONENT, self._rng)
                return
            log.debug("opponent: %s -> %s", action, st.last_action)
        elif isinstance(move, DrawMove):
            drawn = draw_cards(st, OPPONENT, self._rng)
            log.debug("opponent drew %d card(s)", len(drawn))
        else:
            raise TypeError(f"Unknown move: {move!r}")

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no opponent move is scheduled.  Returns False on timeout.

        Follows chained moves: a timer that re-arms another one is waited
        through as well.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                t = self._timer
            if t is None:
                return True
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            t.join(remaining)
            if t.is_alive():
                return False
            with self._lock:
                if self._timer is t:
                    return True

    # ------------------------------------------------------------------
    #  Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with a fresh snapshot after every change.  Returns an unsubscribe."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, snap: Snapshot) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for fn in listeners:
            fn(snap)

    def snapshot(self) -> Snapshot:
        with self._lock:
            return self._snapshot()

    @property
    def generation(self) -> int:
        return self._generation

    def _snapshot(self) -> Snapshot:
        st = self._state
        playable: tuple[str, ...] = ()
        if st.status == Status.PLAYING and st.turn == HUMAN:
            playable = tuple(c.id for c in playable_cards(st.hands[HUMAN], top_card(st), st.pending))
        return Snapshot(
            deck=tuple(st.deck),
            human_hand=tuple(st.hands[HUMAN]),
            opponent_hand=tuple(st.hands[OPPONENT]),
            discard_pile=tuple(st.discard),
            turn_owner=PLAYER_NAMES[st.turn],
            pending_effect=st.pending,
            status=st.status,
            phase=phase(st),
            turn_count=st.turn_count,
            draw_count=st.draw_count,
            last_action_description=st.last_action,
            is_opponent_thinking=self._thinking,
            playable=playable,
            generation=self._generation,
        )
