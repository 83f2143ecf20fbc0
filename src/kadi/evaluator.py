"""Headless self-play evaluation.

Pits two agents against each other over many seeded games, swapping
seats every game so neither side keeps the first-move advantage, and
summarises the results with numpy.  Every game also re-checks the
52-card invariant after each move.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

import numpy as np

from kadi.agent import DrawMove, Move, PlayMove, RandomAgent, ScriptedAgent
from kadi.constants import DECK_SIZE, MAX_TURNS_PER_GAME
from kadi.game import GameState, card_total, draw_cards, is_terminal, new_game, play_cards, winner


class Agent(Protocol):
    def choose(self, state: GameState, player: int) -> Move:
        ...


AgentFactory = Callable[[random.Random], Agent]


@dataclass(slots=True)
class EvalStats:
    """Per-game outcomes from agent A's point of view."""

    outcomes: np.ndarray  # 1.0 win, 0.0 loss, nan unfinished
    turns: np.ndarray

    @property
    def games(self) -> int:
        return int(self.outcomes.size)

    @property
    def finished(self) -> int:
        return int(np.count_nonzero(~np.isnan(self.outcomes)))

    @property
    def a_wins(self) -> int:
        return int(np.nansum(self.outcomes))

    @property
    def b_wins(self) -> int:
        return self.finished - self.a_wins

    @property
    def a_win_rate(self) -> float:
        """A's share of the finished games."""
        return 0.0 if self.finished == 0 else float(np.nanmean(self.outcomes))

    @property
    def std_error(self) -> float:
        n = self.finished
        if n == 0:
            return 0.0
        p = self.a_win_rate
        return float(np.sqrt(p * (1.0 - p) / n))

    @property
    def mean_turns(self) -> float:
        return 0.0 if self.turns.size == 0 else float(np.mean(self.turns))


def _mix_seed(seed: int, game_index: int, tag: int) -> int:
    x = (seed & 0xFFFFFFFF) ^ ((game_index * 0x9E3779B1) & 0xFFFFFFFF) ^ ((tag * 0x85EBCA6B) & 0xFFFFFFFF)
    x ^= (x >> 16) & 0xFFFFFFFF
    x = (x * 0x7FEB352D) & 0xFFFFFFFF
    x ^= (x >> 15) & 0xFFFFFFFF
    return x & 0x7FFFFFFF


def apply_move(state: GameState, player: int, move: Move, rng: random.Random) -> None:
    if isinstance(move, PlayMove):
        play_cards(state, player, move.cards, move.declared_suit)
    elif isinstance(move, DrawMove):
        draw_cards(state, player, rng)
    else:
        raise TypeError(f"Unknown move: {move!r}")


def play_game(
    agents: Sequence[Agent],
    rng: random.Random,
    *,
    first_player: Optional[int] = None,
    max_turns: int = MAX_TURNS_PER_GAME,
) -> GameState:
    """Play one game between ``agents[0]`` (seat 0) and ``agents[1]`` (seat 1)."""
    st = new_game(rng, first_player=first_player)
    while not is_terminal(st) and st.turn_count < max_turns:
        p = st.turn
        apply_move(st, p, agents[p].choose(st, p), rng)
        if card_total(st) != DECK_SIZE:
            raise RuntimeError(f"Card count broke: {card_total(st)} cards on the table after turn {st.turn_count}.")
    return st


def evaluate(
    make_a: AgentFactory,
    make_b: AgentFactory,
    *,
    games: int,
    seed: int = 0,
    max_turns: int = MAX_TURNS_PER_GAME,
) -> EvalStats:
    outcomes = np.full(games, np.nan, dtype=np.float64)
    turns = np.zeros(games, dtype=np.int64)
    for g in range(games):
        a = make_a(random.Random(_mix_seed(seed, g, 1)))
        b = make_b(random.Random(_mix_seed(seed, g, 2)))
        a_idx = g % 2
        agents = (a, b) if a_idx == 0 else (b, a)
        st = play_game(agents, random.Random(_mix_seed(seed, g, 0)), first_player=0, max_turns=max_turns)
        w = winner(st)
        if w is not None:
            outcomes[g] = 1.0 if w == a_idx else 0.0
        turns[g] = st.turn_count
    return EvalStats(outcomes=outcomes, turns=turns)


def evaluate_scripted_vs_random(*, games: int, seed: int = 0) -> EvalStats:
    return evaluate(ScriptedAgent, RandomAgent, games=games, seed=seed)
