"""Tests for the session engine: boundary API, snapshots and opponent scheduling."""

import random
import time

import pytest

from kadi.cards import Card, Rank, Suit
from kadi.engine import EngineConfig, KadiEngine
from kadi.game import HUMAN, OPPONENT, Phase, Status
from kadi.rules import DrawStack, IneligibleFinish, NotYourTurn, SuitRequest

H, D, CL, S = Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS, Suit.SPADES


def C(rank, suit):
    return Card(suit, Rank(rank))


def _manual(seed=0):
    return KadiEngine(EngineConfig(autoplay=False, seed=seed))


def _total(snap):
    return len(snap.deck) + len(snap.human_hand) + len(snap.opponent_hand) + len(snap.discard_pile)


class TestLifecycle:
    def test_start_game(self):
        eng = _manual()
        eng.start_game()
        snap = eng.snapshot()
        assert snap.status == Status.PLAYING
        assert len(snap.human_hand) == 4
        assert len(snap.opponent_hand) == 4
        assert _total(snap) == 52
        assert snap.turn_count == 0
        assert snap.last_action_description.startswith("Game started")

    def test_opponent_first_shows_thinking(self):
        for seed in range(20):
            eng = _manual(seed)
            eng.start_game()
            snap = eng.snapshot()
            assert snap.is_opponent_thinking == (snap.turn_owner == "opponent")

    def test_reset_clears_everything(self):
        eng = _manual()
        eng.start_game()
        gen = eng.generation
        eng.reset_game()
        snap = eng.snapshot()
        assert snap.status == Status.SETUP
        assert snap.phase == Phase.SETUP
        assert snap.human_hand == ()
        assert snap.discard_pile == ()
        assert snap.top_card is None
        assert eng.generation == gen + 1


class TestHumanOperations:
    def test_play_then_opponent_answers(self, make_state):
        eng = _manual()
        eng.set_state(make_state([C("4", H), C("9", CL)], [C("6", H), C("7", D)], [C("4", S)]))
        eng.play_cards([C("4", H)])
        snap = eng.snapshot()
        assert snap.turn_owner == "opponent"
        assert snap.is_opponent_thinking
        assert eng.advance_opponent_turn() == 1
        snap = eng.snapshot()
        assert snap.opponent_hand == (C("7", D),)
        assert snap.top_card == C("6", H)
        assert snap.turn_owner == "human"
        assert not snap.is_opponent_thinking
        assert snap.turn_count == 2
        assert _total(snap) == 52

    def test_opponent_keeps_playing_after_jack(self, make_state):
        eng = _manual()
        eng.set_state(make_state([C("4", H), C("9", CL)], [C("J", S), C("6", S), C("K", D)], [C("4", S)], turn=OPPONENT))
        assert eng.advance_opponent_turn() == 2
        snap = eng.snapshot()
        assert snap.opponent_hand == (C("K", D),)
        assert snap.turn_owner == "human"

    def test_off_turn_play_raises_and_draw_is_noop(self, make_state):
        eng = _manual()
        eng.set_state(make_state([C("4", H), C("9", CL)], [C("6", H)], [C("4", S)], turn=OPPONENT))
        with pytest.raises(NotYourTurn):
            eng.play_cards([C("4", H)])
        assert eng.draw_cards() is False
        assert len(eng.snapshot().human_hand) == 2

    def test_lone_king_rejected_and_not_playable(self, make_state):
        eng = _manual()
        eng.set_state(make_state([C("K", S)], [C("6", H)], [C("5", S)]))
        assert not eng.is_card_playable(C("K", S))
        assert eng.snapshot().playable == ()
        with pytest.raises(IneligibleFinish):
            eng.play_cards([C("K", S)])
        snap = eng.snapshot()
        assert snap.phase == Phase.AWAITING_HUMAN_DRAW
        assert snap.human_hand == (C("K", S),)
        assert snap.status == Status.PLAYING
        assert snap.turn_owner == "human"

    def test_is_card_playable(self, make_state):
        eng = _manual()
        eng.set_state(make_state([C("4", H), C("9", CL), C("A", D)], [C("6", H)], [C("4", S)]))
        assert eng.is_card_playable(C("4", H))
        assert eng.is_card_playable(C("A", D))
        assert not eng.is_card_playable(C("9", CL))
        assert not eng.is_card_playable(C("6", H))  # not in hand
        assert set(eng.snapshot().playable) == {"4-hearts", "A-diamonds"}

    def test_draw_passes_to_opponent(self, make_state):
        eng = _manual()
        eng.set_state(make_state([C("6", H)], [C("9", D), C("5", D)], [C("4", S)]))
        assert eng.draw_cards() is True
        snap = eng.snapshot()
        assert len(snap.human_hand) == 2
        assert snap.turn_owner == "opponent"
        assert snap.draw_count == 1

    def test_ace_request_reaches_opponent(self, make_state):
        eng = _manual()
        eng.set_state(make_state([C("A", H), C("9", CL)], [C("6", CL), C("7", D)], [C("4", S)]))
        eng.play_cards([C("A", H)], CL)
        assert eng.snapshot().pending_effect == SuitRequest(CL)
        eng.advance_opponent_turn()
        snap = eng.snapshot()
        assert snap.top_card == C("6", CL)
        assert snap.pending_effect is None

    def test_win_is_reported(self, make_state):
        eng = _manual()
        eng.set_state(make_state([C("7", S)], [C("6", H)], [C("5", S)]))
        eng.play_cards([C("7", S)])
        snap = eng.snapshot()
        assert snap.status == Status.HUMAN_WON
        assert snap.phase == Phase.HUMAN_WON
        assert not snap.is_opponent_thinking
        assert eng.draw_cards() is False


def test_listeners_receive_snapshots(make_state) -> None:
    eng = _manual()
    seen = []
    unsubscribe = eng.subscribe(seen.append)
    eng.set_state(make_state([C("4", H), C("9", CL)], [C("6", H)], [C("4", S)]))
    eng.play_cards([C("4", H)])
    assert len(seen) == 2
    assert seen[-1].top_card == C("4", H)
    unsubscribe()
    eng.reset_game()
    assert len(seen) == 2


def test_engine_games_keep_52_cards() -> None:
    rng = random.Random(5)
    for seed in range(10):
        eng = _manual(seed)
        eng.start_game()
        for _ in range(300):
            snap = eng.snapshot()
            assert _total(snap) == 52
            if snap.status != Status.PLAYING:
                break
            if snap.turn_owner == "opponent":
                eng.advance_opponent_turn()
                continue
            if snap.playable:
                card = next(c for c in snap.human_hand if c.id == snap.playable[0])
                suit = rng.choice(list(Suit)) if card.rank == Rank.ACE and not isinstance(snap.pending_effect, DrawStack) else None
                eng.play_cards([card], suit)
            else:
                assert eng.draw_cards()


# === Scheduling ===


def test_timer_plays_for_opponent(make_state) -> None:
    eng = KadiEngine(EngineConfig(think_delay=0.01))
    eng.set_state(make_state([C("4", H), C("9", CL)], [C("6", S), C("7", D)], [C("4", S)], turn=OPPONENT))
    assert eng.wait_idle(timeout=5.0)
    snap = eng.snapshot()
    assert snap.turn_owner == "human"
    assert snap.top_card == C("6", S)
    assert not snap.is_opponent_thinking


def test_restart_cancels_scheduled_opponent(make_state) -> None:
    eng = KadiEngine(EngineConfig(think_delay=0.2))
    st = make_state([C("4", H), C("9", CL)], [C("6", S), C("7", D)], [C("4", S)], turn=OPPONENT)
    eng.set_state(st)
    eng.config.autoplay = False
    eng.set_state(st)
    time.sleep(0.4)
    snap = eng.snapshot()
    assert snap.turn_owner == "opponent"
    assert snap.turn_count == 0


def test_reset_cancels_armed_timer(make_state) -> None:
    eng = KadiEngine(EngineConfig(think_delay=0.2))
    eng.set_state(make_state([C("4", H), C("9", CL)], [C("6", S), C("7", D)], [C("4", S)], turn=OPPONENT))
    assert eng.snapshot().is_opponent_thinking
    eng.reset_game()
    time.sleep(0.4)
    snap = eng.snapshot()
    assert snap.status == Status.SETUP
    assert snap.turn_count == 0
    assert not snap.is_opponent_thinking
    assert eng.wait_idle(timeout=0.01)


def test_stale_callback_is_ignored(make_state) -> None:
    eng = KadiEngine(EngineConfig(think_delay=30.0))
    st = make_state([C("4", H), C("9", CL)], [C("6", S), C("7", D)], [C("4", S)], turn=OPPONENT)
    eng.set_state(st)
    stale = eng._schedule_id
    eng.set_state(st)
    eng._on_timer(stale)
    assert eng.snapshot().turn_count == 0
    eng._on_timer(eng._schedule_id)
    snap = eng.snapshot()
    assert snap.turn_owner == "human"
    assert snap.turn_count == 1
    assert eng.wait_idle(timeout=0.01)


def test_callback_overtaken_by_continue_is_ignored(make_state) -> None:
    eng = KadiEngine(EngineConfig(think_delay=30.0))
    eng.set_state(make_state([C("6", H), C("9", CL)], [C("6", S), C("7", D), C("7", CL)], [C("4", S)], turn=OPPONENT))
    overtaken = eng._schedule_id
    assert eng.advance_opponent_turn() == 1
    eng.play_cards([C("6", H)])
    assert eng.snapshot().turn_count == 2
    assert not eng.wait_idle(timeout=0.01)  # the opponent's next turn is armed

    eng._on_timer(overtaken)
    snap = eng.snapshot()
    assert snap.turn_count == 2
    assert snap.turn_owner == "opponent"
    assert snap.is_opponent_thinking
    assert not eng.wait_idle(timeout=0.01)
    eng.reset_game()
    assert eng.wait_idle(timeout=0.01)


def test_skip_rearms_timer_for_next_move(make_state) -> None:
    eng = KadiEngine(EngineConfig(think_delay=30.0))
    eng.set_state(make_state([C("4", H), C("9", CL)], [C("J", S), C("9", D), C("9", H)], [C("4", S)], turn=OPPONENT))
    eng._on_timer(eng._schedule_id)
    snap = eng.snapshot()
    assert snap.top_card == C("J", S)
    assert snap.turn_owner == "opponent"
    assert snap.turn_count == 1
    assert snap.is_opponent_thinking
    assert not eng.wait_idle(timeout=0.01)

    eng._on_timer(eng._schedule_id)
    snap = eng.snapshot()
    assert snap.turn_owner == "human"
    assert len(snap.opponent_hand) == 3  # nothing follows the Jack, so it drew
    assert not snap.is_opponent_thinking
    assert eng.wait_idle(timeout=0.01)


def test_wait_idle_follows_chained_moves(make_state) -> None:
    eng = KadiEngine(EngineConfig(think_delay=0.01))
    eng.set_state(make_state([C("4", H), C("9", CL)], [C("J", S), C("9", D), C("9", H)], [C("4", S)], turn=OPPONENT))
    assert eng.wait_idle(timeout=5.0)
    snap = eng.snapshot()
    assert snap.turn_owner == "human"
    assert snap.turn_count == 2
    assert not snap.is_opponent_thinking


def test_human_is_first_index() -> None:
    assert (HUMAN, OPPONENT) == (0, 1)
