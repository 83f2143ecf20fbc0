from __future__ import annotations

import logging
import random
import time
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from kadi.cards import Card, Rank, Suit
from kadi.constants import DEFAULT_THINK_DELAY
from kadi.engine import EngineConfig, KadiEngine, Snapshot
from kadi.rules import DrawStack, PendingEffect, QuestionChain, RuleViolation, SuitRequest

log = logging.getLogger(__name__)


def _card_to_json(c: Card) -> dict[str, Any]:
    return {"id": c.id, "suit": c.suit.value, "rank": c.rank.value}


def _card_from_json(obj: dict[str, Any]) -> Card:
    try:
        return Card(Suit(str(obj["suit"])), Rank(str(obj["rank"])))
    except Exception as e:  # noqa: BLE001
        raise HTTPException(status_code=400, detail=f"Invalid card: {obj!r} ({e})")


def _effect_to_json(effect: Optional[PendingEffect]) -> Optional[dict[str, Any]]:
    if effect is None:
        return None
    if isinstance(effect, SuitRequest):
        return {"type": "suitRequest", "suit": effect.suit.value}
    if isinstance(effect, DrawStack):
        return {"type": "drawStack", "count": int(effect.count)}
    if isinstance(effect, QuestionChain):
        return {"type": "questionChain", "suit": effect.suit.value}
    raise TypeError(f"Unknown pending effect: {effect!r}")


@dataclass(slots=True)
class Session:
    engine: KadiEngine
    created_at: float
    seed: int = 0


_SESSIONS: dict[str, Session] = {}


def _get_session(game_id: str) -> Session:
    sess = _SESSIONS.get(game_id)
    if sess is None:
        raise HTTPException(status_code=404, detail="Unknown gameId")
    return sess


def _public_state(game_id: str, snap: Snapshot) -> dict[str, Any]:
    top = snap.top_card
    return {
        "gameId": game_id,
        "status": snap.status.value,
        "phase": snap.phase.value,
        "turnOwner": snap.turn_owner,
        "pendingEffect": _effect_to_json(snap.pending_effect),
        "topCard": None if top is None else _card_to_json(top),
        "discardSize": len(snap.discard_pile),
        "deckSize": len(snap.deck),
        "hands": {
            "human": [_card_to_json(c) for c in snap.human_hand],
            # do NOT leak the opponent's hand
            "opponentSize": len(snap.opponent_hand),
        },
        "playable": list(snap.playable),
        "turnCount": snap.turn_count,
        "drawCount": snap.draw_count,
        "lastAction": snap.last_action_description,
        "opponentThinking": snap.is_opponent_thinking,
    }


app = FastAPI(title="Kadi API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/api/new")
def new_game(payload: dict[str, Any]) -> dict[str, Any]:
    if "seed" in payload and payload.get("seed", None) is not None and str(payload.get("seed")).strip() != "":
        seed = int(payload["seed"])
    else:
        seed = random.randint(0, 2_147_483_647)
    delay = float(payload.get("thinkDelay", DEFAULT_THINK_DELAY))
    autoplay = bool(payload.get("autoplay", True))
    cfg = EngineConfig(think_delay=max(0.0, delay), autoplay=autoplay, seed=seed)
    gid = str(uuid.uuid4())
    engine = KadiEngine(cfg)
    _SESSIONS[gid] = Session(engine=engine, created_at=time.time(), seed=seed)
    engine.start_game()
    log.info("session %s created (seed=%d)", gid, seed)
    return _public_state(gid, engine.snapshot())


@app.get("/api/state/{game_id}")
def get_state(game_id: str) -> dict[str, Any]:
    sess = _get_session(game_id)
    return _public_state(game_id, sess.engine.snapshot())


@app.post("/api/play")
def play(payload: dict[str, Any]) -> dict[str, Any]:
    game_id = str(payload.get("gameId", "") or "")
    sess = _get_session(game_id)
    raw = payload.get("cards") or []
    if not isinstance(raw, list) or not raw:
        raise HTTPException(status_code=400, detail="Expected a non-empty list of cards.")
    cards = [_card_from_json(obj) for obj in raw]
    declared: Optional[Suit] = None
    if payload.get("declaredSuit"):
        try:
            declared = Suit(str(payload["declaredSuit"]))
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid declared suit.")
    try:
        sess.engine.play_cards(cards, declared)
    except RuleViolation as e:
        log.warning("session %s: rejected play %s (%s)", game_id, [c.id for c in cards], e)
        raise HTTPException(status_code=400, detail=str(e))
    return _public_state(game_id, sess.engine.snapshot())


@app.post("/api/draw")
def draw(payload: dict[str, Any]) -> dict[str, Any]:
    game_id = str(payload.get("gameId", "") or "")
    sess = _get_session(game_id)
    if not sess.engine.draw_cards():
        raise HTTPException(status_code=400, detail="Not your turn to draw.")
    return _public_state(game_id, sess.engine.snapshot())


@app.post("/api/continue")
def continue_game(payload: dict[str, Any]) -> dict[str, Any]:
    """Let the opponent move now instead of waiting for its timer."""
    game_id = str(payload.get("gameId", "") or "")
    sess = _get_session(game_id)
    sess.engine.advance_opponent_turn()
    return _public_state(game_id, sess.engine.snapshot())


@app.post("/api/reset")
def reset(payload: dict[str, Any]) -> dict[str, Any]:
    game_id = str(payload.get("gameId", "") or "")
    sess = _get_session(game_id)
    if payload.get("restart"):
        sess.engine.start_game()
    else:
        sess.engine.reset_game()
    return _public_state(game_id, sess.engine.snapshot())
