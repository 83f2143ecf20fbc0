from __future__ import annotations

import sys
from collections import deque
from pathlib import Path

import pytest


# Allow `import kadi` (and `apps.api`) when running tests without installing the package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))
sys.path.insert(1, str(ROOT))

from kadi.cards import make_deck  # noqa: E402
from kadi.game import HUMAN, GameState, Status  # noqa: E402


@pytest.fixture
def make_state():
    """Build a playing position; the deck defaults to every card not placed elsewhere."""

    def _make(human, opponent, discard, *, deck=None, turn=HUMAN, pending=None) -> GameState:
        used = set(human) | set(opponent) | set(discard)
        if deck is None:
            deck = [c for c in make_deck() if c not in used]
        return GameState(
            hands=[list(human), list(opponent)],
            deck=deque(deck),
            discard=list(discard),
            turn=turn,
            pending=pending,
            status=Status.PLAYING,
        )

    return _make
