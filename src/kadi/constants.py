"""Centralized constants and defaults for Kadi play & evaluation.

Every tunable default lives here.  Import from this module instead
of hardcoding magic numbers elsewhere.

Usage::

    from kadi.constants import HAND_SIZE, DEFAULT_THINK_DELAY
"""
from __future__ import annotations

# ---------------------------------------------------------------------------
#  Table setup
# ---------------------------------------------------------------------------

DECK_SIZE: int = 52
"""Standard French deck, no jokers."""

HAND_SIZE: int = 4
"""Cards dealt to each player at the start of a game."""

MAX_SETUP_ATTEMPTS: int = 16
"""Fresh shuffles tried before giving up on finding a Normal start card.

With 24 Normal cards in 44 undealt ones a miss needs every undealt card
to be special, which cannot happen with a full deck.  The bound only
exists so a broken deck fails loudly instead of looping.
"""

# ---------------------------------------------------------------------------
#  Opponent pacing
# ---------------------------------------------------------------------------

DEFAULT_THINK_DELAY: float = 1.0
"""Seconds between the opponent gaining the turn and acting on it."""

# ---------------------------------------------------------------------------
#  Opponent heuristics
# ---------------------------------------------------------------------------

LOW_HAND_SIZE: int = 2
"""At or below this hand size a finishing play beats every other option."""

FINISH_GUARD_HAND_SIZE: int = 3
"""At or below this hand size singles that keep a Normal card are preferred."""

# ---------------------------------------------------------------------------
#  Evaluation defaults
# ---------------------------------------------------------------------------

DEFAULT_EVAL_GAMES: int = 200
"""Number of games per evaluation run."""

MAX_TURNS_PER_GAME: int = 2000
"""Safety cap for headless games; a game reaching it counts as unfinished."""
