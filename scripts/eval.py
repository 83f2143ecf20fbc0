#!/usr/bin/env python3
"""Scripted opponent vs random baseline, with timing.

Usage examples:

  python scripts/eval.py --games 2000
  python scripts/eval.py --games 500 --seed 7
"""
from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from kadi.constants import DEFAULT_EVAL_GAMES
from kadi.evaluator import evaluate_scripted_vs_random


def main() -> int:
    parser = argparse.ArgumentParser(description="Evaluate the scripted opponent against random play")
    parser.add_argument("--games", type=int, default=DEFAULT_EVAL_GAMES)
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args()

    print(f"Evaluating scripted vs random — {args.games} games")
    t0 = time.perf_counter()
    stats = evaluate_scripted_vs_random(games=args.games, seed=args.seed)
    elapsed = time.perf_counter() - t0
    print(f"Done in {elapsed:.1f}s")
    print(f"  scripted: {stats.a_wins} wins ({stats.a_win_rate:.3f} ± {stats.std_error:.3f})")
    print(f"  random:   {stats.b_wins} wins")
    print(f"  unfinished: {stats.games - stats.finished}, mean turns/game {stats.mean_turns:.1f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
