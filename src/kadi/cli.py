from __future__ import annotations

import argparse
import logging
from typing import Optional

from kadi.agent import RandomAgent, ScriptedAgent
from kadi.constants import DEFAULT_EVAL_GAMES, MAX_TURNS_PER_GAME
from kadi.evaluator import evaluate

AGENTS = {"scripted": ScriptedAgent, "random": RandomAgent}


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Kadi — headless rules-engine simulator")
    parser.add_argument("--log-level", type=str, default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="cmd", required=True)

    sim = sub.add_parser("simulate", help="Play agent A against agent B and report the win rate")
    sim.add_argument("--a", type=str, default="scripted", choices=sorted(AGENTS))
    sim.add_argument("--b", type=str, default="random", choices=sorted(AGENTS))
    sim.add_argument("--games", type=int, default=DEFAULT_EVAL_GAMES)
    sim.add_argument("--seed", type=int, default=0)
    sim.add_argument("--max-turns", type=int, default=MAX_TURNS_PER_GAME)
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(name)s %(levelname)s %(message)s")

    if args.games < 1:
        parser.error("--games must be at least 1")

    stats = evaluate(AGENTS[args.a], AGENTS[args.b], games=args.games, seed=args.seed, max_turns=args.max_turns)
    print(f"{args.a} vs {args.b}: {stats.games} games ({stats.finished} finished)")
    print(f"  {args.a}: {stats.a_wins} wins ({stats.a_win_rate:.3f} ± {stats.std_error:.3f})")
    print(f"  {args.b}: {stats.b_wins} wins")
    print(f"  mean turns/game: {stats.mean_turns:.1f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
