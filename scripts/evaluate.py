#!/usr/bin/env python3
"""
Evaluation script

Usage:
    python scripts/evaluate.py --level expert --games 100
    python scripts/evaluate.py --compare --level1 expert --level2 master --games 20
    python scripts/evaluate.py --tournament --levels novice adept expert --games 10
"""
import argparse
import logging
import sys
from pathlib import Path
import json

# project root on the path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from ai.policies import AiLevel
from env import make_env
from evaluation import (
    Evaluator,
    RandomAgent,
    SearchAgent,
    Arena,
    EloSystem,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

LEVELS = [level.value for level in AiLevel]


def parse_args():
    parser = argparse.ArgumentParser(description="Vekke Evaluation")

    # modes
    parser.add_argument("--compare", action="store_true", help="Compare two levels")
    parser.add_argument("--tournament", action="store_true", help="Run a round robin")

    # agents
    parser.add_argument("--level", type=str, choices=LEVELS, help="Level to evaluate")
    parser.add_argument("--level1", type=str, choices=LEVELS, help="First level for comparison")
    parser.add_argument("--level2", type=str, choices=LEVELS, help="Second level for comparison")
    parser.add_argument("--levels", nargs="+", type=str, choices=LEVELS, help="Levels for tournament")
    parser.add_argument(
        "--opponent",
        type=str,
        default="random",
        choices=["random"] + LEVELS,
        help="Opponent for single evaluation",
    )

    # run
    parser.add_argument("--games", type=int, default=20, help="Number of games")
    parser.add_argument("--max-steps", type=int, default=2000, help="Steps before a game is abandoned")
    parser.add_argument("--seed", type=int, default=None, help="Base seed")
    parser.add_argument("--output", type=str, help="Output file for results")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")

    return parser.parse_args()


def make_opponent(kind: str, seed):
    if kind == "random":
        return RandomAgent("random", seed=seed)
    return SearchAgent(kind, name=f"{kind}_opponent", seed=seed)


def evaluate_single(args):
    logger.info(f"Evaluating level: {args.level} vs {args.opponent}")

    agent = SearchAgent(args.level, seed=args.seed)
    opponent = make_opponent(args.opponent, None if args.seed is None else args.seed + 1)

    evaluator = Evaluator(env_fn=make_env, max_steps=args.max_steps)
    result = evaluator.evaluate(
        agent=agent,
        n_games=args.games,
        opponent=opponent,
        verbose=args.verbose,
        seed=args.seed,
    )

    logger.info("=" * 50)
    logger.info("Evaluation Results")
    logger.info("=" * 50)
    logger.info(f"Win Rate: {result.win_rate:.2%}")
    logger.info(f"White Win Rate: {result.white_win_rate:.2%}")
    logger.info(f"Blue Win Rate: {result.blue_win_rate:.2%}")
    logger.info(f"Average Reward: {result.avg_reward:.2f}")
    logger.info(f"Average Length: {result.avg_length:.1f}")
    logger.info(f"Unfinished: {result.unfinished_rate:.2%}")
    for key, value in sorted(result.extra_stats.items()):
        logger.info(f"{key}: {value:.2%}")
    logger.info("=" * 50)

    if args.output:
        with open(args.output, "w") as f:
            json.dump({
                "level": args.level,
                "opponent": args.opponent,
                "win_rate": result.win_rate,
                "white_win_rate": result.white_win_rate,
                "blue_win_rate": result.blue_win_rate,
                "avg_reward": result.avg_reward,
                "avg_length": result.avg_length,
                "unfinished_rate": result.unfinished_rate,
                "games_played": result.games_played,
                **result.extra_stats,
            }, f, indent=2)
        logger.info(f"Results saved to {args.output}")

    return result


def compare_levels(args):
    logger.info(f"Comparing levels: {args.level1} vs {args.level2}")

    agent1 = SearchAgent(args.level1, name=f"{args.level1}_1", seed=args.seed)
    agent2 = SearchAgent(args.level2, name=f"{args.level2}_2", seed=None if args.seed is None else args.seed + 1)

    evaluator = Evaluator(env_fn=make_env, max_steps=args.max_steps)
    result = evaluator.compare(agent1, agent2, n_games=args.games, seed=args.seed)

    logger.info("=" * 50)
    logger.info("Comparison Results")
    logger.info("=" * 50)
    logger.info(f"{args.level1} wins: {result['agent1_wins']} ({result['agent1_win_rate']:.2%})")
    logger.info(f"{args.level2} wins: {result['agent2_wins']} ({result['agent2_win_rate']:.2%})")
    logger.info("=" * 50)

    if args.output:
        with open(args.output, "w") as f:
            json.dump(result, f, indent=2)

    return result


def run_tournament(args):
    logger.info(f"Running tournament with {len(args.levels)} levels")

    agents = [
        SearchAgent(level, seed=None if args.seed is None else args.seed + i)
        for i, level in enumerate(args.levels)
    ]

    # ratings start from the levels' published values
    elo = EloSystem.from_ai_ratings(args.levels)
    arena = Arena(env_fn=make_env, elo=elo, max_steps=args.max_steps)
    result = arena.round_robin(agents, games_per_match=args.games, seed=args.seed)

    logger.info("=" * 50)
    logger.info("Tournament Results")
    logger.info("=" * 50)

    ranking = result.get_ranking()
    for i, (name, win_rate) in enumerate(ranking):
        logger.info(f"{i+1}. {name}: {win_rate:.2%}")

    logger.info("=" * 50)
    logger.info("ELO Ratings:")
    for player in elo.get_ranking():
        logger.info(f"  {player.name}: {player.rating:.0f}")

    if args.output:
        with open(args.output, "w") as f:
            json.dump({
                "rankings": ranking,
                "total_games": result.total_games,
                "elo": {p.name: p.rating for p in elo.get_ranking()},
            }, f, indent=2)

    return result


def main():
    args = parse_args()

    if args.tournament and args.levels:
        run_tournament(args)
    elif args.compare and args.level1 and args.level2:
        compare_levels(args)
    elif args.level:
        evaluate_single(args)
    else:
        logger.error("Please specify --level, --compare with --level1/--level2, or --tournament with --levels")
        sys.exit(1)


if __name__ == "__main__":
    main()
