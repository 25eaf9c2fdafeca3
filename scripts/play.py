#!/usr/bin/env python3
"""
Play script

Usage:
    python scripts/play.py --mode watch --white expert --blue master
    python scripts/play.py --mode play --level adept
    python scripts/play.py --mode watch --notation game.txt --seed 7
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional
import time

# project root on the path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from ai.policies import AI_RATINGS, AiLevel
from core.actions import Action
from core.notation import NotationRecorder
from env import VekkeEnv
from evaluation import Agent, RandomAgent, SearchAgent

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)
logger = logging.getLogger(__name__)

LEVELS = [level.value for level in AiLevel]


def parse_args():
    parser = argparse.ArgumentParser(description="Vekke Play")

    parser.add_argument(
        "--mode",
        type=str,
        default="watch",
        choices=["watch", "play"],
        help="Mode: watch two AIs or play against one",
    )
    parser.add_argument("--white", type=str, default="expert", choices=LEVELS + ["random"])
    parser.add_argument("--blue", type=str, default="expert", choices=LEVELS + ["random"])
    parser.add_argument("--level", type=str, default="adept", choices=LEVELS, help="AI level in play mode")
    parser.add_argument("--side", type=str, default="W", choices=["W", "B"], help="Your side in play mode")
    parser.add_argument("--delay", type=float, default=0.5, help="Delay between moves")
    parser.add_argument("--games", type=int, default=1, help="Number of games")
    parser.add_argument("--seed", type=int, default=None, help="Game seed")
    parser.add_argument("--notation", type=str, help="Write the game record to this file")

    return parser.parse_args()


def create_agent(kind: str, seed: Optional[int]) -> Agent:
    if kind == "random":
        return RandomAgent("random", seed=seed)
    level = AiLevel(kind)
    return SearchAgent(kind, name=f"{level.display_name} ({AI_RATINGS[level]})", seed=seed)


def print_game_state(env: VekkeEnv, info: dict):
    print(env.render())
    print(f"To move: {info['current_player']}  phase: {info['phase']}")


def print_log_tail(env: VekkeEnv, seen: int) -> int:
    log = env.state.log
    for line in log[seen:]:
        print(f"  {line}")
    return len(log)


def ask_action(legal_actions: List[Action]) -> Optional[Action]:
    """Prompt until a legal action index is entered; None quits"""
    print("\nLegal actions:")
    for i, action in enumerate(legal_actions):
        print(f"  {i}: {action}")

    while True:
        choice = input("\nAction number (or 'q' to quit): ")
        if choice.lower() == "q":
            return None
        try:
            idx = int(choice)
        except ValueError:
            print("Enter a number")
            continue
        if 0 <= idx < len(legal_actions):
            return legal_actions[idx]
        print("Out of range, try again")


def run_game(env: VekkeEnv, agents: dict, args, game_idx: int, human: Optional[str] = None) -> None:
    seed = None if args.seed is None else args.seed + game_idx
    obs, info = env.reset(seed=seed)
    for agent in agents.values():
        agent.reset()

    recorder = NotationRecorder(
        game_id=f"game-{game_idx + 1}",
        white=agents["W"].name if "W" in agents else "Human",
        blue=agents["B"].name if "B" in agents else "Human",
    )
    recorder.observe(env.state)
    seen = print_log_tail(env, 0)

    while "winner" not in info:
        print_game_state(env, info)
        side = info["current_player"]
        legal_actions = info["legal_actions"]

        if side == human:
            action = ask_action(legal_actions)
            if action is None:
                print("Quit")
                return
        else:
            action = agents[side].act(obs, legal_actions, env.state)
            if action is None:
                logger.warning("%s has no action, stopping", agents[side].name)
                return
            print(f"\n{agents[side].name}: {action}")
            time.sleep(args.delay)

        obs, reward, terminated, truncated, info = env.step(action)
        if "error" in info:
            print(info["error"])
        recorder.observe(env.state)
        seen = print_log_tail(env, seen)

    print("\n" + "=" * 40)
    print(f"Game over: {info['winner']} wins by {info['reason']}")
    print("=" * 40)

    if args.notation:
        path = Path(args.notation)
        if args.games > 1:
            path = path.with_name(f"{path.stem}_{game_idx + 1}{path.suffix}")
        path.write_text(str(recorder) + "\n")
        logger.info(f"Notation saved to {path}")


def watch_game(args):
    env = VekkeEnv()
    agents = {
        "W": create_agent(args.white, args.seed),
        "B": create_agent(args.blue, None if args.seed is None else args.seed + 1),
    }
    for game_idx in range(args.games):
        print(f"\nGame {game_idx + 1}/{args.games}: {agents['W'].name} vs {agents['B'].name}")
        run_game(env, agents, args, game_idx)


def play_game(args):
    env = VekkeEnv()
    ai_side = "B" if args.side == "W" else "W"
    agents = {ai_side: create_agent(args.level, args.seed)}
    for game_idx in range(args.games):
        print(f"\nGame {game_idx + 1}/{args.games}: you play {args.side}")
        run_game(env, agents, args, game_idx, human=args.side)


def main():
    args = parse_args()

    print("=" * 40)
    print("Vekke")
    print("=" * 40)

    if args.mode == "watch":
        watch_game(args)
    elif args.mode == "play":
        play_game(args)


if __name__ == "__main__":
    main()
