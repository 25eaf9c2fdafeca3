"""
Evaluator

Plays agents against each other through the self-play environment and
summarizes the outcome.
"""
from typing import Dict, List, Optional, Callable, Tuple, Any
from dataclasses import dataclass, field
import logging

import numpy as np

from ai.policies import AiLevel, choose_action
from ai.config import SearchConfig
from core.actions import Action
from core.state import GameState

logger = logging.getLogger(__name__)

# env steps before a game is abandoned as unfinished
DEFAULT_MAX_STEPS = 2000


@dataclass
class EvalResult:
    """Evaluation result for one agent"""
    win_rate: float
    avg_reward: float
    avg_length: float
    games_played: int
    white_win_rate: float = 0.0
    blue_win_rate: float = 0.0
    unfinished_rate: float = 0.0
    extra_stats: Dict[str, float] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"EvalResult(win_rate={self.win_rate:.2%}, "
            f"avg_reward={self.avg_reward:.2f}, "
            f"games={self.games_played})"
        )


class Agent:
    """Base agent"""

    def __init__(self, name: str = "agent"):
        self.name = name

    def act(
        self,
        obs: Dict[str, Any],
        legal_actions: List[Action],
        state: Optional[GameState] = None,
    ) -> Optional[Action]:
        """Pick one of ``legal_actions``"""
        raise NotImplementedError

    def reset(self):
        pass


class RandomAgent(Agent):
    """Uniformly random legal actions"""

    def __init__(self, name: str = "random", seed: Optional[int] = None):
        super().__init__(name)
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def act(
        self,
        obs: Dict[str, Any],
        legal_actions: List[Action],
        state: Optional[GameState] = None,
    ) -> Optional[Action]:
        if not legal_actions:
            return None
        return legal_actions[int(self.rng.integers(len(legal_actions)))]

    def reset(self):
        self.rng = np.random.default_rng(self.seed)


class SearchAgent(Agent):
    """Built-in AI at a fixed difficulty level"""

    def __init__(
        self,
        level: str = "expert",
        name: Optional[str] = None,
        seed: Optional[int] = None,
        config: Optional[SearchConfig] = None,
    ):
        self.level = AiLevel(level)
        super().__init__(name or self.level.value)
        self.seed = seed
        self.config = config
        self.rng = np.random.default_rng(seed)

    def act(
        self,
        obs: Dict[str, Any],
        legal_actions: List[Action],
        state: Optional[GameState] = None,
    ) -> Optional[Action]:
        if state is None:
            raise ValueError("SearchAgent needs the game state")
        action = choose_action(state, state.player, self.level, self.rng, self.config)
        if action is None and legal_actions:
            logger.warning("%s found no action, falling back to the first legal one", self.name)
            return legal_actions[0]
        return action

    def reset(self):
        self.rng = np.random.default_rng(self.seed)


def run_episode(
    env,
    agents: Dict[str, Agent],
    max_steps: int = DEFAULT_MAX_STEPS,
    seed: Optional[int] = None,
) -> Tuple[Dict[str, Any], int, Dict[str, float]]:
    """
    Play one game in a self-play env

    Args:
        env: VekkeEnv without a built-in opponent
        agents: side ("W" / "B") -> agent
        max_steps: env steps before the game is abandoned
        seed: reset seed

    Returns:
        (final info, steps played, side -> summed reward)
    """
    for agent in agents.values():
        agent.reset()
    obs, info = env.reset(seed=seed)
    rewards = {side: 0.0 for side in agents}
    length = 0

    while "winner" not in info and length < max_steps:
        side = info["current_player"]
        legal_actions = info["legal_actions"]
        action = agents[side].act(obs, legal_actions, env.state)
        if action is None:
            logger.warning("%s has no action to play, abandoning game", agents[side].name)
            break

        obs, reward, terminated, truncated, info = env.step(action)
        rewards[side] += reward
        length += 1

        if "error" in info:
            logger.warning("%s played a rejected action: %s", agents[side].name, info["error"])
            break
        if terminated or truncated:
            break

    return info, length, rewards


class Evaluator:
    """
    Evaluator

    Measures one agent against an opponent, alternating colours game by game
    (even games as White).
    """

    def __init__(self, env_fn: Callable, max_steps: int = DEFAULT_MAX_STEPS):
        self.env_fn = env_fn
        self.max_steps = max_steps

    def evaluate(
        self,
        agent: Agent,
        n_games: int = 100,
        opponent: Optional[Agent] = None,
        verbose: bool = False,
        seed: Optional[int] = None,
    ) -> EvalResult:
        """
        Evaluate an agent

        Args:
            agent: agent under test
            n_games: number of games
            opponent: opposing agent (random by default)
            verbose: log running win rate every 10 games
            seed: base seed, game i resets with seed + i

        Returns:
            EvalResult
        """
        if opponent is None:
            opponent = RandomAgent("opponent")

        env = self.env_fn()

        wins = 0
        unfinished = 0
        total_reward = 0.0
        total_length = 0
        white_wins = white_games = 0
        blue_wins = blue_games = 0
        reasons: Dict[str, float] = {}

        for game_idx in range(n_games):
            agent_side = "W" if game_idx % 2 == 0 else "B"
            other_side = "B" if agent_side == "W" else "W"
            game_seed = None if seed is None else seed + game_idx

            info, length, rewards = run_episode(
                env,
                {agent_side: agent, other_side: opponent},
                self.max_steps,
                game_seed,
            )

            winner = info.get("winner")
            won = winner == agent_side
            if agent_side == "W":
                white_games += 1
                white_wins += int(won)
            else:
                blue_games += 1
                blue_wins += int(won)
            wins += int(won)
            if winner is None:
                unfinished += 1
            else:
                reason = info.get("reason", "unknown")
                reasons[reason] = reasons.get(reason, 0.0) + 1

            total_reward += rewards[agent_side]
            total_length += length

            if verbose and (game_idx + 1) % 10 == 0:
                logger.info(f"Game {game_idx + 1}/{n_games}, Win rate: {wins/(game_idx+1):.2%}")

        env.close()
        finished = n_games - unfinished
        return EvalResult(
            win_rate=wins / n_games if n_games > 0 else 0.0,
            avg_reward=total_reward / n_games if n_games > 0 else 0.0,
            avg_length=total_length / n_games if n_games > 0 else 0.0,
            games_played=n_games,
            white_win_rate=white_wins / white_games if white_games > 0 else 0.0,
            blue_win_rate=blue_wins / blue_games if blue_games > 0 else 0.0,
            unfinished_rate=unfinished / n_games if n_games > 0 else 0.0,
            extra_stats={
                f"{reason}_rate": count / finished
                for reason, count in reasons.items()
            } if finished > 0 else {},
        )

    def compare(
        self,
        agent1: Agent,
        agent2: Agent,
        n_games: int = 100,
        seed: Optional[int] = None,
    ) -> Dict[str, float]:
        """
        Head to head, colours alternating

        Returns:
            win counts and rates for both agents
        """
        result = self.evaluate(agent1, n_games, opponent=agent2, seed=seed)
        agent1_wins = round(result.win_rate * n_games)
        agent2_wins = n_games - agent1_wins - round(result.unfinished_rate * n_games)
        return {
            "agent1_wins": agent1_wins,
            "agent2_wins": agent2_wins,
            "agent1_win_rate": agent1_wins / n_games if n_games > 0 else 0.0,
            "agent2_win_rate": agent2_wins / n_games if n_games > 0 else 0.0,
        }
