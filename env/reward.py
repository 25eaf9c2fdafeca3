"""
Reward functions

- sparse: terminal reward only
- shaped: terminal reward plus small material swings (captures, losses)
"""
from dataclasses import dataclass
from typing import Optional
from enum import Enum

from core.state import GameState, Player


class RewardType(Enum):
    SPARSE = "sparse"  # terminal only
    SHAPED = "shaped"  # terminal + material deltas


@dataclass
class RewardConfig:
    reward_type: RewardType = RewardType.SPARSE
    win_reward: float = 1.0
    lose_reward: float = -1.0
    capture_bonus: float = 0.05   # per enemy token taken
    loss_penalty: float = 0.05    # per own token lost from the board


class RewardCalculator:
    """Reward for one side given the state before and after a step"""

    def __init__(self, config: Optional[RewardConfig] = None):
        self.config = config or RewardConfig()

    def compute(
        self,
        state: GameState,
        prev_state: Optional[GameState],
        player: Player,
    ) -> float:
        """
        Args:
            state: state after the step
            prev_state: state before the step (used by shaped rewards)
            player: side whose reward is computed

        Returns:
            reward value
        """
        if self.config.reward_type is RewardType.SHAPED:
            return self._shaped_reward(state, prev_state, player)
        return self._sparse_reward(state, player)

    def _sparse_reward(self, state: GameState, player: Player) -> float:
        if state.game_over is None:
            return 0.0
        if state.game_over.winner is player:
            return self.config.win_reward
        return self.config.lose_reward

    def _shaped_reward(
        self,
        state: GameState,
        prev_state: Optional[GameState],
        player: Player,
    ) -> float:
        reward = self._sparse_reward(state, player)
        if prev_state is None:
            return reward

        taken = state.captives[player] - prev_state.captives[player]
        if taken > 0:
            reward += taken * self.config.capture_bonus
        lost = state.captives[player.other] - prev_state.captives[player.other]
        if lost > 0:
            reward -= lost * self.config.loss_penalty
        return reward


def create_reward_calculator(reward_type: str = "sparse", **kwargs) -> RewardCalculator:
    config = RewardConfig(reward_type=RewardType(reward_type), **kwargs)
    return RewardCalculator(config)
