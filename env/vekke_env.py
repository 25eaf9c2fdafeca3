"""
Vekke Gymnasium environment

Follows the standard Gymnasium API. By default the caller plays both sides
(every step acts for the side to move); with ``opponent_level`` set, the
caller plays ``agent_player`` and the built-in AI answers inside ``step``.
"""
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from ai.policies import AiLevel, ai_step
from core.actions import Action
from core.config import RulesConfig
from core.engine import apply_action, new_game
from core.geometry import SIZE
from core.rules import RuleEngine
from core.state import GameState, Player

from .observation import FEATURE_DIM, NUM_PLANES, ObservationBuilder, get_action_encoder
from .reward import RewardCalculator, RewardConfig, RewardType

logger = logging.getLogger(__name__)

# engine calls the built-in opponent may make before the env gives up
OPPONENT_STEP_LIMIT = 1000


class VekkeEnv(gym.Env):
    """
    Vekke environment

    API:
    - reset() -> observation, info
    - step(action) -> observation, reward, terminated, truncated, info

    ``action`` is an ``Action`` or an index of ``ActionEncoder``. An action
    the engine rejects yields reward -1, leaves the state unchanged apart from
    ``state.warning`` and reports the warning in ``info["error"]``.
    """

    metadata = {
        "render_modes": ["human", "ansi"],
        "name": "Vekke-v1",
    }

    def __init__(
        self,
        render_mode: Optional[str] = None,
        reward_type: str = "sparse",
        rules: Optional[RulesConfig] = None,
        opponent_level: Optional[str] = None,
        agent_player: str = "W",
        seed: Optional[int] = None,
    ):
        """
        Args:
            render_mode: "human", "ansi" or None
            reward_type: "sparse" or "shaped"
            rules: rule constants (standard ruleset by default)
            opponent_level: AI level answering for the other side, None for self-play
            agent_player: side controlled by the caller when an opponent is set
            seed: default seed for reset()
        """
        super().__init__()

        self.render_mode = render_mode
        self.rules = rules or RulesConfig()
        self._seed = seed

        self._obs_builder = ObservationBuilder()
        self._reward_calculator = RewardCalculator(RewardConfig(reward_type=RewardType(reward_type)))
        self._action_encoder = get_action_encoder()

        self._opponent_level = AiLevel(opponent_level) if opponent_level else None
        self._agent_player = Player(agent_player)
        self._opponent_rng: Optional[np.random.Generator] = None

        self._state: Optional[GameState] = None
        self._prev_state: Optional[GameState] = None

        self._define_spaces()

    def _define_spaces(self):
        self.action_space = spaces.Discrete(self._action_encoder.num_actions)
        self.observation_space = spaces.Dict({
            "board": spaces.Box(0, 1, shape=(NUM_PLANES, SIZE, SIZE), dtype=np.float32),
            "features": spaces.Box(0, 1, shape=(FEATURE_DIM,), dtype=np.float32),
        })

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        super().reset(seed=seed)

        game_seed = seed if seed is not None else self._seed
        rng = np.random.default_rng(game_seed)
        self._state = new_game(self.rules, rng=rng)
        self._prev_state = None
        self._opponent_rng = np.random.default_rng(rng.integers(2 ** 32))

        self._play_opponent()

        obs = self._build_observation()
        info = self._build_info()
        if self.render_mode == "human":
            self.render()
        return obs, info

    def step(
        self,
        action: Union[int, Action],
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        if self._state is None:
            raise RuntimeError("Environment not reset. Call reset() first.")
        if self._state.game_over is not None:
            raise RuntimeError("Game is over. Call reset() first.")

        actor = RuleEngine.acting_player(self._state)
        prev_state = self._state.clone()
        concrete = self._decode_action(action)
        if concrete is None:
            self._state.warning = f"INVALID: action index {action} does not name an action here."
        if concrete is None or not apply_action(self._state, concrete):
            obs = self._build_observation()
            info = self._build_info()
            info["error"] = self._state.warning
            return obs, -1.0, False, False, info

        self._prev_state = prev_state
        self._play_opponent()

        obs = self._build_observation()
        reward = self._reward_calculator.compute(self._state, self._prev_state, actor)
        terminated = self._state.game_over is not None
        info = self._build_info()

        if self.render_mode == "human":
            self.render()
        return obs, reward, terminated, False, info

    def _play_opponent(self) -> None:
        if self._opponent_level is None:
            return
        opponent = self._agent_player.other
        for _ in range(OPPONENT_STEP_LIMIT):
            s = self._state
            if s.game_over is not None or s.player is not opponent:
                return
            if not ai_step(s, opponent, self._opponent_level, self._opponent_rng):
                logger.warning("Opponent could not act: %s", s.warning)
                return

    def _decode_action(self, action: Union[int, Action]) -> Optional[Action]:
        if isinstance(action, Action):
            return action
        if isinstance(action, (int, np.integer)):
            return self._action_encoder.decode(int(action), self._state)
        raise ValueError(f"Invalid action type: {type(action)}")

    def _perspective(self) -> Player:
        if self._opponent_level is not None:
            return self._agent_player
        return RuleEngine.acting_player(self._state)

    def _build_observation(self) -> Dict[str, np.ndarray]:
        return self._obs_builder.build(self._state, self._perspective()).to_dict()

    def _build_info(self) -> Dict[str, Any]:
        s = self._state
        legal_actions = s.get_legal_actions()
        info = {
            "current_player": s.player.value,
            "phase": s.phase.value,
            "turn": s.turn,
            "round": s.round,
            "legal_actions": legal_actions,
            "legal_action_mask": self._action_encoder.build_legal_mask(legal_actions, s),
            "legal_action_indices": self._action_encoder.get_legal_action_indices(legal_actions, s),
        }
        if s.game_over is not None:
            info["winner"] = s.game_over.winner.value
            info["reason"] = s.game_over.reason.value
        return info

    def render(self) -> Optional[str]:
        if self.render_mode not in ("ansi", "human"):
            return None
        s = self._state
        lines = [
            "=" * 40,
            s.render(),
            s.summary(),
            f"Hand {s.player.value}: {' '.join(r.id for r in s.hands[s.player])}",
            f"Queue: {' '.join(r.id for r in s.queue)}",
            "=" * 40,
        ]
        output = "\n".join(lines)
        if self.render_mode == "human":
            print(output)
        return output

    def close(self):
        pass

    @property
    def state(self) -> Optional[GameState]:
        return self._state

    def get_legal_actions(self) -> List[Action]:
        if self._state is None:
            return []
        return self._state.get_legal_actions()

    def sample_action(self) -> Optional[Action]:
        """Uniformly random legal action, drawn from the env's RNG"""
        legal_actions = self.get_legal_actions()
        if not legal_actions:
            return None
        return legal_actions[int(self.np_random.integers(len(legal_actions)))]


def make_env(env_id: str = "Vekke-v1", **kwargs) -> VekkeEnv:
    """
    Factory

    Args:
        env_id: environment id
        **kwargs: VekkeEnv arguments

    Returns:
        VekkeEnv instance
    """
    return VekkeEnv(**kwargs)
