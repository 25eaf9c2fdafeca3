"""
Environment Layer - Gymnasium compatible environment

Modules:
    vekke_env: environment class
    observation: observation features and action encoding
    reward: reward functions
"""
from .vekke_env import (
    VekkeEnv,
    make_env,
)

from .observation import (
    Observation,
    ObservationBuilder,
    ActionEncoder,
    get_action_encoder,
    FEATURE_DIM,
)

from .reward import (
    RewardType,
    RewardConfig,
    RewardCalculator,
    create_reward_calculator,
)

__all__ = [
    # env
    "VekkeEnv",
    "make_env",
    # observation
    "Observation",
    "ObservationBuilder",
    "ActionEncoder",
    "get_action_encoder",
    "FEATURE_DIM",
    # reward
    "RewardType",
    "RewardConfig",
    "RewardCalculator",
    "create_reward_calculator",
]
