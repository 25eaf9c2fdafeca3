"""
AI Layer - search opponents

Modules:
    config: evaluation weights and search tunables
    heuristics: static evaluation
    search: clone-and-score move search and full-turn playouts
    policies: difficulty levels and the one-call-per-step driver
"""
from .config import EvalWeights, SearchConfig

from .heuristics import (
    evaluate_state,
    count_usable_moves,
    is_capture_move,
    can_enemy_invade_square,
)

from .search import (
    ScoredMove,
    SwapPlan,
    ForcingInfo,
    simulate_and_score,
    enumerate_action_moves,
    top_action_moves,
    best_action_move,
    best_opening_square,
    best_reinforcement_square,
    safest_reinforcement_square,
    best_swap_choice,
    early_swap_plan_basic,
    early_swap_plan_aggressive,
    best_forcing_opportunity,
    should_buy_extra_reinforcement,
    expert_action,
    playout_full_turn,
    two_ply_move,
    three_ply_move,
)

from .policies import (
    AiLevel,
    AI_RATINGS,
    pick_with_mistakes,
    choose_action,
    ai_step,
)

__all__ = [
    # config
    "EvalWeights",
    "SearchConfig",
    # heuristics
    "evaluate_state",
    "count_usable_moves",
    "is_capture_move",
    "can_enemy_invade_square",
    # search
    "ScoredMove",
    "SwapPlan",
    "ForcingInfo",
    "simulate_and_score",
    "enumerate_action_moves",
    "top_action_moves",
    "best_action_move",
    "best_opening_square",
    "best_reinforcement_square",
    "safest_reinforcement_square",
    "best_swap_choice",
    "early_swap_plan_basic",
    "early_swap_plan_aggressive",
    "best_forcing_opportunity",
    "should_buy_extra_reinforcement",
    "expert_action",
    "playout_full_turn",
    "two_ply_move",
    "three_ply_move",
    # policies
    "AiLevel",
    "AI_RATINGS",
    "pick_with_mistakes",
    "choose_action",
    "ai_step",
]
