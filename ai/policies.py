"""
AI levels

``choose_action`` picks a complete composite action for a level without
touching the state. ``ai_step`` performs exactly one engine call per
invocation, walking multi-step protocols (early swap, end-of-turn swap) one
selection at a time like a human player would.

Levels:
    novice: random placements, any capture if available, else a random move
    adept: 1-ply greedy with occasional deliberate mistakes
    expert: 1-ply greedy, early swaps and extra reinforcements
    master: 2-ply search with full-turn playouts
    senior_master: master search, aggressive early swaps, best-eval placement
    grandmaster: 3-ply search when the position is narrow enough
"""
from enum import Enum
from typing import Callable, Dict, List, Optional
import logging

import numpy as np

from core.actions import Action, ActionType
from core.engine import (
    apply_action,
    arm_early_swap,
    cancel_early_swap,
    choose_swap_hand_route,
    choose_swap_queue_index,
    confirm_early_swap,
    confirm_swap_and_end_turn,
)
from core.rules import RuleEngine
from core.state import GameState, Phase, Player

from .config import SearchConfig
from .heuristics import is_capture_move
from .search import (
    DEFAULT_CONFIG,
    ScoredMove,
    SwapPlan,
    best_opening_square,
    best_reinforcement_square,
    best_swap_choice,
    early_swap_plan_aggressive,
    early_swap_plan_basic,
    safest_reinforcement_square,
    should_buy_extra_reinforcement,
    three_ply_move,
    top_action_moves,
    two_ply_move,
)

logger = logging.getLogger(__name__)


class AiLevel(Enum):
    NOVICE = "novice"
    ADEPT = "adept"
    EXPERT = "expert"
    MASTER = "master"
    SENIOR_MASTER = "senior_master"
    GRANDMASTER = "grandmaster"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


# fixed display ratings, also the starting Elo of each level in evaluations
AI_RATINGS: Dict[AiLevel, int] = {
    AiLevel.NOVICE: 600,
    AiLevel.ADEPT: 1000,
    AiLevel.EXPERT: 1300,
    AiLevel.MASTER: 1600,
    AiLevel.SENIOR_MASTER: 1800,
    AiLevel.GRANDMASTER: 2000,
}

SwapPlanner = Callable[[GameState, Player, Optional[SearchConfig]], Optional[SwapPlan]]


def _rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def _pick(items: List, rng: np.random.Generator):
    return items[int(rng.integers(len(items)))]


# ============================================================================
# Per-phase decisions
# ============================================================================

def _random_placement(state: GameState, action_type: ActionType, rng: np.random.Generator) -> Optional[Action]:
    empties = RuleEngine.empty_squares(state)
    if not empties:
        return None
    return Action(action_type, coord=_pick(empties, rng))


def _random_swap(state: GameState, me: Player, rng: np.random.Generator) -> Optional[SwapPlan]:
    hand = state.hands[me]
    if not hand or not state.queue:
        return None
    return SwapPlan(_pick(hand, rng).id, int(rng.integers(len(state.queue))))


def pick_with_mistakes(
    top: List[ScoredMove],
    mistake_chance: float,
    rng: np.random.Generator,
    second_best_chance: float = 0.7,
) -> Optional[ScoredMove]:
    """
    Best candidate, or with ``mistake_chance`` the 2nd (usually) or 3rd

    Args:
        top: candidates, best first
        mistake_chance: probability of not playing the best candidate
        rng: random source
        second_best_chance: share of mistakes that pick the 2nd candidate

    Returns:
        chosen candidate, None when ``top`` is empty
    """
    if not top:
        return None
    if len(top) >= 2 and rng.random() < mistake_chance:
        if len(top) == 2:
            return top[1]
        return top[1] if rng.random() < second_best_chance else top[2]
    return top[0]


def _novice_action(state: GameState, me: Player, rng: np.random.Generator) -> Optional[Action]:
    if state.phase is Phase.OPENING:
        return _random_placement(state, ActionType.PLACE_OPENING, rng)
    if state.phase is Phase.REINFORCE:
        return _random_placement(state, ActionType.PLACE_REINFORCEMENT, rng)
    if state.phase is Phase.SWAP:
        plan = _random_swap(state, me, rng)
        return Action.swap(plan.route_id, plan.queue_index) if plan else None

    unused = state.unused_routes(me)
    if not unused:
        return None
    tokens = state.board_tokens(me)

    captures = [
        (t.id, r.id)
        for r in unused
        for t in tokens
        if RuleEngine.can_token_use_route(state, me, t, r) and is_capture_move(state, me, t.id, r.id)
    ]
    if captures:
        tid, rid = _pick(captures, rng)
        return Action.move(tid, rid)

    for i in rng.permutation(len(unused)):
        r = unused[int(i)]
        legal = [t for t in tokens if RuleEngine.can_token_use_route(state, me, t, r)]
        if legal:
            return Action.move(_pick(legal, rng).id, r.id)
    return Action.forced_yield()


def _economy_action(
    state: GameState,
    me: Player,
    planner: SwapPlanner,
    cfg: SearchConfig,
) -> Optional[Action]:
    plan = planner(state, me, cfg)
    if plan is not None:
        return Action.early_swap(plan.route_id, plan.queue_index)
    if should_buy_extra_reinforcement(state, me, cfg):
        return Action.buy_extra()
    return None


def _searching_action(
    state: GameState,
    me: Player,
    level: AiLevel,
    rng: np.random.Generator,
    cfg: SearchConfig,
) -> Optional[Action]:
    strong_setup = level in (AiLevel.SENIOR_MASTER, AiLevel.GRANDMASTER)

    if state.phase is Phase.OPENING:
        if strong_setup:
            c = best_opening_square(state)
            return Action.place_opening(c) if c else None
        return _random_placement(state, ActionType.PLACE_OPENING, rng)

    if state.phase is Phase.REINFORCE:
        if strong_setup:
            c = best_reinforcement_square(state, me, cfg) or safest_reinforcement_square(state, me, cfg)
        else:
            c = safest_reinforcement_square(state, me, cfg)
        return Action.reinforce(c) if c else None

    if state.phase is Phase.SWAP:
        plan = best_swap_choice(state, me, cfg)
        return Action.swap(plan.route_id, plan.queue_index) if plan else None

    econ = _economy_action(state, me, _swap_planner(level), cfg)
    if econ is not None:
        return econ

    if level is AiLevel.MASTER or level is AiLevel.SENIOR_MASTER:
        mv = two_ply_move(state, me, cfg)
    elif level is AiLevel.GRANDMASTER:
        mv = three_ply_move(state, me, cfg)
    else:
        chance = cfg.adept_mistake_chance if level is AiLevel.ADEPT else 0.0
        top = top_action_moves(state, me, cfg.top_n, cfg)
        mv = pick_with_mistakes(top, chance, rng, cfg.second_best_chance)

    if mv is not None:
        return Action.move(mv.token_id, mv.route_id)
    return Action.forced_yield()


def _swap_planner(level: AiLevel) -> SwapPlanner:
    if level in (AiLevel.SENIOR_MASTER, AiLevel.GRANDMASTER):
        return early_swap_plan_aggressive
    return early_swap_plan_basic


# ============================================================================
# Public API
# ============================================================================

def choose_action(
    state: GameState,
    player: Player,
    level: AiLevel,
    rng: Optional[np.random.Generator] = None,
    config: Optional[SearchConfig] = None,
) -> Optional[Action]:
    """
    Decide the next composite action for ``player`` (state is not mutated)

    Args:
        state: live game state
        player: AI side
        level: difficulty
        rng: random source for the randomized levels
        config: search tunables

    Returns:
        action, or None when it is not ``player``'s turn or the game is over
    """
    level = AiLevel(level)
    if state.game_over is not None or state.player is not player or state.evasion_armed:
        return None
    rng = _rng(rng)
    cfg = config or DEFAULT_CONFIG

    if level is AiLevel.NOVICE:
        action = _novice_action(state, player, rng)
    else:
        action = _searching_action(state, player, level, rng, cfg)
    logger.debug("%s (%s) chose %s", player.value, level.value, action)
    return action


def _advance_swap(
    state: GameState,
    player: Player,
    plan: SwapPlan,
    confirm: Callable[..., bool],
) -> bool:
    pending = state.pending_swap
    if pending.hand_route_id is None:
        return choose_swap_hand_route(state, plan.route_id, player)
    if pending.queue_index is None:
        return choose_swap_queue_index(state, plan.queue_index, player)
    return confirm(state, player)


def ai_step(
    state: GameState,
    player: Player,
    level: AiLevel,
    rng: Optional[np.random.Generator] = None,
    config: Optional[SearchConfig] = None,
) -> bool:
    """
    Make exactly one engine call for ``player``

    Args:
        state: live game state (mutated)
        player: AI side
        level: difficulty
        rng: random source for the randomized levels
        config: search tunables

    Returns:
        True if an engine call succeeded; False if there was nothing to do
        or the call was rejected
    """
    level = AiLevel(level)
    if state.game_over is not None or state.player is not player or state.evasion_armed:
        return False
    rng = _rng(rng)
    cfg = config or DEFAULT_CONFIG

    if state.phase is Phase.ACTION and state.early_swap_armed:
        planner = _swap_planner(level) if level is not AiLevel.NOVICE else early_swap_plan_basic
        plan = planner(state, player, cfg)
        if plan is None:
            return cancel_early_swap(state, player)
        return _advance_swap(state, player, plan, confirm_early_swap)

    if state.phase is Phase.SWAP:
        if level is AiLevel.NOVICE:
            plan = _random_swap(state, player, rng)
        else:
            plan = best_swap_choice(state, player, cfg)
        if plan is None:
            return False
        return _advance_swap(state, player, plan, confirm_swap_and_end_turn)

    action = choose_action(state, player, level, rng, cfg)
    if action is None:
        return False
    if action.action_type is ActionType.EARLY_SWAP:
        return arm_early_swap(state, player)
    return apply_action(state, action)
