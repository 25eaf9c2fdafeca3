"""
Move search

Every candidate is scored by cloning the state, applying it through the
engine and evaluating the result. The live state is never mutated here.

Lookahead uses full-turn playouts: after a candidate move the remainder of
that side's turn (moves, economy, reinforcement, swap) is played by the
deterministic ``expert_action`` policy.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
import logging

from core.actions import Action
from core.engine import (
    apply_action,
    apply_route_move,
    place_reinforcement,
    yield_forced_if_no_usable_routes,
)
from core.geometry import Coord, center_distance, is_adjacent, neighbors8
from core.rules import RuleEngine
from core.siege import adjacent_count, siege_map
from core.state import GameState, Phase, Player

from .config import SearchConfig
from .heuristics import can_enemy_invade_square, count_usable_moves, evaluate_state

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = SearchConfig()

ActionMove = Tuple[str, str]  # (token id, route id)


@dataclass
class ScoredMove:
    token_id: str
    route_id: str
    score: float


@dataclass
class SwapPlan:
    """Hand route to give up and queue slot to take"""
    route_id: str
    queue_index: int


@dataclass
class ForcingInfo:
    """Best forcing line available with the current hand"""
    score: float = 0.0
    is_capture: bool = False
    is_lock_or_better: bool = False


# ============================================================================
# Primitives
# ============================================================================

def simulate_and_score(
    state: GameState,
    me: Player,
    mutate: Callable[[GameState], object],
    config: Optional[SearchConfig] = None,
) -> float:
    """Clone, apply ``mutate`` to the clone, evaluate for ``me``"""
    cfg = config or DEFAULT_CONFIG
    c = state.clone()
    mutate(c)
    return evaluate_state(c, me, cfg.weights)


def enumerate_action_moves(state: GameState, player: Player) -> List[ActionMove]:
    if state.phase is not Phase.ACTION or state.game_over is not None:
        return []
    return RuleEngine.legal_moves(state, player)


def top_action_moves(
    state: GameState,
    me: Player,
    n: int,
    config: Optional[SearchConfig] = None,
) -> List[ScoredMove]:
    """
    The ``n`` best 1-ply moves, best first

    Ties keep enumeration order (routes in hand order, tokens in board order).
    """
    scored = [
        ScoredMove(tid, rid, simulate_and_score(
            state, me, lambda s, t=tid, r=rid: apply_route_move(s, t, r), config
        ))
        for tid, rid in enumerate_action_moves(state, me)
    ]
    scored.sort(key=lambda m: m.score, reverse=True)
    return scored[:max(1, n)]


def best_action_move(
    state: GameState,
    me: Player,
    config: Optional[SearchConfig] = None,
) -> Optional[ScoredMove]:
    top = top_action_moves(state, me, 1, config)
    return top[0] if top else None


# ============================================================================
# Placement
# ============================================================================

def best_opening_square(state: GameState) -> Optional[Coord]:
    """Empty square closest to the centre, first in row-major order on ties"""
    empties = RuleEngine.empty_squares(state)
    if not empties:
        return None
    return min(empties, key=center_distance)


def best_reinforcement_square(
    state: GameState,
    me: Player,
    config: Optional[SearchConfig] = None,
) -> Optional[Coord]:
    """Empty square whose reinforcement evaluates best"""
    best, best_score = None, float("-inf")
    for c in RuleEngine.empty_squares(state):
        sc = simulate_and_score(state, me, lambda s, sq=c: place_reinforcement(s, sq), config)
        if sc > best_score:
            best, best_score = c, sc
    return best


def safest_reinforcement_square(
    state: GameState,
    me: Player,
    config: Optional[SearchConfig] = None,
) -> Optional[Coord]:
    """
    Reinforcement square balancing safety, siege intent and rescue

    Squares the enemy cannot invade next turn are preferred outright. Among
    the candidates the score is the evaluation after placing plus:
    +80 / +60 / +200 for pushing an adjacent enemy token to 4 / 7 / 8 of
    my neighbours, +8 per adjacent enemy token, and +140 / +90 / +40 for
    covering a square next to my token under 7+ / 4+ / 3 enemy sides.
    A tiny centre preference breaks ties.
    """
    empties = RuleEngine.empty_squares(state)
    if not empties:
        return None

    enemy = me.other
    safe = [c for c in empties if not can_enemy_invade_square(state, enemy, c)]
    candidates = safe or empties

    my_pressure = siege_map(state, me)
    their_pressure = siege_map(state, enemy)
    enemy_tokens = state.board_tokens(enemy)
    threatened = [
        (t, int(their_pressure[t.x, t.y]))
        for t in state.board_tokens(me)
        if their_pressure[t.x, t.y] >= 3
    ]

    best, best_score = candidates[0], float("-inf")
    for c in candidates:
        base = simulate_and_score(state, me, lambda s, sq=c: place_reinforcement(s, sq), config)

        bonus = 0.0
        for e in enemy_tokens:
            if not is_adjacent(c, e.pos):
                continue
            before = int(my_pressure[e.x, e.y])
            after = before + 1
            if before < 4 <= after:
                bonus += 80
            if before < 7 <= after:
                bonus += 60
            if before < 8 <= after:
                bonus += 200
            bonus += 8

        for t, sides in threatened:
            if not is_adjacent(c, t.pos):
                continue
            if sides >= 7:
                bonus += 140
            elif sides >= 4:
                bonus += 90
            else:
                bonus += 40

        sc = base + bonus - 0.01 * center_distance(c)
        if sc > best_score:
            best, best_score = c, sc
    return best


# ============================================================================
# Swaps and economy
# ============================================================================

def best_swap_choice(
    state: GameState,
    me: Player,
    config: Optional[SearchConfig] = None,
) -> Optional[SwapPlan]:
    """End-of-turn swap with the best evaluation after the turn ends"""
    best, best_score = None, float("-inf")
    for r in state.hands[me]:
        for q in range(len(state.queue)):
            sc = simulate_and_score(
                state, me, lambda s, rid=r.id, qi=q: apply_action(s, Action.swap(rid, qi)), config
            )
            if sc > best_score:
                best, best_score = SwapPlan(r.id, q), sc
    return best


def _early_swap_candidates(state: GameState, me: Player) -> List[SwapPlan]:
    return [
        SwapPlan(r.id, q)
        for r in state.unused_routes(me)
        for q in range(len(state.queue))
    ]


def _apply_early_swap(state: GameState, plan: SwapPlan) -> bool:
    return apply_action(state, Action.early_swap(plan.route_id, plan.queue_index))


def early_swap_plan_basic(
    state: GameState,
    me: Player,
    config: Optional[SearchConfig] = None,
) -> Optional[SwapPlan]:
    """
    Early swap when short of moves or flush with captives

    Accepted only if the best swap improves the evaluation by ``swap_margin``.
    """
    cfg = config or DEFAULT_CONFIG
    if state.player is not me or not RuleEngine.can_early_swap(state):
        return None

    urgent = count_usable_moves(state, me) <= cfg.swap_urgent_moves
    if not urgent and state.captives[me] < cfg.swap_min_captives:
        return None

    best, best_score = None, float("-inf")
    for plan in _early_swap_candidates(state, me):
        sc = simulate_and_score(state, me, lambda s, p=plan: _apply_early_swap(s, p), cfg)
        if sc > best_score:
            best, best_score = plan, sc

    baseline = evaluate_state(state, me, cfg.weights)
    if best is not None and best_score >= baseline + cfg.swap_margin:
        return best
    return None


def best_forcing_opportunity(
    state: GameState,
    me: Player,
    config: Optional[SearchConfig] = None,
) -> ForcingInfo:
    """
    Strongest capture or lock line reachable with one move

    Capture 1000, 8-ring 900, 7 sides 260, lock (4+) 140, 3 sides 60, plus
    a small share of the evaluation.
    """
    cfg = config or DEFAULT_CONFIG
    best = ForcingInfo()
    if state.phase is not Phase.ACTION or state.game_over is not None:
        return best

    them = me.other
    their_before = state.on_board_count(them)
    for tid, rid in enumerate_action_moves(state, me):
        c = state.clone()
        apply_route_move(c, tid, rid)

        captured = c.captives[me] > state.captives[me] or c.on_board_count(them) < their_before
        max_sides = max(
            (adjacent_count(c, me, e.x, e.y) for e in c.board_tokens(them)),
            default=0,
        )

        if captured:
            sc = 1000.0
        elif max_sides >= 8:
            sc = 900.0
        elif max_sides == 7:
            sc = 260.0
        elif max_sides >= 4:
            sc = 140.0
        elif max_sides == 3:
            sc = 60.0
        else:
            sc = 0.0
        sc += 0.05 * evaluate_state(c, me, cfg.weights)

        if sc > best.score:
            best = ForcingInfo(
                score=sc,
                is_capture=captured or max_sides >= 8,
                is_lock_or_better=captured or max_sides >= 4,
            )
    return best


def early_swap_plan_aggressive(
    state: GameState,
    me: Player,
    config: Optional[SearchConfig] = None,
) -> Optional[SwapPlan]:
    """
    Pay for an early swap when the queue opens a forcing line

    The gain in forcing score is boosted for newly created lock (+600) or
    capture (+900) lines and, against an opponent down to one token, for any
    lock line (+500). A share of the evaluation change keeps the swap sound.
    """
    cfg = config or DEFAULT_CONFIG
    if state.player is not me or not RuleEngine.can_early_swap(state):
        return None

    current = best_forcing_opportunity(state, me, cfg)
    endgame_kill = state.on_board_count(me.other) <= 1
    baseline = evaluate_state(state, me, cfg.weights)

    best, best_score = None, float("-inf")
    for plan in _early_swap_candidates(state, me):
        c = state.clone()
        _apply_early_swap(c, plan)
        after = best_forcing_opportunity(c, me, cfg)

        sc = after.score - current.score
        if not current.is_lock_or_better and after.is_lock_or_better:
            sc += 600
        if not current.is_capture and after.is_capture:
            sc += 900
        if endgame_kill and after.is_lock_or_better:
            sc += 500
        sc += 0.15 * (evaluate_state(c, me, cfg.weights) - baseline)

        if sc > best_score:
            best, best_score = plan, sc

    threshold = cfg.forcing_threshold_endgame if endgame_kill else cfg.forcing_threshold
    if best is not None and best_score >= threshold:
        logger.debug("%s aggressive early swap %s<->Q%d (%.1f)", me.value, best.route_id, best.queue_index, best_score)
        return best
    return None


def should_buy_extra_reinforcement(
    state: GameState,
    me: Player,
    config: Optional[SearchConfig] = None,
) -> bool:
    """
    Buy when reserves are deep and a placement has a purpose

    A purpose is an enemy token under exactly 3 of my sides with an empty
    neighbour, or trailing by two or more tokens on the board.
    """
    cfg = config or DEFAULT_CONFIG
    if state.player is not me or not RuleEngine.can_buy_extra_reinforcement(state):
        return False
    reserves = state.reserves[me]
    if reserves < cfg.buy_min_reserves or reserves - cfg.buy_min_reserves < cfg.buy_keep_reserves:
        return False

    pressure = siege_map(state, me)
    for e in state.board_tokens(me.other):
        if pressure[e.x, e.y] != 3:
            continue
        if any(state.token_at(c) is None for c in neighbors8(e.pos)):
            return True

    return state.on_board_count(me) + 1 < state.on_board_count(me.other)


# ============================================================================
# Lookahead
# ============================================================================

def expert_action(
    state: GameState,
    me: Player,
    config: Optional[SearchConfig] = None,
) -> Optional[Action]:
    """
    Deterministic 1-ply policy used for playouts

    Same decisions as the expert level without any randomness: central
    opening, safest reinforcement, best swap, basic early swap, extra
    reinforcement when useful, then the best greedy move.
    """
    cfg = config or DEFAULT_CONFIG
    if state.game_over is not None or state.player is not me:
        return None

    if state.phase is Phase.OPENING:
        c = best_opening_square(state)
        return Action.place_opening(c) if c else None

    if state.phase is Phase.REINFORCE:
        c = safest_reinforcement_square(state, me, cfg)
        return Action.reinforce(c) if c else None

    if state.phase is Phase.SWAP:
        plan = best_swap_choice(state, me, cfg)
        return Action.swap(plan.route_id, plan.queue_index) if plan else None

    plan = early_swap_plan_basic(state, me, cfg)
    if plan is not None:
        return Action.early_swap(plan.route_id, plan.queue_index)
    if should_buy_extra_reinforcement(state, me, cfg):
        return Action.buy_extra()
    mv = best_action_move(state, me, cfg)
    if mv is not None:
        return Action.move(mv.token_id, mv.route_id)
    return Action.forced_yield()


def playout_full_turn(state: GameState, player: Player, config: Optional[SearchConfig] = None) -> int:
    """
    Play ``player``'s turn to its end with ``expert_action`` (mutates ``state``)

    Stops when the turn passes, the game ends, a step fails or
    ``playout_cap`` engine calls have been made.

    Returns:
        number of engine calls made
    """
    cfg = config or DEFAULT_CONFIG
    n = 0
    while state.game_over is None and state.player is player and n < cfg.playout_cap:
        action = expert_action(state, player, cfg)
        if action is None or not apply_action(state, action):
            break
        n += 1
    return n


def _my_best_reply(state: GameState, me: Player, cfg: SearchConfig) -> float:
    """Third ply: my best full turn, evaluated statically"""
    if state.game_over is not None or state.player is not me:
        return evaluate_state(state, me, cfg.weights)

    if state.phase is not Phase.ACTION:
        c = state.clone()
        playout_full_turn(c, me, cfg)
        return evaluate_state(c, me, cfg.weights)

    moves = enumerate_action_moves(state, me)
    if not moves:
        c = state.clone()
        yield_forced_if_no_usable_routes(c)
        playout_full_turn(c, me, cfg)
        return evaluate_state(c, me, cfg.weights)

    best = float("-inf")
    for tid, rid in moves:
        c = state.clone()
        apply_route_move(c, tid, rid)
        playout_full_turn(c, me, cfg)
        best = max(best, evaluate_state(c, me, cfg.weights))
    return best


def _opponent_reply(state: GameState, me: Player, cfg: SearchConfig, deeper: bool) -> float:
    """
    Opponent's reply minimizing my value

    Args:
        state: position with the opponent to act
        me: searching side
        cfg: search config
        deeper: score each reply with my best answer instead of statically
    """
    opp = me.other
    if state.game_over is not None or state.player is not opp:
        return evaluate_state(state, me, cfg.weights)

    def leaf(c: GameState) -> float:
        return _my_best_reply(c, me, cfg) if deeper else evaluate_state(c, me, cfg.weights)

    if state.phase is not Phase.ACTION:
        c = state.clone()
        playout_full_turn(c, opp, cfg)
        return leaf(c)

    moves = enumerate_action_moves(state, opp)
    if not moves:
        c = state.clone()
        yield_forced_if_no_usable_routes(c)
        playout_full_turn(c, opp, cfg)
        return leaf(c)

    worst = float("inf")
    for tid, rid in moves:
        c = state.clone()
        apply_route_move(c, tid, rid)
        playout_full_turn(c, opp, cfg)
        worst = min(worst, leaf(c))
    return worst


def _search_move(state: GameState, me: Player, cfg: SearchConfig, deeper: bool) -> Optional[ScoredMove]:
    best: Optional[ScoredMove] = None
    for tid, rid in enumerate_action_moves(state, me):
        c = state.clone()
        apply_route_move(c, tid, rid)
        playout_full_turn(c, me, cfg)
        sc = _opponent_reply(c, me, cfg, deeper)
        if best is None or sc > best.score:
            best = ScoredMove(tid, rid, sc)
    if best is not None:
        logger.debug("%s search picked %s %s (%.2f)", me.value, best.token_id, best.route_id, best.score)
    return best


def two_ply_move(
    state: GameState,
    me: Player,
    config: Optional[SearchConfig] = None,
) -> Optional[ScoredMove]:
    """My move and the rest of my turn, then the opponent's best full-turn reply"""
    return _search_move(state, me, config or DEFAULT_CONFIG, deeper=False)


def three_ply_move(
    state: GameState,
    me: Player,
    config: Optional[SearchConfig] = None,
) -> Optional[ScoredMove]:
    """
    Adds my best answer to each opponent reply

    Falls back to ``two_ply_move`` when more than ``three_ply_max_branch``
    moves are available.
    """
    cfg = config or DEFAULT_CONFIG
    deeper = len(enumerate_action_moves(state, me)) <= cfg.three_ply_max_branch
    return _search_move(state, me, cfg, deeper=deeper)
