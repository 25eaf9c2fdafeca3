"""
Static evaluation

Scores a state from one side's point of view: material, Draft potential,
siege pressure in both directions and mobility.
"""
from typing import Optional

import numpy as np

from core.engine import apply_route_move
from core.geometry import Coord
from core.rules import RuleEngine
from core.siege import siege_map
from core.state import GameState, Phase, Player

from .config import EvalWeights

DEFAULT_WEIGHTS = EvalWeights()


def count_usable_moves(state: GameState, player: Player) -> int:
    """(token, route) pairs ``player`` could apply; 0 outside ACTION"""
    if state.phase is not Phase.ACTION:
        return 0
    return RuleEngine.count_legal_moves(state, player)


def _pressure(state: GameState, siegers: Player, table: np.ndarray) -> float:
    tokens = state.board_tokens(siegers.other)
    if not tokens:
        return 0.0
    counts = siege_map(state, siegers)
    xs = np.array([t.x for t in tokens])
    ys = np.array([t.y for t in tokens])
    return float(table[counts[xs, ys]].sum())


def evaluate_state(state: GameState, me: Player, weights: Optional[EvalWeights] = None) -> float:
    """
    Heuristic value of ``state`` for ``me``

    Args:
        state: position to score
        me: side whose point of view is taken
        weights: evaluation weights

    Returns:
        +/- ``win_score`` for a finished game, otherwise a material and
        pressure balance
    """
    w = weights or DEFAULT_WEIGHTS
    if state.game_over is not None:
        return w.win_score if state.game_over.winner is me else -w.win_score

    them = me.other
    score = 0.0
    score += w.on_board * (state.on_board_count(me) - state.on_board_count(them))
    score += w.reserve * (state.reserves[me] - state.reserves[them])
    score += w.captive * (state.captives[me] - state.captives[them])
    score += w.void * (state.void[me] - state.void[them])

    if state.turn_invades[me] >= state.config.draft_invade_threshold and state.void[me] > 0:
        score += w.draft_bonus

    score += _pressure(state, me, EvalWeights.band_table(w.pressure_bonus))
    score -= _pressure(state, them, EvalWeights.band_table(w.pressure_penalty))

    if state.phase is Phase.ACTION:
        score += w.mobility * count_usable_moves(state, me)
        score -= w.mobility * count_usable_moves(state, them)
    return score


def is_capture_move(state: GameState, me: Player, token_id: str, route_id: str) -> bool:
    """The move takes at least one enemy token (invasion or full siege)"""
    them = me.other
    c = state.clone()
    if not apply_route_move(c, token_id, route_id):
        return False
    return c.on_board_count(them) < state.on_board_count(them) or c.captives[me] > state.captives[me]


def can_enemy_invade_square(state: GameState, enemy: Player, target: Coord) -> bool:
    """Some ``enemy`` token could land on ``target`` with its current hand"""
    for r in state.hands[enemy]:
        for t in state.board_tokens(enemy):
            if RuleEngine.check_move(state, enemy, t, r) is not None:
                continue
            if r.destination(t.pos) == target:
                return True
    return False
