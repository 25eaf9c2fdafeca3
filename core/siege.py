"""
Siege, lock and full-siege capture

Layered pure queries over the live board:
    adjacency count -> siege sides -> locked -> fully sieged

Nothing here is cached on the state; every answer is recomputed from token
positions. ``resolve_full_sieges`` is the single mutating entry point.
"""
from typing import List, Set

import numpy as np

from .geometry import ADJACENT_OFFSETS, SIZE, in_bounds
from .state import GameState, Location, Player, Token


def adjacent_count(state: GameState, owner: Player, x: int, y: int) -> int:
    """Board tokens of ``owner`` on the literal 8-neighbourhood of (x, y)"""
    n = 0
    for dx, dy in ADJACENT_OFFSETS:
        nx, ny = x + dx, y + dy
        if not in_bounds(nx, ny):
            continue
        t = state.token_at((nx, ny))
        if t is not None and t.owner is owner:
            n += 1
    return n


def siege_sides(state: GameState, token: Token) -> int:
    """Enemy neighbours of a board token (0 for tokens off the board)"""
    if token.location is not Location.BOARD:
        return 0
    return adjacent_count(state, token.owner.other, token.x, token.y)


def is_locked(state: GameState, token: Token) -> bool:
    """4-7 enemy neighbours: the token cannot use routes"""
    sides = siege_sides(state, token)
    return state.config.lock_min <= sides < state.config.full_siege


def locked_ids(state: GameState, owner: Player) -> Set[str]:
    return {t.id for t in state.board_tokens(owner) if is_locked(state, t)}


def siege_map(state: GameState, siegers: Player) -> np.ndarray:
    """
    Count ``siegers`` neighbours for every square

    Args:
        state: game state
        siegers: side whose tokens apply pressure

    Returns:
        (SIZE, SIZE) int array indexed [x, y]
    """
    occupied = np.zeros((SIZE + 2, SIZE + 2), dtype=np.int32)
    for t in state.tokens:
        if t.location is Location.BOARD and t.owner is siegers:
            occupied[t.x + 1, t.y + 1] = 1

    counts = np.zeros((SIZE, SIZE), dtype=np.int32)
    for dx, dy in ADJACENT_OFFSETS:
        counts += occupied[1 + dx:SIZE + 1 + dx, 1 + dy:SIZE + 1 + dy]
    return counts


def fully_sieged(state: GameState, victim: Player) -> List[Token]:
    """Board tokens of ``victim`` with every neighbour held by the enemy"""
    pressure = siege_map(state, victim.other)
    need = state.config.full_siege
    return [t for t in state.board_tokens(victim) if pressure[t.x, t.y] >= need]


def resolve_full_sieges(state: GameState, siegers: Player) -> List[str]:
    """
    Capture every enemy token fully sieged by ``siegers``

    Args:
        state: game state (mutated)
        siegers: capturing side

    Returns:
        ids of the captured tokens
    """
    victims = fully_sieged(state, siegers.other)
    stats = state.stats[siegers]
    for t in victims:
        t.location = Location.CAPTIVE
        state.captives[siegers] += 1
        stats.captures += 1
        stats.sieges += 1
    return [t.id for t in victims]
