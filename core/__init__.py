"""
Core Layer - pure game logic (no search, no ML)

Modules:
    geometry: board coordinates and the flank step
    routes: route cards and the cycling deck
    config: rule constants
    state: game state
    siege: siege, lock and full-siege capture
    rules: read-only rule queries
    actions: action types and generation
    engine: state transition functions
    notation: game record writer
"""
from .errors import InvariantViolation

from .geometry import (
    SIZE,
    FILES,
    Coord,
    Direction,
    in_bounds,
    to_sq,
    from_sq,
    flank_step,
    trace_by_route,
    move_by_route,
    neighbors8,
    is_adjacent,
    center_distance,
    all_squares,
)

from .routes import (
    Route,
    ALL_ROUTES,
    ROUTE_BY_ID,
    parse_route_id,
    make_deck,
    swap_with_queue,
)

from .config import RulesConfig

from .state import (
    Player,
    PLAYERS,
    Phase,
    Location,
    GameOverReason,
    Token,
    LastMove,
    GameOver,
    GameState,
)

from .siege import (
    adjacent_count,
    siege_sides,
    is_locked,
    siege_map,
    resolve_full_sieges,
)

from .rules import RuleEngine

from .actions import (
    ActionType,
    Action,
    ActionGenerator,
)

from .engine import (
    new_game,
    place_opening_token,
    apply_route_move,
    yield_forced_if_no_usable_routes,
    buy_extra_reinforcement,
    ransom,
    arm_early_swap,
    cancel_early_swap,
    choose_swap_hand_route,
    choose_swap_queue_index,
    confirm_early_swap,
    confirm_swap_and_end_turn,
    place_reinforcement,
    arm_evasion,
    cancel_evasion,
    select_evasion_token,
    select_evasion_destination,
    confirm_evasion,
    resign,
    apply_action,
)

from .notation import NotationRecorder

__all__ = [
    # errors
    "InvariantViolation",
    # geometry
    "SIZE",
    "FILES",
    "Coord",
    "Direction",
    "in_bounds",
    "to_sq",
    "from_sq",
    "flank_step",
    "trace_by_route",
    "move_by_route",
    "neighbors8",
    "is_adjacent",
    "center_distance",
    "all_squares",
    # routes
    "Route",
    "ALL_ROUTES",
    "ROUTE_BY_ID",
    "parse_route_id",
    "make_deck",
    "swap_with_queue",
    # config
    "RulesConfig",
    # state
    "Player",
    "PLAYERS",
    "Phase",
    "Location",
    "GameOverReason",
    "Token",
    "LastMove",
    "GameOver",
    "GameState",
    # siege
    "adjacent_count",
    "siege_sides",
    "is_locked",
    "siege_map",
    "resolve_full_sieges",
    # rules
    "RuleEngine",
    # actions
    "ActionType",
    "Action",
    "ActionGenerator",
    # engine
    "new_game",
    "place_opening_token",
    "apply_route_move",
    "yield_forced_if_no_usable_routes",
    "buy_extra_reinforcement",
    "ransom",
    "arm_early_swap",
    "cancel_early_swap",
    "choose_swap_hand_route",
    "choose_swap_queue_index",
    "confirm_early_swap",
    "confirm_swap_and_end_turn",
    "place_reinforcement",
    "arm_evasion",
    "cancel_evasion",
    "select_evasion_token",
    "select_evasion_destination",
    "confirm_evasion",
    "resign",
    "apply_action",
    # notation
    "NotationRecorder",
]
