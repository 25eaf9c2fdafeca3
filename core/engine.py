"""
Game engine - state transition functions

Every mutator takes a ``GameState`` plus explicit arguments and either applies
the transition in place and returns True, or stores an ``INVALID: ...`` message
in ``state.warning`` and returns False, leaving everything else untouched.

Board-changing actions (moves, reinforcements, evasions) share one post-action
path: resolve full sieges, log lock transitions, then check elimination and
siegemate.
"""
from dataclasses import replace
from typing import Callable, Dict, Optional, Set
import logging

import numpy as np

from .actions import Action, ActionType
from .config import RulesConfig
from .geometry import Coord, in_bounds, to_sq
from .routes import swap_with_queue
from .rules import RuleEngine
from .siege import locked_ids, resolve_full_sieges, siege_sides
from .state import (
    PLAYERS,
    GameOver,
    GameOverReason,
    GameState,
    LastMove,
    Location,
    Phase,
    Player,
    Token,
)

logger = logging.getLogger(__name__)

GAME_OVER_MSG = "INVALID: Game is over."
EVASION_BLOCK_MSG = "INVALID: Opponent is currently in evasion."
NOT_YOUR_TURN_MSG = "INVALID: Not your turn."


def new_game(
    config: Optional[RulesConfig] = None,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> GameState:
    """Fresh game in the OPENING phase with a shuffled deck"""
    state = GameState.initial(config=config, rng=rng, seed=seed)
    logger.debug("New game, %s places first", state.player.value)
    return state


# ============================================================================
# Helpers
# ============================================================================

def _reject(state: GameState, message: str) -> bool:
    state.warning = message
    logger.debug("Rejected (%s to act): %s", state.player.value, message)
    return False


def _accept(state: GameState) -> bool:
    state.warning = None
    return True


def _active_guard(
    state: GameState,
    phase: Phase,
    phase_msg: str,
    player: Optional[Player],
) -> Optional[str]:
    """Common preconditions for mutators performed by the active side"""
    if state.game_over is not None:
        return GAME_OVER_MSG
    if state.phase is not phase:
        return phase_msg
    if state.evasion_armed:
        return EVASION_BLOCK_MSG
    if player is not None and player is not state.player:
        return NOT_YOUR_TURN_MSG
    return None


def _spawn_token(state: GameState, owner: Player, coord: Coord) -> Token:
    """Take one token out of the reserve onto ``coord``"""
    state.reserves[owner] -= 1
    for t in state.tokens:
        if t.owner is owner and t.location is Location.RESERVE:
            t.x, t.y = coord
            t.location = Location.BOARD
            return t
    state.token_serial[owner] += 1
    token = Token(f"{owner.value}{state.token_serial[owner]}", owner, coord[0], coord[1])
    state.tokens.append(token)
    return token


def _move_records(
    state: GameState,
    owner: Player,
    src: Location,
    dst: Location,
    n: int,
    protect: Optional[str] = None,
) -> None:
    """Relocate up to ``n`` token records; ``protect`` is moved last"""
    candidates = [t for t in state.tokens if t.owner is owner and t.location is src]
    candidates.sort(key=lambda t: t.id == protect)
    for t in candidates[:n]:
        t.location = dst


def _reserve_to_void(state: GameState, p: Player, n: int) -> None:
    state.reserves[p] -= n
    state.void[p] += n
    _move_records(state, p, Location.RESERVE, Location.VOID, n)


def _void_to_reserve(state: GameState, p: Player, n: int) -> None:
    state.void[p] -= n
    state.reserves[p] += n
    _move_records(state, p, Location.VOID, Location.RESERVE, n)


def _captives_to_enemy_void(state: GameState, p: Player, n: int) -> None:
    """Spend ``n`` of ``p``'s captives; they land in their owner's Void"""
    enemy = p.other
    state.captives[p] -= n
    state.void[enemy] += n
    protect = state.last_move.captured_id if state.last_move else None
    _move_records(state, enemy, Location.CAPTIVE, Location.VOID, n, protect=protect)


def _snapshot_locks(state: GameState) -> Dict[Player, Set[str]]:
    return {p: locked_ids(state, p) for p in PLAYERS}


def _log_lock_transitions(state: GameState, actor: Player, before: Dict[Player, Set[str]]) -> None:
    for p in PLAYERS:
        after = locked_ids(state, p)
        for tid in sorted(after - before[p]):
            sides = siege_sides(state, state.token_by_id(tid))
            state.add_log(f"{actor} put {tid} under siege ({sides}-sided): LOCKED (cannot move).")
        for tid in sorted(before[p] - after):
            tok = state.token_by_id(tid)
            if tok is not None and tok.location is Location.BOARD:
                state.add_log(f"{actor} broke siege on {tid}: UNLOCKED.")


def _end_game(state: GameState, winner: Player, reason: GameOverReason) -> None:
    state.game_over = GameOver(winner, reason)
    state.early_swap_armed = False
    state.evasion_armed = False
    state.pending_swap.clear()
    state.pending_evasion.clear()
    if reason is GameOverReason.SIEGEMATE:
        state.add_log(f"== SIEGEMATE: {winner} wins by complete siege (no legal moves) ==")
    elif reason is GameOverReason.RESIGNATION:
        state.add_log(f"== GAME OVER: {winner.other} resigned, {winner} wins ==")
    else:
        state.add_log(f"== GAME OVER: {winner} wins by elimination ==")
    logger.info("Game over: %s wins by %s (turn %d)", winner.value, reason.value, state.turn)


def _check_game_over(state: GameState, actor: Player, check_siegemate: bool) -> bool:
    """Elimination (actor's opponent first), then siegemate of the opponent"""
    opponent = actor.other
    for side in (opponent, actor):
        if RuleEngine.is_eliminated(state, side):
            _end_game(state, side.other, GameOverReason.ELIMINATION)
            return True
    if check_siegemate and RuleEngine.is_siegemated(state, opponent):
        _end_game(state, actor, GameOverReason.SIEGEMATE)
        return True
    return False


def _after_board_change(
    state: GameState,
    actor: Player,
    before: Dict[Player, Set[str]],
    check_siegemate: bool = True,
) -> bool:
    """
    Shared post-action path for every board change

    Args:
        state: game state (mutated)
        actor: side whose action changed the board
        before: locked ids snapshot taken before the change
        check_siegemate: False for actions by the non-active side

    Returns:
        True if the game ended
    """
    for siegers in (actor, actor.other):
        captured = resolve_full_sieges(state, siegers)
        if captured:
            state.add_log(
                f"{siegers} captured {len(captured)} token(s) by full siege (8-sided): {', '.join(captured)}."
            )
    _log_lock_transitions(state, actor, before)
    return _check_game_over(state, actor, check_siegemate)


def _enter_swap_or_end(state: GameState) -> None:
    p = state.player
    if state.early_swap_used:
        _end_turn(state, f"== {p} ends turn (end-of-turn swap skipped: early swap used) ==")
    else:
        state.phase = Phase.SWAP
        state.pending_swap.clear()
        state.add_log(f"== {p} must swap 1 route (end of turn) ==")


def _finish_action_if_done(state: GameState) -> None:
    """ACTION completion: Draft, win checks, then REINFORCE / SWAP / end of turn"""
    p = state.player
    if state.unused_routes(p):
        return

    cfg = state.config
    if state.turn_invades[p] >= cfg.draft_invade_threshold and state.void[p] > 0:
        refund = min(cfg.draft_refund_cap, state.void[p])
        _void_to_reserve(state, p, refund)
        state.stats[p].drafts += 1
        state.add_log(
            f"{p} Draft: invaded {cfg.draft_invade_threshold}+ this turn, "
            f"returned {refund} {p} token(s) from Void to reserves."
        )

    if _check_game_over(state, p, check_siegemate=True):
        return

    extra = 1 if state.extra_reinforcement_bought else 0
    state.reinforcements_to_place = min(1 + extra, state.reserves[p])
    if state.reinforcements_to_place > 0:
        state.phase = Phase.REINFORCE
        state.add_log(f"== {p} place {state.reinforcements_to_place} reinforcement(s) ==")
    else:
        _enter_swap_or_end(state)


def _end_turn(state: GameState, reason_log: str) -> None:
    """Shared by swap-confirm and skip-swap paths"""
    p = state.player
    cfg = state.config
    state.add_log(reason_log)

    state.turn += 1
    nxt = p.other

    # a round is complete once the second ACTION side has played
    if p is Player(cfg.action_first).other:
        state.round += 1
        for side in PLAYERS:
            if len(state.hands[side]) < cfg.hand_cap:
                route = state.draw()
                state.hands[side].append(route)
                state.add_log(f"== Round {state.round}: escalation +1 route to {side} ({route.id}) ==")

    state.player = nxt
    state.phase = Phase.ACTION
    state.used_routes = []
    for side in PLAYERS:
        state.turn_invades[side] = 0
    state.last_move = None
    state.reinforcements_to_place = 0
    state.pending_swap.clear()
    state.early_swap_armed = False
    state.early_swap_used = False
    state.extra_reinforcement_bought = False
    state.ransom_used = False
    logger.debug("Turn %d: %s to act", state.turn, nxt.value)


def _square_error(coord: Coord) -> Optional[str]:
    if not in_bounds(coord[0], coord[1]):
        return f"INVALID: {coord} is off the board."
    return None


# ============================================================================
# Opening
# ============================================================================

def _finish_opening(state: GameState) -> None:
    cfg = state.config
    first = Player(cfg.opening_first)
    for side in (first, first.other):
        state.hands[side] = [state.draw() for _ in range(cfg.initial_hand)]
    state.queue = [state.draw() for _ in range(cfg.queue_size)]

    state.phase = Phase.ACTION
    state.player = Player(cfg.action_first)
    state.used_routes = []
    state.pending_swap.clear()
    state.reinforcements_to_place = 0
    state.last_move = None
    name = "White" if state.player is Player.WHITE else "Blue"
    state.add_log(f"== Opening complete. Dealt routes. {name} to move. ==")


def place_opening_token(state: GameState, coord: Coord, player: Optional[Player] = None) -> bool:
    """
    Place one opening token from the reserve

    Args:
        state: game state
        coord: empty target square
        player: caller's side, checked against the side to place when given

    Returns:
        True on success
    """
    if state.game_over is not None:
        return _reject(state, GAME_OVER_MSG)
    if state.phase is not Phase.OPENING:
        return _reject(state, "INVALID: Cannot place opening token, game already started.")
    if player is not None and player is not state.player:
        return _reject(state, NOT_YOUR_TURN_MSG)
    err = _square_error(coord)
    if err:
        return _reject(state, err)
    if state.token_at(coord) is not None:
        return _reject(state, f"INVALID: {to_sq(coord)} is occupied.")

    p = state.player
    cfg = state.config
    if state.opening_placed[p] >= cfg.opening_tokens:
        return _reject(state, f"INVALID: {p} already placed {cfg.opening_tokens} opening tokens.")
    if state.reserves[p] <= 0:
        return _reject(state, "INVALID: no reserves.")

    before = _snapshot_locks(state)
    token = _spawn_token(state, p, coord)
    state.opening_placed[p] += 1
    state.add_log(f"{p} placed {token.id} at {to_sq(coord)}")
    for siegers in (p, p.other):
        resolve_full_sieges(state, siegers)
    _log_lock_transitions(state, p, before)

    if sum(state.opening_placed.values()) >= 2 * cfg.opening_tokens:
        _finish_opening(state)
    else:
        state.player = p.other
    return _accept(state)


# ============================================================================
# Action phase
# ============================================================================

def apply_route_move(
    state: GameState,
    token_id: str,
    route_id: str,
    player: Optional[Player] = None,
) -> bool:
    """
    Move a token along one unused hand route

    Landing on an enemy token captures it (invasion). Afterwards full sieges
    are resolved, win conditions checked, and the ACTION phase completes once
    every hand route has been used.

    Args:
        state: game state
        token_id: active side's token
        route_id: unused route in the active side's hand
        player: caller's side, checked when given

    Returns:
        True on success
    """
    err = _active_guard(state, Phase.ACTION, "INVALID: Can only move during ACTION phase.", player)
    if err:
        return _reject(state, err)

    p = state.player
    route = state.hand_route(p, route_id)
    if route is None:
        return _reject(state, f"INVALID: Route {route_id} not found.")
    if route_id in state.used_routes:
        return _reject(state, f"INVALID: Route {route_id} already used this turn.")

    token = state.token_by_id(token_id)
    err = RuleEngine.check_move(state, p, token, route)
    if err:
        return _reject(state, err)

    before = _snapshot_locks(state)
    origin = token.pos
    steps = route.trace(origin)
    to = steps[-1]
    occupant = state.token_at(to)

    token.x, token.y = to
    state.used_routes.append(route_id)
    state.move_seq += 1
    path = " → ".join(to_sq(c) for c in steps)
    state.add_log(f"{p} {token.id}: {route.id}  {to_sq(origin)} → {path}")

    captured_id = None
    if occupant is not None and occupant.owner is not p:
        occupant.location = Location.CAPTIVE
        state.captives[p] += 1
        state.turn_invades[p] += 1
        state.stats[p].captures += 1
        state.stats[p].invades += 1
        captured_id = occupant.id
        state.add_log(f"{p} invaded and captured {occupant.id} at {to_sq(to)}")

    state.last_move = LastMove(
        by=p,
        token_id=token.id,
        origin=origin,
        to=to,
        direction=route.direction,
        route_id=route.id,
        captured_id=captured_id,
        seq=state.move_seq,
    )

    if not _after_board_change(state, p, before):
        _finish_action_if_done(state)
    return _accept(state)


def yield_forced_if_no_usable_routes(state: GameState, player: Optional[Player] = None) -> bool:
    """
    Burn every remaining route when none can be used

    Pays one Reserve token into the Void per burned route, as far as the
    Reserve allows, then completes the ACTION phase.
    """
    err = _active_guard(state, Phase.ACTION, "INVALID: Can only yield during ACTION phase.", player)
    if err:
        return _reject(state, err)

    p = state.player
    remaining = state.unused_routes(p)
    if not remaining:
        return _reject(state, "INVALID: no remaining routes.")
    if RuleEngine.has_any_legal_move(state, p):
        return _reject(state, "INVALID: you still have usable routes.")

    need = len(remaining)
    pay = min(need, state.reserves[p])
    _reserve_to_void(state, p, pay)
    state.used_routes.extend(r.id for r in remaining)
    state.add_log(
        f"{p} has no usable routes; yielded {pay}/{need} reserve token(s) "
        f"to the Void and burned {need} route(s)."
    )

    _finish_action_if_done(state)
    return _accept(state)


def buy_extra_reinforcement(state: GameState, player: Optional[Player] = None) -> bool:
    """Burn Reserve into own Void for +1 reinforcement this turn"""
    err = _active_guard(
        state, Phase.ACTION, "INVALID: Can only buy extra reinforcement during ACTION phase.", player
    )
    if err:
        return _reject(state, err)

    p = state.player
    cost = state.config.extra_reinforcement_cost
    if state.extra_reinforcement_bought:
        return _reject(state, "INVALID: you already bought an extra reinforcement this turn.")
    if state.reserves[p] < cost:
        return _reject(state, f"INVALID: need {cost} reserve token(s) to buy an extra reinforcement.")

    _reserve_to_void(state, p, cost)
    state.extra_reinforcement_bought = True
    state.add_log(f"{p} burned {cost} reserve token(s) to Void to buy +1 reinforcement this turn.")
    _check_game_over(state, p, check_siegemate=False)
    return _accept(state)


def ransom(state: GameState, player: Optional[Player] = None) -> bool:
    """Pay captives into the enemy's Void to bring own Void tokens back to Reserve"""
    err = _active_guard(state, Phase.ACTION, "INVALID: Can only ransom during ACTION phase.", player)
    if err:
        return _reject(state, err)

    p = state.player
    cfg = state.config
    if state.ransom_used:
        return _reject(state, "INVALID: you already paid a ransom this turn.")
    if state.captives[p] < cfg.ransom_cost:
        return _reject(state, f"INVALID: need {cfg.ransom_cost} captured token(s) to ransom.")
    if state.void[p] < cfg.ransom_refund:
        return _reject(state, "INVALID: nothing in your Void to ransom.")

    _captives_to_enemy_void(state, p, cfg.ransom_cost)
    _void_to_reserve(state, p, cfg.ransom_refund)
    state.ransom_used = True
    state.stats[p].ransoms += 1
    state.add_log(
        f"{p} ransomed {cfg.ransom_refund} token(s) from Void "
        f"(paid {cfg.ransom_cost} captive → {p.other} Void)."
    )
    return _accept(state)


# ============================================================================
# Early swap and end-of-turn swap
# ============================================================================

def arm_early_swap(state: GameState, player: Optional[Player] = None) -> bool:
    err = _active_guard(
        state, Phase.ACTION, "INVALID: Early swap only available during ACTION phase.", player
    )
    if err:
        return _reject(state, err)

    p = state.player
    cost = state.config.early_swap_cost
    if not state.unused_routes(p):
        return _reject(state, "INVALID: early swap disabled (no remaining routes).")
    if state.early_swap_used:
        return _reject(state, "INVALID: you already swapped early this turn.")
    if state.captives[p] < cost:
        return _reject(state, f"INVALID: need {cost} captured token(s) to early swap.")

    state.early_swap_armed = True
    state.pending_swap.clear()
    state.add_log(f"== {p} Early Swap armed (cost: {cost} captive) ==")
    return _accept(state)


def cancel_early_swap(state: GameState, player: Optional[Player] = None) -> bool:
    err = _active_guard(
        state, Phase.ACTION, "INVALID: Early swap only available during ACTION phase.", player
    )
    if err:
        return _reject(state, err)
    if not state.early_swap_armed:
        return _reject(state, "INVALID: Early swap is not armed.")
    state.early_swap_armed = False
    state.pending_swap.clear()
    return _accept(state)


def _swap_selection_error(state: GameState, player: Optional[Player]) -> Optional[str]:
    if state.game_over is not None:
        return GAME_OVER_MSG
    if not (state.phase is Phase.SWAP or (state.phase is Phase.ACTION and state.early_swap_armed)):
        return "INVALID: Cannot select swap route in current phase."
    if state.evasion_armed:
        return EVASION_BLOCK_MSG
    if player is not None and player is not state.player:
        return NOT_YOUR_TURN_MSG
    return None


def choose_swap_hand_route(state: GameState, route_id: str, player: Optional[Player] = None) -> bool:
    err = _swap_selection_error(state, player)
    if err:
        return _reject(state, err)
    if state.hand_route(state.player, route_id) is None:
        return _reject(state, "INVALID: that hand route isn't in your set.")
    if state.phase is Phase.ACTION and route_id in state.used_routes:
        return _reject(state, "INVALID: you can only early-swap an unused route.")
    state.pending_swap.hand_route_id = route_id
    return _accept(state)


def choose_swap_queue_index(state: GameState, index: int, player: Optional[Player] = None) -> bool:
    err = _swap_selection_error(state, player)
    if err:
        return _reject(state, err)
    if not 0 <= index < len(state.queue):
        return _reject(state, "INVALID: Queue index out of range.")
    state.pending_swap.queue_index = index
    return _accept(state)


def _pending_hand_index(state: GameState) -> Optional[int]:
    route_id = state.pending_swap.hand_route_id
    for i, r in enumerate(state.hands[state.player]):
        if r.id == route_id:
            return i
    return None


def confirm_early_swap(state: GameState, player: Optional[Player] = None) -> bool:
    """Pay captives and swap one unused hand route with a queue route, turn continues"""
    err = _active_guard(
        state, Phase.ACTION, "INVALID: Early swap only available during ACTION phase.", player
    )
    if err:
        return _reject(state, err)
    if not state.early_swap_armed:
        return _reject(state, "INVALID: Early swap is not armed.")

    p = state.player
    cost = state.config.early_swap_cost
    if state.early_swap_used:
        return _reject(state, "INVALID: you already swapped early this turn.")
    if not state.unused_routes(p):
        return _reject(state, "INVALID: early swap disabled (no remaining routes).")
    if state.captives[p] < cost:
        return _reject(state, f"INVALID: need {cost} captured token(s).")
    if not state.pending_swap.complete:
        return _reject(state, "INVALID: pick 1 route from hand and 1 from the queue.")

    hand_index = _pending_hand_index(state)
    if hand_index is None:
        return _reject(state, "INVALID: that hand route isn't in your set.")
    if state.pending_swap.hand_route_id in state.used_routes:
        return _reject(state, "INVALID: you can only early-swap an unused route.")
    q = state.pending_swap.queue_index
    if not 0 <= q < len(state.queue):
        return _reject(state, "INVALID: invalid queue selection.")

    _captives_to_enemy_void(state, p, cost)
    discarded, taken, _ = swap_with_queue(state.hands[p], hand_index, state.queue, q, state.deck)

    state.early_swap_used = True
    state.early_swap_armed = False
    state.pending_swap.clear()
    state.add_log(
        f"{p} EARLY swapped out {discarded.id} and took {taken.id} "
        f"(paid {cost} captive → {p.other} Void)."
    )
    return _accept(state)


def confirm_swap_and_end_turn(state: GameState, player: Optional[Player] = None) -> bool:
    """Exchange the selected hand route and queue slot, then end the turn"""
    err = _active_guard(state, Phase.SWAP, "INVALID: Can only confirm swap during SWAP phase.", player)
    if err:
        return _reject(state, err)
    if not state.pending_swap.complete:
        return _reject(state, "INVALID: pick 1 route from hand and 1 from the queue.")

    hand_index = _pending_hand_index(state)
    if hand_index is None:
        return _reject(state, "INVALID: that hand route isn't in your set.")
    q = state.pending_swap.queue_index
    if not 0 <= q < len(state.queue):
        return _reject(state, "INVALID: invalid queue selection.")

    p = state.player
    discarded, taken, _ = swap_with_queue(state.hands[p], hand_index, state.queue, q, state.deck)
    state.add_log(f"{p} swapped out {discarded.id} and took {taken.id} from queue.")
    _end_turn(state, f"== {p} ends turn ==")
    return _accept(state)


# ============================================================================
# Reinforcement
# ============================================================================

def place_reinforcement(state: GameState, coord: Coord, player: Optional[Player] = None) -> bool:
    """Place one reinforcement from the reserve onto an empty square"""
    err = _active_guard(
        state, Phase.REINFORCE, "INVALID: Can only place reinforcements during REINFORCE phase.", player
    )
    if err:
        return _reject(state, err)
    err = _square_error(coord)
    if err:
        return _reject(state, err)

    p = state.player
    if state.reinforcements_to_place <= 0:
        return _reject(state, "INVALID: no reinforcements left to place.")
    if state.token_at(coord) is not None:
        return _reject(state, f"INVALID: {to_sq(coord)} is occupied (reinforcements cannot invade).")
    if state.reserves[p] <= 0:
        return _reject(state, "INVALID: no reserves.")

    before = _snapshot_locks(state)
    token = _spawn_token(state, p, coord)
    state.reinforcements_to_place -= 1
    state.add_log(f"{p} reinforced {token.id} at {to_sq(coord)}")

    if _after_board_change(state, p, before):
        return _accept(state)
    if state.reinforcements_to_place <= 0:
        _enter_swap_or_end(state)
    return _accept(state)


# ============================================================================
# Evasion (non-active side, during the opponent's ACTION phase)
# ============================================================================

def _evasion_guard(state: GameState, player: Optional[Player], need_armed: bool) -> Optional[str]:
    if state.game_over is not None:
        return GAME_OVER_MSG
    if state.phase is not Phase.ACTION:
        return "INVALID: Evasion is only available during ACTION phase."
    defender = state.player.other
    if player is not None and player is not defender:
        return "INVALID: Evasion is only available to the waiting player."
    if need_armed and not state.evasion_armed:
        return "INVALID: Evasion is not armed."
    return None


def arm_evasion(state: GameState, player: Optional[Player] = None) -> bool:
    """Start an evasion for the side waiting on the opponent's turn"""
    err = _evasion_guard(state, player, need_armed=False)
    if err:
        return _reject(state, err)

    d = state.player.other
    cfg = state.config
    if state.evasion_armed:
        return _reject(state, "INVALID: Evasion is already armed.")
    if state.evasion_used[d]:
        return _reject(state, "INVALID: Evasion already used this game.")
    if state.captives[d] < cfg.evasion_cost_captives or state.reserves[d] < cfg.evasion_cost_reserves:
        return _reject(
            state,
            f"INVALID: need {cfg.evasion_cost_captives} captive and "
            f"{cfg.evasion_cost_reserves} reserve token(s) to evade.",
        )
    if not RuleEngine.can_use_evasion(state, d):
        return _reject(state, "INVALID: Evasion not available right now.")

    state.evasion_armed = True
    state.pending_evasion.clear()
    state.add_log(f"== {d} Evasion armed ==")
    return _accept(state)


def cancel_evasion(state: GameState, player: Optional[Player] = None) -> bool:
    err = _evasion_guard(state, player, need_armed=True)
    if err:
        return _reject(state, err)
    state.evasion_armed = False
    state.pending_evasion.clear()
    return _accept(state)


def select_evasion_token(state: GameState, token_id: str, player: Optional[Player] = None) -> bool:
    err = _evasion_guard(state, player, need_armed=True)
    if err:
        return _reject(state, err)

    d = state.player.other
    if token_id not in {t.id for t in RuleEngine.evasion_tokens(state, d)}:
        return _reject(state, "INVALID: Select an unlocked friendly token or the token just captured.")
    state.pending_evasion.token_id = token_id
    state.pending_evasion.to = None
    return _accept(state)


def select_evasion_destination(state: GameState, coord: Coord, player: Optional[Player] = None) -> bool:
    err = _evasion_guard(state, player, need_armed=True)
    if err:
        return _reject(state, err)
    err = _square_error(coord)
    if err:
        return _reject(state, err)

    token = state.token_by_id(state.pending_evasion.token_id)
    if token is None:
        return _reject(state, "INVALID: Select a token to evade first.")
    err = RuleEngine.check_evasion_destination(state, token, coord)
    if err:
        return _reject(state, err)
    state.pending_evasion.to = coord
    return _accept(state)


def confirm_evasion(state: GameState, player: Optional[Player] = None) -> bool:
    """
    Pay the evasion cost and step the selected token one flank step

    A token rescued from the preceding invasion returns to the board and the
    captor's captive and invasion counts drop by one.
    """
    err = _evasion_guard(state, player, need_armed=True)
    if err:
        return _reject(state, err)

    d = state.player.other
    cfg = state.config
    pending = state.pending_evasion
    token = state.token_by_id(pending.token_id)
    if token is None or pending.to is None:
        return _reject(state, "INVALID: pick a token and a destination.")
    if token.id not in {t.id for t in RuleEngine.evasion_tokens(state, d)}:
        return _reject(state, "INVALID: Select an unlocked friendly token or the token just captured.")
    err = RuleEngine.check_evasion_destination(state, token, pending.to)
    if err:
        return _reject(state, err)
    if state.captives[d] < cfg.evasion_cost_captives or state.reserves[d] < cfg.evasion_cost_reserves:
        return _reject(state, "INVALID: cannot afford evasion.")

    before = _snapshot_locks(state)
    origin = RuleEngine.evasion_origin(state, token)
    rescued = token.location is Location.CAPTIVE
    to = pending.to

    _captives_to_enemy_void(state, d, cfg.evasion_cost_captives)
    _reserve_to_void(state, d, cfg.evasion_cost_reserves)

    if rescued:
        captor = d.other
        state.captives[captor] -= 1
        state.turn_invades[captor] = max(0, state.turn_invades[captor] - 1)
        state.last_move = replace(state.last_move, captured_id=None)
    token.x, token.y = to
    token.location = Location.BOARD

    state.move_seq += 1
    state.evasion_used[d] = True
    state.evasion_armed = False
    pending.clear()
    state.stats[d].evasions += 1
    note = " (rescued from capture)" if rescued else ""
    state.add_log(f"{d} evaded {token.id}: {to_sq(origin)} → {to_sq(to)}{note}")

    _after_board_change(state, d, before, check_siegemate=False)
    return _accept(state)


# ============================================================================
# Resignation
# ============================================================================

def resign(state: GameState, player: Player) -> bool:
    if state.game_over is not None:
        return _reject(state, GAME_OVER_MSG)
    _end_game(state, player.other, GameOverReason.RESIGNATION)
    return _accept(state)


# ============================================================================
# Action dispatch
# ============================================================================

def _transactional(state: GameState, steps: Callable[[GameState], bool]) -> bool:
    """Run a multi-step protocol on a copy; commit only if every step succeeds"""
    trial = state.clone()
    if not steps(trial):
        state.warning = trial.warning
        return False
    state.__dict__.update(trial.__dict__)
    return True


def apply_action(state: GameState, action: Action) -> bool:
    """
    Apply a ``core.actions.Action``

    Multi-step protocols (early swap, swap, evasion) are applied atomically.

    Returns:
        True on success, False with ``state.warning`` set otherwise
    """
    at = action.action_type
    who = action.player

    if at is ActionType.PLACE_OPENING:
        return place_opening_token(state, action.coord, who)
    if at is ActionType.MOVE:
        return apply_route_move(state, action.token_id, action.route_id, who)
    if at is ActionType.FORCED_YIELD:
        return yield_forced_if_no_usable_routes(state, who)
    if at is ActionType.BUY_EXTRA_REINFORCEMENT:
        return buy_extra_reinforcement(state, who)
    if at is ActionType.RANSOM:
        return ransom(state, who)
    if at is ActionType.PLACE_REINFORCEMENT:
        return place_reinforcement(state, action.coord, who)
    if at is ActionType.EARLY_SWAP:
        return _transactional(state, lambda s: (
            arm_early_swap(s, who)
            and choose_swap_hand_route(s, action.route_id, who)
            and choose_swap_queue_index(s, action.queue_index, who)
            and confirm_early_swap(s, who)
        ))
    if at is ActionType.SWAP:
        return _transactional(state, lambda s: (
            choose_swap_hand_route(s, action.route_id, who)
            and choose_swap_queue_index(s, action.queue_index, who)
            and confirm_swap_and_end_turn(s, who)
        ))
    if at is ActionType.EVASION:
        return _transactional(state, lambda s: (
            arm_evasion(s, who)
            and select_evasion_token(s, action.token_id, who)
            and select_evasion_destination(s, action.coord, who)
            and confirm_evasion(s, who)
        ))
    if at is ActionType.RESIGN:
        return resign(state, who or RuleEngine.acting_player(state))
    raise ValueError(f"Unknown action type: {at}")
