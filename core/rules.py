"""
Rule engine - read-only legality queries

All methods are pure functions of the state passed in. Callers (the engine
mutators, the AI, the environment and any UI) use these queries to decide what
is currently offerable; none of them mutate anything.
"""
from collections import Counter
from typing import List, Optional, Tuple

from .errors import InvariantViolation
from .geometry import Coord, Direction, all_squares, flank_step, is_adjacent, to_sq
from .routes import ALL_ROUTES, Route
from .siege import adjacent_count, is_locked
from .state import PLAYERS, GameState, Location, Phase, Player, Token

Move = Tuple[str, str]  # (token id, route id)


class RuleEngine:
    """
    Vekke rules

    Legality, affordability and win-condition queries. All methods are static
    and stateless.
    """

    # ------------------------------------------------------------------
    # routes and movement
    # ------------------------------------------------------------------

    @staticmethod
    def remaining_routes(state: GameState, player: Optional[Player] = None) -> List[Route]:
        """Unused routes of the active side, or the whole hand of the other side"""
        player = player or state.player
        if player is state.player:
            return state.unused_routes(player)
        return list(state.hands[player])

    @staticmethod
    def check_move(state: GameState, player: Player, token: Optional[Token], route: Route) -> Optional[str]:
        """
        Why ``token`` may not use ``route``

        Args:
            state: game state
            player: side attempting the move
            token: token to move
            route: route to apply

        Returns:
            a warning string, or None if the move is legal
        """
        if token is None or token.location is not Location.BOARD or token.owner is not player:
            return "INVALID: Select a friendly token."
        if is_locked(state, token):
            return f"INVALID: {token.id} is under siege and cannot move."

        steps = route.trace(token.pos)
        if not steps:
            return "INVALID: that route has no movement."
        # may pass back through the origin but must leave it at least once
        if all(c == token.pos for c in steps):
            return "INVALID: token must move out of its originating space."

        to = steps[-1]
        occ = state.token_at(to)
        if occ is not None and occ.owner is player and occ.id != token.id:
            return f"INVALID: {to_sq(to)} is occupied by your own token."
        return None

    @staticmethod
    def can_token_use_route(state: GameState, player: Player, token: Token, route: Route) -> bool:
        return RuleEngine.check_move(state, player, token, route) is None

    @staticmethod
    def legal_moves(state: GameState, player: Optional[Player] = None) -> List[Move]:
        """
        Every (token id, route id) pair ``player`` could apply

        Routes are taken from ``remaining_routes``; tokens in board order.
        """
        player = player or state.player
        routes = RuleEngine.remaining_routes(state, player)
        tokens = state.board_tokens(player)
        out: List[Move] = []
        for r in routes:
            for t in tokens:
                if RuleEngine.check_move(state, player, t, r) is None:
                    out.append((t.id, r.id))
        return out

    @staticmethod
    def has_any_legal_move(state: GameState, player: Optional[Player] = None) -> bool:
        player = player or state.player
        tokens = state.board_tokens(player)
        if not tokens:
            return False
        for r in RuleEngine.remaining_routes(state, player):
            for t in tokens:
                if RuleEngine.check_move(state, player, t, r) is None:
                    return True
        return False

    @staticmethod
    def count_legal_moves(state: GameState, player: Optional[Player] = None) -> int:
        return len(RuleEngine.legal_moves(state, player))

    # ------------------------------------------------------------------
    # phase / economy offerability
    # ------------------------------------------------------------------

    @staticmethod
    def acting_player(state: GameState) -> Player:
        """Side expected to act next (the defender while an evasion is armed)"""
        if state.evasion_armed:
            return state.player.other
        return state.player

    @staticmethod
    def in_action(state: GameState) -> bool:
        return state.phase is Phase.ACTION and state.game_over is None

    @staticmethod
    def can_forced_yield(state: GameState) -> bool:
        """Unused routes remain and none of them is usable by any token"""
        if not RuleEngine.in_action(state) or state.evasion_armed:
            return False
        if not state.unused_routes():
            return False
        return not RuleEngine.has_any_legal_move(state, state.player)

    @staticmethod
    def can_buy_extra_reinforcement(state: GameState) -> bool:
        if not RuleEngine.in_action(state) or state.evasion_armed:
            return False
        if state.extra_reinforcement_bought:
            return False
        return state.reserves[state.player] >= state.config.extra_reinforcement_cost

    @staticmethod
    def can_early_swap(state: GameState) -> bool:
        """The active side could arm and pay for an early swap now"""
        if not RuleEngine.in_action(state) or state.evasion_armed:
            return False
        if state.early_swap_used or not state.unused_routes():
            return False
        return state.captives[state.player] >= state.config.early_swap_cost

    @staticmethod
    def can_ransom(state: GameState) -> bool:
        if not RuleEngine.in_action(state) or state.evasion_armed:
            return False
        p = state.player
        cfg = state.config
        if state.ransom_used:
            return False
        return state.captives[p] >= cfg.ransom_cost and state.void[p] >= cfg.ransom_refund

    # ------------------------------------------------------------------
    # evasion
    # ------------------------------------------------------------------

    @staticmethod
    def evasion_tokens(state: GameState, player: Player) -> List[Token]:
        """
        Tokens ``player`` could evade with

        Unlocked board tokens, plus the token taken by the immediately
        preceding enemy invasion.
        """
        out = [t for t in state.board_tokens(player) if not is_locked(state, t)]
        lm = state.last_move
        if lm is not None and lm.by is player.other and lm.captured_id:
            captured = state.token_by_id(lm.captured_id)
            if captured is not None and captured.location is Location.CAPTIVE and captured.owner is player:
                out.append(captured)
        return out

    @staticmethod
    def evasion_origin(state: GameState, token: Token) -> Coord:
        """A rescued captive leaves from the square it was taken on"""
        lm = state.last_move
        if token.location is Location.CAPTIVE and lm is not None and lm.captured_id == token.id:
            return lm.to
        return token.pos

    @staticmethod
    def check_evasion_destination(state: GameState, token: Token, to: Coord) -> Optional[str]:
        """Why ``token`` may not evade to ``to``; None when allowed"""
        origin = RuleEngine.evasion_origin(state, token)
        if to == origin or to not in RuleEngine.evasion_destinations_raw(origin):
            return "INVALID: Evasion moves exactly one step."
        if state.token_at(to) is not None:
            return f"INVALID: {to_sq(to)} is occupied."

        # evasion cannot capture: reject squares that would close an 8-ring
        player = token.owner
        for e in state.board_tokens(player.other):
            if not is_adjacent(e.pos, to):
                continue
            n = adjacent_count(state, player, e.x, e.y) + 1
            if token.location is Location.BOARD and is_adjacent(e.pos, token.pos):
                n -= 1
            if n >= state.config.full_siege:
                return "INVALID: Evasion cannot capture."
        return None

    @staticmethod
    def evasion_destinations_raw(origin: Coord) -> List[Coord]:
        out = []
        for d in Direction:
            c = flank_step(origin, d)
            if c != origin and c not in out:
                out.append(c)
        return out

    @staticmethod
    def evasion_destinations(state: GameState, token: Token) -> List[Coord]:
        origin = RuleEngine.evasion_origin(state, token)
        return [
            c for c in RuleEngine.evasion_destinations_raw(origin)
            if RuleEngine.check_evasion_destination(state, token, c) is None
        ]

    @staticmethod
    def can_use_evasion(state: GameState, player: Player) -> bool:
        """``player`` is the non-active side and could arm an evasion now"""
        if not RuleEngine.in_action(state) or state.evasion_armed:
            return False
        if player is state.player or state.evasion_used[player]:
            return False
        cfg = state.config
        if state.captives[player] < cfg.evasion_cost_captives:
            return False
        if state.reserves[player] < cfg.evasion_cost_reserves:
            return False
        return any(
            RuleEngine.evasion_destinations(state, t)
            for t in RuleEngine.evasion_tokens(state, player)
        )

    # ------------------------------------------------------------------
    # board and win conditions
    # ------------------------------------------------------------------

    @staticmethod
    def empty_squares(state: GameState) -> List[Coord]:
        occupied = {t.pos for t in state.board_tokens()}
        return [c for c in all_squares() if c not in occupied]

    @staticmethod
    def is_eliminated(state: GameState, player: Player) -> bool:
        """No tokens on the board and nothing left to place"""
        if state.phase is Phase.OPENING:
            return False
        return state.on_board_count(player) == 0 and state.reserves[player] == 0

    @staticmethod
    def is_siegemated(state: GameState, player: Player) -> bool:
        """No token of ``player`` can use any of its routes and no reserves remain"""
        if state.phase is Phase.OPENING:
            return False
        if state.reserves[player] > 0:
            return False
        return not RuleEngine.has_any_legal_move(state, player)

    # ------------------------------------------------------------------
    # invariants
    # ------------------------------------------------------------------

    @staticmethod
    def token_total(state: GameState, player: Player) -> int:
        """board + reserve + held by the enemy + void"""
        return (
            state.on_board_count(player)
            + state.reserves[player]
            + state.captives[player.other]
            + state.void[player]
        )

    @staticmethod
    def check_invariants(state: GameState) -> None:
        """
        Verify conservation and location/counter agreement

        Raises:
            InvariantViolation: on the first broken invariant
        """
        cfg = state.config
        for p in PLAYERS:
            for name in ("reserves", "captives", "void", "turn_invades"):
                if getattr(state, name)[p] < 0:
                    raise InvariantViolation(f"{name}[{p.value}] is negative")

            total = RuleEngine.token_total(state, p)
            if total != cfg.starting_reserve:
                raise InvariantViolation(
                    f"token conservation broken for {p.value}: {total} != {cfg.starting_reserve}"
                )

            held = sum(1 for _ in state.tokens_in(p, Location.CAPTIVE))
            if held != state.captives[p.other]:
                raise InvariantViolation(
                    f"{p.other.value} captives counter {state.captives[p.other]} != {held} captive tokens"
                )
            if sum(1 for _ in state.tokens_in(p, Location.VOID)) > state.void[p]:
                raise InvariantViolation(f"more VOID tokens than void[{p.value}]")
            if sum(1 for _ in state.tokens_in(p, Location.RESERVE)) > state.reserves[p]:
                raise InvariantViolation(f"more RESERVE tokens than reserves[{p.value}]")

        squares = Counter(t.pos for t in state.board_tokens())
        stacked = [to_sq(c) for c, n in squares.items() if n > 1]
        if stacked:
            raise InvariantViolation(f"multiple tokens on {', '.join(stacked)}")

        ids = [r.id for r in state.deck] + [r.id for r in state.queue]
        for h in state.hands.values():
            ids.extend(r.id for r in h)
        if len(ids) != len(ALL_ROUTES) or len(set(ids)) != len(ids):
            raise InvariantViolation(f"route conservation broken: {len(ids)} routes")

        if state.phase is not Phase.OPENING and len(state.queue) != cfg.queue_size:
            raise InvariantViolation(f"queue holds {len(state.queue)} routes")
