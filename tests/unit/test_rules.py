"""Rule engine tests"""
import pytest

from core.errors import InvariantViolation
from core.geometry import from_sq
from core.routes import parse_route_id
from core.rules import RuleEngine
from core.state import Phase, Player


class TestCheckMove:
    """Move legality tests"""

    def test_legal_move(self, make_state):
        state = make_state(white=["A1"], white_hand=["3/2"])
        token = state.token_by_id("W1")
        assert RuleEngine.check_move(state, Player.WHITE, token, parse_route_id("3/2")) is None

    def test_enemy_token(self, make_state):
        state = make_state(white=["A1"], blue=["F6"], white_hand=["3/2"])
        token = state.token_by_id("B1")
        msg = RuleEngine.check_move(state, Player.WHITE, token, parse_route_id("3/2"))
        assert msg == "INVALID: Select a friendly token."

    def test_own_token_on_destination(self, make_state):
        state = make_state(white=["A1", "C1"], white_hand=["3/2"])
        msg = RuleEngine.check_move(state, Player.WHITE, state.token_by_id("W1"), parse_route_id("3/2"))
        assert "occupied by your own token" in msg

    def test_enemy_on_destination_is_legal(self, make_state):
        state = make_state(white=["A1"], blue=["C1"], white_hand=["3/2"])
        assert RuleEngine.can_token_use_route(
            state, Player.WHITE, state.token_by_id("W1"), parse_route_id("3/2")
        )

    def test_locked_token(self, make_state):
        state = make_state(white=["C3"], blue=["B3", "D3", "C2", "C4"], white_hand=["1/1"])
        msg = RuleEngine.check_move(state, Player.WHITE, state.token_by_id("W1"), parse_route_id("1/1"))
        assert "under siege" in msg

    def test_must_leave_origin(self, make_state):
        # A1 is alone on its NW-SE line
        state = make_state(white=["A1"], white_hand=["8/1"])
        msg = RuleEngine.check_move(state, Player.WHITE, state.token_by_id("W1"), parse_route_id("8/1"))
        assert "must move out" in msg

    def test_flank_move(self, make_state):
        state = make_state(white=["F1"], white_hand=["3/1"])
        token = state.token_by_id("W1")
        route = parse_route_id("3/1")
        assert RuleEngine.check_move(state, Player.WHITE, token, route) is None
        assert route.destination(token.pos) == (0, 0)


class TestLegalMoves:
    """Move enumeration tests"""

    def test_enumeration_order(self, make_state):
        state = make_state(white=["A1", "D4"], white_hand=["1/1", "3/1"])
        assert RuleEngine.legal_moves(state) == [
            ("W1", "1/1"), ("W2", "1/1"), ("W1", "3/1"), ("W2", "3/1"),
        ]

    def test_used_routes_excluded(self, make_state):
        state = make_state(white=["A1"], white_hand=["1/1", "3/1"])
        state.used_routes.append("1/1")
        assert RuleEngine.legal_moves(state) == [("W1", "3/1")]

    def test_inactive_side_uses_whole_hand(self, make_state):
        state = make_state(white=["A1"], blue=["F6"], white_hand=["1/1"], blue_hand=["5/1", "7/1"])
        state.used_routes.append("5/1")
        assert RuleEngine.count_legal_moves(state, Player.BLUE) == 2

    def test_no_tokens(self, make_state):
        state = make_state(white_hand=["1/1"])
        assert not RuleEngine.has_any_legal_move(state)
        assert RuleEngine.legal_moves(state) == []


class TestEconomyQueries:
    """Offerability tests"""

    def test_forced_yield_only_when_stuck(self, make_state):
        free = make_state(white=["A1"], white_hand=["1/1"])
        assert not RuleEngine.can_forced_yield(free)

        stuck = make_state(white=["C3"], blue=["B3", "D3", "C2", "C4"], white_hand=["1/1"])
        assert RuleEngine.can_forced_yield(stuck)

    def test_buy_extra(self, make_state):
        state = make_state(white=["A1"], white_hand=["1/1"])
        assert RuleEngine.can_buy_extra_reinforcement(state)
        state.extra_reinforcement_bought = True
        assert not RuleEngine.can_buy_extra_reinforcement(state)

    def test_buy_extra_needs_reserves(self, make_state):
        state = make_state(white=["A1"], white_hand=["1/1"], reserves={"W": 1})
        assert not RuleEngine.can_buy_extra_reinforcement(state)

    def test_early_swap_needs_captives(self, make_state):
        poor = make_state(white=["A1"], white_hand=["1/1"], captives={"W": 1})
        assert not RuleEngine.can_early_swap(poor)
        rich = make_state(white=["A1"], white_hand=["1/1"], captives={"W": 2})
        assert RuleEngine.can_early_swap(rich)
        rich.used_routes.append("1/1")
        assert not RuleEngine.can_early_swap(rich)

    def test_ransom(self, make_state):
        state = make_state(white=["A1"], white_hand=["1/1"], captives={"W": 2}, void={"W": 1})
        assert RuleEngine.can_ransom(state)
        empty_void = make_state(white=["A1"], white_hand=["1/1"], captives={"W": 2})
        assert not RuleEngine.can_ransom(empty_void)

    def test_not_in_action(self, make_state):
        state = make_state(white=["A1"], white_hand=["1/1"], captives={"W": 2}, phase=Phase.REINFORCE)
        assert not RuleEngine.can_buy_extra_reinforcement(state)
        assert not RuleEngine.can_early_swap(state)

    def test_acting_player(self, make_state):
        state = make_state(white=["A1"], white_hand=["1/1"])
        assert RuleEngine.acting_player(state) is Player.WHITE
        state.evasion_armed = True
        assert RuleEngine.acting_player(state) is Player.BLUE


class TestEvasionQueries:
    """Evasion availability tests"""

    def test_waiting_side_only(self, make_state):
        state = make_state(white=["A1"], blue=["D4"], white_hand=["1/1"], captives={"B": 1, "W": 1})
        assert RuleEngine.can_use_evasion(state, Player.BLUE)
        assert not RuleEngine.can_use_evasion(state, Player.WHITE)

    def test_needs_a_captive(self, make_state):
        state = make_state(white=["A1"], blue=["D4"], white_hand=["1/1"])
        assert not RuleEngine.can_use_evasion(state, Player.BLUE)

    def test_once_per_game(self, make_state):
        state = make_state(white=["A1"], blue=["D4"], white_hand=["1/1"], captives={"B": 1})
        state.evasion_used[Player.BLUE] = True
        assert not RuleEngine.can_use_evasion(state, Player.BLUE)

    def test_locked_tokens_cannot_evade(self, make_state):
        state = make_state(white=["B3", "D3", "C2", "C4"], blue=["C3"], white_hand=["1/1"], captives={"B": 1})
        assert RuleEngine.evasion_tokens(state, Player.BLUE) == []
        assert not RuleEngine.can_use_evasion(state, Player.BLUE)

    def test_destinations_one_step(self, make_state):
        state = make_state(white=["A1"], blue=["D4"], white_hand=["1/1"], captives={"B": 1})
        dests = RuleEngine.evasion_destinations(state, state.token_by_id("B1"))
        assert len(dests) == 8
        assert from_sq("D5") in dests

    def test_destination_occupied(self, make_state):
        state = make_state(white=["A1", "D5"], blue=["D4"], white_hand=["1/1"], captives={"B": 1})
        msg = RuleEngine.check_evasion_destination(state, state.token_by_id("B1"), from_sq("D5"))
        assert "occupied" in msg

    def test_evasion_cannot_capture(self, make_state):
        # stepping to C3 would close the ring around a White B2
        state = make_state(
            white=["B2"],
            blue=["A1", "B1", "C1", "A2", "C2", "A3", "B3", "D4"],
            white_hand=["1/1"],
            captives={"B": 1},
        )
        msg = RuleEngine.check_evasion_destination(state, state.token_by_id("B8"), from_sq("C3"))
        assert msg == "INVALID: Evasion cannot capture."


class TestWinConditions:
    """Elimination and siegemate tests"""

    def test_eliminated(self, make_state):
        state = make_state(white=["A1"], reserves={"B": 0})
        assert RuleEngine.is_eliminated(state, Player.BLUE)
        assert not RuleEngine.is_eliminated(state, Player.WHITE)

    def test_not_eliminated_with_reserves(self, make_state):
        state = make_state(white=["A1"])
        assert not RuleEngine.is_eliminated(state, Player.BLUE)

    def test_no_elimination_during_opening(self, make_state):
        state = make_state(phase=Phase.OPENING)
        state.reserves[Player.BLUE] = 0
        assert not RuleEngine.is_eliminated(state, Player.BLUE)

    def test_siegemated(self, make_state):
        state = make_state(
            white=["B3", "D3", "C2", "C4"],
            blue=["C3"],
            white_hand=["1/1"],
            blue_hand=["1/1"],
            reserves={"B": 0},
        )
        assert RuleEngine.is_siegemated(state, Player.BLUE)

    def test_reserves_prevent_siegemate(self, make_state):
        state = make_state(white=["B3", "D3", "C2", "C4"], blue=["C3"], blue_hand=["1/1"])
        assert not RuleEngine.is_siegemated(state, Player.BLUE)


class TestInvariants:
    """Invariant checker tests"""

    def test_consistent_state(self, make_state):
        state = make_state(white=["A1"], blue=["C3"], white_hand=["1/1"], captives={"W": 2}, void={"B": 1})
        RuleEngine.check_invariants(state)
        assert RuleEngine.token_total(state, Player.BLUE) == 18

    def test_conservation_broken(self, make_state):
        state = make_state(white=["A1"])
        state.reserves[Player.WHITE] += 1
        with pytest.raises(InvariantViolation):
            RuleEngine.check_invariants(state)

    def test_negative_counter(self, make_state):
        state = make_state(white=["A1"])
        state.void[Player.BLUE] = -1
        state.reserves[Player.BLUE] += 1
        with pytest.raises(InvariantViolation):
            RuleEngine.check_invariants(state)

    def test_route_conservation(self, make_state):
        state = make_state(white=["A1"], white_hand=["1/1"])
        state.deck.pop()
        with pytest.raises(InvariantViolation):
            RuleEngine.check_invariants(state)

    def test_stacked_tokens(self, make_state):
        state = make_state(white=["A1", "B1"])
        state.token_by_id("W2").x = 0
        with pytest.raises(InvariantViolation):
            RuleEngine.check_invariants(state)
