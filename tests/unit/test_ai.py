"""AI tests"""
import numpy as np
import pytest

from ai import (
    AI_RATINGS,
    AiLevel,
    EvalWeights,
    ScoredMove,
    SearchConfig,
    SwapPlan,
    ai_step,
    best_forcing_opportunity,
    best_opening_square,
    best_swap_choice,
    can_enemy_invade_square,
    choose_action,
    count_usable_moves,
    early_swap_plan_aggressive,
    evaluate_state,
    expert_action,
    is_capture_move,
    pick_with_mistakes,
    playout_full_turn,
    safest_reinforcement_square,
    should_buy_extra_reinforcement,
    three_ply_move,
    top_action_moves,
    two_ply_move,
)
from core.actions import Action, ActionType
from core.engine import apply_action, arm_early_swap, buy_extra_reinforcement, new_game, resign
from core.geometry import from_sq
from core.rules import RuleEngine
from core.state import Phase, Player


def invasion_position(make_state):
    return make_state(white=["A1"], blue=["C1"], white_hand=["3/2", "1/1"], blue_hand=["5/1", "7/1"])


def trap_position(make_state):
    # taking F1 leaves W1 stranded in front of B2's 5/2 with no reserves behind it
    return make_state(
        white=["D1"], blue=["F1", "F3"],
        white_hand=["3/2", "2/1"], blue_hand=["5/2"],
        reserves={"W": 0},
    )


def swap_opens_capture(make_state, queue=("3/2", "5/3", "6/3"), captives=2):
    return make_state(
        white=["A1"], blue=["C1", "F6"],
        white_hand=["1/1", "7/1"], queue=list(queue),
        captives={"W": captives},
    )


class TestConfig:
    """EvalWeights and SearchConfig tests"""

    def test_band_table(self):
        table = EvalWeights.band_table((6.0, 14.0, 24.0, 60.0))
        assert table.shape == (9,)
        assert table[2] == 0
        assert table[3] == 6.0
        assert table[4] == table[6] == 14.0
        assert table[8] == 60.0

    def test_from_dict(self):
        cfg = SearchConfig.from_dict({"top_n": 5, "weights": {"on_board": 3.0}, "bogus": 1})
        assert cfg.top_n == 5
        assert cfg.weights.on_board == 3.0

    def test_round_trip(self):
        cfg = SearchConfig(playout_cap=64)
        assert SearchConfig.from_dict(cfg.to_dict()) == cfg


class TestHeuristics:
    """Static evaluation tests"""

    def test_antisymmetric_without_pressure(self, make_state):
        state = make_state(white=["A1", "B1"], blue=["F6"], white_hand=["1/1"], blue_hand=["5/1"])
        assert evaluate_state(state, Player.WHITE) == pytest.approx(-evaluate_state(state, Player.BLUE))
        assert evaluate_state(state, Player.WHITE) > 0

    def test_finished_game(self, make_state):
        state = make_state(white=["A1"], white_hand=["1/1"])
        resign(state, Player.BLUE)
        assert evaluate_state(state, Player.WHITE) == EvalWeights().win_score
        assert evaluate_state(state, Player.BLUE) == -EvalWeights().win_score

    def test_is_capture_move(self, make_state):
        state = invasion_position(make_state)
        before = state.to_dict()
        assert is_capture_move(state, Player.WHITE, "W1", "3/2")
        assert not is_capture_move(state, Player.WHITE, "W1", "1/1")
        assert state.to_dict() == before

    def test_can_enemy_invade_square(self, make_state):
        state = make_state(white=["A1"], blue=["C3"], white_hand=["1/1"], blue_hand=["1/1"])
        assert can_enemy_invade_square(state, Player.BLUE, from_sq("C4"))
        assert not can_enemy_invade_square(state, Player.BLUE, from_sq("D4"))

    def test_count_usable_moves(self, make_state):
        state = invasion_position(make_state)
        assert count_usable_moves(state, Player.WHITE) == 2
        state.phase = Phase.SWAP
        assert count_usable_moves(state, Player.WHITE) == 0


class TestSearch:
    """Search primitive tests"""

    def test_top_moves_capture_first(self, make_state):
        top = top_action_moves(invasion_position(make_state), Player.WHITE, 3)
        assert (top[0].token_id, top[0].route_id) == ("W1", "3/2")
        assert top[0].score > top[1].score

    def test_best_opening_square(self):
        assert best_opening_square(new_game(seed=0)) == (2, 2)

    def test_safest_reinforcement_avoids_invasion(self, make_state):
        state = make_state(white=["A1"], blue=["C3"], white_hand=["1/1"], blue_hand=["1/1"], phase=Phase.REINFORCE)
        state.reinforcements_to_place = 1
        c = safest_reinforcement_square(state, Player.WHITE)
        assert c != from_sq("C4")
        assert state.token_at(c) is None

    def test_expert_action_is_deterministic(self, make_state):
        state = invasion_position(make_state)
        assert expert_action(state, Player.WHITE) == Action.move("W1", "3/2")
        assert expert_action(state, Player.BLUE) is None

    def test_playout_full_turn(self, make_state):
        state = invasion_position(make_state)
        n = playout_full_turn(state, Player.WHITE)
        assert n >= 3
        assert state.player is Player.BLUE
        assert state.phase is Phase.ACTION


class TestPickWithMistakes:
    """pick_with_mistakes tests"""

    @pytest.fixture
    def top(self):
        return [ScoredMove("W1", "1/1", 3.0), ScoredMove("W1", "3/1", 2.0), ScoredMove("W2", "1/1", 1.0)]

    def test_no_mistakes(self, top):
        rng = np.random.default_rng(0)
        assert all(pick_with_mistakes(top, 0.0, rng) is top[0] for _ in range(20))

    def test_second_best(self, top):
        assert pick_with_mistakes(top, 1.0, np.random.default_rng(0), second_best_chance=1.0) is top[1]

    def test_third_best(self, top):
        assert pick_with_mistakes(top, 1.0, np.random.default_rng(0), second_best_chance=0.0) is top[2]

    def test_two_candidates(self, top):
        assert pick_with_mistakes(top[:2], 1.0, np.random.default_rng(0)) is top[1]

    def test_empty(self):
        assert pick_with_mistakes([], 0.5, np.random.default_rng(0)) is None


class TestLevels:
    """Difficulty level tests"""

    def test_display_name(self):
        assert AiLevel.SENIOR_MASTER.display_name == "Senior Master"
        assert AiLevel("grandmaster") is AiLevel.GRANDMASTER

    def test_ratings_increase(self):
        ratings = [AI_RATINGS[level] for level in AiLevel]
        assert ratings == sorted(ratings)
        assert len(set(ratings)) == len(ratings)

    @pytest.mark.parametrize("level", ["novice", "expert"])
    def test_takes_the_capture(self, make_state, level):
        state = invasion_position(make_state)
        action = choose_action(state, Player.WHITE, level, np.random.default_rng(1))
        assert action == Action.move("W1", "3/2")

    @pytest.mark.parametrize("level", ["adept", "master", "senior_master", "grandmaster"])
    def test_returns_legal_action(self, make_state, level):
        state = invasion_position(make_state)
        before = state.to_dict()
        action = choose_action(state, Player.WHITE, level, np.random.default_rng(1))

        assert action is not None
        assert state.to_dict() == before
        assert apply_action(state.clone(), action)

    def test_not_my_turn(self, make_state):
        state = invasion_position(make_state)
        assert choose_action(state, Player.BLUE, AiLevel.EXPERT) is None
        assert not ai_step(state, Player.BLUE, AiLevel.EXPERT)

    def test_opening_placement(self):
        state = new_game(seed=3)
        action = choose_action(state, Player.BLUE, AiLevel.GRANDMASTER)
        assert action == Action.place_opening((2, 2))

    def test_stuck_side_yields(self, make_state):
        state = make_state(white=["C3"], blue=["B3", "D3", "C2", "C4"], white_hand=["1/1"], reserves={"W": 5})
        for level in ("novice", "expert"):
            action = choose_action(state, Player.WHITE, level, np.random.default_rng(0))
            assert action.action_type is ActionType.FORCED_YIELD


class TestAiStep:
    """One engine call per step"""

    def test_single_move(self, make_state):
        state = invasion_position(make_state)
        assert ai_step(state, Player.WHITE, AiLevel.EXPERT)
        assert state.used_routes == ["3/2"]

    def test_swap_walks_selections(self, make_state):
        state = make_state(
            white=["A1"], blue=["F6"],
            white_hand=["1/1", "3/1"], blue_hand=["5/1", "7/1"],
            phase=Phase.SWAP,
        )
        assert ai_step(state, Player.WHITE, AiLevel.EXPERT)
        assert state.pending_swap.hand_route_id is not None
        assert state.pending_swap.queue_index is None

        assert ai_step(state, Player.WHITE, AiLevel.EXPERT)
        assert state.pending_swap.queue_index is not None
        assert state.player is Player.WHITE

        assert ai_step(state, Player.WHITE, AiLevel.EXPERT)
        assert state.player is Player.BLUE

    def test_novice_swap(self, make_state):
        state = make_state(white=["A1"], white_hand=["1/1", "3/1"], phase=Phase.SWAP)
        rng = np.random.default_rng(5)
        for _ in range(3):
            assert ai_step(state, Player.WHITE, AiLevel.NOVICE, rng)
        assert state.player is Player.BLUE


    def test_armed_early_swap_walks_plan(self, make_state):
        state = swap_opens_capture(make_state)
        plan = early_swap_plan_aggressive(state, Player.WHITE)
        assert plan is not None
        assert arm_early_swap(state)

        assert ai_step(state, Player.WHITE, AiLevel.SENIOR_MASTER)
        assert state.early_swap_armed
        assert state.pending_swap.hand_route_id == plan.route_id
        assert state.pending_swap.queue_index is None

        assert ai_step(state, Player.WHITE, AiLevel.SENIOR_MASTER)
        assert state.pending_swap.queue_index == plan.queue_index == 0

        assert ai_step(state, Player.WHITE, AiLevel.SENIOR_MASTER)
        assert state.early_swap_used
        assert not state.early_swap_armed
        assert "3/2" in [r.id for r in state.hands[Player.WHITE]]
        assert state.captives[Player.WHITE] == 0

    def test_armed_early_swap_cancelled_without_plan(self, make_state):
        state = swap_opens_capture(make_state, queue=("1/2", "1/3", "5/3"))
        assert arm_early_swap(state)
        assert ai_step(state, Player.WHITE, AiLevel.SENIOR_MASTER)
        assert not state.early_swap_armed
        assert not state.early_swap_used
        assert state.pending_swap.hand_route_id is None
        assert state.captives[Player.WHITE] == 2


class TestLookahead:
    """Two- and three-ply search"""

    def test_two_ply_avoids_trap(self, make_state):
        state = trap_position(make_state)
        greedy = top_action_moves(state, Player.WHITE, 3)[0]
        mv = two_ply_move(state, Player.WHITE)

        assert (greedy.token_id, greedy.route_id) == ("W1", "3/2")
        assert (mv.token_id, mv.route_id) == ("W1", "2/1")
        assert mv.score > -EvalWeights().win_score

    def test_three_ply_avoids_trap(self, make_state):
        mv = three_ply_move(trap_position(make_state), Player.WHITE)
        assert (mv.token_id, mv.route_id) == ("W1", "2/1")

    @pytest.mark.parametrize("level, route", [
        ("expert", "3/2"),
        ("master", "2/1"),
        ("grandmaster", "2/1"),
    ])
    def test_levels_on_trap(self, make_state, level, route):
        action = choose_action(trap_position(make_state), Player.WHITE, level, np.random.default_rng(0))
        assert action == Action.move("W1", route)

    def test_branch_limit_falls_back(self, make_state):
        state = trap_position(make_state)
        cfg = SearchConfig(three_ply_max_branch=1)
        assert three_ply_move(state, Player.WHITE, cfg) == two_ply_move(state, Player.WHITE, cfg)

    def test_wide_position_uses_two_ply(self, make_state):
        state = make_state(
            white=["A1", "C1", "E1"], blue=["F6"],
            white_hand=["1/1", "3/1", "2/1"], blue_hand=["5/1"],
        )
        assert RuleEngine.count_legal_moves(state, Player.WHITE) == 9
        mv = three_ply_move(state, Player.WHITE)
        assert mv is not None
        assert mv == two_ply_move(state, Player.WHITE)

    def test_no_moves(self, make_state):
        state = make_state(white=["C3"], blue=["B3", "D3", "C2", "C4"], white_hand=["1/1"], reserves={"W": 5})
        assert two_ply_move(state, Player.WHITE) is None
        assert three_ply_move(state, Player.WHITE) is None


class TestEconomyDecisions:
    """Extra reinforcement, early swap and end-of-turn swap choices"""

    def test_buy_to_finish_siege(self, make_state):
        state = make_state(white=["B3", "D3", "C2"], blue=["C3"], white_hand=["1/1"])
        assert should_buy_extra_reinforcement(state, Player.WHITE)

    def test_buy_keeps_reserve_floor(self, make_state):
        state = make_state(white=["B3", "D3", "C2"], blue=["C3"], white_hand=["1/1"], reserves={"W": 9})
        assert not should_buy_extra_reinforcement(state, Player.WHITE)

    def test_buy_when_trailing(self, make_state):
        state = make_state(white=["A1"], blue=["D4", "E5", "F6"], white_hand=["1/1"])
        assert should_buy_extra_reinforcement(state, Player.WHITE)

    def test_no_buy_without_purpose(self, make_state):
        state = make_state(white=["A1"], blue=["F6"], white_hand=["1/1"])
        assert not should_buy_extra_reinforcement(state, Player.WHITE)

    def test_no_second_buy(self, make_state):
        state = make_state(white=["A1"], blue=["D4", "E5", "F6"], white_hand=["1/1"])
        assert buy_extra_reinforcement(state)
        assert not should_buy_extra_reinforcement(state, Player.WHITE)

    def test_no_buy_off_turn(self, make_state):
        state = make_state(white=["B3", "D3", "C2"], blue=["C3"], white_hand=["1/1"])
        assert not should_buy_extra_reinforcement(state, Player.BLUE)

    def test_aggressive_swap_for_capture(self, make_state):
        plan = early_swap_plan_aggressive(swap_opens_capture(make_state), Player.WHITE)
        assert plan is not None
        assert plan.queue_index == 0
        assert plan.route_id in ("1/1", "7/1")

    def test_aggressive_swap_declined_without_gain(self, make_state):
        state = swap_opens_capture(make_state, queue=("1/2", "1/3", "5/3"))
        assert early_swap_plan_aggressive(state, Player.WHITE) is None

    def test_aggressive_swap_needs_captives(self, make_state):
        state = swap_opens_capture(make_state, captives=1)
        assert early_swap_plan_aggressive(state, Player.WHITE) is None

    def test_forcing_capture(self, make_state):
        state = swap_opens_capture(make_state)
        assert best_forcing_opportunity(state, Player.WHITE).score < 260

        assert apply_action(state, Action.early_swap("1/1", 0))
        info = best_forcing_opportunity(state, Player.WHITE)
        assert info.is_capture
        assert info.is_lock_or_better
        assert info.score > 900

    def test_forcing_lock(self, make_state):
        state = make_state(white=["B3", "D3", "C2", "C6"], blue=["C3"], white_hand=["5/2", "8/1"])
        info = best_forcing_opportunity(state, Player.WHITE)
        assert info.is_lock_or_better
        assert not info.is_capture
        assert 100 < info.score < 260

    def test_forcing_outside_action(self, make_state):
        state = make_state(white=["A1"], blue=["C1"], white_hand=["3/2", "1/1"], phase=Phase.SWAP)
        assert best_forcing_opportunity(state, Player.WHITE).score == 0.0

    def test_best_swap_keeps_mobility(self, make_state):
        state = make_state(
            white=["A1"], blue=["F6"],
            white_hand=["1/1", "8/1"], blue_hand=["5/1", "7/1"],
            queue=["3/1", "8/2", "8/3"], phase=Phase.SWAP,
        )
        assert best_swap_choice(state, Player.WHITE) == SwapPlan("8/1", 0)
