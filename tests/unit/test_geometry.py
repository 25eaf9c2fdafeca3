"""Board geometry tests"""
import pytest

from core.geometry import (
    Direction,
    all_squares,
    center_distance,
    flank_step,
    from_sq,
    is_adjacent,
    line_endpoints,
    move_by_route,
    neighbors8,
    to_sq,
    trace_by_route,
)


class TestNotation:
    """Square notation tests"""

    def test_to_sq(self):
        assert to_sq((0, 0)) == "A1"
        assert to_sq((5, 5)) == "F6"
        assert to_sq((2, 3)) == "C4"

    def test_from_sq(self):
        assert from_sq("A1") == (0, 0)
        assert from_sq("c4") == (2, 3)
        assert from_sq(" F6 ") == (5, 5)

    @pytest.mark.parametrize("sq", ["G1", "A7", "A0", "", "1A", "AA"])
    def test_from_sq_invalid(self, sq):
        with pytest.raises(ValueError):
            from_sq(sq)

    def test_to_sq_off_board(self):
        with pytest.raises(ValueError):
            to_sq((6, 0))


class TestDirection:
    """Direction tests"""

    def test_numbering(self):
        assert Direction.N == 1
        assert Direction.NW == 8

    def test_orthogonal(self):
        assert [d for d in Direction if d.is_orthogonal] == [
            Direction.N, Direction.E, Direction.S, Direction.W,
        ]

    def test_vector(self):
        assert Direction.NE.vector == (1, 1)
        assert Direction.W.vector == (-1, 0)


class TestLineEndpoints:
    """Line endpoint tests"""

    def test_horizontal(self):
        assert line_endpoints((3, 2), Direction.E) == ((0, 2), (5, 2))

    def test_vertical(self):
        assert line_endpoints((3, 2), Direction.S) == ((3, 0), (3, 5))

    def test_main_diagonal(self):
        assert line_endpoints((5, 3), Direction.NE) == ((2, 0), (5, 3))

    def test_anti_diagonal(self):
        assert line_endpoints((0, 3), Direction.NW) == ((0, 3), (3, 0))


class TestFlankStep:
    """Flanking tests"""

    def test_interior_step(self):
        assert flank_step((2, 2), Direction.NE) == (3, 3)

    def test_east_edge_wraps_to_row_start(self):
        assert flank_step((5, 2), Direction.E) == (0, 2)

    def test_west_edge_wraps_to_row_end(self):
        assert flank_step((0, 4), Direction.W) == (5, 4)

    def test_north_edge_wraps_to_column_start(self):
        assert flank_step((2, 5), Direction.N) == (2, 0)

    def test_south_edge_wraps_to_column_end(self):
        assert flank_step((2, 0), Direction.S) == (2, 5)

    def test_diagonal_reenters_at_line_end(self):
        # not a modulo wrap: (6, 4) would become (0, 4)
        assert flank_step((5, 3), Direction.NE) == (2, 0)

    def test_anti_diagonal_reenters_at_line_end(self):
        assert flank_step((0, 3), Direction.NW) == (3, 0)

    def test_corner_single_square_line(self):
        assert flank_step((0, 0), Direction.NW) == (0, 0)
        assert flank_step((5, 5), Direction.SE) == (5, 5)

    def test_every_step_stays_on_board(self):
        for c in all_squares():
            for d in Direction:
                x, y = flank_step(c, d)
                assert 0 <= x < 6 and 0 <= y < 6


class TestTrace:
    """Multi-step route tests"""

    def test_trace_through_edge(self):
        assert trace_by_route((4, 0), Direction.E, 3) == [(5, 0), (0, 0), (1, 0)]

    def test_move_matches_trace_end(self):
        for c in all_squares():
            for d in Direction:
                assert move_by_route(c, d, 3) == trace_by_route(c, d, 3)[-1]

    def test_orthogonal_four_wraps_back(self):
        assert move_by_route((2, 0), Direction.E, 4) == (0, 0)


class TestAdjacency:
    """Neighbourhood tests"""

    def test_corner_neighbours(self):
        assert sorted(neighbors8((0, 0))) == [(0, 1), (1, 0), (1, 1)]

    def test_interior_neighbours(self):
        assert len(neighbors8((2, 2))) == 8

    def test_no_flank_adjacency(self):
        assert not is_adjacent((0, 0), (5, 0))
        assert is_adjacent((0, 0), (1, 1))
        assert not is_adjacent((2, 2), (2, 2))

    def test_center_distance(self):
        assert center_distance((2, 2)) == 1.0
        assert center_distance((0, 0)) == 5.0

    def test_all_squares_row_major(self):
        squares = all_squares()
        assert len(squares) == 36
        assert squares[0] == (0, 0)
        assert squares[6] == (0, 1)
