"""Route card tests"""
import pytest
import numpy as np

from core.errors import InvariantViolation
from core.geometry import Direction
from core.routes import (
    ALL_ROUTES,
    ROUTE_BY_ID,
    Route,
    draw_top,
    make_deck,
    parse_route_id,
    put_bottom,
    swap_with_queue,
)


class TestRouteCatalogue:
    """Route catalogue tests"""

    def test_size(self):
        # 8 directions x 3 distances + 4 orthogonal distance-4 routes
        assert len(ALL_ROUTES) == 28
        assert len(ROUTE_BY_ID) == 28

    def test_distance_four_only_orthogonal(self):
        fours = [r for r in ALL_ROUTES if r.distance == 4]
        assert len(fours) == 4
        assert all(r.direction.is_orthogonal for r in fours)

    def test_id(self):
        assert Route(Direction.E, 2).id == "3/2"
        assert str(Route(Direction.NW, 1)) == "8/1"

    def test_parse(self):
        assert parse_route_id("3/2") == Route(Direction.E, 2)

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            parse_route_id("2/4")

    def test_immutable(self):
        r = Route(Direction.N, 1)
        with pytest.raises(AttributeError):
            r.distance = 2

    def test_destination(self):
        assert Route(Direction.E, 2).destination((0, 0)) == (2, 0)
        assert Route(Direction.E, 2).trace((0, 0)) == [(1, 0), (2, 0)]


class TestDeck:
    """Deck tests"""

    def test_unshuffled_is_catalogue_order(self):
        assert make_deck() == list(ALL_ROUTES)

    def test_shuffled_same_routes(self):
        deck = make_deck(np.random.default_rng(0))
        assert sorted(r.id for r in deck) == sorted(r.id for r in ALL_ROUTES)

    def test_shuffle_reproducible(self):
        a = make_deck(np.random.default_rng(5))
        b = make_deck(np.random.default_rng(5))
        assert a == b

    def test_draw_and_put(self):
        deck = make_deck()
        top = draw_top(deck)
        assert top == ALL_ROUTES[0]
        put_bottom(deck, top)
        assert deck[-1] == top
        assert len(deck) == 28

    def test_draw_empty(self):
        with pytest.raises(InvariantViolation):
            draw_top([])


class TestSwapWithQueue:
    """Hand/queue exchange tests"""

    def test_swap(self):
        a, b, c, d, e, f = (parse_route_id(x) for x in ("1/1", "1/2", "3/1", "3/2", "5/1", "7/1"))
        hand = [a, b]
        queue = [c, d, e]
        deck = [f]

        discarded, taken, refill = swap_with_queue(hand, 0, queue, 1, deck)

        assert (discarded, taken, refill) == (a, d, f)
        assert hand == [d, b]
        # refilled in place
        assert queue == [c, f, e]
        assert deck == [a]
