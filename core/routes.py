"""
Route cards and the cycling deck

A route is a (direction, distance) movement card. Every route exists once;
the deck is a ring buffer that is drawn from the front and refilled at the back.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from .errors import InvariantViolation
from .geometry import Coord, Direction, move_by_route, trace_by_route

MAX_DISTANCE = 3
ORTHOGONAL_MAX_DISTANCE = 4


@dataclass(frozen=True, slots=True)
class Route:
    """
    Immutable movement card

    Attributes:
        direction: compass direction (1..8)
        distance: number of flank steps
    """
    direction: Direction
    distance: int

    @property
    def id(self) -> str:
        return f"{int(self.direction)}/{self.distance}"

    def trace(self, coord: Coord) -> List[Coord]:
        return trace_by_route(coord, self.direction, self.distance)

    def destination(self, coord: Coord) -> Coord:
        return move_by_route(coord, self.direction, self.distance)

    def __str__(self) -> str:
        return self.id


def _build_routes() -> Tuple[Route, ...]:
    out = []
    for d in Direction:
        for dist in range(1, MAX_DISTANCE + 1):
            out.append(Route(d, dist))
    for d in Direction:
        if d.is_orthogonal:
            out.append(Route(d, ORTHOGONAL_MAX_DISTANCE))
    return tuple(out)


ALL_ROUTES: Tuple[Route, ...] = _build_routes()
ROUTE_BY_ID: Dict[str, Route] = {r.id: r for r in ALL_ROUTES}


def parse_route_id(route_id: str) -> Route:
    """"3/2" -> Route(E, 2)"""
    try:
        return ROUTE_BY_ID[route_id]
    except KeyError:
        raise ValueError(f"Unknown route id: {route_id!r}") from None


def make_deck(rng: Optional[np.random.Generator] = None) -> List[Route]:
    """
    Build a full deck

    Args:
        rng: shuffles the deck when given; catalogue order otherwise

    Returns:
        list of routes, front of the deck first
    """
    deck = list(ALL_ROUTES)
    if rng is not None:
        order = rng.permutation(len(deck))
        deck = [deck[i] for i in order]
    return deck


def draw_top(deck: List[Route]) -> Route:
    if not deck:
        raise InvariantViolation("Deck empty unexpectedly; routes must be returned 1:1")
    return deck.pop(0)


def put_bottom(deck: List[Route], route: Route) -> None:
    deck.append(route)


def swap_with_queue(
    hand: List[Route],
    hand_index: int,
    queue: List[Route],
    queue_index: int,
    deck: List[Route],
) -> Tuple[Route, Route, Route]:
    """
    Exchange one hand route for one queue route

    The discarded hand route goes to the bottom of the deck and the emptied
    queue slot is refilled from the top.

    Returns:
        (discarded, taken, refill)
    """
    taken = queue[queue_index]
    discarded = hand[hand_index]
    hand[hand_index] = taken
    put_bottom(deck, discarded)
    refill = draw_top(deck)
    queue[queue_index] = refill
    return discarded, taken, refill
