"""
Board geometry

Coordinates, compass directions and the flank step.

The board is a 6x6 grid. A coordinate is an ``(x, y)`` tuple with
``0 <= x, y < SIZE``; ``(0, 0)`` is ``A1`` and ``(5, 5)`` is ``F6``.
A step that would leave the board re-enters at the opposite endpoint of the
same row, column or diagonal (the "flank"), never at a modulo position.
"""
from enum import IntEnum
from typing import Dict, List, Tuple

SIZE = 6
FILES: Tuple[str, ...] = ("A", "B", "C", "D", "E", "F")

Coord = Tuple[int, int]


class Direction(IntEnum):
    """Compass directions, numbered clockwise from north"""
    N = 1
    NE = 2
    E = 3
    SE = 4
    S = 5
    SW = 6
    W = 7
    NW = 8

    @property
    def vector(self) -> Coord:
        return DIRECTION_VECTORS[self]

    @property
    def is_orthogonal(self) -> bool:
        return self.value % 2 == 1


DIRECTION_VECTORS: Dict[Direction, Coord] = {
    Direction.N: (0, 1),
    Direction.NE: (1, 1),
    Direction.E: (1, 0),
    Direction.SE: (1, -1),
    Direction.S: (0, -1),
    Direction.SW: (-1, -1),
    Direction.W: (-1, 0),
    Direction.NW: (-1, 1),
}

# literal 8-neighbourhood, no flanking
ADJACENT_OFFSETS: Tuple[Coord, ...] = tuple(DIRECTION_VECTORS.values())


def in_bounds(x: int, y: int) -> bool:
    return 0 <= x < SIZE and 0 <= y < SIZE


def to_sq(coord: Coord) -> str:
    """(0, 0) -> "A1" """
    x, y = coord
    if not in_bounds(x, y):
        raise ValueError(f"Coordinate off board: {coord}")
    return f"{FILES[x]}{y + 1}"


def from_sq(sq: str) -> Coord:
    """
    Parse square notation

    Args:
        sq: file letter + rank number, e.g. "C4" (case-insensitive)

    Returns:
        (x, y) coordinate
    """
    sq = sq.strip().upper()
    if len(sq) < 2 or sq[0] not in FILES or not sq[1:].isdigit():
        raise ValueError(f"Invalid square: {sq!r}")
    x = FILES.index(sq[0])
    y = int(sq[1:]) - 1
    if not in_bounds(x, y):
        raise ValueError(f"Invalid square: {sq!r}")
    return (x, y)


def line_endpoints(coord: Coord, direction: Direction) -> Tuple[Coord, Coord]:
    """
    The two in-bounds endpoints of the line through ``coord`` along ``direction``

    Returns:
        (low end, high end) ordered by increasing x, or by increasing y for
        vertical lines
    """
    x, y = coord
    dx, dy = DIRECTION_VECTORS[Direction(direction)]

    if dy == 0:
        return (0, y), (SIZE - 1, y)
    if dx == 0:
        return (x, 0), (x, SIZE - 1)

    if dx == dy:
        # NE/SW family: x - y is constant
        d = x - y
        min_x = max(0, d)
        max_x = min(SIZE - 1, SIZE - 1 + d)
        return (min_x, min_x - d), (max_x, max_x - d)

    # NW/SE family: x + y is constant
    s = x + y
    min_x = max(0, s - (SIZE - 1))
    max_x = min(SIZE - 1, s)
    return (min_x, s - min_x), (max_x, s - max_x)


def flank_step(coord: Coord, direction: Direction) -> Coord:
    """
    One unit step with flanking at the board edge

    Args:
        coord: origin square
        direction: step direction

    Returns:
        The naive neighbour if it is on the board, otherwise the far endpoint
        of the same line
    """
    direction = Direction(direction)
    x, y = coord
    dx, dy = DIRECTION_VECTORS[direction]
    nx, ny = x + dx, y + dy
    if in_bounds(nx, ny):
        return (nx, ny)

    low, high = line_endpoints(coord, direction)
    if dx == 0:
        # vertical: leaving the top re-enters at the bottom and vice versa
        return low if dy > 0 else high
    # every other line is ordered by x
    return low if dx > 0 else high


def trace_by_route(coord: Coord, direction: Direction, distance: int) -> List[Coord]:
    """Every square visited by ``distance`` flank steps, origin excluded"""
    out: List[Coord] = []
    cur = coord
    for _ in range(distance):
        cur = flank_step(cur, direction)
        out.append(cur)
    return out


def move_by_route(coord: Coord, direction: Direction, distance: int) -> Coord:
    cur = coord
    for _ in range(distance):
        cur = flank_step(cur, direction)
    return cur


def neighbors8(coord: Coord) -> List[Coord]:
    """In-bounds squares adjacent to ``coord`` (no flanking)"""
    x, y = coord
    return [
        (x + dx, y + dy)
        for dx, dy in ADJACENT_OFFSETS
        if in_bounds(x + dx, y + dy)
    ]


def is_adjacent(a: Coord, b: Coord) -> bool:
    return a != b and abs(a[0] - b[0]) <= 1 and abs(a[1] - b[1]) <= 1


def center_distance(coord: Coord) -> float:
    """Manhattan distance to the board centre"""
    c = (SIZE - 1) / 2
    return abs(coord[0] - c) + abs(coord[1] - c)


def all_squares() -> List[Coord]:
    """Row-major, A1 first"""
    return [(x, y) for y in range(SIZE) for x in range(SIZE)]
