"""Shared fixtures"""
from typing import Dict, Iterable, Optional

import pytest

from core.config import RulesConfig
from core.geometry import from_sq
from core.routes import ALL_ROUTES, parse_route_id
from core.state import PLAYERS, GameState, Location, Phase, Player, Token


def build_state(
    white: Iterable[str] = (),
    blue: Iterable[str] = (),
    white_hand: Iterable[str] = (),
    blue_hand: Iterable[str] = (),
    queue: Optional[Iterable[str]] = None,
    player: str = "W",
    phase: Phase = Phase.ACTION,
    reserves: Optional[Dict[str, int]] = None,
    captives: Optional[Dict[str, int]] = None,
    void: Optional[Dict[str, int]] = None,
    config: Optional[RulesConfig] = None,
) -> GameState:
    """
    Hand-made position that satisfies token and route conservation

    Board tokens are minted in the order given (W1, W2, ... / B1, B2, ...),
    captive records after them. Whatever is not on the board, held by the
    enemy or given as ``reserves`` lands in the Void (and vice versa when
    only ``void`` is given). Routes not in a hand or the queue form the deck
    in catalogue order; the queue defaults to the first free routes.
    """
    cfg = config or RulesConfig()
    s = GameState(config=cfg, phase=phase, player=Player(player))
    reserves = reserves or {}
    captives = captives or {}
    void = void or {}

    for owner, squares in ((Player.WHITE, white), (Player.BLUE, blue)):
        for sq in squares:
            x, y = from_sq(sq)
            s.token_serial[owner] += 1
            s.tokens.append(Token(f"{owner.value}{s.token_serial[owner]}", owner, x, y))

    for holder_value, n in captives.items():
        holder = Player(holder_value)
        victim = holder.other
        for _ in range(n):
            s.token_serial[victim] += 1
            s.tokens.append(Token(f"{victim.value}{s.token_serial[victim]}", victim, 0, 0, Location.CAPTIVE))
        s.captives[holder] = n

    for p in PLAYERS:
        base = cfg.starting_reserve - s.on_board_count(p) - s.captives[p.other]
        if p.value in reserves:
            s.reserves[p] = reserves[p.value]
            s.void[p] = base - reserves[p.value]
        else:
            s.void[p] = void.get(p.value, 0)
            s.reserves[p] = base - s.void[p]
        if phase is not Phase.OPENING:
            s.opening_placed[p] = cfg.opening_tokens

    s.hands[Player.WHITE] = [parse_route_id(r) for r in white_hand]
    s.hands[Player.BLUE] = [parse_route_id(r) for r in blue_hand]
    taken = {r.id for h in s.hands.values() for r in h}
    free = [r for r in ALL_ROUTES if r.id not in taken]
    if queue is None:
        s.queue = free[:cfg.queue_size] if phase is not Phase.OPENING else []
    else:
        s.queue = [parse_route_id(r) for r in queue]
    in_queue = {r.id for r in s.queue}
    s.deck = [r for r in free if r.id not in in_queue]
    return s


@pytest.fixture
def make_state():
    """Factory for hand-made positions (see ``build_state``)"""
    return build_state
