"""
Action types and legal action generation

Actions are immutable commands for ``core.engine.apply_action``. Multi-step
protocols (early swap, end-of-turn swap, evasion) are single composite actions
carrying every choice, so an action list is a complete menu of what the acting
side can do right now.
"""
from enum import IntEnum
from dataclasses import dataclass
from typing import List, Optional

from .geometry import Coord, to_sq
from .rules import RuleEngine
from .state import GameState, Phase, Player


class ActionType(IntEnum):
    """Action kinds"""
    PLACE_OPENING = 0            # opening placement
    MOVE = 1                     # token uses a hand route
    FORCED_YIELD = 2             # burn unusable routes
    BUY_EXTRA_REINFORCEMENT = 3  # reserve -> void for +1 reinforcement
    EARLY_SWAP = 4               # captives -> enemy void, swap during ACTION
    RANSOM = 5                   # captives -> enemy void, void -> reserve
    PLACE_REINFORCEMENT = 6      # REINFORCE placement
    SWAP = 7                     # end-of-turn swap
    EVASION = 8                  # waiting side steps one token
    RESIGN = 9


@dataclass(frozen=True, slots=True)
class Action:
    """
    Immutable command

    Attributes:
        action_type: kind of action
        player: side issuing it (None = whoever is expected to act)
        token_id: MOVE / EVASION token
        route_id: MOVE route, or the hand route given up by a swap
        coord: placement square or evasion destination
        queue_index: queue slot taken by a swap
    """
    action_type: ActionType
    player: Optional[Player] = None
    token_id: Optional[str] = None
    route_id: Optional[str] = None
    coord: Optional[Coord] = None
    queue_index: Optional[int] = None

    @classmethod
    def place_opening(cls, coord: Coord, player: Optional[Player] = None) -> 'Action':
        return cls(ActionType.PLACE_OPENING, player, coord=coord)

    @classmethod
    def move(cls, token_id: str, route_id: str, player: Optional[Player] = None) -> 'Action':
        return cls(ActionType.MOVE, player, token_id=token_id, route_id=route_id)

    @classmethod
    def forced_yield(cls, player: Optional[Player] = None) -> 'Action':
        return cls(ActionType.FORCED_YIELD, player)

    @classmethod
    def buy_extra(cls, player: Optional[Player] = None) -> 'Action':
        return cls(ActionType.BUY_EXTRA_REINFORCEMENT, player)

    @classmethod
    def early_swap(cls, route_id: str, queue_index: int, player: Optional[Player] = None) -> 'Action':
        return cls(ActionType.EARLY_SWAP, player, route_id=route_id, queue_index=queue_index)

    @classmethod
    def ransom(cls, player: Optional[Player] = None) -> 'Action':
        return cls(ActionType.RANSOM, player)

    @classmethod
    def reinforce(cls, coord: Coord, player: Optional[Player] = None) -> 'Action':
        return cls(ActionType.PLACE_REINFORCEMENT, player, coord=coord)

    @classmethod
    def swap(cls, route_id: str, queue_index: int, player: Optional[Player] = None) -> 'Action':
        return cls(ActionType.SWAP, player, route_id=route_id, queue_index=queue_index)

    @classmethod
    def evasion(cls, token_id: str, to: Coord, player: Optional[Player] = None) -> 'Action':
        return cls(ActionType.EVASION, player, token_id=token_id, coord=to)

    @classmethod
    def resign(cls, player: Optional[Player] = None) -> 'Action':
        return cls(ActionType.RESIGN, player)

    @property
    def is_placement(self) -> bool:
        return self.action_type in (ActionType.PLACE_OPENING, ActionType.PLACE_REINFORCEMENT)

    def __str__(self) -> str:
        name = self.action_type.name
        if self.action_type is ActionType.MOVE:
            return f"{name} {self.token_id} {self.route_id}"
        if self.is_placement:
            return f"{name} {to_sq(self.coord)}"
        if self.action_type in (ActionType.SWAP, ActionType.EARLY_SWAP):
            return f"{name} {self.route_id}<->Q{self.queue_index}"
        if self.action_type is ActionType.EVASION:
            return f"{name} {self.token_id} {to_sq(self.coord)}"
        return name


class ActionGenerator:
    """
    Legal action generator

    Lists the composite actions available to the acting side of a state.
    """

    def __init__(self, state: GameState):
        self.state = state

    def gen_placements(self, action_type: ActionType) -> List[Action]:
        return [
            Action(action_type, coord=c)
            for c in RuleEngine.empty_squares(self.state)
        ]

    def gen_moves(self) -> List[Action]:
        return [Action.move(tid, rid) for tid, rid in RuleEngine.legal_moves(self.state)]

    def gen_economy(self) -> List[Action]:
        """Forced yield, extra reinforcement, ransom and early swaps"""
        s = self.state
        out: List[Action] = []
        if RuleEngine.can_forced_yield(s):
            out.append(Action.forced_yield())
        if RuleEngine.can_buy_extra_reinforcement(s):
            out.append(Action.buy_extra())
        if RuleEngine.can_ransom(s):
            out.append(Action.ransom())
        if RuleEngine.can_early_swap(s):
            for r in s.unused_routes():
                for q in range(len(s.queue)):
                    out.append(Action.early_swap(r.id, q))
        return out

    def gen_swaps(self) -> List[Action]:
        s = self.state
        return [
            Action.swap(r.id, q)
            for r in s.hands[s.player]
            for q in range(len(s.queue))
        ]

    def gen_evasions(self, player: Player) -> List[Action]:
        """Evasions open to ``player`` (the side waiting on the opponent)"""
        s = self.state
        if not RuleEngine.can_use_evasion(s, player):
            return []
        out = []
        for t in RuleEngine.evasion_tokens(s, player):
            for c in RuleEngine.evasion_destinations(s, t):
                out.append(Action.evasion(t.id, c, player))
        return out

    def generate(self) -> List[Action]:
        """All actions for the acting side, empty once the game is over"""
        s = self.state
        if s.game_over is not None or s.evasion_armed:
            return []
        if s.phase is Phase.OPENING:
            return self.gen_placements(ActionType.PLACE_OPENING)
        if s.phase is Phase.ACTION:
            return self.gen_moves() + self.gen_economy()
        if s.phase is Phase.REINFORCE:
            return self.gen_placements(ActionType.PLACE_REINFORCEMENT)
        return self.gen_swaps()
