"""
Observation and action encoding

Turns a GameState into fixed-size numpy features and maps composite actions
to a fixed discrete index space.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from core.actions import Action, ActionType
from core.geometry import SIZE, all_squares
from core.routes import ALL_ROUTES, Route
from core.siege import locked_ids, siege_map
from core.state import PLAYERS, GameState, Phase, Player

NUM_PLANES = 6
NUM_ROUTES = len(ALL_ROUTES)
ROUTE_INDEX: Dict[str, int] = {r.id: i for i, r in enumerate(ALL_ROUTES)}
PHASES: Tuple[Phase, ...] = tuple(Phase)

MAX_HAND = 5
MAX_QUEUE = 3
NUM_SQUARES = SIZE * SIZE

# per side: on board, reserves, captives, void, turn invades
COUNTER_DIM = 5
# early swap used, extra bought, ransom used, own evasion used, enemy evasion used, reinforcements
FLAG_DIM = 6
FEATURE_DIM = 2 * COUNTER_DIM + 4 * NUM_ROUTES + len(PHASES) + FLAG_DIM


@dataclass
class Observation:
    """
    Structured observation

    Attributes:
        board: (6, 6, 6) planes indexed [plane, x, y]:
            0 own tokens, 1 enemy tokens, 2 own locked, 3 enemy locked,
            4 enemy pressure on own tokens / 8, 5 own pressure on enemy tokens / 8
        features: (FEATURE_DIM,) counters, route one-hots, phase, flags
        legal_actions: composite actions available now
        player: perspective side
        phase: phase name
    """
    board: np.ndarray
    features: np.ndarray
    legal_actions: List[Action]
    player: str
    phase: str

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {
            "board": self.board,
            "features": self.features,
        }

    def to_flat_array(self) -> np.ndarray:
        return np.concatenate([self.board.flatten(), self.features])


class ObservationBuilder:
    """Builds observations from one side's perspective"""

    def build(self, state: GameState, perspective: Optional[Player] = None) -> Observation:
        """
        Args:
            state: game state
            perspective: side to encode for (defaults to the active side)

        Returns:
            Observation
        """
        me = perspective or state.player
        return Observation(
            board=self._encode_board(state, me),
            features=self._encode_features(state, me),
            legal_actions=state.get_legal_actions(),
            player=me.value,
            phase=state.phase.value,
        )

    def _encode_board(self, state: GameState, me: Player) -> np.ndarray:
        them = me.other
        planes = np.zeros((NUM_PLANES, SIZE, SIZE), dtype=np.float32)
        locked = {p: locked_ids(state, p) for p in PLAYERS}
        on_me = siege_map(state, them)
        on_them = siege_map(state, me)

        for t in state.board_tokens():
            own = t.owner is me
            planes[0 if own else 1, t.x, t.y] = 1.0
            if t.id in locked[t.owner]:
                planes[2 if own else 3, t.x, t.y] = 1.0
            if own:
                planes[4, t.x, t.y] = on_me[t.x, t.y] / 8.0
            else:
                planes[5, t.x, t.y] = on_them[t.x, t.y] / 8.0
        return planes

    def _encode_routes(self, routes: List[Route]) -> np.ndarray:
        out = np.zeros(NUM_ROUTES, dtype=np.float32)
        for r in routes:
            out[ROUTE_INDEX[r.id]] = 1.0
        return out

    def _encode_features(self, state: GameState, me: Player) -> np.ndarray:
        total = float(state.config.starting_reserve)
        counters = []
        for p in (me, me.other):
            counters.extend([
                state.on_board_count(p) / total,
                state.reserves[p] / total,
                state.captives[p] / total,
                state.void[p] / total,
                state.turn_invades[p] / total,
            ])

        used = [r for r in state.hands[state.player] if r.id in state.used_routes]
        phase = np.zeros(len(PHASES), dtype=np.float32)
        phase[PHASES.index(state.phase)] = 1.0

        flags = [
            float(state.early_swap_used),
            float(state.extra_reinforcement_bought),
            float(state.ransom_used),
            float(state.evasion_used[me]),
            float(state.evasion_used[me.other]),
            state.reinforcements_to_place / 2.0,
        ]

        return np.concatenate([
            np.array(counters, dtype=np.float32),
            self._encode_routes(state.hands[me]),
            self._encode_routes(state.hands[me.other]),
            self._encode_routes(state.queue),
            self._encode_routes(used),
            phase,
            np.array(flags, dtype=np.float32),
        ])


class ActionEncoder:
    """
    Fixed discrete action space

    Layout:
        placements: one per square (opening or reinforcement, by phase)
        moves: square of the moving token x hand slot
        forced yield, extra reinforcement, ransom
        early swaps: hand slot x queue slot
        end-of-turn swaps: hand slot x queue slot

    Indices are relative to the state they are decoded against: a move index
    names "the token on this square uses the route in this hand slot".
    """

    def __init__(self):
        self._key_to_idx: Dict[Tuple, int] = {}
        self._idx_to_key: Dict[int, Tuple] = {}
        self._build_action_space()

    def _add(self, key: Tuple) -> None:
        idx = len(self._key_to_idx)
        self._key_to_idx[key] = idx
        self._idx_to_key[idx] = key

    def _build_action_space(self):
        for sq in range(NUM_SQUARES):
            self._add(("place", sq))
        for sq in range(NUM_SQUARES):
            for slot in range(MAX_HAND):
                self._add(("move", sq, slot))
        self._add(("yield",))
        self._add(("buy",))
        self._add(("ransom",))
        for slot in range(MAX_HAND):
            for q in range(MAX_QUEUE):
                self._add(("early_swap", slot, q))
        for slot in range(MAX_HAND):
            for q in range(MAX_QUEUE):
                self._add(("swap", slot, q))

    @property
    def num_actions(self) -> int:
        return len(self._key_to_idx)

    @staticmethod
    def _square_index(coord: Tuple[int, int]) -> int:
        return coord[1] * SIZE + coord[0]

    @staticmethod
    def _hand_slot(state: GameState, route_id: str) -> int:
        for i, r in enumerate(state.hands[state.player]):
            if r.id == route_id:
                return i
        return -1

    def _key(self, action: Action, state: GameState) -> Optional[Tuple]:
        at = action.action_type
        if action.is_placement:
            return ("place", self._square_index(action.coord))
        if at is ActionType.MOVE:
            token = state.token_by_id(action.token_id)
            slot = self._hand_slot(state, action.route_id)
            if token is None or not token.on_board or slot < 0:
                return None
            return ("move", self._square_index(token.pos), slot)
        if at is ActionType.FORCED_YIELD:
            return ("yield",)
        if at is ActionType.BUY_EXTRA_REINFORCEMENT:
            return ("buy",)
        if at is ActionType.RANSOM:
            return ("ransom",)
        if at in (ActionType.EARLY_SWAP, ActionType.SWAP):
            slot = self._hand_slot(state, action.route_id)
            if slot < 0:
                return None
            kind = "early_swap" if at is ActionType.EARLY_SWAP else "swap"
            return (kind, slot, action.queue_index)
        return None

    def encode(self, action: Action, state: GameState) -> int:
        """
        Index of ``action`` in ``state``

        Returns:
            action index, -1 if the action has no slot in the space
        """
        key = self._key(action, state)
        if key is None:
            return -1
        return self._key_to_idx.get(key, -1)

    def decode(self, idx: int, state: GameState) -> Optional[Action]:
        """
        Action named by ``idx`` in ``state``

        Returns:
            Action, or None when the index is out of range or names an empty
            square / hand slot
        """
        key = self._idx_to_key.get(int(idx))
        if key is None:
            return None
        kind = key[0]
        hand = state.hands[state.player]

        if kind == "place":
            coord = all_squares()[key[1]]
            if state.phase is Phase.OPENING:
                return Action.place_opening(coord)
            return Action.reinforce(coord)
        if kind == "move":
            token = state.token_at(all_squares()[key[1]])
            if token is None or key[2] >= len(hand):
                return None
            return Action.move(token.id, hand[key[2]].id)
        if kind == "yield":
            return Action.forced_yield()
        if kind == "buy":
            return Action.buy_extra()
        if kind == "ransom":
            return Action.ransom()

        slot, q = key[1], key[2]
        if slot >= len(hand):
            return None
        if kind == "early_swap":
            return Action.early_swap(hand[slot].id, q)
        return Action.swap(hand[slot].id, q)

    def get_legal_action_indices(self, legal_actions: List[Action], state: GameState) -> List[int]:
        indices = []
        for action in legal_actions:
            idx = self.encode(action, state)
            if idx >= 0:
                indices.append(idx)
        return indices

    def build_legal_mask(self, legal_actions: List[Action], state: GameState) -> np.ndarray:
        """(num_actions,) float mask, 1 for legal indices"""
        mask = np.zeros(self.num_actions, dtype=np.float32)
        for idx in self.get_legal_action_indices(legal_actions, state):
            mask[idx] = 1
        return mask


_action_encoder: Optional[ActionEncoder] = None


def get_action_encoder() -> ActionEncoder:
    """Shared encoder instance"""
    global _action_encoder
    if _action_encoder is None:
        _action_encoder = ActionEncoder()
    return _action_encoder
