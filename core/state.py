"""
Game state

A single mutable aggregate holds everything about a game:
- tokens and their locations
- per-side counters (reserve, captives, void, invasions, stats)
- the route deck, hands and face-up queue
- phase, turn bookkeeping and the append-only log

Every field is present in every state. ``clone()`` is the deep copy used by
search; ``to_dict()``/``from_dict()`` round-trip the full state through plain
data so it can be persisted or synced.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional
import json

import numpy as np

from .config import RulesConfig
from .geometry import FILES, SIZE, Coord, Direction
from .routes import Route, draw_top, make_deck, parse_route_id

STATE_VERSION = 1


class Player(Enum):
    """Sides"""
    WHITE = "W"
    BLUE = "B"

    @property
    def other(self) -> 'Player':
        return Player.BLUE if self is Player.WHITE else Player.WHITE

    def __str__(self) -> str:
        return self.value


PLAYERS = (Player.WHITE, Player.BLUE)


class Phase(Enum):
    """Turn phases"""
    OPENING = "OPENING"      # alternate opening placements
    ACTION = "ACTION"        # use every hand route once
    REINFORCE = "REINFORCE"  # place reinforcements from reserve
    SWAP = "SWAP"            # exchange one hand route with the queue


class Location(Enum):
    """Where a token currently is"""
    BOARD = "BOARD"
    CAPTIVE = "CAPTIVE"  # held by the other side
    VOID = "VOID"
    RESERVE = "RESERVE"  # returned to reserve after having been placed


class GameOverReason(Enum):
    ELIMINATION = "elimination"
    SIEGEMATE = "siegemate"
    RESIGNATION = "resignation"


@dataclass
class Token:
    """
    A single token

    Attributes:
        id: player-prefixed serial, e.g. "W3"
        owner: side that placed it
        x, y: last board square (kept when the token leaves the board)
        location: current location
    """
    id: str
    owner: Player
    x: int
    y: int
    location: Location = Location.BOARD

    @property
    def pos(self) -> Coord:
        return (self.x, self.y)

    @property
    def on_board(self) -> bool:
        return self.location is Location.BOARD

    def copy(self) -> 'Token':
        return Token(self.id, self.owner, self.x, self.y, self.location)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner.value,
            "x": self.x,
            "y": self.y,
            "location": self.location.value,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Token':
        return cls(
            id=d["id"],
            owner=Player(d["owner"]),
            x=int(d["x"]),
            y=int(d["y"]),
            location=Location(d["location"]),
        )


@dataclass(frozen=True)
class LastMove:
    """Most recent route move (display and evasion bookkeeping)"""
    by: Player
    token_id: str
    origin: Coord
    to: Coord
    direction: Direction
    route_id: str
    captured_id: Optional[str]
    seq: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "by": self.by.value,
            "token_id": self.token_id,
            "origin": list(self.origin),
            "to": list(self.to),
            "direction": int(self.direction),
            "route_id": self.route_id,
            "captured_id": self.captured_id,
            "seq": self.seq,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'LastMove':
        return cls(
            by=Player(d["by"]),
            token_id=d["token_id"],
            origin=tuple(d["origin"]),
            to=tuple(d["to"]),
            direction=Direction(d["direction"]),
            route_id=d["route_id"],
            captured_id=d.get("captured_id"),
            seq=int(d["seq"]),
        )


@dataclass(frozen=True)
class GameOver:
    winner: Player
    reason: GameOverReason

    @property
    def loser(self) -> Player:
        return self.winner.other


@dataclass
class SideStats:
    """Cumulative per-side counts (observational only)"""
    captures: int = 0
    sieges: int = 0
    drafts: int = 0
    invades: int = 0
    evasions: int = 0
    ransoms: int = 0

    def copy(self) -> 'SideStats':
        return SideStats(
            self.captures, self.sieges, self.drafts,
            self.invades, self.evasions, self.ransoms,
        )

    @classmethod
    def from_dict(cls, d: Dict[str, int]) -> 'SideStats':
        valid_keys = cls.__dataclass_fields__.keys()
        return cls(**{k: int(v) for k, v in d.items() if k in valid_keys})


@dataclass
class PendingSwap:
    hand_route_id: Optional[str] = None
    queue_index: Optional[int] = None

    def clear(self) -> None:
        self.hand_route_id = None
        self.queue_index = None

    @property
    def complete(self) -> bool:
        return self.hand_route_id is not None and self.queue_index is not None


@dataclass
class PendingEvasion:
    token_id: Optional[str] = None
    to: Optional[Coord] = None

    def clear(self) -> None:
        self.token_id = None
        self.to = None


def _per_side(value: Any = 0) -> Dict[Player, Any]:
    return {p: value for p in PLAYERS}


@dataclass
class GameState:
    """
    Mutable game aggregate

    Engine mutators in ``core.engine`` are the only writers. Search works on
    ``clone()`` copies and never touches a live state.

    Attributes:
        config: rule constants for this game
        phase: current phase
        player: active side
        turn: global turn counter, +1 per finished turn
        round: +1 each time the second ACTION side finishes a turn
        tokens: every token ever placed, in creation order
        token_serial: last serial minted per side
        reserves: off-board placeable tokens per side
        captives: enemy tokens held per side
        void: own tokens removed from play per side
        opening_placed: opening placements made per side
        turn_invades: invasion captures in the current turn per side
        stats: cumulative per-side counts
        deck: front of the deck first
        hands: hand routes per side
        queue: face-up shared routes
        used_routes: route ids used (or burned) this turn, in order
        reinforcements_to_place: remaining REINFORCE placements
        pending_swap: hand/queue selection for SWAP or an early swap
        early_swap_armed: early swap selection in progress
        early_swap_used: early swap done this turn (skips SWAP)
        extra_reinforcement_bought: +1 reinforcement bought this turn
        ransom_used: ransom done this turn
        evasion_armed: the non-active side is mid-evasion
        evasion_used: evasion spent per side (once per game)
        pending_evasion: evasion token/destination selection
        warning: last rule-violation message, None after a success
        log: human-readable history, oldest first
        last_move: most recent route move
        game_over: set once the game has ended
        move_seq: count of successful route moves and evasions
    """
    config: RulesConfig = field(default_factory=RulesConfig)
    version: int = STATE_VERSION

    phase: Phase = Phase.OPENING
    player: Player = Player.BLUE
    turn: int = 1
    round: int = 0

    tokens: List[Token] = field(default_factory=list)
    token_serial: Dict[Player, int] = field(default_factory=_per_side)
    reserves: Dict[Player, int] = field(default_factory=_per_side)
    captives: Dict[Player, int] = field(default_factory=_per_side)
    void: Dict[Player, int] = field(default_factory=_per_side)
    opening_placed: Dict[Player, int] = field(default_factory=_per_side)
    turn_invades: Dict[Player, int] = field(default_factory=_per_side)
    stats: Dict[Player, SideStats] = field(
        default_factory=lambda: {p: SideStats() for p in PLAYERS}
    )

    deck: List[Route] = field(default_factory=list)
    hands: Dict[Player, List[Route]] = field(
        default_factory=lambda: {p: [] for p in PLAYERS}
    )
    queue: List[Route] = field(default_factory=list)
    used_routes: List[str] = field(default_factory=list)

    reinforcements_to_place: int = 0
    pending_swap: PendingSwap = field(default_factory=PendingSwap)
    early_swap_armed: bool = False
    early_swap_used: bool = False
    extra_reinforcement_bought: bool = False
    ransom_used: bool = False

    evasion_armed: bool = False
    evasion_used: Dict[Player, bool] = field(default_factory=lambda: _per_side(False))
    pending_evasion: PendingEvasion = field(default_factory=PendingEvasion)

    warning: Optional[str] = None
    log: List[str] = field(default_factory=list)
    last_move: Optional[LastMove] = None
    game_over: Optional[GameOver] = None
    move_seq: int = 0

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    @classmethod
    def initial(
        cls,
        config: Optional[RulesConfig] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ) -> 'GameState':
        """
        Create a fresh game in the OPENING phase

        Args:
            config: rule constants, defaults to the standard ruleset
            rng: shuffles the deck
            seed: used to build ``rng`` when none is given

        Returns:
            initial state
        """
        config = config or RulesConfig()
        if rng is None:
            rng = np.random.default_rng(seed)
        return cls(
            config=config,
            player=Player(config.opening_first),
            reserves=_per_side(config.starting_reserve),
            deck=make_deck(rng),
        )

    # ------------------------------------------------------------------
    # token queries
    # ------------------------------------------------------------------

    def token_at(self, coord: Coord) -> Optional[Token]:
        for t in self.tokens:
            if t.location is Location.BOARD and t.x == coord[0] and t.y == coord[1]:
                return t
        return None

    def token_by_id(self, token_id: Optional[str]) -> Optional[Token]:
        for t in self.tokens:
            if t.id == token_id:
                return t
        return None

    def board_tokens(self, owner: Optional[Player] = None) -> List[Token]:
        return [
            t for t in self.tokens
            if t.location is Location.BOARD and (owner is None or t.owner is owner)
        ]

    def tokens_in(self, owner: Player, location: Location) -> Iterator[Token]:
        return (t for t in self.tokens if t.owner is owner and t.location is location)

    def on_board_count(self, owner: Player) -> int:
        return sum(1 for t in self.tokens if t.location is Location.BOARD and t.owner is owner)

    def board_array(self) -> np.ndarray:
        """(SIZE, SIZE) int8 array indexed [x, y]: +1 White, -1 Blue, 0 empty"""
        board = np.zeros((SIZE, SIZE), dtype=np.int8)
        for t in self.tokens:
            if t.location is Location.BOARD:
                board[t.x, t.y] = 1 if t.owner is Player.WHITE else -1
        return board

    # ------------------------------------------------------------------
    # route queries
    # ------------------------------------------------------------------

    def hand_route(self, player: Player, route_id: str) -> Optional[Route]:
        for r in self.hands[player]:
            if r.id == route_id:
                return r
        return None

    def unused_routes(self, player: Optional[Player] = None) -> List[Route]:
        """Hand routes not yet used this turn"""
        player = player or self.player
        used = self.used_routes
        return [r for r in self.hands[player] if r.id not in used]

    def route_count(self) -> int:
        return len(self.deck) + len(self.queue) + sum(len(h) for h in self.hands.values())

    def draw(self) -> Route:
        return draw_top(self.deck)

    # ------------------------------------------------------------------
    # misc
    # ------------------------------------------------------------------

    @property
    def is_over(self) -> bool:
        return self.game_over is not None

    @property
    def winner(self) -> Optional[Player]:
        return self.game_over.winner if self.game_over else None

    def add_log(self, line: str) -> None:
        self.log.append(line)

    def get_legal_actions(self) -> List:
        """Actions the acting side may take now (see ``core.actions``)"""
        from .actions import ActionGenerator
        return ActionGenerator(self).generate()

    def render(self) -> str:
        """ASCII board, rank 6 at the top"""
        lines = []
        for y in range(SIZE - 1, -1, -1):
            row = []
            for x in range(SIZE):
                t = self.token_at((x, y))
                row.append(t.owner.value if t else ".")
            lines.append(f"{y + 1} " + " ".join(row))
        lines.append("  " + " ".join(FILES))
        return "\n".join(lines)

    def clone(self) -> 'GameState':
        """Deep copy; routes and the config are shared since they are never mutated"""
        return GameState(
            config=self.config,
            version=self.version,
            phase=self.phase,
            player=self.player,
            turn=self.turn,
            round=self.round,
            tokens=[t.copy() for t in self.tokens],
            token_serial=dict(self.token_serial),
            reserves=dict(self.reserves),
            captives=dict(self.captives),
            void=dict(self.void),
            opening_placed=dict(self.opening_placed),
            turn_invades=dict(self.turn_invades),
            stats={p: s.copy() for p, s in self.stats.items()},
            deck=list(self.deck),
            hands={p: list(h) for p, h in self.hands.items()},
            queue=list(self.queue),
            used_routes=list(self.used_routes),
            reinforcements_to_place=self.reinforcements_to_place,
            pending_swap=PendingSwap(self.pending_swap.hand_route_id, self.pending_swap.queue_index),
            early_swap_armed=self.early_swap_armed,
            early_swap_used=self.early_swap_used,
            extra_reinforcement_bought=self.extra_reinforcement_bought,
            ransom_used=self.ransom_used,
            evasion_armed=self.evasion_armed,
            evasion_used=dict(self.evasion_used),
            pending_evasion=PendingEvasion(self.pending_evasion.token_id, self.pending_evasion.to),
            warning=self.warning,
            log=list(self.log),
            last_move=self.last_move,
            game_over=self.game_over,
            move_seq=self.move_seq,
        )

    # ------------------------------------------------------------------
    # serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-compatible representation"""
        def side(d: Dict[Player, Any]) -> Dict[str, Any]:
            return {p.value: v for p, v in d.items()}

        return {
            "version": self.version,
            "config": self.config.to_dict(),
            "phase": self.phase.value,
            "player": self.player.value,
            "turn": self.turn,
            "round": self.round,
            "tokens": [t.to_dict() for t in self.tokens],
            "token_serial": side(self.token_serial),
            "reserves": side(self.reserves),
            "captives": side(self.captives),
            "void": side(self.void),
            "opening_placed": side(self.opening_placed),
            "turn_invades": side(self.turn_invades),
            "stats": {p.value: vars(s).copy() for p, s in self.stats.items()},
            "deck": [r.id for r in self.deck],
            "hands": {p.value: [r.id for r in h] for p, h in self.hands.items()},
            "queue": [r.id for r in self.queue],
            "used_routes": list(self.used_routes),
            "reinforcements_to_place": self.reinforcements_to_place,
            "pending_swap": {
                "hand_route_id": self.pending_swap.hand_route_id,
                "queue_index": self.pending_swap.queue_index,
            },
            "early_swap_armed": self.early_swap_armed,
            "early_swap_used": self.early_swap_used,
            "extra_reinforcement_bought": self.extra_reinforcement_bought,
            "ransom_used": self.ransom_used,
            "evasion_armed": self.evasion_armed,
            "evasion_used": side(self.evasion_used),
            "pending_evasion": {
                "token_id": self.pending_evasion.token_id,
                "to": list(self.pending_evasion.to) if self.pending_evasion.to else None,
            },
            "warning": self.warning,
            "log": list(self.log),
            "last_move": self.last_move.to_dict() if self.last_move else None,
            "game_over": {
                "winner": self.game_over.winner.value,
                "reason": self.game_over.reason.value,
            } if self.game_over else None,
            "move_seq": self.move_seq,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'GameState':
        """
        Rebuild a state from ``to_dict()`` output

        Raises:
            ValueError: unsupported schema version
        """
        version = d.get("version")
        if version != STATE_VERSION:
            raise ValueError(f"Unsupported state version: {version!r}")

        def side(raw: Dict[str, Any], cast=int) -> Dict[Player, Any]:
            return {p: cast(raw[p.value]) for p in PLAYERS}

        pending_swap = d["pending_swap"]
        pending_evasion = d["pending_evasion"]
        game_over = d["game_over"]
        return cls(
            config=RulesConfig.from_dict(d["config"]),
            version=version,
            phase=Phase(d["phase"]),
            player=Player(d["player"]),
            turn=int(d["turn"]),
            round=int(d["round"]),
            tokens=[Token.from_dict(t) for t in d["tokens"]],
            token_serial=side(d["token_serial"]),
            reserves=side(d["reserves"]),
            captives=side(d["captives"]),
            void=side(d["void"]),
            opening_placed=side(d["opening_placed"]),
            turn_invades=side(d["turn_invades"]),
            stats={p: SideStats.from_dict(d["stats"][p.value]) for p in PLAYERS},
            deck=[parse_route_id(r) for r in d["deck"]],
            hands={p: [parse_route_id(r) for r in d["hands"][p.value]] for p in PLAYERS},
            queue=[parse_route_id(r) for r in d["queue"]],
            used_routes=list(d["used_routes"]),
            reinforcements_to_place=int(d["reinforcements_to_place"]),
            pending_swap=PendingSwap(pending_swap["hand_route_id"], pending_swap["queue_index"]),
            early_swap_armed=bool(d["early_swap_armed"]),
            early_swap_used=bool(d["early_swap_used"]),
            extra_reinforcement_bought=bool(d["extra_reinforcement_bought"]),
            ransom_used=bool(d["ransom_used"]),
            evasion_armed=bool(d["evasion_armed"]),
            evasion_used=side(d["evasion_used"], bool),
            pending_evasion=PendingEvasion(
                pending_evasion["token_id"],
                tuple(pending_evasion["to"]) if pending_evasion["to"] else None,
            ),
            warning=d["warning"],
            log=list(d["log"]),
            last_move=LastMove.from_dict(d["last_move"]) if d["last_move"] else None,
            game_over=GameOver(
                Player(game_over["winner"]), GameOverReason(game_over["reason"])
            ) if game_over else None,
            move_seq=int(d["move_seq"]),
        )

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.to_dict(), **kwargs)

    @classmethod
    def from_json(cls, text: str) -> 'GameState':
        return cls.from_dict(json.loads(text))

    def summary(self) -> str:
        """One-line status for logs and scripts"""
        w, b = Player.WHITE, Player.BLUE
        status = (
            f"turn={self.turn} round={self.round} phase={self.phase.value} player={self.player.value} "
            f"W[board={self.on_board_count(w)} res={self.reserves[w]} cap={self.captives[w]} void={self.void[w]}] "
            f"B[board={self.on_board_count(b)} res={self.reserves[b]} cap={self.captives[b]} void={self.void[b]}]"
        )
        if self.game_over:
            status += f" winner={self.game_over.winner.value} ({self.game_over.reason.value})"
        return status
