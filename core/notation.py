"""
Game notation recorder

Observes consecutive state snapshots and writes pipe-delimited transfer lines:

    META|GAME|id=g1|ruleset=tournament|version=1
    s=3|p=W|from=A1|route=3/2|to=C1
    s=3|p=W|from=C1|to=CAPTIVE
    s=3|p=W|from=RESERVE|to=VOID|yield=2
    s=3|p=W|route=1/3|from=QUEUE|to=HAND
    s=9|WIN|type=SIEGEMATE|winner=W|loser=B

``s`` is the engine's move sequence number, so a record is reproducible.
The recorder only reads states; it never calls the engine.
"""
from collections import Counter
from typing import Dict, List, Optional

from .geometry import to_sq
from .state import PLAYERS, GameOverReason, GameState, Location, Player, Token

WIN_TYPES = {
    GameOverReason.SIEGEMATE: "SIEGEMATE",
    GameOverReason.ELIMINATION: "ELIMINATION",
    GameOverReason.RESIGNATION: "RESIGN",
}


def _loc(t: Token) -> str:
    if t.location is Location.BOARD:
        return to_sq(t.pos)
    return t.location.value


class NotationRecorder:
    """
    Diff-based move recorder

    Call ``observe(state)`` after every engine call (or ``record(prev, next)``
    with explicit snapshots) and read ``lines`` at any time.
    """

    def __init__(
        self,
        game_id: str = "local",
        white: str = "W",
        blue: str = "B",
        ruleset: str = "tournament",
        tokens: Optional[Dict[Player, int]] = None,
        version: int = 1,
    ):
        tokens = tokens or {p: 18 for p in PLAYERS}
        self.lines: List[str] = [
            f"META|GAME|id={game_id}|ruleset={ruleset}|version={version}",
            f"META|PLAYERS|W={white}|B={blue}",
            f"META|TOKENS|W={tokens[Player.WHITE]}|B={tokens[Player.BLUE]}",
        ]
        self._last: Optional[GameState] = None

    def _emit(self, seq: int, body: str) -> None:
        self.lines.append(f"s={seq}|{body}")

    def observe(self, state: GameState) -> None:
        """Record the change since the previously observed state"""
        if self._last is not None:
            self.record(self._last, state)
        self._last = state.clone()

    def record(self, prev: GameState, nxt: GameState) -> None:
        seq = nxt.move_seq
        self._record_turn(prev, nxt, seq)
        self._record_tokens(prev, nxt, seq)
        self._record_pools(prev, nxt, seq)
        self._record_routes(prev, nxt, seq)
        if nxt.game_over is not None and prev.game_over is None:
            go = nxt.game_over
            self._emit(seq, f"WIN|type={WIN_TYPES[go.reason]}|winner={go.winner}|loser={go.loser}")

    # ------------------------------------------------------------------

    def _record_turn(self, prev: GameState, nxt: GameState, seq: int) -> None:
        if nxt.round > prev.round:
            self._emit(seq, f"ROUND|n={nxt.round}")
        if nxt.turn > prev.turn:
            self._emit(seq, f"TURN|n={nxt.turn}|p={nxt.player}")

    def _record_tokens(self, prev: GameState, nxt: GameState, seq: int) -> None:
        before = {t.id: t for t in prev.tokens}
        lm = nxt.last_move
        moved = lm is not None and (prev.last_move is None or prev.last_move.seq != lm.seq)

        if moved:
            self._emit(seq, f"p={lm.by}|from={to_sq(lm.origin)}|route={lm.route_id}|to={to_sq(lm.to)}")
            if lm.captured_id:
                self._emit(seq, f"p={lm.by}|from={to_sq(lm.to)}|to=CAPTIVE")

        for t in nxt.tokens:
            old = before.get(t.id)
            src = _loc(old) if old is not None else "RESERVE"
            dst = _loc(t)
            if src == dst:
                continue
            if moved and t.id == lm.token_id:
                if t.on_board:
                    continue
                # the mover walked into a ring and was taken on its landing square
                src = to_sq(lm.to)
            if moved and t.id == lm.captured_id and dst == "CAPTIVE":
                continue
            if dst == "CAPTIVE" and old is not None:
                # full siege; the captor is the other side
                self._emit(seq, f"p={t.owner.other}|from={src}|to=CAPTIVE|siege=1")
            elif src in ("RESERVE", "CAPTIVE") and t.on_board:
                if nxt.stats[t.owner].evasions > prev.stats[t.owner].evasions:
                    origin = to_sq(prev.last_move.to) if src == "CAPTIVE" and prev.last_move else src
                    self._emit(seq, f"p={t.owner}|from={origin}|to={dst}|evasion=1")
                else:
                    self._emit(seq, f"p={t.owner}|from=RESERVE|to={dst}")
            elif old is not None and old.on_board and t.on_board:
                self._emit(seq, f"p={t.owner}|from={src}|to={dst}|evasion=1")

    def _record_pools(self, prev: GameState, nxt: GameState, seq: int) -> None:
        for p in PLAYERS:
            # enemy captives spent into p's Void
            spent = sum(
                1 for t in nxt.tokens
                if t.owner is p and t.location is Location.VOID
                and (prev.token_by_id(t.id) is not None
                     and prev.token_by_id(t.id).location is Location.CAPTIVE)
            )
            if spent and nxt.stats[p.other].ransoms > prev.stats[p.other].ransoms:
                self._emit(seq, f"p={p.other}|from=CAPTIVE|to=VOID|ransom={spent}")
            elif spent:
                self._emit(seq, f"p={p.other}|from=CAPTIVE|to=VOID|yield={spent}")

            from_reserve = (nxt.void[p] - prev.void[p]) - spent
            if from_reserve > 0:
                self._emit(seq, f"p={p}|from=RESERVE|to=VOID|yield={from_reserve}")
            elif from_reserve < 0:
                tag = "ransomed" if nxt.stats[p].ransoms > prev.stats[p].ransoms else "draft"
                self._emit(seq, f"p={p}|from=VOID|to=RESERVE|{tag}={-from_reserve}")

    def _record_routes(self, prev: GameState, nxt: GameState, seq: int) -> None:
        prev_q = Counter(r.id for r in prev.queue)
        next_q = Counter(r.id for r in nxt.queue)
        prev_d = Counter(r.id for r in prev.deck)
        next_d = Counter(r.id for r in nxt.deck)
        q_removed = prev_q - next_q
        d_removed = prev_d - next_d
        d_added = next_d - prev_d

        for p in PLAYERS:
            prev_h = Counter(r.id for r in prev.hands[p])
            next_h = Counter(r.id for r in nxt.hands[p])
            for rid in sorted(next_h - prev_h):
                src = "QUEUE" if rid in q_removed else "DECK" if rid in d_removed else None
                if src:
                    self._emit(seq, f"p={p}|route={rid}|from={src}|to=HAND")
            for rid in sorted(prev_h - next_h):
                if rid in d_added:
                    self._emit(seq, f"p={p}|route={rid}|from=HAND|to=DECK")

        for rid in sorted(next_q - prev_q):
            if rid in d_removed:
                self._emit(seq, f"route={rid}|from=DECK|to=QUEUE")

    def __str__(self) -> str:
        return "\n".join(self.lines)
