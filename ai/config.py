"""
Search configuration

Evaluation weights and search tunables for the AI levels.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Tuple

import numpy as np


@dataclass
class EvalWeights:
    """
    Heuristic evaluation weights

    Attributes:
        on_board: per token on the board
        reserve: per Reserve token
        captive: per enemy token held
        void: per own Void token
        draft_bonus: pending Draft (3+ invasions this turn with Void > 0)
        mobility: per usable (token, route) pair during ACTION
        win_score: magnitude of a finished game
        pressure_bonus: my pressure on an enemy token, by band
            (3 sides, 4-6 sides, 7 sides, 8 sides)
        pressure_penalty: enemy pressure on my token, same bands
    """
    on_board: float = 10.0
    reserve: float = 2.0
    captive: float = 1.5
    void: float = 0.5
    draft_bonus: float = 25.0
    mobility: float = 0.25
    win_score: float = 1_000_000.0
    pressure_bonus: Tuple[float, float, float, float] = (6.0, 14.0, 24.0, 60.0)
    pressure_penalty: Tuple[float, float, float, float] = (7.0, 16.0, 28.0, 70.0)

    @staticmethod
    def band_table(bands: Tuple[float, float, float, float]) -> np.ndarray:
        """Lookup table indexed by neighbour count 0..8"""
        three, lock, seven, full = bands
        return np.array([0, 0, 0, three, lock, lock, lock, seven, full], dtype=np.float64)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'EvalWeights':
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        for k in ("pressure_bonus", "pressure_penalty"):
            if k in filtered:
                filtered[k] = tuple(filtered[k])
        return cls(**filtered)


@dataclass
class SearchConfig:
    """
    AI tunables

    Attributes:
        playout_cap: engine calls allowed in one full-turn playout
        three_ply_max_branch: grandmaster falls back to 2-ply above this many moves
        top_n: candidates kept by the greedy levels
        adept_mistake_chance: chance the adept plays a non-best candidate
        second_best_chance: chance a mistake picks the 2nd (not 3rd) candidate
        swap_urgent_moves: usable moves at or below which an early swap is urgent
        swap_min_captives: captives that make an early swap worth considering
        swap_margin: evaluation gain an early swap must reach
        forcing_threshold: forcing-score gain for an aggressive early swap
        forcing_threshold_endgame: same when the opponent has at most one token
        buy_min_reserves: reserves needed before buying an extra reinforcement
        buy_keep_reserves: reserves that must remain after paying
        weights: evaluation weights
    """
    playout_cap: int = 256
    three_ply_max_branch: int = 8
    top_n: int = 3

    adept_mistake_chance: float = 0.25
    second_best_chance: float = 0.7

    # early swap
    swap_urgent_moves: int = 2
    swap_min_captives: int = 2
    swap_margin: float = 8.0
    forcing_threshold: float = 450.0
    forcing_threshold_endgame: float = 250.0

    # extra reinforcement
    buy_min_reserves: int = 4
    buy_keep_reserves: int = 6

    weights: EvalWeights = field(default_factory=EvalWeights)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'SearchConfig':
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        if isinstance(filtered.get("weights"), dict):
            filtered["weights"] = EvalWeights.from_dict(filtered["weights"])
        return cls(**filtered)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
