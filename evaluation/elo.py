"""
Elo ratings

Standard two-player Elo. Built-in AI levels start from their published
display ratings (see ``ai.policies.AI_RATINGS``).
"""
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, asdict
import json
from pathlib import Path

from ai.policies import AI_RATINGS


@dataclass
class PlayerRating:
    """Rating record"""
    name: str
    rating: float = 1500.0
    games: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    peak_rating: float = 1500.0

    @property
    def win_rate(self) -> float:
        if self.games == 0:
            return 0.0
        return self.wins / self.games

    @property
    def score(self) -> float:
        """Points per game, draws counting half"""
        if self.games == 0:
            return 0.0
        return (self.wins + 0.5 * self.draws) / self.games

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict) -> "PlayerRating":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


class EloSystem:
    """
    Elo rating system

    Unfinished games are recorded as draws.
    """

    def __init__(
        self,
        k_factor: float = 32.0,
        initial_rating: float = 1500.0,
        floor_rating: float = 100.0,
    ):
        self.k_factor = k_factor
        self.initial_rating = initial_rating
        self.floor_rating = floor_rating
        self.players: Dict[str, PlayerRating] = {}

    @classmethod
    def from_ai_ratings(cls, levels: Optional[List[str]] = None, **kwargs) -> "EloSystem":
        """System pre-seeded with the built-in levels' ratings"""
        elo = cls(**kwargs)
        for level, rating in AI_RATINGS.items():
            if levels is None or level.value in levels:
                elo.seed_player(level.value, rating)
        return elo

    def seed_player(self, name: str, rating: float) -> PlayerRating:
        """Register ``name`` at ``rating`` (overwrites an existing record)"""
        player = PlayerRating(name=name, rating=float(rating), peak_rating=float(rating))
        self.players[name] = player
        return player

    def get_player(self, name: str) -> PlayerRating:
        if name not in self.players:
            self.seed_player(name, self.initial_rating)
        return self.players[name]

    def expected_score(self, rating_a: float, rating_b: float) -> float:
        """
        Expected score of A against B

        Args:
            rating_a: rating of A
            rating_b: rating of B

        Returns:
            value in (0, 1)
        """
        return 1.0 / (1.0 + 10.0 ** ((rating_b - rating_a) / 400.0))

    def update_rating(
        self,
        player: PlayerRating,
        opponent_rating: float,
        score: float,
    ) -> float:
        """
        Apply one result

        Args:
            player: rated player (mutated)
            opponent_rating: opponent's rating before the game
            score: 1 win, 0.5 draw, 0 loss

        Returns:
            new rating
        """
        expected = self.expected_score(player.rating, opponent_rating)
        new_rating = max(player.rating + self.k_factor * (score - expected), self.floor_rating)

        player.rating = new_rating
        player.peak_rating = max(player.peak_rating, new_rating)
        player.games += 1
        if score > 0.5:
            player.wins += 1
        elif score < 0.5:
            player.losses += 1
        else:
            player.draws += 1
        return new_rating

    def _record(self, name_a: str, name_b: str, score_a: float) -> Tuple[float, float]:
        a = self.get_player(name_a)
        b = self.get_player(name_b)
        a_old, b_old = a.rating, b.rating
        self.update_rating(a, b_old, score_a)
        self.update_rating(b, a_old, 1.0 - score_a)
        return a.rating, b.rating

    def record_match(self, winner_name: str, loser_name: str) -> Tuple[float, float]:
        """
        Returns:
            (winner's new rating, loser's new rating)
        """
        return self._record(winner_name, loser_name, 1.0)

    def record_draw(self, player1_name: str, player2_name: str) -> Tuple[float, float]:
        return self._record(player1_name, player2_name, 0.5)

    def get_ranking(self) -> List[PlayerRating]:
        return sorted(self.players.values(), key=lambda p: p.rating, reverse=True)

    def to_dict(self) -> Dict:
        return {
            "k_factor": self.k_factor,
            "initial_rating": self.initial_rating,
            "floor_rating": self.floor_rating,
            "players": {name: p.to_dict() for name, p in self.players.items()},
        }

    def save(self, path: str):
        Path(path).write_text(json.dumps(self.to_dict(), indent=2))

    def load(self, path: str):
        data = json.loads(Path(path).read_text())
        self.k_factor = data.get("k_factor", self.k_factor)
        self.initial_rating = data.get("initial_rating", self.initial_rating)
        self.floor_rating = data.get("floor_rating", self.floor_rating)
        self.players = {
            name: PlayerRating.from_dict(p)
            for name, p in data.get("players", {}).items()
        }
