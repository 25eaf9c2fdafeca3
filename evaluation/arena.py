"""
Arena

Organizes matches between agents.
"""
from typing import Dict, List, Optional, Callable, Tuple
from dataclasses import dataclass
from collections import defaultdict
from itertools import combinations
import logging

from .evaluator import Agent, DEFAULT_MAX_STEPS, run_episode
from .elo import EloSystem

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """One game"""
    white: str
    blue: str
    winner: Optional[str]  # agent name, None when unfinished
    reason: Optional[str]
    length: int

    @property
    def loser(self) -> Optional[str]:
        if self.winner is None:
            return None
        return self.blue if self.winner == self.white else self.white


@dataclass
class TournamentResult:
    """Tournament result"""
    standings: Dict[str, Dict[str, float]]
    total_games: int
    matches: List[MatchResult]

    def get_ranking(self) -> List[Tuple[str, float]]:
        return sorted(
            [(name, stats.get("win_rate", 0.0)) for name, stats in self.standings.items()],
            key=lambda x: x[1],
            reverse=True,
        )

    def __repr__(self) -> str:
        ranking = self.get_ranking()
        lines = [f"Tournament Results ({self.total_games} games):"]
        for i, (name, win_rate) in enumerate(ranking):
            lines.append(f"  {i+1}. {name}: {win_rate:.2%}")
        return "\n".join(lines)


class Arena:
    """
    Arena

    Plays agents against each other and optionally feeds results to an
    Elo system.
    """

    def __init__(
        self,
        env_fn: Callable,
        elo: Optional[EloSystem] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
    ):
        self.env_fn = env_fn
        self.elo = elo
        self.max_steps = max_steps

    def play_match(
        self,
        white: Agent,
        blue: Agent,
        n_games: int = 1,
        seed: Optional[int] = None,
    ) -> List[MatchResult]:
        """
        Play games with fixed colours

        Args:
            white: agent playing White
            blue: agent playing Blue
            n_games: number of games
            seed: base seed, game i resets with seed + i

        Returns:
            list of MatchResult
        """
        env = self.env_fn()
        names = {"W": white.name, "B": blue.name}
        results = []

        for game_idx in range(n_games):
            game_seed = None if seed is None else seed + game_idx
            info, length, _ = run_episode(env, {"W": white, "B": blue}, self.max_steps, game_seed)

            winner_side = info.get("winner")
            result = MatchResult(
                white=white.name,
                blue=blue.name,
                winner=names.get(winner_side),
                reason=info.get("reason"),
                length=length,
            )
            results.append(result)
            self._record_elo(result)

        env.close()
        return results

    def _record_elo(self, result: MatchResult) -> None:
        if self.elo is None:
            return
        if result.winner is None:
            self.elo.record_draw(result.white, result.blue)
        else:
            self.elo.record_match(result.winner, result.loser)

    def round_robin(
        self,
        agents: List[Agent],
        games_per_match: int = 10,
        seed: Optional[int] = None,
    ) -> TournamentResult:
        """
        Every pair meets, each agent playing White in half of the games

        Args:
            agents: participants (unique names)
            games_per_match: games per pairing
            seed: base seed

        Returns:
            TournamentResult
        """
        standings = {agent.name: defaultdict(float) for agent in agents}
        all_matches: List[MatchResult] = []
        first_half = (games_per_match + 1) // 2

        for a, b in combinations(agents, 2):
            logger.info("Match %s vs %s (%d games)", a.name, b.name, games_per_match)
            results = self.play_match(a, b, first_half, seed)
            results += self.play_match(b, a, games_per_match - first_half, seed)
            all_matches.extend(results)

            for result in results:
                for name in (result.white, result.blue):
                    standings[name]["games"] += 1
                if result.winner is None:
                    standings[result.white]["unfinished"] += 1
                    standings[result.blue]["unfinished"] += 1
                    continue
                standings[result.winner]["wins"] += 1
                colour = "white_wins" if result.winner == result.white else "blue_wins"
                standings[result.winner][colour] += 1

        for name, stats in standings.items():
            if stats["games"] > 0:
                stats["win_rate"] = stats["wins"] / stats["games"]

        return TournamentResult(
            standings={name: dict(stats) for name, stats in standings.items()},
            total_games=len(all_matches),
            matches=all_matches,
        )
