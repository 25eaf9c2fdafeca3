"""
Evaluation Layer - agents, matches and ratings

Modules:
    evaluator: agents and single-agent evaluation
    arena: head-to-head matches and round robins
    elo: Elo rating system
"""
from .evaluator import (
    EvalResult,
    Agent,
    RandomAgent,
    SearchAgent,
    Evaluator,
    run_episode,
)
from .arena import (
    MatchResult,
    TournamentResult,
    Arena,
)
from .elo import (
    PlayerRating,
    EloSystem,
)

__all__ = [
    # evaluator
    "EvalResult",
    "Agent",
    "RandomAgent",
    "SearchAgent",
    "Evaluator",
    "run_episode",
    # arena
    "MatchResult",
    "TournamentResult",
    "Arena",
    # elo
    "PlayerRating",
    "EloSystem",
]
