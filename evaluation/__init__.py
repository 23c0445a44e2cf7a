"""
Evaluation Layer - 评估框架

Modules:
    arena: 对战竞技场
"""
from .arena import (
    MatchResult,
    TournamentResult,
    Arena,
)

__all__ = [
    # arena
    "MatchResult",
    "TournamentResult",
    "Arena",
]
