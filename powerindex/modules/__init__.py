"""
Modules package of the power index engine.

This package contains core modules for:
- Game: members, weighted voting games, threshold resolution, results
- Power index: exact and Monte Carlo Shapley-Shubik computation
- Data generation: synthetic electorates
- Batch running: many independent games in parallel
"""

from .game import Member, PowerIndexReport, PowerIndexResult, WeightedVotingGame, resolve_threshold
from .power_index import PowerIndexEngine, shapley_shubik
from .data_gen import ElectorateGenerator
from .runner import BatchRunner

__all__ = [
    'Member',
    'PowerIndexReport',
    'PowerIndexResult',
    'WeightedVotingGame',
    'resolve_threshold',
    'PowerIndexEngine',
    'shapley_shubik',
    'ElectorateGenerator',
    'BatchRunner'
]
