"""
Shapley-Shubik Power Index Engine.

This package provides implementations for:
- Exact and Monte Carlo Shapley-Shubik indices of weighted voting games
- Exact integer arithmetic and quorum threshold resolution
- Batch computation over many governance bodies
- Concentration metrics for comparing power with raw weight
"""

# Import core modules for easy access
from .modules import (
    BatchRunner,
    ElectorateGenerator,
    Member,
    PowerIndexEngine,
    PowerIndexReport,
    PowerIndexResult,
    WeightedVotingGame,
    resolve_threshold,
    shapley_shubik
)
from .utils import (
    CombinatorialSizeError,
    CombinatorialSizeWarning,
    ComputationLogger,
    EngineConfig,
    InvalidWeight,
    MalformedThreshold,
    PowerIndexError,
    load_config
)

__all__ = [
    # Core modules
    'BatchRunner',
    'ElectorateGenerator',
    'Member',
    'PowerIndexEngine',
    'PowerIndexReport',
    'PowerIndexResult',
    'WeightedVotingGame',
    'resolve_threshold',
    'shapley_shubik',
    # Utilities
    'CombinatorialSizeError',
    'CombinatorialSizeWarning',
    'ComputationLogger',
    'EngineConfig',
    'InvalidWeight',
    'MalformedThreshold',
    'PowerIndexError',
    'load_config'
]

__version__ = "1.0.0"
