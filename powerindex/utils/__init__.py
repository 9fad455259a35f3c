"""
Utilities package of the power index engine.

This package contains utility modules for:
- Precision: exact factorials, long division, weight parsing
- Validation: error types and axiom checks
- Config: YAML engine configuration
- Logging: batch logger
- Metrics: concentration statistics
"""

from .config import EngineConfig, load_config
from .logging_utils import ComputationLogger
from .metrics import (
    ConcentrationMetrics,
    power_weight_divergence,
    proportion_confidence_interval
)
from .precision import fits_int64, long_division, parse_weight, precompute_factorials
from .validation import (
    CombinatorialSizeError,
    CombinatorialSizeWarning,
    InvalidWeight,
    MalformedThreshold,
    PowerIndexError,
    PowerIndexValidator
)

__all__ = [
    'EngineConfig',
    'load_config',
    'ComputationLogger',
    'ConcentrationMetrics',
    'power_weight_divergence',
    'proportion_confidence_interval',
    'fits_int64',
    'long_division',
    'parse_weight',
    'precompute_factorials',
    'CombinatorialSizeError',
    'CombinatorialSizeWarning',
    'InvalidWeight',
    'MalformedThreshold',
    'PowerIndexError',
    'PowerIndexValidator'
]
