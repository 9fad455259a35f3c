"""
Engine configuration loaded from YAML
"""
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

import yaml

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """
    Tunable policy of the power index engine

    Attributes:
        exact_threshold: Largest electorate routed to the exact calculator by
            method='auto'. Exact work grows as n * 2^n, so each extra member
            doubles the cost.
        safe_exact_bound: Electorate size above which the exact calculator
            warns (or refuses, with hard_cap) when called directly
        hard_cap: Raise CombinatorialSizeError instead of warning
        n_samples: Monte Carlo trials
        batch_size: Trials per batch (deadline checks happen between batches)
        precision: Fractional digits rendered by long division
        seed: Seed for the Monte Carlo random source
        workers: Worker processes for the exact outer loop / Monte Carlo batches
        deadline: Optional wall-clock budget in seconds per game
    """
    exact_threshold: int = 20
    safe_exact_bound: int = 25
    hard_cap: bool = False
    n_samples: int = 100_000
    batch_size: int = 10_000
    precision: int = 20
    seed: Optional[int] = None
    workers: int = 1
    deadline: Optional[float] = None

    def __post_init__(self):
        for name in ('exact_threshold', 'safe_exact_bound', 'n_samples',
                     'batch_size', 'precision', 'workers'):
            if getattr(self, name) is None:
                raise ValueError(f"{name} must be set, got None")
        if self.exact_threshold < 0:
            raise ValueError(f"exact_threshold must be non-negative, got {self.exact_threshold}")
        if self.n_samples <= 0:
            raise ValueError(f"n_samples must be positive, got {self.n_samples}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.precision < 0:
            raise ValueError(f"precision must be non-negative, got {self.precision}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.deadline is not None and self.deadline <= 0:
            raise ValueError(f"deadline must be positive, got {self.deadline}")

    def replace(self, **overrides: Any) -> 'EngineConfig':
        """
        Copy with the given fields overridden

        Only keywords actually passed are applied, so seed=None or
        deadline=None clears a value set by the base config.
        """
        values = asdict(self)
        values.update(overrides)
        return EngineConfig.from_dict(values)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown engine config keys: {sorted(unknown)}")
        return cls(**data)


def load_config(config_path: Union[str, Path]) -> EngineConfig:
    """
    Load engine configuration from a YAML file

    The settings may sit at the top level or under an `engine:` section.
    """
    with open(config_path, 'r') as f:
        raw = yaml.safe_load(f) or {}

    data = raw.get('engine', raw)
    config = EngineConfig.from_dict(data)
    logger.info(f"Loaded engine config from {config_path}: {config}")
    return config
