# =============================================================================
# FILE: powerindex/modules/data_gen.py
"""
Synthetic Electorate Generator - Creates weighted voting games for testing
and scenario modelling

Token holdings in real governance bodies are heavy-tailed, so the default
is a lognormal electorate; pareto models whale-dominated DAOs and equal
models one-member-one-vote councils.

Priority: MEDIUM | Status: Production-Ready
Version: 1.0.0
"""
import numpy as np
from typing import Hashable, List, Literal, Optional
import logging

from .game import Member, Percentage, WeightedVotingGame

logger = logging.getLogger(__name__)

Distribution = Literal['lognormal', 'pareto', 'uniform', 'equal']

# Sampled float weights are truncated to this many decimals before scaling
_SAMPLE_DECIMALS = 6


class ElectorateGenerator:
    """Generates weighted voting games with integer token weights"""

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)
        self.seed = seed

    def generate_weights(
        self,
        n_members: int,
        distribution: Distribution = 'lognormal',
        mu: float = 0.0,
        sigma: float = 1.5,
        alpha: float = 1.16,
        decimals: int = 18,
        zero_fraction: float = 0.0
    ) -> List[int]:
        """
        Sample integer voting weights

        Parameters:
        -----------
        n_members : int
            Electorate size
        distribution : str
            'lognormal' (exp(N(mu, sigma))), 'pareto' (x_m = 1, shape alpha),
            'uniform' (U[0.5, 1.5]) or 'equal' (every weight 1)
        mu, sigma : float
            Lognormal parameters
        alpha : float
            Pareto shape (1.16 gives the 80/20 rule)
        decimals : int
            Token decimals; weights are expressed in base units (wei)
        zero_fraction : float
            Share of members given zero weight (inactive holders)
        """
        if n_members < 0:
            raise ValueError(f"n_members must be non-negative, got {n_members}")
        if not 0.0 <= zero_fraction <= 1.0:
            raise ValueError(f"zero_fraction must lie in [0, 1], got {zero_fraction}")

        if distribution == 'lognormal':
            raw = self.rng.lognormal(mu, sigma, n_members)
        elif distribution == 'pareto':
            raw = self.rng.pareto(alpha, n_members) + 1.0
        elif distribution == 'uniform':
            raw = self.rng.uniform(0.5, 1.5, n_members)
        elif distribution == 'equal':
            raw = np.ones(n_members)
        else:
            raise ValueError(f"Unknown distribution: {distribution}")

        base_units = np.floor(raw * 10**_SAMPLE_DECIMALS).astype(np.int64)
        if decimals >= _SAMPLE_DECIMALS:
            scale = 10 ** (decimals - _SAMPLE_DECIMALS)
            weights = [int(b) * scale for b in base_units]
        else:
            scale = 10 ** (_SAMPLE_DECIMALS - decimals)
            weights = [int(b) // scale for b in base_units]

        n_zero = int(round(zero_fraction * n_members))
        if n_zero:
            for pos in self.rng.choice(n_members, size=n_zero, replace=False):
                weights[pos] = 0

        return weights

    def generate_game(
        self,
        n_members: int,
        quorum: Percentage = 51,
        distribution: Distribution = 'lognormal',
        game_id: Optional[Hashable] = None,
        **weight_params
    ) -> WeightedVotingGame:
        """
        Generate a complete game; the quorum refers to the sum of sampled weights
        """
        weights = self.generate_weights(n_members, distribution, **weight_params)
        members = [Member(f"member_{i}", w) for i, w in enumerate(weights)]
        game = WeightedVotingGame.from_quorum(members, quorum, game_id=game_id)

        logger.debug(
            f"Generated {distribution} electorate: n={n_members}, "
            f"threshold={game.threshold}, total={game.total_weight}"
        )
        return game
