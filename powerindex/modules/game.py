# =============================================================================
# FILE: powerindex/modules/game.py
"""
Weighted Voting Game - data model, quorum threshold resolution and results

Priority: HIGH | Status: Production-Ready
Version: 1.0.0
"""
from dataclasses import dataclass, field
from decimal import Decimal
from fractions import Fraction
from typing import Any, Dict, Hashable, Iterable, List, Optional, Tuple, Union
import logging

import numpy as np
import pandas as pd

from ..utils.validation import InvalidWeight, MalformedThreshold, game_validator

logger = logging.getLogger(__name__)

Percentage = Union[int, Fraction, Decimal, str, float]


# =============================================================================
# THRESHOLD RESOLVER
# =============================================================================

def _to_fraction(percentage: Percentage) -> Fraction:
    """Exact rational value of a quorum percentage"""
    if isinstance(percentage, bool):
        raise MalformedThreshold(f"Quorum percentage must be numeric, got {percentage!r}")
    if isinstance(percentage, (int, Fraction)):
        return Fraction(percentage)
    if isinstance(percentage, Decimal):
        if not percentage.is_finite():
            raise MalformedThreshold(f"Quorum percentage must be finite, got {percentage!r}")
        return Fraction(percentage)
    if isinstance(percentage, float):
        if not percentage.is_integer():
            raise MalformedThreshold(
                f"Non-integral float percentage {percentage!r} is not exact; "
                f"pass an int, Fraction, Decimal or string"
            )
        return Fraction(int(percentage))
    if isinstance(percentage, str):
        try:
            return Fraction(percentage.strip())
        except (ValueError, ZeroDivisionError) as e:
            raise MalformedThreshold(f"Cannot parse quorum percentage {percentage!r}") from e
    raise MalformedThreshold(
        f"Quorum percentage must be numeric, got {type(percentage).__name__} {percentage!r}"
    )


def resolve_threshold(
    percentage: Percentage,
    total_weight: int,
    require_integer: bool = False
) -> int:
    """
    Absolute pass threshold T = ceil(p * total_weight / 100)

    Computed with integer ceiling division, so a 51% quorum of 4 is 3 and a
    51% quorum of 10**24 wei is exactly 51 * 10**22.

    Parameters:
    -----------
    percentage : int, Fraction, Decimal or str
        Quorum percentage p in [0, 100]
    total_weight : int
        Weight basis the percentage refers to
    require_integer : bool
        Reject fractional percentages

    Returns:
    --------
    threshold : int

    Raises:
    -------
    MalformedThreshold : if p is outside [0, 100] or malformed
    InvalidWeight : if total_weight is negative or not an int
    """
    p = _to_fraction(percentage)
    game_validator.validate_percentage(p, require_integer=require_integer)

    if isinstance(total_weight, bool) or not isinstance(total_weight, int):
        raise InvalidWeight(f"Total weight must be an integer, got {total_weight!r}")
    if total_weight < 0:
        raise InvalidWeight(f"Total weight must be non-negative, got {total_weight}")

    numerator = p.numerator * total_weight
    denominator = p.denominator * 100
    return -(-numerator // denominator)


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class Member:
    """A voter: opaque identifier plus non-negative integer weight"""
    member_id: Hashable
    weight: int


@dataclass
class WeightedVotingGame:
    """
    Members plus the absolute weight needed to pass a decision

    Attributes:
    -----------
    members : tuple of Member
        Electorate in input order (results follow this order)
    threshold : int
        Minimum coalition weight that wins
    total_weight : int
        Weight basis the quorum refers to (e.g. total supply)
    game_id : optional
        Caller's identifier for the governance body
    """
    members: Tuple[Member, ...]
    threshold: int
    total_weight: int
    game_id: Optional[Hashable] = None

    def __post_init__(self):
        self.members = tuple(self.members)

    @classmethod
    def from_weights(
        cls,
        weights: Dict[Hashable, int],
        threshold: int,
        total_weight: Optional[int] = None,
        game_id: Optional[Hashable] = None
    ) -> 'WeightedVotingGame':
        """Build a game from an ordered {member_id: weight} mapping"""
        members = tuple(Member(k, w) for k, w in weights.items())
        if total_weight is None:
            game_validator.validate_weights([m.weight for m in members],
                                            [m.member_id for m in members])
            total_weight = sum(m.weight for m in members)
        return cls(members, threshold, total_weight, game_id)

    @classmethod
    def from_quorum(
        cls,
        members: Iterable[Member],
        percentage: Percentage,
        total_weight: Optional[int] = None,
        game_id: Optional[Hashable] = None,
        require_integer: bool = False
    ) -> 'WeightedVotingGame':
        """
        Build a game whose threshold is a quorum percentage of total_weight

        total_weight defaults to the sum of member weights.
        """
        members = tuple(members)
        if total_weight is None:
            game_validator.validate_weights([m.weight for m in members],
                                            [m.member_id for m in members])
            total_weight = sum(m.weight for m in members)
        threshold = resolve_threshold(percentage, total_weight, require_integer)
        return cls(members, threshold, total_weight, game_id)

    @property
    def n_members(self) -> int:
        return len(self.members)

    @property
    def weights(self) -> List[int]:
        return [m.weight for m in self.members]

    @property
    def member_ids(self) -> List[Hashable]:
        return [m.member_id for m in self.members]

    @property
    def member_weight_sum(self) -> int:
        return sum(m.weight for m in self.members)

    @property
    def is_unreachable(self) -> bool:
        """No ordering of the electorate ever reaches the threshold"""
        return self.threshold > self.total_weight or self.threshold > self.member_weight_sum


@dataclass
class PowerIndexResult:
    """
    Power index of one member

    `index` is the decimal rendering; numerator/denominator hold the exact
    rational (exact path) or count/n_samples (sampled path). All three are
    None for members left unfinished by an aborted computation.
    """
    member_id: Hashable
    index: Optional[str]
    numerator: Optional[int] = None
    denominator: Optional[int] = None

    @property
    def fraction(self) -> Optional[Fraction]:
        if self.numerator is None:
            return None
        return Fraction(self.numerator, self.denominator)


@dataclass
class PowerIndexReport:
    """
    Result of a power index computation with metadata

    Attributes:
    -----------
    results : list of PowerIndexResult
        One entry per member, in input order
    method : str
        'exact', 'monte_carlo' or 'short_circuit'
    metadata : Dict
        threshold, n_members, precision, reason for short-circuits, ...
    n_samples_used : Optional[int]
        Trials actually run (sampled path)
    stderr : Optional[np.ndarray]
        Binomial standard error of each sampled index
    confidence_intervals : Optional[Dict]
        95% CI bounds per member id (sampled path)
    aborted : bool
        Deadline expired before the computation finished
    computation_time : Optional[float]
        Wall-clock seconds
    """
    results: List[PowerIndexResult]
    method: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    n_samples_used: Optional[int] = None
    stderr: Optional[np.ndarray] = None
    confidence_intervals: Optional[Dict[Hashable, Tuple[float, float]]] = None
    aborted: bool = False
    computation_time: Optional[float] = None

    def __post_init__(self):
        """Warn when a finished exact result is not efficient"""
        if self.method != 'exact' or self.aborted or not self.results:
            return
        denominators = {r.denominator for r in self.results}
        total = sum(r.numerator for r in self.results)
        if len(denominators) == 1 and total not in (0, denominators.pop()):
            logger.warning(f"⚠️ Efficiency violation: numerators sum to {total}, not n!")

    def __len__(self) -> int:
        return len(self.results)

    def as_dict(self) -> Dict[Hashable, Optional[str]]:
        """member_id -> decimal string"""
        return {r.member_id: r.index for r in self.results}

    def to_frame(self) -> pd.DataFrame:
        """Tabular view (index as string plus a float column for sorting/plots)"""
        rows = []
        for pos, r in enumerate(self.results):
            row = {
                'member_id': r.member_id,
                'index': r.index,
                'index_float': float(r.fraction) if r.numerator is not None else np.nan,
            }
            if self.stderr is not None:
                row['stderr'] = float(self.stderr[pos])
            rows.append(row)
        return pd.DataFrame(rows, columns=None if rows else ['member_id', 'index', 'index_float'])

    def summary(self) -> str:
        """Human-readable summary"""
        lines = [
            f"═══ PowerIndexReport: {self.method} ═══",
            f"Members: {len(self.results)} | Threshold: {self.metadata.get('threshold', 'N/A')}",
        ]
        for r in self.results:
            lines.append(f"  {r.member_id}: {r.index}")

        if self.n_samples_used is not None:
            lines.append(f"Samples Used: {self.n_samples_used}")

        if self.aborted:
            lines.append("Aborted: deadline expired")

        if self.computation_time is not None:
            lines.append(f"Time: {self.computation_time:.3f}s")

        return "\n".join(lines)
