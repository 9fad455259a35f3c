"""
Validation utilities and error types for the power index engine
"""
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Dict, List, Optional, Sequence
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# ERROR TAXONOMY
# =============================================================================

class PowerIndexError(ValueError):
    """Base class for input errors local to a single voting game"""


class InvalidWeight(PowerIndexError):
    """A member weight is negative or not an integer"""


class MalformedThreshold(PowerIndexError):
    """Quorum percentage outside [0, 100], non-numeric, or not an integer where one is required"""


class CombinatorialSizeError(PowerIndexError):
    """Exact computation refused because the electorate exceeds the hard cap"""


class CombinatorialSizeWarning(UserWarning):
    """Exact computation requested beyond the safe electorate size (advisory)"""


@dataclass
class ValidationResult:
    """Result of a validation check"""
    is_valid: bool
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class GameValidator:
    """
    Validates the inputs of a weighted voting game before computation
    """

    def validate_weights(self, weights: Sequence[int], member_ids: Optional[Sequence] = None) -> None:
        """
        Reject negative or non-integer weights

        Args:
            weights: Member weights in input order
            member_ids: Optional identifiers used in error messages

        Raises:
            InvalidWeight: on the first offending weight
        """
        for pos, w in enumerate(weights):
            label = member_ids[pos] if member_ids is not None else pos
            if isinstance(w, bool) or not isinstance(w, int):
                raise InvalidWeight(
                    f"Weight of member {label!r} must be an integer, got {type(w).__name__} {w!r}"
                )
            if w < 0:
                raise InvalidWeight(f"Weight of member {label!r} is negative: {w}")

    def validate_member_ids(self, member_ids: Sequence) -> None:
        """Member identifiers must be unique within one game"""
        seen = set()
        for member_id in member_ids:
            if member_id in seen:
                raise ValueError(f"Duplicate member id: {member_id!r}")
            seen.add(member_id)

    def validate_threshold(self, threshold: int) -> None:
        """Threshold must be an integer (negative values behave like 0)"""
        if isinstance(threshold, bool) or not isinstance(threshold, int):
            raise MalformedThreshold(
                f"Threshold must be an integer, got {type(threshold).__name__} {threshold!r}"
            )

    def validate_percentage(self, percentage: Fraction, require_integer: bool = False) -> None:
        """
        Validate a quorum percentage already converted to an exact Fraction

        Raises:
            MalformedThreshold: if outside [0, 100] or not integral when required
        """
        if percentage < 0 or percentage > 100:
            raise MalformedThreshold(f"Quorum percentage must lie in [0, 100], got {percentage}")
        if require_integer and percentage.denominator != 1:
            raise MalformedThreshold(f"Quorum percentage must be an integer, got {percentage}")


class PowerIndexValidator:
    """
    Checks Shapley-Shubik axioms on computed power indices
    """

    def __init__(self, tolerance: float = 1e-6):
        self.tolerance = tolerance

    def validate_efficiency(self, report) -> ValidationResult:
        """
        Efficiency: indices of a reachable game sum to exactly 1

        On the exact path every numerator shares the denominator n!, so the
        check is an integer equality with no tolerance involved.
        """
        results = [r for r in report.results if r.numerator is not None]
        if not results:
            return ValidationResult(is_valid=True, details={'reason': 'empty game'})

        total = sum(Fraction(r.numerator, r.denominator) for r in results)
        if report.metadata.get('unreachable'):
            expected = Fraction(0)
        else:
            expected = Fraction(1)

        if report.method == 'monte_carlo':
            ok = abs(float(total - expected)) <= self.tolerance
        else:
            ok = total == expected

        if not ok:
            return ValidationResult(
                is_valid=False,
                error=f"Efficiency violation: sum(index)={total} != {expected}",
                details={'sum': total, 'expected': expected}
            )
        return ValidationResult(is_valid=True, details={'sum': total})

    def validate_symmetry(self, report, weights: Sequence[int]) -> ValidationResult:
        """
        Symmetry: members with identical weights get identical indices
        """
        by_weight: Dict[int, List[Fraction]] = {}
        for result, w in zip(report.results, weights):
            if result.numerator is None:
                continue
            by_weight.setdefault(w, []).append(Fraction(result.numerator, result.denominator))

        for w, values in by_weight.items():
            spread = max(values) - min(values)
            if report.method == 'monte_carlo':
                ok = float(spread) <= self.tolerance
            else:
                ok = spread == 0
            if not ok:
                return ValidationResult(
                    is_valid=False,
                    error=f"Symmetry violation: members with weight {w} got indices "
                          f"ranging over {float(min(values)):.6f}..{float(max(values)):.6f}"
                )
        return ValidationResult(is_valid=True)

    def validate_null_player(self, report, weights: Sequence[int], threshold: int) -> ValidationResult:
        """
        Null player: a zero-weight member is never pivotal when threshold > 0
        """
        if threshold <= 0:
            return ValidationResult(is_valid=True, details={'reason': 'zero threshold'})

        for result, w in zip(report.results, weights):
            if w == 0 and result.numerator not in (None, 0):
                return ValidationResult(
                    is_valid=False,
                    error=f"Null player violation: member {result.member_id!r} has zero weight "
                          f"but index {result.index}"
                )
        return ValidationResult(is_valid=True)

    def validate_all(self, report, weights: Sequence[int], threshold: int) -> Dict[str, ValidationResult]:
        """Run every axiom check and return results keyed by axiom name"""
        checks = {
            'efficiency': self.validate_efficiency(report),
            'symmetry': self.validate_symmetry(report, weights),
            'null_player': self.validate_null_player(report, weights, threshold),
        }
        for name, result in checks.items():
            if not result.is_valid:
                logger.warning(f"⚠️ {name} check failed: {result.error}")
        return checks


# Global instances for easy use
game_validator = GameValidator()
power_index_validator = PowerIndexValidator()
