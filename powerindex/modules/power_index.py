# =============================================================================
# FILE: powerindex/modules/power_index.py
"""
Power Index Engine - Shapley-Shubik index of weighted voting games
Implements: exact combinatorial enumeration, Monte Carlo permutation sampling

A member is pivotal in an ordering of the electorate when adding its weight
to the weight of the members before it first reaches the quorum threshold.
The Shapley-Shubik index is the fraction of the n! orderings in which a
member is pivotal.

References:
- Shapley & Shubik (1954) "A Method for Evaluating the Distribution of Power
  in a Committee System", APSR 48(3)
- Mann & Shapley (1960) "Values of Large Games IV" (Monte Carlo sampling)
- Castro et al. (2009) "Polynomial calculation of the Shapley value based on
  sampling"

Priority: CRITICAL | Status: Production-Grade | Version: 1.0.0
"""
# =============================================================================

import logging
import time
import warnings
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .game import Member, Percentage, PowerIndexReport, PowerIndexResult, WeightedVotingGame
from ..utils.config import EngineConfig
from ..utils.metrics import proportion_confidence_interval
from ..utils.precision import fits_int64, long_division, precompute_factorials
from ..utils.validation import (
    CombinatorialSizeError,
    CombinatorialSizeWarning,
    game_validator
)

logger = logging.getLogger(__name__)

# Upper bound on permutation-matrix cells held in memory per sampling chunk
_MAX_CHUNK_CELLS = 4_000_000

# Members whose subset sums are held as one vectorised block (2^20 sums)
_VECTOR_BITS = 20


# =============================================================================
# EXACT ENUMERATION KERNELS
# =============================================================================

def _gray_code_walk(values: Sequence[int]) -> Iterator[Tuple[int, int]]:
    """
    Yield (subset_sum, subset_size) for every subset of `values`

    Subsets come in Gray-code order so consecutive subsets differ by a
    single member: each step is one addition or subtraction and memory
    stays O(n). The empty subset comes first.
    """
    subset_sum = 0
    subset_size = 0
    yield subset_sum, subset_size

    for step in range(1, 1 << len(values)):
        bit = (step & -step).bit_length() - 1
        if ((step ^ (step >> 1)) >> bit) & 1:
            subset_sum += values[bit]
            subset_size += 1
        else:
            subset_sum -= values[bit]
            subset_size -= 1
        yield subset_sum, subset_size


def _pivotal_counts_int64(
    weight: int,
    others: Sequence[int],
    threshold: int,
    block_bits: int = _VECTOR_BITS
) -> List[int]:
    """
    Number of marking subsets of `others`, by subset size (int64 path)

    The first `block_bits` members form a block whose 2^block_bits subset
    sums and sizes are built once by doubling. The remaining members are
    walked in Gray-code order, and each of their subsets shifts the whole
    block by a scalar sum and size offset. Memory is bounded by the block.
    Callers guarantee the grand total fits int64, so no sum overflows.
    """
    m = len(others)
    k = min(m, block_bits)
    low, high = others[:k], others[k:]

    block_sums = np.zeros(1, dtype=np.int64)
    block_sizes = np.zeros(1, dtype=np.int16)
    for w in low:
        block_sums = np.concatenate((block_sums, block_sums + np.int64(w)))
        block_sizes = np.concatenate((block_sizes, block_sizes + 1))

    t = max(threshold, 0)
    counts = np.zeros(m + 1, dtype=np.int64)
    for high_sum, high_size in _gray_code_walk(high):
        # w(S) < T <= w(S) + weight, with w(S) = high_sum + block sum
        upper = t - high_sum
        lower = upper - weight
        if upper <= 0:
            continue
        marking = (block_sums < upper) & (block_sums >= lower)
        counts[high_size:high_size + k + 1] += np.bincount(block_sizes[marking], minlength=k + 1)
    return [int(c) for c in counts]


def _pivotal_counts_unbounded(weight: int, others: Sequence[int], threshold: int) -> List[int]:
    """Number of marking subsets of `others`, by subset size (Python int path)"""
    counts = [0] * (len(others) + 1)
    for subset_weight, subset_size in _gray_code_walk(others):
        if subset_weight < threshold <= subset_weight + weight:
            counts[subset_size] += 1
    return counts


def _exact_candidate_task(
    position: int,
    weights: Tuple[int, ...],
    threshold: int,
    use_int64: bool
) -> Tuple[int, List[int]]:
    """Marking-subset counts for one candidate pivotal member"""
    weight = weights[position]
    others = weights[:position] + weights[position + 1:]

    # A zero-weight candidate never moves a losing prefix to a winning one
    if weight == 0 or threshold > weight + sum(others):
        return position, [0] * len(weights)

    if use_int64:
        return position, _pivotal_counts_int64(weight, others, threshold, _VECTOR_BITS)
    return position, _pivotal_counts_unbounded(weight, others, threshold)


# =============================================================================
# MONTE CARLO KERNEL
# =============================================================================

def _monte_carlo_batch(
    weights: Tuple[int, ...],
    threshold: int,
    n_trials: int,
    seed: np.random.SeedSequence,
    use_int64: bool
) -> np.ndarray:
    """
    Pivot counts from n_trials random orderings (private to one batch)

    Orderings are permutations of member positions, so the pivotal position
    indexes the counts array directly.
    """
    n = len(weights)
    rng = np.random.default_rng(seed)
    counts = np.zeros(n, dtype=np.int64)
    if threshold > sum(weights):
        return counts

    if use_int64:
        w = np.asarray(weights, dtype=np.int64)
        t = np.int64(max(threshold, 0))
        rows_per_chunk = max(1, _MAX_CHUNK_CELLS // max(n, 1))
        done = 0
        while done < n_trials:
            rows = min(rows_per_chunk, n_trials - done)
            perms = rng.permuted(np.tile(np.arange(n), (rows, 1)), axis=1)
            cumulative = np.cumsum(w[perms], axis=1)
            reached = cumulative >= t
            # Rows whose full sum stays below the threshold have no pivot
            has_pivot = reached[:, -1]
            pivot_pos = reached.argmax(axis=1)
            pivots = perms[np.arange(rows), pivot_pos][has_pivot]
            counts += np.bincount(pivots, minlength=n)
            done += rows
        return counts

    order = np.arange(n)
    for _ in range(n_trials):
        rng.shuffle(order)
        cumulative = 0
        for position in order:
            cumulative += weights[position]
            if cumulative >= threshold:
                counts[position] += 1
                break
    return counts


# =============================================================================
# MAIN ENGINE
# =============================================================================

class PowerIndexEngine:
    """
    Shapley-Shubik Power Index Engine

    Supported Methods:
    ------------------
    1. auto: exact when n <= exact_threshold, Monte Carlo otherwise
    2. exact: exact enumeration, O(n * 2^n), exact rationals
    3. monte_carlo: permutation sampling, error O(1/sqrt(n_samples))

    Both paths share validation and short-circuits (empty electorate,
    unreachable threshold, single member, zero threshold), so trivial games
    give identical answers whichever path would have been chosen.
    """

    METHODS = ('auto', 'exact', 'monte_carlo')

    def __init__(self, config: Optional[EngineConfig] = None, **overrides):
        """
        Initialize the engine

        Parameters:
        -----------
        config : EngineConfig, optional
            Engine policy (defaults used when omitted)
        **overrides
            Individual EngineConfig fields, e.g. seed=42, n_samples=10**6
        """
        self.config = (config or EngineConfig()).replace(**overrides)
        logger.info(
            f"✅ PowerIndexEngine initialized (exact_threshold={self.config.exact_threshold}, "
            f"n_samples={self.config.n_samples}, seed={self.config.seed})"
        )

    def compute(
        self,
        game: WeightedVotingGame,
        method: str = 'auto',
        **overrides
    ) -> PowerIndexReport:
        """
        Validate the game, apply short-circuits and dispatch

        Parameters:
        -----------
        game : WeightedVotingGame
            Members and absolute threshold
        method : str
            'auto', 'exact' or 'monte_carlo'
        **overrides
            Per-call EngineConfig overrides (n_samples, seed, precision, ...)

        Returns:
        --------
        PowerIndexReport : one result per member, in input order

        Raises:
        -------
        InvalidWeight : negative or non-integer weight
        MalformedThreshold : non-integer threshold
        CombinatorialSizeError : exact path beyond safe bound with hard_cap
        ValueError : unknown method or duplicate member ids

        Examples:
        ---------
        >>> game = WeightedVotingGame.from_weights({'A': 60, 'B': 30, 'C': 10}, threshold=61)
        >>> PowerIndexEngine().compute(game).as_dict()['B']
        '0.16666666666666666666'
        """
        start_time = time.time()
        config = self.config.replace(**overrides)

        if method not in self.METHODS:
            raise ValueError(
                f"Unknown power index method: '{method}'\n"
                f"Valid methods: {', '.join(self.METHODS)}"
            )

        # INPUT VALIDATION
        game_validator.validate_weights(game.weights, game.member_ids)
        game_validator.validate_member_ids(game.member_ids)
        game_validator.validate_threshold(game.threshold)

        n = game.n_members
        metadata = {
            'game_id': game.game_id,
            'n_members': n,
            'threshold': game.threshold,
            'total_weight': game.total_weight,
            'precision': config.precision,
        }

        # ═══ SHORT-CIRCUITS (shared by both paths) ═══
        report = self._short_circuit(game, metadata, config)
        if report is not None:
            report.computation_time = time.time() - start_time
            logger.info(
                f"Short-circuit ({report.metadata['reason']}) for game {game.game_id!r} "
                f"with {n} members"
            )
            return report

        if method == 'auto':
            method = 'exact' if n <= config.exact_threshold else 'monte_carlo'
            logger.debug(f"Auto-selected {method} for n={n} (exact_threshold={config.exact_threshold})")

        if method == 'exact':
            report = self._exact_shapley_shubik(game, metadata, config, start_time)
        else:
            report = self._monte_carlo_shapley_shubik(game, metadata, config, start_time)

        report.computation_time = time.time() - start_time
        if report.aborted:
            logger.warning(
                f"⚠️ {method} aborted after {report.computation_time:.3f}s "
                f"(deadline={config.deadline}s) for game {game.game_id!r}"
            )
        else:
            logger.info(f"✅ {method} completed in {report.computation_time:.3f}s (n={n})")
        return report

    # ═════════════════════════════════════════════════════════════════════
    # DISPATCH HELPERS
    # ═════════════════════════════════════════════════════════════════════

    def _short_circuit(
        self,
        game: WeightedVotingGame,
        metadata: Dict,
        config: EngineConfig
    ) -> Optional[PowerIndexReport]:
        """Exact answers for trivial games, or None when a full computation is needed"""
        n = game.n_members

        if n == 0:
            return PowerIndexReport([], 'short_circuit', {**metadata, 'reason': 'empty'})

        if game.is_unreachable:
            results = [PowerIndexResult(m.member_id, '0', 0, 1) for m in game.members]
            return PowerIndexReport(
                results, 'short_circuit',
                {**metadata, 'reason': 'unreachable', 'unreachable': True}
            )

        if n == 1:
            member = game.members[0]
            pivotal = 1 if member.weight >= game.threshold else 0
            results = [PowerIndexResult(member.member_id, str(pivotal), pivotal, 1)]
            return PowerIndexReport(results, 'short_circuit', {**metadata, 'reason': 'single_member'})

        if game.threshold <= 0:
            # Zero quorum: the empty prefix already meets it, so the first
            # member of every ordering is pivotal.
            index = long_division(1, n, config.precision)
            results = [PowerIndexResult(m.member_id, index, 1, n) for m in game.members]
            return PowerIndexReport(results, 'short_circuit', {**metadata, 'reason': 'zero_threshold'})

        return None

    def _check_exact_size(self, n: int, config: EngineConfig) -> None:
        """Warn (or refuse with hard_cap) when n exceeds the safe exact bound"""
        if n <= config.safe_exact_bound:
            return

        message = (
            f"Exact Shapley-Shubik for n={n} > safe_exact_bound={config.safe_exact_bound} "
            f"enumerates {n} x 2^{n - 1} subsets"
        )
        if config.hard_cap:
            raise CombinatorialSizeError(message)

        logger.warning(f"⚠️ {message}; proceeding")
        warnings.warn(message, CombinatorialSizeWarning, stacklevel=3)

    @staticmethod
    def _deadline_at(start_time: float, config: EngineConfig) -> Optional[float]:
        return None if config.deadline is None else start_time + config.deadline

    # ═════════════════════════════════════════════════════════════════════
    # CORE METHODS
    # ═════════════════════════════════════════════════════════════════════

    def _exact_shapley_shubik(
        self,
        game: WeightedVotingGame,
        metadata: Dict,
        config: EngineConfig,
        start_time: float
    ) -> PowerIndexReport:
        """
        Exact Shapley-Shubik index by subset enumeration

        Formula:
            φᵢ = Σ_{S⊆N\\i, w(S) < T ≤ w(S)+wᵢ} |S|!(n-|S|-1)! / n!

        For each candidate i, every subset S of the other members is a
        possible set of predecessors; when S is losing and S∪{i} is winning,
        i is pivotal in the |S|!(n-1-|S|)! orderings that place S before i.

        Complexity: O(n × 2^n) time - practical up to n ≈ 20-25
        Memory: O(2^20) per candidate on the int64 path, O(n) otherwise

        Parameters:
        -----------
        game : WeightedVotingGame
        metadata : Dict
            Report metadata collected by the dispatcher
        config : EngineConfig
        start_time : float
            Used for the deadline

        Returns:
        --------
        PowerIndexReport with exact rationals over n!
        """
        n = game.n_members
        self._check_exact_size(n, config)

        weights = tuple(game.weights)
        threshold = game.threshold
        use_int64 = fits_int64(weights)
        factorials = precompute_factorials(n)
        deadline = self._deadline_at(start_time, config)

        counts_by_position: Dict[int, List[int]] = {}
        aborted = False

        if config.workers > 1 and n > 1:
            with ProcessPoolExecutor(max_workers=config.workers) as executor:
                futures = [
                    executor.submit(_exact_candidate_task, pos, weights, threshold, use_int64)
                    for pos in range(n)
                ]
                for future in as_completed(futures):
                    position, counts = future.result()
                    counts_by_position[position] = counts
                    if deadline is not None and time.time() > deadline and len(counts_by_position) < n:
                        aborted = True
                        for pending in futures:
                            pending.cancel()
                        break
        else:
            for pos in range(n):
                if deadline is not None and time.time() > deadline:
                    aborted = True
                    break
                position, counts = _exact_candidate_task(pos, weights, threshold, use_int64)
                counts_by_position[position] = counts

        denominator = factorials[n]
        results = []
        for pos, member in enumerate(game.members):
            counts = counts_by_position.get(pos)
            if counts is None:
                results.append(PowerIndexResult(member.member_id, None))
                continue
            numerator = sum(
                c * factorials[size] * factorials[n - 1 - size]
                for size, c in enumerate(counts) if c
            )
            results.append(PowerIndexResult(
                member.member_id,
                long_division(numerator, denominator, config.precision),
                numerator,
                denominator
            ))

        return PowerIndexReport(
            results, 'exact',
            {
                **metadata,
                'n_subsets': n * 2 ** (n - 1),
                'arithmetic': 'int64' if use_int64 else 'unbounded',
                'completed_members': len(counts_by_position),
            },
            aborted=aborted
        )

    def _monte_carlo_shapley_shubik(
        self,
        game: WeightedVotingGame,
        metadata: Dict,
        config: EngineConfig,
        start_time: float
    ) -> PowerIndexReport:
        """
        Monte Carlo Shapley-Shubik index via random permutation sampling

        Algorithm:
        1. Split n_samples into batches, one SeedSequence child per batch
        2. Each batch shuffles the electorate, walks the ordering and counts
           the pivotal member in a private counts array
        3. Reduce batch counts with a single sum; φᵢ ≈ countᵢ / trials

        Error: binomial SE sqrt(φ(1-φ)/S) per member, O(1/sqrt(S))

        Returns:
        --------
        PowerIndexReport with count/n_samples rationals, stderr and 95% CIs
        """
        weights = tuple(game.weights)
        threshold = game.threshold
        use_int64 = fits_int64(weights)
        deadline = self._deadline_at(start_time, config)

        batch_sizes = [config.batch_size] * (config.n_samples // config.batch_size)
        if config.n_samples % config.batch_size:
            batch_sizes.append(config.n_samples % config.batch_size)
        seeds = np.random.SeedSequence(config.seed).spawn(len(batch_sizes))

        batch_counts: List[np.ndarray] = []
        trials_done = 0
        aborted = False

        if config.workers > 1 and len(batch_sizes) > 1:
            with ProcessPoolExecutor(max_workers=config.workers) as executor:
                futures = {
                    executor.submit(_monte_carlo_batch, weights, threshold, size, seed, use_int64): size
                    for size, seed in zip(batch_sizes, seeds)
                }
                for future in as_completed(futures):
                    batch_counts.append(future.result())
                    trials_done += futures[future]
                    if deadline is not None and time.time() > deadline and trials_done < config.n_samples:
                        aborted = True
                        for pending in futures:
                            pending.cancel()
                        break
        else:
            for size, seed in zip(batch_sizes, seeds):
                if deadline is not None and time.time() > deadline:
                    aborted = True
                    break
                batch_counts.append(_monte_carlo_batch(weights, threshold, size, seed, use_int64))
                trials_done += size

        # ═══ REDUCTION ═══
        if batch_counts:
            counts = np.sum(batch_counts, axis=0)
        else:
            counts = np.zeros(game.n_members, dtype=np.int64)

        if trials_done == 0:
            results = [PowerIndexResult(m.member_id, None) for m in game.members]
            return PowerIndexReport(
                results, 'monte_carlo', {**metadata, 'n_samples': config.n_samples},
                n_samples_used=0, aborted=True
            )

        results = [
            PowerIndexResult(
                member.member_id,
                long_division(int(counts[pos]), trials_done, config.precision),
                int(counts[pos]),
                trials_done
            )
            for pos, member in enumerate(game.members)
        ]

        stderr, lower, upper = proportion_confidence_interval(counts, trials_done)
        confidence_intervals = {
            member.member_id: (float(lower[pos]), float(upper[pos]))
            for pos, member in enumerate(game.members)
        }

        return PowerIndexReport(
            results, 'monte_carlo',
            {
                **metadata,
                'n_samples': config.n_samples,
                'seed': config.seed,
                'arithmetic': 'int64' if use_int64 else 'unbounded',
            },
            n_samples_used=trials_done,
            stderr=stderr,
            confidence_intervals=confidence_intervals,
            aborted=aborted
        )


def shapley_shubik(
    weights: Dict,
    quorum: Percentage,
    total_weight: Optional[int] = None,
    method: str = 'auto',
    **overrides
) -> Dict:
    """
    Convenience wrapper: {member_id: weight} + quorum percentage -> {member_id: index}

    >>> shapley_shubik({'A': 1, 'B': 1, 'C': 1, 'D': 1}, 51)
    {'A': '0.25', 'B': '0.25', 'C': '0.25', 'D': '0.25'}
    """
    game = WeightedVotingGame.from_quorum(
        [Member(k, w) for k, w in weights.items()], quorum, total_weight
    )
    return PowerIndexEngine(**overrides).compute(game, method=method).as_dict()
