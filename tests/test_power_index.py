# =============================================================================
# FILE: tests/test_power_index.py
"""
Unit Tests for the Power Index Engine

Covers the exact calculator, the Monte Carlo estimator and the dispatcher's
validation and short-circuit rules.

Priority: CRITICAL | Status: Production-Ready
Version: 1.0.0
"""
import pytest
import numpy as np
from fractions import Fraction

from powerindex.modules.data_gen import ElectorateGenerator
from powerindex.modules.game import Member, WeightedVotingGame
from powerindex.modules.power_index import (
    PowerIndexEngine,
    _pivotal_counts_int64,
    _pivotal_counts_unbounded,
    shapley_shubik
)
from powerindex.utils.config import EngineConfig
from powerindex.utils.validation import (
    CombinatorialSizeError,
    CombinatorialSizeWarning,
    InvalidWeight,
    MalformedThreshold
)


@pytest.fixture
def one_partner_game():
    """A needs one partner: threshold 61 of 100"""
    return WeightedVotingGame.from_weights({'A': 60, 'B': 30, 'C': 10}, threshold=61)


@pytest.fixture
def dictator_game():
    """A alone meets the 51% quorum"""
    return WeightedVotingGame.from_quorum(
        [Member('A', 60), Member('B', 30), Member('C', 10)], 51, total_weight=100
    )


@pytest.fixture
def engine():
    return PowerIndexEngine(seed=42)


def fractions_of(report):
    return [r.fraction for r in report.results]


class TestExactCalculator:
    """Test suite for exact Shapley-Shubik computation"""

    def test_one_partner_game(self, engine, one_partner_game):
        """A pivotal in 4 of 6 orderings, B and C in 1 each"""
        report = engine.compute(one_partner_game, method='exact')

        assert report.method == 'exact'
        assert fractions_of(report) == [Fraction(2, 3), Fraction(1, 6), Fraction(1, 6)]
        assert report.as_dict() == {
            'A': '0.' + '6' * 20,
            'B': '0.1' + '6' * 19,
            'C': '0.1' + '6' * 19,
        }

    def test_dictator_game(self, engine, dictator_game):
        """60 >= 51: A is pivotal in every ordering"""
        assert dictator_game.threshold == 51
        report = engine.compute(dictator_game, method='exact')

        assert report.as_dict() == {'A': '1', 'B': '0', 'C': '0'}

    def test_equal_weights_quorum(self, engine):
        """[1,1,1,1] at 51% -> threshold 3, each member 1/4"""
        members = [Member(f"m{i}", 1) for i in range(4)]
        game = WeightedVotingGame.from_quorum(members, 51)

        assert game.threshold == 3
        report = engine.compute(game, method='exact')
        assert all(r.index == '0.25' for r in report.results), report.as_dict()

    def test_efficiency_exact(self, engine):
        """Numerators of a reachable game sum exactly to n!"""
        generator = ElectorateGenerator(seed=7)
        for n in range(2, 10):
            game = generator.generate_game(n, quorum=51, decimals=6)
            report = engine.compute(game, method='exact')

            total = sum(r.numerator for r in report.results)
            assert total == report.results[0].denominator, \
                f"Efficiency violated for n={n}: {total} != {report.results[0].denominator}"

    def test_efficiency_rendered_sum(self, engine):
        """Rendered 20-digit strings sum to 1 within 1e-18"""
        game = WeightedVotingGame.from_weights({'a': 7, 'b': 5, 'c': 3, 'd': 2, 'e': 1}, threshold=10)
        report = engine.compute(game, method='exact')

        total = sum(Fraction(r.index) for r in report.results)
        assert abs(total - 1) < Fraction(1, 10**18)

    def test_symmetry(self, engine):
        game = WeightedVotingGame.from_weights({'a': 5, 'b': 5, 'c': 5}, threshold=8)
        report = engine.compute(game, method='exact')

        indices = {r.index for r in report.results}
        assert indices == {'0.' + '3' * 20}

    def test_zero_weight_member_is_null(self, engine):
        game = WeightedVotingGame.from_weights({'a': 5, 'b': 5, 'z': 0}, threshold=6)
        report = engine.compute(game, method='exact')

        assert report.as_dict() == {'a': '0.5', 'b': '0.5', 'z': '0'}

    def test_determinism(self, engine):
        """Identical inputs produce bit-identical strings"""
        game = ElectorateGenerator(seed=3).generate_game(12, quorum=60)
        first = engine.compute(game, method='exact').as_dict()
        second = PowerIndexEngine().compute(game, method='exact').as_dict()
        assert first == second

    def test_weights_beyond_int64(self, engine, one_partner_game):
        """18-decimal token balances give the same exact answer as small weights"""
        scale = 10**30
        big = WeightedVotingGame.from_weights(
            {'A': 60 * scale, 'B': 30 * scale, 'C': 10 * scale}, threshold=61 * scale
        )
        small_report = engine.compute(one_partner_game, method='exact')
        big_report = engine.compute(big, method='exact')

        assert big_report.metadata['arithmetic'] == 'unbounded'
        assert small_report.metadata['arithmetic'] == 'int64'
        assert big_report.as_dict() == small_report.as_dict()

    def test_int64_and_unbounded_kernels_agree(self):
        weights = ElectorateGenerator(seed=11).generate_weights(10, decimals=6, zero_fraction=0.2)
        threshold = sum(weights) // 2 + 1
        for pos, w in enumerate(weights):
            others = weights[:pos] + weights[pos + 1:]
            assert _pivotal_counts_int64(w, others, threshold) == \
                _pivotal_counts_unbounded(w, others, threshold), f"Mismatch for member {pos}"

    @pytest.mark.parametrize('block_bits', [0, 1, 3, 7])
    def test_int64_kernel_with_small_block(self, block_bits):
        """Members beyond the vectorised block are walked, not materialised"""
        others = ElectorateGenerator(seed=13).generate_weights(11, decimals=6, zero_fraction=0.2)
        for threshold in [1, sum(others) // 3, sum(others) // 2 + 1, sum(others)]:
            expected = _pivotal_counts_unbounded(others[0] // 2 + 1, others, threshold)
            result = _pivotal_counts_int64(others[0] // 2 + 1, others, threshold, block_bits=block_bits)
            assert result == expected, f"Mismatch at threshold={threshold}, block_bits={block_bits}"

    def test_large_exact_game_beyond_block(self, monkeypatch):
        """Exact path with more members than the vectorised block stays exact"""
        import powerindex.modules.power_index as power_index
        monkeypatch.setattr(power_index, '_VECTOR_BITS', 4)

        game = ElectorateGenerator(seed=17).generate_game(12, quorum=51, decimals=6)
        blocked = PowerIndexEngine().compute(game, method='exact')
        scaled = WeightedVotingGame.from_weights(
            {m.member_id: m.weight * 10**20 for m in game.members}, threshold=game.threshold * 10**20
        )
        unbounded = PowerIndexEngine().compute(scaled, method='exact')

        assert blocked.metadata['arithmetic'] == 'int64'
        assert unbounded.metadata['arithmetic'] == 'unbounded'
        assert blocked.as_dict() == unbounded.as_dict()

    def test_custom_precision(self, one_partner_game):
        report = PowerIndexEngine(precision=4).compute(one_partner_game, method='exact')
        assert report.as_dict()['A'] == '0.6666'

    def test_parallel_matches_serial(self):
        game = ElectorateGenerator(seed=5).generate_game(9, quorum=55)
        serial = PowerIndexEngine().compute(game, method='exact')
        parallel = PowerIndexEngine(workers=2).compute(game, method='exact')
        assert serial.as_dict() == parallel.as_dict()

    def test_size_warning(self):
        game = WeightedVotingGame.from_weights({i: i + 1 for i in range(5)}, threshold=8)
        engine = PowerIndexEngine(safe_exact_bound=3)

        with pytest.warns(CombinatorialSizeWarning):
            report = engine.compute(game, method='exact')
        assert sum(r.numerator for r in report.results) == report.results[0].denominator

    def test_hard_cap(self):
        game = WeightedVotingGame.from_weights({i: i + 1 for i in range(5)}, threshold=8)
        engine = PowerIndexEngine(safe_exact_bound=3, hard_cap=True)

        with pytest.raises(CombinatorialSizeError):
            engine.compute(game, method='exact')

    def test_deadline_aborts_with_partial_results(self):
        game = ElectorateGenerator(seed=1).generate_game(18, quorum=51, decimals=6)
        report = PowerIndexEngine(deadline=1e-6).compute(game, method='exact')

        assert report.aborted
        assert any(r.index is None for r in report.results)
        for r in report.results:
            if r.index is not None:
                assert r.numerator is not None


class TestMonteCarloEstimator:
    """Test suite for Monte Carlo Shapley-Shubik estimation"""

    def test_converges_to_exact(self):
        """S = 10^6 seeded trials land within 0.01 of the exact indices"""
        game = WeightedVotingGame.from_weights(
            {'a': 9, 'b': 7, 'c': 4, 'd': 3, 'e': 2, 'f': 1}, threshold=14
        )
        exact = PowerIndexEngine().compute(game, method='exact')
        mc = PowerIndexEngine(seed=42, n_samples=1_000_000, batch_size=100_000).compute(
            game, method='monte_carlo'
        )

        exact_values = np.array([float(f) for f in fractions_of(exact)])
        mc_values = np.array([float(f) for f in fractions_of(mc)])
        assert mc.n_samples_used == 1_000_000
        assert np.allclose(mc_values, exact_values, atol=0.01), \
            f"MC didn't converge: {mc_values} vs {exact_values}"

    def test_counts_sum_to_samples(self):
        game = ElectorateGenerator(seed=2).generate_game(30, quorum=51)
        report = PowerIndexEngine(seed=1, n_samples=5000).compute(game, method='monte_carlo')

        assert sum(r.numerator for r in report.results) == 5000
        assert all(r.denominator == 5000 for r in report.results)

    def test_seed_reproducibility(self):
        game = ElectorateGenerator(seed=2).generate_game(25, quorum=51)
        first = PowerIndexEngine(seed=9, n_samples=3000).compute(game).as_dict()
        second = PowerIndexEngine(seed=9, n_samples=3000).compute(game).as_dict()
        assert first == second

    def test_parallel_batches_match_serial(self):
        game = ElectorateGenerator(seed=4).generate_game(12, quorum=51)
        config = EngineConfig(seed=3, n_samples=4000, batch_size=1000)
        serial = PowerIndexEngine(config).compute(game, method='monte_carlo')
        parallel = PowerIndexEngine(config, workers=2).compute(game, method='monte_carlo')
        assert serial.as_dict() == parallel.as_dict()

    def test_unbounded_weights(self):
        scale = 10**30
        game = WeightedVotingGame.from_weights(
            {'A': 60 * scale, 'B': 30 * scale, 'C': 10 * scale}, threshold=61 * scale
        )
        report = PowerIndexEngine(seed=0, n_samples=20000).compute(game, method='monte_carlo')

        assert report.metadata['arithmetic'] == 'unbounded'
        values = np.array([float(f) for f in fractions_of(report)])
        assert np.allclose(values, [2 / 3, 1 / 6, 1 / 6], atol=0.02), values

    def test_zero_weight_never_credited(self):
        game = WeightedVotingGame.from_weights({'a': 4, 'b': 3, 'z': 0, 'c': 2}, threshold=5)
        report = PowerIndexEngine(seed=5, n_samples=5000).compute(game, method='monte_carlo')
        assert report.as_dict()['z'] == '0'

    def test_confidence_intervals(self):
        game = WeightedVotingGame.from_weights({'a': 3, 'b': 2, 'c': 2}, threshold=4)
        report = PowerIndexEngine(seed=8, n_samples=20000).compute(game, method='monte_carlo')

        assert report.stderr is not None and len(report.stderr) == 3
        for member_id, (low, high) in report.confidence_intervals.items():
            assert 0.0 <= low <= high <= 1.0
        # Each member is pivotal only in the middle position: 1/3
        for low, high in report.confidence_intervals.values():
            assert low - 0.01 <= 1 / 3 <= high + 0.01

    def test_deadline_reports_trials_done(self):
        game = ElectorateGenerator(seed=6).generate_game(40, quorum=51)
        report = PowerIndexEngine(seed=1, n_samples=1_000_000, batch_size=1000, deadline=1e-6).compute(
            game, method='monte_carlo'
        )
        assert report.aborted
        assert report.n_samples_used < 1_000_000


class TestDispatcher:
    """Test suite for validation, short-circuits and path selection"""

    def test_auto_selects_exact_for_small_games(self, engine, one_partner_game):
        assert engine.compute(one_partner_game).method == 'exact'

    def test_auto_selects_monte_carlo_above_threshold(self):
        game = ElectorateGenerator(seed=3).generate_game(8, quorum=51)
        report = PowerIndexEngine(exact_threshold=5, n_samples=2000, seed=1).compute(game)
        assert report.method == 'monte_carlo'

    def test_empty_game(self, engine):
        game = WeightedVotingGame((), threshold=0, total_weight=0)
        for method in PowerIndexEngine.METHODS:
            report = engine.compute(game, method=method)
            assert len(report) == 0
            assert report.metadata['reason'] == 'empty'

    @pytest.mark.parametrize('method', ['auto', 'exact', 'monte_carlo'])
    def test_unreachable_threshold(self, engine, method):
        game = WeightedVotingGame.from_weights({'a': 1, 'b': 2}, threshold=4)
        report = engine.compute(game, method=method)

        assert report.method == 'short_circuit'
        assert report.as_dict() == {'a': '0', 'b': '0'}

    def test_unreachable_against_basis(self, engine):
        """Threshold above the total supply basis is unreachable for any n"""
        members = [Member(i, 10) for i in range(30)]
        game = WeightedVotingGame(members, threshold=1001, total_weight=1000)
        report = engine.compute(game)
        assert all(r.index == '0' for r in report.results)

    def test_threshold_above_member_sum(self, engine):
        """Members holding less than the threshold never pass anything"""
        game = WeightedVotingGame([Member('a', 3), Member('b', 3)], threshold=7, total_weight=10)
        assert engine.compute(game).as_dict() == {'a': '0', 'b': '0'}

    @pytest.mark.parametrize('method', ['exact', 'monte_carlo'])
    def test_single_member(self, engine, method):
        winning = WeightedVotingGame([Member('solo', 5)], threshold=5, total_weight=10)
        losing = WeightedVotingGame([Member('solo', 5)], threshold=6, total_weight=10)

        assert engine.compute(winning, method=method).as_dict() == {'solo': '1'}
        assert engine.compute(losing, method=method).as_dict() == {'solo': '0'}

    @pytest.mark.parametrize('method', ['exact', 'monte_carlo'])
    def test_zero_threshold(self, engine, method):
        """0% quorum: the first member of every ordering decides"""
        game = WeightedVotingGame.from_quorum([Member(i, w) for i, w in enumerate([5, 0, 3, 2])], 0)
        report = engine.compute(game, method=method)

        assert report.metadata['reason'] == 'zero_threshold'
        assert all(r.index == '0.25' for r in report.results)

    def test_negative_weight_rejected(self, engine):
        game = WeightedVotingGame([Member('a', 5), Member('b', -1)], threshold=3, total_weight=4)
        with pytest.raises(InvalidWeight):
            engine.compute(game)

    def test_non_integer_weight_rejected(self, engine):
        game = WeightedVotingGame([Member('a', 5), Member('b', 1.5)], threshold=3, total_weight=7)
        with pytest.raises(InvalidWeight):
            engine.compute(game)

    @pytest.mark.parametrize('bad_weight', ['5', 2.5, None, -3])
    def test_from_weights_validates_before_summing(self, bad_weight):
        with pytest.raises(InvalidWeight):
            WeightedVotingGame.from_weights({'a': 4, 'b': bad_weight}, threshold=3)

    def test_from_quorum_validates_before_summing(self):
        with pytest.raises(InvalidWeight):
            WeightedVotingGame.from_quorum([Member('a', 4), Member('b', '5')], 51)

    def test_non_integer_threshold_rejected(self, engine):
        game = WeightedVotingGame([Member('a', 5), Member('b', 1)], threshold=3.5, total_weight=6)
        with pytest.raises(MalformedThreshold):
            engine.compute(game)

    def test_duplicate_ids_rejected(self, engine):
        game = WeightedVotingGame([Member('a', 5), Member('a', 1)], threshold=3, total_weight=6)
        with pytest.raises(ValueError):
            engine.compute(game)

    def test_unknown_method(self, engine, one_partner_game):
        with pytest.raises(ValueError, match="Unknown power index method"):
            engine.compute(one_partner_game, method='banzhaf')

    def test_results_follow_input_order(self, engine):
        game = WeightedVotingGame.from_weights({'z': 1, 'y': 2, 'x': 3}, threshold=4)
        report = engine.compute(game)
        assert [r.member_id for r in report.results] == ['z', 'y', 'x']

    def test_convenience_wrapper(self):
        assert shapley_shubik({'A': 1, 'B': 1, 'C': 1, 'D': 1}, 51) == \
            {'A': '0.25', 'B': '0.25', 'C': '0.25', 'D': '0.25'}

    def test_report_frame_and_summary(self, engine, one_partner_game):
        report = engine.compute(one_partner_game)
        frame = report.to_frame()

        assert list(frame['member_id']) == ['A', 'B', 'C']
        assert np.isclose(frame['index_float'].sum(), 1.0)
        assert 'PowerIndexReport: exact' in report.summary()
