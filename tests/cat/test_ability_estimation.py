"""
Tests for Newton-Raphson maximum-likelihood ability estimation.
"""

import math

import pytest

from adaptive_testing.core.cat import AbilityEstimate, Item, Response
from adaptive_testing.core.cat.ability_estimation import estimate_ability
from adaptive_testing.core.config import EngineConfig


def _history(items, pattern):
    """Responses answering ``items`` in order with the given correctness."""
    return [Response(item_id=item.id, correct=c) for item, c in zip(items, pattern)]


def _run_sequence(items, pattern, config=None, start=0.0):
    """Re-estimate after each response, threading the previous estimate."""
    estimate = AbilityEstimate(theta=start)
    thetas = []
    for n in range(1, len(pattern) + 1):
        estimate = estimate_ability(
            _history(items, pattern[:n]), items[:n], estimate, config
        )
        thetas.append(estimate.theta)
    return estimate, thetas


class TestEmptyHistory:
    def test_returns_prior_theta_with_infinite_se(self):
        estimate = estimate_ability([], [], AbilityEstimate(theta=0.4))
        assert estimate.theta == 0.4
        assert math.isinf(estimate.standard_error)
        assert not estimate.is_informative
        assert estimate.iterations == 0

    def test_pending_item_without_response_is_ignored(self, item_factory):
        items = item_factory(1)
        estimate = estimate_ability([], items, AbilityEstimate(theta=0.0))
        assert estimate.theta == 0.0
        assert math.isinf(estimate.standard_error)


class TestDegenerateHistories:
    def test_all_correct_increases_each_step(self, item_factory):
        items = item_factory(3)
        _, thetas = _run_sequence(items, [True, True, True])
        assert thetas == pytest.approx([1.0, 2.0, 3.0])
        assert thetas[0] < thetas[1] < thetas[2]

    def test_all_incorrect_decreases_each_step(self, item_factory):
        items = item_factory(3)
        _, thetas = _run_sequence(items, [False, False, False])
        assert thetas == pytest.approx([-1.0, -2.0, -3.0])

    def test_single_step_is_bounded_by_max_step_size(self, item_factory):
        config = EngineConfig(max_step_size=0.5)
        items = item_factory(1)
        estimate = estimate_ability(
            _history(items, [True]), items, AbilityEstimate(theta=0.0), config
        )
        assert estimate.theta == pytest.approx(0.5)
        assert estimate.iterations == 1
        assert not estimate.converged

    def test_all_correct_reaches_upper_bound_and_flags_clamp(self, item_factory):
        """Theta never leaves the bounds; the clamp is reported."""
        items = item_factory(6)
        estimate, thetas = _run_sequence(items, [True] * 6)
        assert max(thetas) <= 4.0
        assert estimate.theta == 4.0
        assert estimate.clamped

    def test_unclamped_estimate_is_not_flagged(self, item_factory):
        items = item_factory(2)
        estimate, _ = _run_sequence(items, [True, True])
        assert not estimate.clamped

    def test_small_step_from_far_start_is_finite(self, item_factory):
        items = item_factory(1, discrimination=1.0, difficulty=3.0)
        estimate = estimate_ability(
            _history(items, [True]), items, AbilityEstimate(theta=-4.0)
        )
        assert math.isfinite(estimate.theta)
        assert math.isfinite(estimate.standard_error)


class TestMixedHistories:
    def test_converges_to_closed_form_mle(self, item_factory):
        """Two identical items, one right one wrong: the MLE is theta=b."""
        items = item_factory(2, discrimination=1.0, difficulty=0.5)
        estimate = estimate_ability(
            _history(items, [True, False]), items, AbilityEstimate(theta=1.0)
        )
        assert estimate.theta == pytest.approx(0.5, abs=1e-3)
        assert estimate.converged
        assert estimate.standard_error == pytest.approx(1 / math.sqrt(0.5), rel=1e-3)

    def test_two_of_three_correct(self, item_factory):
        """With identical items, P(theta) equals the proportion correct."""
        items = item_factory(3, discrimination=2.0, difficulty=0.0)
        estimate = estimate_ability(
            _history(items, [True, False, True]), items, AbilityEstimate(theta=0.0)
        )
        assert estimate.theta == pytest.approx(math.log(2) / 2.0, abs=1e-3)
        assert estimate.converged

    def test_more_correct_gives_higher_theta(self, item_bank):
        items = item_bank[:6]
        low = estimate_ability(
            _history(items, [True, False, False, False, True, False]),
            items,
            AbilityEstimate(theta=0.0),
        )
        high = estimate_ability(
            _history(items, [True, True, False, True, True, False]),
            items,
            AbilityEstimate(theta=0.0),
        )
        assert high.theta > low.theta

    def test_sign_symmetry(self):
        """Mirrored items and mirrored answers give a mirrored estimate."""
        difficulties = [0.5, -0.5, 1.5]
        items = [
            Item(id=i, discrimination=1.2, difficulty=b)
            for i, b in enumerate(difficulties, start=1)
        ]
        mirrored = [
            Item(id=i, discrimination=1.2, difficulty=-b)
            for i, b in enumerate(difficulties, start=1)
        ]
        pos = estimate_ability(
            _history(items, [True, True, False]), items, AbilityEstimate(theta=0.0)
        )
        neg = estimate_ability(
            _history(mirrored, [False, False, True]),
            mirrored,
            AbilityEstimate(theta=0.0),
        )
        assert pos.theta > 0
        assert pos.theta == pytest.approx(-neg.theta, abs=1e-6)
        assert pos.standard_error == pytest.approx(neg.standard_error, abs=1e-6)

    def test_standard_error_uses_capped_information(self, item_factory):
        """Very discriminating items cannot drive SE below 1/sqrt(n * cap)."""
        items = item_factory(2, discrimination=8.0, difficulty=0.0)
        estimate = estimate_ability(
            _history(items, [True, False]), items, AbilityEstimate(theta=0.0)
        )
        assert estimate.theta == pytest.approx(0.0, abs=1e-6)
        assert estimate.standard_error == pytest.approx(1 / math.sqrt(4.0))

    def test_iteration_limit_respected(self, item_bank):
        config = EngineConfig(max_newton_iterations=1)
        items = item_bank[:4]
        estimate = estimate_ability(
            _history(items, [True, False, True, False]),
            items,
            AbilityEstimate(theta=3.5),
            config,
        )
        assert estimate.iterations <= 1


class TestRecomputation:
    def test_same_inputs_same_result(self, item_bank):
        items = item_bank[:5]
        responses = _history(items, [True, True, False, True, False])
        prior = AbilityEstimate(theta=0.2)
        first = estimate_ability(responses, items, prior)
        second = estimate_ability(responses, items, prior)
        assert first == second

    def test_does_not_mutate_inputs(self, item_factory):
        items = item_factory(2)
        responses = _history(items, [True, False])
        prior = AbilityEstimate(theta=0.0)
        estimate_ability(responses, items, prior)
        assert prior == AbilityEstimate(theta=0.0)
        assert [r.item_id for r in responses] == [1, 2]


class TestValidation:
    def test_mismatched_item_id_raises(self, item_factory):
        items = item_factory(2)
        responses = [Response(item_id=2, correct=True)]
        with pytest.raises(ValueError, match="answers item"):
            estimate_ability(responses, items, AbilityEstimate(theta=0.0))

    def test_more_responses_than_items_raises(self, item_factory):
        items = item_factory(1)
        responses = _history(item_factory(2), [True, True])
        with pytest.raises(ValueError, match="responses"):
            estimate_ability(responses, items, AbilityEstimate(theta=0.0))
