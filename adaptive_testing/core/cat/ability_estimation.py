"""
Maximum-likelihood ability estimation for Computerized Adaptive Testing.

Newton-Raphson over the 2PL log-likelihood of the full response history.
The estimate is recomputed from scratch on every call; the only carried state
is the starting point (the previous estimate), so two calls with the same
inputs return identical results.

For each iteration:
    S = sum(a_i * (u_i - P_i(theta)))          score (first derivative)
    H = sum(a_i^2 * P_i(theta) * (1 - P_i))    information (negative second derivative)
    theta <- theta + clamp(S / H, -max_step, +max_step)

All-correct and all-incorrect histories have no finite MLE. For those the
estimator takes one clamped step from the previous estimate, so theta walks
outward by at most ``max_step_size`` per response and remains bounded.

Standard error:
    SE = 1 / sqrt(sum of capped item information at the final theta)
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

from adaptive_testing.core.cat._types import AbilityEstimate, Item, Response
from adaptive_testing.core.cat.information import (
    fisher_information_2pl,
    total_information,
)
from adaptive_testing.core.cat.response_model import probability_correct
from adaptive_testing.core.config import EngineConfig

logger = logging.getLogger(__name__)

# Total information below this is treated as a flat likelihood
INFORMATION_FLOOR = 1e-6


def estimate_ability(
    responses: Sequence[Response],
    items: Sequence[Item],
    prior_estimate: AbilityEstimate,
    config: Optional[EngineConfig] = None,
) -> AbilityEstimate:
    """
    Estimate ability from the full response history.

    Args:
        responses: Scored responses in administration order.
        items: Administered items in the same order. May be one longer than
            ``responses`` when the last item is still unanswered.
        prior_estimate: Previous estimate; its theta is the Newton starting
            point (the session's starting ability before any response).
        config: Engine configuration (defaults when omitted).

    Returns:
        A fresh AbilityEstimate. With no responses, the prior theta with an
        infinite standard error.

    Raises:
        ValueError: If a response does not line up with its item.
    """
    cfg = config if config is not None else EngineConfig()
    pairs = _pair_responses(responses, items)

    theta = prior_estimate.theta
    if not pairs:
        return AbilityEstimate(theta=theta)

    correct_count = sum(1 for _, response in pairs if response.correct)
    degenerate = correct_count in (0, len(pairs))
    max_iterations = 1 if degenerate else cfg.max_newton_iterations

    converged = False
    iterations = 0
    for _ in range(max_iterations):
        score, information = _score_and_information(theta, pairs)
        if information < INFORMATION_FLOOR:
            logger.debug(
                f"Flat likelihood at theta={theta:.3f} "
                f"(H={information:.2e}); stopping iteration"
            )
            break

        step = score / information
        step = max(-cfg.max_step_size, min(cfg.max_step_size, step))
        theta_new = theta + step
        iterations += 1

        if abs(theta_new - theta) < cfg.convergence_tolerance:
            theta = theta_new
            converged = True
            break
        theta = theta_new

    if degenerate:
        logger.debug(
            f"Degenerate response pattern ({correct_count}/{len(pairs)} correct): "
            f"single bounded step to theta={theta:.3f}"
        )

    final_information = total_information(
        theta, (item for item, _ in pairs), cfg.information_cap
    )
    if final_information < INFORMATION_FLOOR:
        standard_error = math.inf
    else:
        standard_error = 1.0 / math.sqrt(final_information)

    lower, upper = cfg.theta_bounds
    clamped = not lower <= theta <= upper
    if clamped:
        logger.warning(
            f"Theta estimate {theta:.3f} outside bounds [{lower}, {upper}]; clamping"
        )
        theta = max(lower, min(upper, theta))

    return AbilityEstimate(
        theta=theta,
        standard_error=standard_error,
        clamped=clamped,
        converged=converged,
        iterations=iterations,
    )


def _pair_responses(
    responses: Sequence[Response],
    items: Sequence[Item],
) -> List[Tuple[Item, Response]]:
    """Zip responses with their items, checking ids line up."""
    if len(items) < len(responses):
        raise ValueError(
            f"Got {len(responses)} responses but only {len(items)} items"
        )
    pairs = []
    for index, (item, response) in enumerate(zip(items, responses)):
        if item.id != response.item_id:
            raise ValueError(
                f"Response {index} answers item {response.item_id!r} "
                f"but item {item.id!r} was administered"
            )
        pairs.append((item, response))
    return pairs


def _score_and_information(
    theta: float,
    pairs: Sequence[Tuple[Item, Response]],
) -> Tuple[float, float]:
    """Score S and uncapped information H of the log-likelihood at theta."""
    score = 0.0
    information = 0.0
    for item, response in pairs:
        p = probability_correct(theta, item)
        u = 1.0 if response.correct else 0.0
        score += item.discrimination * (u - p)
        information += fisher_information_2pl(theta, item.discrimination, item.difficulty)
    return score, information
