"""
Starting-ability helpers.

A new session starts at the configured ``starting_ability`` unless the caller
has history for the test-taker. Two sources are supported:

    - Earlier adaptive sessions: precision-weighted average of their final
      estimates (weight = 1 / SE^2).
    - Earlier non-adaptive scores: mean score fraction mapped onto the logit
      scale with ``ln(p / (1 - p)) / 1.7``.
"""
import logging
import math
from typing import Iterable, List, Tuple

logger = logging.getLogger(__name__)

# Logistic-to-normal scaling constant
LOGIT_SCALING = 1.7

# Score fractions outside [FRACTION_FLOOR, FRACTION_CEILING] saturate
FRACTION_FLOOR = 0.01
FRACTION_CEILING = 0.99
SATURATED_THETA = 3.0

# Bounds for a prior derived from previous sessions
PRIOR_THETA_BOUND = 3.0
PRIOR_SD_MIN = 0.1
PRIOR_SD_MAX = 1.0


def compute_prior_theta(
    previous_thetas: List[float],
    previous_ses: List[float],
) -> Tuple[float, float]:
    """
    Compute a prior ability estimate from a test-taker's previous sessions.

    Uses precision-weighted averaging of previous theta estimates, where
    precision = 1/SE². Sessions with a non-positive or infinite SE carry no
    usable precision and are skipped.

    Args:
        previous_thetas: Final theta estimates from past sessions.
        previous_ses: Corresponding standard errors, same length.

    Returns:
        Tuple of (prior_mean, prior_sd). (0.0, 1.0) when nothing usable.

    Raises:
        ValueError: If the two lists differ in length.
    """
    if not previous_thetas or not previous_ses:
        return (0.0, 1.0)

    if len(previous_thetas) != len(previous_ses):
        raise ValueError(
            f"previous_thetas length ({len(previous_thetas)}) must match "
            f"previous_ses length ({len(previous_ses)})"
        )

    total_precision = 0.0
    weighted_sum = 0.0
    for theta, se in zip(previous_thetas, previous_ses):
        if se <= 0 or not math.isfinite(se):
            logger.warning(f"Skipping session with unusable SE: {se}")
            continue
        precision = 1.0 / (se**2)
        total_precision += precision
        weighted_sum += theta * precision

    if total_precision == 0:
        return (0.0, 1.0)

    prior_mean = weighted_sum / total_precision
    prior_sd = 1.0 / math.sqrt(total_precision)

    prior_mean = max(-PRIOR_THETA_BOUND, min(PRIOR_THETA_BOUND, prior_mean))
    prior_sd = max(PRIOR_SD_MIN, min(PRIOR_SD_MAX, prior_sd))

    return (prior_mean, prior_sd)


def percentage_to_theta(fraction: float) -> float:
    """
    Map a score fraction in [0, 1] onto the logit ability scale.

    Fractions at or below 0.01 map to -3 and at or above 0.99 to +3.
    """
    if fraction <= FRACTION_FLOOR:
        return -SATURATED_THETA
    if fraction >= FRACTION_CEILING:
        return SATURATED_THETA
    return math.log(fraction / (1.0 - fraction)) / LOGIT_SCALING


def starting_ability_from_scores(
    scores: Iterable[Tuple[float, float]],
    default: float = 0.0,
) -> float:
    """
    Starting ability from historical (score, max_score) pairs.

    Args:
        scores: Pairs of earned and maximum score. Pairs with a
            non-positive maximum are ignored.
        default: Returned when there is no usable history.

    Returns:
        ``percentage_to_theta`` of the mean earned / maximum ratio.
    """
    usable = [(earned, maximum) for earned, maximum in scores if maximum > 0]
    if not usable:
        return default

    mean_earned = sum(earned for earned, _ in usable) / len(usable)
    mean_maximum = sum(maximum for _, maximum in usable) / len(usable)
    return percentage_to_theta(mean_earned / mean_maximum)
