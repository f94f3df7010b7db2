"""
Two-parameter logistic (2PL) response model.

    P(correct | theta) = 1 / (1 + exp(-a * (theta - b)))

The logit is clamped to +/-LOGIT_CLAMP so the probability never rounds to
exactly 0 or 1; information and likelihood terms divide by P * (1 - P).
"""

import math
from typing import Any

# exp(35) ~ 1.6e15: P stays strictly inside (0, 1) in double precision
LOGIT_CLAMP = 35.0


def probability_2pl(theta: float, discrimination: float, difficulty: float) -> float:
    """
    Probability of a correct response under the 2PL model.

    Args:
        theta: Ability level.
        discrimination: Item discrimination (a).
        difficulty: Item difficulty (b).

    Returns:
        Probability strictly inside (0, 1).
    """
    logit = discrimination * (theta - difficulty)
    logit = max(-LOGIT_CLAMP, min(LOGIT_CLAMP, logit))

    # Numerically stable sigmoid
    if logit >= 0:
        return 1.0 / (1.0 + math.exp(-logit))
    exp_logit = math.exp(logit)
    return exp_logit / (1.0 + exp_logit)


def probability_correct(theta: float, item: Any) -> float:
    """Probability that a test-taker at ``theta`` answers ``item`` correctly."""
    return probability_2pl(theta, item.discrimination, item.difficulty)
