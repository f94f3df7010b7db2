"""
Stopping rules for Computerized Adaptive Testing (CAT).

A pure decision over session counters and precision. Rules are evaluated in
priority order after each response is scored and the estimate recomputed:

    1. Maximum length: stop at ``max_questions`` (hard ceiling, always wins)
    2. Precision: stop when SE <= ``standard_error_threshold`` once both
       ``min_questions`` and ``absolute_minimum_questions`` are reached
    3. Pool exhaustion: stop when item selection found nothing to administer
    4. Otherwise continue

``absolute_minimum_questions`` is a floor independent of ``min_questions``:
a loose threshold or an unexpectedly informative first item can never end a
test after a single response.

References:
    - Weiss, D. J., & Kingsbury, G. G. (1984). Application of computerized
      adaptive testing to educational problems. Journal of Educational
      Measurement, 21(4), 361-375.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from adaptive_testing.core.cat._types import TerminationReason
from adaptive_testing.core.config import TerminationCriteria

logger = logging.getLogger(__name__)


@dataclass
class StoppingDecision:
    """
    Result of evaluating stopping criteria for a CAT session.

    Attributes:
        should_stop: Whether the test should terminate.
        reason: Termination reason (if should_stop=True), or None.
        details: Diagnostic information:
            - num_items, standard_error, se_threshold
            - min_items_met: both minimums reached
            - at_max_items: maximum length reached
            - precision_met: SE at or below threshold
            - pool_exhausted: selection reported no item
    """

    should_stop: bool
    reason: Optional[TerminationReason]
    details: Dict[str, Any]


def check_stopping_criteria(
    num_items: int,
    standard_error: float,
    criteria: TerminationCriteria,
    pool_exhausted: bool = False,
) -> StoppingDecision:
    """
    Decide whether an adaptive session should stop.

    Args:
        num_items: Number of scored responses so far.
        standard_error: Current standard error (``math.inf`` before any
            informative response).
        criteria: Termination configuration.
        pool_exhausted: True when item selection has no item to offer.

    Returns:
        StoppingDecision with should_stop flag, reason, and diagnostic details.

    Raises:
        ValueError: If num_items or standard_error is negative.
    """
    if num_items < 0:
        raise ValueError(f"Number of items must be non-negative, got {num_items}")
    if standard_error < 0 or math.isnan(standard_error):
        raise ValueError(f"Standard error must be non-negative, got {standard_error}")

    min_items_met = (
        num_items >= criteria.min_questions
        and num_items >= criteria.absolute_minimum_questions
    )
    precision_met = standard_error <= criteria.standard_error_threshold

    details: Dict[str, Any] = {
        "num_items": num_items,
        "standard_error": standard_error,
        "se_threshold": criteria.standard_error_threshold,
        "min_items_met": min_items_met,
        "at_max_items": num_items >= criteria.max_questions,
        "precision_met": precision_met,
        "pool_exhausted": pool_exhausted,
    }

    # Rule 1: Maximum length overrides all other rules
    if num_items >= criteria.max_questions:
        logger.info(
            f"Stopping: reached maximum length ({num_items}/{criteria.max_questions})"
        )
        return StoppingDecision(
            should_stop=True,
            reason=TerminationReason.MAX_LENGTH_REACHED,
            details=details,
        )

    # Rule 2: Precision, gated by both minimums
    if min_items_met and precision_met:
        logger.info(
            f"Stopping: SE threshold met (SE={standard_error:.4f} <= "
            f"{criteria.standard_error_threshold:.4f}) after {num_items} items"
        )
        return StoppingDecision(
            should_stop=True,
            reason=TerminationReason.PRECISION_REACHED,
            details=details,
        )

    # Rule 3: Nothing left to administer
    if pool_exhausted:
        logger.warning(f"Stopping: item pool exhausted after {num_items} items")
        return StoppingDecision(
            should_stop=True,
            reason=TerminationReason.POOL_EXHAUSTED,
            details=details,
        )

    logger.debug(
        f"Continuing: SE={standard_error:.4f} "
        f"(threshold={criteria.standard_error_threshold:.4f}), "
        f"items={num_items}, min_items_met={min_items_met}"
    )
    return StoppingDecision(should_stop=False, reason=None, details=details)
