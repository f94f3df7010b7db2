"""
Item information for the 2PL model.

    I_i(theta) = a_i^2 * P_i(theta) * (1 - P_i(theta))

Information used for selection and standard errors is capped at
DEFAULT_INFORMATION_CAP. Very high discrimination near the ability estimate
would otherwise let one response collapse the standard error and end the test
after a single question. The cap is an intentional approximation.
"""

import logging
from typing import Any, Iterable

from adaptive_testing.core.cat.response_model import probability_2pl

logger = logging.getLogger(__name__)

DEFAULT_INFORMATION_CAP = 2.0


def fisher_information_2pl(
    theta: float,
    discrimination: float,
    difficulty: float,
) -> float:
    """
    Compute uncapped Fisher information for a 2PL item.

    Args:
        theta: Current ability estimate.
        discrimination: Item discrimination parameter (a). Must be > 0.
        difficulty: Item difficulty parameter (b).

    Returns:
        Fisher information value (non-negative).

    Raises:
        ValueError: If discrimination is not positive.
    """
    if discrimination <= 0:
        raise ValueError(
            f"Discrimination parameter must be positive, got {discrimination}"
        )

    prob = probability_2pl(theta, discrimination, difficulty)
    return (discrimination**2) * prob * (1.0 - prob)


def item_information(
    theta: float,
    item: Any,
    cap: float = DEFAULT_INFORMATION_CAP,
) -> float:
    """
    Information ``item`` provides at ``theta``, capped at ``cap``.

    Args:
        theta: Ability level.
        item: Object with ``discrimination`` and ``difficulty`` attributes.
        cap: Ceiling applied to the information value.

    Returns:
        min(a^2 * P * (1 - P), cap)
    """
    information = fisher_information_2pl(theta, item.discrimination, item.difficulty)
    if information > cap:
        logger.debug(
            f"Information for item {item.id} capped from {information:.4f} "
            f"to {cap:.4f} at theta={theta:.3f}"
        )
        return cap
    return information


def total_information(
    theta: float,
    items: Iterable[Any],
    cap: float = DEFAULT_INFORMATION_CAP,
) -> float:
    """Test information: sum of capped item information over ``items``."""
    return sum(item_information(theta, item, cap) for item in items)
