"""
Maximum Fisher Information (MFI) item selection for Computerized Adaptive Testing.

Selects the next item from the remaining pool that maximizes (capped) item
information at the current ability estimate. For the 2PL IRT model:

    I_i(theta) = min(a_i^2 * P_i(theta) * (1 - P_i(theta)), cap)

The selection pipeline:
1. Filter out items already administered in the session
2. Drop items that reached the exposure usage cap (if one is given)
3. Apply content balancing constraints (unmet tag minimums)
4. Compute information for each eligible item at current theta
5. Return the most informative item; ties go to the lowest item id

Selection is deterministic so that a session replayed from the same state
picks the same item.

References:
    - Lord, F. M. (1980). Applications of item response theory to practical
      testing problems.
"""

import logging
from dataclasses import dataclass
from typing import AbstractSet, Any, List, Optional, Sequence

from adaptive_testing.core.cat._types import AbilityEstimate, Item
from adaptive_testing.core.cat.content_balancing import (
    ContentConstraints,
    apply_content_balancing,
    track_tag_coverage,
)
from adaptive_testing.core.cat.exposure_control import ExposureCap, filter_overexposed
from adaptive_testing.core.cat.information import (
    DEFAULT_INFORMATION_CAP,
    item_information,
)

logger = logging.getLogger(__name__)


@dataclass
class ItemCandidate:
    """An item with its computed information value."""

    item: Item
    information: float


def select_next_item(
    item_pool: Sequence[Item],
    estimate: AbilityEstimate,
    administered_ids: AbstractSet[Any],
    content_constraints: Optional[ContentConstraints] = None,
    exposure_cap: Optional[ExposureCap] = None,
    information_cap: float = DEFAULT_INFORMATION_CAP,
    administered_items: Optional[Sequence[Item]] = None,
) -> Optional[Item]:
    """
    Select the next item using Maximum Fisher Information with constraints.

    Args:
        item_pool: Calibrated items available to this test.
        estimate: Current ability estimate; only ``theta`` is used.
        administered_ids: Ids of items already shown in this session.
        content_constraints: Optional minimum per-tag coverage.
        exposure_cap: Optional usage cap across sessions.
        information_cap: Ceiling applied to each item's information.
        administered_items: Items already shown, used for tag coverage.
            Looked up in ``item_pool`` by id when omitted.

    Returns:
        The selected Item, or None if no eligible item remains.
    """
    eligible = [item for item in item_pool if item.id not in administered_ids]
    eligible = filter_overexposed(eligible, exposure_cap)

    if not eligible:
        logger.warning(
            "No eligible items remaining after filtering. "
            f"Pool size: {len(item_pool)}, "
            f"administered: {len(administered_ids)}"
        )
        return None

    if content_constraints is not None:
        administered = administered_items
        if administered is None:
            administered = [item for item in item_pool if item.id in administered_ids]
        eligible = apply_content_balancing(
            eligible=eligible,
            coverage=track_tag_coverage(administered),
            constraints=content_constraints,
        )

    candidates = rank_candidates(eligible, estimate.theta, information_cap)
    selected = candidates[0]

    logger.debug(
        f"Item selection: theta={estimate.theta:.3f}, "
        f"eligible={len(candidates)}, "
        f"selected {selected.item.id} "
        f"(a={selected.item.discrimination:.2f}, "
        f"b={selected.item.difficulty:.2f}, "
        f"info={selected.information:.4f})"
    )

    return selected.item


def rank_candidates(
    items: Sequence[Item],
    theta: float,
    information_cap: float = DEFAULT_INFORMATION_CAP,
) -> List[ItemCandidate]:
    """
    Rank items by information at ``theta``, most informative first.

    Ties are ordered by item id so ranking is reproducible.
    """
    candidates = [
        ItemCandidate(item=item, information=item_information(theta, item, information_cap))
        for item in items
    ]
    candidates.sort(key=lambda c: (-c.information, c.item.id))
    return candidates
