"""
Content balancing for Computerized Adaptive Testing.

Keeps adaptive tests from ending up unbalanced across topics. A
``ContentConstraints`` value names a minimum number of administered items per
content tag; while any tag is short of its minimum, item selection is
restricted to items carrying an unmet tag.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentConstraints:
    """
    Minimum per-tag coverage for a session.

    Attributes:
        min_items_per_tag: Content tag -> minimum number of items that must
            be administered from that tag.
    """

    min_items_per_tag: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for tag, minimum in self.min_items_per_tag.items():
            if minimum < 0:
                raise ValueError(
                    f"Minimum coverage must be non-negative, got {minimum} for tag '{tag}'"
                )


def track_tag_coverage(administered_items: Iterable[Any]) -> Dict[str, int]:
    """
    Count administered items per content tag.

    Items without a tag are not counted.
    """
    coverage: Dict[str, int] = {}
    for item in administered_items:
        tag = get_item_tag(item)
        if tag is not None:
            coverage[tag] = coverage.get(tag, 0) + 1
    return coverage


def unmet_tags(
    coverage: Mapping[str, int],
    constraints: Optional[ContentConstraints],
) -> Set[str]:
    """Tags whose administered count is still below the configured minimum."""
    if constraints is None:
        return set()
    return {
        tag
        for tag, minimum in constraints.min_items_per_tag.items()
        if coverage.get(tag, 0) < minimum
    }


def apply_content_balancing(
    eligible: List[Any],
    coverage: Mapping[str, int],
    constraints: Optional[ContentConstraints],
) -> List[Any]:
    """
    Restrict ``eligible`` to items from tags that still need coverage.

    If no unmet tag has an eligible item left, the pool is returned
    unchanged so balancing can never starve the test.
    """
    deficit = unmet_tags(coverage, constraints)
    if not deficit:
        return eligible

    constrained = [item for item in eligible if get_item_tag(item) in deficit]
    if constrained:
        logger.debug(
            f"Content balancing: restricting to unmet tags {sorted(deficit)} "
            f"({len(constrained)} items available)"
        )
        return constrained

    logger.debug(
        f"Content balancing: no eligible items for unmet tags {sorted(deficit)}; "
        f"using full pool"
    )
    return eligible


def is_content_balanced(
    coverage: Mapping[str, int],
    constraints: Optional[ContentConstraints],
) -> bool:
    """``True`` when every tag meets its minimum coverage."""
    return not unmet_tags(coverage, constraints)


def get_item_tag(item: Any) -> Optional[str]:
    """
    Extract the content tag from an item.

    Handles both plain strings and str-backed enums.
    """
    tag = getattr(item, "content_tag", None)
    if tag is None:
        return None
    return tag.value if hasattr(tag, "value") else tag
