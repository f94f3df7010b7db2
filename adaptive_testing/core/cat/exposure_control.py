"""
Simple usage-cap exposure control for Computerized Adaptive Testing.

Over-exposure happens when a small subset of items is administered
disproportionately often, compromising item security. The engine supports a
plain usage cap: an item whose administration count has reached
``max_exposures`` is left out of selection.

Key components:
    - ExposureCap: counts + cap handed to item selection
    - ExposureMonitor: thread-safe, caller-owned tracking of per-item usage
      across sessions, with over-exposure alerts

The engine itself holds no shared counters; callers own the monitor and pass
a snapshot of its counts into each selection.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# Default exposure rate threshold for logging alerts (15%)
DEFAULT_EXPOSURE_ALERT_THRESHOLD = 0.15


@dataclass(frozen=True)
class ExposureCap:
    """
    Usage cap for item selection.

    Attributes:
        exposure_counts: Item id -> number of times already administered
            (across sessions).
        max_exposures: Items with a count at or above this are ineligible.
            ``None`` disables the cap.
    """

    exposure_counts: Mapping[Any, int] = field(default_factory=dict)
    max_exposures: Optional[int] = None

    def __post_init__(self) -> None:
        if self.max_exposures is not None and self.max_exposures < 1:
            raise ValueError(
                f"max_exposures must be at least 1, got {self.max_exposures}"
            )

    def allows(self, item_id: Any) -> bool:
        if self.max_exposures is None:
            return True
        return self.exposure_counts.get(item_id, 0) < self.max_exposures


def filter_overexposed(
    items: Sequence[Any],
    cap: Optional[ExposureCap],
) -> List[Any]:
    """Drop items that have reached the usage cap."""
    if cap is None or cap.max_exposures is None:
        return list(items)

    allowed = [item for item in items if cap.allows(item.id)]
    dropped = len(items) - len(allowed)
    if dropped:
        logger.debug(
            f"Exposure cap: excluded {dropped} items at or above "
            f"{cap.max_exposures} exposures"
        )
    return allowed


class ExposureMonitor:
    """
    Tracks per-item exposure and alerts on over-exposure.

    Thread-safe. Uses in-memory counters within a single process; the
    host application decides how counts are shared or persisted.

    Exposure rate is defined as:
        rate_i = (selections_i) / (total_selections)

    Example usage:
        monitor = ExposureMonitor(alert_threshold=0.15)

        cap = monitor.cap(max_exposures=500)
        result = manager.advance(session, pool, response, exposure_cap=cap)
        if result.next_item is not None:
            monitor.record_selection(result.next_item.id)

    Attributes:
        alert_threshold: Exposure rate above which items are flagged (0.0-1.0).
    """

    def __init__(self, alert_threshold: float = DEFAULT_EXPOSURE_ALERT_THRESHOLD):
        if not (0.0 <= alert_threshold <= 1.0):
            raise ValueError(
                f"alert_threshold must be in [0.0, 1.0], got {alert_threshold}"
            )

        self._lock = threading.Lock()
        self._item_counts: Dict[Any, int] = {}
        self._total_selections = 0
        self.alert_threshold = alert_threshold

    def record_selection(self, item_id: Any) -> None:
        """Record that an item was administered."""
        with self._lock:
            self._item_counts[item_id] = self._item_counts.get(item_id, 0) + 1
            self._total_selections += 1

    def get_exposure_counts(self) -> Dict[Any, int]:
        """Snapshot of per-item administration counts."""
        with self._lock:
            return dict(self._item_counts)

    def cap(self, max_exposures: Optional[int]) -> ExposureCap:
        """Build an ExposureCap from the current counts."""
        return ExposureCap(
            exposure_counts=self.get_exposure_counts(),
            max_exposures=max_exposures,
        )

    def get_exposure_rate(self, item_id: Any) -> float:
        """Exposure rate for one item, 0.0 if never selected."""
        with self._lock:
            if self._total_selections == 0:
                return 0.0
            return self._item_counts.get(item_id, 0) / self._total_selections

    def get_overexposed_items(self) -> List[Tuple[Any, float]]:
        """
        Items exceeding the alert threshold.

        Returns:
            (item_id, exposure_rate) tuples sorted by rate, highest first.
        """
        with self._lock:
            if self._total_selections == 0:
                return []
            rates = {
                item_id: count / self._total_selections
                for item_id, count in self._item_counts.items()
            }
        overexposed = [
            (item_id, rate)
            for item_id, rate in rates.items()
            if rate > self.alert_threshold
        ]
        overexposed.sort(key=lambda x: x[1], reverse=True)
        return overexposed

    def check_and_alert(self) -> List[Tuple[Any, float]]:
        """Log a warning for each over-exposed item and return them."""
        overexposed = self.get_overexposed_items()
        if overexposed:
            logger.warning(
                f"Exposure alert: {len(overexposed)} items exceed "
                f"{self.alert_threshold:.1%} threshold"
            )
            for item_id, rate in overexposed[:10]:
                logger.warning(f"  Item {item_id}: {rate:.1%} exposure")
            if len(overexposed) > 10:
                logger.warning(f"  ... and {len(overexposed) - 10} more items")
        return overexposed

    @property
    def total_selections(self) -> int:
        with self._lock:
            return self._total_selections

    def reset(self) -> None:
        """Reset all counters."""
        with self._lock:
            self._item_counts.clear()
            self._total_selections = 0
            logger.info("ExposureMonitor counters reset")
