"""Value types shared across the adaptive testing engine.

All types are frozen: a Session transition produces a new Session rather than
mutating the old one, so a persisted session can be resumed without hidden
incremental state.
"""

import enum
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple, Union

from adaptive_testing.core.datetime_utils import utc_now

ItemId = Union[int, str]


class SessionStatus(str, enum.Enum):
    """Adaptive session status."""

    IN_PROGRESS = "in_progress"
    TERMINATED = "terminated"


class TerminationReason(str, enum.Enum):
    """Why an adaptive session stopped."""

    PRECISION_REACHED = "precision_reached"
    MAX_LENGTH_REACHED = "max_length_reached"
    POOL_EXHAUSTED = "pool_exhausted"


@dataclass(frozen=True)
class Item:
    """A calibrated 2PL item."""

    id: ItemId
    discrimination: float  # a parameter, > 0
    difficulty: float  # b parameter
    content_tag: Optional[str] = None


@dataclass(frozen=True)
class Response:
    """A scored answer to one administered item."""

    item_id: ItemId
    correct: bool
    timestamp: datetime = field(default_factory=utc_now)
    response_time_seconds: Optional[float] = None


@dataclass(frozen=True)
class AbilityEstimate:
    """
    Ability estimate on the logit scale.

    Attributes:
        theta: Point estimate.
        standard_error: 1/sqrt(test information); ``math.inf`` until some
            response carries information.
        clamped: The estimate was pulled back inside the theta bounds.
        converged: Newton-Raphson met the convergence tolerance.
        iterations: Number of Newton steps taken.
    """

    theta: float
    standard_error: float = math.inf
    clamped: bool = False
    converged: bool = False
    iterations: int = 0

    @property
    def is_informative(self) -> bool:
        """True once responses carry information (finite standard error)."""
        return math.isfinite(self.standard_error)


@dataclass(frozen=True)
class Session:
    """One adaptive test administration."""

    starting_ability: float
    estimate: AbilityEstimate
    administered_items: Tuple[Item, ...] = ()
    responses: Tuple[Response, ...] = ()
    status: SessionStatus = SessionStatus.IN_PROGRESS
    termination_reason: Optional[TerminationReason] = None
    # Theta recorded after each scored response (ability progression)
    theta_history: Tuple[float, ...] = ()
    session_id: Optional[str] = None
    started_at: datetime = field(default_factory=utc_now)

    @property
    def pending_item(self) -> Optional[Item]:
        """The item shown but not yet answered, if any."""
        if len(self.administered_items) > len(self.responses):
            return self.administered_items[-1]
        return None

    @property
    def answered_count(self) -> int:
        return len(self.responses)

    @property
    def administered_ids(self) -> frozenset:
        return frozenset(item.id for item in self.administered_items)

    @property
    def is_terminated(self) -> bool:
        return self.status is SessionStatus.TERMINATED
