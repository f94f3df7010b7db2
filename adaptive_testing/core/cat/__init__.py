"""
CAT (Computerized Adaptive Testing) engine.

2PL response model, capped item information, Newton-Raphson ability
estimation, maximum-information item selection, stopping rules and the
session orchestrator.
"""

from ._types import (
    AbilityEstimate,
    Item,
    Response,
    Session,
    SessionStatus,
    TerminationReason,
)
from .ability_estimation import estimate_ability
from .content_balancing import (
    ContentConstraints,
    is_content_balanced,
    track_tag_coverage,
)
from .engine import (
    AdvanceResult,
    CATResult,
    CATSessionManager,
    SessionStateError,
)
from .exposure_control import ExposureCap, ExposureMonitor
from .information import fisher_information_2pl, item_information, total_information
from .item_selection import select_next_item
from .priors import compute_prior_theta, percentage_to_theta, starting_ability_from_scores
from .response_model import probability_2pl, probability_correct
from .stopping_rules import StoppingDecision, check_stopping_criteria

__all__ = [
    "AbilityEstimate",
    "Item",
    "Response",
    "Session",
    "SessionStatus",
    "TerminationReason",
    "estimate_ability",
    "ContentConstraints",
    "is_content_balanced",
    "track_tag_coverage",
    "AdvanceResult",
    "CATResult",
    "CATSessionManager",
    "SessionStateError",
    "ExposureCap",
    "ExposureMonitor",
    "fisher_information_2pl",
    "item_information",
    "total_information",
    "select_next_item",
    "compute_prior_theta",
    "percentage_to_theta",
    "starting_ability_from_scores",
    "probability_2pl",
    "probability_correct",
    "StoppingDecision",
    "check_stopping_criteria",
]
