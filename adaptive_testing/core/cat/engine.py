"""
CATSessionManager: orchestrator for adaptive test sessions.

Ties ability estimation (Newton-Raphson MLE), stopping rules and item
selection into a single ``advance(session, item_pool, response)`` step.

The manager holds only configuration. Sessions are immutable values: every
call returns a new Session, and the estimate is recomputed from the full
response history, so a session resumed from persisted state behaves exactly
like one that never paused.
"""
import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from adaptive_testing.core.cat._types import (
    AbilityEstimate,
    Item,
    Response,
    Session,
    SessionStatus,
    TerminationReason,
)
from adaptive_testing.core.cat.ability_estimation import estimate_ability
from adaptive_testing.core.cat.content_balancing import ContentConstraints
from adaptive_testing.core.cat.exposure_control import ExposureCap
from adaptive_testing.core.cat.item_selection import select_next_item
from adaptive_testing.core.cat.stopping_rules import (
    StoppingDecision,
    check_stopping_criteria,
)
from adaptive_testing.core.config import (
    ConfigurationError,
    EngineConfig,
    validate_item_pool,
)
from adaptive_testing.core.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class SessionStateError(Exception):
    """Raised when a response does not fit the session's current state."""

    pass


@dataclass(frozen=True)
class AdvanceResult:
    """
    Outcome of one ``advance`` call.

    Exactly one of ``next_item`` and ``termination_reason`` is set.
    """

    session: Session
    next_item: Optional[Item] = None
    termination_reason: Optional[TerminationReason] = None

    @property
    def terminated(self) -> bool:
        return self.termination_reason is not None

    @property
    def final_estimate(self) -> Optional[AbilityEstimate]:
        """The session's estimate once terminated, else None."""
        if not self.terminated:
            return None
        return self.session.estimate


@dataclass
class CATResult:
    """Final test result summary for reporting."""

    theta_estimate: float
    standard_error: float
    confidence: float
    items_administered: int
    correct_count: int
    average_response_time: Optional[float]
    theta_history: List[float]
    tag_scores: Dict[str, Dict[str, Any]]
    termination_reason: Optional[TerminationReason]
    theta_clamped: bool


class CATSessionManager:
    """
    Orchestrator for Computerized Adaptive Testing sessions.

    Manages:
    - Session initialization with a validated configuration and item pool
    - Response processing and ability re-estimation
    - Stopping criteria evaluation (SE threshold, min/max items, pool)
    - Item selection with content balancing and an optional usage cap
    - Final result summary
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config if config is not None else EngineConfig()
        self.criteria = self.config.termination_criteria()

    def initialize(
        self,
        item_pool: Sequence[Item],
        session_id: Optional[str] = None,
        starting_ability: Optional[float] = None,
    ) -> Session:
        """
        Create a new Session.

        Args:
            item_pool: Items the session will draw from; validated here so a
                session never starts on unusable parameters.
            session_id: Optional caller identifier, used in logs.
            starting_ability: Overrides the configured starting ability
                (e.g. a prior from earlier sessions).

        Returns:
            Session with no items, theta at the starting ability and an
            infinite standard error.

        Raises:
            ConfigurationError: If an item is invalid or starting_ability is
                outside the theta bounds.
        """
        validate_item_pool(item_pool)

        theta = (
            starting_ability
            if starting_ability is not None
            else self.config.starting_ability
        )
        lower, upper = self.config.theta_bounds
        if not lower <= theta <= upper:
            raise ConfigurationError(
                f"starting_ability {theta} is outside theta_bounds {self.config.theta_bounds}"
            )

        session = Session(
            starting_ability=theta,
            estimate=AbilityEstimate(theta=theta),
            session_id=session_id,
            started_at=utc_now(),
        )

        logger.info(
            f"Initialized CAT session {session_id} with starting theta={theta:.3f} "
            f"(pool size {len(item_pool)})",
            extra={"session_id": session_id, "theta": theta},
        )

        return session

    def advance(
        self,
        session: Session,
        item_pool: Sequence[Item],
        response: Optional[Response] = None,
        content_constraints: Optional[ContentConstraints] = None,
        exposure_cap: Optional[ExposureCap] = None,
    ) -> AdvanceResult:
        """
        Score an optional response and either issue the next item or stop.

        Steps:
        1. If ``response`` is given, it must answer the pending item. It is
           appended and the ability estimate recomputed from the full history.
        2. Stopping rules are evaluated (max length, then precision).
        3. If the test continues, the next item is selected and appended as
           pending. No eligible item terminates with POOL_EXHAUSTED.

        Args:
            session: Current session state (not modified).
            item_pool: Calibrated items available to this test.
            response: Answer to the pending item; omit on the first call.
            content_constraints: Optional minimum per-tag coverage.
            exposure_cap: Optional cross-session usage cap.

        Returns:
            AdvanceResult with the new session and either the next item or
            the termination reason.

        Raises:
            ConfigurationError: If an item in the pool is invalid.
            SessionStateError: If the response does not answer the pending
                item, or a response arrives with no item pending.
        """
        if session.is_terminated:
            if response is not None:
                logger.warning(
                    f"Session {session.session_id}: ignoring response to "
                    f"{response.item_id!r}; session already terminated "
                    f"({session.termination_reason})",
                    extra={"session_id": session.session_id},
                )
            return AdvanceResult(
                session=session,
                termination_reason=session.termination_reason,
            )

        validate_item_pool(item_pool)

        if response is not None:
            session = self._record_response(session, response)
            decision = self.should_stop(session)
            if decision.should_stop:
                return self._terminate(session, decision)
        elif session.pending_item is not None:
            # Re-issue the unanswered item instead of selecting a new one
            return AdvanceResult(session=session, next_item=session.pending_item)

        next_item = select_next_item(
            item_pool=item_pool,
            estimate=session.estimate,
            administered_ids=session.administered_ids,
            content_constraints=content_constraints,
            exposure_cap=exposure_cap,
            information_cap=self.config.information_cap,
            administered_items=session.administered_items,
        )

        if next_item is None:
            decision = self.should_stop(session, pool_exhausted=True)
            return self._terminate(session, decision)

        session = dataclasses.replace(
            session,
            administered_items=session.administered_items + (next_item,),
        )

        logger.debug(
            f"Session {session.session_id}: issuing item {next_item.id} "
            f"(#{len(session.administered_items)})",
            extra={"session_id": session.session_id, "item_id": next_item.id},
        )

        return AdvanceResult(session=session, next_item=next_item)

    def estimate(self, session: Session) -> AbilityEstimate:
        """
        Recompute the ability estimate for a session's response history.

        Starts from the session's current estimate (or starting ability when
        nothing has been answered yet).
        """
        if not session.responses:
            return AbilityEstimate(theta=session.starting_ability)
        return estimate_ability(
            responses=session.responses,
            items=session.administered_items,
            prior_estimate=session.estimate,
            config=self.config,
        )

    def should_stop(
        self, session: Session, pool_exhausted: bool = False
    ) -> StoppingDecision:
        """Evaluate the stopping rules for a session."""
        return check_stopping_criteria(
            num_items=session.answered_count,
            standard_error=session.estimate.standard_error,
            criteria=self.criteria,
            pool_exhausted=pool_exhausted,
        )

    def finalize(self, session: Session) -> CATResult:
        """
        Summarize a session for reporting.

        Confidence is ``1 - SE`` clamped to [0, 1] (0 while SE is infinite).
        Tag scores give per-content-tag item counts and accuracy.
        """
        estimate = session.estimate
        correct_count = sum(1 for r in session.responses if r.correct)

        response_times = [
            r.response_time_seconds
            for r in session.responses
            if r.response_time_seconds is not None
        ]
        average_response_time = (
            sum(response_times) / len(response_times) if response_times else None
        )

        tag_scores: Dict[str, Dict[str, Any]] = {}
        for item, response in zip(session.administered_items, session.responses):
            if item.content_tag is None:
                continue
            entry = tag_scores.setdefault(
                item.content_tag, {"items_administered": 0, "correct_count": 0}
            )
            entry["items_administered"] += 1
            if response.correct:
                entry["correct_count"] += 1
        for entry in tag_scores.values():
            entry["accuracy"] = round(
                entry["correct_count"] / entry["items_administered"], 3
            )

        if estimate.is_informative:
            confidence = max(0.0, min(1.0, 1.0 - estimate.standard_error))
        else:
            confidence = 0.0

        logger.info(
            f"Session {session.session_id} finalized: "
            f"theta={estimate.theta:.3f}, SE={estimate.standard_error:.3f}, "
            f"items={session.answered_count}, correct={correct_count}, "
            f"reason={session.termination_reason}",
            extra={
                "session_id": session.session_id,
                "theta": estimate.theta,
                "standard_error": estimate.standard_error,
            },
        )

        return CATResult(
            theta_estimate=estimate.theta,
            standard_error=estimate.standard_error,
            confidence=confidence,
            items_administered=session.answered_count,
            correct_count=correct_count,
            average_response_time=average_response_time,
            theta_history=list(session.theta_history),
            tag_scores=tag_scores,
            termination_reason=session.termination_reason,
            theta_clamped=estimate.clamped,
        )

    def _record_response(self, session: Session, response: Response) -> Session:
        """Append a response to the pending item and re-estimate ability."""
        pending = session.pending_item
        if pending is None:
            raise SessionStateError(
                f"Session {session.session_id}: response to {response.item_id!r} "
                f"but no item is pending"
            )
        if response.item_id != pending.id:
            raise SessionStateError(
                f"Session {session.session_id}: response to {response.item_id!r} "
                f"but pending item is {pending.id!r}"
            )

        session = dataclasses.replace(
            session, responses=session.responses + (response,)
        )
        estimate = self.estimate(session)
        session = dataclasses.replace(
            session,
            estimate=estimate,
            theta_history=session.theta_history + (estimate.theta,),
        )

        logger.debug(
            f"Session {session.session_id}: Response #{session.answered_count} "
            f"({response.item_id}, correct={response.correct}) -> "
            f"theta={estimate.theta:.3f}, SE={estimate.standard_error:.3f}, "
            f"iterations={estimate.iterations}, converged={estimate.converged}",
            extra={
                "session_id": session.session_id,
                "item_id": response.item_id,
                "theta": estimate.theta,
                "standard_error": estimate.standard_error,
            },
        )
        return session

    def _terminate(self, session: Session, decision: StoppingDecision) -> AdvanceResult:
        """Freeze the session with the decision's reason."""
        session = dataclasses.replace(
            session,
            status=SessionStatus.TERMINATED,
            termination_reason=decision.reason,
        )
        logger.info(
            f"Session {session.session_id}: terminated ({decision.reason}) after "
            f"{session.answered_count} responses, "
            f"theta={session.estimate.theta:.3f}, SE={session.estimate.standard_error:.3f}",
            extra={
                "session_id": session.session_id,
                "reason": decision.reason,
                "theta": session.estimate.theta,
                "standard_error": session.estimate.standard_error,
            },
        )
        return AdvanceResult(session=session, termination_reason=decision.reason)
