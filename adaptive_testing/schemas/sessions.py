"""Pydantic schemas for persisting adaptive sessions between ``advance`` calls.

The engine performs no I/O. Callers store a ``SessionSnapshot`` (for example
as JSON) and rebuild the Session before the next call. An infinite standard
error is stored as ``null``.
"""
import math
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from adaptive_testing.core.cat._types import (
    AbilityEstimate,
    Item,
    Response,
    Session,
    SessionStatus,
    TerminationReason,
)
from adaptive_testing.core.datetime_utils import ensure_timezone_aware


class ItemSchema(BaseModel):
    """A calibrated 2PL item."""

    id: Union[int, str]
    discrimination: float = Field(gt=0)
    difficulty: float
    content_tag: Optional[str] = None

    @classmethod
    def from_item(cls, item: Item) -> "ItemSchema":
        return cls(
            id=item.id,
            discrimination=item.discrimination,
            difficulty=item.difficulty,
            content_tag=item.content_tag,
        )

    def to_item(self) -> Item:
        return Item(
            id=self.id,
            discrimination=self.discrimination,
            difficulty=self.difficulty,
            content_tag=self.content_tag,
        )


class ResponseSchema(BaseModel):
    """A scored response."""

    item_id: Union[int, str]
    correct: bool
    timestamp: datetime
    response_time_seconds: Optional[float] = Field(default=None, ge=0)

    @classmethod
    def from_response(cls, response: Response) -> "ResponseSchema":
        return cls(
            item_id=response.item_id,
            correct=response.correct,
            timestamp=response.timestamp,
            response_time_seconds=response.response_time_seconds,
        )

    def to_response(self) -> Response:
        return Response(
            item_id=self.item_id,
            correct=self.correct,
            timestamp=ensure_timezone_aware(self.timestamp),
            response_time_seconds=self.response_time_seconds,
        )


class AbilityEstimateSchema(BaseModel):
    """Ability estimate; ``standard_error`` is None while undefined."""

    theta: float
    standard_error: Optional[float] = Field(default=None, ge=0)
    clamped: bool = False
    converged: bool = False
    iterations: int = 0

    @classmethod
    def from_estimate(cls, estimate: AbilityEstimate) -> "AbilityEstimateSchema":
        se = estimate.standard_error
        return cls(
            theta=estimate.theta,
            standard_error=se if math.isfinite(se) else None,
            clamped=estimate.clamped,
            converged=estimate.converged,
            iterations=estimate.iterations,
        )

    def to_estimate(self) -> AbilityEstimate:
        return AbilityEstimate(
            theta=self.theta,
            standard_error=(
                self.standard_error if self.standard_error is not None else math.inf
            ),
            clamped=self.clamped,
            converged=self.converged,
            iterations=self.iterations,
        )


class SessionSnapshot(BaseModel):
    """Complete persisted state of an adaptive session."""

    session_id: Optional[str] = None
    starting_ability: float
    started_at: datetime
    status: SessionStatus
    termination_reason: Optional[TerminationReason] = None
    estimate: AbilityEstimateSchema
    administered_items: List[ItemSchema]
    responses: List[ResponseSchema]
    theta_history: List[float] = []

    @classmethod
    def from_session(cls, session: Session) -> "SessionSnapshot":
        return cls(
            session_id=session.session_id,
            starting_ability=session.starting_ability,
            started_at=session.started_at,
            status=session.status,
            termination_reason=session.termination_reason,
            estimate=AbilityEstimateSchema.from_estimate(session.estimate),
            administered_items=[
                ItemSchema.from_item(item) for item in session.administered_items
            ],
            responses=[ResponseSchema.from_response(r) for r in session.responses],
            theta_history=list(session.theta_history),
        )

    def to_session(self) -> Session:
        return Session(
            session_id=self.session_id,
            starting_ability=self.starting_ability,
            started_at=ensure_timezone_aware(self.started_at),
            status=self.status,
            termination_reason=self.termination_reason,
            estimate=self.estimate.to_estimate(),
            administered_items=tuple(i.to_item() for i in self.administered_items),
            responses=tuple(r.to_response() for r in self.responses),
            theta_history=tuple(self.theta_history),
        )
