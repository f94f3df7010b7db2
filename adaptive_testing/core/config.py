"""
Engine configuration settings.

Two layers:
    - ``Settings`` loads deployment defaults from environment variables
      (``CAT_*``) or a ``.env`` file via pydantic-settings.
    - ``EngineConfig`` is the explicit, immutable set of options the adaptive
      engine recognizes. It is validated on construction; semantic problems
      raise ``ConfigurationError`` so a session is never started on
      meaningless parameters.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, Self, Tuple

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Below this, PRECISION_REACHED could follow a single response.
ABSOLUTE_MINIMUM_QUESTIONS_FLOOR = 3


class ConfigurationError(Exception):
    """Raised when engine configuration or the supplied item pool is invalid."""

    pass


class Settings(BaseSettings):
    """Deployment settings loaded from environment variables."""

    # Application
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Starting point of every new session (logit scale)
    CAT_STARTING_ABILITY: float = 0.0

    # Termination criteria
    CAT_MIN_QUESTIONS: int = 5
    CAT_MAX_QUESTIONS: int = 20
    # SE = 0.30 corresponds to reliability ~0.91 (reliability = 1 - SE²)
    CAT_STANDARD_ERROR_THRESHOLD: float = 0.30
    CAT_ABSOLUTE_MINIMUM_QUESTIONS: int = ABSOLUTE_MINIMUM_QUESTIONS_FLOOR

    # Estimation
    CAT_INFORMATION_CAP: float = 2.0
    CAT_MAX_NEWTON_ITERATIONS: int = 15
    CAT_CONVERGENCE_TOLERANCE: float = 1e-4
    CAT_MAX_STEP_SIZE: float = 1.0
    CAT_THETA_LOWER_BOUND: float = -4.0
    CAT_THETA_UPPER_BOUND: float = 4.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )


@dataclass(frozen=True)
class TerminationCriteria:
    """Counters and precision target consulted by the stopping rules."""

    min_questions: int
    max_questions: int
    standard_error_threshold: float
    absolute_minimum_questions: int = ABSOLUTE_MINIMUM_QUESTIONS_FLOOR


class EngineConfig(BaseModel):
    """
    Every option recognized by the adaptive testing engine.

    Defaults follow standard psychometric practice. ``information_cap`` and
    ``standard_error_threshold`` guard against premature termination;
    ``max_step_size`` and ``convergence_tolerance`` are tunable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    starting_ability: float = 0.0
    min_questions: int = 5
    max_questions: int = 20
    standard_error_threshold: float = 0.30
    absolute_minimum_questions: int = ABSOLUTE_MINIMUM_QUESTIONS_FLOOR
    information_cap: float = 2.0
    max_newton_iterations: int = 15
    convergence_tolerance: float = 1e-4
    theta_bounds: Tuple[float, float] = (-4.0, 4.0)
    max_step_size: float = 1.0  # logits per Newton step

    @model_validator(mode="after")
    def validate_termination(self) -> Self:
        """Validate question counts and the precision threshold."""
        if self.min_questions < 0:
            raise ConfigurationError(
                f"min_questions must be non-negative, got {self.min_questions}"
            )
        if self.max_questions < 1:
            raise ConfigurationError(
                f"max_questions must be at least 1, got {self.max_questions}"
            )
        if self.min_questions > self.max_questions:
            raise ConfigurationError(
                f"min_questions ({self.min_questions}) must not exceed "
                f"max_questions ({self.max_questions})"
            )
        if self.absolute_minimum_questions < ABSOLUTE_MINIMUM_QUESTIONS_FLOOR:
            raise ConfigurationError(
                f"absolute_minimum_questions must be at least "
                f"{ABSOLUTE_MINIMUM_QUESTIONS_FLOOR}, got {self.absolute_minimum_questions}"
            )
        if self.absolute_minimum_questions > self.max_questions:
            raise ConfigurationError(
                f"absolute_minimum_questions ({self.absolute_minimum_questions}) "
                f"must not exceed max_questions ({self.max_questions})"
            )
        if not math.isfinite(self.standard_error_threshold) or (
            self.standard_error_threshold < 0
        ):
            raise ConfigurationError(
                "standard_error_threshold must be a non-negative number, "
                f"got {self.standard_error_threshold}"
            )
        return self

    @model_validator(mode="after")
    def validate_estimation(self) -> Self:
        """Validate Newton-Raphson and information settings."""
        positive = {
            "information_cap": self.information_cap,
            "convergence_tolerance": self.convergence_tolerance,
            "max_step_size": self.max_step_size,
        }
        for name, value in positive.items():
            if not math.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")
        if self.max_newton_iterations < 1:
            raise ConfigurationError(
                f"max_newton_iterations must be at least 1, got {self.max_newton_iterations}"
            )

        lower, upper = self.theta_bounds
        if not (math.isfinite(lower) and math.isfinite(upper)) or lower >= upper:
            raise ConfigurationError(
                f"theta_bounds must be a finite (lower, upper) pair with lower < upper, "
                f"got {self.theta_bounds}"
            )
        if not lower <= self.starting_ability <= upper:
            raise ConfigurationError(
                f"starting_ability {self.starting_ability} is outside "
                f"theta_bounds {self.theta_bounds}"
            )
        return self

    @classmethod
    def from_settings(cls, source: Settings) -> "EngineConfig":
        """Build an engine configuration from deployment settings."""
        return cls(
            starting_ability=source.CAT_STARTING_ABILITY,
            min_questions=source.CAT_MIN_QUESTIONS,
            max_questions=source.CAT_MAX_QUESTIONS,
            standard_error_threshold=source.CAT_STANDARD_ERROR_THRESHOLD,
            absolute_minimum_questions=source.CAT_ABSOLUTE_MINIMUM_QUESTIONS,
            information_cap=source.CAT_INFORMATION_CAP,
            max_newton_iterations=source.CAT_MAX_NEWTON_ITERATIONS,
            convergence_tolerance=source.CAT_CONVERGENCE_TOLERANCE,
            theta_bounds=(source.CAT_THETA_LOWER_BOUND, source.CAT_THETA_UPPER_BOUND),
            max_step_size=source.CAT_MAX_STEP_SIZE,
        )

    def termination_criteria(self) -> "TerminationCriteria":
        """Return the stopping-rule subset of this configuration."""
        return TerminationCriteria(
            min_questions=self.min_questions,
            max_questions=self.max_questions,
            standard_error_threshold=self.standard_error_threshold,
            absolute_minimum_questions=self.absolute_minimum_questions,
        )


def validate_item_pool(items: Iterable[Any]) -> None:
    """
    Check that every item in a pool is usable by the engine.

    Raises:
        ConfigurationError: If an item has a non-positive or non-finite
            discrimination, a non-finite difficulty, or a duplicate id.
    """
    seen_ids = set()
    for item in items:
        a = item.discrimination
        if not math.isfinite(a) or a <= 0:
            raise ConfigurationError(
                f"Item {item.id!r} has non-positive discrimination {a}"
            )
        if not math.isfinite(item.difficulty):
            raise ConfigurationError(
                f"Item {item.id!r} has non-finite difficulty {item.difficulty}"
            )
        if item.id in seen_ids:
            raise ConfigurationError(f"Duplicate item id {item.id!r} in pool")
        seen_ids.add(item.id)


settings = Settings()
