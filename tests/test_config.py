"""
Tests for engine configuration validation and settings loading.
"""
import math

import pytest

from adaptive_testing.core.cat import Item
from adaptive_testing.core.config import (
    ConfigurationError,
    EngineConfig,
    Settings,
    TerminationCriteria,
    validate_item_pool,
)


class TestEngineConfigDefaults:
    def test_defaults(self):
        config = EngineConfig()
        assert config.starting_ability == 0.0
        assert config.min_questions == 5
        assert config.max_questions == 20
        assert config.standard_error_threshold == 0.30
        assert config.absolute_minimum_questions == 3
        assert config.information_cap == 2.0
        assert config.theta_bounds == (-4.0, 4.0)
        assert config.max_step_size == 1.0

    def test_frozen(self):
        config = EngineConfig()
        with pytest.raises(Exception):
            config.min_questions = 2

    def test_unknown_option_rejected(self):
        with pytest.raises(Exception):
            EngineConfig(min_items=3)

    def test_termination_criteria(self):
        criteria = EngineConfig(min_questions=4, max_questions=9).termination_criteria()
        assert criteria == TerminationCriteria(
            min_questions=4,
            max_questions=9,
            standard_error_threshold=0.30,
            absolute_minimum_questions=3,
        )


class TestTerminationValidation:
    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"min_questions": -1}, "min_questions must be non-negative"),
            ({"max_questions": 0}, "max_questions must be at least 1"),
            ({"min_questions": 10, "max_questions": 5}, "must not exceed"),
            ({"absolute_minimum_questions": 2}, "absolute_minimum_questions must be at least"),
            (
                {"absolute_minimum_questions": 6, "min_questions": 3, "max_questions": 5},
                "must not exceed max_questions",
            ),
            ({"standard_error_threshold": -0.1}, "standard_error_threshold"),
            ({"standard_error_threshold": math.nan}, "standard_error_threshold"),
        ],
    )
    def test_rejected(self, kwargs, message):
        with pytest.raises(ConfigurationError, match=message):
            EngineConfig(**kwargs)

    def test_min_equals_max_allowed(self):
        config = EngineConfig(min_questions=5, max_questions=5)
        assert config.min_questions == config.max_questions

    def test_zero_min_questions_allowed(self):
        assert EngineConfig(min_questions=0).min_questions == 0


class TestEstimationValidation:
    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"information_cap": 0.0}, "information_cap"),
            ({"information_cap": math.inf}, "information_cap"),
            ({"convergence_tolerance": -1e-4}, "convergence_tolerance"),
            ({"max_step_size": 0.0}, "max_step_size"),
            ({"max_newton_iterations": 0}, "max_newton_iterations"),
            ({"theta_bounds": (4.0, -4.0)}, "theta_bounds"),
            ({"theta_bounds": (-math.inf, 4.0)}, "theta_bounds"),
            ({"starting_ability": 5.0}, "outside"),
        ],
    )
    def test_rejected(self, kwargs, message):
        with pytest.raises(ConfigurationError, match=message):
            EngineConfig(**kwargs)


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.CAT_MIN_QUESTIONS == 5
        assert settings.CAT_MAX_QUESTIONS == 20
        assert settings.CAT_INFORMATION_CAP == 2.0

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("CAT_MIN_QUESTIONS", "8")
        monkeypatch.setenv("CAT_MAX_QUESTIONS", "30")
        monkeypatch.setenv("CAT_STANDARD_ERROR_THRESHOLD", "0.25")
        monkeypatch.setenv("CAT_THETA_UPPER_BOUND", "3.5")

        config = EngineConfig.from_settings(Settings(_env_file=None))

        assert config.min_questions == 8
        assert config.max_questions == 30
        assert config.standard_error_threshold == 0.25
        assert config.theta_bounds == (-4.0, 3.5)

    def test_invalid_settings_fail_on_engine_config(self):
        settings = Settings(_env_file=None, CAT_MIN_QUESTIONS=40, CAT_MAX_QUESTIONS=10)
        with pytest.raises(ConfigurationError):
            EngineConfig.from_settings(settings)


class TestValidateItemPool:
    def test_valid_pool(self):
        validate_item_pool(
            [
                Item(id=1, discrimination=1.0, difficulty=0.0),
                Item(id="2", discrimination=0.4, difficulty=-2.0),
            ]
        )

    def test_empty_pool_is_valid(self):
        validate_item_pool([])

    @pytest.mark.parametrize("a", [0.0, -0.5, math.nan, math.inf])
    def test_bad_discrimination(self, a):
        with pytest.raises(ConfigurationError, match="discrimination"):
            validate_item_pool([Item(id=1, discrimination=a, difficulty=0.0)])

    def test_bad_difficulty(self):
        with pytest.raises(ConfigurationError, match="difficulty"):
            validate_item_pool([Item(id=1, discrimination=1.0, difficulty=math.nan)])

    def test_duplicate_id(self):
        items = [
            Item(id=7, discrimination=1.0, difficulty=0.0),
            Item(id=7, discrimination=1.0, difficulty=1.0),
        ]
        with pytest.raises(ConfigurationError, match="Duplicate item id 7"):
            validate_item_pool(items)
