"""
CAT Simulation Engine for validating adaptive testing configurations.

Simulates N examinees with known ability levels taking adaptive tests through
CATSessionManager. Collects metrics to validate stopping criteria and
precision targets for a given EngineConfig and item pool.

Key Features:
- Monte Carlo simulation with configurable N and theta distribution
- Synthetic 2PL item banks with realistic parameter distributions
- Aggregate precision, bias, RMSE and test-length metrics
- Stopping reason distribution

References:
    - Weiss, D. J. (2004). Computerized adaptive testing for effective and
      efficient measurement in counseling and education. Measurement and
      Evaluation in Counseling and Development, 37(2), 70-84.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from adaptive_testing.core.cat._types import Item, Response
from adaptive_testing.core.cat.content_balancing import ContentConstraints
from adaptive_testing.core.cat.engine import CATSessionManager
from adaptive_testing.core.cat.response_model import probability_2pl
from adaptive_testing.core.config import EngineConfig

logger = logging.getLogger(__name__)

# Synthetic item parameter distributions (Lord, 1980)
DISCRIMINATION_LOGNORMAL_MEAN = 0.0
DISCRIMINATION_LOGNORMAL_SD = 0.3
DISCRIMINATION_MIN = 0.5
DISCRIMINATION_MAX = 2.5
DIFFICULTY_NORMAL_MEAN = 0.0
DIFFICULTY_NORMAL_SD = 1.0
DIFFICULTY_MIN = -3.0
DIFFICULTY_MAX = 3.0

DEFAULT_TAGS = ["algebra", "geometry", "number", "statistics"]


@dataclass
class SimulationConfig:
    """Configuration for a CAT simulation run."""

    n_examinees: int = 500  # Number of simulated examinees
    theta_mean: float = 0.0  # Mean of theta distribution
    theta_sd: float = 1.0  # SD of theta distribution
    seed: int = 42  # Random seed for reproducibility
    engine: EngineConfig = field(default_factory=EngineConfig)
    # Minimum items per content tag; empty disables content balancing
    min_items_per_tag: Dict[str, int] = field(default_factory=dict)


@dataclass
class ExamineeResult:
    """Per-examinee simulation results."""

    true_theta: float
    estimated_theta: float
    final_se: float
    bias: float  # estimated_theta - true_theta
    items_administered: int
    termination_reason: str
    precise: bool  # Final SE at or below the threshold
    administered_item_ids: List[object] = field(default_factory=list)


@dataclass
class SimulationResult:
    """Aggregate simulation results."""

    config: SimulationConfig
    examinee_results: List[ExamineeResult]
    mean_items: float
    median_items: float
    mean_se: float
    mean_bias: float
    rmse: float
    precision_rate: float  # Proportion ending with SE <= threshold
    termination_reason_counts: Dict[str, int]


def generate_item_bank(
    n_items_per_tag: int = 50,
    tags: Optional[List[str]] = None,
    seed: int = 42,
) -> List[Item]:
    """
    Generate a synthetic item bank with realistic 2PL parameters.

    Item parameters are drawn from distributions that match typical
    operational item banks (Lord, 1980):
        - Discrimination (a) ~ LogNormal(mean=0.0, sd=0.3), clipped to [0.5, 2.5]
        - Difficulty (b) ~ Normal(0.0, 1.0), clipped to [-3.0, 3.0]

    Args:
        n_items_per_tag: Number of items to generate per content tag.
        tags: Content tags. If None, uses DEFAULT_TAGS.
        seed: Random seed for reproducibility.

    Returns:
        List of Items with sequential integer ids.
    """
    if tags is None:
        tags = DEFAULT_TAGS

    rng = np.random.default_rng(seed)
    items = []
    item_id = 1

    for tag in tags:
        for _ in range(n_items_per_tag):
            a = rng.lognormal(
                mean=DISCRIMINATION_LOGNORMAL_MEAN, sigma=DISCRIMINATION_LOGNORMAL_SD
            )
            a = float(np.clip(a, DISCRIMINATION_MIN, DISCRIMINATION_MAX))

            b = rng.normal(loc=DIFFICULTY_NORMAL_MEAN, scale=DIFFICULTY_NORMAL_SD)
            b = float(np.clip(b, DIFFICULTY_MIN, DIFFICULTY_MAX))

            items.append(Item(id=item_id, discrimination=a, difficulty=b, content_tag=tag))
            item_id += 1

    logger.info(
        f"Generated item bank: {len(items)} items across {len(tags)} tags "
        f"({n_items_per_tag} per tag)"
    )

    return items


def simulate_response(
    true_theta: float,
    item: Item,
    rng: random.Random,
) -> bool:
    """Draw a 2PL response for an examinee at ``true_theta``."""
    prob = probability_2pl(true_theta, item.discrimination, item.difficulty)
    return rng.random() < prob


def run_simulation(
    item_bank: List[Item],
    config: SimulationConfig,
) -> SimulationResult:
    """
    Run a Monte Carlo simulation through CATSessionManager.

    For each simulated examinee:
    1. Draw true_theta from N(config.theta_mean, config.theta_sd)
    2. Start a session at the configured starting ability
    3. Loop: advance → simulate response → advance ... until terminated
    4. Record an ExamineeResult

    Args:
        item_bank: Calibrated items.
        config: Simulation configuration.

    Returns:
        SimulationResult with per-examinee and aggregate metrics.
    """
    logger.info(
        f"Starting CAT simulation: N={config.n_examinees}, "
        f"theta ~ N({config.theta_mean}, {config.theta_sd}²)"
    )

    rng = random.Random(config.seed)
    np_rng = np.random.default_rng(config.seed)
    manager = CATSessionManager(config.engine)
    constraints = (
        ContentConstraints(min_items_per_tag=config.min_items_per_tag)
        if config.min_items_per_tag
        else None
    )

    examinee_results = []

    for examinee_id in range(1, config.n_examinees + 1):
        true_theta = float(np_rng.normal(loc=config.theta_mean, scale=config.theta_sd))

        session = manager.initialize(item_bank, session_id=f"sim-{examinee_id}")
        result = manager.advance(session, item_bank, content_constraints=constraints)

        while not result.terminated:
            item = result.next_item
            response = Response(
                item_id=item.id,
                correct=simulate_response(true_theta, item, rng),
            )
            result = manager.advance(
                result.session,
                item_bank,
                response=response,
                content_constraints=constraints,
            )

        final = result.session
        examinee_results.append(
            ExamineeResult(
                true_theta=true_theta,
                estimated_theta=final.estimate.theta,
                final_se=final.estimate.standard_error,
                bias=final.estimate.theta - true_theta,
                items_administered=final.answered_count,
                termination_reason=result.termination_reason.value,
                precise=(
                    final.estimate.standard_error
                    <= config.engine.standard_error_threshold
                ),
                administered_item_ids=[item.id for item in final.administered_items],
            )
        )

        if examinee_id % 100 == 0:
            logger.info(f"Completed {examinee_id}/{config.n_examinees} examinees")

    return _aggregate_results(config, examinee_results)


def _aggregate_results(
    config: SimulationConfig,
    examinee_results: List[ExamineeResult],
) -> SimulationResult:
    """Compute aggregate metrics over examinee results."""
    if not examinee_results:
        return SimulationResult(
            config=config,
            examinee_results=[],
            mean_items=0.0,
            median_items=0.0,
            mean_se=0.0,
            mean_bias=0.0,
            rmse=0.0,
            precision_rate=0.0,
            termination_reason_counts={},
        )

    items = np.array([r.items_administered for r in examinee_results])
    ses = np.array([r.final_se for r in examinee_results])
    biases = np.array([r.bias for r in examinee_results])

    reason_counts: Dict[str, int] = {}
    for r in examinee_results:
        reason_counts[r.termination_reason] = reason_counts.get(r.termination_reason, 0) + 1

    result = SimulationResult(
        config=config,
        examinee_results=examinee_results,
        mean_items=float(np.mean(items)),
        median_items=float(np.median(items)),
        mean_se=float(np.mean(ses)),
        mean_bias=float(np.mean(biases)),
        rmse=float(np.sqrt(np.mean(biases**2))),
        precision_rate=sum(1 for r in examinee_results if r.precise)
        / len(examinee_results),
        termination_reason_counts=reason_counts,
    )

    logger.info(
        f"Simulation complete: mean_items={result.mean_items:.1f}, "
        f"median_items={result.median_items:.1f}, "
        f"mean_SE={result.mean_se:.3f}, "
        f"RMSE={result.rmse:.3f}, "
        f"precision_rate={result.precision_rate:.1%}"
    )

    return result


def generate_report(result: SimulationResult) -> str:
    """Render a markdown report of a simulation run."""
    cfg = result.config
    engine = cfg.engine
    lines = [
        "# CAT Simulation Report",
        "",
        "## Simulation Configuration",
        "",
        f"- **N Examinees**: {cfg.n_examinees:,}",
        f"- **Theta Distribution**: N({cfg.theta_mean}, {cfg.theta_sd}²)",
        f"- **SE Threshold**: {engine.standard_error_threshold}",
        f"- **Min Questions**: {engine.min_questions}",
        f"- **Max Questions**: {engine.max_questions}",
        f"- **Information Cap**: {engine.information_cap}",
        f"- **Random Seed**: {cfg.seed}",
        "",
        "## Overall Metrics",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Mean Items | {result.mean_items:.2f} |",
        f"| Median Items | {result.median_items:.1f} |",
        f"| Mean SE | {result.mean_se:.3f} |",
        f"| Mean Bias | {result.mean_bias:.3f} |",
        f"| RMSE | {result.rmse:.3f} |",
        f"| Precision Rate | {result.precision_rate:.1%} |",
        "",
        "## Termination Reason Distribution",
        "",
        "| Reason | Count | Percentage |",
        "|--------|-------|------------|",
    ]

    total = sum(result.termination_reason_counts.values())
    for reason, count in sorted(
        result.termination_reason_counts.items(), key=lambda x: -x[1]
    ):
        pct = count / total if total > 0 else 0.0
        lines.append(f"| {reason} | {count:,} | {pct:.1%} |")

    lines.append("")
    return "\n".join(lines)
