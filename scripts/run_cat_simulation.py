"""Run a Monte Carlo simulation of the adaptive testing engine.

Generates a synthetic 2PL item bank, simulates examinees through
CATSessionManager and prints a markdown report. Engine options default to
the ``CAT_*`` environment settings.

Usage:
    python scripts/run_cat_simulation.py [--examinees N] [--items-per-tag N]
        [--seed SEED] [--min-per-tag N] [--output report.md]

Exit codes:
    0 - Success
    2 - Simulation error
    3 - Configuration error
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from adaptive_testing.core.cat.simulation import (
    DEFAULT_TAGS,
    SimulationConfig,
    generate_item_bank,
    generate_report,
    run_simulation,
)
from adaptive_testing.core.config import ConfigurationError, EngineConfig, settings
from adaptive_testing.core.logging_config import setup_logging

logger = logging.getLogger("cat_simulation")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Simulate adaptive test sessions and report precision metrics"
    )
    parser.add_argument(
        "--examinees",
        type=int,
        default=500,
        help="Number of simulated examinees (default: 500)",
    )
    parser.add_argument(
        "--items-per-tag",
        type=int,
        default=50,
        help="Synthetic items generated per content tag (default: 50)",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument(
        "--min-per-tag",
        type=int,
        default=0,
        help="Minimum items per content tag; 0 disables balancing",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the report to this file instead of stdout",
    )
    args = parser.parse_args(argv)

    setup_logging()

    try:
        engine_config = EngineConfig.from_settings(settings)
    except ConfigurationError as exc:
        logger.error("Invalid engine configuration: %s", exc)
        return 3

    config = SimulationConfig(
        n_examinees=args.examinees,
        seed=args.seed,
        engine=engine_config,
        min_items_per_tag=(
            {tag: args.min_per_tag for tag in DEFAULT_TAGS} if args.min_per_tag else {}
        ),
    )

    try:
        item_bank = generate_item_bank(
            n_items_per_tag=args.items_per_tag, seed=args.seed
        )
        result = run_simulation(item_bank, config)
    except (ConfigurationError, ValueError) as exc:
        logger.error("Simulation failed: %s", exc)
        return 2

    report = generate_report(result)
    if args.output is not None:
        args.output.write_text(report, encoding="utf-8")
        logger.info("Report written to %s", args.output)
    else:
        print(report)

    return 0


if __name__ == "__main__":
    sys.exit(main())
