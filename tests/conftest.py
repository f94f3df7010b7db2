"""
Pytest configuration and shared fixtures for testing.
"""
import sys
from pathlib import Path

# Add project root to path so adaptive_testing is importable without install
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import random  # noqa: E402
from typing import Callable, List, Optional  # noqa: E402

import pytest  # noqa: E402

from adaptive_testing.core.cat import CATSessionManager, Item  # noqa: E402
from adaptive_testing.core.config import EngineConfig  # noqa: E402

ALL_TAGS = ["algebra", "geometry", "number", "statistics"]


def make_items(
    count: int,
    discrimination: float = 1.0,
    difficulty: float = 0.0,
    content_tag: Optional[str] = None,
    start_id: int = 1,
) -> List[Item]:
    """Create ``count`` identical items with sequential integer ids."""
    return [
        Item(
            id=start_id + i,
            discrimination=discrimination,
            difficulty=difficulty,
            content_tag=content_tag,
        )
        for i in range(count)
    ]


def build_realistic_bank(items_per_tag: int = 20, seed: int = 42) -> List[Item]:
    """Item bank with difficulty spread over [-2.5, 2.5] and a in [0.5, 2.5]."""
    rng = random.Random(seed)
    bank = []
    item_id = 1
    for tag in ALL_TAGS:
        for i in range(items_per_tag):
            b = -2.5 + (i / (items_per_tag - 1)) * 5.0
            a = 0.5 + rng.random() * 2.0
            bank.append(Item(id=item_id, discrimination=a, difficulty=b, content_tag=tag))
            item_id += 1
    return bank


@pytest.fixture
def item_factory() -> Callable[..., List[Item]]:
    return make_items


@pytest.fixture
def flat_pool() -> List[Item]:
    """Ten items with a=1.0, b=0.0."""
    return make_items(10)


@pytest.fixture
def item_bank() -> List[Item]:
    return build_realistic_bank()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def manager(config: EngineConfig) -> CATSessionManager:
    return CATSessionManager(config)
