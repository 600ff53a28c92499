"""
Global pytest configuration and fixtures for redispool tests
"""

import logging
import sys
from pathlib import Path
from typing import List

import pytest

# Add the source tree to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from redispool.core.config import PoolOptions  # noqa: E402
from redispool.pooling.pool import Pool  # noqa: E402

from helpers import FakeFactory, RecordingLogger  # noqa: E402

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)

# Suppress noisy logs during testing
logging.getLogger('redis').setLevel(logging.WARNING)


@pytest.fixture
def factory():
    return FakeFactory()


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
async def make_pool(factory, recording_logger):
    """Build pools that are cleared when the test ends"""
    pools: List[Pool] = []

    def _make(pool_factory=None, event_emitter=None, **options):
        pool = Pool(
            pool_factory or factory,
            PoolOptions(**options),
            name="test",
            logger=recording_logger,
            event_emitter=event_emitter,
        )
        pools.append(pool)
        return pool

    yield _make

    for pool in pools:
        if not pool.closed:
            await pool.clear()


# Custom markers for test categorization
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Tests that take more than 5 seconds")
