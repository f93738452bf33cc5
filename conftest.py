# Ensure project root is on sys.path for tests
import sys, pathlib, random
import pytest

root = pathlib.Path(__file__).resolve().parent
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from shapenet.core.logging import logger


@pytest.fixture(autouse=True)
def _quiet_logger():
    # Battle loops log a lot at INFO; keep test output readable
    prev = logger.threshold
    logger.set_level("ERROR")
    yield
    logger.threshold = prev


@pytest.fixture
def rng():
    return random.Random(1234)
