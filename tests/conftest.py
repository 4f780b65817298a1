import os
import random

import pytest

from prefetcher.utils import logger as logger_mod


@pytest.fixture(autouse=True)
def _seed_everything():
    random.seed(0)
    os.environ.setdefault("PYTHONHASHSEED", "0")


@pytest.fixture(autouse=True)
def _debug_logging(monkeypatch):
    # exercise the debug log paths without touching global handler config
    monkeypatch.setattr(logger_mod, "_DEBUG_ENABLED", True)
    monkeypatch.setattr(logger_mod, "_DEBUG_MODULES", {"prefetcher", "feeds"})
