# tests/conftest.py
from __future__ import annotations

import multiprocessing

import numpy as np
import pandas as pd
import pytest
from loguru import logger

from boostbridge.config.booster_config import BoosterConfig
from boostbridge.encoding.store import DescriptorStore


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)  # or sys.stderr
    yield


@pytest.fixture(scope="session", autouse=True)
def _set_start_method():
    multiprocessing.set_start_method("spawn", force=True)


@pytest.fixture
def capture_logs():
    """
    Collect log lines emitted while the test runs.
    """
    lines: list[str] = []
    sink_id = logger.add(lambda msg: lines.append(str(msg)), format="{message}")
    yield lines
    logger.remove(sink_id)


@pytest.fixture
def store() -> DescriptorStore:
    return DescriptorStore()


@pytest.fixture
def booster_cfg():
    """
    Factory for BoosterConfig with small, fast defaults.
    """

    def _make(**overrides) -> BoosterConfig:
        base = dict(
            response_column="label",
            ntrees=6,
            max_depth=3,
            min_rows=1,
            seed=7,
        )
        base.update(overrides)
        return BoosterConfig(**base)

    return _make


@pytest.fixture
def mixed_frame() -> pd.DataFrame:
    """
    Two categorical + two numeric feature columns, 60 rows.
    """
    rng = np.random.default_rng(0)
    n = 60
    color = rng.choice(["red", "green", "blue"], size=n)
    size = rng.choice(["S", "L"], size=n)
    x1 = rng.normal(size=n)
    x2 = rng.uniform(0, 10, size=n)
    return pd.DataFrame({"color": color, "x1": x1, "size": size, "x2": x2})


@pytest.fixture
def regression_frame(mixed_frame) -> pd.DataFrame:
    frame = mixed_frame.copy()
    frame["label"] = 2.0 * frame["x1"] + 0.5 * frame["x2"] + (frame["color"] == "red") * 3.0
    return frame


@pytest.fixture
def binary_frame(mixed_frame) -> pd.DataFrame:
    frame = mixed_frame.copy()
    frame["label"] = np.where(frame["x1"] > 0, "yes", "no")
    return frame


@pytest.fixture
def multiclass_frame(mixed_frame) -> pd.DataFrame:
    frame = mixed_frame.copy()
    frame["label"] = pd.cut(frame["x2"], bins=[-1, 3.3, 6.6, 11], labels=["low", "mid", "high"]).astype(str)
    return frame
