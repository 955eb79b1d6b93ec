# tests/training/test_varimp_engine.py
from __future__ import annotations

import numpy as np

from boostbridge.training.engines.varimp_engine import VarImpEngine


def test_compute_keeps_input_order():
    vi = VarImpEngine().compute({"b": 3, "a": 10, "c": 1})

    assert vi.names == ("b", "a", "c")
    assert vi.importances.dtype == np.float32
    np.testing.assert_allclose(vi.importances, [3.0, 10.0, 1.0])


def test_empty_map_yields_none():
    assert VarImpEngine().compute({}) is None


def test_sorted_is_explicit():
    vi = VarImpEngine().compute({"b": 3, "a": 10, "c": 1}).sorted()

    assert vi.names == ("a", "b", "c")
    np.testing.assert_allclose(vi.scaled(), [1.0, 0.3, 0.1], rtol=1e-6)
    np.testing.assert_allclose(vi.percentage().sum(), 1.0)


def test_to_frame_columns():
    frame = VarImpEngine().compute({"x": 2, "y": 2}).to_frame()

    assert list(frame.columns) == ["variable", "relative_importance", "scaled_importance", "percentage"]
    assert frame["percentage"].tolist() == [0.5, 0.5]
