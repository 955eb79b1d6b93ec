# tests/scoring/test_prediction_materialize_engine.py
from __future__ import annotations

import numpy as np
import pytest

from boostbridge.backend.raw_predictions import RawPredictionMatrix
from boostbridge.observability.instrumentation import Instrumentation
from boostbridge.scoring.engines.prediction_materialize_engine import PredictionMaterializeEngine
from boostbridge.scoring.predictions import (
    BinomialPrediction,
    ModelCategory,
    MultinomialPrediction,
    RegressionPrediction,
)
from boostbridge.utils.errors import ContractViolation, ScoringAborted


@pytest.fixture
def engine() -> PredictionMaterializeEngine:
    return PredictionMaterializeEngine(partition_rows=2)


# =====================================================================
# regression
# =====================================================================
def test_regression_copies_column(engine):
    raw = RawPredictionMatrix.from_columns([[1.5, -2.0, 3.0]])
    pred = engine.materialize(raw, nclasses=1)

    assert isinstance(pred, RegressionPrediction)
    assert pred.category == ModelCategory.REGRESSION
    np.testing.assert_array_equal(pred.values, [1.5, -2.0, 3.0])


def test_regression_accepts_unit_weights(engine):
    raw = RawPredictionMatrix.from_columns([[1.0, 2.0]], weights=np.ones(2))
    assert engine.materialize(raw, nclasses=1).nrows == 2


def test_regression_non_uniform_weights_violate_contract(engine):
    raw = RawPredictionMatrix.from_columns([[1.0, 2.0]], weights=np.array([1.0, 2.0]))
    with pytest.raises(ContractViolation):
        engine.materialize(raw, nclasses=1)


# =====================================================================
# binomial
# =====================================================================
def test_binomial_threshold_and_complement(engine):
    raw = RawPredictionMatrix.from_columns([[0.2, 0.9, 0.5]])
    pred = engine.materialize(raw, nclasses=2, threshold=0.5)

    assert isinstance(pred, BinomialPrediction)
    assert pred.labels.tolist() == [0, 1, 1]
    np.testing.assert_allclose(pred.p0, [0.8, 0.1, 0.5])
    np.testing.assert_allclose(pred.p0 + pred.p1, 1.0)


def test_binomial_probabilities_sum_to_one(engine):
    p1 = np.random.default_rng(3).uniform(size=101)
    pred = engine.materialize(RawPredictionMatrix.from_columns([p1]), nclasses=2)

    np.testing.assert_allclose(pred.probabilities.sum(axis=1), 1.0)


def test_binomial_non_uniform_weights_violate_contract(engine):
    raw = RawPredictionMatrix.from_columns([[0.2, 0.9]], weights=np.array([1.0, 0.5]))
    with pytest.raises(ContractViolation):
        engine.materialize(raw, nclasses=2)


def test_binomial_frame_uses_domain(engine):
    raw = RawPredictionMatrix.from_columns([[0.2, 0.9]])
    frame = engine.materialize(raw, nclasses=2).to_frame(["no", "yes"])

    assert list(frame.columns) == ["predict", "no", "yes"]
    assert frame["predict"].tolist() == ["no", "yes"]


# =====================================================================
# multinomial
# =====================================================================
def test_multinomial_is_exact_transpose(engine):
    columns = [[0.7, 0.1, 0.2], [0.2, 0.6, 0.3], [0.1, 0.3, 0.5]]
    raw = RawPredictionMatrix.from_columns(columns)
    pred = engine.materialize(raw, nclasses=3)

    assert isinstance(pred, MultinomialPrediction)
    np.testing.assert_array_equal(pred.probabilities[0], [0.7, 0.2, 0.1])
    for r in range(3):
        for c in range(3):
            assert pred.probabilities[r][c] == raw.values[c][r]
    assert pred.labels.tolist() == [0, 1, 2]


def test_multinomial_wrong_column_count(engine):
    raw = RawPredictionMatrix.from_columns([[0.5, 0.5], [0.5, 0.5]])
    with pytest.raises(ContractViolation):
        engine.materialize(raw, nclasses=3)


def test_multinomial_transpose_is_timed():
    inst = Instrumentation()
    engine = PredictionMaterializeEngine(inst=inst)
    engine.materialize(RawPredictionMatrix.from_columns(np.full((4, 5), 0.25)), nclasses=4)

    assert "multinomial_transpose" in inst.timeline
    assert "label_assignment" in inst.timeline


def test_partitions_reassemble_in_row_order():
    rng = np.random.default_rng(11)
    probs = rng.dirichlet(np.ones(4), size=37)
    raw = RawPredictionMatrix.from_columns(probs.T)

    small = PredictionMaterializeEngine(partition_rows=5).materialize(raw, nclasses=4)
    whole = PredictionMaterializeEngine(partition_rows=1000).materialize(raw, nclasses=4)

    np.testing.assert_array_equal(small.labels, whole.labels)
    np.testing.assert_array_equal(small.labels, probs.argmax(axis=1))


# =====================================================================
# contract / cancellation
# =====================================================================
def test_zero_classes_is_contract_violation(engine):
    with pytest.raises(ContractViolation):
        engine.materialize(RawPredictionMatrix.from_columns([[0.1]]), nclasses=0)


def test_abort_between_partitions(engine):
    raw = RawPredictionMatrix.from_columns([[0.1, 0.2, 0.3, 0.4, 0.5]])
    with pytest.raises(ScoringAborted):
        engine.materialize(raw, nclasses=2, abort=lambda: True)


def test_raw_matrix_is_read_only():
    raw = RawPredictionMatrix.from_columns([[0.1, 0.2]])
    with pytest.raises(ValueError):
        raw.values[0, 0] = 1.0


def test_from_backend_orients_row_major_output():
    raw = RawPredictionMatrix.from_backend(np.array([[0.6, 0.4], [0.3, 0.7], [0.5, 0.5]]))
    assert (raw.ncols, raw.nrows) == (2, 3)
    np.testing.assert_array_equal(raw.column(1), [0.4, 0.7, 0.5])
