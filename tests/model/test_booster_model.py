# tests/model/test_booster_model.py
from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from boostbridge.backend.xgboost_backend import XGBoostBackend
from boostbridge.config.booster_config import DistributionFamily
from boostbridge.config.scoring_config import ScoringConfig
from boostbridge.model.booster_model import TRAIN_DESCRIPTION, VALID_DESCRIPTION, BoosterModel
from boostbridge.scoring.metrics import (
    ModelMetricsBinomial,
    ModelMetricsMultinomial,
    ModelMetricsRegression,
)
from boostbridge.scoring.predictions import ModelCategory
from boostbridge.utils.errors import (
    MissingEncodingDescriptor,
    UnsupportedConfigurationError,
    UserInputError,
)


def train_model(model: BoosterModel, frame: pd.DataFrame, rounds: int = 4) -> None:
    params = model.create_params(gpu_available=False)
    dtrain = model.make_train_dmatrix(frame)
    model.set_handle(XGBoostBackend.train(params.params, dtrain, num_boost_round=rounds))


# =====================================================================
# construction
# =====================================================================
def test_regression_record(booster_cfg, store, regression_frame):
    model = BoosterModel(booster_cfg(), regression_frame, store=store)

    assert model.output.category == ModelCategory.REGRESSION
    assert model.output.domain is None
    assert model.response_stats.min == pytest.approx(regression_frame["label"].min())
    assert model.descriptor_key in store


def test_binary_record_domain_and_prior(booster_cfg, store, binary_frame):
    model = BoosterModel(booster_cfg(), binary_frame, store=store)

    assert model.output.nclasses == 2
    assert model.output.domain == ["no", "yes"]
    share_yes = float((binary_frame["label"] == "yes").mean())
    assert model.output.prior_class_dist == pytest.approx([1 - share_yes, share_yes])


def test_numeric_response_forced_categorical(booster_cfg, store, mixed_frame):
    frame = mixed_frame.assign(label=(mixed_frame["x1"] > 0).astype(int))
    model = BoosterModel(booster_cfg(distribution=DistributionFamily.BERNOULLI), frame, store=store)

    assert model.output.domain == ["0", "1"]


def test_missing_response_column(booster_cfg, store, mixed_frame):
    with pytest.raises(UserInputError):
        BoosterModel(booster_cfg(), mixed_frame, store=store)


def test_single_level_response(booster_cfg, store, mixed_frame):
    with pytest.raises(UserInputError):
        BoosterModel(booster_cfg(), mixed_frame.assign(label="only"), store=store)


def test_bernoulli_rejects_three_level_response(booster_cfg, store, mixed_frame):
    frame = mixed_frame.assign(label=np.arange(len(mixed_frame)) % 3)

    with pytest.raises(UnsupportedConfigurationError):
        BoosterModel(booster_cfg(distribution=DistributionFamily.BERNOULLI), frame, store=store)

    assert len(store) == 0


# =====================================================================
# training + scoring
# =====================================================================
def test_regression_scoring_pass(booster_cfg, store, regression_frame):
    model = BoosterModel(booster_cfg(), regression_frame, store=store)
    train_model(model, regression_frame)

    data = model.make_scoring_set(regression_frame)
    model.do_scoring(model.handle, data, data)

    out = model.output
    assert isinstance(out.training_metrics, ModelMetricsRegression)
    assert out.training_metrics.description == TRAIN_DESCRIPTION
    assert out.validation_metrics.description == VALID_DESCRIPTION
    assert out.training_metrics.nobs == len(regression_frame)
    assert [r.ntrees for r in out.scored_train] == [4]


def test_scoring_history_is_append_only(booster_cfg, store, regression_frame):
    model = BoosterModel(booster_cfg(), regression_frame, store=store)
    params = model.create_params(gpu_available=False)
    dtrain = model.make_train_dmatrix(regression_frame)
    scoring_set = model.make_scoring_set(regression_frame)

    for _ in range(3):
        model.set_handle(XGBoostBackend.train(params.params, dtrain, num_boost_round=2, prev=model.handle))
        model.do_scoring(model.handle, scoring_set)

    assert [r.ntrees for r in model.output.scored_train] == [2, 4, 6]
    assert model.output.training_metrics is model.output.scored_train[-1].metrics


def test_binary_score_frame(booster_cfg, store, binary_frame, tmp_path):
    model = BoosterModel(booster_cfg(), binary_frame, store=store)
    train_model(model, binary_frame)

    result = model.score(binary_frame, destination=tmp_path / "preds.parquet")

    assert list(result.predictions.columns) == ["predict", "no", "yes"]
    np.testing.assert_allclose(result.predictions[["no", "yes"]].sum(axis=1), 1.0, rtol=1e-6)
    assert isinstance(result.metrics, ModelMetricsBinomial)
    assert result.path.exists()
    assert len(pd.read_parquet(result.path)) == len(binary_frame)


def test_training_skips_rows_without_response(booster_cfg, store, regression_frame):
    frame = regression_frame.copy()
    frame.loc[[2, 5], "label"] = np.nan
    model = BoosterModel(booster_cfg(), frame, store=store)

    dtrain = model.make_train_dmatrix(frame)
    assert dtrain.num_row() == len(frame) - 2
    assert not np.isnan(dtrain.get_label()).any()

    train_model(model, frame)
    model.do_scoring(model.handle, model.make_scoring_set(frame))

    assert model.output.training_metrics.nobs == len(frame) - 2
    assert not np.isnan(model.output.training_metrics.mse)


def test_training_without_usable_response(booster_cfg, store, binary_frame):
    model = BoosterModel(booster_cfg(), binary_frame, store=store)

    with pytest.raises(UserInputError):
        model.make_train_dmatrix(binary_frame.assign(label="maybe"))


def test_score_frame_with_missing_and_unseen_response(booster_cfg, store, binary_frame):
    model = BoosterModel(booster_cfg(), binary_frame, store=store)
    train_model(model, binary_frame)

    frame = binary_frame.astype({"label": object})
    frame.loc[0, "label"] = None
    frame.loc[1, "label"] = "maybe"
    result = model.score(frame)

    assert len(result.predictions) == len(frame)
    assert isinstance(result.metrics, ModelMetricsBinomial)
    assert result.metrics.nobs == len(frame) - 2


def test_scoring_set_without_response_has_no_metrics(booster_cfg, store, binary_frame):
    model = BoosterModel(booster_cfg(), binary_frame, store=store)
    train_model(model, binary_frame)

    result = model.score(binary_frame.drop(columns=["label"]))

    assert result.metrics is None
    assert len(result.predictions) == len(binary_frame)


def test_multinomial_score_row(booster_cfg, store, multiclass_frame):
    model = BoosterModel(booster_cfg(), multiclass_frame, store=store)
    train_model(model, multiclass_frame)

    row = multiclass_frame.drop(columns=["label"]).iloc[0].to_dict()
    record = model.score_row(row)

    assert set(record) == {"predict", "high", "low", "mid"}
    assert record["predict"] in ("high", "low", "mid")
    assert sum(record[c] for c in ("high", "low", "mid")) == pytest.approx(1.0, rel=1e-5)


def test_multinomial_metrics(booster_cfg, store, multiclass_frame):
    model = BoosterModel(booster_cfg(), multiclass_frame, store=store)
    train_model(model, multiclass_frame)

    model.do_scoring(model.handle, model.make_scoring_set(multiclass_frame))
    mm = model.output.training_metrics

    assert isinstance(mm, ModelMetricsMultinomial)
    assert mm.domain == ["high", "low", "mid"]
    assert mm.confusion_matrix.shape == (3, 3)


def test_score_row_unseen_level_degrades(booster_cfg, store, binary_frame):
    model = BoosterModel(booster_cfg(), binary_frame, store=store)
    train_model(model, binary_frame)

    record = model.score_row({"color": "purple", "size": "S", "x1": 0.3, "x2": 4.0})
    assert record["predict"] in ("no", "yes")


def test_default_threshold(booster_cfg, store, binary_frame):
    model = BoosterModel(booster_cfg(), binary_frame, store=store, scoring=ScoringConfig(threshold=0.7))
    assert model.default_threshold() == 0.7

    model = BoosterModel(booster_cfg(), binary_frame, store=store)
    assert model.default_threshold() == 0.5


def test_score_requires_trained_booster(booster_cfg, store, regression_frame):
    model = BoosterModel(booster_cfg(), regression_frame, store=store)
    with pytest.raises(UserInputError):
        model.score(regression_frame)


# =====================================================================
# variable importance
# =====================================================================
def test_empty_importance_keeps_previous(booster_cfg, store, regression_frame):
    model = BoosterModel(booster_cfg(), regression_frame, store=store)

    model.compute_varimp({"x1": 5, "x2": 2})
    before = model.output.varimp

    model.compute_varimp({})
    assert model.output.varimp is before


def test_backend_importance_uses_encoded_names(booster_cfg, store, regression_frame):
    model = BoosterModel(booster_cfg(), regression_frame, store=store)
    train_model(model, regression_frame)

    imp = XGBoostBackend.importance(model.handle, model.descriptor.feature_names())
    assert imp
    assert set(imp) <= set(model.descriptor.feature_names())
    assert all(isinstance(v, int) for v in imp.values())


# =====================================================================
# lifecycle
# =====================================================================
def test_remove_releases_handle_and_descriptor(booster_cfg, store, regression_frame):
    model = BoosterModel(booster_cfg(), regression_frame, store=store)
    train_model(model, regression_frame)
    handle, key = model.handle, model.descriptor_key

    model.remove()

    assert handle.released
    assert key not in store
    with pytest.raises(MissingEncodingDescriptor):
        _ = model.descriptor


def test_set_handle_releases_previous(booster_cfg, store, regression_frame):
    model = BoosterModel(booster_cfg(), regression_frame, store=store)
    train_model(model, regression_frame, rounds=2)
    first = model.handle

    train_model(model, regression_frame, rounds=2)
    assert first.released
    assert model.output.ntrees == 2
