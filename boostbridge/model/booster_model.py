# boostbridge/model/booster_model.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
import scipy.sparse as sp
import xgboost as xgb

from boostbridge import logs
from boostbridge.backend.handle import BoosterHandle
from boostbridge.backend.xgboost_backend import XGBoostBackend
from boostbridge.config.booster_config import (
    BoosterConfig,
    DistributionFamily,
    MissingValuesHandling,
)
from boostbridge.config.scoring_config import ScoringConfig
from boostbridge.encoding.descriptor import (
    CategoricalEncodingDescriptor,
    domain_of,
    is_categorical,
)
from boostbridge.encoding.store import DescriptorStore
from boostbridge.observability.instrumentation import Instrumentation, NoOpInstrumentation
from boostbridge.pipeline.parallel.executor import AbortSignal
from boostbridge.scoring.decision import DEFAULT_THRESHOLD
from boostbridge.scoring.engines.metrics_build_engine import MetricsBuildEngine
from boostbridge.scoring.engines.prediction_materialize_engine import PredictionMaterializeEngine
from boostbridge.scoring.metrics import ModelMetrics, ModelMetricsBinomial
from boostbridge.scoring.predictions import MaterializedPrediction, ModelCategory
from boostbridge.training.engines.param_translate_engine import (
    ParamTranslateEngine,
    ResponseStats,
    TranslatedParams,
)
from boostbridge.training.engines.varimp_engine import VarImp, VarImpEngine
from boostbridge.utils.errors import UnsupportedConfigurationError, UserInputError

TRAIN_DESCRIPTION = "Metrics reported on training frame"
VALID_DESCRIPTION = "Metrics reported on validation frame"


@dataclass(frozen=True, eq=False)
class ScoringSet:
    """
    Unlabelled feature matrix plus the encoded response kept beside it.
    actual is None when the frame has no response column; NaN entries are
    missing or unknown response levels and stay out of metrics.
    """
    data: xgb.DMatrix
    actual: Optional[np.ndarray] = None


@dataclass(frozen=True)
class ScoringRecord:
    ntrees: int
    metrics: ModelMetrics


@dataclass
class ModelOutput:
    """
    Stored model record fields produced by training / scoring.
    """
    response_name: str
    domain: Optional[List[str]]
    nclasses: int
    prior_class_dist: Optional[List[float]]

    ntrees: int = 0
    training_metrics: Optional[ModelMetrics] = None
    validation_metrics: Optional[ModelMetrics] = None
    # append-only, one entry per scoring pass, keyed by ensemble size
    scored_train: List[ScoringRecord] = field(default_factory=list)
    scored_valid: List[ScoringRecord] = field(default_factory=list)
    varimp: Optional[VarImp] = None

    @property
    def category(self) -> ModelCategory:
        return ModelCategory.from_nclasses(self.nclasses)

    @property
    def is_classifier(self) -> bool:
        return self.nclasses > 1


@dataclass
class ScoreResult:
    predictions: pd.DataFrame
    metrics: Optional[ModelMetrics] = None
    path: Optional[Path] = None


class BoosterModel:
    """
    BoosterModel（model record）

    Owns:
    - the encoding descriptor identity (published once at construction)
    - the trained backend handle (released on remove())
    - the latest training / validation metrics and their per-iteration history
    - variable importance
    """

    def __init__(
            self,
            cfg: BoosterConfig,
            train: pd.DataFrame,
            *,
            store: DescriptorStore,
            scoring: Optional[ScoringConfig] = None,
            inst: Optional[Instrumentation] = None,
    ):
        if cfg.response_column not in train.columns:
            raise UserInputError(f"response column {cfg.response_column!r} not in training frame")

        self.cfg = cfg
        self.scoring = scoring if scoring is not None else ScoringConfig()
        self.store = store
        self.inst = inst if inst is not None else NoOpInstrumentation()

        self.output = self._make_output(cfg, train)

        descriptor = CategoricalEncodingDescriptor.from_frame(
            train,
            response_column=cfg.response_column,
            ignored_columns=cfg.ignored_columns,
            weights_column=cfg.weights_column,
            use_all_factor_levels=cfg.use_all_factor_levels,
            dmatrix_type=cfg.dmatrix_type,
            impute_means=cfg.missing_values_handling == MissingValuesHandling.MEAN_IMPUTATION,
        )
        self.descriptor_key: Optional[str] = store.put(descriptor)
        self.response_stats = self._response_stats(train) if not self.output.is_classifier else None

        self.handle: Optional[BoosterHandle] = None

        self.translator = ParamTranslateEngine()
        self.materializer = PredictionMaterializeEngine(
            partition_rows=self.scoring.partition_rows,
            max_workers=self.scoring.max_workers,
            inst=self.inst,
        )
        self.metrics_builder = MetricsBuildEngine()
        self.varimp_engine = VarImpEngine()

    # ======================================================================
    # Construction helpers
    # ======================================================================
    @staticmethod
    def _make_output(cfg: BoosterConfig, train: pd.DataFrame) -> ModelOutput:
        response = train[cfg.response_column]
        categorical = is_categorical(response) or cfg.distribution in (
            DistributionFamily.BERNOULLI,
            DistributionFamily.MULTINOMIAL,
        )

        if not categorical:
            return ModelOutput(
                response_name=cfg.response_column,
                domain=None,
                nclasses=1,
                prior_class_dist=None,
            )

        domain = domain_of(response.astype("string") if not is_categorical(response) else response)
        if len(domain) < 2:
            raise UserInputError(
                f"response {cfg.response_column!r} has {len(domain)} level(s), need at least 2"
            )
        if cfg.distribution == DistributionFamily.BERNOULLI and len(domain) != 2:
            raise UnsupportedConfigurationError(
                f"distribution=bernoulli needs a two-level response, "
                f"{cfg.response_column!r} has {len(domain)} levels"
            )

        counts = response.dropna().astype("string").value_counts()
        total = float(counts.sum())
        prior = [float(counts.get(level, 0)) / total for level in domain]

        return ModelOutput(
            response_name=cfg.response_column,
            domain=domain,
            nclasses=len(domain),
            prior_class_dist=prior,
        )

    def _response_stats(self, train: pd.DataFrame) -> ResponseStats:
        y = pd.to_numeric(train[self.cfg.response_column], errors="coerce")
        return ResponseStats(min=float(y.min()), max=float(y.max()), mean=float(y.mean()))

    # ======================================================================
    # Descriptor / data
    # ======================================================================
    @property
    def descriptor(self) -> CategoricalEncodingDescriptor:
        return self.store.get(self.descriptor_key)

    def encode_response(self, frame: pd.DataFrame) -> Optional[np.ndarray]:
        name = self.output.response_name
        if name not in frame.columns:
            return None

        if self.output.domain is None:
            return pd.to_numeric(frame[name], errors="coerce").to_numpy(dtype=np.float64)

        codes = pd.Categorical(
            frame[name].astype("string"), categories=self.output.domain
        ).codes.astype(np.float64)
        # unknown / missing response levels are left out of metrics
        codes[codes < 0] = np.nan
        return codes

    def make_train_dmatrix(self, frame: pd.DataFrame) -> xgb.DMatrix:
        """
        Labelled (and weighted, when configured) training matrix.
        Rows whose response is missing or an unknown level are skipped.
        """
        labels = self.encode_response(frame)
        if labels is None:
            raise UserInputError(f"response column {self.output.response_name!r} not in training frame")

        keep = ~np.isnan(labels)
        skipped = int((~keep).sum())
        if skipped:
            logs.warning(
                f"[BoosterModel] skipped {skipped} training row(s) with missing or unknown response"
            )
            frame = frame.loc[keep]
            labels = labels[keep]
        if len(labels) == 0:
            raise UserInputError("no training rows with a usable response")

        weights = None
        if self.cfg.weights_column is not None:
            weights = pd.to_numeric(frame[self.cfg.weights_column]).to_numpy(dtype=np.float64)

        return XGBoostBackend.to_dmatrix(
            frame,
            self.descriptor,
            labels=labels,
            weights=weights,
        )

    def make_scoring_set(self, frame: pd.DataFrame) -> ScoringSet:
        return ScoringSet(
            data=XGBoostBackend.to_dmatrix(frame, self.descriptor),
            actual=self.encode_response(frame),
        )

    # ======================================================================
    # Training
    # ======================================================================
    def create_params(self, gpu_available: Optional[bool] = None) -> TranslatedParams:
        return self.translator.translate(
            self.cfg,
            nclasses=self.output.nclasses,
            response_stats=self.response_stats,
            gpu_available=gpu_available,
        )

    def set_handle(self, handle: BoosterHandle) -> None:
        previous, self.handle = self.handle, handle
        self.output.ntrees = handle.ntrees
        if previous is not None and previous is not handle:
            previous.release()

    # ======================================================================
    # Scoring
    # ======================================================================
    def default_threshold(self) -> float:
        if self.scoring.threshold is not None:
            return self.scoring.threshold
        mm = self.output.validation_metrics or self.output.training_metrics
        if isinstance(mm, ModelMetricsBinomial) and not np.isnan(mm.max_f1_threshold):
            return mm.max_f1_threshold
        return DEFAULT_THRESHOLD

    def make_preds(
            self,
            handle: BoosterHandle,
            data: xgb.DMatrix,
            *,
            actual: Optional[np.ndarray] = None,
            description: str = "",
            abort: Optional[AbortSignal] = None,
    ) -> tuple[MaterializedPrediction, Optional[ModelMetrics]]:
        with self.inst.timer("backend_predict"):
            raw = XGBoostBackend.predict(handle, data)

        prediction = self.materializer.materialize(
            raw,
            nclasses=self.output.nclasses,
            prior_class_dist=self.output.prior_class_dist,
            threshold=self.default_threshold(),
            abort=abort,
        )

        if actual is None:
            return prediction, None

        with self.inst.timer("metrics_build"):
            metrics = self.metrics_builder.build(
                prediction,
                actual,
                domain=self.output.domain,
                distribution=self.cfg.distribution,
                tweedie_power=self.cfg.tweedie_power,
                description=description,
            )
        return prediction, metrics

    def do_scoring(
            self,
            handle: BoosterHandle,
            train: ScoringSet,
            valid: Optional[ScoringSet] = None,
            *,
            abort: Optional[AbortSignal] = None,
    ) -> None:
        """
        Score training (and validation) data; every row is scored and all
        observation weights are assumed equal.
        """
        ntrees = handle.ntrees

        _, mm = self.make_preds(
            handle, train.data, actual=train.actual, description=TRAIN_DESCRIPTION, abort=abort
        )
        if mm is not None:
            self.output.training_metrics = mm
            self.output.scored_train.append(ScoringRecord(ntrees=ntrees, metrics=mm))
            logs.info(f"[BoosterModel] ntrees={ntrees} train {self._summary(mm)}")

        if valid is not None:
            _, mm = self.make_preds(
                handle, valid.data, actual=valid.actual, description=VALID_DESCRIPTION, abort=abort
            )
            if mm is not None:
                self.output.validation_metrics = mm
                self.output.scored_valid.append(ScoringRecord(ntrees=ntrees, metrics=mm))
                logs.info(f"[BoosterModel] ntrees={ntrees} valid {self._summary(mm)}")

    def compute_varimp(self, varimp: Mapping[str, int]) -> None:
        vi = self.varimp_engine.compute(varimp)
        if vi is None:
            return
        self.output.varimp = vi

    @logs.catch(msg="scoring failed", log_time=False)
    def score(
            self,
            frame: pd.DataFrame,
            *,
            destination: Optional[Path] = None,
            abort: Optional[AbortSignal] = None,
    ) -> ScoreResult:
        handle = self._require_handle()
        scoring_set = self.make_scoring_set(frame)

        prediction, metrics = self.make_preds(
            handle,
            scoring_set.data,
            actual=scoring_set.actual,
            description="Metrics reported on scored frame", abort=abort
        )
        predictions = prediction.to_frame(self.output.domain)

        if destination is None and self.scoring.predictions_dir is not None:
            destination = Path(self.scoring.predictions_dir) / "predictions.parquet"

        path = None
        if destination is not None:
            path = self._write_predictions(predictions, Path(destination))

        return ScoreResult(predictions=predictions, metrics=metrics, path=path)

    def score_row(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        handle = self._require_handle()
        descriptor = self.descriptor
        encoded = descriptor.encode_row(row).reshape(1, -1)
        # absent cells of a sparse layout mean "missing", keep rows consistent with training
        data = xgb.DMatrix(sp.csr_matrix(encoded) if descriptor.sparse else encoded, missing=np.nan)

        prediction, _ = self.make_preds(handle, data)
        record = prediction.to_frame(self.output.domain).iloc[0]
        return {k: (v.item() if isinstance(v, np.generic) else v) for k, v in record.items()}

    # ======================================================================
    # Lifecycle
    # ======================================================================
    def remove(self, timeout: Optional[float] = None) -> None:
        if self.handle is not None:
            self.handle.release(timeout=timeout)
            self.handle = None
        if self.descriptor_key is not None:
            self.store.remove(self.descriptor_key)
            self.descriptor_key = None

    def __enter__(self) -> "BoosterModel":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.remove()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _require_handle(self) -> BoosterHandle:
        if self.handle is None:
            raise UserInputError("model has no trained booster")
        return self.handle

    @staticmethod
    def _write_predictions(predictions: pd.DataFrame, destination: Path) -> Path:
        destination.parent.mkdir(parents=True, exist_ok=True)
        table = pa.Table.from_pandas(predictions, preserve_index=False)
        pq.write_table(table, destination)
        logs.info(f"[BoosterModel] predictions written to {destination}")
        return destination

    @staticmethod
    def _summary(mm: ModelMetrics) -> str:
        d = mm.to_dict()
        keys = ("nobs", "rmse", "auc", "logloss", "mean_per_class_error", "mean_residual_deviance")
        return " ".join(f"{k}={d[k]:.6g}" if isinstance(d[k], float) else f"{k}={d[k]}" for k in keys if k in d)
