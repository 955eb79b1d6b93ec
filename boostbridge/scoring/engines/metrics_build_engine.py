# boostbridge/scoring/engines/metrics_build_engine.py
from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from sklearn.metrics import (
    average_precision_score,
    confusion_matrix,
    log_loss,
    mean_absolute_error,
    mean_gamma_deviance,
    mean_poisson_deviance,
    mean_squared_error,
    mean_tweedie_deviance,
    precision_recall_curve,
    r2_score,
    roc_auc_score,
)

from boostbridge import logs
from boostbridge.config.booster_config import DistributionFamily
from boostbridge.scoring.metrics import (
    NAN,
    ModelMetrics,
    ModelMetricsBinomial,
    ModelMetricsMultinomial,
    ModelMetricsRegression,
    mean_per_class_error,
)
from boostbridge.scoring.predictions import (
    BinomialPrediction,
    MaterializedPrediction,
    ModelCategory,
    MultinomialPrediction,
    RegressionPrediction,
)
from boostbridge.utils.errors import ContractViolation

MAX_HIT_RATIO_K = 10


class MetricsBuildEngine:
    """
    MetricsBuildEngine（FINAL / FROZEN）

    Responsibility:
    - Build the task-appropriate metric aggregate from materialized predictions
      and ground truth
    - Dispatch on the prediction's category tag, never on array shapes

    Contract:
    - `actual` holds the response (regression) or class codes into `domain`
    - rows with a missing response are left out
    - metrics undefined for the data (single class present, invalid deviance
      domain) are logged and reported as NaN
    """

    def build(
            self,
            prediction: MaterializedPrediction,
            actual: np.ndarray,
            *,
            domain: Optional[Sequence[str]] = None,
            distribution: DistributionFamily = DistributionFamily.AUTO,
            tweedie_power: float = 1.5,
            description: str = "",
    ) -> ModelMetrics:
        actual = np.asarray(actual, dtype=np.float64)
        if len(actual) != prediction.nrows:
            raise ContractViolation(
                f"ground truth has {len(actual)} rows, predictions have {prediction.nrows}"
            )

        category = prediction.category
        if category == ModelCategory.REGRESSION:
            mm = self.regression(prediction, actual, distribution, tweedie_power)
        elif category == ModelCategory.BINOMIAL:
            mm = self.binomial(prediction, actual, domain)
        elif category == ModelCategory.MULTINOMIAL:
            mm = self.multinomial(prediction, actual, domain)
        else:
            raise ContractViolation(f"unknown prediction category {category}")

        mm.description = description
        return mm

    # ------------------------------------------------------------------
    # Regression
    # ------------------------------------------------------------------
    def regression(
            self,
            prediction: RegressionPrediction,
            actual: np.ndarray,
            distribution: DistributionFamily = DistributionFamily.AUTO,
            tweedie_power: float = 1.5,
    ) -> ModelMetricsRegression:
        mask = ~np.isnan(actual)
        y = actual[mask]
        f = prediction.values[mask]

        family = DistributionFamily.GAUSSIAN if distribution == DistributionFamily.AUTO else distribution
        mm = ModelMetricsRegression(nobs=len(y), distribution=family.value)
        if len(y) == 0:
            return mm

        mm.mse = float(mean_squared_error(y, f))
        mm.mae = float(mean_absolute_error(y, f))
        mm.r2 = float(r2_score(y, f)) if len(y) > 1 else NAN
        mm.rmsle = (
            float(np.sqrt(np.mean((np.log1p(f) - np.log1p(y)) ** 2)))
            if (y > -1).all() and (f > -1).all()
            else NAN
        )
        mm.mean_residual_deviance = self._deviance(y, f, family, tweedie_power, mm.mse)
        return mm

    @staticmethod
    def _deviance(
            y: np.ndarray,
            f: np.ndarray,
            family: DistributionFamily,
            tweedie_power: float,
            mse: float,
    ) -> float:
        try:
            if family == DistributionFamily.POISSON:
                return float(mean_poisson_deviance(y, f))
            if family == DistributionFamily.GAMMA:
                return float(mean_gamma_deviance(y, f))
            if family == DistributionFamily.TWEEDIE:
                return float(mean_tweedie_deviance(y, f, power=tweedie_power))
        except ValueError as e:
            logs.warning(f"[MetricsBuild] {family.value} deviance undefined: {e}")
            return NAN
        return mse

    # ------------------------------------------------------------------
    # Binomial
    # ------------------------------------------------------------------
    def binomial(
            self,
            prediction: BinomialPrediction,
            actual: np.ndarray,
            domain: Optional[Sequence[str]] = None,
    ) -> ModelMetricsBinomial:
        mask = ~np.isnan(actual)
        y = actual[mask].astype(np.int64)
        p1 = prediction.p1[mask]

        mm = ModelMetricsBinomial(
            nobs=len(y),
            domain=[str(d) for d in domain] if domain is not None else ["0", "1"],
        )
        if len(y) == 0:
            return mm

        mm.mse = float(np.mean((y - p1) ** 2))
        mm.logloss = float(log_loss(y, np.column_stack([1.0 - p1, p1]), labels=[0, 1]))

        threshold = 0.5
        if len(np.unique(y)) < 2:
            logs.warning("[MetricsBuild] only one class present, AUC undefined")
        else:
            mm.auc = float(roc_auc_score(y, p1))
            mm.pr_auc = float(average_precision_score(y, p1))

            precision, recall, thresholds = precision_recall_curve(y, p1)
            with np.errstate(divide="ignore", invalid="ignore"):
                f1 = np.nan_to_num(2 * precision * recall / (precision + recall))
            best = int(np.argmax(f1[:-1]))
            mm.max_f1 = float(f1[best])
            mm.max_f1_threshold = float(thresholds[best])
            threshold = mm.max_f1_threshold

        cm = confusion_matrix(y, (p1 >= threshold).astype(np.int64), labels=[0, 1])
        mm.confusion_matrix = cm
        mm.mean_per_class_error = mean_per_class_error(cm)
        return mm

    # ------------------------------------------------------------------
    # Multinomial
    # ------------------------------------------------------------------
    def multinomial(
            self,
            prediction: MultinomialPrediction,
            actual: np.ndarray,
            domain: Optional[Sequence[str]] = None,
    ) -> ModelMetricsMultinomial:
        nclasses = prediction.nclasses
        if domain is not None and len(domain) != nclasses:
            raise ContractViolation(
                f"domain has {len(domain)} levels, predictions have {nclasses} classes"
            )

        mask = ~np.isnan(actual)
        y = actual[mask].astype(np.int64)
        probs = prediction.probabilities[mask]
        labels = prediction.labels[mask]

        mm = ModelMetricsMultinomial(
            nobs=len(y),
            domain=[str(d) for d in domain] if domain is not None else [str(c) for c in range(nclasses)],
        )
        if len(y) == 0:
            return mm

        classes = list(range(nclasses))
        p_actual = probs[np.arange(len(y)), y]

        mm.mse = float(np.mean((1.0 - p_actual) ** 2))
        # float32 softmax rows drift off 1.0 by rounding; log_loss expects exact rows
        p64 = probs.astype(np.float64)
        p64 = p64 / p64.sum(axis=1, keepdims=True)
        mm.logloss = float(log_loss(y, p64, labels=classes))

        cm = confusion_matrix(y, labels, labels=classes)
        mm.confusion_matrix = cm
        mm.mean_per_class_error = mean_per_class_error(cm)
        mm.hit_ratios = self._hit_ratios(probs, y, min(nclasses, MAX_HIT_RATIO_K))
        return mm

    @staticmethod
    def _hit_ratios(probs: np.ndarray, y: np.ndarray, k: int) -> list[float]:
        order = np.argsort(-probs, axis=1, kind="stable")
        rank = np.argmax(order == y[:, None], axis=1)
        return [float(np.mean(rank < i)) for i in range(1, k + 1)]
