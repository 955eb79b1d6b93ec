# boostbridge/scoring/metrics.py
from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

import numpy as np

from boostbridge.scoring.predictions import ModelCategory

NAN = float("nan")


def mean_per_class_error(cm: np.ndarray) -> float:
    support = cm.sum(axis=1)
    seen = support > 0
    if not seen.any():
        return NAN
    recall = np.diag(cm)[seen] / support[seen]
    return float(np.mean(1.0 - recall))


@dataclass
class ModelMetrics:
    """
    Base of the three metric aggregates. `description` names the scored
    frame (training / validation) and is set by whoever stores the metrics.
    """
    category: ModelCategory
    nobs: int = 0
    mse: float = NAN
    description: str = ""

    @property
    def rmse(self) -> float:
        return math.sqrt(self.mse) if not math.isnan(self.mse) else NAN

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, np.ndarray):
                value = value.tolist()
            elif isinstance(value, ModelCategory):
                value = value.value
            out[f.name] = value
        out["rmse"] = self.rmse
        return out


@dataclass
class ModelMetricsRegression(ModelMetrics):
    category: ModelCategory = ModelCategory.REGRESSION
    mae: float = NAN
    rmsle: float = NAN
    r2: float = NAN
    mean_residual_deviance: float = NAN
    distribution: str = "gaussian"


@dataclass
class ModelMetricsBinomial(ModelMetrics):
    category: ModelCategory = ModelCategory.BINOMIAL
    auc: float = NAN
    pr_auc: float = NAN
    logloss: float = NAN
    max_f1: float = NAN
    max_f1_threshold: float = NAN
    mean_per_class_error: float = NAN
    confusion_matrix: Optional[np.ndarray] = None
    domain: List[str] = field(default_factory=list)

    @property
    def gini(self) -> float:
        return 2 * self.auc - 1

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["gini"] = self.gini
        return out


@dataclass
class ModelMetricsMultinomial(ModelMetrics):
    category: ModelCategory = ModelCategory.MULTINOMIAL
    logloss: float = NAN
    mean_per_class_error: float = NAN
    confusion_matrix: Optional[np.ndarray] = None
    hit_ratios: List[float] = field(default_factory=list)
    domain: List[str] = field(default_factory=list)
