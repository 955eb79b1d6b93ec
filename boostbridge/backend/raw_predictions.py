# boostbridge/backend/raw_predictions.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from boostbridge.utils.errors import ContractViolation


def _frozen(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=np.float64, copy=True)
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class RawPredictionMatrix:
    """
    RawPredictionMatrix（column-major, read-only）

    values[c][r] = backend output c for scored row r
    - shape (1, n) for regression and binary (P(class1))
    - shape (C, n) for C-class multinomial

    labels / weights are the parallel arrays carried by the scored matrix
    (empty when the scored data has none).
    """

    values: np.ndarray
    labels: np.ndarray
    weights: np.ndarray

    def __post_init__(self):
        if self.values.ndim != 2:
            raise ContractViolation(f"raw predictions must be 2-D, got ndim={self.values.ndim}")
        n = self.values.shape[1]
        for name in ("labels", "weights"):
            arr = getattr(self, name)
            if len(arr) not in (0, n):
                raise ContractViolation(f"{name} length {len(arr)} != rows {n}")

    @classmethod
    def from_columns(
            cls,
            columns,
            labels: Optional[np.ndarray] = None,
            weights: Optional[np.ndarray] = None,
    ) -> "RawPredictionMatrix":
        return cls(
            values=_frozen(np.atleast_2d(np.asarray(columns, dtype=np.float64))),
            labels=_frozen(labels if labels is not None else np.empty(0)),
            weights=_frozen(weights if weights is not None else np.empty(0)),
        )

    @classmethod
    def from_backend(
            cls,
            preds: np.ndarray,
            labels: Optional[np.ndarray] = None,
            weights: Optional[np.ndarray] = None,
    ) -> "RawPredictionMatrix":
        """
        Backend predict output is row-oriented: (n,) or (n, C).
        """
        preds = np.asarray(preds, dtype=np.float64)
        if preds.ndim == 1:
            columns = preds[np.newaxis, :]
        else:
            columns = preds.T
        return cls.from_columns(columns, labels=labels, weights=weights)

    @property
    def nrows(self) -> int:
        return self.values.shape[1]

    @property
    def ncols(self) -> int:
        return self.values.shape[0]

    def column(self, c: int) -> np.ndarray:
        return self.values[c]
