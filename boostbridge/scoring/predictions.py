# boostbridge/scoring/predictions.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd


class ModelCategory(str, Enum):
    REGRESSION = "regression"
    BINOMIAL = "binomial"
    MULTINOMIAL = "multinomial"

    @classmethod
    def from_nclasses(cls, nclasses: int) -> "ModelCategory":
        if nclasses == 1:
            return cls.REGRESSION
        if nclasses == 2:
            return cls.BINOMIAL
        return cls.MULTINOMIAL


def _class_names(domain: Optional[Sequence[str]], nclasses: int) -> list[str]:
    if domain is None:
        return [f"p{c}" for c in range(nclasses)]
    return [str(d) for d in domain]


@dataclass(frozen=True, eq=False)
class RegressionPrediction:
    values: np.ndarray
    category: ModelCategory = ModelCategory.REGRESSION

    @property
    def nrows(self) -> int:
        return len(self.values)

    def to_frame(self, domain: Optional[Sequence[str]] = None) -> pd.DataFrame:
        return pd.DataFrame({"predict": self.values})


@dataclass(frozen=True, eq=False)
class BinomialPrediction:
    labels: np.ndarray
    p0: np.ndarray
    p1: np.ndarray
    category: ModelCategory = ModelCategory.BINOMIAL

    @property
    def nrows(self) -> int:
        return len(self.labels)

    @property
    def probabilities(self) -> np.ndarray:
        return np.column_stack([self.p0, self.p1])

    def to_frame(self, domain: Optional[Sequence[str]] = None) -> pd.DataFrame:
        names = _class_names(domain, 2)
        predict = np.asarray(names, dtype=object)[self.labels] if domain is not None else self.labels
        return pd.DataFrame({"predict": predict, names[0]: self.p0, names[1]: self.p1})


@dataclass(frozen=True, eq=False)
class MultinomialPrediction:
    labels: np.ndarray
    # row-major (rows, C)
    probabilities: np.ndarray
    category: ModelCategory = ModelCategory.MULTINOMIAL

    @property
    def nrows(self) -> int:
        return len(self.labels)

    @property
    def nclasses(self) -> int:
        return self.probabilities.shape[1]

    def to_frame(self, domain: Optional[Sequence[str]] = None) -> pd.DataFrame:
        names = _class_names(domain, self.nclasses)
        predict = np.asarray(names, dtype=object)[self.labels] if domain is not None else self.labels
        frame = pd.DataFrame(self.probabilities, columns=names)
        frame.insert(0, "predict", predict)
        return frame


MaterializedPrediction = Union[RegressionPrediction, BinomialPrediction, MultinomialPrediction]
