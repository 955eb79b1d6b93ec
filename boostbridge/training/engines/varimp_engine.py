# boostbridge/training/engines/varimp_engine.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

import numpy as np
import pandas as pd


@dataclass(frozen=True, eq=False)
class VarImp:
    """
    Parallel arrays: names[i] has relative importance importances[i].
    Order is whatever produced it; use sorted() for descending order.
    """
    importances: np.ndarray
    names: tuple[str, ...]

    def __post_init__(self):
        if len(self.importances) != len(self.names):
            raise ValueError("importances / names length mismatch")

    def sorted(self) -> "VarImp":
        order = np.argsort(-self.importances, kind="stable")
        return VarImp(
            importances=self.importances[order],
            names=tuple(self.names[i] for i in order),
        )

    def scaled(self) -> np.ndarray:
        top = self.importances.max() if len(self.importances) else 0.0
        return self.importances / top if top > 0 else self.importances.copy()

    def percentage(self) -> np.ndarray:
        total = self.importances.sum()
        return self.importances / total if total > 0 else self.importances.copy()

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "variable": list(self.names),
                "relative_importance": self.importances,
                "scaled_importance": self.scaled(),
                "percentage": self.percentage(),
            }
        )


class VarImpEngine:
    """
    VarImpEngine（FINAL / FROZEN）

    Responsibility:
    - Turn the backend's {feature -> score} map into a VarImp

    Contract:
    - iteration order of the input map is preserved (no implicit sort)
    - an empty map yields None: callers keep whatever importance they had
    """

    def compute(self, varimp: Mapping[str, int]) -> Optional[VarImp]:
        if not varimp:
            return None

        names = tuple(varimp.keys())
        scores = np.fromiter((float(v) for v in varimp.values()), dtype=np.float32, count=len(names))
        return VarImp(importances=scores, names=names)
