# boostbridge/training/context.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

import pandas as pd
import xgboost as xgb

from boostbridge.model.booster_model import BoosterModel, ScoringSet
from boostbridge.training.engines.param_translate_engine import TranslatedParams


@dataclass
class TrainingContext:
    """
    TrainingContext（FINAL / FROZEN）

    Semantics:
    - One context == one training run
    - Steps only read / write fields here; semantics live in engines
    """

    # -------------------------
    # Identity
    # -------------------------
    run_id: str

    # -------------------------
    # Static bindings
    # -------------------------
    cfg: Any
    inst: Any
    model: BoosterModel
    train_frame: pd.DataFrame
    valid_frame: Optional[pd.DataFrame] = None

    # -------------------------
    # Built once
    # -------------------------
    params: Optional[TranslatedParams] = None
    dtrain: Optional[xgb.DMatrix] = None
    # scoring sets never carry observation weights
    score_train: Optional[ScoringSet] = None
    score_valid: Optional[ScoringSet] = None

    # -------------------------
    # Rolling state
    # -------------------------
    rounds: int = 0
    abort: Optional[Callable[[], bool]] = None

    @property
    def ntrees_built(self) -> int:
        return self.model.output.ntrees

    @property
    def aborted(self) -> bool:
        return self.abort is not None and self.abort()
