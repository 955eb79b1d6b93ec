# boostbridge/training/engines/booster_train_engine.py
from __future__ import annotations

from typing import List, Optional

import xgboost as xgb

from boostbridge.backend.handle import BoosterHandle
from boostbridge.backend.xgboost_backend import XGBoostBackend
from boostbridge.training.engines.param_translate_engine import TranslatedParams


def score_schedule(ntrees: int, interval: int) -> List[int]:
    """
    Tree counts grown between scoring passes.
    interval <= 0 scores once, after all trees.
    """
    if ntrees <= 0:
        return []
    if interval <= 0 or interval >= ntrees:
        return [ntrees]
    chunks = [interval] * (ntrees // interval)
    if ntrees % interval:
        chunks.append(ntrees % interval)
    return chunks


class BoosterTrainEngine:
    """
    BoosterTrainEngine（FINAL / FROZEN）

    Incremental training:
    - prev_handle None -> fresh ensemble
    - otherwise continue from prev_handle (left untouched)

    Returns a new handle; releasing the old one is the caller's decision.
    """

    def train(
            self,
            *,
            params: TranslatedParams,
            dtrain: xgb.DMatrix,
            rounds: int,
            prev_handle: Optional[BoosterHandle],
    ) -> BoosterHandle:
        if rounds <= 0:
            raise ValueError(f"rounds must be positive, got {rounds}")

        return XGBoostBackend.train(
            params.params,
            dtrain,
            num_boost_round=rounds,
            prev=prev_handle,
        )
