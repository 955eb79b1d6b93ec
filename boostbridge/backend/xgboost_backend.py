# boostbridge/backend/xgboost_backend.py
"""
XGBoost backend seam.

The native library is an external collaborator: this module only
- turns a frame + encoding descriptor into the backend's matrix
- forwards the translated parameter map to training
- brings raw predictions / importance maps back as plain Python data

Backend errors (xgboost.core.XGBoostError) propagate unchanged.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
import xgboost as xgb

from boostbridge import logs
from boostbridge.backend.handle import BoosterHandle
from boostbridge.backend.raw_predictions import RawPredictionMatrix
from boostbridge.encoding.descriptor import CategoricalEncodingDescriptor

# translator key carrying the round count, consumed here and never sent to the backend
ROUNDS_KEY = "nround"


class XGBoostBackend:

    # ------------------------------------------------------------------
    # Data conversion
    # ------------------------------------------------------------------
    @staticmethod
    def to_dmatrix(
            frame: pd.DataFrame,
            descriptor: CategoricalEncodingDescriptor,
            *,
            labels: Optional[np.ndarray] = None,
            weights: Optional[np.ndarray] = None,
    ) -> xgb.DMatrix:
        data = descriptor.encode_frame(frame)
        return xgb.DMatrix(data, label=labels, weight=weights, missing=np.nan)

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    @staticmethod
    def split_rounds(params: Mapping[str, Any]) -> Tuple[Dict[str, Any], int]:
        native = dict(params)
        rounds = int(native.pop(ROUNDS_KEY, 0))
        return native, rounds

    @staticmethod
    def train(
            params: Mapping[str, Any],
            dtrain: xgb.DMatrix,
            *,
            num_boost_round: int,
            prev: Optional[BoosterHandle] = None,
    ) -> BoosterHandle:
        """
        Grow `num_boost_round` more trees, continuing from `prev` when given.
        `prev` is left untouched; the caller decides when to release it.
        """
        native, _ = XGBoostBackend.split_rounds(params)
        built = prev.ntrees if prev is not None else 0

        if prev is None:
            booster = xgb.train(native, dtrain, num_boost_round=num_boost_round)
        else:
            with prev.lease() as prev_booster:
                booster = xgb.train(
                    native,
                    dtrain,
                    num_boost_round=num_boost_round,
                    xgb_model=prev_booster,
                )

        logs.info(f"[XGBoostBackend] trained trees {built} -> {built + num_boost_round}")
        return BoosterHandle(booster, ntrees=built + num_boost_round)

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------
    @staticmethod
    def predict(handle: BoosterHandle, dmatrix: xgb.DMatrix) -> RawPredictionMatrix:
        with handle.lease() as booster:
            preds = booster.predict(dmatrix)

        return RawPredictionMatrix.from_backend(
            preds,
            labels=dmatrix.get_label(),
            weights=dmatrix.get_weight(),
        )

    # ------------------------------------------------------------------
    # Importance
    # ------------------------------------------------------------------
    @staticmethod
    def importance(
            handle: BoosterHandle,
            feature_names: List[str],
            importance_type: str = "weight",
    ) -> Dict[str, int]:
        """
        Backend keys are positional ("f12"); map them back to encoded feature names.
        """
        with handle.lease() as booster:
            raw = booster.get_score(importance_type=importance_type)

        out: Dict[str, int] = {}
        for key, score in raw.items():
            idx = int(key[1:]) if key.startswith("f") and key[1:].isdigit() else None
            name = feature_names[idx] if idx is not None and idx < len(feature_names) else key
            out[name] = int(round(score))
        return out
