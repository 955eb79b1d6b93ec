# boostbridge/scoring/decision.py
from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from boostbridge.utils.errors import ContractViolation

DEFAULT_THRESHOLD = 0.5


def row_hash(data: Optional[Sequence[float]]) -> int:
    """
    Stable hash of a raw row; low mantissa bits are ignored so that
    near-identical rows break ties the same way.
    """
    if data is None:
        return 0
    bits = np.ascontiguousarray(data, dtype=np.float64).view(np.int64) >> 6
    h = 0
    for b in bits.tolist():
        h ^= b
    return h & 0x7FFFFFFFFFFFFFFF


def get_prediction(
        probs: Sequence[float],
        prior_class_dist: Optional[Sequence[float]] = None,
        data: Optional[Sequence[float]] = None,
        threshold: float = DEFAULT_THRESHOLD,
) -> int:
    """
    Class index for one row of class probabilities.

    - 2 classes: 1 when P(class1) >= threshold (a tie at the threshold goes to class 1)
    - more classes: argmax; ties are broken by a draw weighted with the prior
      class distribution (when given), else by row_hash(data) modulo the tie count
    - the draw is seeded with row_hash(data); data=None hashes to 0, so the
      draw is a fixed-seed one and the same tie always resolves the same way
    """
    probs = np.asarray(probs, dtype=np.float64)
    nclasses = probs.shape[0]

    if nclasses == 2:
        return 1 if probs[1] >= threshold else 0

    if nclasses < 2:
        raise ContractViolation(f"label decision needs >= 2 classes, got {nclasses}")

    best = probs.max()
    ties = np.flatnonzero(probs == best)
    if len(ties) == 1:
        return int(ties[0])

    h = row_hash(data)

    if prior_class_dist is not None:
        prior = np.asarray(prior_class_dist, dtype=np.float64)
        if prior.shape[0] != nclasses:
            raise ContractViolation(
                f"prior class distribution has {prior.shape[0]} entries, expected {nclasses}"
            )
        weights = prior[ties]
        total = weights.sum()
        if total > 0:
            draw = np.random.default_rng(h).random()
            cumulative = np.cumsum(weights / total)
            return int(ties[min(np.searchsorted(cumulative, draw), len(ties) - 1)])

    return int(ties[h % len(ties)])


def assign_labels(
        probs: np.ndarray,
        prior_class_dist: Optional[Sequence[float]] = None,
        threshold: float = DEFAULT_THRESHOLD,
) -> np.ndarray:
    """
    Row-wise get_prediction over a (rows, C) block.

    Rows are decided without their raw feature values (data=None), so tied
    rows all take the fixed-seed draw and resolve to the same class.
    """
    if probs.ndim != 2:
        raise ContractViolation(f"probability block must be 2-D, got ndim={probs.ndim}")

    if probs.shape[1] == 2:
        return (probs[:, 1] >= threshold).astype(np.int32)

    out = np.empty(probs.shape[0], dtype=np.int32)
    for r in range(probs.shape[0]):
        out[r] = get_prediction(probs[r], prior_class_dist, None, threshold)
    return out
