# boostbridge/scoring/engines/prediction_materialize_engine.py
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from boostbridge import logs
from boostbridge.backend.raw_predictions import RawPredictionMatrix
from boostbridge.observability.instrumentation import Instrumentation, NoOpInstrumentation
from boostbridge.pipeline.parallel.executor import AbortSignal, ParallelExecutor
from boostbridge.pipeline.parallel.types import ParallelKind
from boostbridge.scoring.decision import DEFAULT_THRESHOLD, assign_labels
from boostbridge.scoring.predictions import (
    BinomialPrediction,
    MaterializedPrediction,
    ModelCategory,
    MultinomialPrediction,
    RegressionPrediction,
)
from boostbridge.utils.errors import ContractViolation

# (row offset, probability block, prior class distribution, threshold)
LabelTask = Tuple[int, np.ndarray, Optional[Tuple[float, ...]], float]


def label_partition(task: LabelTask) -> Tuple[int, np.ndarray]:
    start, block, prior, threshold = task
    return start, assign_labels(block, prior, threshold)


class PredictionMaterializeEngine:
    """
    PredictionMaterializeEngine（FINAL / FROZEN）

    Responsibility:
    - Turn the backend's column-major RawPredictionMatrix into row-major,
      task-shaped predictions
    - Own the class-label decision for binomial / multinomial output

    Contract:
    - Input matrix is complete before any partition starts (single predict call)
    - Regression / binomial scoring requires uniform observation weights
    - Label assignment is partition-parallel; partitions may finish in any order
    """

    def __init__(
            self,
            *,
            partition_rows: int = 100_000,
            max_workers: int = 1,
            inst: Instrumentation | None = None,
    ):
        if partition_rows < 1:
            raise ValueError("partition_rows must be >= 1")
        self.partition_rows = partition_rows
        self.max_workers = max_workers
        self.inst = inst if inst is not None else NoOpInstrumentation()

    # ======================================================================
    # Public API
    # ======================================================================
    def materialize(
            self,
            raw: RawPredictionMatrix,
            *,
            nclasses: int,
            prior_class_dist: Optional[Sequence[float]] = None,
            threshold: float = DEFAULT_THRESHOLD,
            abort: Optional[AbortSignal] = None,
    ) -> MaterializedPrediction:
        if nclasses < 1:
            raise ContractViolation(f"nclasses must be >= 1, got {nclasses}")
        category = ModelCategory.from_nclasses(nclasses)

        if category == ModelCategory.REGRESSION:
            return self._regression(raw)
        if category == ModelCategory.BINOMIAL:
            return self._binomial(raw, prior_class_dist, threshold, abort)
        return self._multinomial(raw, nclasses, prior_class_dist, threshold, abort)

    # ======================================================================
    # Internal
    # ======================================================================
    def _regression(self, raw: RawPredictionMatrix) -> RegressionPrediction:
        self._expect_columns(raw, 1)
        self._require_uniform_weights(raw)
        return RegressionPrediction(values=raw.column(0).copy())

    def _binomial(
            self,
            raw: RawPredictionMatrix,
            prior: Optional[Sequence[float]],
            threshold: float,
            abort: Optional[AbortSignal],
    ) -> BinomialPrediction:
        self._expect_columns(raw, 1)
        self._require_uniform_weights(raw)

        p1 = raw.column(0).copy()
        p0 = 1.0 - p1

        labels = self._assign(np.column_stack([p0, p1]), prior, threshold, abort)
        return BinomialPrediction(labels=labels, p0=p0, p1=p1)

    def _multinomial(
            self,
            raw: RawPredictionMatrix,
            nclasses: int,
            prior: Optional[Sequence[float]],
            threshold: float,
            abort: Optional[AbortSignal],
    ) -> MultinomialPrediction:
        self._expect_columns(raw, nclasses)

        # slowest step of a scoring pass: full copy into row-major layout
        with self.inst.timer("multinomial_transpose"):
            probs = np.ascontiguousarray(raw.values.T)

        labels = self._assign(probs, prior, threshold, abort)
        return MultinomialPrediction(labels=labels, probabilities=probs)

    def _assign(
            self,
            probs: np.ndarray,
            prior: Optional[Sequence[float]],
            threshold: float,
            abort: Optional[AbortSignal],
    ) -> np.ndarray:
        n = probs.shape[0]
        prior_t = tuple(float(p) for p in prior) if prior is not None else None

        tasks: List[LabelTask] = [
            (start, probs[start:start + self.partition_rows], prior_t, threshold)
            for start in range(0, n, self.partition_rows)
        ]

        with self.inst.timer("label_assignment"):
            parts = ParallelExecutor.run(
                kind=ParallelKind.ROW_RANGE,
                items=tasks,
                handler=label_partition,
                max_workers=self.max_workers,
                abort=abort,
            )

        labels = np.empty(n, dtype=np.int32)
        for start, block in parts:
            labels[start:start + len(block)] = block

        logs.debug(f"[PredictionMaterialize] labelled rows={n} partitions={len(tasks)}")
        return labels

    @staticmethod
    def _expect_columns(raw: RawPredictionMatrix, expected: int) -> None:
        if raw.ncols != expected:
            raise ContractViolation(
                f"raw prediction matrix has {raw.ncols} column(s), expected {expected}"
            )

    @staticmethod
    def _require_uniform_weights(raw: RawPredictionMatrix) -> None:
        # every row is scored with weight 1; weighted scoring is not defined here
        if len(raw.weights) and not np.all(raw.weights == 1.0):
            bad = int(np.count_nonzero(raw.weights != 1.0))
            raise ContractViolation(
                f"observation weights must all be 1.0 for scoring, {bad} row(s) differ"
            )
