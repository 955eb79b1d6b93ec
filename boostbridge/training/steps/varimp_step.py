# boostbridge/training/steps/varimp_step.py
from __future__ import annotations

from boostbridge import logs
from boostbridge.backend.xgboost_backend import XGBoostBackend
from boostbridge.pipeline.step import PipelineStep
from boostbridge.training.context import TrainingContext


class VarImpStep(PipelineStep):
    """
    VarImpStep（final）

    Contract:
    - pulls the backend's split-count map for the final ensemble
    - an empty map leaves the stored importance untouched
    """

    def __init__(self, importance_type: str = "weight", inst=None):
        super().__init__(inst)
        self.importance_type = importance_type

    def run(self, ctx: TrainingContext) -> TrainingContext:
        model = ctx.model
        if model.handle is None:
            logs.warning(f"[{self.step_name}] no trained booster, skip")
            return ctx

        varimp = XGBoostBackend.importance(
            model.handle,
            model.descriptor.feature_names(),
            importance_type=self.importance_type,
        )
        model.compute_varimp(varimp)
        return ctx
