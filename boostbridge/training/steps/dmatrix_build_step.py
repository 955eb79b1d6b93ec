# boostbridge/training/steps/dmatrix_build_step.py
from __future__ import annotations

from boostbridge.pipeline.step import PipelineStep
from boostbridge.training.context import TrainingContext


class DMatrixBuildStep(PipelineStep):
    """
    DMatrixBuildStep（setup）

    Contract:
    - consumes ctx.train_frame / ctx.valid_frame
    - produces ctx.dtrain (labelled, weighted when a weights column is
      configured, rows without a usable response dropped)
    - produces ctx.score_train / ctx.score_valid (every row, unweighted,
      response kept beside the matrix)
    """

    def run(self, ctx: TrainingContext) -> TrainingContext:
        model = ctx.model

        with self.inst.timer("dmatrix_build"):
            ctx.dtrain = model.make_train_dmatrix(ctx.train_frame)
            ctx.score_train = model.make_scoring_set(ctx.train_frame)

            if ctx.valid_frame is not None:
                ctx.score_valid = model.make_scoring_set(ctx.valid_frame)

        return ctx
