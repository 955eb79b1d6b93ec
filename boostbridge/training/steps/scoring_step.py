# boostbridge/training/steps/scoring_step.py
from __future__ import annotations

from boostbridge.pipeline.step import PipelineStep
from boostbridge.training.context import TrainingContext


class ScoringStep(PipelineStep):
    """
    Score training / validation data with the current ensemble.
    """

    def run(self, ctx: TrainingContext) -> TrainingContext:
        with self.timed():
            ctx.model.do_scoring(
                ctx.model.handle,
                ctx.score_train,
                ctx.score_valid,
                abort=ctx.abort,
            )
        return ctx
