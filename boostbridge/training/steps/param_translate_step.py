# boostbridge/training/steps/param_translate_step.py
from __future__ import annotations

from boostbridge.pipeline.step import PipelineStep
from boostbridge.training.context import TrainingContext


class ParamTranslateStep(PipelineStep):
    """
    ParamTranslateStep（setup）

    Contract:
    - produces ctx.params
    - GPU availability is taken from ctx.cfg.runtime, never from the environment here
    """

    def run(self, ctx: TrainingContext) -> TrainingContext:
        with self.timed():
            ctx.params = ctx.model.create_params(
                gpu_available=ctx.cfg.runtime.gpu_available,
            )
        return ctx
