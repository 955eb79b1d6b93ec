# boostbridge/training/steps/booster_train_step.py
from __future__ import annotations

from boostbridge.pipeline.step import PipelineStep
from boostbridge.training.context import TrainingContext
from boostbridge.training.engines.booster_train_engine import BoosterTrainEngine


class BoosterTrainStep(PipelineStep):
    """
    BoosterTrainStep（per scoring interval）

    Contract:
    - consumes ctx.params / ctx.dtrain / ctx.rounds
    - grows ctx.rounds more trees on top of the model's current handle
    - the model record swaps in the new handle (old one released)
    """

    def __init__(self, engine: BoosterTrainEngine | None = None, inst=None):
        super().__init__(inst)
        self.engine = engine if engine is not None else BoosterTrainEngine()

    def run(self, ctx: TrainingContext) -> TrainingContext:
        with self.inst.timer("backend_train"):
            handle = self.engine.train(
                params=ctx.params,
                dtrain=ctx.dtrain,
                rounds=ctx.rounds,
                prev_handle=ctx.model.handle,
            )

        ctx.model.set_handle(handle)
        return ctx
