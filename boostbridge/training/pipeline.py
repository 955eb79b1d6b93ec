# boostbridge/training/pipeline.py
from __future__ import annotations

import uuid
from typing import Callable, List, Optional

import pandas as pd

from boostbridge import logs
from boostbridge.config.app_config import AppConfig
from boostbridge.encoding.store import DescriptorStore
from boostbridge.model.booster_model import BoosterModel
from boostbridge.observability.instrumentation import Instrumentation
from boostbridge.pipeline.step import PipelineStep
from boostbridge.training.context import TrainingContext
from boostbridge.training.engines.booster_train_engine import score_schedule
from boostbridge.utils.errors import ScoringAborted


class TrainingPipeline:
    """
    TrainingPipeline（FINAL / FROZEN）

    Semantics:
    - setup steps run once (parameter translation, data conversion)
    - iteration steps run once per scoring interval (grow trees, score)
    - final steps run after the last interval (variable importance)
    - abort is checked between intervals
    - any failure releases the model (descriptor + backend handle) before re-raising
    """

    def __init__(
            self,
            *,
            setup_steps: List[PipelineStep],
            iteration_steps: List[PipelineStep],
            final_steps: List[PipelineStep],
            store: DescriptorStore,
            inst: Instrumentation,
            cfg: AppConfig,
    ):
        self.setup_steps = setup_steps
        self.iteration_steps = iteration_steps
        self.final_steps = final_steps
        self.store = store
        self.inst = inst
        self.cfg = cfg

    def run(
            self,
            train: pd.DataFrame,
            valid: Optional[pd.DataFrame] = None,
            *,
            run_id: Optional[str] = None,
            abort: Optional[Callable[[], bool]] = None,
    ) -> TrainingContext:
        run_id = run_id or uuid.uuid4().hex[:12]
        logs.info(f"[TrainingPipeline] START run_id={run_id}")

        model = BoosterModel(
            self.cfg.booster,
            train,
            store=self.store,
            scoring=self.cfg.scoring,
            inst=self.inst,
        )

        try:
            ctx = TrainingContext(
                run_id=run_id,
                cfg=self.cfg,
                inst=self.inst,
                model=model,
                train_frame=train,
                valid_frame=valid,
                abort=abort,
            )

            for step in self.setup_steps:
                ctx = step.run(ctx)

            target = int(ctx.params["nround"])
            schedule = score_schedule(target, self.cfg.booster.score_tree_interval)

            for rounds in schedule:
                if ctx.aborted:
                    raise ScoringAborted(
                        f"training aborted at ntrees={ctx.ntrees_built}/{target}"
                    )

                ctx.rounds = rounds
                for step in self.iteration_steps:
                    ctx = step.run(ctx)

            for step in self.final_steps:
                ctx = step.run(ctx)
        except BaseException:
            # a failed run never leaves its descriptor or backend handle behind
            logs.warning(f"[TrainingPipeline] FAILED run_id={run_id}, releasing model")
            model.remove()
            raise

        self.inst.report()
        logs.info(f"[TrainingPipeline] DONE run_id={run_id} ntrees={ctx.ntrees_built}")
        return ctx
