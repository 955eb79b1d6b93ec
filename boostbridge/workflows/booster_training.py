# boostbridge/workflows/booster_training.py
from __future__ import annotations

from boostbridge.config.app_config import AppConfig
from boostbridge.encoding.store import DescriptorStore
from boostbridge.observability.instrumentation import Instrumentation
from boostbridge.training.pipeline import TrainingPipeline

from boostbridge.training.steps.param_translate_step import ParamTranslateStep
from boostbridge.training.steps.dmatrix_build_step import DMatrixBuildStep
from boostbridge.training.steps.booster_train_step import BoosterTrainStep
from boostbridge.training.steps.scoring_step import ScoringStep
from boostbridge.training.steps.varimp_step import VarImpStep


def build_booster_training(
        cfg: AppConfig | None = None,
        store: DescriptorStore | None = None,
) -> TrainingPipeline:
    """
    Booster Training Workflow (FINAL / FROZEN)
    """

    if cfg is None:
        cfg = AppConfig.load()
    if store is None:
        store = DescriptorStore()
    inst = Instrumentation()

    return TrainingPipeline(
        setup_steps=[
            ParamTranslateStep(inst=inst),
            DMatrixBuildStep(inst=inst),
        ],
        iteration_steps=[
            BoosterTrainStep(inst=inst),
            ScoringStep(inst=inst),
        ],
        final_steps=[
            VarImpStep(inst=inst),
        ],
        store=store,
        inst=inst,
        cfg=cfg,
    )
