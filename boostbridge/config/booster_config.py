# boostbridge/config/booster_config.py
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class TreeMethod(str, Enum):
    AUTO = "auto"
    EXACT = "exact"
    APPROX = "approx"
    HIST = "hist"


class GrowPolicy(str, Enum):
    DEPTHWISE = "depthwise"
    LOSSGUIDE = "lossguide"


class BoosterKind(str, Enum):
    GBTREE = "gbtree"
    GBLINEAR = "gblinear"
    DART = "dart"


class DartSampleType(str, Enum):
    UNIFORM = "uniform"
    WEIGHTED = "weighted"


class DartNormalizeType(str, Enum):
    TREE = "tree"
    FOREST = "forest"


class DMatrixType(str, Enum):
    AUTO = "auto"
    DENSE = "dense"
    SPARSE = "sparse"


class MissingValuesHandling(str, Enum):
    MEAN_IMPUTATION = "mean_imputation"
    NATIVE = "native"


class DistributionFamily(str, Enum):
    AUTO = "auto"
    BERNOULLI = "bernoulli"
    MULTINOMIAL = "multinomial"
    GAUSSIAN = "gaussian"
    POISSON = "poisson"
    GAMMA = "gamma"
    TWEEDIE = "tweedie"
    LAPLACE = "laplace"
    QUANTILE = "quantile"
    HUBER = "huber"


class BoosterConfig(BaseModel):
    """
    BoosterConfig（unified + backend-native hyperparameters）

    Pairs such as learn_rate / eta describe the same backend parameter.
    A native field left at 0 means "not provided"; the unified value is used then.
    """

    # -------------------------
    # columns
    # -------------------------
    response_column: str
    weights_column: Optional[str] = None
    ignored_columns: List[str] = Field(default_factory=list)

    # -------------------------
    # shared with the in-house GBM
    # -------------------------
    quiet_mode: bool = True
    missing_values_handling: MissingValuesHandling = MissingValuesHandling.NATIVE
    distribution: DistributionFamily = DistributionFamily.AUTO
    tweedie_power: float = 1.5
    seed: int = 1234
    use_all_factor_levels: bool = True

    ntrees: int = 50
    n_estimators: int = 0

    max_depth: int = 5

    min_rows: float = 10
    min_child_weight: float = 0

    learn_rate: float = 0.1
    eta: float = 0

    sample_rate: float = 1.0
    subsample: float = 0

    col_sample_rate: float = 1.0
    colsample_bylevel: float = 0

    col_sample_rate_per_tree: float = 1.0
    colsample_bytree: float = 0

    # 0 disables the leaf output cap in the backend
    max_abs_leafnode_pred: float = 0
    max_delta_step: float = 0

    score_tree_interval: int = 0

    min_split_improvement: float = 0
    gamma: float = 0

    # -------------------------
    # lossguide only
    # -------------------------
    max_bin: int = 255
    num_leaves: int = 255
    min_sum_hessian_in_leaf: float = 100
    min_data_in_leaf: float = 0

    # -------------------------
    # backend specific
    # -------------------------
    tree_method: TreeMethod = TreeMethod.AUTO
    grow_policy: GrowPolicy = GrowPolicy.DEPTHWISE
    booster: BoosterKind = BoosterKind.GBTREE
    dmatrix_type: DMatrixType = DMatrixType.AUTO
    reg_lambda: float = 1
    reg_alpha: float = 0

    # -------------------------
    # dart only
    # -------------------------
    sample_type: DartSampleType = DartSampleType.UNIFORM
    normalize_type: DartNormalizeType = DartNormalizeType.TREE
    rate_drop: float = 0
    one_drop: bool = False
    skip_drop: float = 0
