# boostbridge/training/engines/param_translate_engine.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Tuple

from boostbridge import logs
from boostbridge.config.booster_config import (
    BoosterConfig,
    BoosterKind,
    DistributionFamily,
    GrowPolicy,
)
from boostbridge.config.environment import detect_gpu
from boostbridge.utils.errors import UnsupportedConfigurationError

# backend seeds are signed 32-bit
SEED_MODULUS = 2**31 - 1

Source = Literal["unified", "native"]


@dataclass(frozen=True)
class AliasedParam:
    """
    One backend parameter reachable from two config fields.
    The native field wins whenever it differs from its sentinel.
    """
    key: str
    unified: str
    native: str
    sentinel: float = 0


ALIASED_PARAMS: Tuple[AliasedParam, ...] = (
    AliasedParam("nround", unified="ntrees", native="n_estimators"),
    AliasedParam("eta", unified="learn_rate", native="eta"),
    AliasedParam("subsample", unified="sample_rate", native="subsample"),
    AliasedParam("colsample_bytree", unified="col_sample_rate_per_tree", native="colsample_bytree"),
    AliasedParam("colsample_bylevel", unified="col_sample_rate", native="colsample_bylevel"),
    AliasedParam("max_delta_step", unified="max_abs_leafnode_pred", native="max_delta_step"),
    AliasedParam("min_child_weight", unified="min_rows", native="min_child_weight"),
    AliasedParam("gamma", unified="min_split_improvement", native="gamma"),
)

ALIAS_BY_KEY: Dict[str, AliasedParam] = {a.key: a for a in ALIASED_PARAMS}

REGRESSION_OBJECTIVES: Dict[DistributionFamily, str] = {
    DistributionFamily.AUTO: "reg:squarederror",
    DistributionFamily.GAUSSIAN: "reg:squarederror",
    DistributionFamily.GAMMA: "reg:gamma",
    DistributionFamily.TWEEDIE: "reg:tweedie",
    DistributionFamily.POISSON: "count:poisson",
}


@dataclass(frozen=True)
class ResponseStats:
    min: float
    max: float
    mean: float


@dataclass
class TranslatedParams:
    params: Dict[str, Any] = field(default_factory=dict)
    # which config field produced each aliased key
    sources: Dict[str, Source] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.params[key]

    def __contains__(self, key: str) -> bool:
        return key in self.params


def resolve_alias(cfg: BoosterConfig, alias: AliasedParam) -> Tuple[Any, Source]:
    native = getattr(cfg, alias.native)
    if native != alias.sentinel:
        return native, "native"
    return getattr(cfg, alias.unified), "unified"


def narrow_seed(seed: int) -> int:
    """
    64-bit config seed -> backend seed range. Distinct seeds may collide here.
    """
    return int(seed % SEED_MODULUS)


class ParamTranslateEngine:
    """
    ParamTranslateEngine（FINAL / FROZEN）

    Responsibility:
    - Map BoosterConfig to the backend's canonical parameter map
    - Own ALL precedence / objective / conditional-block semantics

    Contract:
    - Pure function of (cfg, nclasses, response stats, gpu flag)
    - Fails before any backend call
    - Output order is stable (insertion order of the returned dict)
    """

    @logs.catch(msg="parameter translation failed", log_time=False)
    def translate(
            self,
            cfg: BoosterConfig,
            *,
            nclasses: int,
            response_stats: Optional[ResponseStats] = None,
            gpu_available: Optional[bool] = None,
    ) -> TranslatedParams:
        if nclasses < 1:
            raise UnsupportedConfigurationError(f"nclasses must be >= 1, got {nclasses}")

        if gpu_available is None:
            gpu_available = detect_gpu()

        out = TranslatedParams()

        def put_alias(key: str) -> None:
            alias = ALIAS_BY_KEY[key]
            value, source = resolve_alias(cfg, alias)
            if source == "native":
                logs.info(
                    f"Using user-provided parameter {alias.native} instead of {alias.unified}."
                )
            out.params[key] = value
            out.sources[key] = source

        p = out.params

        # --------------------------------------------------
        # shared with the in-house GBM
        # --------------------------------------------------
        put_alias("nround")
        put_alias("eta")
        p["max_depth"] = cfg.max_depth
        p["verbosity"] = 0 if cfg.quiet_mode else 1
        put_alias("subsample")
        put_alias("colsample_bytree")
        put_alias("colsample_bylevel")
        put_alias("max_delta_step")
        p["seed"] = narrow_seed(cfg.seed)

        # --------------------------------------------------
        # backend specific
        # --------------------------------------------------
        p["tree_method"] = cfg.tree_method.value
        p["grow_policy"] = cfg.grow_policy.value
        if cfg.grow_policy == GrowPolicy.LOSSGUIDE:
            p["max_bin"] = cfg.max_bin
            p["max_leaves"] = cfg.num_leaves
            p["min_sum_hessian_in_leaf"] = cfg.min_sum_hessian_in_leaf
            p["min_data_in_leaf"] = cfg.min_data_in_leaf

        p["booster"] = cfg.booster.value
        if cfg.booster == BoosterKind.DART:
            p["sample_type"] = cfg.sample_type.value
            p["normalize_type"] = cfg.normalize_type.value
            p["rate_drop"] = cfg.rate_drop
            p["one_drop"] = "1" if cfg.one_drop else "0"
            p["skip_drop"] = cfg.skip_drop

        if gpu_available:
            p["updater"] = "grow_gpu_hist"

        put_alias("min_child_weight")
        put_alias("gamma")

        p["lambda"] = cfg.reg_lambda
        p["alpha"] = cfg.reg_alpha

        self._put_objective(p, cfg, nclasses, response_stats)

        logs.info("XGBoost Parameters:")
        for k, v in p.items():
            logs.info(f" {k} = {v}")

        return out

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    @staticmethod
    def _put_objective(
            p: Dict[str, Any],
            cfg: BoosterConfig,
            nclasses: int,
            stats: Optional[ResponseStats],
    ) -> None:
        if nclasses == 2:
            p["objective"] = "binary:logistic"
            return

        if nclasses > 2:
            p["objective"] = "multi:softprob"
            p["num_class"] = nclasses
            return

        dist = cfg.distribution
        objective = REGRESSION_OBJECTIVES.get(dist)
        if objective is None:
            raise UnsupportedConfigurationError(
                f"No support for distribution={dist.value}"
            )

        if stats is not None:
            ParamTranslateEngine._check_response(dist, stats)

        p["objective"] = objective
        if dist == DistributionFamily.TWEEDIE:
            p["tweedie_variance_power"] = cfg.tweedie_power

    @staticmethod
    def _check_response(dist: DistributionFamily, stats: ResponseStats) -> None:
        if dist == DistributionFamily.GAMMA and stats.min <= 0:
            raise UnsupportedConfigurationError(
                f"distribution=gamma needs a strictly positive response, min={stats.min}"
            )
        if dist in (DistributionFamily.POISSON, DistributionFamily.TWEEDIE) and stats.min < 0:
            raise UnsupportedConfigurationError(
                f"distribution={dist.value} needs a non-negative response, min={stats.min}"
            )
