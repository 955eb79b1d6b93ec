#!filepath: boostbridge/config/app_config.py
import yaml
from pydantic import BaseModel, Field
from dotenv import load_dotenv
import os

from .log_config import LogConfig
from .booster_config import BoosterConfig
from .scoring_config import ScoringConfig, RuntimeConfig
from .environment import detect_gpu


def project_root() -> str:
    """
    boostbridge/config/app_config.py → boostbridge/config → boostbridge → project_root
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "../../"))


class AppConfig(BaseModel):
    log: LogConfig = Field(default_factory=LogConfig)
    booster: BoosterConfig
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        Load YAML config + .env

        - defaults to <project_root>/boostbridge/config/base.yml
        - runtime flags come from the environment, never from YAML
        """
        root = project_root()

        load_dotenv(os.path.join(root, ".env"))

        if path is None:
            path = os.path.join(root, "boostbridge/config/base.yml")

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        raw["runtime"] = {"gpu_available": detect_gpu()}
        return cls(**raw)
