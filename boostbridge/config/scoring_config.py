# boostbridge/config/scoring_config.py
from typing import Optional

from pydantic import BaseModel, Field


class ScoringConfig(BaseModel):
    # None -> model default (max-F1 threshold of the latest metrics, else 0.5)
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    max_workers: int = Field(default=1, ge=1)
    partition_rows: int = Field(default=100_000, ge=1)
    predictions_dir: Optional[str] = None


class RuntimeConfig(BaseModel):
    gpu_available: bool = False
