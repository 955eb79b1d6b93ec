# boostbridge/pipeline/parallel/types.py
from enum import Enum


class ParallelKind(str, Enum):
    ROW_RANGE = "row_range"
    FRAME = "frame"
