# !filepath: boostbridge/config/environment.py

import os

GPU_SIGNAL = "CUDA_PATH"


def detect_gpu() -> bool:
    """
    Whether the process environment advertises a CUDA toolkit.

    Read on every call; the result is never cached.
    """
    return os.getenv(GPU_SIGNAL) is not None
