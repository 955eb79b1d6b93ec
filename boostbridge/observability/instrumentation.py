#!filepath: boostbridge/observability/instrumentation.py
from __future__ import annotations

from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Dict

from boostbridge import logs


@dataclass
class Instrumentation:
    """
    Stage timings for training / scoring passes.

    - timer(name) adds the elapsed wall time to timeline[name]
    - a stage hit once per scoring interval accumulates, calls[name] counts the hits
    - record=False only bounds a parent scope (nothing stored)
    """

    enabled: bool = True
    timeline: Dict[str, float] = field(default_factory=OrderedDict)
    calls: Dict[str, int] = field(default_factory=dict)

    def timer(self, name: str, *, record: bool = True):
        inst = self

        @contextmanager
        def _ctx():
            if not inst.enabled:
                yield
                return

            start = perf_counter()
            try:
                yield
            finally:
                if record:
                    inst.timeline[name] = inst.timeline.get(name, 0.0) + (perf_counter() - start)
                    inst.calls[name] = inst.calls.get(name, 0) + 1

        return _ctx()

    def report(self) -> None:
        total = sum(self.timeline.values()) or 1.0
        for name, sec in self.timeline.items():
            logs.info(
                f"[Timeline] {name:<24} x{self.calls.get(name, 0):<4} "
                f"{sec:8.4f}s {sec / total:6.1%}"
            )


class NoOpInstrumentation:
    """Used when observability is disabled."""

    def __init__(self):
        self.timeline: Dict[str, float] = {}
        self.calls: Dict[str, int] = {}

    def timer(self, name: str, *, record: bool = True):
        return _NoOpTimer()

    def report(self) -> None:
        pass


class _NoOpTimer:
    def __enter__(self):
        pass

    def __exit__(self, exc_type, exc, tb):
        pass
