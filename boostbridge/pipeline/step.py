from __future__ import annotations

from typing import Any

from boostbridge.observability.instrumentation import (
    Instrumentation,
    NoOpInstrumentation,
)


class PipelineStep:
    """
    Pipeline Step base

    Single responsibility: orchestration (call engines, move results through ctx).

    Rules:
      - a Step holds no model semantics; engines do
      - instrumentation is optional, Step behaviour never depends on it
    """

    def __init__(self, inst: Instrumentation | None = None):
        self.inst: Instrumentation | NoOpInstrumentation = (
            inst if inst is not None else NoOpInstrumentation()
        )

    @property
    def step_name(self) -> str:
        return self.__class__.__name__

    def timed(self):
        """
        Step-level scope, not recorded in the timeline.
        """
        return self.inst.timer(self.step_name, record=False)

    def run(self, ctx: Any) -> Any:
        raise NotImplementedError
