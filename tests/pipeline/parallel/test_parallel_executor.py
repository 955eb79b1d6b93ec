# tests/pipeline/parallel/test_parallel_executor.py
from __future__ import annotations

import pytest

from boostbridge.pipeline.parallel.executor import ParallelExecutor
from boostbridge.pipeline.parallel.types import ParallelKind
from boostbridge.utils.errors import ScoringAborted


def square(x: int) -> int:
    return x * x


def test_run_with_empty_items_does_nothing():
    called = []

    out = ParallelExecutor.run(
        kind=ParallelKind.ROW_RANGE,
        items=[],
        handler=called.append,
    )

    assert out == []
    assert called == []


def test_run_sequential_visits_each_item_once():
    called = []

    def handler(x):
        called.append(x)
        return x

    out = ParallelExecutor.run(
        kind=ParallelKind.ROW_RANGE,
        items=["a", "b", "c"],
        handler=handler,
        max_workers=1,
    )

    assert called == ["a", "b", "c"]
    assert out == ["a", "b", "c"]


def test_run_parallel_processes_all_items():
    out = ParallelExecutor.run(
        kind=ParallelKind.ROW_RANGE,
        items=list(range(10)),
        handler=square,
        max_workers=2,
    )

    # completion order is not guaranteed
    assert sorted(out) == [x * x for x in range(10)]


def test_sequential_abort_checked_between_items():
    seen = []
    state = {"n": 0}

    def handler(x):
        seen.append(x)
        return x

    def abort():
        state["n"] += 1
        return state["n"] > 2

    with pytest.raises(ScoringAborted):
        ParallelExecutor.run(
            kind=ParallelKind.ROW_RANGE,
            items=[1, 2, 3, 4],
            handler=handler,
            max_workers=1,
            abort=abort,
        )

    assert seen == [1, 2]


def test_parallel_abort_raises():
    with pytest.raises(ScoringAborted):
        ParallelExecutor.run(
            kind=ParallelKind.ROW_RANGE,
            items=list(range(8)),
            handler=square,
            max_workers=2,
            abort=lambda: True,
        )


def test_handler_errors_propagate():
    def handler(x):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        ParallelExecutor.run(
            kind=ParallelKind.FRAME,
            items=[1],
            handler=handler,
        )


@pytest.mark.parametrize(
    "n, max_workers, expected",
    [
        (5, 1, 1),
        (2, 8, 2),
        (10, 3, 3),
        (4, 0, 1),
    ],
)
def test_resolve_workers(n, max_workers, expected):
    assert ParallelExecutor._resolve_workers(list(range(n)), max_workers) == expected
