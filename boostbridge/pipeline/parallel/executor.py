# boostbridge/pipeline/parallel/executor.py
from __future__ import annotations

import os
from concurrent.futures import ProcessPoolExecutor, FIRST_COMPLETED, wait
from typing import Any, Callable, Iterable, Optional, TypeVar

from boostbridge.pipeline.parallel.types import ParallelKind
from boostbridge.utils.errors import ScoringAborted
from boostbridge import logs

T = TypeVar("T")
R = TypeVar("R")

AbortSignal = Callable[[], bool]


class ParallelExecutor:
    """
    ParallelExecutor（partition map）

    - every item is handed to `handler` exactly once
    - results come back in completion order (no ordering guarantee)
    - `abort` is polled between partitions, never inside one
    - handler and items must be picklable when workers > 1
    """

    @staticmethod
    def run(
            *,
            kind: ParallelKind,
            items: Iterable[T],
            handler: Callable[[T], R],
            max_workers: int | None = None,
            abort: Optional[AbortSignal] = None,
    ) -> list[R]:
        items = list(items)
        if not items:
            logs.info("[ParallelExecutor] no items to process")
            return []

        workers = ParallelExecutor._resolve_workers(items, max_workers)

        logs.debug(
            f"[ParallelExecutor] start "
            f"kind={kind.value} total={len(items)} workers={workers}"
        )

        if workers == 1:
            results = ParallelExecutor._run_sequential(items, handler, abort)
        else:
            results = ParallelExecutor._run_parallel(items, handler, workers, abort)

        logs.debug(f"[ParallelExecutor] done kind={kind.value} total={len(results)}")
        return results

    # ---------------- internal ----------------

    @staticmethod
    def _resolve_workers(items: list, max_workers: int | None) -> int:
        cpu = os.cpu_count() or 1
        if max_workers is None:
            return min(cpu, len(items))
        return max(1, min(max_workers, len(items)))

    @staticmethod
    def _check_abort(abort: Optional[AbortSignal], done: int, total: int) -> None:
        if abort is not None and abort():
            raise ScoringAborted(f"aborted after {done}/{total} partitions")

    @staticmethod
    def _run_sequential(
            items: list[T],
            handler: Callable[[T], R],
            abort: Optional[AbortSignal],
    ) -> list[R]:
        results = []
        for i, item in enumerate(items):
            ParallelExecutor._check_abort(abort, i, len(items))
            results.append(handler(item))
        return results

    @staticmethod
    def _run_parallel(
            items: list[T],
            handler: Callable[[T], R],
            workers: int,
            abort: Optional[AbortSignal],
    ) -> list[R]:
        logs.debug(f"[ParallelExecutor] run parallel | workers={workers}")

        pending_items = iter(items)
        results: list[Any] = []

        with ProcessPoolExecutor(max_workers=workers) as pool:
            running = set()

            def submit_next() -> bool:
                item = next(pending_items, _DONE)
                if item is _DONE:
                    return False
                running.add(pool.submit(handler, item))
                return True

            for _ in range(workers):
                if not submit_next():
                    break

            while running:
                finished, running = wait(running, return_when=FIRST_COMPLETED)
                for fut in finished:
                    results.append(fut.result())

                if abort is not None and abort():
                    for fut in running:
                        fut.cancel()
                    raise ScoringAborted(f"aborted after {len(results)}/{len(items)} partitions")

                while len(running) < workers and submit_next():
                    pass

        return results


_DONE = object()
