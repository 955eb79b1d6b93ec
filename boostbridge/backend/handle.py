# boostbridge/backend/handle.py
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from boostbridge import logs
from boostbridge.utils.errors import HandleReleasedError


class BoosterHandle:
    """
    BoosterHandle（reference-counted owner of a trained backend model）

    - scoring calls hold a lease for the duration of predict
    - release() refuses new leases, waits for active ones, then drops the booster
    - the booster object itself is never mutated through the handle
    """

    def __init__(self, booster: Any, ntrees: int = 0):
        self._booster = booster
        self.ntrees = ntrees
        self._leases = 0
        self._released = False
        self._cond = threading.Condition()

    @property
    def released(self) -> bool:
        with self._cond:
            return self._released

    @property
    def active_leases(self) -> int:
        with self._cond:
            return self._leases

    @contextmanager
    def lease(self) -> Iterator[Any]:
        with self._cond:
            if self._released:
                raise HandleReleasedError("trained model handle already released")
            self._leases += 1
            booster = self._booster
        try:
            yield booster
        finally:
            with self._cond:
                self._leases -= 1
                if self._leases == 0:
                    self._cond.notify_all()

    def release(self, timeout: Optional[float] = None) -> bool:
        """
        Returns False when active leases did not drain within `timeout`;
        the handle stays closed to new leases either way.
        """
        with self._cond:
            self._released = True
            drained = self._cond.wait_for(lambda: self._leases == 0, timeout=timeout)
            if not drained:
                logs.warning(
                    f"[BoosterHandle] release timed out with {self._leases} active lease(s)"
                )
                return False
            self._booster = None
        logs.info("[BoosterHandle] released")
        return True

    def __enter__(self) -> "BoosterHandle":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
