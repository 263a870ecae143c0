from __future__ import annotations

import logging
import time
from threading import Thread
from typing import Callable

from .directory import CallContext
from .events import EventSink
from .reconciler import Reconciler

logger = logging.getLogger(__name__)


class Scheduler:
    """Runs reconciliation passes forever on a fixed interval."""

    def __init__(
        self,
        reconciler: Reconciler,
        sink: EventSink,
        interval_s: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.reconciler = reconciler
        self.sink = sink
        self.interval_s = max(0.0, float(interval_s))
        self._sleep = sleep
        self._stop = False
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop = False
        self._thr = Thread(target=self.run_forever, daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop = True

    def join(self, timeout: float | None = None) -> None:
        if self._thr:
            self._thr.join(timeout)

    def run_forever(self) -> None:
        while not self._stop:
            self.tick()
            if self._stop:
                break
            self._sleep(self.interval_s)

    def tick(self) -> None:
        """One pass with a fresh unbounded context; errors are reported, never raised."""
        try:
            self.reconciler.run_once(CallContext())
        except Exception as e:
            try:
                self.sink.pass_failed(e)
            except Exception:
                # The sink itself is broken; the loop must survive it.
                logger.exception("reporting failed pass: %s", e)
