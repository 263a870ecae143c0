from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING, Protocol

from . import db
from .runtime import RuntimeState

if TYPE_CHECKING:
    from .models import WorkloadRecord
    from .reconciler import PassSummary

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Where the reconciler and scheduler report what happened."""

    def pass_completed(self, summary: PassSummary) -> None:
        ...

    def rolled_back(self, record: WorkloadRecord) -> None:
        ...

    def pass_failed(self, error: Exception) -> None:
        ...


class LogSink:
    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("autorollback")

    def pass_completed(self, summary: PassSummary) -> None:
        self.logger.info(
            "deployments=%d, failed=%d, rolled back=%d", summary.total, summary.failed, summary.rolled_back
        )

    def rolled_back(self, record: WorkloadRecord) -> None:
        self.logger.info("rolled back deployment: %s", record.name)

    def pass_failed(self, error: Exception) -> None:
        self.logger.error("running rollback controller: %s", error)


class EventStoreSink:
    """Persists events to the sqlite event log and keeps the runtime view current.

    A broken event log is logged and otherwise ignored so it never holds up a pass.
    """

    def __init__(self, runtime: RuntimeState, namespace: str | None = None):
        self.runtime = runtime
        self.namespace = namespace

    def _log_event(self, level: str, message: str, namespace: str | None, deployment: str | None = None) -> None:
        try:
            db.log_event(level, message, namespace=namespace, deployment=deployment)
        except sqlite3.Error as e:
            logger.error("event log write failed: %s (%s)", e, message)

    def pass_completed(self, summary: PassSummary) -> None:
        prev = self.runtime.record_pass(summary.total, summary.failed, summary.rolled_back)
        if not summary.failed:
            return
        # Only persist a summary when it differs from the previous pass.
        if prev is not None and (prev.total, prev.failed, prev.rolled_back) == (
            summary.total,
            summary.failed,
            summary.rolled_back,
        ):
            return
        self._log_event(
            "WARN",
            f"deployments={summary.total}, failed={summary.failed}, rolled back={summary.rolled_back}",
            namespace=self.namespace,
        )

    def rolled_back(self, record: WorkloadRecord) -> None:
        self.runtime.record_rollback()
        self._log_event("INFO", "Rollback requested", namespace=record.namespace, deployment=record.name)

    def pass_failed(self, error: Exception) -> None:
        msg = f"{type(error).__name__}: {error}"
        self.runtime.record_error(msg)
        record = getattr(error, "record", None)
        self._log_event(
            "ERROR",
            f"Pass failed: {msg}",
            namespace=record.namespace if record is not None else self.namespace,
            deployment=record.name if record is not None else None,
        )


class MultiSink:
    def __init__(self, *sinks: EventSink):
        self.sinks = sinks

    def pass_completed(self, summary: PassSummary) -> None:
        for s in self.sinks:
            s.pass_completed(summary)

    def rolled_back(self, record: WorkloadRecord) -> None:
        for s in self.sinks:
            s.rolled_back(record)

    def pass_failed(self, error: Exception) -> None:
        for s in self.sinks:
            s.pass_failed(error)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
