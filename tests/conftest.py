import sys

# Ensure project root is importable even when the package is not installed.
import os as _os
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import pytest

from autorollback import db
from autorollback.models import Condition, RollbackRequest, WorkloadRecord
from autorollback.settings import Settings


NS = "prod"

DEADLINE_EXCEEDED = Condition(type="Progressing", status="False", reason="ProgressDeadlineExceeded")
AVAILABLE = Condition(type="Available", status="True", reason="MinimumReplicasAvailable")
PROGRESSING_OK = Condition(type="Progressing", status="True", reason="NewReplicaSetAvailable")


def make_record(name, *conditions, rollback=None, namespace=NS):
    req = RollbackRequest(target_revision=rollback) if rollback is not None else None
    return WorkloadRecord(name=name, namespace=namespace, conditions=list(conditions), rollback_request=req)


class RecordingSink:
    """Collects everything the reconciler/scheduler report."""

    def __init__(self):
        self.summaries = []
        self.rollbacks = []
        self.errors = []

    def pass_completed(self, summary):
        self.summaries.append(summary)

    def rolled_back(self, record):
        self.rollbacks.append(record.name)

    def pass_failed(self, error):
        self.errors.append(error)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def tmp_db(monkeypatch, tmp_path):
    """Point the event log at an isolated sqlite file."""
    monkeypatch.setattr(db, "settings", Settings(db_path=str(tmp_path / "events.db")))
    db.init_db()
    return tmp_path / "events.db"
