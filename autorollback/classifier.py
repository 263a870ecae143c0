from __future__ import annotations

from .models import WorkloadRecord

# https://kubernetes.io/docs/concepts/workloads/controllers/deployment/#failed-deployment
PROGRESSING = "Progressing"
FALSE = "False"
DEADLINE_EXCEEDED = "ProgressDeadlineExceeded"


def is_failed(record: WorkloadRecord) -> bool:
    """Has the deployment gone over its progress deadline?"""
    for c in record.conditions:
        if c.type == PROGRESSING and c.status == FALSE and c.reason == DEADLINE_EXCEEDED:
            return True
    return False
