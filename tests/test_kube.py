import json
import subprocess

import pytest
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from autorollback import kube
from autorollback.directory import CallContext, DirectoryError
from autorollback.kube import ROLLBACK_ANNOTATION, ClientInitError, KubernetesDirectory, build_client
from autorollback.reconciler import Reconciler


def deployment(name, conditions=(), annotations=None, namespace="prod"):
    return client.V1Deployment(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace, annotations=annotations),
        status=client.V1DeploymentStatus(
            conditions=[client.V1DeploymentCondition(type=t, status=s, reason=r) for t, s, r in conditions] or None
        ),
    )


STALLED = [("Progressing", "False", "ProgressDeadlineExceeded")]


class FakeAppsApi:
    def __init__(self, items, fail_replace=None):
        self.items = items
        self.fail_replace = fail_replace
        self.replaced = []
        self.timeouts = []

    def list_namespaced_deployment(self, namespace, _request_timeout=None):
        self.timeouts.append(_request_timeout)
        return client.V1DeploymentList(items=[d for d in self.items if d.metadata.namespace == namespace])

    def replace_namespaced_deployment(self, name, namespace, body, _request_timeout=None):
        if self.fail_replace:
            raise self.fail_replace
        self.replaced.append((name, namespace, body))
        return body


def test_record_mapping():
    d = KubernetesDirectory(FakeAppsApi([deployment("web", STALLED), deployment("api", annotations={ROLLBACK_ANNOTATION: "4"})]))
    web, api = d.list("prod", CallContext())

    assert web.name == "web" and web.namespace == "prod"
    assert web.conditions[0].reason == "ProgressDeadlineExceeded"
    assert web.rollback_request is None
    assert api.conditions == []
    assert api.rollback_request.target_revision == 4


def test_update_writes_annotation_and_keeps_others():
    dep = deployment("web", STALLED, annotations={"team": "payments"})
    apps = FakeAppsApi([dep])
    sink_calls = []

    class Sink:
        def pass_completed(self, summary):
            sink_calls.append(summary)

        def rolled_back(self, record):
            sink_calls.append(record.name)

        def pass_failed(self, error):
            raise AssertionError(error)

    Reconciler(KubernetesDirectory(apps), "prod", Sink()).run_once()

    ((name, ns, body),) = apps.replaced
    assert (name, ns) == ("web", "prod")
    assert body.metadata.annotations == {"team": "payments", ROLLBACK_ANNOTATION: "0"}
    assert sink_calls[-1] == "web"


@pytest.mark.parametrize("status,reason", [(409, "conflict"), (404, "not_found"), (500, "transport")])
def test_api_errors_are_mapped(status, reason):
    apps = FakeAppsApi([deployment("web", STALLED)], fail_replace=ApiException(status=status, reason="nope"))
    d = KubernetesDirectory(apps)
    (rec,) = d.list("prod", CallContext())
    with pytest.raises(DirectoryError) as exc:
        d.update(rec, CallContext())
    assert exc.value.reason == reason


def test_request_timeout_comes_from_context():
    apps = FakeAppsApi([])
    d = KubernetesDirectory(apps)
    d.list("prod", CallContext())
    d.list("prod", CallContext(timeout_s=30))
    assert apps.timeouts[0] is None
    assert 0 < apps.timeouts[1] <= 30


def test_unknown_client_mode():
    with pytest.raises(ClientInitError, match="unrecognized client type: magic"):
        build_client("magic")


def test_in_cluster_failure(monkeypatch):
    def boom():
        raise config.ConfigException("Service host/port is not set.")

    monkeypatch.setattr(kube.config, "load_incluster_config", boom)
    with pytest.raises(ClientInitError, match="initialize in-cluster client"):
        build_client("in-cluster")


def test_kubectl_error_uses_stderr(monkeypatch):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="error: no context\n")

    monkeypatch.setattr(kube.subprocess, "run", fake_run)
    with pytest.raises(ClientInitError, match="kubectl config failed: error: no context"):
        build_client("kubectl")


def test_kubectl_invalid_output(monkeypatch):
    monkeypatch.setattr(
        kube.subprocess, "run", lambda cmd, **kw: subprocess.CompletedProcess(cmd, 0, stdout="not json", stderr="")
    )
    with pytest.raises(ClientInitError, match="invalid output for kubectl config view"):
        build_client("kubectl")


def test_kubectl_uses_current_context_namespace(monkeypatch):
    cfg = {
        "current-context": "dev",
        "contexts": [
            {"name": "ops", "context": {"cluster": "c", "user": "u", "namespace": "kube-system"}},
            {"name": "dev", "context": {"cluster": "c", "user": "u", "namespace": "team-a"}},
        ],
    }
    loaded = []
    monkeypatch.setattr(
        kube.subprocess,
        "run",
        lambda cmd, **kw: subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(cfg), stderr=""),
    )
    monkeypatch.setattr(kube.config, "load_kube_config_from_dict", lambda c: loaded.append(c))

    kc = build_client("kubectl")

    assert loaded == [cfg]
    assert kc.namespace == "team-a"
