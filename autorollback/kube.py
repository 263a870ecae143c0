from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from typing import Any

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from .directory import CallContext, DirectoryError
from .models import Condition, RollbackRequest, WorkloadRecord

CLIENT_IN_CLUSTER = "in-cluster"
CLIENT_KUBECTL = "kubectl"
CLIENT_MODES = (CLIENT_IN_CLUSTER, CLIENT_KUBECTL)

# apps/v1 has no spec.rollbackTo; the API server carries the legacy field as
# this annotation when converting between versions.
ROLLBACK_ANNOTATION = "deprecated.deployment.rollback.to"

SERVICE_ACCOUNT_NAMESPACE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"


class ClientInitError(Exception):
    pass


@dataclass(frozen=True)
class KubeClient:
    apps: Any  # client.AppsV1Api
    namespace: str


def record_from_deployment(d: Any) -> WorkloadRecord:
    conditions = [
        Condition(type=c.type, status=c.status, reason=c.reason)
        for c in ((d.status.conditions if d.status else None) or [])
    ]
    annotations = d.metadata.annotations or {}
    req = None
    raw_rev = annotations.get(ROLLBACK_ANNOTATION)
    if raw_rev is not None:
        try:
            req = RollbackRequest(target_revision=int(raw_rev))
        except ValueError:
            # Something set the annotation; treat it as in flight rather than clobber it.
            req = RollbackRequest(target_revision=0)
    return WorkloadRecord(
        name=d.metadata.name,
        namespace=d.metadata.namespace,
        conditions=conditions,
        rollback_request=req,
        raw=d,
    )


def apply_rollback_request(record: WorkloadRecord) -> Any:
    """Copy ``record.rollback_request`` onto the backing Deployment object."""
    d = record.raw
    annotations = dict(d.metadata.annotations or {})
    if record.rollback_request is None:
        annotations.pop(ROLLBACK_ANNOTATION, None)
    else:
        annotations[ROLLBACK_ANNOTATION] = str(record.rollback_request.target_revision)
    d.metadata.annotations = annotations
    return d


def _directory_error(action: str, e: Exception) -> DirectoryError:
    if isinstance(e, ApiException):
        reason = {409: "conflict", 404: "not_found"}.get(e.status, "transport")
        return DirectoryError(f"{action}: {e.status} {e.reason}", reason=reason)
    return DirectoryError(f"{action}: {type(e).__name__}: {e}", reason="transport")


class KubernetesDirectory:
    """Directory over the apps/v1 Deployments API."""

    def __init__(self, apps_api: Any):
        self.apps = apps_api

    def list(self, namespace: str, ctx: CallContext) -> list[WorkloadRecord]:
        ctx.check()
        try:
            resp = self.apps.list_namespaced_deployment(namespace, _request_timeout=ctx.request_timeout())
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise _directory_error("list deployments", e) from e
        return [record_from_deployment(d) for d in resp.items]

    def update(self, record: WorkloadRecord, ctx: CallContext) -> WorkloadRecord:
        ctx.check()
        if record.raw is None:
            raise DirectoryError(f"deployment {record.namespace}/{record.name} has no API object", reason="not_found")
        body = apply_rollback_request(record)
        try:
            d = self.apps.replace_namespaced_deployment(
                record.name, record.namespace, body, _request_timeout=ctx.request_timeout()
            )
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise _directory_error("update deployment", e) from e
        return record_from_deployment(d)


def _in_cluster_namespace() -> str:
    try:
        with open(SERVICE_ACCOUNT_NAMESPACE, encoding="utf-8") as f:
            return f.read().strip() or "default"
    except OSError:
        return "default"


def kubectl_config() -> dict[str, Any]:
    """Read the operator's kubeconfig through kubectl (honours KUBECONFIG and merges)."""
    try:
        proc = subprocess.run(
            ["kubectl", "config", "view", "--raw", "-o", "json"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise ClientInitError(f"kubectl config failed: {e}") from e
    if proc.returncode != 0:
        msg = proc.stderr.strip() or f"exit status {proc.returncode}"
        raise ClientInitError(f"kubectl config failed: {msg}")
    try:
        return json.loads(proc.stdout)
    except json.JSONDecodeError as e:
        raise ClientInitError(f"invalid output for kubectl config view: {e}") from e


def _context_namespace(cfg: dict[str, Any]) -> str:
    current = cfg.get("current-context")
    for ctx in cfg.get("contexts") or []:
        if ctx.get("name") == current:
            return (ctx.get("context") or {}).get("namespace") or "default"
    return "default"


def build_client(mode: str) -> KubeClient:
    """Initialise the Kubernetes client for ``mode`` (in-cluster or kubectl)."""
    if mode == CLIENT_IN_CLUSTER:
        try:
            config.load_incluster_config()
        except config.ConfigException as e:
            raise ClientInitError(f"initialize in-cluster client: {e}") from e
        return KubeClient(apps=client.AppsV1Api(), namespace=_in_cluster_namespace())

    if mode == CLIENT_KUBECTL:
        cfg = kubectl_config()
        try:
            config.load_kube_config_from_dict(cfg)
        except config.ConfigException as e:
            raise ClientInitError(f"initialize client from kubectl: {e}") from e
        return KubeClient(apps=client.AppsV1Api(), namespace=_context_namespace(cfg))

    raise ClientInitError(f"unrecognized client type: {mode}")
