"""Deployment auto-rollback reconciler.

Small controller that watches the Deployments of one namespace and asks
Kubernetes to roll back any rollout that exceeded its progress deadline:
 - failure classification from the Deployment's status conditions
 - rollback planning (skip deployments that already carry a request)
 - sequential, fail-fast dispatch of rollback requests
 - a fixed-cadence poll loop that re-derives everything from the live API

The implementation is intentionally small so it can be audited and explained.
"""
