"""Annotation keys and helpers used on objects the operator creates."""

from __future__ import annotations

from m3k8s import labels
from m3k8s.model import M3DBCluster

APP = labels.APP
APP_M3DB = labels.APP_M3DB
CLUSTER = labels.CLUSTER
UPDATE = "operator.m3db.io/update"
PARALLEL_UPDATE = "operator.m3db.io/parallel-update"
PARALLEL_UPDATE_IN_PROGRESS = "operator.m3db.io/parallel-update-in-progress"
ENABLED_VAL = "enabled"


def base_annotations(cluster: M3DBCluster) -> dict[str, str]:
    """Return the annotations applied to every object created for a cluster."""
    base = {APP: APP_M3DB, CLUSTER: cluster.name}
    base.update(cluster.spec.annotations or {})
    return base


def pod_annotations(cluster: M3DBCluster) -> dict[str, str]:
    """Return annotations for pods, adding pod metadata without overriding."""
    base = base_annotations(cluster)
    for key, value in (cluster.spec.pod_annotations or {}).items():
        base.setdefault(key, value)
    return base