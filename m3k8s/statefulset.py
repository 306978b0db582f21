"""Base StatefulSet, affinity and owner reference generation for M3DB clusters."""

from __future__ import annotations

import copy
from typing import Any

from m3k8s import labels
from m3k8s.annotations import pod_annotations
from m3k8s.model import IsolationGroup, M3DBCluster, default_m3_cluster_environment_name
from m3k8s.names import Port, headless_service_name
from m3k8s.podidentity import ANNOTATION_KEY_POD_IDENTITY

PROBE_TIMEOUT_SECONDS = 30
PROBE_INITIAL_DELAY_SECONDS = 10
PROBE_FAILURE_THRESHOLD = 15
PROBE_PATH_READY = "/bootstrappedinplacementornoplacement"

DATA_DIRECTORY = "/var/lib/m3db/"
DATA_VOLUME_NAME = "m3db-data"
CONFIGURATION_DIRECTORY = "/etc/m3db/"
CONFIGURATION_NAME = "m3-configuration"
CONFIGURATION_FILE_NAME = "m3.yml"
CONFIGURATION_FILE_LOCATION = CONFIGURATION_DIRECTORY + CONFIGURATION_FILE_NAME
HEALTH_FILE_NAME = "/bin/m3dbnode_bootstrapped.sh"

POD_IDENTITY_VOLUME_PATH = "/etc/m3db/pod-identity"
POD_IDENTITY_VOLUME_NAME = "pod-identity"
CAPABILITY_SYS_RESOURCE = "SYS_RESOURCE"

API_GROUP = "operator.m3db.io"
API_VERSION = "v1alpha1"
OWNER_KIND = "m3dbcluster"

POD_MANAGEMENT_PARALLEL = "Parallel"
UPDATE_STRATEGY_ON_DELETE = "OnDelete"
UPDATE_STRATEGY_ROLLING = "RollingUpdate"


class AffinityError(ValueError):
    """Raised when an isolation group's affinity settings are invalid."""


def _readiness_probe() -> dict[str, Any]:
    return {
        "timeoutSeconds": PROBE_TIMEOUT_SECONDS,
        "initialDelaySeconds": PROBE_INITIAL_DELAY_SECONDS,
        "failureThreshold": PROBE_FAILURE_THRESHOLD,
        "httpGet": {
            "port": int(Port.M3DB_HTTP_NODE),
            "path": PROBE_PATH_READY,
            "scheme": "HTTP",
        },
    }


def new_base_stateful_set(
    ss_name: str,
    isolation_group: str,
    cluster: M3DBCluster,
    instance_count: int,
) -> dict[str, Any]:
    """Return a base StatefulSet for one isolation group of a cluster."""
    spec = cluster.spec

    obj_labels = labels.base_labels(cluster)
    obj_labels[labels.ISOLATION_GROUP] = isolation_group
    obj_labels[labels.STATEFUL_SET] = ss_name
    obj_labels[labels.COMPONENT] = labels.COMPONENT_M3DB_NODE
    obj_labels.update(spec.labels or {})

    obj_annotations = pod_annotations(cluster)

    # SYS_RESOURCE lets the process raise its open file limit.
    if spec.security_context is None:
        security_ctx: dict[str, Any] = {
            "capabilities": {"add": [CAPABILITY_SYS_RESOURCE]}
        }
    else:
        security_ctx = copy.deepcopy(spec.security_context)

    container = {
        "name": ss_name,
        "securityContext": security_ctx,
        "readinessProbe": _readiness_probe(),
        "command": ["m3dbnode"],
        "args": ["-f", CONFIGURATION_FILE_LOCATION],
        "image": spec.image,
        "imagePullPolicy": "Always",
        "env": [
            {
                "name": "NAMESPACE",
                "valueFrom": {"fieldRef": {"fieldPath": "metadata.namespace"}},
            },
            {
                "name": "M3CLUSTER_ENVIRONMENT",
                "value": default_m3_cluster_environment_name(cluster),
            },
        ],
        "ports": None,
        "volumeMounts": [
            {"name": DATA_VOLUME_NAME, "mountPath": DATA_DIRECTORY},
            {"name": "cache", "mountPath": "/var/lib/m3kv/"},
            generate_downward_api_volume_mount(),
        ],
    }

    pod_spec = {
        "priorityClassName": spec.priority_class_name,
        "securityContext": copy.deepcopy(spec.pod_security_context),
        "imagePullSecrets": copy.deepcopy(spec.image_pull_secrets),
        "containers": [container],
        "volumes": [
            {"name": "cache", "emptyDir": {}},
            generate_downward_api_volume(),
        ],
        "serviceAccountName": spec.service_account_name,
    }

    sts_spec: dict[str, Any] = {
        "serviceName": headless_service_name(cluster.name),
        "selector": {"matchLabels": dict(obj_labels)},
        "replicas": instance_count,
        "template": {
            "metadata": {
                "labels": dict(obj_labels),
                "annotations": dict(obj_annotations),
            },
            "spec": pod_spec,
        },
    }

    if spec.parallel_pod_management is None or spec.parallel_pod_management:
        sts_spec["podManagementPolicy"] = POD_MANAGEMENT_PARALLEL

    sts_spec["updateStrategy"] = {
        "type": UPDATE_STRATEGY_ON_DELETE
        if spec.on_delete_update_strategy
        else UPDATE_STRATEGY_ROLLING
    }

    return {
        "metadata": {
            "name": ss_name,
            "labels": dict(obj_labels),
            "annotations": dict(obj_annotations),
        },
        "spec": sts_spec,
    }


def generate_downward_api_volume() -> dict[str, Any]:
    """Return the volume exposing the pod identity annotation as a file."""
    return {
        "name": POD_IDENTITY_VOLUME_NAME,
        "downwardAPI": {
            "items": [
                {
                    "path": "identity",
                    "fieldRef": {
                        "fieldPath": (
                            f"metadata.annotations['{ANNOTATION_KEY_POD_IDENTITY}']"
                        )
                    },
                }
            ]
        },
    }


def generate_downward_api_volume_mount() -> dict[str, Any]:
    """Return the mount for the pod identity volume."""
    return {
        "name": POD_IDENTITY_VOLUME_NAME,
        "mountPath": POD_IDENTITY_VOLUME_PATH,
        "readOnly": False,
    }


def generate_stateful_set_pod_anti_affinity(
    iso_group: IsolationGroup,
) -> dict[str, Any] | None:
    """Return a pod anti-affinity keeping M3DB nodes apart, or None if unused."""
    if not iso_group.use_pod_anti_affinity:
        return None
    if not iso_group.pod_affinity_topology_key:
        raise AffinityError("pod affinity toplogy key cannot be empty")
    return {
        "requiredDuringSchedulingIgnoredDuringExecution": [
            {
                "labelSelector": {
                    "matchExpressions": [
                        {
                            "key": labels.COMPONENT,
                            "operator": "In",
                            "values": [labels.COMPONENT_M3DB_NODE],
                        }
                    ]
                },
                "topologyKey": iso_group.pod_affinity_topology_key,
            }
        ]
    }


def generate_stateful_set_node_affinity(
    iso_group: IsolationGroup,
) -> dict[str, Any] | None:
    """Return a node affinity strictly matching the group's terms, or None."""
    if not iso_group.node_affinity_terms:
        return None

    expressions = []
    for term in iso_group.node_affinity_terms:
        if not term.key:
            raise AffinityError("node affinity term key cannot be empty")
        if not term.values:
            raise AffinityError("node affinity term values cannot be empty")
        expressions.append(
            {"key": term.key, "operator": "In", "values": list(term.values)}
        )

    return {
        "requiredDuringSchedulingIgnoredDuringExecution": {
            "nodeSelectorTerms": [{"matchExpressions": expressions}]
        }
    }


def generate_stateful_set_affinity(iso_group: IsolationGroup) -> dict[str, Any] | None:
    """Return the affinity settings for a group's StatefulSet, or None."""
    if not iso_group.node_affinity_terms and not iso_group.use_pod_anti_affinity:
        return None

    affinity: dict[str, Any] = {}
    node_affinity = generate_stateful_set_node_affinity(iso_group)
    if node_affinity is not None:
        affinity["nodeAffinity"] = node_affinity
    pod_anti_affinity = generate_stateful_set_pod_anti_affinity(iso_group)
    if pod_anti_affinity is not None:
        affinity["podAntiAffinity"] = pod_anti_affinity
    return affinity


def generate_owner_ref(cluster: M3DBCluster) -> dict[str, Any]:
    """Return a controller owner reference pointing at the cluster."""
    return {
        "apiVersion": f"{API_GROUP}/{API_VERSION}",
        "kind": OWNER_KIND,
        "name": cluster.name,
        "uid": cluster.uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }