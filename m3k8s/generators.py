"""Generate the StatefulSets and Services that make up an M3DB cluster."""

from __future__ import annotations

import copy
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from m3k8s import labels
from m3k8s.annotations import base_annotations
from m3k8s.config_map import build_config_map_components
from m3k8s.model import M3DBCluster
from m3k8s.names import (
    Port,
    coordinator_service_name,
    headless_service_name,
    stateful_set_name,
)
from m3k8s.statefulset import (
    AffinityError,
    DATA_VOLUME_NAME,
    generate_owner_ref,
    generate_stateful_set_affinity,
    new_base_stateful_set,
)

PROTOCOL_TCP = "TCP"
CLUSTER_IP_NONE = "None"
SERVICE_TYPE_CLUSTER_IP = "ClusterIP"


class GeneratorError(ValueError):
    """Raised when a cluster object cannot be generated from the spec."""


@dataclass(frozen=True)
class _M3DBPort:
    name: str
    port: Port
    protocol: str = PROTOCOL_TCP


_BASE_M3DB_PORTS = (
    _M3DBPort("client", Port.M3DB_NODE_CLIENT),
    _M3DBPort("cluster", Port.M3DB_NODE_CLUSTER),
    _M3DBPort("http-node", Port.M3DB_HTTP_NODE),
    _M3DBPort("http-cluster", Port.M3DB_HTTP_CLUSTER),
    _M3DBPort("debug", Port.M3DB_DEBUG),
    _M3DBPort("coordinator", Port.M3_COORDINATOR),
    _M3DBPort("coord-metrics", Port.M3_COORDINATOR_METRICS),
)

_BASE_COORDINATOR_PORTS = (
    _M3DBPort("coordinator", Port.M3_COORDINATOR),
    _M3DBPort("coord-metrics", Port.M3_COORDINATOR_METRICS),
)

_CARBON_LISTENER_PORT = _M3DBPort("coord-carbon", Port.M3_COORDINATOR_CARBON)


def _with_carbon(
    cluster: M3DBCluster, ports: Iterable[_M3DBPort]
) -> list[_M3DBPort]:
    result = list(ports)
    if cluster.spec.enable_carbon_ingester:
        result.append(_CARBON_LISTENER_PORT)
    return result


def generate_stateful_set(
    cluster: M3DBCluster, isolation_group_name: str, instance_amount: int
) -> dict[str, Any]:
    """Return the StatefulSet for one isolation group of a cluster."""
    found = next(
        (
            (index, group)
            for index, group in enumerate(cluster.spec.isolation_groups)
            if group.name == isolation_group_name
        ),
        None,
    )
    if found is None:
        raise GeneratorError(
            f"could not find isogroup '{isolation_group_name}' in spec"
        )
    sts_id, isolation_group = found
    spec = cluster.spec
    ss_name = stateful_set_name(cluster.name, sts_id)

    try:
        affinity = generate_stateful_set_affinity(isolation_group)
    except AffinityError as err:
        raise GeneratorError(
            f"error generating statefulset affinity: {err}"
        ) from err

    stateful_set = new_base_stateful_set(
        ss_name, isolation_group_name, cluster, instance_amount
    )
    pod_spec = stateful_set["spec"]["template"]["spec"]
    container = pod_spec["containers"][0]
    container["resources"] = copy.deepcopy(spec.container_resources)
    container["ports"] = generate_container_ports(cluster)
    pod_spec["affinity"] = affinity
    pod_spec["tolerations"] = copy.deepcopy(spec.tolerations)
    pod_spec["hostNetwork"] = spec.host_network
    if spec.dns_policy is not None:
        pod_spec["dnsPolicy"] = spec.dns_policy

    # The owner reference lets the StatefulSet be collected with the cluster.
    stateful_set["metadata"]["ownerReferences"] = [generate_owner_ref(cluster)]

    config_volume, config_mount = build_config_map_components(cluster)
    container["volumeMounts"].append(config_mount)
    pod_spec["volumes"].append(config_volume)

    if spec.data_dir_volume_claim_template is None:
        pod_spec["volumes"].append({"name": DATA_VOLUME_NAME, "emptyDir": {}})
    else:
        claim = copy.deepcopy(spec.data_dir_volume_claim_template)
        claim.setdefault("metadata", {})["name"] = DATA_VOLUME_NAME
        if isolation_group.storage_class_name:
            claim.setdefault("spec", {})[
                "storageClassName"
            ] = isolation_group.storage_class_name
        stateful_set["spec"]["volumeClaimTemplates"] = [claim]

    container["env"].extend(copy.deepcopy(spec.env_vars or []))
    pod_spec.setdefault("initContainers", [])
    pod_spec["initContainers"].extend(copy.deepcopy(spec.init_containers or []))
    pod_spec["volumes"].extend(copy.deepcopy(spec.init_volumes or []))
    pod_spec["containers"].extend(copy.deepcopy(spec.sidecar_containers or []))
    pod_spec["volumes"].extend(copy.deepcopy(spec.sidecar_volumes or []))

    return stateful_set


def generate_m3db_service(cluster: M3DBCluster) -> dict[str, Any]:
    """Return the headless service for a cluster's M3DB StatefulSets."""
    if not cluster.name:
        raise GeneratorError("cluster name cannot be empty")

    svc_labels = labels.base_labels(cluster)
    svc_labels[labels.COMPONENT] = labels.COMPONENT_M3DB_NODE
    return {
        "metadata": {
            "name": headless_service_name(cluster.name),
            "labels": svc_labels,
            "annotations": base_annotations(cluster),
        },
        "spec": {
            "selector": dict(svc_labels),
            "ports": generate_m3db_service_ports(cluster),
            "clusterIP": CLUSTER_IP_NONE,
            "type": SERVICE_TYPE_CLUSTER_IP,
            # Publish DNS names of nodes that are still bootstrapping so they
            # can be looked up; the coordinator service does not do this.
            "publishNotReadyAddresses": True,
        },
    }


def generate_coordinator_service(cluster: M3DBCluster) -> dict[str, Any]:
    """Return the coordinator service for a cluster."""
    if not cluster.name:
        raise GeneratorError("cluster name cannot be empty")

    selector = labels.base_labels(cluster)
    selector[labels.COMPONENT] = labels.COMPONENT_M3DB_NODE
    external = cluster.spec.external_coordinator
    if external is not None and external.selector:
        selector = dict(external.selector)

    service_labels = labels.base_labels(cluster)
    service_labels[labels.COMPONENT] = labels.COMPONENT_COORDINATOR

    return {
        "metadata": {
            "name": coordinator_service_name(cluster.name),
            "labels": service_labels,
        },
        "spec": {
            "selector": selector,
            "ports": generate_coordinator_service_ports(cluster),
            "type": SERVICE_TYPE_CLUSTER_IP,
        },
    }


def _service_ports(ports: Iterable[_M3DBPort]) -> list[dict[str, Any]]:
    return [
        {"name": p.name, "port": int(p.port), "protocol": p.protocol} for p in ports
    ]


def generate_m3db_service_ports(cluster: M3DBCluster) -> list[dict[str, Any]]:
    """Return the ports exposed by the M3DB headless service."""
    return _service_ports(_with_carbon(cluster, _BASE_M3DB_PORTS))


def generate_coordinator_service_ports(cluster: M3DBCluster) -> list[dict[str, Any]]:
    """Return the ports exposed by the coordinator service."""
    return _service_ports(_with_carbon(cluster, _BASE_COORDINATOR_PORTS))


def generate_container_ports(cluster: M3DBCluster) -> list[dict[str, Any]]:
    """Return the ports of the M3DB container."""
    return [
        {"name": p.name, "containerPort": int(p.port), "protocol": p.protocol}
        for p in _with_carbon(cluster, _BASE_M3DB_PORTS)
    ]