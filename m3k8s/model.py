"""Data model for M3DB clusters and the Kubernetes objects the operator reads."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PodIdentitySource(str, Enum):
    """A piece of information that can make up a pod's identity."""

    POD_UID = "PodUID"
    NODE_SPEC_PROVIDER_ID = "NodeSpecProviderID"
    NODE_NAME = "NodeName"


@dataclass
class NodeAffinityTerm:
    """A node label key and the values a node must carry for it."""

    key: str = ""
    values: list[str] = field(default_factory=list)


@dataclass
class IsolationGroup:
    """A group of instances isolated from the others, e.g. a zone."""

    name: str = ""
    num_instances: int = 0
    node_affinity_terms: list[NodeAffinityTerm] = field(default_factory=list)
    use_pod_anti_affinity: bool = False
    pod_affinity_topology_key: str = ""
    storage_class_name: str = ""


@dataclass
class PodIdentityConfig:
    """Which sources make up a pod's identity."""

    sources: list[PodIdentitySource | str] = field(default_factory=list)


@dataclass
class PodIdentity:
    """The identity of a pod within an M3DB cluster."""

    name: str = ""
    uid: str = ""
    node_name: str = ""
    node_provider_id: str = ""

    def to_dict(self) -> dict[str, str]:
        """Return the identity as a mapping, leaving out empty fields."""
        pairs = (
            ("name", self.name),
            ("uid", self.uid),
            ("nodeName", self.node_name),
            ("nodeProviderID", self.node_provider_id),
        )
        return {key: value for key, value in pairs if value}


@dataclass
class ExternalCoordinator:
    """Settings for coordinators that run outside the cluster's pods."""

    selector: dict[str, str] = field(default_factory=dict)


@dataclass
class ClusterSpec:
    """The desired state of an M3DB cluster."""

    image: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] | None = None
    pod_annotations: dict[str, str] = field(default_factory=dict)
    config_map_name: str | None = None
    etcd_endpoints: list[str] = field(default_factory=list)
    enable_carbon_ingester: bool = False
    isolation_groups: list[IsolationGroup] = field(default_factory=list)
    container_resources: dict[str, Any] = field(default_factory=dict)
    tolerations: list[dict[str, Any]] = field(default_factory=list)
    host_network: bool = False
    dns_policy: str | None = None
    data_dir_volume_claim_template: dict[str, Any] | None = None
    env_vars: list[dict[str, Any]] = field(default_factory=list)
    init_containers: list[dict[str, Any]] = field(default_factory=list)
    init_volumes: list[dict[str, Any]] = field(default_factory=list)
    sidecar_containers: list[dict[str, Any]] = field(default_factory=list)
    sidecar_volumes: list[dict[str, Any]] = field(default_factory=list)
    external_coordinator: ExternalCoordinator | None = None
    node_endpoint_format: str = ""
    zone: str = ""
    pod_identity_config: PodIdentityConfig | None = None
    security_context: dict[str, Any] | None = None
    pod_security_context: dict[str, Any] | None = None
    image_pull_secrets: list[dict[str, Any]] = field(default_factory=list)
    priority_class_name: str = ""
    service_account_name: str = ""
    parallel_pod_management: bool | None = None
    on_delete_update_strategy: bool = False


@dataclass
class M3DBCluster:
    """An M3DB cluster resource."""

    name: str = ""
    namespace: str = ""
    uid: str = ""
    spec: ClusterSpec = field(default_factory=ClusterSpec)


@dataclass
class Pod:
    """The parts of a Kubernetes pod the operator looks at."""

    name: str = ""
    namespace: str = ""
    uid: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    node_name: str = ""


@dataclass
class Node:
    """The parts of a Kubernetes node the operator looks at."""

    name: str = ""
    provider_id: str = ""


def default_m3_cluster_environment_name(cluster: M3DBCluster | Pod) -> str:
    """Return the environment under which the cluster's topology is stored.

    Keeping namespace and name apart stops clusters sharing an etcd store
    from conflicting with each other.
    """
    return f"{cluster.namespace}/{cluster.name}"