"""ConfigMap naming and the volume wiring that mounts it into M3DB pods."""

from __future__ import annotations

from typing import Any

from m3k8s.model import M3DBCluster
from m3k8s.statefulset import CONFIGURATION_DIRECTORY, CONFIGURATION_NAME


class ConfigMapError(ValueError):
    """Raised when a cluster's configuration map settings are invalid."""


def default_config_map_name(cluster_name: str) -> str:
    """Return the name of the operator-generated ConfigMap for a cluster."""
    return "m3db-config-map-" + cluster_name


def build_config_map_components(
    cluster: M3DBCluster,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return the pod volume and container mount for the cluster's config.

    A ConfigMap named in the spec is used if given; otherwise the default one.
    """
    mount = {"name": CONFIGURATION_NAME, "mountPath": CONFIGURATION_DIRECTORY}

    cm_name = default_config_map_name(cluster.name)
    if cluster.spec.config_map_name is not None:
        cm_name = cluster.spec.config_map_name

    if not cm_name:
        raise ConfigMapError("configMap name cannot be empty if non-nil")

    volume = {"name": CONFIGURATION_NAME, "configMap": {"name": cm_name}}
    return volume, mount