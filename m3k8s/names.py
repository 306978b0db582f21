"""Naming helpers and well-known ports for M3DB cluster objects."""

from __future__ import annotations

from enum import IntEnum

_HEADLESS_SERVICE_PREFIX = "m3dbnode-"
_COORDINATOR_SERVICE_PREFIX = "m3coordinator-"


class Port(IntEnum):
    """Ports used by M3DB nodes and coordinators."""

    M3DB_NODE_CLIENT = 9000
    M3DB_NODE_CLUSTER = 9001
    M3DB_HTTP_NODE = 9002
    M3DB_HTTP_CLUSTER = 9003
    M3DB_DEBUG = 9004
    M3_COORDINATOR = 7201
    M3_COORDINATOR_METRICS = 7203
    M3_COORDINATOR_CARBON = 7204


def stateful_set_name(cluster_name: str, sts_id: int) -> str:
    """Return the name of a cluster's StatefulSet with the given index."""
    return f"{cluster_name}-rep{sts_id}"


def headless_service_name(cluster_name: str) -> str:
    """Return the name of the cluster's headless service."""
    return _HEADLESS_SERVICE_PREFIX + cluster_name


def coordinator_service_name(cluster_name: str) -> str:
    """Return the name of the cluster's coordinator service."""
    return _COORDINATOR_SERVICE_PREFIX + cluster_name