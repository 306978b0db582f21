"""Build the cluster identity of a pod from configured sources."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping

from m3k8s.model import (
    M3DBCluster,
    Node,
    Pod,
    PodIdentity,
    PodIdentityConfig,
    PodIdentitySource,
)

ANNOTATION_KEY_POD_IDENTITY = "operator.m3db.io/pod-identity"


class PodIdentityError(ValueError):
    """Raised when a pod's identity cannot be determined."""


class NodeNotFoundError(PodIdentityError, LookupError):
    """Raised when the node a pod is scheduled on is unknown."""

    def __init__(self, node_name: str) -> None:
        super().__init__(f'nodes "{node_name}" not found')
        self.node_name = node_name


class Provider:
    """Creates a pod's cluster identity from the pod and the nodes known."""

    def __init__(
        self,
        node_lister: Mapping[str, Node] | None,
        logger: logging.Logger | None = None,
    ) -> None:
        if node_lister is None:
            raise PodIdentityError("ID provider node informer cannot be empty")
        self.node_lister = node_lister
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def identity(self, pod: Pod, cluster: M3DBCluster) -> PodIdentity:
        """Return the identity of ``pod`` within ``cluster``."""
        config = cluster.spec.pod_identity_config
        if config is None:
            config = PodIdentityConfig(sources=[PodIdentitySource.POD_UID])

        if not pod.name:
            raise PodIdentityError("pod name cannot by empty with id source == name")

        # The pod name is always part of the identity; replacing instances
        # depends on it.
        ident = PodIdentity(name=pod.name)

        for raw_source in config.sources:
            try:
                source = PodIdentitySource(raw_source)
            except ValueError:
                raise PodIdentityError(
                    f"unrecognized pod identity source {raw_source}"
                ) from None

            if source is PodIdentitySource.POD_UID:
                if not pod.uid:
                    raise PodIdentityError(
                        "pod UID cannot be empty with id source == UID"
                    )
                ident.uid = pod.uid
            elif source is PodIdentitySource.NODE_SPEC_PROVIDER_ID:
                node = self.node_for_pod(pod)
                if not node.provider_id:
                    raise PodIdentityError(
                        "node provider ID cannot be empty with source == prodiverID"
                    )
                ident.node_provider_id = node.provider_id
            elif source is PodIdentitySource.NODE_NAME:
                ident.node_name = self.node_for_pod(pod).name

        return ident

    def node_for_pod(self, pod: Pod) -> Node:
        """Return the node the pod is scheduled on."""
        if not pod.node_name:
            self.logger.warning("pod not yet scheduled: %s", pod.name)
            raise PodIdentityError(f"pod {pod.name} not yet scheduled")
        try:
            return self.node_lister[pod.node_name]
        except KeyError:
            raise NodeNotFoundError(pod.node_name) from None


def identity_json(identity: PodIdentity) -> str:
    """Return a pod identity as compact JSON."""
    return json.dumps(identity.to_dict(), separators=(",", ":"))