"""Kubernetes service operations for M3DB clusters."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from m3k8s.model import M3DBCluster
from m3k8s.statefulset import generate_owner_ref


class ApiError(Exception):
    """Raised when the Kubernetes API rejects a request."""


class NotFoundError(ApiError, LookupError):
    """Raised when a requested object does not exist."""


class AlreadyExistsError(ApiError):
    """Raised when an object to be created already exists."""


class _ServiceClient(Protocol):
    def get_service(self, namespace: str, name: str) -> dict[str, Any]: ...

    def create_service(
        self, namespace: str, service: dict[str, Any]
    ) -> dict[str, Any]: ...

    def delete_service(self, namespace: str, name: str) -> None: ...

    def events(self, namespace: str) -> Any: ...


class K8sOps:
    """Performs the Kubernetes API calls the operator needs for services."""

    def __init__(
        self, client: _ServiceClient, logger: logging.Logger | None = None
    ) -> None:
        self.client = client
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def get_service(self, cluster: M3DBCluster, name: str) -> dict[str, Any]:
        """Return the service called ``name`` in the cluster's namespace."""
        return self.client.get_service(cluster.namespace, name)

    def delete_service(self, cluster: M3DBCluster, name: str) -> None:
        """Delete the service called ``name`` in the cluster's namespace."""
        self.logger.info("deleting service: %s", name)
        self.client.delete_service(cluster.namespace, name)

    def ensure_service(self, cluster: M3DBCluster, svc: dict[str, Any]) -> None:
        """Create ``svc`` owned by the cluster unless it already exists."""
        name = svc.get("metadata", {}).get("name", "")
        try:
            self.get_service(cluster, name)
        except NotFoundError:
            self.logger.info("service doesn't exist, creating it: %s", name)
            svc.setdefault("metadata", {})["ownerReferences"] = [
                generate_owner_ref(cluster)
            ]
            self.client.create_service(cluster.namespace, svc)
            self.logger.info("ensured service is created: %s", name)
        except AlreadyExistsError:
            return

    def events(self, namespace: str) -> Any:
        """Return the client's event interface for a namespace."""
        return self.client.events(namespace)