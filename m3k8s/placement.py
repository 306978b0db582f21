"""Build placement instances for M3DB pods."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from m3k8s import labels
from m3k8s.model import M3DBCluster, Pod, PodIdentity
from m3k8s.names import headless_service_name
from m3k8s.podidentity import identity_json

_ZONE_EMBEDDED = "embedded"
DEFAULT_M3DB_PORT = 9000
DEFAULT_NODE_ENDPOINT_FORMAT = "{{ .PodName }}.{{ .M3DBService }}:{{ .Port }}"
_DEFAULT_WEIGHT = 100

_ACTION_SPLIT = re.compile(r"(\{\{.*?\}\})", re.DOTALL)
_FIELD_ACTION = re.compile(r"\{\{\s*\.(\w+)\s*\}\}", re.DOTALL)


class PlacementError(ValueError):
    """Raised when a placement instance cannot be built for a pod."""


class _IdentityProvider(Protocol):
    def identity(self, pod: Pod, cluster: M3DBCluster) -> PodIdentity: ...


@dataclass
class PlacementInstance:
    """An instance in an M3 cluster placement."""

    id: str
    isolation_group: str
    zone: str
    weight: int
    hostname: str
    endpoint: str
    port: int


def render_endpoint(template: str, context: Mapping[str, Any]) -> str:
    """Render a template whose actions are field references like ``{{ .Name }}``."""
    pieces = []
    for chunk in _ACTION_SPLIT.split(template):
        if chunk.startswith("{{") and chunk.endswith("}}") and len(chunk) >= 4:
            match = _FIELD_ACTION.fullmatch(chunk)
            if match is None:
                raise PlacementError(
                    f"cannot construct node endpoint template: bad action {chunk!r}"
                )
            name = match.group(1)
            if name not in context:
                raise PlacementError(
                    f"cannot execute node endpoint template: unknown field {name}"
                )
            pieces.append(str(context[name]))
        elif "{{" in chunk:
            raise PlacementError(
                "cannot construct node endpoint template: unclosed action"
            )
        else:
            pieces.append(chunk)
    return "".join(pieces)


def placement_instance_from_pod(
    cluster: M3DBCluster, pod: Pod, id_provider: _IdentityProvider
) -> PlacementInstance:
    """Create a placement instance for ``pod`` in ``cluster``."""
    iso_group = pod.labels.get(labels.ISOLATION_GROUP)
    if iso_group is None:
        raise PlacementError(
            f"could not find label {labels.ISOLATION_GROUP} in {pod.labels}"
        )

    ident = id_provider.identity(pod, cluster)
    id_str = identity_json(ident)

    fmt = cluster.spec.node_endpoint_format or DEFAULT_NODE_ENDPOINT_FORMAT
    service = headless_service_name(cluster.name)
    context = {
        "PodName": pod.name,
        "M3DBService": service,
        "PodNamespace": pod.namespace,
        "Port": DEFAULT_M3DB_PORT,
    }
    endpoint = render_endpoint(fmt, context)

    return PlacementInstance(
        id=id_str,
        isolation_group=iso_group,
        zone=cluster.spec.zone or _ZONE_EMBEDDED,
        weight=_DEFAULT_WEIGHT,
        hostname=f"{pod.name}.{service}",
        endpoint=endpoint,
        port=DEFAULT_M3DB_PORT,
    )