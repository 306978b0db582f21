import json

import pytest

from m3k8s.model import (
    ClusterSpec,
    M3DBCluster,
    PodIdentity,
    PodIdentityConfig,
    PodIdentitySource,
    default_m3_cluster_environment_name,
)


def test_environment_name_joins_namespace_and_name():
    cluster = M3DBCluster(name="m3db-cluster", namespace="foo")
    assert default_m3_cluster_environment_name(cluster) == "foo/m3db-cluster"


def test_environment_name_distinguishes_namespaces():
    a = M3DBCluster(name="c", namespace="ns1")
    b = M3DBCluster(name="c", namespace="ns2")
    assert default_m3_cluster_environment_name(a) != default_m3_cluster_environment_name(b)
    assert default_m3_cluster_environment_name(a).endswith("/c")


def test_pod_identity_to_dict_name_and_uid():
    identity = PodIdentity(name="foo", uid="bar")
    assert json.dumps(identity.to_dict(), separators=(",", ":")) == '{"name":"foo","uid":"bar"}'


def test_pod_identity_to_dict_omits_empty_fields():
    assert PodIdentity(name="pod-a").to_dict() == {"name": "pod-a"}
    assert PodIdentity().to_dict() == {}


def test_pod_identity_to_dict_includes_node_fields():
    identity = PodIdentity(name="pod-b", node_name="node-2", node_provider_id="id2")
    result = identity.to_dict()
    assert result["name"] == "pod-b"
    assert "node-2" in result.values()
    assert "id2" in result.values()
    assert len(result) == 3


@pytest.mark.parametrize("source", list(PodIdentitySource))
def test_pod_identity_source_round_trips_through_value(source):
    assert PodIdentitySource(source.value) is source


def test_pod_identity_source_rejects_unknown_value():
    with pytest.raises(ValueError):
        PodIdentitySource("badsource")


def test_cluster_spec_defaults_are_independent():
    first = ClusterSpec()
    second = ClusterSpec()
    first.labels["foo"] = "bar"
    first.etcd_endpoints.append("ep0")
    assert second.labels == {}
    assert second.etcd_endpoints == []
    assert first.config_map_name is None
    assert first.pod_identity_config is None


def test_pod_identity_config_holds_sources():
    config = PodIdentityConfig(sources=[PodIdentitySource.POD_UID])
    assert config.sources == [PodIdentitySource.POD_UID]