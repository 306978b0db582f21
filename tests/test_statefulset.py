import pytest

from m3k8s import labels
from m3k8s.model import ClusterSpec, IsolationGroup, M3DBCluster, NodeAffinityTerm
from m3k8s.statefulset import (
    AffinityError,
    generate_downward_api_volume,
    generate_downward_api_volume_mount,
    generate_owner_ref,
    generate_stateful_set_affinity,
    generate_stateful_set_node_affinity,
    generate_stateful_set_pod_anti_affinity,
    new_base_stateful_set,
)


def make_cluster(**spec_kwargs):
    spec = ClusterSpec(
        image="m3db/m3dbnode:latest",
        service_account_name="m3db-account1",
        etcd_endpoints=["ep0", "ep1"],
        **spec_kwargs,
    )
    return M3DBCluster(name="m3db-cluster", namespace="foo", uid="abc-123", spec=spec)


def test_generate_downward_api_volume():
    assert generate_downward_api_volume() == {
        "name": "pod-identity",
        "downwardAPI": {
            "items": [
                {
                    "path": "identity",
                    "fieldRef": {
                        "fieldPath": "metadata.annotations['operator.m3db.io/pod-identity']"
                    },
                }
            ]
        },
    }


def test_generate_downward_api_volume_mount():
    assert generate_downward_api_volume_mount() == {
        "name": "pod-identity",
        "mountPath": "/etc/m3db/pod-identity",
        "readOnly": False,
    }


@pytest.mark.parametrize(
    "iso_group, exp_terms",
    [
        (IsolationGroup(name="group1"), None),
        (
            IsolationGroup(
                name="group2",
                node_affinity_terms=[NodeAffinityTerm(key="foobar", values=["group2"])],
            ),
            [("foobar", ["group2"])],
        ),
        (
            IsolationGroup(
                name="zone-and-inst-type",
                node_affinity_terms=[
                    NodeAffinityTerm(key="zone", values=["zone-a"]),
                    NodeAffinityTerm(key="instance-type", values=["large"]),
                ],
            ),
            [("zone", ["zone-a"]), ("instance-type", ["large"])],
        ),
    ],
)
def test_node_affinity(iso_group, exp_terms):
    result = generate_stateful_set_node_affinity(iso_group)
    if exp_terms is None:
        assert result is None
        return
    terms = result["requiredDuringSchedulingIgnoredDuringExecution"]["nodeSelectorTerms"]
    assert len(terms) == 1
    assert terms[0]["matchExpressions"] == [
        {"key": key, "operator": "In", "values": values} for key, values in exp_terms
    ]


@pytest.mark.parametrize(
    "iso_group, message",
    [
        (
            IsolationGroup(name="group3", node_affinity_terms=[NodeAffinityTerm(key="foobar")]),
            "node affinity term values cannot be empty",
        ),
        (
            IsolationGroup(
                name="group4", node_affinity_terms=[NodeAffinityTerm(values=["group2"])]
            ),
            "node affinity term key cannot be empty",
        ),
    ],
)
def test_node_affinity_errors(iso_group, message):
    with pytest.raises(AffinityError, match=message):
        generate_stateful_set_node_affinity(iso_group)


@pytest.mark.parametrize(
    "iso_group",
    [
        IsolationGroup(name="group1"),
        IsolationGroup(name="group2", use_pod_anti_affinity=False),
    ],
)
def test_pod_anti_affinity_disabled(iso_group):
    assert generate_stateful_set_pod_anti_affinity(iso_group) is None


def test_pod_anti_affinity_enabled():
    group = IsolationGroup(
        name="group3", use_pod_anti_affinity=True, pod_affinity_topology_key="hostname"
    )
    result = generate_stateful_set_pod_anti_affinity(group)
    assert result["requiredDuringSchedulingIgnoredDuringExecution"] == [
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
            "topologyKey": "hostname",
        }
    ]


def test_pod_anti_affinity_missing_topology_key():
    group = IsolationGroup(name="group4", use_pod_anti_affinity=True)
    with pytest.raises(AffinityError, match="pod affinity toplogy key cannot be empty"):
        generate_stateful_set_pod_anti_affinity(group)


def test_affinity_none_when_unconfigured():
    assert generate_stateful_set_affinity(IsolationGroup(name="g")) is None


def test_affinity_combines_both():
    group = IsolationGroup(
        name="g",
        node_affinity_terms=[NodeAffinityTerm(key="zone", values=["a"])],
        use_pod_anti_affinity=True,
        pod_affinity_topology_key="hostname",
    )
    result = generate_stateful_set_affinity(group)
    assert set(result) == {"nodeAffinity", "podAntiAffinity"}
    assert result["podAntiAffinity"]["requiredDuringSchedulingIgnoredDuringExecution"][0][
        "topologyKey"
    ] == "hostname"


def test_affinity_propagates_errors():
    group = IsolationGroup(name="g", use_pod_anti_affinity=True)
    with pytest.raises(AffinityError):
        generate_stateful_set_affinity(group)


def test_owner_ref():
    ref = generate_owner_ref(make_cluster())
    assert ref == {
        "apiVersion": "operator.m3db.io/v1alpha1",
        "kind": "m3dbcluster",
        "name": "m3db-cluster",
        "uid": "abc-123",
        "controller": True,
        "blockOwnerDeletion": True,
    }


def test_base_stateful_set_defaults():
    cluster = make_cluster()
    sts = new_base_stateful_set("m3db-cluster-rep0", "zone-a", cluster, 3)
    assert sts["metadata"]["name"] == "m3db-cluster-rep0"
    assert sts["metadata"]["labels"] == {
        "operator.m3db.io/app": "m3db",
        "operator.m3db.io/cluster": "m3db-cluster",
        "operator.m3db.io/isolation-group": "zone-a",
        "operator.m3db.io/stateful-set": "m3db-cluster-rep0",
        "operator.m3db.io/component": "m3dbnode",
    }
    spec = sts["spec"]
    assert spec["replicas"] == 3
    assert spec["serviceName"] == "m3dbnode-m3db-cluster"
    assert spec["podManagementPolicy"] == "Parallel"
    assert spec["updateStrategy"] == {"type": "RollingUpdate"}
    assert spec["selector"]["matchLabels"] == sts["metadata"]["labels"]

    pod_spec = spec["template"]["spec"]
    assert pod_spec["serviceAccountName"] == "m3db-account1"
    assert [v["name"] for v in pod_spec["volumes"]] == ["cache", "pod-identity"]

    container = pod_spec["containers"][0]
    assert container["name"] == "m3db-cluster-rep0"
    assert container["image"] == "m3db/m3dbnode:latest"
    assert container["command"] == ["m3dbnode"]
    assert container["args"] == ["-f", "/etc/m3db/m3.yml"]
    assert container["securityContext"] == {"capabilities": {"add": ["SYS_RESOURCE"]}}
    assert container["env"][1] == {
        "name": "M3CLUSTER_ENVIRONMENT",
        "value": "foo/m3db-cluster",
    }
    assert container["readinessProbe"]["httpGet"] == {
        "port": 9002,
        "path": "/bootstrappedinplacementornoplacement",
        "scheme": "HTTP",
    }
    assert [m["mountPath"] for m in container["volumeMounts"]] == [
        "/var/lib/m3db/",
        "/var/lib/m3kv/",
        "/etc/m3db/pod-identity",
    ]


def test_base_stateful_set_options():
    security = {"runAsUser": 1000}
    cluster = make_cluster(
        parallel_pod_management=False,
        on_delete_update_strategy=True,
        security_context=security,
        labels={"team": "storage"},
        pod_annotations={"scrape": "true"},
    )
    sts = new_base_stateful_set("m3db-cluster-rep1", "zone-b", cluster, 1)
    assert "podManagementPolicy" not in sts["spec"]
    assert sts["spec"]["updateStrategy"] == {"type": "OnDelete"}
    container = sts["spec"]["template"]["spec"]["containers"][0]
    assert container["securityContext"] == {"runAsUser": 1000}
    assert sts["metadata"]["labels"]["team"] == "storage"
    assert sts["spec"]["template"]["metadata"]["annotations"]["scrape"] == "true"