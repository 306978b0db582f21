# m3k8s

Helpers for describing M3DB clusters on Kubernetes. A cluster is described
with the dataclasses in `m3k8s.model` (`M3DBCluster`, `ClusterSpec`,
`IsolationGroup`, `NodeAffinityTerm`, `ExternalCoordinator`,
`PodIdentityConfig`, `Pod`, `Node`). From that description the package builds
the Kubernetes objects an operator needs, as plain dictionaries with the
usual camelCase keys (`metadata`, `spec`, `volumeMounts`, ...).

## Modules

- `m3k8s.names`: `stateful_set_name`, `headless_service_name`,
  `coordinator_service_name`, and the `Port` enum of dbnode and
  coordinator ports.
- `m3k8s.labels`: label keys and `base_labels(cluster)`.
- `m3k8s.annotations`: annotation keys, `base_annotations(cluster)` and
  `pod_annotations(cluster)`; pod annotations from the spec are added only
  where they do not override a base annotation.
- `m3k8s.model`: the dataclasses above, `PodIdentity` with `to_dict()`, and
  `default_m3_cluster_environment_name(cluster)`, which returns
  `"<namespace>/<name>"`.
- `m3k8s.statefulset`: `new_base_stateful_set`, the pod identity downward-API
  volume and mount, node affinity, pod anti-affinity, the combined affinity,
  and `generate_owner_ref(cluster)`.
- `m3k8s.config_map`: `default_config_map_name(cluster_name)` and
  `build_config_map_components(cluster)`, which returns the pod volume and the
  container mount for the cluster's configuration ConfigMap (the one named in
  `spec.config_map_name`, or `m3db-config-map-<cluster>`).
- `m3k8s.generators`: `generate_stateful_set` for one isolation group,
  `generate_m3db_service` (headless dbnode service),
  `generate_coordinator_service`, and the port list builders. The carbon
  ingester port 7204 is added when `enable_carbon_ingester` is set.
- `m3k8s.podidentity`: `Provider`, which builds a `PodIdentity` from the pod
  UID, the node's provider ID or the node name, and `identity_json`.
- `m3k8s.placement`: `placement_instance_from_pod`, returning a
  `PlacementInstance`, and `render_endpoint`, which fills templates such as
  `{{ .PodName }}.{{ .M3DBService }}:{{ .Port }}`. Only plain field
  references are supported; the fields are `PodName`, `M3DBService`,
  `PodNamespace` and `Port`.
- `m3k8s.services`: `K8sOps`, which gets, deletes and ensures services through
  a client you supply, and the errors `ApiError`, `NotFoundError` and
  `AlreadyExistsError`.

## Installation

```
pip install .
```

The package has no runtime dependencies. To run the tests:

```
pip install .[test]
pytest
```

## Usage

```python
from m3k8s.model import ClusterSpec, IsolationGroup, M3DBCluster
from m3k8s.generators import generate_stateful_set, generate_m3db_service
from m3k8s.names import stateful_set_name

cluster = M3DBCluster(
    name="m3db-cluster",
    namespace="foo",
    spec=ClusterSpec(
        image="m3db/m3dbnode:latest",
        isolation_groups=[IsolationGroup(name="group1", num_instances=1)],
        etcd_endpoints=["ep0", "ep1"],
    ),
)

sts = generate_stateful_set(cluster, "group1", 1)
print(sts["metadata"]["name"])  # m3db-cluster-rep0

svc = generate_m3db_service(cluster)
print(svc["metadata"]["name"])  # m3dbnode-m3db-cluster

print(stateful_set_name("m3db-cluster", 0))  # m3db-cluster-rep0
```

Placement instances are built from a pod and an identity provider. The
provider looks nodes up in any mapping from node name to `Node`:

```python
from m3k8s.model import Node, Pod
from m3k8s.placement import placement_instance_from_pod
from m3k8s.podidentity import Provider

provider = Provider(node_lister={"node-1": Node(name="node-1")})
pod = Pod(
    name="pod-a",
    uid="uid-a",
    labels={"operator.m3db.io/isolation-group": "group1"},
    node_name="node-1",
)
instance = placement_instance_from_pod(cluster, pod, provider)
print(instance.endpoint)  # pod-a.m3dbnode-m3db-cluster:9000
```

`K8sOps` expects a client object with `get_service(namespace, name)`,
`create_service(namespace, service)`, `delete_service(namespace, name)` and
`events(namespace)`. The client must raise `m3k8s.services.NotFoundError`
for a missing service so that `ensure_service` knows to create it.

Errors are raised as exceptions: `GeneratorError`, `AffinityError`,
`ConfigMapError`, `PlacementError`, `PodIdentityError` (with
`NodeNotFoundError`) and the API errors in `m3k8s.services`.

## What this package does not do

- It does not talk to a Kubernetes cluster itself; it ships no API client and
  no controller loop. `K8sOps` only forwards to the client you give it.
- It does not generate the contents of the default M3DB configuration file;
  it names and mounts the ConfigMap but does not build its data.
- It has no command-line program.