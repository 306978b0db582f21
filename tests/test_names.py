import pytest

from m3k8s.names import (
    Port,
    coordinator_service_name,
    headless_service_name,
    stateful_set_name,
)


def test_common():
    assert stateful_set_name("testCluster", 1) == "testCluster-rep1"


def test_stateful_set_name_zero():
    assert stateful_set_name("m3db-cluster", 0) == "m3db-cluster-rep0"


def test_headless_service_name():
    assert headless_service_name("m3db-cluster") == "m3dbnode-m3db-cluster"
    assert headless_service_name("cluster-a") == "m3dbnode-cluster-a"


def test_coordinator_service_name_prefix():
    name = coordinator_service_name("cluster-a")
    assert name.startswith("m3coordinator-")
    assert name.endswith("cluster-a")


@pytest.mark.parametrize(
    "port, value",
    [
        (Port.M3DB_NODE_CLIENT, 9000),
        (Port.M3DB_HTTP_NODE, 9002),
        (Port.M3_COORDINATOR_CARBON, 7204),
    ],
)
def test_port_values(port, value):
    assert int(port) == value


@pytest.mark.parametrize(
    "value, port",
    [
        (9000, Port.M3DB_NODE_CLIENT),
        (9001, Port.M3DB_NODE_CLUSTER),
        (9002, Port.M3DB_HTTP_NODE),
        (9003, Port.M3DB_HTTP_CLUSTER),
        (9004, Port.M3DB_DEBUG),
        (7201, Port.M3_COORDINATOR),
        (7203, Port.M3_COORDINATOR_METRICS),
        (7204, Port.M3_COORDINATOR_CARBON),
    ],
)
def test_ports_are_distinct(value, port):
    assert Port(value) is port