from ipaddress import IPv4Address

import pytest

from rkube.objects.base import Labels, ObjectReference
from rkube.objects.service import Service, ServicePort, ServiceSpec


def sample_dict():
    return {
        "metadata": {"name": "web"},
        "spec": {
            "selector": {"app": "web"},
            "ports": [{"port": 80, "targetPort": 8080}],
            "endpoints": ["10.5.28.3", "10.5.28.2"],
            "clusterIp": "172.16.0.1",
        },
    }


def test_from_function():
    svc = Service.from_function("svc-hello", "hello", "172.16.0.9")
    assert svc.metadata.name == "svc-hello"
    assert svc.metadata.uid is not None
    assert svc.metadata.labels == Labels()
    assert svc.metadata.owner_references == [ObjectReference("function", "hello")]
    assert svc.spec.selector == {"function": "hello"}
    assert svc.spec.ports == [ServicePort(80, 80)]
    assert svc.spec.endpoints == set()
    assert svc.spec.cluster_ip == IPv4Address("172.16.0.9")


def test_from_dict_reads_fields():
    svc = Service.from_dict(sample_dict())
    assert svc.spec.ports == [ServicePort(port=80, target_port=8080)]
    assert svc.spec.endpoints == {IPv4Address("10.5.28.2"), IPv4Address("10.5.28.3")}
    assert svc.spec.cluster_ip == IPv4Address("172.16.0.1")
    assert svc.uri() == "/api/v1/services/web"


def test_round_trip():
    svc = Service.from_dict(sample_dict())
    assert Service.from_dict(svc.to_dict()) == svc


def test_round_trip_from_function():
    svc = Service.from_function("svc-hello", "hello", IPv4Address("172.16.0.9"))
    assert Service.from_dict(svc.to_dict()) == svc


def test_endpoints_default_empty_and_cluster_ip_optional():
    data = sample_dict()["spec"]
    del data["endpoints"]
    del data["clusterIp"]
    spec = ServiceSpec.from_dict(data)
    assert spec.endpoints == set()
    assert spec.cluster_ip is None


def test_invalid_endpoint_raises():
    data = sample_dict()
    data["spec"]["endpoints"] = ["not-an-ip"]
    with pytest.raises(ValueError):
        Service.from_dict(data)


def test_port_out_of_range_raises():
    with pytest.raises(ValueError):
        ServicePort.from_dict({"port": 70000, "targetPort": 80})


def test_missing_ports_raises():
    data = sample_dict()
    del data["spec"]["ports"]
    with pytest.raises(ValueError):
        Service.from_dict(data)