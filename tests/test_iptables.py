import ipaddress

import pytest

from rkube.objects.service import Service
from rkube.proxy.iptables import (
    PORTAL_RULE,
    IpTablesError,
    K8sIpTables,
    MemoryIpTables,
    gen_lb_rule,
    gen_svc_rule,
    unique_hash,
)


def kube_chains(ipt, prefix):
    return [c for c in ipt.list_chains("nat") if c.startswith(prefix)]


def test_svc_lifecycle():
    backend = MemoryIpTables()
    ipt = K8sIpTables(backend)
    name = "test-service"
    ipt.new_svc(name, ipaddress.IPv4Address("172.16.0.1"))
    ipt.add_svc_port(name, 80, 80)
    ipt.add_svc_ep(name, "10.5.28.2")
    ipt.add_svc_ep(name, "10.5.28.3")

    entries = backend.rules("nat", "KUBE-SERVICES")
    assert len(entries) == 1
    assert entries[0].startswith('-d 172.16.0.1 -p tcp --dport 80 -m comment --comment "test-service" -j KUBE-LB-')
    lb = kube_chains(backend, "KUBE-LB")
    assert len(lb) == 1
    lb_rules = backend.rules("nat", lb[0])
    assert len(lb_rules) == 2
    assert lb_rules[0].startswith("-m statistic --mode random --probability 0.50000000000 -j KUBE-EP-")
    assert lb_rules[1].startswith("-j KUBE-EP-")
    assert len(kube_chains(backend, "KUBE-EP")) == 2

    ipt.del_svc(name)
    assert backend.rules("nat", "KUBE-SERVICES") == []
    assert kube_chains(backend, "KUBE-LB") == []
    assert kube_chains(backend, "KUBE-EP") == []


def test_cleanup_installs_portals_once():
    backend = MemoryIpTables()
    ipt = K8sIpTables(backend)
    ipt.cleanup()
    assert backend.rules("nat", "PREROUTING") == [PORTAL_RULE]
    assert backend.rules("nat", "OUTPUT") == [PORTAL_RULE]


def test_cleanup_removes_stale_chains():
    backend = MemoryIpTables()
    ipt = K8sIpTables(backend)
    svc = Service.from_function("svc", "f", "172.16.0.9")
    svc.spec.endpoints = {ipaddress.IPv4Address("10.0.0.1")}
    ipt.add_svc(svc)
    ipt.cleanup()
    assert kube_chains(backend, "KUBE-LB") == []
    assert kube_chains(backend, "KUBE-EP") == []
    assert backend.rules("nat", "KUBE-SERVICES") == []


def test_endpoint_dnat_rule():
    backend = MemoryIpTables()
    ipt = K8sIpTables(backend)
    svc = Service.from_function("web", "f", "172.16.0.2")
    svc.spec.endpoints = {ipaddress.IPv4Address("10.0.0.7")}
    ipt.add_svc(svc)
    (ep,) = kube_chains(backend, "KUBE-EP")
    assert backend.rules("nat", ep) == [
        '-p tcp -m comment --comment "web" -m tcp -j DNAT --to-destination 10.0.0.7:80'
    ]


def test_change_cluster_ip():
    backend = MemoryIpTables()
    ipt = K8sIpTables(backend)
    ipt.new_svc("s", "172.16.0.1")
    ipt.add_svc_port("s", 80, 8080)
    ipt.change_cluster_ip("s", "172.16.0.5")
    (rule,) = backend.rules("nat", "KUBE-SERVICES")
    assert rule.startswith("-d 172.16.0.5 ")


def test_add_svc_without_cluster_ip():
    svc = Service.from_function("s", "f", "172.16.0.1")
    svc.spec.cluster_ip = None
    with pytest.raises(ValueError):
        K8sIpTables().add_svc(svc)


def test_unknown_service_is_ignored():
    backend = MemoryIpTables()
    ipt = K8sIpTables(backend)
    ipt.add_svc_port("missing", 80, 80)
    ipt.del_svc("missing")
    assert backend.rules("nat", "KUBE-SERVICES") == []


def test_gen_rules():
    assert gen_svc_rule("a", "1.2.3.4", 80, "LB") == '-d 1.2.3.4 -p tcp --dport 80 -m comment --comment "a" -j LB'
    assert gen_lb_rule(1, "EP") == "-j EP"
    assert gen_lb_rule(4, "EP") == "-m statistic --mode random --probability 0.25000000000 -j EP"


def test_unique_hash():
    value = unique_hash()
    assert len(value) == 8
    assert value == value.upper() and value.isalnum()


def test_memory_errors():
    backend = MemoryIpTables()
    backend.new_chain("nat", "X")
    with pytest.raises(IpTablesError):
        backend.new_chain("nat", "X")
    backend.append_unique("nat", "X", "-j Y")
    with pytest.raises(IpTablesError):
        backend.append_unique("nat", "X", "-j Y")
    with pytest.raises(IpTablesError):
        backend.delete_chain("nat", "X")
    with pytest.raises(IpTablesError):
        backend.delete("nat", "X", "-j Z")