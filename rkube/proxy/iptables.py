"""NAT rules that route service cluster IPs to their endpoints."""

from __future__ import annotations

import ipaddress
import logging
import secrets
import string
import struct
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from rkube.objects.service import Service

logger = logging.getLogger(__name__)

SERVICES_CHAIN = "KUBE-SERVICES"
PORTAL_RULE = '-m comment --comment "kubernetes service portals" -j KUBE-SERVICES'
_BUILTIN = {"nat": ("PREROUTING", "INPUT", "OUTPUT", "POSTROUTING")}


class IpTablesError(Exception):
    """An iptables operation failed."""


class IpTablesBackend(Protocol):
    def list_chains(self, table: str) -> list[str]: ...
    def new_chain(self, table: str, chain: str) -> None: ...
    def delete_chain(self, table: str, chain: str) -> None: ...
    def flush_chain(self, table: str, chain: str) -> None: ...
    def exists(self, table: str, chain: str, rule: str) -> bool: ...
    def insert(self, table: str, chain: str, rule: str, position: int) -> None: ...
    def append(self, table: str, chain: str, rule: str) -> None: ...
    def append_unique(self, table: str, chain: str, rule: str) -> None: ...
    def delete(self, table: str, chain: str, rule: str) -> None: ...


class MemoryIpTables:
    """An iptables rule set kept in memory."""

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, list[str]]] = {
            table: {chain: [] for chain in chains} for table, chains in _BUILTIN.items()
        }

    def _chain(self, table: str, chain: str) -> list[str]:
        try:
            return self._tables[table][chain]
        except KeyError:
            raise IpTablesError(f"No chain/target/match by that name: {table}/{chain}") from None

    def list_chains(self, table: str) -> list[str]:
        if table not in self._tables:
            raise IpTablesError(f"Table does not exist: {table}")
        return list(self._tables[table])

    def new_chain(self, table: str, chain: str) -> None:
        chains = self._tables.setdefault(table, {})
        if chain in chains:
            raise IpTablesError(f"Chain already exists: {chain}")
        chains[chain] = []

    def delete_chain(self, table: str, chain: str) -> None:
        rules = self._chain(table, chain)
        if chain in _BUILTIN.get(table, ()):
            raise IpTablesError(f"Cannot delete built-in chain {chain}")
        if rules:
            raise IpTablesError(f"Directory not empty: {chain}")
        del self._tables[table][chain]

    def flush_chain(self, table: str, chain: str) -> None:
        self._chain(table, chain).clear()

    def exists(self, table: str, chain: str, rule: str) -> bool:
        return rule in self._chain(table, chain)

    def insert(self, table: str, chain: str, rule: str, position: int) -> None:
        rules = self._chain(table, chain)
        if not 1 <= position <= len(rules) + 1:
            raise IpTablesError(f"Index of insertion too big: {position}")
        rules.insert(position - 1, rule)

    def append(self, table: str, chain: str, rule: str) -> None:
        self._chain(table, chain).append(rule)

    def append_unique(self, table: str, chain: str, rule: str) -> None:
        if self.exists(table, chain, rule):
            raise IpTablesError("the rule exists in the table/chain")
        self.append(table, chain, rule)

    def delete(self, table: str, chain: str, rule: str) -> None:
        rules = self._chain(table, chain)
        try:
            rules.remove(rule)
        except ValueError:
            raise IpTablesError(f"Bad rule (does a matching rule exist in {chain}?)") from None

    def rules(self, table: str, chain: str) -> list[str]:
        """The rules of a chain, in order."""
        return list(self._chain(table, chain))


def unique_hash() -> str:
    """Eight random upper-case alphanumeric characters."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(8)).upper()


def gen_svc_rule(
    svc_name: str, cluster_ip: ipaddress.IPv4Address | str, port: int, lb_chain: str
) -> str:
    return f'-d {cluster_ip} -p tcp --dport {port} -m comment --comment "{svc_name}" -j {lb_chain}'


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def gen_lb_rule(index: int, ep_chain: str) -> str:
    if index == 1:
        return f"-j {ep_chain}"
    probability = _f32(1.0 / index)
    return f"-m statistic --mode random --probability {probability:.11f} -j {ep_chain}"


class LBTable:
    """Load balancing chain spreading one port over endpoint chains."""

    def __init__(self, ipt: IpTablesBackend, svc_name: str, target_port: int) -> None:
        self.ipt = ipt
        self.svc_name = svc_name
        self.target_port = target_port
        self.lb_chain = f"KUBE-LB-{unique_hash()}"
        self.eps: dict[ipaddress.IPv4Address, str] = {}
        try:
            ipt.new_chain("nat", self.lb_chain)
        except IpTablesError as exc:
            raise IpTablesError("IpTable inconsistent, load balance chain exists") from exc

    def add_ep(self, ep: ipaddress.IPv4Address | str) -> None:
        ep = ipaddress.IPv4Address(ep)
        ep_chain = f"KUBE-EP-{unique_hash()}"
        self.ipt.new_chain("nat", ep_chain)
        rule = (
            f'-p tcp -m comment --comment "{self.svc_name}" -m tcp '
            f"-j DNAT --to-destination {ep}:{self.target_port}"
        )
        self.ipt.append_unique("nat", ep_chain, rule)
        self.eps[ep] = ep_chain
        self._rewrite_lb_rules()

    def _rewrite_lb_rules(self) -> None:
        self.ipt.flush_chain("nat", self.lb_chain)
        for index, ep_chain in enumerate(self.eps.values(), start=1):
            self.ipt.insert("nat", self.lb_chain, gen_lb_rule(index, ep_chain), 1)

    def cleanup(self) -> None:
        self.ipt.flush_chain("nat", self.lb_chain)
        self.ipt.delete_chain("nat", self.lb_chain)
        for ep_chain in self.eps.values():
            self.ipt.flush_chain("nat", ep_chain)
            self.ipt.delete_chain("nat", ep_chain)


class ServiceTable:
    """Entry rules of one service, one load balancer per port."""

    def __init__(
        self, ipt: IpTablesBackend, svc_name: str, cluster_ip: ipaddress.IPv4Address | str
    ) -> None:
        self.ipt = ipt
        self.svc_name = svc_name
        self.cluster_ip = ipaddress.IPv4Address(cluster_ip)
        self.lb_tb: dict[int, LBTable] = {}

    def add_ep(self, ep: ipaddress.IPv4Address | str) -> None:
        for lb in self.lb_tb.values():
            lb.add_ep(ep)
        logger.info("Add endpoint %s for service %s", ep, self.svc_name)

    def add_port(self, port: int, target_port: int) -> None:
        lb = LBTable(self.ipt, self.svc_name, target_port)
        rule = gen_svc_rule(self.svc_name, self.cluster_ip, port, lb.lb_chain)
        self.ipt.append("nat", SERVICES_CHAIN, rule)
        self.lb_tb[port] = lb
        logger.info(
            "Add port %s, target port %s for service %s", port, target_port, self.svc_name
        )

    def _delete_entry(self, rule: str) -> None:
        try:
            self.ipt.delete("nat", SERVICES_CHAIN, rule)
        except IpTablesError as exc:
            logger.warning("KUBE-SERVICES delete rule failed, %s", exc)

    def change_cluster_ip(self, new_cluster_ip: ipaddress.IPv4Address | str) -> None:
        old = self.cluster_ip
        self.cluster_ip = ipaddress.IPv4Address(new_cluster_ip)
        for port, lb in self.lb_tb.items():
            self._delete_entry(gen_svc_rule(self.svc_name, old, port, lb.lb_chain))
            self.ipt.append(
                "nat", SERVICES_CHAIN, gen_svc_rule(self.svc_name, self.cluster_ip, port, lb.lb_chain)
            )

    def cleanup(self) -> None:
        for port, lb in self.lb_tb.items():
            self._delete_entry(gen_svc_rule(self.svc_name, self.cluster_ip, port, lb.lb_chain))
            lb.cleanup()
        self.lb_tb.clear()


class K8sIpTables:
    """Service rules kept in the nat table; starts from a clean state."""

    def __init__(self, ipt: IpTablesBackend | None = None) -> None:
        self.ipt: IpTablesBackend = ipt if ipt is not None else MemoryIpTables()
        self.svc_tb: dict[str, ServiceTable] = {}
        self.cleanup()

    def cleanup(self) -> None:
        """Install the portal rules and drop every service chain."""
        chains = self.ipt.list_chains("nat")
        if SERVICES_CHAIN not in chains:
            self.ipt.new_chain("nat", SERVICES_CHAIN)
        for hook in ("PREROUTING", "OUTPUT"):
            if not self.ipt.exists("nat", hook, PORTAL_RULE):
                self.ipt.insert("nat", hook, PORTAL_RULE, 1)
        if SERVICES_CHAIN in chains:
            self.ipt.flush_chain("nat", SERVICES_CHAIN)
        for prefix in ("KUBE-LB", "KUBE-EP"):
            for chain in chains:
                if chain.startswith(prefix):
                    self.ipt.flush_chain("nat", chain)
                    self.ipt.delete_chain("nat", chain)
        logger.info("IpTable cleanup finished")

    def new_svc(self, name: str, cluster_ip: ipaddress.IPv4Address | str) -> None:
        if name in self.svc_tb:
            logger.warning("IpTable inconsistent, service %s exists", name)
            return
        self.svc_tb[name] = ServiceTable(self.ipt, name, cluster_ip)

    def _table(self, name: str) -> ServiceTable | None:
        table = self.svc_tb.get(name)
        if table is None:
            logger.warning("IpTable inconsistent, service %s doesn't exist", name)
        return table

    def add_svc_port(self, name: str, port: int, target_port: int) -> None:
        table = self._table(name)
        if table is not None:
            table.add_port(port, target_port)

    def add_svc_ep(self, name: str, ep: ipaddress.IPv4Address | str) -> None:
        table = self._table(name)
        if table is not None:
            table.add_ep(ep)

    def change_cluster_ip(self, name: str, new_cluster_ip: ipaddress.IPv4Address | str) -> None:
        table = self._table(name)
        if table is not None:
            table.change_cluster_ip(new_cluster_ip)

    def add_svc(self, svc: Service) -> None:
        if svc.spec.cluster_ip is None:
            raise ValueError("Service has no cluster ip, should not happen")
        self.new_svc(svc.name, svc.spec.cluster_ip)
        for port in svc.spec.ports:
            self.add_svc_port(svc.name, port.port, port.target_port)
        for ep in sorted(svc.spec.endpoints):
            self.add_svc_ep(svc.name, ep)

    def del_svc(self, name: str) -> None:
        table = self.svc_tb.pop(name, None)
        if table is None:
            logger.warning("IpTable inconsistent, service %s doesn't exist", name)
            return
        table.cleanup()
        logger.info("Delete service %s", name)