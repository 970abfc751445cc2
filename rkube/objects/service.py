"""Services expose a set of pod endpoints behind a cluster IP."""

from __future__ import annotations

import ipaddress
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from rkube.objects.base import KubeResource, Labels, Metadata, ObjectReference


def _required(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _port(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFFFF:
        raise ValueError(f"field `{key}` must be a port number")
    return value


def _ipv4(value: Any, key: str) -> ipaddress.IPv4Address:
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be an IPv4 address")
    try:
        return ipaddress.IPv4Address(value)
    except ipaddress.AddressValueError as exc:
        raise ValueError(f"field `{key}`: {exc}") from None


@dataclass
class ServicePort:
    """A service port and the pod port it forwards to."""

    port: int
    target_port: int

    def to_dict(self) -> dict[str, Any]:
        return {"port": self.port, "targetPort": self.target_port}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ServicePort:
        return cls(
            port=_port(_required(data, "port"), "port"),
            target_port=_port(_required(data, "targetPort"), "targetPort"),
        )


@dataclass
class ServiceSpec:
    """Selector, ports, endpoints and cluster IP of a service."""

    selector: Labels
    ports: list[ServicePort] = field(default_factory=list)
    endpoints: set[ipaddress.IPv4Address] = field(default_factory=set)
    cluster_ip: ipaddress.IPv4Address | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "selector": dict(self.selector),
            "ports": [port.to_dict() for port in self.ports],
            "endpoints": [str(ep) for ep in sorted(self.endpoints)],
            "clusterIp": str(self.cluster_ip) if self.cluster_ip is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ServiceSpec:
        selector = _required(data, "selector")
        if not isinstance(selector, Mapping):
            raise ValueError("field `selector` must be a mapping")
        cluster_ip = data.get("clusterIp")
        return cls(
            selector=Labels({str(k): str(v) for k, v in selector.items()}),
            ports=[ServicePort.from_dict(port) for port in _required(data, "ports")],
            endpoints={_ipv4(ep, "endpoints") for ep in data.get("endpoints", [])},
            cluster_ip=_ipv4(cluster_ip, "clusterIp") if cluster_ip is not None else None,
        )


@dataclass
class Service(KubeResource):
    """A stable address load balancing over pod endpoints."""

    kind: ClassVar[str] = "Service"

    metadata: Metadata
    spec: ServiceSpec

    @classmethod
    def from_function(
        cls, name: str, func_name: str, cluster_ip: ipaddress.IPv4Address | str
    ) -> Service:
        """Service on port 80 selecting the pods of a function."""
        metadata = Metadata(
            name=name,
            uid=uuid.uuid4(),
            labels=Labels(),
            owner_references=[ObjectReference(kind="function", name=func_name)],
        )
        spec = ServiceSpec(
            selector=Labels({"function": func_name}),
            ports=[ServicePort(port=80, target_port=80)],
            endpoints=set(),
            cluster_ip=ipaddress.IPv4Address(cluster_ip),
        )
        return cls(metadata=metadata, spec=spec)

    def to_dict(self) -> dict[str, Any]:
        return {"metadata": self.metadata.to_dict(), "spec": self.spec.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Service:
        return cls(
            metadata=Metadata.from_dict(_required(data, "metadata")),
            spec=ServiceSpec.from_dict(_required(data, "spec")),
        )