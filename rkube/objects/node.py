"""Cluster nodes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, ClassVar

from rkube.config import KubeletConfig
from rkube.objects.base import KubeResource, Metadata
from rkube.utils import _display_local, _format_timestamp, _indent, _parse_timestamp

_EPOCH = datetime(1970, 1, 1)


def _required(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


class NodeAddressType(str, Enum):
    """Kind of a node address."""

    HOSTNAME = "Hostname"
    EXTERNAL_IP = "ExternalIP"
    INTERNAL_IP = "InternalIP"

    def __str__(self) -> str:
        return self.value


@dataclass
class Capacity:
    """CPU cores and memory in kilobytes."""

    cpu: int = 0
    memory: int = 0

    def __str__(self) -> str:
        return f"CPU: {self.cpu}\nMemory: {self.memory}KB\n"

    def to_dict(self) -> dict[str, Any]:
        return {"cpu": self.cpu, "memory": self.memory}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Capacity:
        return cls(cpu=int(_required(data, "cpu")), memory=int(_required(data, "memory")))


@dataclass
class NodeInfo:
    """System information reported by the node."""

    architecture: str = ""
    machine_id: str = ""
    operating_system: str = ""
    os_image: str = ""

    def __str__(self) -> str:
        return (
            f"{'Architecture:':<20} {self.architecture}\n"
            f"{'Machine ID:':<20} {self.machine_id}\n"
            f"{'Operating System:':<20} {self.operating_system}\n"
            f"{'OS Image:':<20} {self.os_image}\n"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "architecture": self.architecture,
            "machineID": self.machine_id,
            "operating_system": self.operating_system,
            "os_image": self.os_image,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NodeInfo:
        return cls(
            architecture=str(_required(data, "architecture")),
            machine_id=str(_required(data, "machineID")),
            operating_system=str(_required(data, "operating_system")),
            os_image=str(_required(data, "os_image")),
        )


@dataclass
class NodeStatus:
    """Observed state of a node; the heartbeat is ignored in comparisons."""

    addresses: dict[NodeAddressType, str] = field(default_factory=dict)
    allocatable: Capacity = field(default_factory=Capacity)
    capacity: Capacity = field(default_factory=Capacity)
    kubelet_port: int = 10250
    node_info: NodeInfo = field(default_factory=NodeInfo)
    last_heartbeat: datetime = field(default=_EPOCH, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "addresses": {kind.value: addr for kind, addr in self.addresses.items()},
            "allocatable": self.allocatable.to_dict(),
            "capacity": self.capacity.to_dict(),
            "kubeletPort": self.kubelet_port,
            "nodeInfo": self.node_info.to_dict(),
            "lastHeartbeat": _format_timestamp(self.last_heartbeat),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NodeStatus:
        addresses = _required(data, "addresses")
        return cls(
            addresses={NodeAddressType(k): str(v) for k, v in addresses.items()},
            allocatable=Capacity.from_dict(_required(data, "allocatable")),
            capacity=Capacity.from_dict(_required(data, "capacity")),
            kubelet_port=int(_required(data, "kubeletPort")),
            node_info=NodeInfo.from_dict(_required(data, "nodeInfo")),
            last_heartbeat=_parse_timestamp(_required(data, "lastHeartbeat")),
        )


@dataclass
class Node(KubeResource):
    """A machine in the cluster."""

    kind: ClassVar[str] = "Node"

    metadata: Metadata
    status: NodeStatus = field(default_factory=NodeStatus)

    def internal_ip(self) -> str | None:
        return self.status.addresses.get(NodeAddressType.INTERNAL_IP)

    def is_ready(self, now: datetime | None = None) -> bool:
        """True if a heartbeat arrived within the kubelet's report window."""
        if now is None:
            now = datetime.now(timezone.utc).replace(tzinfo=None)
        config = KubeletConfig()
        window = timedelta(
            seconds=config.node_status_report_frequency + config.node_status_update_frequency
        )
        return self.status.last_heartbeat > now - window

    def __str__(self) -> str:
        status = self.status
        parts = [
            f"{'Name:':<16} {self.metadata.name}\n",
            f"{'Labels:':<16} {self.metadata.labels}\n",
            f"{'Last Heartbeat:':<16} {_display_local(status.last_heartbeat)}\n",
            "Addresses:\n",
        ]
        parts.extend(_indent(f"{kind}: {addr}\n") for kind, addr in status.addresses.items())
        parts += [
            "Capacity:\n",
            _indent(str(status.capacity)),
            "Allocatable:\n",
            _indent(str(status.allocatable)),
            "System Info:\n",
            _indent(str(status.node_info)),
        ]
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {"metadata": self.metadata.to_dict(), "status": self.status.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Node:
        status = data.get("status")
        return cls(
            metadata=Metadata.from_dict(_required(data, "metadata")),
            status=NodeStatus.from_dict(status) if status is not None else NodeStatus(),
        )