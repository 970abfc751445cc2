"""Pods, their containers and their observed status."""

from __future__ import annotations

import ipaddress
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from rkube.objects.base import KubeResource, Labels, Metadata
from rkube.objects.metrics import Resource
from rkube.utils import _display_local, _format_timestamp, _indent, _parse_timestamp


def _required(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


class ImagePullPolicy(str, Enum):
    """When to pull a container image."""

    ALWAYS = "Always"
    NEVER = "Never"
    IF_NOT_PRESENT = "IfNotPresent"

    def __str__(self) -> str:
        return self.value


class RestartPolicy(str, Enum):
    """Restart policy for the containers of a pod."""

    ALWAYS = "Always"
    ON_FAILURE = "OnFailure"
    NEVER = "Never"

    def __str__(self) -> str:
        return self.value


class PodPhase(str, Enum):
    """High-level summary of where a pod is in its lifecycle."""

    FAILED = "Failed"
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"

    def __str__(self) -> str:
        return self.value


class PodConditionType(str, Enum):
    """Conditions tracked for every pod."""

    CONTAINERS_READY = "ContainersReady"
    POD_SCHEDULED = "PodScheduled"
    READY = "Ready"

    def __str__(self) -> str:
        return self.value


@dataclass
class ContainerPort:
    """A port exposed on the pod's IP address."""

    container_port: int

    def to_dict(self) -> dict[str, Any]:
        return {"containerPort": self.container_port}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ContainerPort:
        return cls(container_port=int(_required(data, "containerPort")))


@dataclass
class VolumeMount:
    """Where a pod volume is mounted inside a container."""

    mount_path: str
    name: str

    def __str__(self) -> str:
        return f"{self.mount_path} from {self.name}"

    def to_dict(self) -> dict[str, Any]:
        return {"mountPath": self.mount_path, "name": self.name}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> VolumeMount:
        return cls(
            mount_path=str(_required(data, "mountPath")),
            name=str(_required(data, "name")),
        )


@dataclass
class ComputeResources:
    """CPU in milli CPU and memory in bytes."""

    cpu: int = 0
    memory: int = 0

    def __str__(self) -> str:
        return f"{'CPU:':<8} {self.cpu}\n{'Memory:':<8} {self.memory}\n"

    def to_dict(self) -> dict[str, Any]:
        return {"cpu": self.cpu, "memory": self.memory}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ComputeResources:
        if not isinstance(data, Mapping):
            raise ValueError("resources must be a mapping")
        return cls(cpu=int(data.get("cpu", 0)), memory=int(data.get("memory", 0)))


_MIN_SHARES = 2
_SHARES_PER_CPU = 1024
_MILLI_CPU_TO_CPU = 1000


def _milli_cpu_to_shares(milli_cpu: int) -> int:
    if milli_cpu == 0:
        return _MIN_SHARES
    product = milli_cpu * _SHARES_PER_CPU
    shares = abs(product) // _MILLI_CPU_TO_CPU
    if product < 0:
        shares = -shares
    return max(shares, _MIN_SHARES)


@dataclass
class ResourceRequirements:
    """Compute resource limits and requests of a container."""

    limits: ComputeResources = field(default_factory=ComputeResources)
    requests: ComputeResources = field(default_factory=ComputeResources)

    def cpu_shares(self) -> int:
        """CPU shares derived from the request, or the limit when no request is set."""
        if self.requests.cpu == 0 and self.limits.cpu != 0:
            milli_cpu = self.limits.cpu
        else:
            milli_cpu = self.requests.cpu
        return _milli_cpu_to_shares(milli_cpu)

    def __str__(self) -> str:
        return (
            "  Requests:\n"
            + _indent(str(self.requests))
            + "  Limits:\n"
            + _indent(str(self.limits))
        )

    def to_dict(self) -> dict[str, Any]:
        return {"limits": self.limits.to_dict(), "requests": self.requests.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ResourceRequirements:
        if not isinstance(data, Mapping):
            raise ValueError("resource requirements must be a mapping")
        limits = data.get("limits")
        requests = data.get("requests")
        return cls(
            limits=ComputeResources.from_dict(limits) if limits is not None else ComputeResources(),
            requests=(
                ComputeResources.from_dict(requests) if requests is not None else ComputeResources()
            ),
        )


@dataclass
class Container:
    """A container of a pod."""

    name: str
    image: str
    image_pull_policy: ImagePullPolicy | None = None
    command: list[str] = field(default_factory=list)
    ports: list[ContainerPort] = field(default_factory=list)
    volume_mounts: list[VolumeMount] = field(default_factory=list)
    resources: ResourceRequirements = field(default_factory=ResourceRequirements)

    def requests(self, resource: Resource) -> int:
        if resource is Resource.CPU:
            return self.resources.requests.cpu
        return self.resources.requests.memory

    def resolved_pull_policy(self) -> ImagePullPolicy:
        """The given policy, else Always for ``:latest`` images and IfNotPresent otherwise."""
        if self.image_pull_policy is not None:
            return self.image_pull_policy
        if self.image.endswith(":latest"):
            return ImagePullPolicy.ALWAYS
        return ImagePullPolicy.IF_NOT_PRESENT

    def exposed_ports(self) -> dict[str, dict[Any, Any]]:
        return {f"{port.container_port}/tcp": {} for port in self.ports}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "image": self.image,
            "imagePullPolicy": (
                self.image_pull_policy.value if self.image_pull_policy is not None else None
            ),
            "command": list(self.command),
            "ports": [port.to_dict() for port in self.ports],
            "volumeMounts": [mount.to_dict() for mount in self.volume_mounts],
            "resources": self.resources.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Container:
        policy = data.get("imagePullPolicy") if isinstance(data, Mapping) else None
        resources = data.get("resources") if isinstance(data, Mapping) else None
        return cls(
            name=str(_required(data, "name")),
            image=str(_required(data, "image")),
            image_pull_policy=ImagePullPolicy(policy) if policy is not None else None,
            command=[str(arg) for arg in data.get("command", [])],
            ports=[ContainerPort.from_dict(port) for port in data.get("ports", [])],
            volume_mounts=[VolumeMount.from_dict(m) for m in data.get("volumeMounts", [])],
            resources=(
                ResourceRequirements.from_dict(resources)
                if resources is not None
                else ResourceRequirements()
            ),
        )


@dataclass
class VolumeConfig:
    """A host path volume, or an empty directory when ``host_path`` is None."""

    host_path: str | None = None

    def __str__(self) -> str:
        return "HostPath" if self.host_path is not None else "EmptyDir"


@dataclass
class Volume:
    """A named volume that containers can mount."""

    name: str
    config: VolumeConfig = field(default_factory=VolumeConfig)

    def __str__(self) -> str:
        return f"{self.name:<16}: {self.config}\n"

    def to_dict(self) -> dict[str, Any]:
        if self.config.host_path is not None:
            return {"name": self.name, "hostPath": self.config.host_path}
        return {"name": self.name, "emptyDir": None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Volume:
        name = str(_required(data, "name"))
        if "hostPath" in data:
            path = data["hostPath"]
            if not isinstance(path, str):
                raise ValueError("field `hostPath` must be a string")
            return cls(name=name, config=VolumeConfig(host_path=path))
        if "emptyDir" in data:
            return cls(name=name, config=VolumeConfig())
        raise ValueError(f"volume {name!r} has no known configuration")


@dataclass
class PodSpec:
    """Desired state of a pod."""

    containers: list[Container] = field(default_factory=list)
    volumes: list[Volume] = field(default_factory=list)
    restart_policy: RestartPolicy = RestartPolicy.ALWAYS
    host_network: bool = False
    node_selector: Labels = field(default_factory=Labels)
    node_name: str | None = None

    def network_mode(self) -> str:
        return "host" if self.host_network else "bridge"

    def exposed_ports(self) -> dict[str, dict[Any, Any]]:
        ports: dict[str, dict[Any, Any]] = {}
        for container in self.containers:
            ports.update(container.exposed_ports())
        return ports

    def to_dict(self) -> dict[str, Any]:
        return {
            "containers": [c.to_dict() for c in self.containers],
            "volumes": [v.to_dict() for v in self.volumes],
            "restartPolicy": self.restart_policy.value,
            "hostNetwork": self.host_network,
            "nodeSelector": dict(self.node_selector),
            "nodeName": self.node_name,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PodSpec:
        containers = _required(data, "containers")
        selector = data.get("nodeSelector", {})
        if not isinstance(selector, Mapping):
            raise ValueError("field `nodeSelector` must be a mapping")
        return cls(
            containers=[Container.from_dict(c) for c in containers],
            volumes=[Volume.from_dict(v) for v in data.get("volumes", [])],
            restart_policy=RestartPolicy(data.get("restartPolicy", RestartPolicy.ALWAYS.value)),
            host_network=bool(data.get("hostNetwork", False)),
            node_selector=Labels({str(k): str(v) for k, v in selector.items()}),
            node_name=_optional_str(data, "nodeName"),
        )


@dataclass
class PodCondition:
    """Whether a condition currently holds."""

    status: bool = False


@dataclass(frozen=True)
class ContainerState:
    """Running, Waiting, or Terminated with an exit code."""

    RUNNING: ClassVar[str] = "Running"
    TERMINATED: ClassVar[str] = "Terminated"
    WAITING: ClassVar[str] = "Waiting"

    state: str
    exit_code: int | None = None

    def __post_init__(self) -> None:
        if self.state not in (self.RUNNING, self.TERMINATED, self.WAITING):
            raise ValueError(f"unknown container state {self.state!r}")
        if self.state == self.TERMINATED and self.exit_code is None:
            raise ValueError("terminated state needs an exit code")
        if self.state != self.TERMINATED and self.exit_code is not None:
            raise ValueError(f"state {self.state} has no exit code")

    def __str__(self) -> str:
        return self.state

    def to_dict(self) -> str | dict[str, Any]:
        """The wire form: a plain name, or a mapping for Terminated."""
        if self.state == self.TERMINATED:
            return {self.TERMINATED: {"exit_code": self.exit_code}}
        return self.state

    @classmethod
    def from_dict(cls, data: str | Mapping[str, Any]) -> ContainerState:
        if isinstance(data, str):
            if data == cls.TERMINATED:
                raise ValueError("terminated state needs an exit code")
            return cls(data)
        if isinstance(data, Mapping) and len(data) == 1:
            ((name, body),) = data.items()
            if name == cls.TERMINATED:
                return cls(cls.TERMINATED, int(_required(body, "exit_code")))
            if body is None:
                return cls(str(name))
        raise ValueError(f"invalid container state {data!r}")


@dataclass
class ContainerStatus:
    """Observed state of one container."""

    name: str
    image: str
    container_id: str
    state: ContainerState
    restart_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "image": self.image,
            "containerId": self.container_id,
            "state": self.state.to_dict(),
            "restartCount": self.restart_count,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ContainerStatus:
        return cls(
            name=str(_required(data, "name")),
            image=str(_required(data, "image")),
            container_id=str(_required(data, "containerId")),
            state=ContainerState.from_dict(_required(data, "state")),
            restart_count=int(_required(data, "restartCount")),
        )


@dataclass
class PodStatus:
    """Observed state of a pod."""

    start_time: datetime
    phase: PodPhase
    host_ip: str | None = None
    pod_ip: ipaddress.IPv4Address | None = None
    conditions: dict[PodConditionType, PodCondition] = field(default_factory=dict)
    container_statuses: list[ContainerStatus] = field(default_factory=list)

    @classmethod
    def default(cls) -> PodStatus:
        """A pending status started now, with every condition false."""
        return cls(
            start_time=datetime.now(timezone.utc).replace(tzinfo=None),
            phase=PodPhase.PENDING,
            conditions={kind: PodCondition() for kind in PodConditionType},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hostIP": self.host_ip,
            "startTime": _format_timestamp(self.start_time),
            "phase": self.phase.value,
            "podIP": str(self.pod_ip) if self.pod_ip is not None else None,
            "conditions": {
                kind.value: {"status": condition.status}
                for kind, condition in self.conditions.items()
            },
            "containerStatuses": [s.to_dict() for s in self.container_statuses],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PodStatus:
        pod_ip = data.get("podIP") if isinstance(data, Mapping) else None
        conditions = _required(data, "conditions")
        if not isinstance(conditions, Mapping):
            raise ValueError("field `conditions` must be a mapping")
        return cls(
            host_ip=_optional_str(data, "hostIP"),
            start_time=_parse_timestamp(_required(data, "startTime")),
            phase=PodPhase(_required(data, "phase")),
            pod_ip=ipaddress.IPv4Address(str(pod_ip)) if pod_ip is not None else None,
            conditions={
                PodConditionType(kind): PodCondition(bool(_required(body, "status")))
                for kind, body in conditions.items()
            },
            container_statuses=[
                ContainerStatus.from_dict(s) for s in _required(data, "containerStatuses")
            ],
        )


@dataclass
class ContainerPair:
    """A container spec together with its status, if one is known."""

    container: Container
    status: ContainerStatus | None = None

    def __str__(self) -> str:
        container = self.container
        ports = ",".join(str(port.container_port) for port in container.ports)
        parts = [
            f"{'Image:':<16} {container.image}\n",
            f"{'Port:':<16} {ports}\n",
        ]
        if self.status is not None:
            parts += [
                f"{'Container ID:':<16} {self.status.container_id}\n",
                f"{'State:':<16} {self.status.state}\n",
                f"{'Restart Count:':<16} {self.status.restart_count}\n",
            ]
        if container.volume_mounts:
            parts.append("Mounts\n")
            parts.extend(_indent(f"{mount}\n") for mount in container.volume_mounts)
        parts.append("Resources:\n")
        parts.append(str(container.resources))
        return "".join(parts)


@dataclass
class PodTemplateSpec:
    """Template from which pods are created."""

    metadata: Metadata
    spec: PodSpec

    @classmethod
    def from_function(cls, func: Any) -> PodTemplateSpec:
        """Template running the image built for a function."""
        status = func.status
        if status is None or status.image is None:
            raise ValueError(f"function {func.metadata.name!r} has no image")
        name = func.metadata.name
        metadata = Metadata(name=name, uid=None, labels=Labels(func.metadata.labels))
        spec = PodSpec(
            containers=[
                Container(
                    name=name,
                    image=status.image,
                    image_pull_policy=ImagePullPolicy.IF_NOT_PRESENT,
                    ports=[ContainerPort(80)],
                )
            ]
        )
        return cls(metadata=metadata, spec=spec)

    def to_dict(self) -> dict[str, Any]:
        return {"metadata": self.metadata.to_dict(), "spec": self.spec.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PodTemplateSpec:
        return cls(
            metadata=Metadata.from_dict(_required(data, "metadata")),
            spec=PodSpec.from_dict(_required(data, "spec")),
        )


@dataclass
class Pod(KubeResource):
    """A group of containers scheduled together."""

    kind: ClassVar[str] = "Pod"

    metadata: Metadata
    spec: PodSpec
    status: PodStatus | None = None

    def is_ready(self) -> bool:
        if self.status is None:
            return False
        condition = self.status.conditions.get(PodConditionType.READY)
        return condition is not None and condition.status

    def is_active(self) -> bool:
        return self.status is not None and self.status.phase in (
            PodPhase.PENDING,
            PodPhase.RUNNING,
        )

    def is_succeeded(self) -> bool:
        return self.status is not None and self.status.phase is PodPhase.SUCCEEDED

    def is_on_node(self, node_name: str) -> bool:
        return self.spec.node_name is not None and self.spec.node_name == node_name

    def requests(self, resource: Resource) -> int:
        return sum(container.requests(resource) for container in self.spec.containers)

    def container_pairs(self) -> list[ContainerPair]:
        """Each container with the first status of the same name."""
        statuses = self.status.container_statuses if self.status is not None else []
        return [
            ContainerPair(
                container,
                next((s for s in statuses if s.name == container.name), None),
            )
            for container in self.spec.containers
        ]

    def get_ip(self) -> ipaddress.IPv4Address | None:
        return self.status.pod_ip if self.status is not None else None

    def __str__(self) -> str:
        parts = [f"{'Name:':<16} {self.metadata.name}\n"]
        status = self.status
        if status is None:
            return "".join(parts)
        node = self.spec.node_name if self.spec.node_name is not None else "<none>"
        host = status.host_ip if status.host_ip is not None else "<none>"
        ip = str(status.pod_ip) if status.pod_ip is not None else "<none>"
        parts += [
            f"{'Node:':<16} {node}/{host}\n",
            f"{'Start Time:':<16} {_display_local(status.start_time)}\n",
            f"{'Labels:':<16} {self.metadata.labels}\n",
            f"{'Phase:':<16} {status.phase}\n",
            f"{'IP:':<16} {ip}\n",
            "Containers:\n",
        ]
        for pair in self.container_pairs():
            parts.append(f"  {pair.container.name}:\n")
            parts.append(_indent(str(pair)))
        parts.append("Conditions:\n")
        parts.append(_indent(f"{'Type':<16} {'Status':<8}\n"))
        for kind, condition in status.conditions.items():
            flag = "true" if condition.status else "false"
            parts.append(_indent(f"{kind.value:<16} {flag:<8}\n"))
        if self.spec.volumes:
            parts.append("Volumes:\n")
            parts.extend(_indent(f"{volume}\n") for volume in self.spec.volumes)
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict() if self.status is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Pod:
        status = data.get("status") if isinstance(data, Mapping) else None
        return cls(
            metadata=Metadata.from_dict(_required(data, "metadata")),
            spec=PodSpec.from_dict(_required(data, "spec")),
            status=PodStatus.from_dict(status) if status is not None else None,
        )