"""Replica sets keep a number of identical pods running."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from rkube.objects.base import KubeResource, Labels, Metadata, ObjectReference
from rkube.objects.pod import PodTemplateSpec

if TYPE_CHECKING:
    from rkube.objects.function import Function


def _required(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _uint(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"field `{key}` must be a non-negative integer")
    return value


def _labels(value: Any, key: str) -> Labels:
    if not isinstance(value, Mapping):
        raise ValueError(f"field `{key}` must be a mapping")
    return Labels({str(k): str(v) for k, v in value.items()})


@dataclass
class ReplicaSetSpec:
    """Desired replicas, their selector and the pod template."""

    selector: Labels
    template: PodTemplateSpec
    replicas: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "selector": dict(self.selector),
            "template": self.template.to_dict(),
            "replicas": self.replicas,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReplicaSetSpec:
        return cls(
            selector=_labels(_required(data, "selector"), "selector"),
            template=PodTemplateSpec.from_dict(_required(data, "template")),
            replicas=_uint(data.get("replicas", 1), "replicas"),
        )


@dataclass
class ReplicaSetStatus:
    """Most recently observed replica counts."""

    replicas: int = 0
    ready_replicas: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"replicas": self.replicas, "readyReplicas": self.ready_replicas}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReplicaSetStatus:
        return cls(
            replicas=_uint(_required(data, "replicas"), "replicas"),
            ready_replicas=_uint(_required(data, "readyReplicas"), "readyReplicas"),
        )


@dataclass
class ReplicaSet(KubeResource):
    """Ensures a number of pod replicas are running."""

    kind: ClassVar[str] = "ReplicaSet"

    metadata: Metadata
    spec: ReplicaSetSpec
    status: ReplicaSetStatus | None = None

    @classmethod
    def from_function(cls, func: Function) -> ReplicaSet:
        """Replica set, initially empty, serving a function's image."""
        name = func.metadata.name
        metadata = Metadata(
            name=name,
            uid=None,
            labels=Labels(func.metadata.labels),
            owner_references=[ObjectReference(kind="function", name=name)],
        )
        spec = ReplicaSetSpec(
            selector=Labels(func.metadata.labels),
            template=PodTemplateSpec.from_function(func),
            replicas=0,
        )
        return cls(metadata=metadata, spec=spec, status=None)

    def __str__(self) -> str:
        parts = [
            f"{'Name:':<16} {self.metadata.name}\n",
            f"{'Selector:':<16} {self.spec.selector}\n",
            f"{'Labels:':<16} {self.metadata.labels}\n",
        ]
        status = self.status
        if status is not None:
            parts.append(
                f"{'Replicas:':<16} {status.ready_replicas} ready / "
                f"{status.replicas} current / {self.spec.replicas} desired\n"
            )
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict() if self.status is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReplicaSet:
        status = data.get("status") if isinstance(data, Mapping) else None
        return cls(
            metadata=Metadata.from_dict(_required(data, "metadata")),
            spec=ReplicaSetSpec.from_dict(_required(data, "spec")),
            status=ReplicaSetStatus.from_dict(status) if status is not None else None,
        )