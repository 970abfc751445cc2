"""Decoding and encoding API objects tagged by their kind."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Union

from rkube.objects.base import Binding
from rkube.objects.function import Function
from rkube.objects.gpu_job import GpuJob
from rkube.objects.hpa import HorizontalPodAutoscaler
from rkube.objects.ingress import Ingress
from rkube.objects.node import Node
from rkube.objects.pod import Pod
from rkube.objects.replica_set import ReplicaSet
from rkube.objects.service import Service
from rkube.objects.workflow import Workflow

KubeObject = Union[
    Pod,
    Binding,
    Node,
    Service,
    ReplicaSet,
    Ingress,
    HorizontalPodAutoscaler,
    GpuJob,
    Function,
    Workflow,
]

_KINDS: dict[str, Any] = {
    "Pod": Pod,
    "Binding": Binding,
    "Node": Node,
    "Service": Service,
    "ReplicaSet": ReplicaSet,
    "Ingress": Ingress,
    "HorizontalPodAutoscaler": HorizontalPodAutoscaler,
    "GpuJob": GpuJob,
    "Function": Function,
    "Workflow": Workflow,
}


def parse_object(data: Mapping[str, Any]) -> KubeObject:
    """Decode an object whose ``kind`` field names its type."""
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    if "kind" not in data:
        raise ValueError("missing field `kind`")
    kind = data["kind"]
    cls = _KINDS.get(kind) if isinstance(kind, str) else None
    if cls is None:
        raise ValueError(f"unknown kind {kind!r}")
    return cls.from_dict({key: value for key, value in data.items() if key != "kind"})


def object_to_dict(obj: KubeObject) -> dict[str, Any]:
    """Encode an object with its ``kind`` field first."""
    kind = next((name for name, cls in _KINDS.items() if type(obj) is cls), None)
    if kind is None:
        raise TypeError(f"not an API object: {type(obj).__name__}")
    return {"kind": kind, **obj.to_dict()}