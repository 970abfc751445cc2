"""Horizontal pod autoscalers and their scaling rules."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Union

from rkube.objects.base import KubeResource, Labels, Metadata, ObjectReference
from rkube.objects.metrics import Resource
from rkube.utils import _format_timestamp, _parse_timestamp

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


class PolicySelection(str, Enum):
    """How to choose among several scaling policies."""

    MIN = "Min"
    MAX = "Max"
    DISABLED = "Disabled"

    def __str__(self) -> str:
        return self.value


class ScalingPolicyType(str, Enum):
    """Unit of a scaling policy's value."""

    PODS = "Pods"
    PERCENT = "Percent"

    def __str__(self) -> str:
        return self.value


@dataclass
class HPAScalingPolicy:
    """A change limit that must hold over a period in seconds."""

    type_: ScalingPolicyType
    value: int
    period_seconds: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_.value,
            "value": self.value,
            "periodSeconds": self.period_seconds,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HPAScalingPolicy:
        return cls(
            type_=ScalingPolicyType(_required(data, "type")),
            value=_uint(_required(data, "value"), "value"),
            period_seconds=_uint(_required(data, "periodSeconds"), "periodSeconds"),
        )


@dataclass
class HPAScalingRules:
    """Scaling behaviour for one direction."""

    policies: list[HPAScalingPolicy] = field(default_factory=list)
    select_policy: PolicySelection = PolicySelection.MAX
    stabilization_window_seconds: int = 0

    def longest_period(self) -> int:
        """The longest period among the policies, or 0 without policies."""
        return max((policy.period_seconds for policy in self.policies), default=0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "policies": [policy.to_dict() for policy in self.policies],
            "selectPolicy": self.select_policy.value,
            "stabilizationWindowSeconds": self.stabilization_window_seconds,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HPAScalingRules:
        policies = _required(data, "policies")
        return cls(
            policies=[HPAScalingPolicy.from_dict(policy) for policy in policies],
            select_policy=PolicySelection(data.get("selectPolicy", PolicySelection.MAX.value)),
            stabilization_window_seconds=_uint(
                _required(data, "stabilizationWindowSeconds"), "stabilizationWindowSeconds"
            ),
        )


def _default_scale_down() -> HPAScalingRules:
    return HPAScalingRules(
        policies=[HPAScalingPolicy(ScalingPolicyType.PERCENT, 100, 60)],
        select_policy=PolicySelection.MAX,
        stabilization_window_seconds=60,
    )


def _default_scale_up() -> HPAScalingRules:
    return HPAScalingRules(
        policies=[
            HPAScalingPolicy(ScalingPolicyType.PODS, 4, 60),
            HPAScalingPolicy(ScalingPolicyType.PERCENT, 100, 60),
        ],
        select_policy=PolicySelection.MAX,
        stabilization_window_seconds=0,
    )


@dataclass
class HorizontalPodAutoscalerBehavior:
    """Scaling rules for both directions."""

    scale_down: HPAScalingRules = field(default_factory=_default_scale_down)
    scale_up: HPAScalingRules = field(default_factory=_default_scale_up)

    def to_dict(self) -> dict[str, Any]:
        return {"scaleDown": self.scale_down.to_dict(), "scaleUp": self.scale_up.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HorizontalPodAutoscalerBehavior:
        if not isinstance(data, Mapping):
            raise ValueError("behavior must be a mapping")
        down = data.get("scaleDown")
        up = data.get("scaleUp")
        return cls(
            scale_down=HPAScalingRules.from_dict(down) if down is not None else _default_scale_down(),
            scale_up=HPAScalingRules.from_dict(up) if up is not None else _default_scale_up(),
        )


@dataclass(frozen=True)
class MetricTarget:
    """Target average utilization (percent of request) or average value."""

    AVERAGE_UTILIZATION: ClassVar[str] = "averageUtilization"
    AVERAGE_VALUE: ClassVar[str] = "averageValue"

    kind: str
    value: int

    def __post_init__(self) -> None:
        if self.kind not in (self.AVERAGE_UTILIZATION, self.AVERAGE_VALUE):
            raise ValueError(f"unknown metric target {self.kind!r}")
        _uint(self.value, self.kind)

    def to_dict(self) -> dict[str, Any]:
        return {self.kind: self.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MetricTarget:
        if not isinstance(data, Mapping) or len(data) != 1:
            raise ValueError(f"invalid metric target {data!r}")
        ((kind, value),) = data.items()
        return cls(str(kind), value)


def _default_target() -> MetricTarget:
    return MetricTarget(MetricTarget.AVERAGE_UTILIZATION, 80)


@dataclass
class ResourceMetricSource:
    """Scale on a resource metric averaged over the target's pods."""

    name: Resource = Resource.CPU
    target: MetricTarget = field(default_factory=_default_target)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "Resource", "name": self.name.value, "target": self.target.to_dict()}


@dataclass
class FunctionMetricSource:
    """Scale on the average queries of a function in a 15s window."""

    name: str
    target: int

    def to_dict(self) -> dict[str, Any]:
        return {"type": "Function", "name": self.name, "target": self.target}


MetricSource = Union[ResourceMetricSource, FunctionMetricSource]


def parse_metric_source(data: Mapping[str, Any]) -> MetricSource:
    """Decode a metric source tagged by its ``type`` field."""
    kind = _required(data, "type")
    if kind == "Resource":
        return ResourceMetricSource(
            name=Resource(_required(data, "name")),
            target=MetricTarget.from_dict(_required(data, "target")),
        )
    if kind == "Function":
        name = _required(data, "name")
        if not isinstance(name, str):
            raise ValueError("field `name` must be a string")
        return FunctionMetricSource(name=name, target=_uint(_required(data, "target"), "target"))
    raise ValueError(f"unknown metric source type {kind!r}")


@dataclass
class HorizontalPodAutoscalerSpec:
    """Desired autoscaling of a target."""

    max_replicas: int
    scale_target_ref: ObjectReference
    min_replicas: int = 1
    behavior: HorizontalPodAutoscalerBehavior = field(
        default_factory=HorizontalPodAutoscalerBehavior
    )
    metrics: MetricSource = field(default_factory=ResourceMetricSource)

    def to_dict(self) -> dict[str, Any]:
        return {
            "maxReplicas": self.max_replicas,
            "minReplicas": self.min_replicas,
            "scaleTargetRef": self.scale_target_ref.to_dict(),
            "behavior": self.behavior.to_dict(),
            "metrics": self.metrics.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HorizontalPodAutoscalerSpec:
        behavior = data.get("behavior") if isinstance(data, Mapping) else None
        metrics = data.get("metrics") if isinstance(data, Mapping) else None
        return cls(
            max_replicas=_uint(_required(data, "maxReplicas"), "maxReplicas"),
            min_replicas=_uint(data.get("minReplicas", 1), "minReplicas"),
            scale_target_ref=ObjectReference.from_dict(_required(data, "scaleTargetRef")),
            behavior=(
                HorizontalPodAutoscalerBehavior.from_dict(behavior)
                if behavior is not None
                else HorizontalPodAutoscalerBehavior()
            ),
            metrics=parse_metric_source(metrics) if metrics is not None else ResourceMetricSource(),
        )


@dataclass
class HorizontalPodAutoscalerStatus:
    """Replica counts last seen by the autoscaler."""

    desired_replicas: int = 0
    current_replicas: int = 0
    last_scale_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "desiredReplicas": self.desired_replicas,
            "currentReplicas": self.current_replicas,
            "lastScaleTime": (
                _format_timestamp(self.last_scale_time) if self.last_scale_time is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HorizontalPodAutoscalerStatus:
        last = data.get("lastScaleTime") if isinstance(data, Mapping) else None
        return cls(
            desired_replicas=_uint(_required(data, "desiredReplicas"), "desiredReplicas"),
            current_replicas=_uint(_required(data, "currentReplicas"), "currentReplicas"),
            last_scale_time=_parse_timestamp(last) if last is not None else None,
        )


@dataclass
class HorizontalPodAutoscaler(KubeResource):
    """Scales a target's replicas from observed metrics."""

    kind: ClassVar[str] = "HorizontalPodAutoscaler"

    metadata: Metadata
    spec: HorizontalPodAutoscalerSpec
    status: HorizontalPodAutoscalerStatus | None = None

    @classmethod
    def from_function(cls, func: Function) -> HorizontalPodAutoscaler:
        """Autoscaler for the replica set that serves a function."""
        name = func.metadata.name
        metadata = Metadata(
            name=name,
            uid=None,
            labels=Labels(func.metadata.labels),
            owner_references=[ObjectReference(kind="function", name=name)],
        )
        spec = HorizontalPodAutoscalerSpec(
            max_replicas=func.spec.max_replicas,
            scale_target_ref=ObjectReference(kind="ReplicaSet", name=name),
            min_replicas=0,
            behavior=copy.deepcopy(func.spec.behavior),
            metrics=copy.deepcopy(func.spec.metrics),
        )
        return cls(metadata=metadata, spec=spec, status=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict() if self.status is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HorizontalPodAutoscaler:
        status = data.get("status") if isinstance(data, Mapping) else None
        return cls(
            metadata=Metadata.from_dict(_required(data, "metadata")),
            spec=HorizontalPodAutoscalerSpec.from_dict(_required(data, "spec")),
            status=HorizontalPodAutoscalerStatus.from_dict(status) if status is not None else None,
        )