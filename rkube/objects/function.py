"""Serverless functions."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from rkube.objects.base import KubeResource, Labels, Metadata
from rkube.objects.hpa import (
    HorizontalPodAutoscalerBehavior,
    MetricSource,
    parse_metric_source,
)


def _required(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


@dataclass
class FunctionSpec:
    """Autoscaling settings of a function."""

    metrics: MetricSource
    max_replicas: int = 10
    behavior: HorizontalPodAutoscalerBehavior = field(
        default_factory=HorizontalPodAutoscalerBehavior
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "maxReplicas": self.max_replicas,
            "behavior": self.behavior.to_dict(),
            "metrics": self.metrics.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FunctionSpec:
        metrics = parse_metric_source(_required(data, "metrics"))
        max_replicas = data.get("maxReplicas", 10)
        if isinstance(max_replicas, bool) or not isinstance(max_replicas, int) or max_replicas < 0:
            raise ValueError("field `maxReplicas` must be a non-negative integer")
        behavior = data.get("behavior")
        return cls(
            metrics=metrics,
            max_replicas=max_replicas,
            behavior=(
                HorizontalPodAutoscalerBehavior.from_dict(behavior)
                if behavior is not None
                else HorizontalPodAutoscalerBehavior()
            ),
        )


@dataclass
class FunctionStatus:
    """Where a function is served and the image that wraps it."""

    service_ref: str = ""
    filename: str = ""
    host: str = ""
    image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "serviceRef": self.service_ref,
            "filename": self.filename,
            "host": self.host,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FunctionStatus:
        image = data.get("image") if isinstance(data, Mapping) else None
        return cls(
            service_ref=_str(_required(data, "serviceRef"), "serviceRef"),
            filename=_str(_required(data, "filename"), "filename"),
            host=_str(_required(data, "host"), "host"),
            image=_str(image, "image") if image is not None else None,
        )


@dataclass
class Function(KubeResource):
    """A function deployed from uploaded code."""

    kind: ClassVar[str] = "Function"

    metadata: Metadata
    spec: FunctionSpec
    status: FunctionStatus | None = None

    def init(self, svc_name: str, filename: str) -> None:
        """Assign a uid, the function label and the initial status."""
        name = self.metadata.name
        self.metadata.uid = uuid.uuid4()
        self.metadata.labels = Labels({"function": name})
        self.status = FunctionStatus(
            service_ref=svc_name,
            filename=filename,
            host=f"{name}.func.minik8s.com",
            image=None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict() if self.status is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Function:
        status = data.get("status") if isinstance(data, Mapping) else None
        return cls(
            metadata=Metadata.from_dict(_required(data, "metadata")),
            spec=FunctionSpec.from_dict(_required(data, "spec")),
            status=FunctionStatus.from_dict(status) if status is not None else None,
        )