"""Resource usage metrics of pods, containers and functions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from rkube.utils import _format_timestamp, _parse_timestamp


def _required(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


class Resource(str, Enum):
    """A compute resource."""

    CPU = "CPU"
    MEMORY = "Memory"

    def __str__(self) -> str:
        return self.value


@dataclass
class ContainerMetrics:
    """Usage of one container."""

    name: str
    usage: dict[Resource, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "usage": {r.value: v for r, v in self.usage.items()}}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ContainerMetrics:
        usage = _required(data, "usage")
        return cls(
            name=str(_required(data, "name")),
            usage={Resource(key): int(value) for key, value in usage.items()},
        )


@dataclass
class PodMetrics:
    """Metrics of the containers of a pod over a window in seconds."""

    name: str
    timestamp: datetime
    window: int
    containers: list[ContainerMetrics] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "timestamp": _format_timestamp(self.timestamp),
            "window": self.window,
            "containers": [c.to_dict() for c in self.containers],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PodMetrics:
        return cls(
            name=str(_required(data, "name")),
            timestamp=_parse_timestamp(_required(data, "timestamp")),
            window=int(_required(data, "window")),
            containers=[ContainerMetrics.from_dict(c) for c in _required(data, "containers")],
        )


@dataclass
class PodMetric:
    """Summary value of a pod's metrics."""

    timestamp: datetime
    window: int
    value: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": _format_timestamp(self.timestamp),
            "window": self.window,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PodMetric:
        return cls(
            timestamp=_parse_timestamp(_required(data, "timestamp")),
            window=int(_required(data, "window")),
            value=int(_required(data, "value")),
        )


PodMetricsInfo = dict[str, PodMetric]


@dataclass
class FunctionMetric:
    """Query count of a function."""

    name: str
    timestamp: datetime
    value: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "timestamp": _format_timestamp(self.timestamp),
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FunctionMetric:
        return cls(
            name=str(_required(data, "name")),
            timestamp=_parse_timestamp(_required(data, "timestamp")),
            value=int(_required(data, "value")),
        )