"""Ingresses route host names and paths to services."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from rkube.objects.base import KubeResource, Metadata


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
class IngressService:
    """The service and port a path is routed to."""

    name: str
    port: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "port": self.port}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IngressService:
        port = _required(data, "port")
        if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 0xFFFF:
            raise ValueError("field `port` must be a port number")
        return cls(name=_str(_required(data, "name"), "name"), port=port)


@dataclass
class IngressPath:
    """A request path mapped to a service."""

    path: str
    service: IngressService

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "service": self.service.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IngressPath:
        return cls(
            path=_str(_required(data, "path"), "path"),
            service=IngressService.from_dict(_required(data, "service")),
        )


@dataclass
class IngressRule:
    """Paths served under one host; the host is generated when missing."""

    host: str | None = None
    paths: list[IngressPath] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"host": self.host, "paths": [path.to_dict() for path in self.paths]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IngressRule:
        host = data.get("host") if isinstance(data, Mapping) else None
        return cls(
            host=_str(host, "host") if host is not None else None,
            paths=[IngressPath.from_dict(path) for path in _required(data, "paths")],
        )


@dataclass
class IngressSpec:
    """Host rules of an ingress."""

    rules: list[IngressRule] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"rules": [rule.to_dict() for rule in self.rules]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IngressSpec:
        return cls(rules=[IngressRule.from_dict(rule) for rule in _required(data, "rules")])


@dataclass
class Ingress(KubeResource):
    """Routes external requests to services."""

    kind: ClassVar[str] = "Ingress"

    metadata: Metadata
    spec: IngressSpec

    def kind_plural(self) -> str:
        return "Ingresses"

    def to_dict(self) -> dict[str, Any]:
        return {"metadata": self.metadata.to_dict(), "spec": self.spec.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Ingress:
        return cls(
            metadata=Metadata.from_dict(_required(data, "metadata")),
            spec=IngressSpec.from_dict(_required(data, "spec")),
        )