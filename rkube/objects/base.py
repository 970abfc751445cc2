"""Common object metadata, labels and the resource base class."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar


def _required(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


@dataclass
class ObjectReference:
    """Reference to another object by kind and name."""

    kind: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": self.name}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ObjectReference:
        return cls(kind=str(_required(data, "kind")), name=str(_required(data, "name")))


class Labels(dict[str, str]):
    """String key/value labels used for selection."""

    def insert(self, key: str, value: str) -> Labels:
        self[key] = value
        return self

    def matches(self, labels: Mapping[str, str]) -> bool:
        """True if every entry of ``labels`` is present in these labels."""
        return all(key in self and self[key] == value for key, value in labels.items())

    @classmethod
    def parse(cls, text: str) -> Labels:
        """Parse ``key1=value1,key2=value2``."""
        labels = cls()
        for item in text.split(","):
            parts = item.split("=")
            if len(parts) < 2:
                raise ValueError("Missing label value")
            labels[parts[0]] = parts[1]
        return labels

    def __str__(self) -> str:
        return ",".join(f"{key}={value}" for key, value in self.items())

    def __repr__(self) -> str:
        return f"Labels({dict.__repr__(self)})"


@dataclass
class Metadata:
    """Standard object metadata."""

    name: str = ""
    uid: uuid.UUID | None = None
    labels: Labels = field(default_factory=Labels)
    owner_references: list[ObjectReference] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "uid": str(self.uid) if self.uid is not None else None,
            "labels": dict(self.labels),
            "ownerReferences": [ref.to_dict() for ref in self.owner_references],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Metadata:
        name = _required(data, "name")
        if not isinstance(name, str):
            raise ValueError("field `name` must be a string")
        uid = data.get("uid")
        labels = data.get("labels", {})
        if not isinstance(labels, Mapping):
            raise ValueError("field `labels` must be a mapping")
        return cls(
            name=name,
            uid=uuid.UUID(str(uid)) if uid is not None else None,
            labels=Labels({str(k): str(v) for k, v in labels.items()}),
            owner_references=[
                ObjectReference.from_dict(ref) for ref in data.get("ownerReferences", [])
            ],
        )


class KubeResource:
    """Behaviour shared by every API object."""

    kind: ClassVar[str] = ""
    metadata: Metadata

    @property
    def name(self) -> str:
        return self.metadata.name

    def kind_plural(self) -> str:
        if self.kind == "ingress":
            return self.kind + "es"
        return self.kind + "s"

    def prefix(self) -> str:
        return f"/api/v1/{self.kind_plural().lower()}"

    def uri(self) -> str:
        return f"{self.prefix()}/{self.name}"

    def object_reference(self) -> ObjectReference:
        return ObjectReference(kind=self.kind, name=self.name)


@dataclass
class Binding(KubeResource):
    """Binds an object to a target."""

    kind: ClassVar[str] = "Binding"

    metadata: Metadata
    target: ObjectReference

    def to_dict(self) -> dict[str, Any]:
        return {"metadata": self.metadata.to_dict(), "target": self.target.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Binding:
        return cls(
            metadata=Metadata.from_dict(_required(data, "metadata")),
            target=ObjectReference.from_dict(_required(data, "target")),
        )