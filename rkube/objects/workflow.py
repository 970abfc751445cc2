"""Workflows chain function calls through task and choice states."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from rkube.objects.base import KubeResource, Metadata

_I32 = (-(2**31), 2**31 - 1)
_I64 = (-(2**63), 2**63 - 1)


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


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


@dataclass
class Task:
    """Call a function, then go to ``next`` or end when it is None."""

    resource: str
    next: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": "Task", "resource": self.resource, "next": self.next}


@dataclass(frozen=True)
class FieldEquals:
    """A string field equals ``content``."""

    type_name: ClassVar[str] = "FieldEquals"

    field: str
    content: str

    def _matches(self, value: Any) -> bool:
        return isinstance(value, str) and value == self.content


@dataclass(frozen=True)
class FieldNumEquals:
    """An integer field equals ``content``."""

    type_name: ClassVar[str] = "FieldNumEquals"

    field: str
    content: int

    def _matches(self, value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        return _I64[0] <= value <= _I64[1] and value == self.content


Comparison = Union[FieldEquals, FieldNumEquals]


@dataclass
class ChoiceRule:
    """Go to ``next`` when the comparison holds for the input."""

    comparison: Comparison
    next: str

    def match_with(self, text: str) -> bool:
        """Whether ``text``, a JSON object, satisfies the comparison."""
        try:
            args = json.loads(text, parse_constant=_reject_constant)
        except (ValueError, TypeError):
            return False
        if not isinstance(args, dict) or self.comparison.field not in args:
            return False
        return self.comparison._matches(args[self.comparison.field])

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.comparison.type_name,
            "field": self.comparison.field,
            "content": self.comparison.content,
            "next": self.next,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ChoiceRule:
        kind = _required(data, "type")
        field_name = _str(_required(data, "field"), "field")
        content = _required(data, "content")
        comparison: Comparison
        if kind == FieldEquals.type_name:
            comparison = FieldEquals(field_name, _str(content, "content"))
        elif kind == FieldNumEquals.type_name:
            if (
                isinstance(content, bool)
                or not isinstance(content, int)
                or not _I32[0] <= content <= _I32[1]
            ):
                raise ValueError("field `content` must be a 32-bit integer")
            comparison = FieldNumEquals(field_name, content)
        else:
            raise ValueError(f"unknown comparison type {kind!r}")
        return cls(comparison=comparison, next=_str(_required(data, "next"), "next"))


@dataclass
class Choice:
    """Branch on the first matching rule, else go to ``default``."""

    rules: list[ChoiceRule]
    default: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "Choice",
            "rules": [rule.to_dict() for rule in self.rules],
            "default": self.default,
        }


State = Union[Task, Choice]


def parse_state(data: Mapping[str, Any]) -> State:
    """Decode a state tagged by its ``type`` field."""
    kind = _required(data, "type")
    if kind == "Task":
        nxt = data.get("next")
        return Task(
            resource=_str(_required(data, "resource"), "resource"),
            next=_str(nxt, "next") if nxt is not None else None,
        )
    if kind == "Choice":
        return Choice(
            rules=[ChoiceRule.from_dict(rule) for rule in _required(data, "rules")],
            default=_str(_required(data, "default"), "default"),
        )
    raise ValueError(f"unknown state type {kind!r}")


@dataclass
class WorkflowSpec:
    """The starting state and all states by name."""

    start_at: str
    states: dict[str, State]

    def to_dict(self) -> dict[str, Any]:
        return {
            "startAt": self.start_at,
            "states": {name: state.to_dict() for name, state in self.states.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WorkflowSpec:
        states = _required(data, "states")
        if not isinstance(states, Mapping):
            raise ValueError("field `states` must be a mapping")
        return cls(
            start_at=_str(_required(data, "startAt"), "startAt"),
            states={str(name): parse_state(state) for name, state in states.items()},
        )


@dataclass
class Workflow(KubeResource):
    """A state machine of function calls."""

    kind: ClassVar[str] = "Workflow"

    metadata: Metadata
    spec: WorkflowSpec

    def to_dict(self) -> dict[str, Any]:
        return {"metadata": self.metadata.to_dict(), "spec": self.spec.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Workflow:
        return cls(
            metadata=Metadata.from_dict(_required(data, "metadata")),
            spec=WorkflowSpec.from_dict(_required(data, "spec")),
        )