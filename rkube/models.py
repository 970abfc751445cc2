"""API response envelopes and watch events."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def _plain(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


@dataclass
class Response(Generic[T]):
    """Successful API response."""

    msg: str | None = None
    data: T | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"msg": self.msg, "data": _plain(self.data)}

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], parse: Callable[[Any], T] | None = None
    ) -> Response[T]:
        if not isinstance(data, Mapping):
            raise ValueError("response must be a mapping")
        payload = data.get("data")
        if payload is not None and parse is not None:
            payload = parse(payload)
        return cls(msg=_optional_str(data, "msg"), data=payload)


@dataclass
class ErrResponse:
    """Error returned by the API server; the status is not serialized."""

    msg: str
    cause: str | None = None
    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    @classmethod
    def not_found(cls, msg: str, cause: str | None = None) -> ErrResponse:
        return cls(msg, cause, HTTPStatus.NOT_FOUND)

    @classmethod
    def bad_request(cls, msg: str, cause: str | None = None) -> ErrResponse:
        return cls(msg, cause, HTTPStatus.BAD_REQUEST)

    def json(self) -> str:
        return json.dumps({"msg": self.msg, "cause": self.cause}, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ErrResponse:
        if not isinstance(data, Mapping):
            raise ValueError("response must be a mapping")
        msg = data.get("msg")
        if not isinstance(msg, str):
            raise ValueError("field `msg` must be a string")
        return cls(msg=msg, cause=_optional_str(data, "cause"))


@dataclass
class NodeConfig:
    """Endpoints a node component talks to."""

    etcd_endpoint: str
    api_server_endpoint: str


@dataclass
class PutEvent(Generic[T]):
    """An object was created or replaced under ``key``."""

    key: str
    object: T

    def to_dict(self) -> dict[str, Any]:
        return {"type": "Put", "key": self.key, "object": _plain(self.object)}


@dataclass
class DeleteEvent:
    """The object under ``key`` was removed."""

    key: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "Delete", "key": self.key}


def parse_watch_event(
    data: Mapping[str, Any] | str | bytes,
    parse_object: Callable[[Any], T] | None = None,
) -> PutEvent[T] | DeleteEvent:
    """Decode a watch event from JSON text or a mapping."""
    if isinstance(data, (str, bytes)):
        data = json.loads(data)
    if not isinstance(data, Mapping):
        raise ValueError("watch event must be a mapping")
    kind = data.get("type")
    key = data.get("key")
    if not isinstance(key, str):
        raise ValueError("watch event has no string `key`")
    if kind == "Put":
        if "object" not in data:
            raise ValueError("put event has no `object`")
        obj = data["object"]
        return PutEvent(key, parse_object(obj) if parse_object is not None else obj)
    if kind == "Delete":
        return DeleteEvent(key)
    raise ValueError(f"unknown watch event type {kind!r}")