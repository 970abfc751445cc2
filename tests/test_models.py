import json
from http import HTTPStatus

import pytest

from rkube.models import (
    DeleteEvent,
    ErrResponse,
    PutEvent,
    Response,
    parse_watch_event,
)
from rkube.objects.base import ObjectReference


def test_err_response_default_status():
    assert ErrResponse("boom").status == HTTPStatus.INTERNAL_SERVER_ERROR


def test_err_response_constructors():
    assert ErrResponse.not_found("x").status == HTTPStatus.NOT_FOUND
    assert ErrResponse.bad_request("x", "why").status == HTTPStatus.BAD_REQUEST
    assert ErrResponse.bad_request("x", "why").cause == "why"


def test_err_response_json_is_compact_and_skips_status():
    assert ErrResponse("boom", "why").json() == '{"msg":"boom","cause":"why"}'


def test_err_response_json_round_trip():
    err = ErrResponse.not_found("gone")
    parsed = ErrResponse.from_dict(json.loads(err.json()))
    assert parsed.msg == "gone"
    assert parsed.cause is None
    assert parsed.status == HTTPStatus.INTERNAL_SERVER_ERROR


def test_err_response_requires_string_msg():
    with pytest.raises(ValueError):
        ErrResponse.from_dict({"msg": 1})
    with pytest.raises(ValueError):
        ErrResponse.from_dict({"data": "x"})


def test_response_round_trip_with_parser():
    response = Response(msg="ok", data=[ObjectReference("Pod", "a")])
    parsed = Response.from_dict(
        response.to_dict(), lambda items: [ObjectReference.from_dict(i) for i in items]
    )
    assert parsed == response


def test_response_without_data():
    parsed = Response.from_dict({"msg": None, "data": None}, ObjectReference.from_dict)
    assert parsed == Response()


def test_put_event_round_trip():
    event = PutEvent("/api/v1/pods/a", ObjectReference("Pod", "a"))
    assert parse_watch_event(event.to_dict(), ObjectReference.from_dict) == event


def test_delete_event_from_json_text():
    text = json.dumps(DeleteEvent("/api/v1/pods/a").to_dict())
    assert parse_watch_event(text) == DeleteEvent("/api/v1/pods/a")


def test_put_event_tag():
    assert PutEvent("k", {"a": 1}).to_dict()["type"] == "Put"


def test_unknown_event_type():
    with pytest.raises(ValueError):
        parse_watch_event({"type": "Patch", "key": "k"})


def test_put_event_without_object():
    with pytest.raises(ValueError):
        parse_watch_event({"type": "Put", "key": "k"})