import uuid

import pytest

from rkube.objects.base import Labels, Metadata
from rkube.objects.function import Function, FunctionSpec, FunctionStatus
from rkube.objects.hpa import (
    FunctionMetricSource,
    HorizontalPodAutoscalerBehavior,
    ResourceMetricSource,
)


def _function() -> Function:
    return Function(
        metadata=Metadata(name="hello"),
        spec=FunctionSpec(metrics=FunctionMetricSource(name="hello", target=3)),
    )


def test_spec_defaults_on_parse():
    spec = FunctionSpec.from_dict({"metrics": {"type": "Resource", "name": "CPU",
                                               "target": {"averageUtilization": 80}}})
    assert spec.max_replicas == 10
    assert spec.behavior == HorizontalPodAutoscalerBehavior()
    assert spec.metrics == ResourceMetricSource()


def test_spec_requires_metrics():
    with pytest.raises(ValueError):
        FunctionSpec.from_dict({"maxReplicas": 3})


def test_spec_rejects_negative_max_replicas():
    with pytest.raises(ValueError):
        FunctionSpec.from_dict(
            {"maxReplicas": -2, "metrics": {"type": "Function", "name": "f", "target": 1}}
        )


def test_init_sets_status_and_labels():
    func = _function()
    func.init("hello-svc", "code.zip")
    assert isinstance(func.metadata.uid, uuid.UUID)
    assert func.metadata.labels == Labels({"function": "hello"})
    assert func.status == FunctionStatus(
        service_ref="hello-svc",
        filename="code.zip",
        host="hello.func.minik8s.com",
        image=None,
    )


def test_init_gives_fresh_uid_each_time():
    first = _function()
    second = _function()
    first.init("s", "f")
    second.init("s", "f")
    assert first.metadata.uid != second.metadata.uid


def test_status_wire_form_round_trip():
    status = FunctionStatus("svc", "code.zip", "hello.func.minik8s.com", "img:1")
    data = status.to_dict()
    assert data["serviceRef"] == "svc"
    assert FunctionStatus.from_dict(data) == status


def test_status_requires_host():
    with pytest.raises(ValueError):
        FunctionStatus.from_dict({"serviceRef": "svc", "filename": "f"})


def test_function_round_trip():
    func = _function()
    func.init("hello-svc", "code.zip")
    assert Function.from_dict(func.to_dict()) == func


def test_function_without_status_round_trip():
    func = _function()
    parsed = Function.from_dict(func.to_dict())
    assert parsed.status is None
    assert parsed == func


def test_function_paths():
    func = _function()
    assert func.kind_plural() == "Functions"
    assert func.uri() == "/api/v1/functions/hello"