from datetime import datetime

import pytest

from rkube.objects.metrics import (
    ContainerMetrics,
    FunctionMetric,
    PodMetric,
    PodMetrics,
    Resource,
)

STAMP = datetime(2022, 5, 1, 12, 0, 0)


def test_resource_display():
    assert str(Resource.CPU) == "CPU"
    assert str(Resource.MEMORY) == "Memory"
    assert Resource("Memory") is Resource.MEMORY


def test_container_metrics_round_trip():
    metrics = ContainerMetrics("c", {Resource.CPU: 5, Resource.MEMORY: 7})
    assert ContainerMetrics.from_dict(metrics.to_dict()) == metrics


def test_unknown_resource_rejected():
    with pytest.raises(ValueError):
        ContainerMetrics.from_dict({"name": "c", "usage": {"GPU": 1}})


def test_pod_metrics_round_trip():
    metrics = PodMetrics("p", STAMP, 15, [ContainerMetrics("c", {Resource.CPU: 3})])
    assert PodMetrics.from_dict(metrics.to_dict()) == metrics


def test_timestamp_wire_format():
    assert PodMetric(STAMP, 15, 1).to_dict()["timestamp"] == "2022-05-01T12:00:00"


def test_nanosecond_timestamp_parsed():
    metric = PodMetric.from_dict(
        {"timestamp": "2022-05-01T12:00:00.123456789", "window": 15, "value": 2}
    )
    assert metric.timestamp == STAMP.replace(microsecond=123456)


def test_function_metric_round_trip():
    metric = FunctionMetric("f", STAMP, 42)
    assert FunctionMetric.from_dict(metric.to_dict()) == metric


def test_bad_timestamp_rejected():
    with pytest.raises(ValueError):
        FunctionMetric.from_dict({"name": "f", "timestamp": "yesterday", "value": 1})