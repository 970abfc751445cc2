from datetime import datetime

import pytest

from rkube.objects.base import Labels, Metadata, ObjectReference
from rkube.objects.function import Function, FunctionSpec
from rkube.objects.hpa import (
    FunctionMetricSource,
    HorizontalPodAutoscaler,
    HorizontalPodAutoscalerBehavior,
    HorizontalPodAutoscalerSpec,
    HorizontalPodAutoscalerStatus,
    HPAScalingPolicy,
    HPAScalingRules,
    MetricTarget,
    PolicySelection,
    ResourceMetricSource,
    ScalingPolicyType,
    parse_metric_source,
)
from rkube.objects.metrics import Resource


def _hpa() -> HorizontalPodAutoscaler:
    return HorizontalPodAutoscaler(
        metadata=Metadata(name="web"),
        spec=HorizontalPodAutoscalerSpec(
            max_replicas=5,
            scale_target_ref=ObjectReference("ReplicaSet", "web"),
            metrics=FunctionMetricSource(name="web", target=3),
        ),
        status=HorizontalPodAutoscalerStatus(2, 1, datetime(2022, 5, 1, 12, 0, 0)),
    )


def test_longest_period_of_default_scale_up():
    assert HorizontalPodAutoscalerBehavior().scale_up.longest_period() == 60


def test_longest_period_without_policies_is_zero():
    assert HPAScalingRules().longest_period() == 0


def test_longest_period_takes_maximum():
    rules = HPAScalingRules(
        policies=[
            HPAScalingPolicy(ScalingPolicyType.PODS, 1, 15),
            HPAScalingPolicy(ScalingPolicyType.PERCENT, 50, 45),
        ]
    )
    assert rules.longest_period() == 45


def test_default_behavior_values():
    behavior = HorizontalPodAutoscalerBehavior()
    assert behavior.scale_down.stabilization_window_seconds == 60
    assert behavior.scale_up.stabilization_window_seconds == 0
    assert [p.type_ for p in behavior.scale_up.policies] == [
        ScalingPolicyType.PODS,
        ScalingPolicyType.PERCENT,
    ]


def test_behavior_round_trip():
    behavior = HorizontalPodAutoscalerBehavior()
    assert HorizontalPodAutoscalerBehavior.from_dict(behavior.to_dict()) == behavior


def test_behavior_missing_direction_uses_default():
    custom = HPAScalingRules(
        policies=[HPAScalingPolicy(ScalingPolicyType.PODS, 1, 30)],
        select_policy=PolicySelection.MIN,
        stabilization_window_seconds=10,
    )
    parsed = HorizontalPodAutoscalerBehavior.from_dict({"scaleUp": custom.to_dict()})
    assert parsed.scale_up == custom
    assert parsed.scale_down == HorizontalPodAutoscalerBehavior().scale_down


def test_select_policy_defaults_to_max():
    rules = HPAScalingRules.from_dict({"policies": [], "stabilizationWindowSeconds": 5})
    assert rules.select_policy is PolicySelection.MAX


def test_policy_wire_form():
    policy = HPAScalingPolicy(ScalingPolicyType.PERCENT, 100, 60)
    assert policy.to_dict() == {"type": "Percent", "value": 100, "periodSeconds": 60}


def test_negative_policy_value_rejected():
    with pytest.raises(ValueError):
        HPAScalingPolicy.from_dict({"type": "Pods", "value": -1, "periodSeconds": 60})


def test_metric_target_wire_form():
    target = MetricTarget.from_dict({"averageUtilization": 80})
    assert target.kind == MetricTarget.AVERAGE_UTILIZATION
    assert target.value == 80
    assert target.to_dict() == {"averageUtilization": 80}


def test_metric_target_unknown_kind_rejected():
    with pytest.raises(ValueError):
        MetricTarget.from_dict({"percent": 3})


def test_default_resource_metric_source():
    source = ResourceMetricSource()
    assert source.to_dict() == {
        "type": "Resource",
        "name": "CPU",
        "target": {"averageUtilization": 80},
    }


@pytest.mark.parametrize(
    "source",
    [
        ResourceMetricSource(Resource.MEMORY, MetricTarget(MetricTarget.AVERAGE_VALUE, 512)),
        FunctionMetricSource(name="hello", target=7),
    ],
)
def test_metric_source_round_trip(source):
    assert parse_metric_source(source.to_dict()) == source


def test_unknown_metric_source_rejected():
    with pytest.raises(ValueError):
        parse_metric_source({"type": "External", "name": "x"})


def test_spec_defaults_on_parse():
    spec = HorizontalPodAutoscalerSpec.from_dict(
        {"maxReplicas": 5, "scaleTargetRef": {"kind": "ReplicaSet", "name": "web"}}
    )
    assert spec.min_replicas == 1
    assert spec.behavior == HorizontalPodAutoscalerBehavior()
    assert spec.metrics == ResourceMetricSource()


def test_spec_requires_max_replicas():
    with pytest.raises(ValueError):
        HorizontalPodAutoscalerSpec.from_dict({"scaleTargetRef": {"kind": "a", "name": "b"}})


def test_status_without_scale_time():
    status = HorizontalPodAutoscalerStatus.from_dict({"desiredReplicas": 3, "currentReplicas": 2})
    assert status.last_scale_time is None
    assert HorizontalPodAutoscalerStatus.from_dict(status.to_dict()) == status


def test_hpa_round_trip():
    hpa = _hpa()
    assert HorizontalPodAutoscaler.from_dict(hpa.to_dict()) == hpa


def test_hpa_uri():
    assert _hpa().uri() == "/api/v1/horizontalpodautoscalers/web"


def test_from_function():
    func = Function(
        metadata=Metadata(name="hello", labels=Labels({"function": "hello"})),
        spec=FunctionSpec(metrics=FunctionMetricSource(name="hello", target=3), max_replicas=7),
    )
    hpa = HorizontalPodAutoscaler.from_function(func)
    assert hpa.metadata.name == "hello"
    assert hpa.metadata.labels == func.metadata.labels
    assert hpa.metadata.owner_references == [ObjectReference("function", "hello")]
    assert hpa.spec.scale_target_ref == ObjectReference("ReplicaSet", "hello")
    assert hpa.spec.min_replicas == 0
    assert hpa.spec.max_replicas == func.spec.max_replicas
    assert hpa.spec.metrics == func.spec.metrics
    assert hpa.spec.behavior == func.spec.behavior
    assert hpa.status is None
    hpa.spec.behavior.scale_up.policies.clear()
    assert func.spec.behavior.scale_up.policies