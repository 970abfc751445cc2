import pytest

from rkube.objects.base import Labels, Metadata, ObjectReference
from rkube.objects.function import Function, FunctionSpec
from rkube.objects.hpa import FunctionMetricSource
from rkube.objects.pod import ImagePullPolicy
from rkube.objects.replica_set import ReplicaSet, ReplicaSetSpec, ReplicaSetStatus


def make_function(name="hello", image="hello:v1"):
    func = Function(
        metadata=Metadata(name=name),
        spec=FunctionSpec(metrics=FunctionMetricSource(name=name, target=5)),
    )
    func.init("svc-" + name, "code.zip")
    func.status.image = image
    return func


def sample_dict():
    return {
        "metadata": {"name": "web", "labels": {"app": "web"}},
        "spec": {
            "selector": {"app": "web"},
            "template": {
                "metadata": {"name": "web", "labels": {"app": "web"}},
                "spec": {"containers": [{"name": "nginx", "image": "nginx:latest"}]},
            },
            "replicas": 3,
        },
        "status": {"replicas": 2, "readyReplicas": 1},
    }


def test_from_function_builds_empty_replica_set():
    func = make_function()
    rs = ReplicaSet.from_function(func)
    assert rs.metadata.name == func.metadata.name
    assert rs.metadata.owner_references == [ObjectReference("function", func.metadata.name)]
    assert rs.spec.replicas == 0
    assert rs.spec.selector == func.metadata.labels
    assert rs.status is None
    container = rs.spec.template.spec.containers[0]
    assert container.image == func.status.image
    assert container.image_pull_policy is ImagePullPolicy.IF_NOT_PRESENT
    assert rs.uri() == "/api/v1/replicasets/" + func.metadata.name


def test_from_function_without_image_raises():
    func = make_function(image=None)
    with pytest.raises(ValueError):
        ReplicaSet.from_function(func)


def test_round_trip():
    rs = ReplicaSet.from_dict(sample_dict())
    assert rs.spec.replicas == 3
    assert rs.status == ReplicaSetStatus(replicas=2, ready_replicas=1)
    assert ReplicaSet.from_dict(rs.to_dict()) == rs


def test_replicas_default_to_one():
    data = sample_dict()["spec"]
    del data["replicas"]
    assert ReplicaSetSpec.from_dict(data).replicas == 1


def test_status_requires_fields():
    with pytest.raises(ValueError):
        ReplicaSetStatus.from_dict({"replicas": 1})


def test_missing_selector_raises():
    data = sample_dict()
    del data["spec"]["selector"]
    with pytest.raises(ValueError):
        ReplicaSet.from_dict(data)


def test_str_with_status():
    text = str(ReplicaSet.from_dict(sample_dict()))
    lines = text.splitlines()
    assert len(lines) == 4
    assert lines[0].startswith("Name:") and lines[0].endswith(" web")
    assert lines[1].endswith(" app=web")
    assert "1 ready / 2 current / 3 desired" in lines[3]
    assert text.endswith("\n")


def test_str_without_status_stops_after_labels():
    rs = ReplicaSet.from_dict(sample_dict())
    rs.status = None
    lines = str(rs).splitlines()
    assert len(lines) == 3
    assert lines[2].startswith("Labels:")
    assert rs.metadata.labels == Labels({"app": "web"})