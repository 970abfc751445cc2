"""GPU batch jobs submitted through Slurm."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from rkube.objects.base import KubeResource, Metadata
from rkube.objects.pod import PodTemplateSpec


def _required(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _uint(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"field `{key}` must be a non-negative integer")
    return value


def _str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


@dataclass
class SlurmConfig:
    """Resources requested from Slurm."""

    partition: str
    total_core_number: int
    ntasks_per_node: int
    cpus_per_task: int
    gres: str
    scripts: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "partition": self.partition,
            "totalCoreNumber": self.total_core_number,
            "ntasksPerNode": self.ntasks_per_node,
            "cpusPerTask": self.cpus_per_task,
            "gres": self.gres,
            "scripts": list(self.scripts) if self.scripts is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SlurmConfig:
        scripts = data.get("scripts") if isinstance(data, Mapping) else None
        return cls(
            partition=_str(_required(data, "partition"), "partition"),
            total_core_number=_uint(_required(data, "totalCoreNumber"), "totalCoreNumber"),
            ntasks_per_node=_uint(_required(data, "ntasksPerNode"), "ntasksPerNode"),
            cpus_per_task=_uint(_required(data, "cpusPerTask"), "cpusPerTask"),
            gres=_str(_required(data, "gres"), "gres"),
            scripts=[_str(s, "scripts") for s in scripts] if scripts is not None else None,
        )


@dataclass
class GpuConfig:
    """Slurm settings and the scripts that build the code."""

    slurm_config: SlurmConfig
    compile_scripts: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "slurmConfig": self.slurm_config.to_dict(),
            "compileScripts": self.compile_scripts,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GpuConfig:
        return cls(
            slurm_config=SlurmConfig.from_dict(_required(data, "slurmConfig")),
            compile_scripts=_str(_required(data, "compileScripts"), "compileScripts"),
        )


@dataclass
class GpuJobSpec:
    """Desired behaviour of a job."""

    gpu_config: GpuConfig
    completions: int = 1
    parallelism: int = 1
    back_off_limit: int = 6

    def to_dict(self) -> dict[str, Any]:
        return {
            "gpuConfig": self.gpu_config.to_dict(),
            "completions": self.completions,
            "parallelism": self.parallelism,
            "backOffLimit": self.back_off_limit,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GpuJobSpec:
        gpu_config = GpuConfig.from_dict(_required(data, "gpuConfig"))
        return cls(
            gpu_config=gpu_config,
            completions=_uint(data.get("completions", 1), "completions"),
            parallelism=_uint(data.get("parallelism", 1), "parallelism"),
            back_off_limit=_uint(data.get("backOffLimit", 6), "backOffLimit"),
        )


@dataclass
class GpuJobStatus:
    """Pod counts of a job, its code file and its pod template."""

    active: int = 0
    failed: int = 0
    succeeded: int = 0
    filename: str | None = None
    template: PodTemplateSpec | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "failed": self.failed,
            "succeeded": self.succeeded,
            "filename": self.filename,
            "template": self.template.to_dict() if self.template is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GpuJobStatus:
        filename = data.get("filename") if isinstance(data, Mapping) else None
        template = data.get("template") if isinstance(data, Mapping) else None
        return cls(
            active=_uint(_required(data, "active"), "active"),
            failed=_uint(_required(data, "failed"), "failed"),
            succeeded=_uint(_required(data, "succeeded"), "succeeded"),
            filename=_str(filename, "filename") if filename is not None else None,
            template=PodTemplateSpec.from_dict(template) if template is not None else None,
        )


@dataclass
class GpuJob(KubeResource):
    """A GPU job run to completion."""

    kind: ClassVar[str] = "GpuJob"

    metadata: Metadata
    spec: GpuJobSpec
    status: GpuJobStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict() if self.status is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GpuJob:
        status = data.get("status") if isinstance(data, Mapping) else None
        return cls(
            metadata=Metadata.from_dict(_required(data, "metadata")),
            spec=GpuJobSpec.from_dict(_required(data, "spec")),
            status=GpuJobStatus.from_dict(status) if status is not None else None,
        )