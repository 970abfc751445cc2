"""Cluster and kubelet configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ClusterConfig:
    """Where the API server can be reached."""

    api_server_url: str = "http://localhost:8080"
    api_server_watch_url: str = "ws://localhost:8080"

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiServerUrl": self.api_server_url,
            "apiServerWatchUrl": self.api_server_watch_url,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ClusterConfig:
        default = cls()
        return cls(
            api_server_url=data.get("apiServerUrl", default.api_server_url),
            api_server_watch_url=data.get("apiServerWatchUrl", default.api_server_watch_url),
        )


@dataclass
class KubeletConfig:
    """Kubelet settings; frequencies are in seconds."""

    static_pod_path: str = "/etc/rminik8s/manifests"
    node_status_update_frequency: int = 10
    node_status_report_frequency: int = 30
    pod_status_update_frequency: int = 10
    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    port: int = 10250

    def to_dict(self) -> dict[str, Any]:
        return {
            "staticPodPath": self.static_pod_path,
            "nodeStatusUpdateFrequency": self.node_status_update_frequency,
            "nodeStatusReportFrequency": self.node_status_report_frequency,
            "podStatusUpdateFrequency": self.pod_status_update_frequency,
            "cluster": self.cluster.to_dict(),
            "port": self.port,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KubeletConfig:
        default = cls()
        cluster = data.get("cluster")
        return cls(
            static_pod_path=data.get("staticPodPath", default.static_pod_path),
            node_status_update_frequency=int(
                data.get("nodeStatusUpdateFrequency", default.node_status_update_frequency)
            ),
            node_status_report_frequency=int(
                data.get("nodeStatusReportFrequency", default.node_status_report_frequency)
            ),
            pod_status_update_frequency=int(
                data.get("podStatusUpdateFrequency", default.pod_status_update_frequency)
            ),
            cluster=ClusterConfig.from_dict(cluster) if cluster is not None else default.cluster,
            port=int(data.get("port", default.port)),
        )