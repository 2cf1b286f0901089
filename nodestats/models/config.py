"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class KubeletConfig:
    """How the agent reaches the cluster API server and the kubelets."""

    cluster_host_url: str = "https://kubernetes.default.svc"
    bearer_token: str = ""
    bearer_token_path: str = "/var/run/secrets/kubernetes.io/serviceaccount/token"
    ca_file: str = ""
    force_kube_proxy: bool = False
    probe_timeout_seconds: float = 30.0
    fetch_timeout_seconds: float = 60.0


@dataclass
class CollectionConfig:
    """Per-cycle collection behaviour."""

    retrieve_node_summaries: bool = True
    retrieve_stats_container: bool = True
    collection_retry_limit: int = 1
    poll_interval_seconds: int = 180
    output_dir: str = "/tmp/nodestats"
    artifact_prefix: str = "stats"
    max_concurrent_fetches: int = 1


@dataclass
class APIConfig:
    """REST status API configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class NodeStatsConfig:
    """Top-level nodestats configuration."""

    cluster_name: str = ""
    kubelet: KubeletConfig = field(default_factory=KubeletConfig)
    collection: CollectionConfig = field(default_factory=CollectionConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
