"""Configuration loading from environment variables."""

from __future__ import annotations

import os
from urllib.parse import urlparse

from nodestats.models.config import (
    APIConfig,
    CollectionConfig,
    KubeletConfig,
    LogConfig,
    NodeStatsConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"NODESTATS_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    return val


def _validate_host_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid cluster host URL: {value}")
    return value.rstrip("/")


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    valid = {"json", "console"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log format: {value}. Must be one of {valid}")
    return value.lower()


def _default_host_url() -> str:
    # Inside a pod the API server location is injected by the kubelet.
    host = os.environ.get("KUBERNETES_SERVICE_HOST", "")
    port = os.environ.get("KUBERNETES_SERVICE_PORT", "443")
    if host:
        if ":" in host:
            host = f"[{host}]"
        return f"https://{host}:{port}"
    return "https://kubernetes.default.svc"


def load_bearer_token(config: KubeletConfig) -> str:
    """Return the configured bearer token, reading the token file if unset.

    A missing token file yields an empty token; requests then go out
    unauthenticated and probing reports the endpoints unavailable.
    """
    if config.bearer_token:
        return config.bearer_token
    if config.bearer_token_path and os.path.isfile(config.bearer_token_path):
        with open(config.bearer_token_path, encoding="utf-8") as fh:
            return fh.read().strip()
    return ""


def load_config() -> NodeStatsConfig:
    """Load configuration from NODESTATS_* environment variables."""
    return NodeStatsConfig(
        cluster_name=_env("CLUSTER_NAME", ""),
        kubelet=KubeletConfig(
            cluster_host_url=_validate_host_url(_env("CLUSTER_HOST_URL", _default_host_url())),
            bearer_token=_env("BEARER_TOKEN", ""),
            bearer_token_path=_env("BEARER_TOKEN_PATH", "/var/run/secrets/kubernetes.io/serviceaccount/token"),
            ca_file=_env("CA_FILE", ""),
            force_kube_proxy=_env_bool("FORCE_KUBE_PROXY", False),
            probe_timeout_seconds=_env_float("PROBE_TIMEOUT", 30.0, min_val=1.0),
            fetch_timeout_seconds=_env_float("FETCH_TIMEOUT", 60.0, min_val=1.0),
        ),
        collection=CollectionConfig(
            retrieve_node_summaries=_env_bool("RETRIEVE_NODE_SUMMARIES", True),
            retrieve_stats_container=_env_bool("RETRIEVE_STATS_CONTAINER", True),
            collection_retry_limit=_env_int("COLLECTION_RETRY_LIMIT", 1, min_val=0, max_val=10),
            poll_interval_seconds=_env_int("POLL_INTERVAL", 180, min_val=5),
            output_dir=_env("OUTPUT_DIR", "/tmp/nodestats"),
            artifact_prefix=_env("ARTIFACT_PREFIX", "stats"),
            max_concurrent_fetches=_env_int("MAX_CONCURRENT_FETCHES", 1, min_val=1, max_val=64),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", True),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
