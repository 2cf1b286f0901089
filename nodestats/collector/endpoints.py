"""URL builders for the kubelet metrics endpoints and artifact naming.

DirectEndpoints address the kubelet on the node's internal IP; they are used
with a transport that skips TLS verification because kubelets commonly serve
self-signed certificates. ProxyEndpoints route through the API server's node
proxy subresource and use the verified cluster transport.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from nodestats.models.endpoints import EndpointKind


class NodeEndpoints(Protocol):
    def stats_summary(self) -> str: ...

    def stats_container(self) -> str: ...

    def cadvisor(self) -> str: ...


def url_for(endpoints: NodeEndpoints, kind: EndpointKind) -> str:
    """Return the URL of *kind* from an endpoint builder."""
    if kind is EndpointKind.STATS_SUMMARY:
        return endpoints.stats_summary()
    if kind is EndpointKind.CONTAINER:
        return endpoints.stats_container()
    return endpoints.cadvisor()


@dataclass(frozen=True)
class DirectEndpoints:
    ip: str
    port: int

    @property
    def _base(self) -> str:
        host = f"[{self.ip}]" if ":" in self.ip else self.ip
        return f"https://{host}:{self.port}"

    def stats_summary(self) -> str:
        return f"{self._base}/stats/summary"

    def stats_container(self) -> str:
        return f"{self._base}/stats/container/"

    def cadvisor(self) -> str:
        return f"{self._base}/metrics/cadvisor"


@dataclass(frozen=True)
class ProxyEndpoints:
    cluster_host_url: str
    node_name: str

    @property
    def _base(self) -> str:
        return f"{self.cluster_host_url.rstrip('/')}/api/v1/nodes/{self.node_name}/proxy"

    def stats_summary(self) -> str:
        return f"{self._base}/stats/summary"

    def stats_container(self) -> str:
        return f"{self._base}/stats/container/"

    def cadvisor(self) -> str:
        # Prometheus text format
        return f"{self._base}/metrics/cadvisor"


@dataclass(frozen=True)
class SourceName:
    """Artifact names for one node: ``{prefix}-{kind}-{node}``."""

    prefix: str
    node_name: str

    def summary(self) -> str:
        return f"{self.prefix}-summary-{self.node_name}"

    def container(self) -> str:
        return f"{self.prefix}-container-{self.node_name}"

    def cadvisor_metrics(self) -> str:
        return f"{self.prefix}-cadvisor_metrics-{self.node_name}"

    def for_kind(self, kind: EndpointKind) -> str:
        if kind is EndpointKind.STATS_SUMMARY:
            return self.summary()
        if kind is EndpointKind.CONTAINER:
            return self.container()
        return self.cadvisor_metrics()
