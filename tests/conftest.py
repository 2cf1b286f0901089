"""Shared fixtures for nodestats tests.

Builds kubernetes-asyncio node objects and httpx-backed RawClients driven by
an in-memory route table, so collection logic runs end to end without a
cluster or network.
"""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from kubernetes_asyncio.client import (  # type: ignore[import-untyped]
    V1DaemonEndpoint,
    V1Node,
    V1NodeAddress,
    V1NodeCondition,
    V1NodeDaemonEndpoints,
    V1NodeList,
    V1NodeSpec,
    V1NodeStatus,
    V1ObjectMeta,
)

from nodestats.collector.node_directory import Backoff, NodeDirectory
from nodestats.collector.transport import RawClient
from nodestats.models.config import NodeStatsConfig
from nodestats.models.nodes import NodeInfo

CLUSTER_URL = "https://api.test.cluster"

# ---------------------------------------------------------------------------
# Node factories
# ---------------------------------------------------------------------------


def make_node(
    name: str = "node-a",
    ready: bool | None = True,
    internal_ip: str | None = "10.0.0.1",
    port: int = 10250,
    labels: dict[str, str] | None = None,
    provider_id: str | None = "aws:///us-east-1a/i-0123456789",
) -> V1Node:
    """Create a V1Node.  ``ready=None`` omits the Ready condition entirely."""
    conditions = [
        V1NodeCondition(type="MemoryPressure", status="False"),
    ]
    if ready is not None:
        conditions.append(V1NodeCondition(type="Ready", status="True" if ready else "False"))

    addresses = [V1NodeAddress(type="Hostname", address=f"{name}.internal")]
    if internal_ip is not None:
        addresses.append(V1NodeAddress(type="InternalIP", address=internal_ip))

    return V1Node(
        metadata=V1ObjectMeta(name=name, labels=labels or {}),
        spec=V1NodeSpec(provider_id=provider_id),
        status=V1NodeStatus(
            conditions=conditions,
            addresses=addresses,
            daemon_endpoints=V1NodeDaemonEndpoints(kubelet_endpoint=V1DaemonEndpoint(port=port)),
        ),
    )


def make_fargate_node(name: str = "fargate-ip-10-0-9-9", **kwargs) -> V1Node:
    return make_node(name=name, labels={"eks.amazonaws.com/compute-type": "fargate"}, **kwargs)


def make_node_info(**kwargs) -> NodeInfo:
    return NodeInfo.from_k8s(make_node(**kwargs))


def make_core_api(*nodes: V1Node) -> MagicMock:
    core_api = MagicMock()
    core_api.list_node = AsyncMock(return_value=V1NodeList(items=list(nodes)))
    return core_api


_NO_DELAY = Backoff(steps=4, duration=0.0, factor=1.0, jitter=0.0)


def make_directory(*nodes: V1Node) -> NodeDirectory:
    return NodeDirectory(make_core_api(*nodes), backoff=_NO_DELAY)


# ---------------------------------------------------------------------------
# HTTP fakes
# ---------------------------------------------------------------------------


class RouteTable:
    """Maps ``(method, url)`` to a status code or an exception factory.

    Unknown routes answer 404.  Every request is recorded in ``calls`` and
    its read timeout in ``read_timeouts``.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], int | Callable[[httpx.Request], Exception]] = {}
        self.calls: list[tuple[str, str]] = []
        self.bodies: dict[tuple[str, str], bytes] = {}
        self.read_timeouts: list[float | None] = []

    def ok(self, method: str, url: str, body: bytes = b"{}") -> None:
        self.routes[(method, url)] = 200
        self.bodies[(method, url)] = body

    def status(self, method: str, url: str, code: int) -> None:
        self.routes[(method, url)] = code

    def refuse(self, method: str, url: str) -> None:
        self.routes[(method, url)] = lambda request: httpx.ConnectError("connection refused", request=request)

    def handler(self, request: httpx.Request) -> httpx.Response:
        key = (request.method, str(request.url))
        self.calls.append(key)
        self.read_timeouts.append(request.extensions.get("timeout", {}).get("read"))
        route = self.routes.get(key, 404)
        if callable(route):
            raise route(request)
        return httpx.Response(route, content=self.bodies.get(key, b""))

    def urls(self, method: str | None = None) -> list[str]:
        return [url for m, url in self.calls if method is None or m == method]


def make_client(
    routes: RouteTable,
    bearer_token: str = "token-123",
    retry_limit: int = 0,
    timeout: float = 5.0,
) -> RawClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(routes.handler), timeout=timeout)
    return RawClient(http, bearer_token=bearer_token, retry_limit=retry_limit, retry_delay=0.0)


def route_all_ok(routes: RouteTable, endpoints) -> None:
    routes.ok("GET", endpoints.stats_summary(), b'{"node": {}}')
    routes.ok("GET", endpoints.cadvisor(), b"container_cpu_usage_seconds_total 1\n")
    routes.ok("POST", endpoints.stats_container(), b"{}")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> NodeStatsConfig:
    cfg = NodeStatsConfig(cluster_name="test-cluster")
    cfg.kubelet.cluster_host_url = CLUSTER_URL
    cfg.kubelet.bearer_token = "token-123"
    return cfg


@pytest.fixture
def routes() -> RouteTable:
    return RouteTable()
