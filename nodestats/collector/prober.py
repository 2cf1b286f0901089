"""Session-start connectivity probing for kubelet metrics.

``ensure_node_source`` picks the cluster-wide retrieval method once per run:
direct kubelet connections when allowed and reachable, otherwise the API
server node proxy. The chosen mode and the per-mode endpoint masks are frozen
into a NodeSession that every collection cycle reads.
"""

from __future__ import annotations

from collections.abc import Sequence

from nodestats.collector.endpoints import DirectEndpoints, NodeEndpoints, ProxyEndpoints
from nodestats.collector.errors import (
    NodeSourceError,
    NodeSourceUnreachableError,
    NodeStatsError,
    ProbeError,
)
from nodestats.collector.node_directory import NodeDirectory
from nodestats.collector.transport import RawClient
from nodestats.models.config import NodeStatsConfig
from nodestats.models.endpoints import ConnectionMode, EndpointKind, EndpointMask
from nodestats.models.nodes import NodeInfo
from nodestats.models.session import NodeSession
from nodestats.observability.logging import get_logger

_log = get_logger("collector.prober")

FARGATE_DOCS_URL = "https://docs.aws.amazon.com/eks/latest/userguide/fargate.html"


def is_fargate_node(node: NodeInfo) -> bool:
    if node.is_fargate:
        _log.debug("fargate_node_found", node=node.name)
        return True
    return False


def allow_direct_connect(config: NodeStatsConfig, nodes: Sequence[NodeInfo]) -> bool:
    """Return whether kubelets may be contacted directly.

    A single Fargate node disables direct connection for the whole cluster,
    including its non-Fargate nodes.
    """
    if config.kubelet.force_kube_proxy:
        _log.info("direct_connect_disabled", reason="force_kube_proxy is set")
        return False
    for node in nodes:
        if is_fargate_node(node):
            _log.info(
                "direct_connect_disabled",
                reason="fargate node found in cluster",
                node=node.name,
                docs=FARGATE_DOCS_URL,
            )
            return False
    return True


async def probe_node_conn(
    client: RawClient,
    mask: EndpointMask,
    endpoints: NodeEndpoints,
    retrieve_stats_container: bool,
    timeout: float | None = None,
) -> bool:
    """Probe one candidate path and record endpoint availability in *mask*.

    The path is usable when /stats/summary answers and at least one of
    /metrics/cadvisor or /stats/container does. /stats/container is only
    probed when container stats collection is enabled.

    Raises:
        ProbeError: on a transport error; remaining endpoints are not probed.
    """
    summary_ok, _ = await client.test_connection(endpoints.stats_summary(), "GET", timeout)
    _log.info("endpoint_availability", endpoint="/stats/summary", available=summary_ok)
    mask.set_available(EndpointKind.STATS_SUMMARY, summary_ok)

    cadvisor_ok, _ = await client.test_connection(endpoints.cadvisor(), "GET", timeout)
    _log.info("endpoint_availability", endpoint="/metrics/cadvisor", available=cadvisor_ok)
    mask.set_available(EndpointKind.CADVISOR, cadvisor_ok)

    container_ok = False
    if retrieve_stats_container:
        container_ok, _ = await client.test_connection(endpoints.stats_container(), "POST", timeout)
        _log.info("endpoint_availability", endpoint="/stats/container", available=container_ok)
    mask.set_available(EndpointKind.CONTAINER, container_ok)

    return summary_ok and (cadvisor_ok or container_ok)


async def _probe(
    label: str,
    client: RawClient,
    mask: EndpointMask,
    endpoints: NodeEndpoints,
    retrieve_stats_container: bool,
    timeout: float,
) -> tuple[bool, ProbeError | None]:
    try:
        success = await probe_node_conn(client, mask, endpoints, retrieve_stats_container, timeout)
    except ProbeError as exc:
        _log.warning("node_probe_error", path=label, error=str(exc))
        return False, exc
    _log.info("node_probe_result", path=label, success=success, endpoints=[k.value for k in mask.kinds()])
    return success, None


async def ensure_node_source(
    config: NodeStatsConfig,
    directory: NodeDirectory,
    node_client: RawClient,
    cluster_client: RawClient,
) -> NodeSession:
    """Decide how node metrics will be retrieved for this run.

    Tries direct kubelet connections on the first ready node when allowed,
    then the API server proxy. When direct connectivity wins, the proxy path
    is probed as well so that per-node fallback has an endpoint mask.

    Raises:
        NodeSourceError: if nodes or the probe node's address cannot be listed.
        NodeSourceUnreachableError: if neither path works. The exception
            carries an UNREACHABLE session with node collection disabled.
    """
    try:
        nodes = await directory.list_ready()
    except Exception as exc:
        raise NodeSourceError(f"error retrieving nodes: {exc}") from exc

    first_node = nodes[0]

    try:
        ip, port = directory.address(first_node)
    except NodeStatsError as exc:
        raise NodeSourceError(f"error retrieving node addresses: {exc}") from exc

    retrieve_container = config.collection.retrieve_stats_container
    probe_timeout = config.kubelet.probe_timeout_seconds
    direct_mask = EndpointMask()
    proxy_mask = EndpointMask()
    proxy_endpoints = ProxyEndpoints(config.kubelet.cluster_host_url, first_node.name)

    if allow_direct_connect(config, nodes):
        direct_ok, _ = await _probe(
            "direct",
            node_client,
            direct_mask,
            DirectEndpoints(ip, port),
            retrieve_container,
            probe_timeout,
        )
        if direct_ok:
            await _probe("proxy", cluster_client, proxy_mask, proxy_endpoints, retrieve_container, probe_timeout)
            _log.info("node_source_selected", mode=ConnectionMode.DIRECT.value, node=first_node.name)
            return NodeSession(
                mode=ConnectionMode.DIRECT,
                direct_mask=direct_mask,
                proxy_mask=proxy_mask,
                node_client=node_client,
                cluster_client=cluster_client,
                probed_node=first_node.name,
            )

    proxy_ok, proxy_error = await _probe(
        "proxy",
        cluster_client,
        proxy_mask,
        proxy_endpoints,
        retrieve_container,
        probe_timeout,
    )
    if proxy_ok:
        _log.info("node_source_selected", mode=ConnectionMode.PROXY.value, node=first_node.name)
        return NodeSession(
            mode=ConnectionMode.PROXY,
            direct_mask=direct_mask,
            proxy_mask=proxy_mask,
            node_client=None,
            cluster_client=cluster_client,
            probed_node=first_node.name,
        )

    session = NodeSession(
        mode=ConnectionMode.UNREACHABLE,
        direct_mask=direct_mask,
        proxy_mask=proxy_mask,
        retrieve_node_summaries=False,
        probed_node=first_node.name,
    )
    raise NodeSourceUnreachableError(session, proxy_error)
