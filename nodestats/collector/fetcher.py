"""Per-cycle node metrics collection.

Every cycle lists the ready nodes and, for each one, fetches the endpoints
enabled in the session's mask. In DIRECT mode a failed direct fetch falls back
to the API server proxy for that node only; the session mode never changes.
Per-node errors are collected into a FailureReport instead of aborting the
cycle.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path

from nodestats.collector.endpoints import DirectEndpoints, NodeEndpoints, ProxyEndpoints, SourceName, url_for
from nodestats.collector.errors import (
    MissingProviderIDError,
    NodeFetchError,
    NodeListError,
    NodeStatsError,
)
from nodestats.collector.node_directory import NodeDirectory
from nodestats.collector.prober import is_fargate_node
from nodestats.collector.transport import RawClient
from nodestats.models.endpoints import ConnectionMode, EndpointKind, EndpointMask
from nodestats.models.nodes import NodeInfo
from nodestats.models.session import FailureReport, NodeSession
from nodestats.observability.logging import get_logger

_log = get_logger("collector.fetcher")

_METHODS = {
    EndpointKind.STATS_SUMMARY: "GET",
    EndpointKind.CADVISOR: "GET",
    EndpointKind.CONTAINER: "POST",
}


@dataclass(frozen=True)
class FetchContext:
    """Everything needed to fetch and store one node's metrics."""

    node_name: str
    prefix: str
    work_dir: Path
    cluster_host_url: str
    containers_request: bytes


def build_containers_request() -> bytes:
    """Request body for /stats/container: every subcontainer, one sample."""
    request = {"num_stats": 1, "subcontainers": True}
    return json.dumps(request, separators=(",", ":")).encode()


async def retrieve_node_data(
    ctx: FetchContext,
    client: RawClient,
    mask: EndpointMask,
    endpoints: NodeEndpoints,
) -> list[Path]:
    """Fetch every endpoint in *mask* for one node through one path.

    The first failing endpoint aborts the pass. Artifacts already written in
    the aborted pass are removed, so a pass leaves either all of its
    artifacts or none.

    Returns:
        Paths of the written artifacts, in fetch order.

    Raises:
        NodeFetchError: if the mask is empty.
        NodeStatsError: the first endpoint error.
        OSError: if an artifact cannot be written.
    """
    kinds = mask.kinds()
    if not kinds:
        raise NodeFetchError("no endpoints available for this connection path")

    source = SourceName(prefix=ctx.prefix, node_name=ctx.node_name)
    written: list[Path] = []
    try:
        for kind in kinds:
            _log.debug("fetching_endpoint", node=ctx.node_name, endpoint=kind.value)
            body = ctx.containers_request if kind is EndpointKind.CONTAINER else None
            path = await client.get_raw_endpoint(
                _METHODS[kind],
                source.for_kind(kind),
                ctx.work_dir,
                url_for(endpoints, kind),
                body,
            )
            written.append(path)
    except (NodeStatsError, OSError):
        for path in written:
            path.unlink(missing_ok=True)
        raise
    return written


async def direct_node_fetch(
    directory: NodeDirectory,
    session: NodeSession,
    node: NodeInfo,
    ctx: FetchContext,
) -> list[Path]:
    """Fetch node metrics straight from the kubelet."""
    try:
        ip, port = directory.address(node)
    except NodeStatsError as exc:
        raise NodeFetchError(f"problem getting node address: {exc}") from exc
    if session.node_client is None:
        raise NodeFetchError("no direct node client configured")
    return await retrieve_node_data(ctx, session.node_client, session.direct_mask, DirectEndpoints(ip, port))


async def proxy_node_fetch(session: NodeSession, ctx: FetchContext) -> list[Path]:
    """Fetch node metrics through the API server node proxy."""
    if session.cluster_client is None:
        raise NodeFetchError("no cluster client configured")
    endpoints = ProxyEndpoints(ctx.cluster_host_url, ctx.node_name)
    return await retrieve_node_data(ctx, session.cluster_client, session.proxy_mask, endpoints)


class _CycleResult:
    """Mutable accumulator behind the FailureReport of one cycle."""

    def __init__(self) -> None:
        self.failures: dict[str, Exception] = {}
        self.fallbacks: dict[str, Exception] = {}

    def report(self) -> FailureReport:
        return FailureReport(self.failures, self.fallbacks)


async def _fetch_node(
    node: NodeInfo,
    ctx: FetchContext,
    session: NodeSession,
    directory: NodeDirectory,
    result: _CycleResult,
) -> None:
    warning: NodeFetchError | None = None
    if not node.provider_id:
        warning = MissingProviderIDError()
        result.failures[node.name] = warning

    direct_error: NodeFetchError | None = None
    # Fargate nodes have no reachable kubelet even when the session is DIRECT.
    if session.mode is ConnectionMode.DIRECT and not is_fargate_node(node):
        try:
            await direct_node_fetch(directory, session, node, ctx)
            return
        except (NodeStatsError, OSError) as exc:
            direct_error = NodeFetchError(f"direct connect failed (will attempt proxy): {exc}")
            result.failures[node.name] = direct_error
            _log.warning("direct_fetch_failed", node=node.name, error=str(exc))

    try:
        await proxy_node_fetch(session, ctx)
    except (NodeStatsError, OSError) as exc:
        result.failures[node.name] = NodeFetchError(f"proxy connect failed: {exc}")
        return

    if direct_error is not None:
        # Recovered through the proxy: the node is no longer failed.
        result.fallbacks[node.name] = direct_error
        if warning is not None:
            result.failures[node.name] = warning
        else:
            result.failures.pop(node.name, None)


async def download_node_data(
    prefix: str,
    session: NodeSession,
    work_dir: Path,
    directory: NodeDirectory,
    cluster_host_url: str,
    max_concurrency: int = 1,
) -> FailureReport:
    """Collect metrics from every ready node for one cycle.

    Args:
        prefix:           Artifact name prefix.
        session:          Probing outcome; read-only here.
        work_dir:         Directory receiving the artifacts.
        directory:        Node listing and address resolution.
        cluster_host_url: API server base URL for proxy endpoints.
        max_concurrency:  Nodes fetched at once; 1 keeps the cycle sequential.

    Raises:
        NodeListError: if the ready nodes cannot be listed. No partial report
            is produced in that case.
    """
    try:
        nodes = await directory.list_ready()
    except Exception as exc:
        raise NodeListError(f"unable to get a list of nodes: {exc}") from exc

    containers_request = build_containers_request()
    result = _CycleResult()

    def _context(node: NodeInfo) -> FetchContext:
        return FetchContext(
            node_name=node.name,
            prefix=prefix,
            work_dir=Path(work_dir),
            cluster_host_url=cluster_host_url,
            containers_request=containers_request,
        )

    if max_concurrency <= 1:
        for node in nodes:
            await _fetch_node(node, _context(node), session, directory, result)
    else:
        semaphore = asyncio.Semaphore(max_concurrency)

        async def _bounded(node: NodeInfo) -> None:
            async with semaphore:
                await _fetch_node(node, _context(node), session, directory, result)

        await asyncio.gather(*(_bounded(node) for node in nodes))

    _log.debug(
        "node_data_downloaded",
        nodes=len(nodes),
        failed=len(result.failures),
        fallbacks=len(result.fallbacks),
    )
    return result.report()
