"""Node directory: ready-node listing and kubelet address resolution."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from nodestats.collector.errors import AddressNotFoundError, NoReadyNodesError
from nodestats.models.nodes import INTERNAL_IP, NODE_READY, NodeInfo
from nodestats.observability.logging import get_logger

_log = get_logger("collector.node_directory")

_T = TypeVar("_T")

_HTTP_CONFLICT = 409


@dataclass(frozen=True)
class Backoff:
    """Exponential backoff parameters.

    ``steps`` is the total number of attempts; ``duration`` the first delay in
    seconds, multiplied by ``factor`` after every attempt and spread by up to
    ``jitter`` of itself.
    """

    steps: int = 4
    duration: float = 0.01
    factor: float = 5.0
    jitter: float = 0.1

    def delays(self) -> list[float]:
        delays = []
        duration = self.duration
        for _ in range(max(self.steps - 1, 0)):
            delays.append(duration + random.uniform(0, duration * self.jitter))
            duration *= self.factor
        return delays


DEFAULT_BACKOFF = Backoff()


def is_conflict(exc: BaseException) -> bool:
    return isinstance(exc, ApiException) and exc.status == _HTTP_CONFLICT


async def retry_on_conflict(fn: Callable[[], Awaitable[_T]], backoff: Backoff = DEFAULT_BACKOFF) -> _T:
    """Await *fn*, retrying only on API conflict errors.

    The last conflict error is re-raised once the backoff is exhausted.
    Every other error propagates on the first occurrence.
    """
    for delay in backoff.delays():
        try:
            return await fn()
        except ApiException as exc:
            if not is_conflict(exc):
                raise
            _log.debug("node_list_conflict_retry", delay_seconds=round(delay, 4))
            await asyncio.sleep(delay)
    return await fn()


class NodeDirectory:
    """Lists ready nodes through the cluster API and resolves node addresses.

    Args:
        core_api: A kubernetes-asyncio ``CoreV1Api`` (or anything exposing an
                  async ``list_node()`` returning a ``V1NodeList``).
        backoff:  Retry policy for conflict errors while listing.
    """

    def __init__(self, core_api: Any, backoff: Backoff = DEFAULT_BACKOFF) -> None:
        self._core_api = core_api
        self._backoff = backoff

    async def list_nodes(self) -> list[NodeInfo]:
        """Return every node in the cluster, ready or not."""
        node_list = await retry_on_conflict(self._core_api.list_node, self._backoff)
        return [NodeInfo.from_k8s(item) for item in node_list.items or []]

    async def list_ready(self) -> list[NodeInfo]:
        """Return the nodes whose Ready condition is true, in listing order.

        Raises:
            NoReadyNodesError: if no listed node is ready.
        """
        all_nodes = await self.list_nodes()

        ready_nodes = []
        for node in all_nodes:
            if node.ready:
                ready_nodes.append(node)
            else:
                _log.debug("node_not_ready", node=node.name, condition=node.condition(NODE_READY))

        if not ready_nodes:
            raise NoReadyNodesError()

        if len(ready_nodes) != len(all_nodes):
            _log.info(
                "some_nodes_not_ready",
                ready=len(ready_nodes),
                total=len(all_nodes),
            )

        return ready_nodes

    @staticmethod
    def address(node: NodeInfo) -> tuple[str, int]:
        """Return the node's internal IP and kubelet port.

        External and hostname addresses are never used.

        Raises:
            AddressNotFoundError: if the node reports no InternalIP address.
        """
        for addr in node.addresses:
            if addr.type == INTERNAL_IP:
                return addr.address, node.kubelet_port
        raise AddressNotFoundError(node.name)
