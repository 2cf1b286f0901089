"""Read-only node snapshots built from Kubernetes API objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FARGATE_LABEL = "eks.amazonaws.com/compute-type"
FARGATE_VALUE = "fargate"

NODE_READY = "Ready"
INTERNAL_IP = "InternalIP"


@dataclass(frozen=True)
class NodeCondition:
    """A single entry of ``status.conditions``."""

    type: str
    status: str
    reason: str = ""
    message: str = ""


@dataclass(frozen=True)
class NodeAddress:
    """A single entry of ``status.addresses``."""

    type: str
    address: str


@dataclass(frozen=True)
class NodeInfo:
    """Snapshot of the node fields the collector needs.

    Snapshots are fetched fresh every listing call and never mutated; ``name``
    is the only identity carried across cycles.
    """

    name: str
    conditions: tuple[NodeCondition, ...] = ()
    addresses: tuple[NodeAddress, ...] = ()
    kubelet_port: int = 10250
    labels: tuple[tuple[str, str], ...] = ()
    provider_id: str = ""

    def label(self, key: str) -> str | None:
        """Return the value of label *key*, or None when unset."""
        for name, value in self.labels:
            if name == key:
                return value
        return None

    def condition(self, condition_type: str) -> NodeCondition | None:
        """Return the condition of the given type, or None when absent."""
        for cond in self.conditions:
            if cond.type == condition_type:
                return cond
        return None

    @property
    def ready(self) -> bool:
        cond = self.condition(NODE_READY)
        return cond is not None and cond.status == "True"

    @property
    def is_fargate(self) -> bool:
        return self.label(FARGATE_LABEL) == FARGATE_VALUE

    @classmethod
    def from_k8s(cls, node: Any) -> NodeInfo:
        """Build a NodeInfo from a kubernetes-asyncio ``V1Node``.

        Every nested field of a V1Node may be None, so each level is guarded.
        """
        metadata = node.metadata
        spec = node.spec
        status = node.status

        conditions: tuple[NodeCondition, ...] = ()
        addresses: tuple[NodeAddress, ...] = ()
        port = 0
        if status is not None:
            conditions = tuple(
                NodeCondition(
                    type=c.type,
                    status=c.status,
                    reason=c.reason or "",
                    message=c.message or "",
                )
                for c in status.conditions or []
            )
            addresses = tuple(NodeAddress(type=a.type, address=a.address) for a in status.addresses or [])
            endpoints = status.daemon_endpoints
            if endpoints is not None and endpoints.kubelet_endpoint is not None:
                port = endpoints.kubelet_endpoint.port or 0

        return cls(
            name=metadata.name if metadata is not None else "",
            conditions=conditions,
            addresses=addresses,
            kubelet_port=port,
            labels=tuple(sorted((metadata.labels or {}).items())) if metadata is not None else (),
            provider_id=(spec.provider_id or "") if spec is not None else "",
        )
