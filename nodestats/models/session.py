"""Session-wide retrieval state and per-cycle results."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from nodestats.models.endpoints import ConnectionMode, EndpointMask

if TYPE_CHECKING:
    from nodestats.collector.transport import RawClient


@dataclass(frozen=True)
class NodeSession:
    """Outcome of connectivity probing, fixed for the lifetime of the agent run.

    ``node_client`` talks to kubelets directly (TLS verification disabled);
    ``cluster_client`` talks to the API server proxy.
    """

    mode: ConnectionMode
    direct_mask: EndpointMask
    proxy_mask: EndpointMask
    node_client: RawClient | None = None
    cluster_client: RawClient | None = None
    retrieve_node_summaries: bool = True
    probed_node: str = ""
    probed_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def __post_init__(self) -> None:
        # Masks stored on a session are always read-only.
        if not self.direct_mask.frozen:
            object.__setattr__(self, "direct_mask", self.direct_mask.freeze())
        if not self.proxy_mask.frozen:
            object.__setattr__(self, "proxy_mask", self.proxy_mask.freeze())


class FailureReport(Mapping[str, Exception]):
    """Node name -> terminal error for one collection cycle.

    A node absent from the mapping was collected completely. ``fallbacks``
    records nodes whose direct fetch failed but whose proxy fetch succeeded;
    those nodes are not failures.
    """

    def __init__(
        self,
        failures: Mapping[str, Exception] | None = None,
        fallbacks: Mapping[str, Exception] | None = None,
    ) -> None:
        self._failures = dict(failures or {})
        self._fallbacks = dict(fallbacks or {})

    @property
    def fallbacks(self) -> Mapping[str, Exception]:
        return dict(self._fallbacks)

    def __getitem__(self, node_name: str) -> Exception:
        return self._failures[node_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._failures)

    def __len__(self) -> int:
        return len(self._failures)

    def as_strings(self) -> dict[str, str]:
        return {name: str(err) for name, err in self._failures.items()}

    def __repr__(self) -> str:
        return f"FailureReport(failures={self.as_strings()!r}, fallbacks={len(self._fallbacks)})"
