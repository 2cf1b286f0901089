"""Endpoint kinds, availability masks and connection modes."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import StrEnum


class EndpointKind(StrEnum):
    """Kubelet metrics surfaces the agent knows how to fetch."""

    STATS_SUMMARY = "stats_summary"
    CONTAINER = "container"
    CADVISOR = "cadvisor"


# Order in which a node's endpoints are fetched within one pass.
FETCH_ORDER: tuple[EndpointKind, ...] = (
    EndpointKind.STATS_SUMMARY,
    EndpointKind.CADVISOR,
    EndpointKind.CONTAINER,
)


class ConnectionMode(StrEnum):
    """Cluster-wide retrieval method, decided once per session."""

    DIRECT = "direct"
    PROXY = "proxy"
    UNREACHABLE = "unreachable"


class EndpointMask:
    """Set of endpoint kinds currently known to be reachable.

    Membership is the only state: marking an endpoint unavailable removes it.
    A frozen mask rejects further writes.
    """

    __slots__ = ("_available", "_frozen")

    def __init__(self, available: Iterable[EndpointKind] = (), *, frozen: bool = False) -> None:
        self._available: set[EndpointKind] = set(available)
        self._frozen = frozen

    def set_available(self, kind: EndpointKind, available: bool) -> None:
        if self._frozen:
            raise TypeError("endpoint mask is frozen")
        if available:
            self._available.add(kind)
        else:
            self._available.discard(kind)

    def available(self, kind: EndpointKind) -> bool:
        return kind in self._available

    def freeze(self) -> EndpointMask:
        """Return a read-only copy of this mask."""
        return EndpointMask(self._available, frozen=True)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def kinds(self) -> list[EndpointKind]:
        """Available kinds in fetch order."""
        return [kind for kind in FETCH_ORDER if kind in self._available]

    def __contains__(self, kind: object) -> bool:
        return kind in self._available

    def __iter__(self) -> Iterator[EndpointKind]:
        return iter(self.kinds())

    def __len__(self) -> int:
        return len(self._available)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EndpointMask):
            return NotImplemented
        return self._available == other._available

    def __hash__(self) -> int:
        return hash(frozenset(self._available))

    def __repr__(self) -> str:
        kinds = ", ".join(kind.value for kind in self.kinds())
        return f"EndpointMask({{{kinds}}}{', frozen' if self._frozen else ''})"
