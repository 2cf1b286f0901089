"""Exception hierarchy for node metrics collection.

Session-fatal errors (NoReadyNodesError during probing, NodeSourceUnreachableError)
disable collection for the run. Per-node errors (NodeFetchError,
MissingProviderIDError) only ever appear inside a FailureReport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nodestats.models.session import FailureReport, NodeSession


class NodeStatsError(Exception):
    """Base class for every error raised by the collector."""


class NoReadyNodesError(NodeStatsError):
    """The cluster reported no node with a true Ready condition."""

    def __init__(self) -> None:
        super().__init__("there were 0 nodes in a ready state")


class AddressNotFoundError(NodeStatsError):
    """The node has no InternalIP address."""

    def __init__(self, node_name: str) -> None:
        super().__init__(f"could not find internal IP address for node {node_name}")
        self.node_name = node_name


class NodeListError(NodeStatsError):
    """Listing nodes failed at the start of a collection cycle."""


class NodeSourceError(NodeStatsError):
    """Connectivity probing could not start."""


class NodeSourceUnreachableError(NodeSourceError):
    """Neither direct nor proxy connectivity works for node metrics.

    Carries the UNREACHABLE session so callers can keep running with node
    collection disabled.
    """

    def __init__(self, session: NodeSession, cause: Exception | None = None) -> None:
        message = "unable to retrieve node metrics. Please verify RBAC roles"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.session = session
        self.cause = cause


class ProbeError(NodeStatsError):
    """A connection or protocol error while probing an endpoint."""

    def __init__(self, url: str, cause: Exception) -> None:
        super().__init__(f"probe of {url} failed: {cause}")
        self.url = url
        self.cause = cause


class FetchError(NodeStatsError):
    """An endpoint fetch failed after exhausting the retry limit."""

    def __init__(self, url: str, detail: str, status_code: int | None = None) -> None:
        super().__init__(f"fetch of {url} failed: {detail}")
        self.url = url
        self.status_code = status_code


class NodeFetchError(NodeStatsError):
    """Terminal per-node error recorded in a FailureReport."""


class MissingProviderIDError(NodeFetchError):
    """Warning-level entry: collection proceeds, but downstream allocation suffers."""

    def __init__(self) -> None:
        super().__init__(
            "Provider ID for node does not exist. "
            "If this condition persists it will cause inconsistent cluster allocation"
        )


class BaselineError(NodeStatsError):
    """The baseline hook failed after the download finished.

    ``report`` is the cycle's FailureReport; the fetch results stand.
    """

    def __init__(self, message: str, report: FailureReport) -> None:
        super().__init__(message)
        self.report = report
