"""Core data structures for nodestats."""

from nodestats.models.config import NodeStatsConfig
from nodestats.models.endpoints import FETCH_ORDER, ConnectionMode, EndpointKind, EndpointMask
from nodestats.models.nodes import NodeAddress, NodeCondition, NodeInfo
from nodestats.models.session import FailureReport, NodeSession

__all__ = [
    "FETCH_ORDER",
    "ConnectionMode",
    "EndpointKind",
    "EndpointMask",
    "FailureReport",
    "NodeAddress",
    "NodeCondition",
    "NodeInfo",
    "NodeSession",
    "NodeStatsConfig",
]
