"""Collector package for nodestats.

Decides once per run how kubelet metrics are reached and fetches them from
every ready node each collection cycle.

Submodules
----------
node_directory -- NodeDirectory: ready-node listing, conflict retry, address lookup.
endpoints      -- DirectEndpoints / ProxyEndpoints URL builders, SourceName.
transport      -- RawClient: authenticated httpx client streaming bodies to disk.
prober         -- ensure_node_source: session-start direct/proxy selection.
fetcher        -- download_node_data: per-cycle fetch with per-node fallback.
summaries      -- retrieve_node_summaries: cycle wrapper with baseline hook.
errors         -- exception hierarchy.
"""

from nodestats.collector.fetcher import download_node_data
from nodestats.collector.node_directory import NodeDirectory
from nodestats.collector.prober import ensure_node_source
from nodestats.collector.summaries import retrieve_node_summaries
from nodestats.collector.transport import RawClient

__all__ = [
    "NodeDirectory",
    "RawClient",
    "download_node_data",
    "ensure_node_source",
    "retrieve_node_summaries",
]
