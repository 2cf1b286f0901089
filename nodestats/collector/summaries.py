"""One collection cycle as the agent runs it: download, report, baselines."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path

from nodestats.collector.errors import BaselineError
from nodestats.collector.fetcher import download_node_data
from nodestats.collector.node_directory import NodeDirectory
from nodestats.models.config import NodeStatsConfig
from nodestats.models.session import FailureReport, NodeSession
from nodestats.observability.logging import get_logger

_log = get_logger("collector.summaries")

BaselineHook = Callable[[Path], Awaitable[None]]


async def retrieve_node_summaries(
    config: NodeStatsConfig,
    session: NodeSession,
    sample_dir: Path,
    directory: NodeDirectory,
    baseline_hook: BaselineHook | None = None,
) -> FailureReport:
    """Download node data into *sample_dir* and hand it to the baseline hook.

    A failing baseline hook raises BaselineError carrying the cycle's
    report; the downloaded artifacts stay in place.

    Raises:
        NodeListError: if the cycle could not list nodes.
        BaselineError: if the baseline hook fails.
    """
    report = await download_node_data(
        config.collection.artifact_prefix,
        session,
        sample_dir,
        directory,
        config.kubelet.cluster_host_url,
        max_concurrency=config.collection.max_concurrent_fetches,
    )

    if report:
        _log.warning("failed_to_get_node_metrics", failures=report.as_strings())
    for node_name, err in report.fallbacks.items():
        _log.info("node_recovered_via_proxy", node=node_name, direct_error=str(err))

    if baseline_hook is not None:
        try:
            await baseline_hook(sample_dir)
        except Exception as exc:
            raise BaselineError(f"error updating node baseline files: {exc}", report) from exc

    return report
