"""Click command group for nodestats."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

import click

from nodestats.collector.errors import NodeSourceUnreachableError, NodeStatsError
from nodestats.collector.node_directory import NodeDirectory
from nodestats.collector.prober import ensure_node_source
from nodestats.config import load_config
from nodestats.models.session import NodeSession
from nodestats.observability.logging import setup_logging


def _session_summary(session: NodeSession) -> dict[str, Any]:
    return {
        "mode": session.mode.value,
        "direct_endpoints": [kind.value for kind in session.direct_mask.kinds()],
        "proxy_endpoints": [kind.value for kind in session.proxy_mask.kinds()],
        "probed_node": session.probed_node,
        "retrieve_node_summaries": session.retrieve_node_summaries,
    }


async def _probe_once(force_proxy: bool) -> tuple[dict[str, Any], int]:
    from nodestats.app import build_clients, load_core_api

    config = load_config()
    if force_proxy:
        config.kubelet.force_kube_proxy = True
    setup_logging(config.log.level, "console")

    api_client, core_api = await load_core_api()
    node_client, cluster_client = build_clients(config)
    try:
        session = await ensure_node_source(config, NodeDirectory(core_api), node_client, cluster_client)
        return _session_summary(session), 0
    except NodeSourceUnreachableError as exc:
        summary = _session_summary(exc.session)
        summary["error"] = str(exc)
        return summary, 2
    except NodeStatsError as exc:
        return {"mode": None, "error": str(exc)}, 1
    finally:
        await cluster_client.aclose()
        await node_client.aclose()
        await api_client.close()


@click.group()
@click.version_option(package_name="nodestats")
def cli() -> None:
    """Kubelet metrics collection agent."""


@cli.command()
def run() -> None:
    """Run the agent: probe once, then collect every poll interval."""
    from nodestats.app import main

    asyncio.run(main())


@cli.command()
@click.option("--force-proxy", is_flag=True, help="Skip direct kubelet connections.")
def probe(force_proxy: bool) -> None:
    """Probe kubelet connectivity once and print the selected mode as JSON."""
    summary, exit_code = asyncio.run(_probe_once(force_proxy))
    click.echo(json.dumps(summary, indent=2))
    sys.exit(exit_code)
