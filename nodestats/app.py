"""Application bootstrap for nodestats.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → node directory → transports
              → connectivity probe → collection loop → REST

Shutdown is graceful: background tasks are cancelled first, then clients are
closed in reverse startup order. A failed connectivity probe disables node
collection for the run but keeps the agent (and its status API) alive.
"""

from __future__ import annotations

import asyncio
import signal
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from nodestats.collector.errors import BaselineError, NodeSourceUnreachableError, NodeStatsError
from nodestats.collector.node_directory import NodeDirectory
from nodestats.collector.prober import ensure_node_source
from nodestats.collector.summaries import BaselineHook, retrieve_node_summaries
from nodestats.collector.transport import RawClient
from nodestats.config import load_bearer_token, load_config
from nodestats.models.config import NodeStatsConfig
from nodestats.models.session import FailureReport, NodeSession
from nodestats.models.state import CollectionState
from nodestats.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


async def load_core_api() -> tuple[Any, Any]:
    """Return ``(api_client, CoreV1Api)`` from in-cluster config or kubeconfig."""
    # Imported lazily: kubernetes-asyncio probes for cluster config on import
    # in some versions.
    import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
    from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

    try:
        # load_incluster_config() is synchronous in kubernetes-asyncio
        k8s_config.load_incluster_config()
    except k8s_config.ConfigException:
        await k8s_config.load_kube_config()
    api_client = k8s_client.ApiClient()
    return api_client, k8s_client.CoreV1Api(api_client)


def build_clients(config: NodeStatsConfig) -> tuple[RawClient, RawClient]:
    """Build the direct kubelet client and the API-server proxy client."""
    token = load_bearer_token(config.kubelet)
    node_client = RawClient.for_nodes(
        token,
        timeout=config.kubelet.probe_timeout_seconds,
        retry_limit=config.collection.collection_retry_limit,
    )
    cluster_client = RawClient.for_cluster(
        token,
        timeout=config.kubelet.fetch_timeout_seconds,
        retry_limit=config.collection.collection_retry_limit,
        ca_file=config.kubelet.ca_file,
    )
    return node_client, cluster_client


class NodeStatsApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(
        self,
        config: NodeStatsConfig | None = None,
        baseline_hook: BaselineHook | None = None,
    ) -> None:
        self.config = config
        self.state = CollectionState()
        self._baseline_hook = baseline_hook

        self._api_client: Any = None
        self._directory: NodeDirectory | None = None
        self._node_client: RawClient | None = None
        self._cluster_client: RawClient | None = None
        self._rest_server: Any = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        if self.config is None:
            self.config = load_config()

        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info("nodestats starting", version=_nodestats_version())

        await self._start_k8s_client()
        self._start_transports()
        await self._probe()
        self._start_collection_loop()
        await self._start_rest()

        self._running = True
        self._log.info("nodestats started", mode=self._mode())

    async def _start_k8s_client(self) -> None:
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            self._api_client, core_api = await load_core_api()
            self._directory = NodeDirectory(core_api)
            self._log.info("k8s client started")
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    def _start_transports(self) -> None:
        assert self._log is not None
        assert self.config is not None
        try:
            self._node_client, self._cluster_client = build_clients(self.config)
        except Exception as exc:
            raise _ComponentError("transport", exc) from exc

    async def _probe(self) -> None:
        """Select the retrieval method; failure disables collection, not the agent."""
        assert self._log is not None
        assert self.config is not None
        assert self._directory is not None
        assert self._node_client is not None
        assert self._cluster_client is not None

        if not self.config.collection.retrieve_node_summaries:
            self._log.info("node summary collection disabled by configuration")
            return

        try:
            self.state.session = await ensure_node_source(
                self.config,
                self._directory,
                self._node_client,
                self._cluster_client,
            )
        except NodeSourceUnreachableError as exc:
            self.state.session = exc.session
            self.state.probe_error = str(exc)
            self._log.error("node metrics unreachable; collection disabled", error=str(exc))
        except NodeStatsError as exc:
            self.state.probe_error = str(exc)
            self._log.error("connectivity probe failed; collection disabled", error=str(exc))

    def _start_collection_loop(self) -> None:
        assert self._log is not None
        if not self.state.collection_enabled:
            return
        task = asyncio.create_task(self._collection_loop(), name="collection-loop")
        self._background_tasks.append(task)
        self._log.info("collection loop started")

    async def _start_rest(self) -> None:
        """Start the uvicorn status server.  Non-fatal."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.api.enabled:
            return
        try:
            import uvicorn  # type: ignore[import-untyped]

            from nodestats.api import create_app

            uv_config = uvicorn.Config(
                app=create_app(collection_state=self.state, config=self.config),
                host="0.0.0.0",  # noqa: S104
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            self._log.warning("rest api failed to start; status endpoint unavailable", error=str(exc))
            self._rest_server = None

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    async def run_cycle(self) -> None:
        """Run one collection cycle and record the outcome in ``state``."""
        assert self.config is not None
        assert self._directory is not None
        session = self.state.session
        if session is None or not session.retrieve_node_summaries:
            return
        log = self._log or get_logger("app")

        sample_dir = _sample_dir(Path(self.config.collection.output_dir))
        try:
            sample_dir.mkdir(parents=True, exist_ok=True)
            report = await retrieve_node_summaries(
                self.config,
                session,
                sample_dir,
                self._directory,
                baseline_hook=self._baseline_hook,
            )
        except BaselineError as exc:
            # Fetch results stand; only the baseline update is reported.
            self._record_report(exc.report)
            self.state.last_error = str(exc)
            log.error("baseline update failed", error=str(exc), sample_dir=str(sample_dir))
            return
        except (NodeStatsError, OSError) as exc:
            self.state.last_error = str(exc)
            log.error("collection cycle failed", error=str(exc), sample_dir=str(sample_dir))
            return

        self._record_report(report)
        self.state.last_error = ""
        log.info("collection cycle complete", sample_dir=str(sample_dir), failed_nodes=len(report))

    def _record_report(self, report: FailureReport) -> None:
        self.state.last_report = report
        self.state.last_cycle_at = datetime.now(tz=UTC)
        self.state.cycles_completed += 1

    async def _collection_loop(self) -> None:
        assert self.config is not None
        interval = self.config.collection.poll_interval_seconds
        while True:
            try:
                await self.run_cycle()
            except Exception as exc:
                # A crashed cycle must not end the loop.
                self.state.last_error = f"collection cycle crashed: {exc}"
                (self._log or get_logger("app")).exception("collection cycle crashed", error=str(exc))
            await asyncio.sleep(interval)

    def _mode(self) -> str:
        session: NodeSession | None = self.state.session
        return session.mode.value if session is not None else "disabled"

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Cancel background tasks, then close clients in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("nodestats shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        await self._close("cluster_client", self._cluster_client)
        await self._close("node_client", self._node_client)
        await self._close("k8s_client", self._api_client)
        self._cluster_client = self._node_client = self._api_client = None

        log.info("nodestats stopped")

    async def _close(self, name: str, component: Any) -> None:
        if component is None:
            return
        log = self._log or get_logger("app")
        close_fn = getattr(component, "aclose", None) or getattr(component, "close", None)
        if close_fn is None:
            return
        try:
            await asyncio.wait_for(close_fn(), timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component close timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component close raised an error", component=name, error=str(exc))


def _sample_dir(output_dir: Path) -> Path:
    stamp = datetime.now(tz=UTC).strftime("%Y%m%d%H%M%S")
    return output_dir / f"sample-{stamp}"


def _nodestats_version() -> str:
    from nodestats import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------

_SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


async def serve(app: NodeStatsApp, shutdown: asyncio.Event) -> None:
    """Start *app*, wait for *shutdown* to be set, then stop it.

    ``stop()`` runs on every exit path, including a failed start.
    """
    try:
        await app.start()
        await shutdown.wait()
    finally:
        await app.stop()


async def main(config: NodeStatsConfig | None = None) -> None:
    """Run the agent until SIGTERM or SIGINT.

    A mandatory component failing at startup exits the process with status 1.
    """
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in _SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await serve(NodeStatsApp(config=config), shutdown)
    except _ComponentError as exc:
        get_logger("app").critical("fatal startup error", component=exc.component, error=str(exc.cause))
        raise SystemExit(1) from exc
    finally:
        for sig in _SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)
