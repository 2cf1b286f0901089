"""Status API routes."""

from __future__ import annotations

from fastapi import APIRouter, Request

from nodestats.api.schemas import HealthResponse, SessionInfo, StatusResponse
from nodestats.models.state import CollectionState

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    from nodestats import __version__

    return HealthResponse(version=__version__)


@router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    """Report the connection mode, endpoint masks and the last cycle's failures."""
    state: CollectionState = request.app.state.collection_state
    session_info = None
    if state.session is not None:
        session = state.session
        session_info = SessionInfo(
            mode=session.mode.value,
            direct_endpoints=[kind.value for kind in session.direct_mask.kinds()],
            proxy_endpoints=[kind.value for kind in session.proxy_mask.kinds()],
            probed_node=session.probed_node,
            probed_at=session.probed_at.isoformat(),
        )

    report = state.last_report
    return StatusResponse(
        cluster_name=request.app.state.cluster_name,
        collection_enabled=state.collection_enabled,
        session=session_info,
        probe_error=state.probe_error,
        cycles_completed=state.cycles_completed,
        last_cycle_at=state.last_cycle_at.isoformat() if state.last_cycle_at else None,
        last_error=state.last_error,
        failed_nodes=report.as_strings() if report is not None else {},
        fallback_nodes={name: str(err) for name, err in report.fallbacks.items()} if report is not None else {},
    )
