"""Pydantic response models for the status API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


class SessionInfo(BaseModel):
    """Probing outcome for the current run."""

    mode: str
    direct_endpoints: list[str] = Field(default_factory=list)
    proxy_endpoints: list[str] = Field(default_factory=list)
    probed_node: str = ""
    probed_at: str = ""


class StatusResponse(BaseModel):
    """Collection status: session, last cycle, and per-node failures."""

    cluster_name: str = ""
    collection_enabled: bool
    session: SessionInfo | None = None
    probe_error: str = ""
    cycles_completed: int = 0
    last_cycle_at: str | None = None
    last_error: str = ""
    failed_nodes: dict[str, str] = Field(default_factory=dict)
    fallback_nodes: dict[str, str] = Field(default_factory=dict)
