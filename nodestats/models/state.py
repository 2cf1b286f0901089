"""Runtime collection state shared between the agent loop and the REST API."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from nodestats.models.session import FailureReport, NodeSession


@dataclass
class CollectionState:
    """Latest probe and cycle outcome.

    Written only by the collection loop; the API reads it.
    """

    session: NodeSession | None = None
    probe_error: str = ""
    cycles_completed: int = 0
    last_cycle_at: datetime | None = None
    last_report: FailureReport | None = None
    last_error: str = ""

    @property
    def collection_enabled(self) -> bool:
        return self.session is not None and self.session.retrieve_node_summaries
