"""Session summary repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol
from uuid import UUID

from ...models.summary import SessionSummary


class SessionSummaryRepository(Protocol):
    """Store for finished-session statistics."""

    def record(self, summary: SessionSummary) -> SessionSummary:
        """Persist a summary delivered at session completion."""
        ...

    def get(self, session_id: UUID) -> Optional[SessionSummary]:
        ...

    def list_recent(self, limit: int = 20) -> list[SessionSummary]:
        """Most recently ended sessions first."""
        ...

    def list_for_template(self, template_id: UUID) -> list[SessionSummary]:
        ...
