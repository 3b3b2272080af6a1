"""Response log repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol
from uuid import UUID

from ...models.response import ConditionalResponse


class ResponseLogRepository(Protocol):
    """Append-only store of conditional responses."""

    def append(self, response: ConditionalResponse) -> ConditionalResponse:
        """Persist a new response record."""
        ...

    def get_by_id(self, response_id: UUID) -> Optional[ConditionalResponse]:
        """Retrieve a response by ID."""
        ...

    def list_all(self) -> list[ConditionalResponse]:
        """All responses, oldest first."""
        ...

    def list_for_habit(self, habit_id: UUID) -> list[ConditionalResponse]:
        """Responses recorded for one conditional habit, oldest first."""
        ...

    def list_for_routine(self, routine_id: UUID) -> list[ConditionalResponse]:
        """Responses recorded during one session, oldest first."""
        ...
