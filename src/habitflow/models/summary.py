"""Session summaries handed to the statistics store when a routine finishes."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar
from uuid import UUID

from sqlmodel import Field, SQLModel


class SessionSummary(SQLModel, table=True):
    """Totals for one finished routine session."""

    __tablename__: ClassVar[str] = "session_summary"

    session_id: UUID = Field(primary_key=True)
    template_id: UUID = Field(nullable=False, index=True)
    template_name: str = Field(nullable=False, max_length=120)
    started_at: datetime = Field(nullable=False)
    ended_at: datetime = Field(nullable=False, index=True)
    completed_count: int = Field(default=0, nullable=False)
    skipped_count: int = Field(default=0, nullable=False)
    total_habits: int = Field(default=0, nullable=False)
    duration_seconds: float = Field(default=0.0, nullable=False)

    @property
    def remaining_count(self) -> int:
        return max(0, self.total_habits - self.completed_count - self.skipped_count)

    @property
    def completion_rate(self) -> float:
        if self.total_habits == 0:
            return 0.0
        return self.completed_count / self.total_habits
