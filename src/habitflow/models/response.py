"""Append-only log of answers given to conditional habits."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar, Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from .routine import utcnow

SKIPPED_OPTION_TEXT = "Skipped"


class ConditionalResponse(SQLModel, table=True):
    """Which option (or skip) was chosen for a conditional habit during a session.

    Records are never edited or deleted; they keep the option text as it read at
    answer time, so later edits to the option do not rewrite history.
    """

    __tablename__: ClassVar[str] = "conditional_response"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    habit_id: UUID = Field(nullable=False, index=True)
    question: str = Field(nullable=False, max_length=200)
    selected_option_id: Optional[UUID] = Field(default=None, nullable=True)
    selected_option_text: str = Field(nullable=False, max_length=80)
    routine_id: UUID = Field(nullable=False, index=True)
    timestamp: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    was_skipped: bool = Field(default=False, nullable=False)

    @classmethod
    def selected(
        cls,
        *,
        habit_id: UUID,
        question: str,
        option_id: UUID,
        option_text: str,
        routine_id: UUID,
        timestamp: datetime | None = None,
    ) -> "ConditionalResponse":
        return cls(
            habit_id=habit_id,
            question=question,
            selected_option_id=option_id,
            selected_option_text=option_text,
            routine_id=routine_id,
            timestamp=timestamp or utcnow(),
            was_skipped=False,
        )

    @classmethod
    def skipped(
        cls,
        *,
        habit_id: UUID,
        question: str,
        routine_id: UUID,
        timestamp: datetime | None = None,
    ) -> "ConditionalResponse":
        return cls(
            habit_id=habit_id,
            question=question,
            selected_option_id=None,
            selected_option_text=SKIPPED_OPTION_TEXT,
            routine_id=routine_id,
            timestamp=timestamp or utcnow(),
            was_skipped=True,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": str(self.id),
            "habit_id": str(self.habit_id),
            "question": self.question,
            "selected_option_id": str(self.selected_option_id) if self.selected_option_id else None,
            "selected_option_text": self.selected_option_text,
            "routine_id": str(self.routine_id),
            "timestamp": self.timestamp.isoformat(),
            "was_skipped": self.was_skipped,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConditionalResponse":
        option_id = data.get("selected_option_id")
        timestamp = datetime.fromisoformat(str(data["timestamp"]))
        if timestamp.tzinfo is None:
            # exports written before timestamps carried an offset are UTC
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            id=UUID(str(data["id"])),
            habit_id=UUID(str(data["habit_id"])),
            question=str(data["question"]),
            selected_option_id=UUID(str(option_id)) if option_id else None,
            selected_option_text=str(data["selected_option_text"]),
            routine_id=UUID(str(data["routine_id"])),
            timestamp=timestamp,
            was_skipped=bool(data.get("was_skipped", False)),
        )
