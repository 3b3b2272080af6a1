"""Routine templates and per-habit completion records."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from .context import ContextRule
from .habit import Habit


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class RoutineTemplate:
    """A named, ordered collection of habits plus the rules that make it relevant."""

    name: str
    habits: tuple[Habit, ...] = ()
    context_rules: tuple[ContextRule, ...] = ()
    is_default: bool = False
    id: UUID = field(default_factory=uuid4)
    description: Optional[str] = None
    color: str = "#34C759"
    created_at: datetime = field(default_factory=utcnow)
    last_used_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "habits", tuple(sorted(self.habits, key=lambda h: h.order)))
        object.__setattr__(self, "context_rules", tuple(self.context_rules))

    @property
    def active_habits(self) -> tuple[Habit, ...]:
        return tuple(h for h in self.habits if h.is_active)

    @property
    def estimated_duration(self) -> float:
        return sum(h.estimated_duration for h in self.active_habits)

    @property
    def formatted_duration(self) -> str:
        return f"{int(self.estimated_duration // 60)} min"

    def touched(self, at: datetime) -> "RoutineTemplate":
        """Copy of this template marked as last used at ``at``."""

        return replace(self, last_used_at=at)


@dataclass(frozen=True, slots=True)
class HabitCompletion:
    """Outcome of advancing past one habit in a session."""

    habit_id: UUID
    completed_at: datetime
    duration: Optional[float] = None
    notes: Optional[str] = None
    was_skipped: bool = False
    id: UUID = field(default_factory=uuid4)
