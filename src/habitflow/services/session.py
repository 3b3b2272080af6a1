"""Execution state for one in-progress run of a routine template."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence
from uuid import UUID, uuid4

from ..errors import (
    InvalidHabitIndexError,
    InvalidReorderError,
    NegativeDurationError,
    SessionCompletedError,
    SessionFinalizedError,
    StaleInjectionError,
)
from ..logging_config import get_logger
from ..models.habit import Habit
from ..models.routine import HabitCompletion, RoutineTemplate, utcnow
from ..models.summary import SessionSummary

logger = get_logger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Read-only projection of a session for presentation layers."""

    session_id: UUID
    template_id: UUID
    template_name: str
    current_habit: Optional[Habit]
    current_habit_index: int
    total_habits: int
    progress: float
    completions: tuple[HabitCompletion, ...]
    is_completed: bool
    is_finalized: bool


class RoutineSession:
    """Mutable habit queue, cursor and completion log for one routine run.

    The session starts active. Completing or skipping appends a completion and
    moves the cursor forward; ``go_to_previous_habit`` drops the latest
    completion and moves back. Once the cursor reaches the end of the queue the
    session is completed. The coordinator ends the session with ``finalize``,
    after which every mutating call raises ``SessionFinalizedError``.

    Only positions at or after the cursor are ever spliced. When undo steps back
    onto a conditional habit, the habits its answer injected are retracted so the
    question can be answered again.
    """

    def __init__(self, template: RoutineTemplate, *, clock: Clock | None = None) -> None:
        self._clock: Clock = clock or utcnow
        self.id: UUID = uuid4()
        self.template = template
        self.started_at: datetime = self._clock()
        self.completed_at: Optional[datetime] = None
        self.was_cancelled = False
        self._habits: list[Habit] = list(template.active_habits)
        self._index = 0
        self._completions: list[HabitCompletion] = []
        # position of the answered conditional -> ids of the habits it injected
        self._injections: dict[int, list[UUID]] = {}

    # ------------------------------------------------------------------ state

    @property
    def current_habit_index(self) -> int:
        return self._index

    @property
    def active_habits(self) -> tuple[Habit, ...]:
        return tuple(self._habits)

    @property
    def remaining_habits(self) -> tuple[Habit, ...]:
        return tuple(self._habits[self._index :])

    @property
    def completions(self) -> tuple[HabitCompletion, ...]:
        return tuple(self._completions)

    @property
    def current_habit(self) -> Optional[Habit]:
        if self._index < len(self._habits):
            return self._habits[self._index]
        return None

    @property
    def is_completed(self) -> bool:
        return self._index >= len(self._habits)

    @property
    def is_finalized(self) -> bool:
        return self.completed_at is not None

    @property
    def progress(self) -> float:
        if not self._habits:
            return 1.0
        return min(1.0, max(0.0, len(self._completions) / len(self._habits)))

    @property
    def duration(self) -> float:
        end = self.completed_at or self._clock()
        return max(0.0, (end - self.started_at).total_seconds())

    @property
    def completed_count(self) -> int:
        return sum(1 for c in self._completions if not c.was_skipped)

    @property
    def skipped_count(self) -> int:
        return sum(1 for c in self._completions if c.was_skipped)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.id,
            template_id=self.template.id,
            template_name=self.template.name,
            current_habit=self.current_habit,
            current_habit_index=self._index,
            total_habits=len(self._habits),
            progress=self.progress,
            completions=self.completions,
            is_completed=self.is_completed,
            is_finalized=self.is_finalized,
        )

    # ------------------------------------------------------------- advancing

    def complete_current_habit(
        self, duration: Optional[float] = None, notes: Optional[str] = None
    ) -> HabitCompletion:
        """Record the current habit as done and move to the next one."""

        habit = self._require_current()
        if duration is not None and (not math.isfinite(duration) or duration < 0):
            raise NegativeDurationError(duration)
        return self._advance(habit, duration=duration, notes=notes, was_skipped=False)

    def skip_current_habit(self, reason: Optional[str] = None) -> HabitCompletion:
        """Record the current habit as skipped and move on.

        Whether a habit may be skipped (``Habit.is_optional``) is decided by the
        caller.
        """

        habit = self._require_current()
        return self._advance(habit, duration=None, notes=reason, was_skipped=True)

    def go_to_previous_habit(self) -> Optional[HabitCompletion]:
        """Re-expose the previous habit; returns the completion that was removed."""

        self._require_open()
        if self._index == 0:
            return None

        self._index -= 1
        removed = self._completions.pop()
        retracted = self._injections.pop(self._index, None)
        if retracted:
            ids = set(retracted)
            head, tail = self._habits[: self._index + 1], self._habits[self._index + 1 :]
            self._habits = head + [h for h in tail if h.id not in ids]
            logger.info(
                "Retracted conditional path on undo",
                extra={"session_id": str(self.id), "position": self._index, "count": len(ids)},
            )
        return removed

    def go_to_habit(self, index: int) -> None:
        """Step back to an earlier habit, undoing everything after it."""

        self._require_open()
        if not 0 <= index <= self._index:
            logger.warning(
                "Rejected habit index",
                extra={"session_id": str(self.id), "index": index, "current": self._index},
            )
            raise InvalidHabitIndexError(index, len(self._habits))
        while self._index > index:
            self.go_to_previous_habit()

    # --------------------------------------------------------- queue editing

    def inject_habits(self, position: int, habits: Sequence[Habit]) -> int:
        """Insert ``habits`` right after the conditional habit at ``position``.

        Only the conditional habit that was just answered may receive habits.
        Returns the number of habits inserted.
        """

        self._require_open()
        just_completed = self._index - 1
        if (
            position != just_completed
            or position < 0
            or not self._habits[position].is_conditional
            or self._completions[-1].habit_id != self._habits[position].id
            or self._completions[-1].was_skipped
            or position in self._injections
        ):
            logger.warning(
                "Rejected stale habit injection",
                extra={"session_id": str(self.id), "position": position, "current": self._index},
            )
            raise StaleInjectionError(f"Position {position} is not the just-answered conditional")

        new_habits = list(habits)
        if not new_habits:
            return 0
        self._habits[self._index : self._index] = new_habits
        self._injections[position] = [h.id for h in new_habits]
        return len(new_habits)

    def reorder_habits(self, new_order: Iterable[Habit]) -> None:
        """Replace the not-yet-completed part of the queue with ``new_order``."""

        self._require_open()
        proposed = list(new_order)
        remaining = self._habits[self._index :]
        if Counter(h.id for h in proposed) != Counter(h.id for h in remaining) or len(
            {h.id for h in proposed}
        ) != len(proposed):
            raise InvalidReorderError(
                "New order must contain exactly the remaining habits, each once"
            )
        by_id = {h.id: h for h in remaining}
        self._habits[self._index :] = [by_id[h.id] for h in proposed]

    # ------------------------------------------------------------ finishing

    def finalize(self, *, cancelled: bool = False) -> None:
        """Stamp ``completed_at``; the session accepts no further changes."""

        self._require_open()
        self.completed_at = self._clock()
        self.was_cancelled = cancelled

    def summarize(self) -> SessionSummary:
        return SessionSummary(
            session_id=self.id,
            template_id=self.template.id,
            template_name=self.template.name,
            started_at=self.started_at,
            ended_at=self.completed_at or self._clock(),
            completed_count=self.completed_count,
            skipped_count=self.skipped_count,
            total_habits=len(self._habits),
            duration_seconds=self.duration,
        )

    # -------------------------------------------------------------- helpers

    def _require_open(self) -> None:
        if self.is_finalized:
            raise SessionFinalizedError(f"Session {self.id} has ended")

    def _require_current(self) -> Habit:
        self._require_open()
        habit = self.current_habit
        if habit is None:
            raise SessionCompletedError(f"Session {self.id} has no habits left")
        return habit

    def _advance(
        self,
        habit: Habit,
        *,
        duration: Optional[float],
        notes: Optional[str],
        was_skipped: bool,
    ) -> HabitCompletion:
        completion = HabitCompletion(
            habit_id=habit.id,
            completed_at=self._clock(),
            duration=duration,
            notes=notes,
            was_skipped=was_skipped,
        )
        self._completions.append(completion)
        self._index += 1
        return completion
