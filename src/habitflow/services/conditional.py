"""Resolution of conditional habit answers into a running session."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from ..errors import (
    ConditionalResolutionError,
    CorruptedPathError,
    HabitNotFoundError,
    RoutineError,
    SessionCompletedError,
    SessionFinalizedError,
)
from ..logging_config import get_logger
from ..models.habit import MAX_OPTIONS, ConditionalHabitInfo, ConditionalOption, Habit
from ..models.response import ConditionalResponse
from .responses import ResponseLoggingService
from .session import RoutineSession

logger = get_logger(__name__)

MAX_QUESTION_LENGTH = 200
MAX_OPTION_TEXT_LENGTH = 50


@dataclass(frozen=True, slots=True)
class ConditionalHabitValidation:
    is_valid: bool
    issues: tuple[str, ...] = field(default_factory=tuple)
    option_count: int = 0
    total_habits_in_paths: int = 0

    @property
    def warning_count(self) -> int:
        warnings = 0
        if self.option_count > 3:
            warnings += 1
        if self.total_habits_in_paths > 10:
            warnings += 1
        return warnings


class ConditionalHabitService:
    """Applies a chosen answer to the session and logs the choice.

    The conditional habit counts as one completed habit whatever the length of
    the chosen path. Path habits are spliced in as fresh copies right after the
    conditional habit. A path that cannot be read behaves like an empty path.
    """

    def __init__(self, response_log: ResponseLoggingService) -> None:
        self.response_log = response_log

    def handle_option_selection(
        self,
        option: ConditionalOption,
        habit_id: UUID,
        question: str,
        session: RoutineSession,
    ) -> ConditionalResponse:
        self._require_current(habit_id, session)

        response = ConditionalResponse.selected(
            habit_id=habit_id,
            question=question,
            option_id=option.id,
            option_text=option.text,
            routine_id=session.id,
        )
        self._log(response)

        session.complete_current_habit(notes=f"Selected: {option.text}")
        position = session.current_habit_index - 1

        try:
            path = self._path_copies(option)
            if path:
                session.inject_habits(position, path)
        except (ConditionalResolutionError, RoutineError) as exc:
            logger.warning(
                "Conditional path could not be applied; continuing without it",
                extra={
                    "session_id": str(session.id),
                    "habit_id": str(habit_id),
                    "option_id": str(getattr(option, "id", None)),
                    "error": str(exc),
                },
            )
        return response

    def handle_skip(
        self,
        habit_id: UUID,
        question: str,
        session: RoutineSession,
        reason: Optional[str] = None,
    ) -> ConditionalResponse:
        self._require_current(habit_id, session)

        response = ConditionalResponse.skipped(
            habit_id=habit_id, question=question, routine_id=session.id
        )
        self._log(response)
        session.skip_current_habit(reason=reason)
        return response

    @staticmethod
    def validate(info: ConditionalHabitInfo) -> ConditionalHabitValidation:
        """Check a conditional habit configuration before it is saved."""

        issues: list[str] = []
        question = info.question.strip()
        if not question:
            issues.append("Question cannot be empty")
        elif len(question) > MAX_QUESTION_LENGTH:
            issues.append(f"Question should be under {MAX_QUESTION_LENGTH} characters")

        if not info.options:
            issues.append("At least one option is required")
        elif len(info.options) > MAX_OPTIONS:
            issues.append(f"Maximum {MAX_OPTIONS} options allowed")

        for number, option in enumerate(info.options, start=1):
            text = option.text.strip()
            if not text:
                issues.append(f"Option {number} text cannot be empty")
            elif len(text) > MAX_OPTION_TEXT_LENGTH:
                issues.append(f"Option {number} text should be under {MAX_OPTION_TEXT_LENGTH} characters")

        texts = [option.text.strip().lower() for option in info.options]
        if len(texts) != len(set(texts)):
            issues.append("Option texts must be unique")

        return ConditionalHabitValidation(
            is_valid=not issues,
            issues=tuple(issues),
            option_count=len(info.options),
            total_habits_in_paths=sum(len(option.habits) for option in info.options),
        )

    @staticmethod
    def _require_current(habit_id: UUID, session: RoutineSession) -> None:
        if session.is_finalized:
            raise SessionFinalizedError(f"Session {session.id} has ended")
        current = session.current_habit
        if current is None:
            raise SessionCompletedError(f"Session {session.id} has no habits left")
        if current.id != habit_id:
            raise HabitNotFoundError(habit_id)

    @staticmethod
    def _path_copies(option: ConditionalOption) -> list[Habit]:
        habits = getattr(option, "habits", None)
        if habits is None:
            raise CorruptedPathError("Option has no habit list")
        copies: list[Habit] = []
        for entry in habits:
            if not isinstance(entry, Habit):
                raise CorruptedPathError(f"Unreadable habit in path: {type(entry).__name__}")
            copies.append(entry.fresh_copy())
        return copies

    def _log(self, response: ConditionalResponse) -> None:
        try:
            self.response_log.log_response(response)
        except Exception:
            logger.exception(
                "Failed to record conditional response",
                extra={"habit_id": str(response.habit_id), "routine_id": str(response.routine_id)},
            )
