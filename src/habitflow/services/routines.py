"""Routine coordinator: template registry, the active session and change events."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from threading import RLock
from typing import Callable, Iterable, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from ..domain.repositories.session_summary import SessionSummaryRepository
from ..errors import (
    EmptyTemplateError,
    NoActiveSessionError,
    SessionAlreadyActiveError,
    TemplateNotFoundError,
)
from ..logging_config import get_logger
from ..models.context import RoutineContext
from ..models.habit import ConditionalOption, Habit
from ..models.response import ConditionalResponse
from ..models.routine import HabitCompletion, RoutineTemplate, utcnow
from ..models.summary import SessionSummary
from .conditional import ConditionalHabitService
from .context import ContextProvider
from .selector import SelectionResult, SmartRoutineSelector
from .session import RoutineSession, SessionSnapshot

logger = get_logger(__name__)


class RoutineEvent(str, Enum):
    SESSION_STARTED = "session_started"
    HABIT_COMPLETED = "habit_completed"
    HABIT_SKIPPED = "habit_skipped"
    HABIT_UNDONE = "habit_undone"
    QUEUE_CHANGED = "queue_changed"
    SESSION_COMPLETED = "session_completed"
    SESSION_CANCELLED = "session_cancelled"


@dataclass(frozen=True, slots=True)
class RoutineChange:
    event: RoutineEvent
    snapshot: SessionSnapshot


Listener = Callable[[RoutineChange], None]


class RoutineService:
    """Single owner of the active ``RoutineSession``.

    Every read-modify-write of session state goes through this object and is
    serialized by one lock. After each mutation a ``RoutineChange`` is sent to
    subscribers so presenters can refresh without polling.
    """

    def __init__(
        self,
        conditional_service: ConditionalHabitService,
        templates: Iterable[RoutineTemplate] = (),
        *,
        selector: SmartRoutineSelector | None = None,
        summary_repository: SessionSummaryRepository | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.conditional_service = conditional_service
        self.selector = selector or SmartRoutineSelector()
        self.summary_repository = summary_repository
        self._clock = clock or utcnow
        self._lock = RLock()
        self._templates: list[RoutineTemplate] = []
        self._session: Optional[RoutineSession] = None
        self._listeners: list[Listener] = []
        for template in templates:
            self.add_template(template)

    # ------------------------------------------------------------ templates

    @property
    def templates(self) -> tuple[RoutineTemplate, ...]:
        return tuple(self._templates)

    @property
    def default_template(self) -> Optional[RoutineTemplate]:
        return next((t for t in self._templates if t.is_default), None)

    @property
    def last_used_template(self) -> Optional[RoutineTemplate]:
        used = [t for t in self._templates if t.last_used_at is not None]
        return max(used, key=lambda t: t.last_used_at) if used else None

    def get_template(self, template_id: UUID) -> Optional[RoutineTemplate]:
        return next((t for t in self._templates if t.id == template_id), None)

    def add_template(self, template: RoutineTemplate) -> RoutineTemplate:
        """Register a template; a default template clears the flag on the others."""

        with self._lock:
            if self.get_template(template.id) is not None:
                raise ValueError(f"Template {template.id} is already registered")
            if template.is_default:
                self._clear_default()
            self._templates.append(template)
            return template

    def update_template(self, template: RoutineTemplate) -> RoutineTemplate:
        with self._lock:
            index = self._template_index(template.id)
            if template.is_default:
                self._clear_default(keep=template.id)
            self._templates[index] = template
            return template

    def remove_template(self, template_id: UUID) -> None:
        with self._lock:
            index = self._template_index(template_id)
            del self._templates[index]

    # ------------------------------------------------------------ selection

    def select_template(self, context: RoutineContext) -> SelectionResult:
        with self._lock:
            candidates = list(self._templates)
        return self.selector.select_best_template(candidates, context)

    async def select_for_current_context(self, provider: ContextProvider) -> SelectionResult:
        """Await the context lookup first, then score on the coordinator."""

        context = await provider.current_context()
        return self.select_template(context)

    # -------------------------------------------------------------- session

    @property
    def current_session(self) -> Optional[RoutineSession]:
        return self._session

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""

        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def start_session(self, template: RoutineTemplate) -> RoutineSession:
        with self._lock:
            if self._session is not None:
                logger.warning(
                    "Session already active", extra={"session_id": str(self._session.id)}
                )
                raise SessionAlreadyActiveError(self._session.id)

            registered = self.get_template(template.id)
            if registered is None:
                logger.warning("Template not registered", extra={"template_id": str(template.id)})
                raise TemplateNotFoundError(template.id)
            if not registered.active_habits:
                logger.warning("Template has no habits", extra={"template_id": str(template.id)})
                raise EmptyTemplateError(template.id)

            session = RoutineSession(registered, clock=self._clock)
            self._session = session
            self._templates[self._template_index(registered.id)] = registered.touched(
                session.started_at
            )
            logger.info(
                "Routine session started",
                extra={"session_id": str(session.id), "template": registered.name},
            )
            self._emit(RoutineEvent.SESSION_STARTED, session)
            return session

    def complete_current_habit(
        self, duration: Optional[float] = None, notes: Optional[str] = None
    ) -> HabitCompletion:
        with self._lock:
            session = self._require_session()
            completion = session.complete_current_habit(duration=duration, notes=notes)
            self._emit(RoutineEvent.HABIT_COMPLETED, session)
            return completion

    def skip_current_habit(self, reason: Optional[str] = None) -> HabitCompletion:
        with self._lock:
            session = self._require_session()
            completion = session.skip_current_habit(reason=reason)
            self._emit(RoutineEvent.HABIT_SKIPPED, session)
            return completion

    def go_to_previous_habit(self) -> Optional[HabitCompletion]:
        with self._lock:
            session = self._require_session()
            removed = session.go_to_previous_habit()
            if removed is not None:
                self._emit(RoutineEvent.HABIT_UNDONE, session)
            return removed

    def go_to_habit(self, index: int) -> None:
        with self._lock:
            session = self._require_session()
            before = session.current_habit_index
            session.go_to_habit(index)
            if session.current_habit_index != before:
                self._emit(RoutineEvent.HABIT_UNDONE, session)

    def reorder_remaining(self, new_order: Iterable[Habit]) -> None:
        with self._lock:
            session = self._require_session()
            session.reorder_habits(new_order)
            self._emit(RoutineEvent.QUEUE_CHANGED, session)

    def select_conditional_option(
        self, option: ConditionalOption, habit_id: UUID, question: str
    ) -> ConditionalResponse:
        with self._lock:
            session = self._require_session()
            queue_length = len(session.active_habits)
            response = self.conditional_service.handle_option_selection(
                option, habit_id, question, session
            )
            if len(session.active_habits) != queue_length:
                self._emit(RoutineEvent.QUEUE_CHANGED, session)
            self._emit(RoutineEvent.HABIT_COMPLETED, session)
            return response

    def skip_conditional_habit(
        self, habit_id: UUID, question: str, reason: Optional[str] = None
    ) -> ConditionalResponse:
        with self._lock:
            session = self._require_session()
            response = self.conditional_service.handle_skip(habit_id, question, session, reason)
            self._emit(RoutineEvent.HABIT_SKIPPED, session)
            return response

    def complete_current_session(self) -> SessionSummary:
        """Finalize the active session and deliver its summary."""

        with self._lock:
            session = self._require_session()
            session.finalize()
            summary = session.summarize()
            self._session = None
            logger.info(
                "Routine session completed",
                extra={
                    "session_id": str(session.id),
                    "completed": summary.completed_count,
                    "skipped": summary.skipped_count,
                    "duration": summary.duration_seconds,
                },
            )
            self._record_summary(summary)
            self._emit(RoutineEvent.SESSION_COMPLETED, session)
            return summary

    def cancel_session(self) -> None:
        """End the active session without completing it; cannot be undone."""

        with self._lock:
            session = self._require_session()
            session.finalize(cancelled=True)
            self._session = None
            logger.info(
                "Routine session cancelled",
                extra={
                    "session_id": str(session.id),
                    "template": session.template.name,
                    "progress": session.progress,
                    "completed": session.completed_count,
                    "total": len(session.active_habits),
                },
            )
            self._emit(RoutineEvent.SESSION_CANCELLED, session)

    # -------------------------------------------------------------- helpers

    def _require_session(self) -> RoutineSession:
        if self._session is None:
            raise NoActiveSessionError()
        return self._session

    def _template_index(self, template_id: UUID) -> int:
        for index, template in enumerate(self._templates):
            if template.id == template_id:
                return index
        raise TemplateNotFoundError(template_id)

    def _clear_default(self, keep: UUID | None = None) -> None:
        self._templates = [
            replace(t, is_default=False) if t.is_default and t.id != keep else t
            for t in self._templates
        ]

    def _record_summary(self, summary: SessionSummary) -> None:
        if self.summary_repository is None:
            return
        try:
            self.summary_repository.record(summary)
        except SQLAlchemyError:
            logger.exception(
                "Failed to store session summary", extra={"session_id": str(summary.session_id)}
            )

    def _emit(self, event: RoutineEvent, session: RoutineSession) -> None:
        change = RoutineChange(event=event, snapshot=session.snapshot())
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Routine listener failed", extra={"event": event.value})
