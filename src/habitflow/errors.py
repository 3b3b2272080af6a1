"""Error taxonomy for routine selection, execution and branching.

Lifecycle errors (``RoutineError`` subclasses) are raised to the caller and never
leave a session half-mutated. ``ConditionalResolutionError`` and ``LocationError``
are absorbed inside the engine and only surface through diagnostic logging.
"""

from __future__ import annotations

from uuid import UUID


class RoutineError(Exception):
    """Base class for recoverable routine lifecycle failures."""

    user_message = "Something went wrong with your routine."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)


class SessionAlreadyActiveError(RoutineError):
    user_message = "A routine is already in progress. Please complete or cancel it first."

    def __init__(self, session_id: UUID) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} is still active")


class NoActiveSessionError(RoutineError):
    user_message = "No routine is currently active. Please start a routine first."


class TemplateNotFoundError(RoutineError):
    user_message = "The selected routine template could not be found."

    def __init__(self, template_id: UUID) -> None:
        self.template_id = template_id
        super().__init__(f"Template {template_id} is not registered")


class EmptyTemplateError(RoutineError):
    user_message = "This routine has no habits to run."

    def __init__(self, template_id: UUID) -> None:
        self.template_id = template_id
        super().__init__(f"Template {template_id} has no active habits")


class HabitNotFoundError(RoutineError):
    user_message = "The habit could not be found in the current routine."

    def __init__(self, habit_id: UUID) -> None:
        self.habit_id = habit_id
        super().__init__(f"Habit {habit_id} is not the current habit")


class InvalidHabitIndexError(RoutineError, IndexError):
    user_message = "Invalid habit position in routine."

    def __init__(self, index: int, total: int) -> None:
        self.index = index
        self.total = total
        super().__init__(f"Index {index} is outside the allowed range for {total} habits")


class NegativeDurationError(RoutineError, ValueError):
    user_message = "A habit duration cannot be negative."

    def __init__(self, duration: float) -> None:
        self.duration = duration
        super().__init__(f"Duration must be a finite non-negative number, got {duration}")


class SessionCompletedError(RoutineError):
    user_message = "Every habit in this routine is already done."


class SessionFinalizedError(RoutineError):
    user_message = "This routine has already ended."


class InvalidReorderError(RoutineError, ValueError):
    user_message = "The new order must contain exactly the remaining habits."


class StaleInjectionError(RoutineError):
    """Habits were offered for a position that is not the just-answered conditional."""

    user_message = "The routine changed before your answer could be applied."


class UnsupportedExportVersionError(ValueError):
    def __init__(self, version: int, supported: int) -> None:
        self.version = version
        self.supported = supported
        super().__init__(f"Unsupported response export version {version} (max {supported})")


class InvalidExportRecordError(ValueError):
    """A record in a response export could not be read; nothing was imported."""

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Response export record {index} is invalid: {reason}")


class ConditionalResolutionError(Exception):
    """An option path could not be read; resolved as an empty path."""


class CorruptedPathError(ConditionalResolutionError):
    pass


class LocationError(Exception):
    """The location collaborator could not provide a category."""


class LocationPermissionDeniedError(LocationError):
    pass


class LocationUnavailableError(LocationError):
    pass


__all__ = [
    "ConditionalResolutionError",
    "CorruptedPathError",
    "EmptyTemplateError",
    "HabitNotFoundError",
    "InvalidExportRecordError",
    "InvalidHabitIndexError",
    "InvalidReorderError",
    "LocationError",
    "LocationPermissionDeniedError",
    "LocationUnavailableError",
    "NegativeDurationError",
    "NoActiveSessionError",
    "RoutineError",
    "SessionAlreadyActiveError",
    "SessionCompletedError",
    "SessionFinalizedError",
    "StaleInjectionError",
    "TemplateNotFoundError",
    "UnsupportedExportVersionError",
]
