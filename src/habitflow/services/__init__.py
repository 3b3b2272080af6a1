"""Routine engine services."""

from .conditional import ConditionalHabitService, ConditionalHabitValidation
from .context import ContextProvider, day_category_for, time_slot_for
from .responses import ResponseAnalytics, ResponseLoggingService
from .routines import RoutineChange, RoutineEvent, RoutineService
from .selector import SelectionResult, SmartRoutineSelector
from .session import RoutineSession, SessionSnapshot

__all__ = [
    "ConditionalHabitService",
    "ConditionalHabitValidation",
    "ContextProvider",
    "ResponseAnalytics",
    "ResponseLoggingService",
    "RoutineChange",
    "RoutineEvent",
    "RoutineService",
    "RoutineSession",
    "SelectionResult",
    "SessionSnapshot",
    "SmartRoutineSelector",
    "day_category_for",
    "time_slot_for",
]
