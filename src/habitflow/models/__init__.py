"""Routine data types and SQLModel table exports."""

from .context import ContextRule, ContextRuleType, RoutineContext, TimeSlot
from .habit import (
    ConditionalHabitInfo,
    ConditionalOption,
    ConditionalType,
    ExternalActionType,
    Habit,
    HabitKind,
    HabitType,
    TaskType,
    TimerType,
    TrackingType,
    conditional_habit,
)
from .response import ConditionalResponse
from .routine import HabitCompletion, RoutineTemplate
from .summary import SessionSummary

__all__ = [
    "ConditionalHabitInfo",
    "ConditionalOption",
    "ConditionalResponse",
    "ConditionalType",
    "ContextRule",
    "ContextRuleType",
    "ExternalActionType",
    "Habit",
    "HabitCompletion",
    "HabitKind",
    "HabitType",
    "RoutineContext",
    "RoutineTemplate",
    "SessionSummary",
    "TaskType",
    "TimeSlot",
    "TimerType",
    "TrackingType",
    "conditional_habit",
]
