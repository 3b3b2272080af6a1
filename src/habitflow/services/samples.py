"""Starter routine templates offered on first launch."""

from __future__ import annotations

from ..models.context import WEEKDAY, WEEKEND, ContextRule, TimeSlot
from ..models.habit import (
    ConditionalOption,
    ExternalActionType,
    Habit,
    TaskType,
    TimerType,
    TrackingType,
    conditional_habit,
)
from ..models.routine import RoutineTemplate

SUPPLEMENTS = ("Vitamin D", "Magnesium", "Omega-3")


def _hrv(order: int) -> Habit:
    return Habit(
        name="Measure HRV",
        type=ExternalActionType(target="com.elitehrv.app", label="Elite HRV"),
        order=order,
        color="#FF6B6B",
    )


def _coffee(order: int) -> Habit:
    return Habit(name="Make coffee", order=order, color="#8B4513")


def _supplements(order: int, items: tuple[str, ...] = SUPPLEMENTS) -> Habit:
    return Habit(name="Take supplements", type=TrackingType(items=items), order=order, color="#FFD93D")


def _stretching(order: int, minutes: int = 10) -> Habit:
    return Habit(
        name="Stretching",
        type=TimerType(default_duration=minutes * 60.0),
        order=order,
        color="#6BCF7F",
    )


def _pain_assessment(order: int) -> Habit:
    shoulder = ConditionalOption(
        text="Shoulder",
        habits=(
            Habit(name="Shoulder rolls", type=TimerType(default_duration=120.0)),
            Habit(name="Doorway stretch", type=TimerType(default_duration=90.0)),
        ),
    )
    back = ConditionalOption(
        text="Lower back",
        habits=(Habit(name="Cat-cow", type=TimerType(default_duration=120.0)),),
    )
    return conditional_habit(
        "Pain Assessment",
        "Any pain today?",
        [shoulder, back, ConditionalOption(text="None")],
        order=order,
        color="#FF3B30",
    )


def office_template() -> RoutineTemplate:
    return RoutineTemplate(
        name="Office Day",
        description="Morning routine for office workdays",
        habits=(
            _hrv(0),
            _coffee(1),
            _supplements(2, SUPPLEMENTS[:2]),
            Habit(name="Set up workspace", order=3, color="#A29BFE"),
        ),
        context_rules=(
            ContextRule.for_location("office", priority=2),
            ContextRule.for_time_slots(TimeSlot.EARLY_MORNING, TimeSlot.MORNING, priority=1),
            ContextRule.for_day_categories(WEEKDAY, priority=1),
        ),
        color="#007AFF",
    )


def home_office_template() -> RoutineTemplate:
    return RoutineTemplate(
        name="Home Office",
        description="Morning routine for working from home",
        habits=(
            _hrv(0),
            _pain_assessment(1),
            _stretching(2, minutes=15),
            _coffee(3),
            _supplements(4),
            Habit(name="Review goals", type=TaskType(subtasks=("Today", "This week")), order=5),
        ),
        context_rules=(
            ContextRule.for_location("home", priority=2),
            ContextRule.for_time_slots(
                TimeSlot.EARLY_MORNING, TimeSlot.MORNING, TimeSlot.LATE_MORNING, priority=1
            ),
            ContextRule.for_day_categories(WEEKDAY, priority=1),
        ),
        is_default=True,
        color="#34C759",
    )


def weekend_template() -> RoutineTemplate:
    return RoutineTemplate(
        name="Weekend",
        description="Relaxed weekend morning routine",
        habits=(
            _coffee(0),
            _stretching(1, minutes=20),
            Habit(
                name="Read news",
                type=ExternalActionType(target="https://news.ycombinator.com", label="Hacker News"),
                order=2,
                is_optional=True,
            ),
        ),
        context_rules=(ContextRule.for_day_categories(WEEKEND, priority=1),),
        color="#FDCB6E",
    )


def afternoon_template() -> RoutineTemplate:
    return RoutineTemplate(
        name="Afternoon Focus",
        description="Afternoon productivity and evening prep",
        habits=(
            Habit(name="Healthy snack", order=0, color="#FF9500", is_optional=True),
            Habit(name="Focus block", type=TimerType(default_duration=1500.0), order=1, color="#5856D6"),
            Habit(name="Plan tomorrow", order=2, color="#FF3B30"),
        ),
        context_rules=(ContextRule.for_time_slots(TimeSlot.AFTERNOON, TimeSlot.EVENING, priority=3),),
        color="#FF9500",
    )


def sample_templates() -> list[RoutineTemplate]:
    """Fresh copies of the starter set; exactly one is flagged default."""

    return [office_template(), home_office_template(), weekend_template(), afternoon_template()]
