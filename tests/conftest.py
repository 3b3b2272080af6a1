"""Pytest configuration and shared fixtures for HabitFlow tests.

This module provides database fixtures, habit and template factories, and a fake
response log so the routine engine can be exercised without touching the real
app database.
"""

from __future__ import annotations

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional
from uuid import UUID

import pytest
from sqlmodel import Session, SQLModel, create_engine

# Import all models to ensure they're registered with SQLModel metadata
from habitflow.models import (
    ConditionalOption,
    ConditionalResponse,
    ContextRule,
    Habit,
    RoutineTemplate,
    SessionSummary,
    TimerType,
    conditional_habit,
)
from habitflow.services.conditional import ConditionalHabitService
from habitflow.services.responses import ResponseLoggingService
from habitflow.services.routines import RoutineService

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching the ``Callable[[], Session]`` repositories expect."""

    def factory():
        return Session(db_engine, expire_on_commit=False)

    return factory


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Deterministic clock; every call advances by ``step``."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=30)):
        self.now = start or datetime(2025, 3, 3, 7, 30, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Fake repositories
# =============================================================================


class FakeResponseRepo:
    """In-memory response log; ``fail_with`` makes every append raise."""

    def __init__(self) -> None:
        self.rows: list[ConditionalResponse] = []
        self.fail_with: Optional[Exception] = None

    def append(self, response: ConditionalResponse) -> ConditionalResponse:
        if self.fail_with is not None:
            raise self.fail_with
        self.rows.append(response)
        return response

    def get_by_id(self, response_id: UUID) -> Optional[ConditionalResponse]:
        return next((r for r in self.rows if r.id == response_id), None)

    def list_all(self) -> list[ConditionalResponse]:
        return sorted(self.rows, key=lambda r: r.timestamp)

    def list_for_habit(self, habit_id: UUID) -> list[ConditionalResponse]:
        return [r for r in self.list_all() if r.habit_id == habit_id]

    def list_for_routine(self, routine_id: UUID) -> list[ConditionalResponse]:
        return [r for r in self.list_all() if r.routine_id == routine_id]


class FakeSummaryRepo:
    def __init__(self) -> None:
        self.rows: list[SessionSummary] = []
        self.fail_with: Optional[Exception] = None

    def record(self, summary: SessionSummary) -> SessionSummary:
        if self.fail_with is not None:
            raise self.fail_with
        self.rows.append(summary)
        return summary

    def get(self, session_id: UUID) -> Optional[SessionSummary]:
        return next((s for s in self.rows if s.session_id == session_id), None)

    def list_recent(self, limit: int = 20) -> list[SessionSummary]:
        return sorted(self.rows, key=lambda s: s.ended_at, reverse=True)[:limit]

    def list_for_template(self, template_id: UUID) -> list[SessionSummary]:
        return [s for s in self.rows if s.template_id == template_id]


@pytest.fixture
def response_repo() -> FakeResponseRepo:
    return FakeResponseRepo()


@pytest.fixture
def summary_repo() -> FakeSummaryRepo:
    return FakeSummaryRepo()


@pytest.fixture
def response_log(response_repo) -> ResponseLoggingService:
    return ResponseLoggingService(response_repo)


@pytest.fixture
def conditional_service(response_log) -> ConditionalHabitService:
    return ConditionalHabitService(response_log)


@pytest.fixture
def routine_service(conditional_service, summary_repo, clock) -> RoutineService:
    return RoutineService(conditional_service, summary_repository=summary_repo, clock=clock)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def habit_factory():
    """Factory for plain task habits ordered by creation."""

    counter = {"order": 0}

    def _create_habit(name: str | None = None, **kwargs) -> Habit:
        order = kwargs.pop("order", counter["order"])
        counter["order"] = order + 1
        return Habit(name=name or f"Habit {order}", order=order, **kwargs)

    return _create_habit


@pytest.fixture
def template_factory(habit_factory):
    """Factory for templates; ``habit_count`` task habits unless ``habits`` is given."""

    def _create_template(
        name: str = "Test Routine",
        *,
        habits: tuple[Habit, ...] | None = None,
        habit_count: int = 3,
        rules: tuple[ContextRule, ...] = (),
        is_default: bool = False,
    ) -> RoutineTemplate:
        if habits is None:
            habits = tuple(habit_factory(f"{name} {i}", order=i) for i in range(habit_count))
        return RoutineTemplate(
            name=name, habits=habits, context_rules=rules, is_default=is_default
        )

    return _create_template


@pytest.fixture
def pain_habit() -> Habit:
    """Conditional "Any pain today?" with a two-habit, a one-habit and an empty path."""

    return conditional_habit(
        "Pain Assessment",
        "Any pain today?",
        [
            ConditionalOption(
                text="Shoulder",
                habits=(
                    Habit(name="Shoulder rolls", type=TimerType(default_duration=120.0)),
                    Habit(name="Doorway stretch", type=TimerType(default_duration=90.0)),
                ),
            ),
            ConditionalOption(text="Knee", habits=(Habit(name="Knee circles"),)),
            ConditionalOption(text="None"),
        ],
        order=1,
    )


@pytest.fixture
def conditional_template(pain_habit) -> RoutineTemplate:
    """[Wake up, Pain Assessment, Coffee, Journal]"""

    return RoutineTemplate(
        name="Morning",
        habits=(
            Habit(name="Wake up", order=0),
            pain_habit,
            Habit(name="Coffee", order=2),
            Habit(name="Journal", order=3, is_optional=True),
        ),
    )
