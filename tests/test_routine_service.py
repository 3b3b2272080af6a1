from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest
from sqlalchemy.exc import OperationalError

from habitflow.errors import (
    EmptyTemplateError,
    NoActiveSessionError,
    SessionAlreadyActiveError,
    TemplateNotFoundError,
)
from habitflow.models.context import WEEKDAY, ContextRule, RoutineContext, TimeSlot
from habitflow.models.habit import Habit
from habitflow.models.routine import RoutineTemplate
from habitflow.services.context import ContextProvider
from habitflow.services.routines import RoutineEvent


@pytest.fixture
def template(routine_service, template_factory) -> RoutineTemplate:
    return routine_service.add_template(template_factory("Morning", habit_count=3))


@pytest.fixture
def events(routine_service) -> list:
    received: list = []
    routine_service.subscribe(received.append)
    return received


def test_start_session(routine_service, template, events):
    session = routine_service.start_session(template)

    assert routine_service.current_session is session
    assert session.current_habit.name == "Morning 0"
    assert [e.event for e in events] == [RoutineEvent.SESSION_STARTED]
    assert routine_service.get_template(template.id).last_used_at == session.started_at
    assert routine_service.last_used_template.id == template.id


def test_second_start_fails_and_keeps_first_session(routine_service, template):
    first = routine_service.start_session(template)
    routine_service.complete_current_habit()

    with pytest.raises(SessionAlreadyActiveError) as excinfo:
        routine_service.start_session(template)

    assert excinfo.value.session_id == first.id
    assert routine_service.current_session is first
    assert first.current_habit_index == 1


def test_unregistered_template_rejected(routine_service, template_factory):
    with pytest.raises(TemplateNotFoundError):
        routine_service.start_session(template_factory("Stranger"))
    assert routine_service.current_session is None


def test_template_without_active_habits_rejected(routine_service):
    empty = routine_service.add_template(
        RoutineTemplate(name="Empty", habits=(Habit(name="Off", is_active=False),))
    )

    with pytest.raises(EmptyTemplateError):
        routine_service.start_session(empty)
    assert routine_service.current_session is None


@pytest.mark.parametrize(
    "call",
    [
        lambda s: s.complete_current_habit(),
        lambda s: s.skip_current_habit(),
        lambda s: s.go_to_previous_habit(),
        lambda s: s.complete_current_session(),
        lambda s: s.cancel_session(),
    ],
)
def test_operations_need_active_session(routine_service, call):
    with pytest.raises(NoActiveSessionError):
        call(routine_service)


def test_habit_operations_emit_events(routine_service, template, events):
    routine_service.start_session(template)

    routine_service.complete_current_habit(duration=10.0)
    routine_service.skip_current_habit(reason="busy")
    routine_service.go_to_previous_habit()

    assert [e.event for e in events] == [
        RoutineEvent.SESSION_STARTED,
        RoutineEvent.HABIT_COMPLETED,
        RoutineEvent.HABIT_SKIPPED,
        RoutineEvent.HABIT_UNDONE,
    ]
    assert events[-1].snapshot.current_habit_index == 1


def test_complete_session_delivers_summary(routine_service, template, summary_repo, events):
    routine_service.start_session(template)
    routine_service.complete_current_habit()
    routine_service.skip_current_habit()
    routine_service.complete_current_habit()

    summary = routine_service.complete_current_session()

    assert summary.completed_count == 2
    assert summary.skipped_count == 1
    assert summary.total_habits == 3
    assert summary.duration_seconds > 0
    assert summary_repo.rows == [summary]
    assert routine_service.current_session is None
    assert events[-1].event is RoutineEvent.SESSION_COMPLETED
    assert events[-1].snapshot.is_finalized


def test_complete_session_early_counts_remaining(routine_service, template):
    routine_service.start_session(template)
    routine_service.complete_current_habit()

    summary = routine_service.complete_current_session()

    assert summary.remaining_count == 2


def test_summary_store_failure_is_absorbed(routine_service, template, summary_repo):
    summary_repo.fail_with = OperationalError("insert", {}, Exception("locked"))
    routine_service.start_session(template)

    summary = routine_service.complete_current_session()

    assert summary.total_habits == 3
    assert routine_service.current_session is None


def test_cancel_session_delivers_no_summary(routine_service, template, summary_repo, events):
    session = routine_service.start_session(template)
    routine_service.complete_current_habit()

    routine_service.cancel_session()

    assert session.was_cancelled
    assert session.is_finalized
    assert summary_repo.rows == []
    assert routine_service.current_session is None
    assert events[-1].event is RoutineEvent.SESSION_CANCELLED


def test_new_session_after_cancel(routine_service, template):
    first = routine_service.start_session(template)
    routine_service.cancel_session()

    second = routine_service.start_session(template)

    assert second.id != first.id
    assert second.current_habit_index == 0


def test_conditional_selection_through_coordinator(
    routine_service, conditional_template, response_repo, events
):
    template = routine_service.add_template(conditional_template)
    session = routine_service.start_session(template)
    routine_service.complete_current_habit()
    habit = session.current_habit
    info = habit.conditional_info

    response = routine_service.select_conditional_option(
        info.option_by_text("Shoulder"), habit.id, info.question
    )

    assert response_repo.rows == [response]
    assert len(session.active_habits) == 6
    assert session.current_habit.name == "Shoulder rolls"
    assert [e.event for e in events][-2:] == [
        RoutineEvent.QUEUE_CHANGED,
        RoutineEvent.HABIT_COMPLETED,
    ]


def test_conditional_empty_path_emits_no_queue_change(routine_service, conditional_template, events):
    template = routine_service.add_template(conditional_template)
    session = routine_service.start_session(template)
    routine_service.complete_current_habit()
    habit = session.current_habit
    info = habit.conditional_info

    routine_service.select_conditional_option(info.option_by_text("None"), habit.id, info.question)

    assert RoutineEvent.QUEUE_CHANGED not in [e.event for e in events]
    assert session.current_habit.name == "Coffee"


def test_skip_conditional_through_coordinator(routine_service, conditional_template, response_repo):
    template = routine_service.add_template(conditional_template)
    session = routine_service.start_session(template)
    routine_service.complete_current_habit()
    habit = session.current_habit

    routine_service.skip_conditional_habit(habit.id, habit.conditional_info.question)

    assert response_repo.rows[0].was_skipped
    assert session.current_habit.name == "Coffee"


def test_reorder_remaining(routine_service, template, events):
    session = routine_service.start_session(template)
    first, second, third = session.remaining_habits

    routine_service.reorder_remaining([third, first, second])

    assert session.current_habit is third
    assert events[-1].event is RoutineEvent.QUEUE_CHANGED


def test_go_to_habit(routine_service, template, events):
    session = routine_service.start_session(template)
    routine_service.complete_current_habit()
    routine_service.complete_current_habit()

    routine_service.go_to_habit(0)

    assert session.current_habit_index == 0
    assert events[-1].event is RoutineEvent.HABIT_UNDONE


def test_failing_listener_does_not_break_session(routine_service, template, caplog):
    def explode(change):
        raise RuntimeError("listener bug")

    routine_service.subscribe(explode)

    session = routine_service.start_session(template)
    routine_service.complete_current_habit()

    assert session.current_habit_index == 1
    assert "Routine listener failed" in caplog.text


def test_unsubscribe(routine_service, template):
    received: list = []
    unsubscribe = routine_service.subscribe(received.append)
    unsubscribe()

    routine_service.start_session(template)

    assert received == []


def test_listener_can_subscribe_during_event(routine_service, template):
    late: list = []

    def add_late_listener(change):
        if change.event is RoutineEvent.SESSION_STARTED:
            routine_service.subscribe(late.append)

    routine_service.subscribe(add_late_listener)
    routine_service.start_session(template)
    routine_service.complete_current_habit()

    assert [c.event for c in late] == [RoutineEvent.HABIT_COMPLETED]


def test_only_one_default_template(routine_service, template_factory):
    first = routine_service.add_template(template_factory("First", is_default=True))
    second = routine_service.add_template(template_factory("Second", is_default=True))

    assert routine_service.default_template.id == second.id
    assert not routine_service.get_template(first.id).is_default


def test_update_template_can_move_default(routine_service, template_factory):
    first = routine_service.add_template(template_factory("First", is_default=True))
    second = routine_service.add_template(template_factory("Second"))

    routine_service.update_template(replace(second, is_default=True))

    assert routine_service.default_template.id == second.id
    assert not routine_service.get_template(first.id).is_default


def test_duplicate_template_rejected(routine_service, template):
    with pytest.raises(ValueError):
        routine_service.add_template(template)


def test_remove_template(routine_service, template):
    routine_service.remove_template(template.id)

    assert routine_service.get_template(template.id) is None
    with pytest.raises(TemplateNotFoundError):
        routine_service.remove_template(template.id)


def test_select_template_uses_registered_templates(routine_service, template_factory):
    office = routine_service.add_template(
        template_factory("Office", rules=(ContextRule.for_location("office", priority=2),))
    )
    routine_service.add_template(template_factory("Home", is_default=True))

    result = routine_service.select_template(RoutineContext(location="office"))

    assert result.template.id == office.id


def test_select_for_current_context_awaits_location(routine_service, template_factory, clock):
    office = routine_service.add_template(
        template_factory(
            "Office",
            rules=(
                ContextRule.for_location("office", priority=2),
                ContextRule.for_day_categories(WEEKDAY),
                ContextRule.for_time_slots(TimeSlot.MORNING),
            ),
        )
    )

    async def lookup():
        return "office"

    provider = ContextProvider(lookup, clock=clock)

    result = asyncio.run(routine_service.select_for_current_context(provider))

    assert result.template.id == office.id
    assert result.score == 4 + routine_service.selector.priority_boost
