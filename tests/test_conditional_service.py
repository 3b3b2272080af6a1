from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from habitflow.errors import HabitNotFoundError, SessionCompletedError, SessionFinalizedError
from habitflow.models.habit import ConditionalHabitInfo, ConditionalOption, Habit
from habitflow.models.response import SKIPPED_OPTION_TEXT
from habitflow.models.routine import RoutineTemplate
from habitflow.services.session import RoutineSession


@pytest.fixture
def session(conditional_template, clock) -> RoutineSession:
    session = RoutineSession(conditional_template, clock=clock)
    session.complete_current_habit()  # Wake up
    return session


def _answer(service, session, text):
    habit = session.current_habit
    info = habit.conditional_info
    option = info.option_by_text(text)
    return service.handle_option_selection(option, habit.id, info.question, session)


def test_empty_path_only_advances(conditional_service, session):
    before = len(session.active_habits)

    _answer(conditional_service, session, "None")

    assert len(session.active_habits) == before
    assert session.current_habit.name == "Coffee"
    assert session.current_habit_index == 2


def test_selected_path_is_spliced_after_conditional(conditional_service, session):
    before = len(session.active_habits)

    _answer(conditional_service, session, "Shoulder")

    assert len(session.active_habits) == before + 2
    assert session.current_habit.name == "Shoulder rolls"
    session.complete_current_habit()
    assert session.current_habit.name == "Doorway stretch"
    session.complete_current_habit()
    assert session.current_habit.name == "Coffee"


def test_conditional_counts_as_one_completion(conditional_service, session):
    conditional = session.current_habit

    _answer(conditional_service, session, "Shoulder")

    assert len(session.completions) == 2
    last = session.completions[-1]
    assert last.habit_id == conditional.id
    assert not last.was_skipped
    assert last.notes == "Selected: Shoulder"


def test_path_habits_are_fresh_copies(conditional_service, session):
    option = session.current_habit.conditional_info.option_by_text("Shoulder")
    original_ids = {h.id for h in option.habits}

    _answer(conditional_service, session, "Shoulder")
    injected = session.active_habits[2:4]

    assert [h.name for h in injected] == ["Shoulder rolls", "Doorway stretch"]
    assert not original_ids & {h.id for h in injected}


def test_same_path_twice_yields_distinct_identities(conditional_service, pain_habit, clock):
    template = RoutineTemplate(
        name="Double", habits=(pain_habit, pain_habit.fresh_copy(order=2))
    )
    session = RoutineSession(template, clock=clock)

    _answer(conditional_service, session, "Knee")
    session.complete_current_habit()  # Knee circles
    _answer(conditional_service, session, "Knee")

    ids = [h.id for h in session.active_habits]
    assert len(ids) == len(set(ids))


def test_selection_is_logged(conditional_service, response_repo, session):
    habit = session.current_habit

    response = _answer(conditional_service, session, "Knee")

    assert response_repo.rows == [response]
    assert response.habit_id == habit.id
    assert response.question == "Any pain today?"
    assert response.selected_option_text == "Knee"
    assert response.routine_id == session.id
    assert not response.was_skipped


def test_skip_logs_skipped_response_and_injects_nothing(conditional_service, response_repo, session):
    habit = session.current_habit
    before = len(session.active_habits)

    response = conditional_service.handle_skip(habit.id, "Any pain today?", session, reason="later")

    assert response.was_skipped
    assert response.selected_option_id is None
    assert response.selected_option_text == SKIPPED_OPTION_TEXT
    assert response_repo.rows == [response]
    assert len(session.active_habits) == before
    assert session.completions[-1].was_skipped
    assert session.current_habit.name == "Coffee"


def test_corrupted_path_is_treated_as_empty(conditional_service, session, caplog):
    habit = session.current_habit
    broken = ConditionalOption(text="Broken", habits=(Habit(name="Fine"), "not a habit"))
    before = len(session.active_habits)

    conditional_service.handle_option_selection(broken, habit.id, "Any pain today?", session)

    assert len(session.active_habits) == before
    assert session.current_habit.name == "Coffee"
    assert "could not be applied" in caplog.text


def test_missing_habit_list_is_treated_as_empty(conditional_service, session):
    habit = session.current_habit
    option = SimpleNamespace(id=uuid4(), text="Ghost", habits=None)

    conditional_service.handle_option_selection(option, habit.id, "Any pain today?", session)

    assert session.current_habit.name == "Coffee"


def test_wrong_habit_id_is_rejected_without_logging(conditional_service, response_repo, session):
    option = session.current_habit.conditional_info.options[0]

    with pytest.raises(HabitNotFoundError):
        conditional_service.handle_option_selection(option, uuid4(), "Any pain today?", session)
    assert response_repo.rows == []
    assert session.current_habit_index == 1


def test_completed_session_rejects_answers(conditional_service, response_repo, template_factory, clock):
    session = RoutineSession(template_factory(habit_count=1), clock=clock)
    session.complete_current_habit()

    with pytest.raises(SessionCompletedError):
        conditional_service.handle_skip(uuid4(), "?", session)
    assert response_repo.rows == []


def test_finalized_session_rejects_answers(conditional_service, session):
    habit = session.current_habit
    session.finalize(cancelled=True)

    with pytest.raises(SessionFinalizedError):
        conditional_service.handle_skip(habit.id, "Any pain today?", session)


def test_log_failure_does_not_block_progress(conditional_service, response_repo, session):
    response_repo.fail_with = OperationalError("insert", {}, Exception("disk full"))

    _answer(conditional_service, session, "Knee")

    assert session.current_habit.name == "Knee circles"


def test_unexpected_log_failure_does_not_block_progress(
    conditional_service, response_repo, session, caplog
):
    response_repo.fail_with = OSError("log file unavailable")

    _answer(conditional_service, session, "Knee")

    assert session.current_habit.name == "Knee circles"
    assert session.current_habit_index == 2
    assert "Failed to record conditional response" in caplog.text


def test_unexpected_log_failure_does_not_block_skip(conditional_service, response_repo, session):
    response_repo.fail_with = OSError("log file unavailable")
    habit = session.current_habit

    conditional_service.handle_skip(habit.id, "Any pain today?", session)

    assert session.current_habit.name == "Coffee"
    assert session.completions[-1].was_skipped


def test_undo_onto_conditional_retracts_injected_path(conditional_service, session):
    before = len(session.active_habits)
    _answer(conditional_service, session, "Shoulder")

    session.go_to_previous_habit()

    assert len(session.active_habits) == before
    assert session.current_habit.name == "Pain Assessment"
    _answer(conditional_service, session, "Knee")
    assert session.current_habit.name == "Knee circles"
    assert len(session.active_habits) == before + 1


def test_undo_within_injected_path_keeps_it(conditional_service, session):
    _answer(conditional_service, session, "Shoulder")
    session.complete_current_habit()  # Shoulder rolls

    session.go_to_previous_habit()

    assert session.current_habit.name == "Shoulder rolls"
    assert [h.name for h in session.active_habits][2:4] == ["Shoulder rolls", "Doorway stretch"]


def test_go_to_habit_before_conditional_retracts_path(conditional_service, session):
    _answer(conditional_service, session, "Shoulder")
    session.complete_current_habit()

    session.go_to_habit(0)

    assert [h.name for h in session.active_habits] == [
        "Wake up",
        "Pain Assessment",
        "Coffee",
        "Journal",
    ]


def test_validate_accepts_sample_question(conditional_service, pain_habit):
    result = conditional_service.validate(pain_habit.conditional_info)

    assert result.is_valid
    assert result.option_count == 3
    assert result.total_habits_in_paths == 3
    assert result.warning_count == 0


def test_validate_reports_problems(conditional_service):
    info = ConditionalHabitInfo(
        question="  ",
        options=(ConditionalOption(text="Yes"), ConditionalOption(text="yes"), ConditionalOption(text="")),
    )

    result = conditional_service.validate(info)

    assert not result.is_valid
    assert "Question cannot be empty" in result.issues
    assert "Option texts must be unique" in result.issues
    assert "Option 3 text cannot be empty" in result.issues


def test_validate_requires_an_option(conditional_service):
    result = conditional_service.validate(ConditionalHabitInfo(question="Ready?"))

    assert not result.is_valid
    assert "At least one option is required" in result.issues


def test_options_are_capped_at_four():
    info = ConditionalHabitInfo(
        question="Pick", options=tuple(ConditionalOption(text=str(n)) for n in range(6))
    )

    assert len(info.options) == 4
