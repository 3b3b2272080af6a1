"""Command line entry points for HabitFlow."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import click

from .app import AppContext, create_app_context
from .config import BaseConfig
from .errors import RoutineError
from .logging_config import setup_logging
from .models.context import RoutineContext, TimeSlot
from .models.habit import Habit
from .models.routine import RoutineTemplate
from .services.samples import sample_templates
from .services.selector import SmartRoutineSelector

TIME_SLOTS = [slot.value for slot in TimeSlot]


@click.group()
@click.option("--verbose", is_flag=True, default=False, help="Log engine activity to the console")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Context-aware habit routines."""

    config = BaseConfig()
    if verbose:
        setup_logging(config)
    ctx.obj = config


@cli.command("select")
@click.option("--location", default=None, help="Location category, e.g. home or office")
@click.option("--time-slot", type=click.Choice(TIME_SLOTS), default=None)
@click.option("--day-category", default=None, help="Day category, e.g. weekday or weekend")
@click.pass_obj
def select_command(
    config: BaseConfig,
    location: Optional[str],
    time_slot: Optional[str],
    day_category: Optional[str],
) -> None:
    """Show which starter routine fits a context."""

    context = RoutineContext(
        location=location,
        time_slot=TimeSlot(time_slot) if time_slot else None,
        day_category=day_category,
    )
    selector = SmartRoutineSelector(priority_boost=config.PRIORITY_BOOST)
    result = selector.select_best_template(sample_templates(), context)
    if result.template is None:
        click.echo(result.reason)
        return
    click.echo(f"{result.template.name} ({result.template.formatted_duration})")
    click.echo(result.reason)


@cli.command("run")
@click.option("--template", "template_name", default=None, help="Starter routine to run by name")
@click.pass_obj
def run_command(config: BaseConfig, template_name: Optional[str]) -> None:
    """Walk through a routine one habit at a time."""

    app = create_app_context(config)
    template = _resolve_template(app, template_name)
    if template is None:
        raise click.ClickException(f"No routine named '{template_name}'")

    session = app.routines.start_session(template)
    click.echo(f"Starting '{template.name}'")

    while not session.is_completed:
        habit = session.current_habit
        if habit is None:
            break
        position = session.current_habit_index + 1
        click.echo(f"[{position}/{len(session.active_habits)}] {habit.name}: {habit.type.describe()}")
        try:
            keep_going = (
                _answer_conditional(app, habit) if habit.is_conditional else _act_on_habit(app, habit)
            )
        except RoutineError as exc:
            click.echo(exc.user_message)
            continue
        if not keep_going:
            app.routines.cancel_session()
            click.echo("Routine cancelled.")
            return

    summary = app.routines.complete_current_session()
    click.echo(
        f"Done: {summary.completed_count} completed, {summary.skipped_count} skipped "
        f"in {int(summary.duration_seconds // 60)} min"
    )


@cli.command("responses")
@click.option("--export", "export_path", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.pass_obj
def responses_command(config: BaseConfig, export_path: Optional[Path]) -> None:
    """Summarize answers given to conditional habits."""

    app = create_app_context(config)
    stats = app.response_log.analytics()
    click.echo(f"Responses: {stats.total_responses}")
    click.echo(f"Answered: {stats.completed_responses}")
    click.echo(f"Skipped: {stats.skipped_responses} ({stats.skip_rate:.0%})")
    click.echo(f"Questions answered: {stats.unique_habits_answered}")
    if export_path is not None:
        export_path.write_text(app.response_log.export_json(), encoding="utf-8")
        click.echo(f"Export written: {export_path}")


def _resolve_template(app: AppContext, name: Optional[str]) -> Optional[RoutineTemplate]:
    if name:
        wanted = name.strip().lower()
        return next((t for t in app.routines.templates if t.name.lower() == wanted), None)

    result = asyncio.run(app.routines.select_for_current_context(app.context_provider))
    click.echo(result.reason)
    return result.template


def _act_on_habit(app: AppContext, habit: Habit) -> bool:
    action = click.prompt(
        "[c]omplete, [s]kip, [b]ack, [q]uit",
        type=click.Choice(["c", "s", "b", "q"]),
        default="c",
        show_choices=False,
    )
    if action == "q":
        return False
    if action == "b":
        app.routines.go_to_previous_habit()
    elif action == "s":
        if not habit.is_optional:
            click.echo("This habit can't be skipped.")
        else:
            app.routines.skip_current_habit()
    else:
        app.routines.complete_current_habit()
    return True


def _answer_conditional(app: AppContext, habit: Habit) -> bool:
    info = habit.conditional_info
    if info is None:
        raise click.ClickException(f"'{habit.name}' has no question to answer")
    click.echo(info.question)
    for number, option in enumerate(info.options, start=1):
        click.echo(f"  {number}. {option.text}")

    answer = click.prompt("Answer (number, s=skip, b=back, q=quit)", default="1").strip().lower()
    if answer == "q":
        return False
    if answer == "b":
        app.routines.go_to_previous_habit()
    elif answer == "s":
        app.routines.skip_conditional_habit(habit.id, info.question)
    elif answer.isdigit() and 1 <= int(answer) <= len(info.options):
        option = info.options[int(answer) - 1]
        app.routines.select_conditional_option(option, habit.id, info.question)
        if option.habits:
            click.echo(f"Added {len(option.habits)} habit(s) for '{option.text}'")
    else:
        click.echo("Please pick one of the listed options.")
    return True


def main() -> None:
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
