"""Habit records, habit type variants and conditional branching payloads."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar, Iterable, Optional, Union
from uuid import UUID, uuid4

MAX_OPTIONS = 4


class HabitKind(str, Enum):
    TASK = "task"
    TIMER = "timer"
    EXTERNAL_ACTION = "external_action"
    TRACKING = "tracking"
    CONDITIONAL = "conditional"


@dataclass(frozen=True, slots=True)
class TaskType:
    """Simple checkbox, optionally with subtasks."""

    kind: ClassVar[HabitKind] = HabitKind.TASK
    subtasks: tuple[str, ...] = ()

    def describe(self) -> str:
        if self.subtasks:
            return f"Task ({len(self.subtasks)} steps)"
        return "Simple task"


@dataclass(frozen=True, slots=True)
class TimerType:
    kind: ClassVar[HabitKind] = HabitKind.TIMER
    default_duration: float = 300.0

    def __post_init__(self) -> None:
        if self.default_duration < 0:
            raise ValueError("Timer duration cannot be negative")

    def describe(self) -> str:
        return f"Timer ({int(self.default_duration // 60)}min)"


@dataclass(frozen=True, slots=True)
class ExternalActionType:
    """Open an app, website or shortcut and wait for confirmation."""

    kind: ClassVar[HabitKind] = HabitKind.EXTERNAL_ACTION
    target: str = ""
    label: str = ""

    def describe(self) -> str:
        return f"Open {self.label or self.target}"


@dataclass(frozen=True, slots=True)
class TrackingType:
    """Counter or measurement, e.g. a supplement checklist."""

    kind: ClassVar[HabitKind] = HabitKind.TRACKING
    items: tuple[str, ...] = ()
    unit: Optional[str] = None

    def describe(self) -> str:
        if self.items:
            return f"{len(self.items)} items"
        return f"Track {self.unit}" if self.unit else "Tracking"


@dataclass(frozen=True, slots=True)
class ConditionalType:
    kind: ClassVar[HabitKind] = HabitKind.CONDITIONAL
    info: "ConditionalHabitInfo" = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if not isinstance(self.info, ConditionalHabitInfo):
            raise TypeError("ConditionalType requires a ConditionalHabitInfo payload")

    def describe(self) -> str:
        return f"Question ({len(self.info.options)} options)"


HabitType = Union[TaskType, TimerType, ExternalActionType, TrackingType, ConditionalType]


@dataclass(frozen=True, slots=True)
class Habit:
    """A single actionable item within a routine."""

    name: str
    type: HabitType = field(default_factory=TaskType)
    id: UUID = field(default_factory=uuid4)
    order: int = 0
    color: str = "#007AFF"
    is_optional: bool = False
    is_active: bool = True
    notes: Optional[str] = None

    @property
    def kind(self) -> HabitKind:
        return self.type.kind

    @property
    def is_conditional(self) -> bool:
        return isinstance(self.type, ConditionalType)

    @property
    def conditional_info(self) -> Optional["ConditionalHabitInfo"]:
        return self.type.info if isinstance(self.type, ConditionalType) else None

    @property
    def estimated_duration(self) -> float:
        """Rough duration in seconds, used for template summaries."""

        habit_type = self.type
        if isinstance(habit_type, TaskType):
            return 60.0 + 45.0 * len(habit_type.subtasks)
        if isinstance(habit_type, TimerType):
            return habit_type.default_duration
        if isinstance(habit_type, ExternalActionType):
            return 300.0
        if isinstance(habit_type, TrackingType):
            return 30.0 * len(habit_type.items) if habit_type.items else 60.0
        return 30.0

    def fresh_copy(self, **changes) -> "Habit":
        """Return an equal habit carrying a new identity."""

        changes.setdefault("id", uuid4())
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class ConditionalOption:
    """One answer to a conditional question and the habit path it leads to."""

    text: str
    habits: tuple[Habit, ...] = ()
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        # Paths own their habits; nothing is shared with the caller or another path.
        object.__setattr__(
            self, "habits", tuple(h.fresh_copy() if isinstance(h, Habit) else h for h in self.habits)
        )

    @property
    def is_empty_path(self) -> bool:
        return not self.habits


@dataclass(frozen=True, slots=True)
class ConditionalHabitInfo:
    question: str
    options: tuple[ConditionalOption, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", tuple(self.options)[:MAX_OPTIONS])

    def option(self, option_id: UUID) -> Optional[ConditionalOption]:
        return next((opt for opt in self.options if opt.id == option_id), None)

    def option_by_text(self, text: str) -> Optional[ConditionalOption]:
        wanted = text.strip().lower()
        return next((opt for opt in self.options if opt.text.strip().lower() == wanted), None)


def conditional_habit(
    name: str,
    question: str,
    options: Iterable[ConditionalOption],
    **kwargs,
) -> Habit:
    """Build a habit that asks ``question`` and branches on the answer."""

    info = ConditionalHabitInfo(question=question, options=tuple(options))
    return Habit(name=name, type=ConditionalType(info=info), **kwargs)
