"""Context rules and the situational snapshot they are matched against."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

WEEKDAY = "weekday"
WEEKEND = "weekend"
UNKNOWN_LOCATION = "unknown"


class TimeSlot(str, Enum):
    """Parts of the day a routine can be bound to."""

    EARLY_MORNING = "early_morning"  # 05:00 - 07:00
    MORNING = "morning"  # 07:00 - 09:00
    LATE_MORNING = "late_morning"  # 09:00 - 11:00
    AFTERNOON = "afternoon"  # 11:00 - 17:00
    EVENING = "evening"  # 17:00 - 21:00
    NIGHT = "night"  # 21:00 - 05:00

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @classmethod
    def from_datetime(cls, moment: datetime) -> "TimeSlot":
        hour = moment.hour
        if 5 <= hour < 7:
            return cls.EARLY_MORNING
        if 7 <= hour < 9:
            return cls.MORNING
        if 9 <= hour < 11:
            return cls.LATE_MORNING
        if 11 <= hour < 17:
            return cls.AFTERNOON
        if 17 <= hour < 21:
            return cls.EVENING
        return cls.NIGHT


class ContextRuleType(str, Enum):
    LOCATION = "location"
    TIME_SLOT = "time_slot"
    DAY_CATEGORY = "day_category"


@dataclass(frozen=True, slots=True)
class RoutineContext:
    """Point-in-time snapshot of the user's situation.

    Any field may be ``None`` (unknown); rules referencing an unknown field never match.
    """

    location: Optional[str] = None
    time_slot: Optional[TimeSlot] = None
    day_category: Optional[str] = None
    captured_at: Optional[datetime] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.location == UNKNOWN_LOCATION or self.location == "":
            object.__setattr__(self, "location", None)
        if self.time_slot is not None and not isinstance(self.time_slot, TimeSlot):
            object.__setattr__(self, "time_slot", TimeSlot(self.time_slot))

    @property
    def is_empty(self) -> bool:
        return self.location is None and self.time_slot is None and self.day_category is None

    def value_for(self, rule_type: ContextRuleType) -> Optional[str]:
        if rule_type is ContextRuleType.LOCATION:
            return self.location
        if rule_type is ContextRuleType.TIME_SLOT:
            return self.time_slot.value if self.time_slot is not None else None
        return self.day_category

    def describe(self) -> list[str]:
        """Readable fragments such as "it's morning" or "you're at office"."""

        parts: list[str] = []
        if self.time_slot is not None:
            parts.append(f"it's {self.time_slot.display_name.lower()}")
        if self.day_category == WEEKEND:
            parts.append("it's the weekend")
        elif self.day_category == WEEKDAY:
            parts.append("it's a weekday")
        elif self.day_category is not None:
            parts.append(f"it's a {self.day_category} day")
        if self.location is not None:
            parts.append(f"you're at {self.location}")
        return parts


def _normalize_values(rule_type: ContextRuleType, values: Iterable[str]) -> frozenset[str]:
    if isinstance(values, str):
        values = [values]
    if rule_type is ContextRuleType.TIME_SLOT:
        return frozenset(TimeSlot(value).value for value in values)
    return frozenset(str(value) for value in values)


@dataclass(frozen=True, slots=True)
class ContextRule:
    """A template's declaration of when it is relevant, with a weight."""

    type: ContextRuleType
    values: frozenset[str]
    priority: int = 1

    def __post_init__(self) -> None:
        rule_type = ContextRuleType(self.type)
        object.__setattr__(self, "type", rule_type)
        object.__setattr__(self, "values", _normalize_values(rule_type, self.values))

        if isinstance(self.priority, bool) or not isinstance(self.priority, int) or self.priority <= 0:
            raise ValueError(f"Rule priority must be a positive integer, got {self.priority!r}")
        if not self.values:
            raise ValueError(f"A {rule_type.value} rule needs at least one value")
        if rule_type is ContextRuleType.LOCATION and len(self.values) != 1:
            raise ValueError("A location rule matches exactly one location category")

    @classmethod
    def for_location(cls, location: str, *, priority: int = 1) -> "ContextRule":
        return cls(ContextRuleType.LOCATION, frozenset({location}), priority)

    @classmethod
    def for_time_slots(cls, *slots: TimeSlot | str, priority: int = 1) -> "ContextRule":
        return cls(ContextRuleType.TIME_SLOT, frozenset(slots), priority)

    @classmethod
    def for_day_categories(cls, *categories: str, priority: int = 1) -> "ContextRule":
        return cls(ContextRuleType.DAY_CATEGORY, frozenset(categories), priority)

    def matches(self, context: RoutineContext) -> bool:
        value = context.value_for(self.type)
        return value is not None and value in self.values

    def describe(self) -> str:
        joined = ", ".join(sorted(self.values))
        if self.type is ContextRuleType.LOCATION:
            return f"you're at {joined}"
        if self.type is ContextRuleType.TIME_SLOT:
            return f"it's {joined.replace('_', ' ')}"
        return f"it's a {joined} day"
