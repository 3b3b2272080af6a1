"""Response logging for conditional habits, with history and analytics helpers."""

from __future__ import annotations

import json
from collections import Counter, defaultdict
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from ..domain.repositories.response_log import ResponseLogRepository
from ..errors import InvalidExportRecordError, UnsupportedExportVersionError
from ..logging_config import get_logger
from ..models.response import ConditionalResponse
from ..models.routine import utcnow

logger = get_logger(__name__)

EXPORT_VERSION = 2


@dataclass(frozen=True, slots=True)
class OptionStatistics:
    option_id: Optional[UUID]
    option_text: str
    selection_count: int
    selection_percentage: float
    last_selected: Optional[datetime]


@dataclass(frozen=True, slots=True)
class ResponseAnalytics:
    total_responses: int = 0
    completed_responses: int = 0
    skipped_responses: int = 0
    unique_habits_answered: int = 0
    unique_routines_with_responses: int = 0
    average_responses_per_habit: float = 0.0
    skip_rate: float = 0.0
    last_response_at: Optional[datetime] = None


class ResponseLoggingService:
    """Writes conditional responses to an append-only log and reads them back."""

    def __init__(self, repository: ResponseLogRepository, *, history_limit: int = 20) -> None:
        self.repository = repository
        self.history_limit = history_limit

    def log_response(self, response: ConditionalResponse) -> ConditionalResponse:
        stored = self.repository.append(response)
        logger.info(
            "Recorded conditional response",
            extra={
                "habit_id": str(response.habit_id),
                "option": response.selected_option_text,
                "was_skipped": response.was_skipped,
            },
        )
        return stored

    def responses_for_habit(self, habit_id: UUID) -> list[ConditionalResponse]:
        return self.repository.list_for_habit(habit_id)

    def responses_for_routine(self, routine_id: UUID) -> list[ConditionalResponse]:
        return self.repository.list_for_routine(routine_id)

    def latest_response(self, habit_id: UUID) -> Optional[ConditionalResponse]:
        responses = self.repository.list_for_habit(habit_id)
        return max(responses, key=lambda r: r.timestamp) if responses else None

    def history(self, habit_id: UUID, limit: Optional[int] = None) -> list[ConditionalResponse]:
        """Newest first, capped at ``limit`` (defaults to the configured history limit)."""

        responses = sorted(
            self.repository.list_for_habit(habit_id), key=lambda r: r.timestamp, reverse=True
        )
        return responses[: limit if limit is not None else self.history_limit]

    def skip_rate(self, habit_id: UUID) -> float:
        responses = self.repository.list_for_habit(habit_id)
        if not responses:
            return 0.0
        return sum(1 for r in responses if r.was_skipped) / len(responses)

    def response_counts(self, habit_id: UUID) -> dict[str, int]:
        """How many times each option text was chosen; skips are excluded."""

        return dict(
            Counter(
                r.selected_option_text
                for r in self.repository.list_for_habit(habit_id)
                if not r.was_skipped
            )
        )

    def option_statistics(self, habit_id: UUID) -> list[OptionStatistics]:
        answered = [r for r in self.repository.list_for_habit(habit_id) if not r.was_skipped]
        if not answered:
            return []

        grouped: dict[Optional[UUID], list[ConditionalResponse]] = defaultdict(list)
        for response in answered:
            grouped[response.selected_option_id].append(response)

        stats = [
            OptionStatistics(
                option_id=option_id,
                option_text=group[-1].selected_option_text,
                selection_count=len(group),
                selection_percentage=len(group) / len(answered) * 100,
                last_selected=max(r.timestamp for r in group),
            )
            for option_id, group in grouped.items()
        ]
        stats.sort(key=lambda s: s.selection_count, reverse=True)
        return stats

    def analytics(self) -> ResponseAnalytics:
        responses = self.repository.list_all()
        total = len(responses)
        if total == 0:
            return ResponseAnalytics()

        skipped = sum(1 for r in responses if r.was_skipped)
        unique_habits = len({r.habit_id for r in responses})
        return ResponseAnalytics(
            total_responses=total,
            completed_responses=total - skipped,
            skipped_responses=skipped,
            unique_habits_answered=unique_habits,
            unique_routines_with_responses=len({r.routine_id for r in responses}),
            average_responses_per_habit=total / unique_habits,
            skip_rate=skipped / total,
            last_response_at=max(r.timestamp for r in responses),
        )

    def export_json(self) -> str:
        """Serialize every response plus current analytics."""

        payload = {
            "version": EXPORT_VERSION,
            "exported_at": utcnow().isoformat(),
            "responses": [r.to_dict() for r in self.repository.list_all()],
            "analytics": asdict(self.analytics()),
        }
        return json.dumps(payload, default=str, indent=2)

    def import_json(self, payload: str) -> int:
        """Append responses from an export, skipping ids already in the log.

        Every record is parsed before anything is written, so an unreadable
        record raises ``InvalidExportRecordError`` and leaves the log untouched.
        Returns the number of responses added.
        """

        data = json.loads(payload)
        version = int(data.get("version", 0))
        if version > EXPORT_VERSION:
            raise UnsupportedExportVersionError(version, EXPORT_VERSION)

        parsed: list[ConditionalResponse] = []
        for index, raw in enumerate(data.get("responses", [])):
            try:
                parsed.append(ConditionalResponse.from_dict(raw))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise InvalidExportRecordError(index, f"{type(exc).__name__}: {exc}") from exc

        added = 0
        seen: set[UUID] = set()
        for response in parsed:
            if not response.question.strip() or not response.selected_option_text.strip():
                continue
            if response.id in seen or self.repository.get_by_id(response.id) is not None:
                continue
            self.repository.append(response)
            seen.add(response.id)
            added += 1

        logger.info("Imported conditional responses", extra={"added": added})
        return added
