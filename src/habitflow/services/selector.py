"""Context-aware routine template selection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence

from ..logging_config import get_logger
from ..models.context import ContextRule, ContextRuleType, RoutineContext
from ..models.routine import RoutineTemplate

logger = get_logger(__name__)

DEFAULT_PRIORITY_BOOST = 1000


@dataclass(frozen=True, slots=True)
class TemplateScore:
    """Score breakdown for one candidate template."""

    template: RoutineTemplate
    rule_score: int
    matched_rules: tuple[ContextRule, ...]
    boost: int

    @property
    def total(self) -> int:
        return self.rule_score + self.boost if self.rule_score > 0 else 0

    @property
    def is_relevant(self) -> bool:
        return self.rule_score > 0


class SelectionResult(NamedTuple):
    template: Optional[RoutineTemplate]
    reason: str
    score: int = 0


class SmartRoutineSelector:
    """Scores candidate templates against a context and picks the best fit.

    A template's score is the sum of priorities of its rules that match the
    context. Any positive score is lifted by ``priority_boost`` so a relevant
    template always outranks the default one. Equal top scores go to the earliest
    candidate in the list. With no relevant template the first ``is_default``
    template is returned, or ``None``.

    The selector is stateless and never suspends; callers refresh the context
    before calling it.
    """

    def __init__(self, priority_boost: int = DEFAULT_PRIORITY_BOOST) -> None:
        if priority_boost <= 0:
            raise ValueError("priority_boost must be positive")
        self.priority_boost = priority_boost

    def score(self, template: RoutineTemplate, context: RoutineContext) -> TemplateScore:
        matched = tuple(rule for rule in template.context_rules if rule.matches(context))
        rule_score = sum(rule.priority for rule in matched)
        return TemplateScore(
            template=template,
            rule_score=rule_score,
            matched_rules=matched,
            boost=self.priority_boost,
        )

    def rank(
        self, candidates: Sequence[RoutineTemplate], context: RoutineContext
    ) -> list[TemplateScore]:
        """All candidates ordered best first; ties keep input order."""

        scores = [self.score(template, context) for template in candidates]
        return sorted(scores, key=lambda s: s.total, reverse=True)

    def select_best_template(
        self, candidates: Sequence[RoutineTemplate], context: RoutineContext
    ) -> SelectionResult:
        if not candidates:
            return SelectionResult(None, "No routine templates are available")

        best: Optional[TemplateScore] = None
        for candidate in candidates:
            scored = self.score(candidate, context)
            if scored.is_relevant and (best is None or scored.total > best.total):
                best = scored

        if best is not None:
            reason = self._build_reason(best, context)
            logger.debug(
                "Selected routine template",
                extra={"template": best.template.name, "score": best.total},
            )
            return SelectionResult(best.template, reason, best.total)

        default = next((t for t in candidates if t.is_default), None)
        if default is not None:
            return SelectionResult(
                default,
                f"No routine matches your current context; using default routine '{default.name}'",
            )
        return SelectionResult(
            None, "No routine matches your current context and no default routine is set"
        )

    @staticmethod
    def _build_reason(best: TemplateScore, context: RoutineContext) -> str:
        fragments: list[str] = []
        for rule in best.matched_rules:
            fragment = _describe_match(rule, context)
            if fragment not in fragments:
                fragments.append(fragment)
        return f"Selected '{best.template.name}' because {' and '.join(fragments)}"


def _describe_match(rule: ContextRule, context: RoutineContext) -> str:
    matched = RoutineContext(
        location=context.location if rule.type is ContextRuleType.LOCATION else None,
        time_slot=context.time_slot if rule.type is ContextRuleType.TIME_SLOT else None,
        day_category=context.day_category if rule.type is ContextRuleType.DAY_CATEGORY else None,
    )
    parts = matched.describe()
    return parts[0] if parts else rule.describe()
