"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import bootstrap_database
from .infra.repositories import SQLModelResponseLogRepository, SQLModelSessionSummaryRepository
from .models.routine import RoutineTemplate
from .services.conditional import ConditionalHabitService
from .services.context import ContextProvider, LocationLookup
from .services.responses import ResponseLoggingService
from .services.routines import RoutineService
from .services.samples import sample_templates
from .services.selector import SmartRoutineSelector


@dataclass
class AppContext:
    """Wired-up engine: configuration, repositories and services."""

    config: BaseConfig
    engine: Engine
    session_factory: Callable

    response_repo: SQLModelResponseLogRepository
    summary_repo: SQLModelSessionSummaryRepository

    response_log: ResponseLoggingService
    routines: RoutineService
    context_provider: ContextProvider


def create_app_context(
    config: Optional[BaseConfig] = None,
    *,
    templates: Iterable[RoutineTemplate] | None = None,
    location_lookup: LocationLookup | None = None,
) -> AppContext:
    """Create the database, repositories and services for one process."""

    if config is None:
        config = BaseConfig()

    engine, session_factory = bootstrap_database(config)

    response_repo = SQLModelResponseLogRepository(session_factory)
    summary_repo = SQLModelSessionSummaryRepository(session_factory)
    response_log = ResponseLoggingService(response_repo, history_limit=config.HISTORY_LIMIT)

    routines = RoutineService(
        ConditionalHabitService(response_log),
        sample_templates() if templates is None else templates,
        selector=SmartRoutineSelector(priority_boost=config.PRIORITY_BOOST),
        summary_repository=summary_repo,
    )

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        response_repo=response_repo,
        summary_repo=summary_repo,
        response_log=response_log,
        routines=routines,
        context_provider=ContextProvider(location_lookup, timeout=config.CONTEXT_TIMEOUT),
    )
