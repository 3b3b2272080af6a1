"""Concrete repository implementations using SQLModel."""

from .response_log import SQLModelResponseLogRepository
from .session_summary import SQLModelSessionSummaryRepository

__all__ = ["SQLModelResponseLogRepository", "SQLModelSessionSummaryRepository"]
