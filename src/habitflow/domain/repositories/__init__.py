"""Repository protocols for the engine's outbound collaborators."""

from .response_log import ResponseLogRepository
from .session_summary import SessionSummaryRepository

__all__ = ["ResponseLogRepository", "SessionSummaryRepository"]
