"""SQLModel implementation of the session summary store."""

from __future__ import annotations

from typing import Callable, Optional
from uuid import UUID

from sqlmodel import Session, select

from ...models.summary import SessionSummary


class SQLModelSessionSummaryRepository:
    """SQLModel-based session summary repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def record(self, summary: SessionSummary) -> SessionSummary:
        with self.session_factory() as session:
            session.add(summary)
            session.commit()
            session.refresh(summary)
            session.expunge(summary)
            return summary

    def get(self, session_id: UUID) -> Optional[SessionSummary]:
        with self.session_factory() as session:
            obj = session.get(SessionSummary, session_id)
            if obj:
                session.expunge(obj)
            return obj

    def list_recent(self, limit: int = 20) -> list[SessionSummary]:
        with self.session_factory() as session:
            statement = (
                select(SessionSummary)
                .order_by(SessionSummary.ended_at.desc())  # type: ignore[attr-defined]
                .limit(limit)
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_for_template(self, template_id: UUID) -> list[SessionSummary]:
        with self.session_factory() as session:
            statement = (
                select(SessionSummary)
                .where(SessionSummary.template_id == template_id)
                .order_by(SessionSummary.ended_at)  # type: ignore[arg-type]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows


__all__ = ["SQLModelSessionSummaryRepository"]
