"""SQLModel implementation of the conditional response log."""

from __future__ import annotations

from typing import Callable, Optional
from uuid import UUID

from sqlmodel import Session, select

from ...models.response import ConditionalResponse


class SQLModelResponseLogRepository:
    """Append-only response log backed by the ``conditional_response`` table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def append(self, response: ConditionalResponse) -> ConditionalResponse:
        with self.session_factory() as session:
            session.add(response)
            session.commit()
            session.refresh(response)
            session.expunge(response)
            return response

    def get_by_id(self, response_id: UUID) -> Optional[ConditionalResponse]:
        with self.session_factory() as session:
            obj = session.get(ConditionalResponse, response_id)
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self) -> list[ConditionalResponse]:
        with self.session_factory() as session:
            statement = select(ConditionalResponse).order_by(ConditionalResponse.timestamp)  # type: ignore[arg-type]
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_for_habit(self, habit_id: UUID) -> list[ConditionalResponse]:
        with self.session_factory() as session:
            statement = (
                select(ConditionalResponse)
                .where(ConditionalResponse.habit_id == habit_id)
                .order_by(ConditionalResponse.timestamp)  # type: ignore[arg-type]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_for_routine(self, routine_id: UUID) -> list[ConditionalResponse]:
        with self.session_factory() as session:
            statement = (
                select(ConditionalResponse)
                .where(ConditionalResponse.routine_id == routine_id)
                .order_by(ConditionalResponse.timestamp)  # type: ignore[arg-type]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows


__all__ = ["SQLModelResponseLogRepository"]
