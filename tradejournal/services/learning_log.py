"""LearningLog: append-only store of learning events."""

from sqlmodel import select

from tradejournal.database import session_scope
from tradejournal.models.learning_event import LearningEvent


class LearningLog:
    def __init__(self, engine):
        self._engine = engine

    def append(self, events: list[LearningEvent]) -> list[LearningEvent]:
        if not events:
            return []
        with session_scope(self._engine) as session:
            session.add_all(events)
            session.commit()
        return events

    def list_recent(self, limit: int = 50) -> list[LearningEvent]:
        stmt = select(LearningEvent).order_by(LearningEvent.timestamp.desc()).limit(limit)
        with session_scope(self._engine) as session:
            return list(session.exec(stmt).all())

    def list_for_trade(self, trade_id: str) -> list[LearningEvent]:
        stmt = (
            select(LearningEvent)
            .where(LearningEvent.trade_id == trade_id)
            .order_by(LearningEvent.timestamp)
        )
        with session_scope(self._engine) as session:
            return list(session.exec(stmt).all())
