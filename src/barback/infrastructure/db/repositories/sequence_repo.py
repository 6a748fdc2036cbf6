from __future__ import annotations

from sqlalchemy import Engine, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from barback.application.ports.repositories import SEQUENCE_STARTS, SequenceRepository
from barback.infrastructure.db.models.order import SequenceModel
from barback.infrastructure.db.session import get_engine


class SqlAlchemySequenceRepository(SequenceRepository):
    """Row-per-name counters; the increment is a single UPDATE so concurrent callers never share a value."""

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def next_value(self, name: str) -> int:
        statement = (
            update(SequenceModel)
            .where(SequenceModel.name == name)
            .values(value=SequenceModel.value + 1)
            .returning(SequenceModel.value)
        )
        with Session(self._engine) as session:
            value = session.execute(statement).scalar_one_or_none()
            if value is not None:
                session.commit()
                return int(value)

            start = SEQUENCE_STARTS.get(name, 1)
            session.add(SequenceModel(name=name, value=start))
            try:
                session.commit()
            except IntegrityError:
                # first use raced with another writer; take the next value instead
                session.rollback()
                return self.next_value(name)
            return start
