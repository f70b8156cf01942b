from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from esports_wiki.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    def __init__(self, session: Session, model: type[ModelT]) -> None:
        self.session = session
        self.model = model

    def add(self, obj: ModelT, *, flush: bool = True) -> ModelT:
        self.session.add(obj)
        if flush:
            self.session.flush()  # assigns PKs, etc.
        return obj

    def get(self, id_: Any) -> ModelT | None:
        return self.session.get(self.model, id_)

    def first_where(self, *predicates: ColumnElement[bool]) -> ModelT | None:
        stmt = select(self.model).where(*predicates).limit(1)
        return self.session.execute(stmt).scalars().first()

    def list_where(
        self,
        *predicates: ColumnElement[bool],
        order_by: Any = None,
        limit: int = 100,
    ) -> list[ModelT]:
        stmt = select(self.model).where(*predicates)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def patch(self, obj: ModelT, changes: Mapping[str, Any], *, flush: bool = True) -> ModelT:
        for k, v in changes.items():
            if v is None:
                continue
            setattr(obj, k, v)
        if flush:
            self.session.flush()
        return obj

    def upsert(
        self,
        values: Mapping[str, Any],
        *predicates: ColumnElement[bool],
        flush: bool = True,
    ) -> tuple[ModelT, bool]:
        """Patch the row matching `predicates`, or add one built from `values`.

        Returns (row, created). None values never overwrite stored ones.
        """

        existing = self.first_where(*predicates)
        if existing is None:
            created = self.model(**{k: v for k, v in values.items() if v is not None})
            return self.add(created, flush=flush), True
        return self.patch(existing, values, flush=flush), False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
