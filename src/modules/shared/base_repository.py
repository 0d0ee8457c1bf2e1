"""
Base Repository Pattern

Purpose
-------
Generic, typed data access over SQLAlchemy 2.0 async sessions. Repositories
never open or commit transactions; they operate on the session a service
obtained from `DatabaseService`.

Design Notes
------------
- `for_update=True` adds `SELECT ... FOR UPDATE` (a no-op on SQLite, where
  the transaction itself holds the write lock)
- Every call logs at debug level with the model name
- No business logic

Usage
-----
    class TreasureRepository(BaseRepository[Treasure]):
        async def list_ordered(self, session: AsyncSession) -> list[Treasure]:
            return await self.find_many_where(session, order_by=Treasure.name)
"""

from __future__ import annotations

from logging import Logger
from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base repository with common async query helpers.

    Args:
        model_class: The SQLAlchemy model class
        logger: Structured logger instance
    """

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    @property
    def _model_name(self) -> str:
        return self.model_class.__name__

    async def get(self, session: AsyncSession, id_value: Any) -> Optional[T]:
        """Get a single record by primary key (no lock)."""
        instance = await session.get(self.model_class, id_value)
        self.log.debug(
            f"Repository.get: {self._model_name}",
            extra={"model": self._model_name, "id": id_value, "found": instance is not None},
        )
        return instance

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        for_update: bool = False,
        populate_existing: bool = False,
    ) -> Optional[T]:
        """
        Find a single record matching conditions.

        Args:
            session: Database session
            *conditions: SQLAlchemy filter conditions
            for_update: If True, use SELECT FOR UPDATE
            populate_existing: Overwrite any copy already in the identity map
        """
        stmt = select(self.model_class).where(*conditions)
        if for_update:
            stmt = stmt.with_for_update()
        if populate_existing:
            stmt = stmt.execution_options(populate_existing=True)

        instance = (await session.execute(stmt)).scalar_one_or_none()
        self.log.debug(
            f"Repository.find_one_where: {self._model_name}",
            extra={
                "model": self._model_name,
                "found": instance is not None,
                "locked": for_update,
            },
        )
        return instance

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        order_by: Optional[Any] = None,
        limit: Optional[int] = None,
    ) -> List[T]:
        stmt = select(self.model_class).where(*conditions)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)

        instances = list((await session.execute(stmt)).scalars().all())
        self.log.debug(
            f"Repository.find_many_where: {self._model_name}",
            extra={"model": self._model_name, "count": len(instances)},
        )
        return instances

    async def count(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> int:
        stmt = select(func.count()).select_from(self.model_class).where(*conditions)
        return (await session.execute(stmt)).scalar_one()

    def add(self, session: AsyncSession, instance: T) -> T:
        session.add(instance)
        self.log.debug(f"Repository.add: {self._model_name}", extra={"model": self._model_name})
        return instance

    def add_many(self, session: AsyncSession, instances: Sequence[T]) -> List[T]:
        session.add_all(instances)
        self.log.debug(
            f"Repository.add_many: {self._model_name}",
            extra={"model": self._model_name, "count": len(instances)},
        )
        return list(instances)

    async def flush(self, session: AsyncSession) -> None:
        await session.flush()
