"""
Entity store: thin persistence layer over an ``AsyncSession``.

Services talk to the database through this wrapper so that every write
path shares the same commit / rollback / error translation, and counters
are only ever changed with single-statement SQL updates.
"""

import logging
from typing import Any, AsyncGenerator, Optional, Sequence, Type, TypeVar

from fastapi import Depends
from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from core.workflow.errors import ServerError
from database.engine import Base, get_db

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class EntityStore:
    """Find / save / delete and atomic counters for ORM entities."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, model: Type[ModelT], entity_id: Any) -> Optional[ModelT]:
        return await self.session.get(model, entity_id)

    async def find_one(self, statement: Select) -> Optional[Any]:
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def find(self, statement: Select) -> Sequence[Any]:
        result = await self.session.execute(statement)
        return result.scalars().all()

    async def count(self, statement: Select) -> int:
        """Count the rows ``statement`` would return."""
        count_stmt = select(func.count()).select_from(
            statement.order_by(None).subquery()
        )
        result = await self.session.execute(count_stmt)
        return int(result.scalar_one())

    async def paginate(
        self, statement: Select, offset: int, limit: int
    ) -> tuple[Sequence[Any], int]:
        """Return one page of ``statement`` plus the total row count."""
        total = await self.count(statement)
        items = await self.find(statement.offset(offset).limit(limit))
        return items, total

    def add(self, entity: Base) -> None:
        self.session.add(entity)

    async def delete(self, entity: Base) -> None:
        await self.session.delete(entity)

    async def flush(self) -> None:
        """Flush pending changes (raises ``IntegrityError`` on constraint violations)."""
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database flush failed: {type(e).__name__}", exc_info=True)
            raise ServerError("A database error occurred") from e

    async def increment(
        self,
        model: Type[Base],
        entity_id: Any,
        column: str,
        delta: int = 1,
        floor: Optional[int] = 0,
    ) -> None:
        """
        Atomically add ``delta`` to ``column`` with one UPDATE statement.

        Negative deltas are clamped at ``floor`` inside the statement itself
        (``CASE``), so concurrent decrements can never drive the value below it.
        """
        col = getattr(model, column)
        new_value = col + delta
        if floor is not None and delta < 0:
            new_value = case((col + delta < floor, floor), else_=col + delta)

        statement = (
            update(model)
            .where(model.id == entity_id)
            .values({column: new_value})
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(statement)

    async def commit(self) -> None:
        """
        Commit the unit of work.

        ``IntegrityError`` is re-raised after rollback so callers can translate
        constraint violations into domain errors; any other store failure
        becomes ``ServerError``.
        """
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database commit failed: {type(e).__name__}", exc_info=True)
            raise ServerError("A database error occurred") from e

    async def rollback(self) -> None:
        await self.session.rollback()

    async def refresh(self, entity: Base, attribute_names: Optional[list[str]] = None) -> None:
        await self.session.refresh(entity, attribute_names=attribute_names)


async def get_store(
    db: AsyncSession = Depends(get_db),
) -> AsyncGenerator[EntityStore, None]:
    """FastAPI dependency yielding a request-scoped store."""
    yield EntityStore(db)
