"""Repository interface injected into every access-control component.

A repository is one unit of work: writes staged with `add` (and attribute
changes on loaded rows) become visible to other units only after `commit`.
"""
from typing import Any, List, Optional, Protocol, Type, TypeVar
from uuid import UUID

from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

ModelT = TypeVar("ModelT", bound=SQLModel)


class Repository(Protocol):
    async def add(self, obj: SQLModel) -> None: ...

    async def get(self, model: Type[ModelT], id: UUID, for_update: bool = False) -> Optional[ModelT]: ...

    async def find(self, model: Type[ModelT], **equals: Any) -> List[ModelT]: ...

    async def refresh(self, obj: SQLModel) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class SqlModelRepository:
    """Repository over an async SQLModel session"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, obj: SQLModel) -> None:
        self.session.add(obj)

    async def get(self, model: Type[ModelT], id: UUID, for_update: bool = False) -> Optional[ModelT]:
        if for_update:
            return await self.session.get(model, id, with_for_update=True, populate_existing=True)
        return await self.session.get(model, id)

    async def find(self, model: Type[ModelT], **equals: Any) -> List[ModelT]:
        query = select(model)
        for field, value in equals.items():
            query = query.where(getattr(model, field) == value)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def refresh(self, obj: SQLModel) -> None:
        await self.session.refresh(obj)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
