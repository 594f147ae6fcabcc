"""In-memory repository used by tests and the local dev server.

InMemoryStore plays the database: it keeps committed row snapshots per model.
Each InMemoryRepository is a unit of work over a store. Loaded rows are
private copies, so uncommitted changes are invisible to other units and
`rollback` discards them. Only rows passed to `add` are written on commit,
after which the unit forgets everything it loaded. `get(..., for_update=True)` takes a row lock held
until commit/rollback, which serializes concurrent writers of the same row.
"""
import asyncio
import copy
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set, Tuple, Type, TypeVar
from uuid import UUID

from sqlmodel import SQLModel

ModelT = TypeVar("ModelT", bound=SQLModel)
RowKey = Tuple[type, UUID]


class InMemoryStore:
    def __init__(self):
        self.tables: Dict[type, Dict[UUID, Dict[str, Any]]] = defaultdict(dict)
        self._locks: Dict[RowKey, asyncio.Lock] = {}

    def seed(self, *objs: SQLModel) -> None:
        """Write rows directly, bypassing any unit of work"""
        for obj in objs:
            self.tables[type(obj)][obj.id] = obj.model_dump()

    def rows(self, model: Type[ModelT]) -> List[ModelT]:
        """Committed rows of a model, in insertion order"""
        return [model(**copy.deepcopy(data)) for data in self.tables[model].values()]

    def lock_for(self, key: RowKey) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]


class InMemoryRepository:
    def __init__(self, store: Optional[InMemoryStore] = None):
        self.store = store or InMemoryStore()
        self._identity: Dict[RowKey, SQLModel] = {}
        self._held: Set[RowKey] = set()
        self._dirty: Set[RowKey] = set()

    def _load(self, model: Type[ModelT], id: UUID) -> Optional[ModelT]:
        key = (model, id)
        if key in self._identity:
            return self._identity[key]
        data = self.store.tables[model].get(id)
        if data is None:
            return None
        obj = model(**copy.deepcopy(data))
        self._identity[key] = obj
        return obj

    async def add(self, obj: SQLModel) -> None:
        key = (type(obj), obj.id)
        self._identity[key] = obj
        self._dirty.add(key)

    async def get(self, model: Type[ModelT], id: UUID, for_update: bool = False) -> Optional[ModelT]:
        key = (model, id)
        if for_update and key not in self._held:
            await self.store.lock_for(key).acquire()
            self._held.add(key)
            # Re-read: another unit may have committed while we waited
            if key in self._identity and key not in self._dirty:
                del self._identity[key]
        return self._load(model, id)

    async def find(self, model: Type[ModelT], **equals: Any) -> List[ModelT]:
        ids = list(self.store.tables[model].keys())
        ids += [id for (m, id) in self._identity if m is model and id not in self.store.tables[model]]

        found: List[ModelT] = []
        for id in ids:
            obj = self._load(model, id)
            if obj is not None and all(getattr(obj, field) == value for field, value in equals.items()):
                found.append(obj)
        return found

    async def refresh(self, obj: SQLModel) -> None:
        """Overwrite a loaded row with its committed state"""
        data = self.store.tables[type(obj)].get(obj.id)
        if data is None:
            return
        for field, value in copy.deepcopy(data).items():
            setattr(obj, field, value)

    async def commit(self) -> None:
        for model, id in self._dirty:
            self.store.tables[model][id] = self._identity[(model, id)].model_dump()
        self._identity.clear()
        self._release()

    async def rollback(self) -> None:
        self._identity.clear()
        self._release()

    def _release(self) -> None:
        self._dirty.clear()
        for key in self._held:
            self.store.lock_for(key).release()
        self._held.clear()
