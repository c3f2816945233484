"""
Generic data-access contract.

Predicates are SQLAlchemy boolean expressions (``Tag.name == "x"``) and
orderings are SQLAlchemy order clauses (``desc(NewsArticle.created_at)``),
so every query composes into a single SQL statement.
"""
from __future__ import annotations

from typing import Any, ClassVar, Generic, Iterable, Sequence, TypeVar

from sqlalchemy import ColumnElement, Select, exists, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.database import Base
from newsdesk.errors import NotFoundError, ValidationError

ModelT = TypeVar("ModelT", bound=Base)

Predicate = ColumnElement[bool]


def _as_tuple(value) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


class Repository(Generic[ModelT]):
    model: ClassVar[type]
    # Human-readable entity name used in error messages.
    label: ClassVar[str] = "Entity"

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------

    @property
    def pk(self):
        return inspect(self.model).primary_key[0]

    def base_query(self) -> Select:
        """Starting SELECT; subclasses add eager-loading options here."""
        return select(self.model)

    def default_order(self) -> tuple:
        """Ordering used whenever the caller gives none (primary key)."""
        return (self.pk,)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def get_by_id(self, entity_id: Any) -> ModelT | None:
        q = self.base_query().where(self.pk == entity_id)
        result = await self.db.execute(q)
        return result.unique().scalar_one_or_none()

    async def reload(self, entity_id: Any) -> ModelT | None:
        """Like ``get_by_id`` but overwrites whatever the session already holds."""
        q = self.base_query().where(self.pk == entity_id).execution_options(populate_existing=True)
        result = await self.db.execute(q)
        return result.unique().scalar_one_or_none()

    async def get_all(self) -> list[ModelT]:
        q = self.base_query().order_by(*self.default_order())
        result = await self.db.execute(q)
        return list(result.unique().scalars().all())

    async def add(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def update(self, entity: ModelT) -> ModelT:
        """
        Overwrite the stored row that shares *entity*'s key with its
        column values.  Raises ``NotFoundError`` when no such row exists.
        """
        key = getattr(entity, self.pk.key)
        existing = await self.db.get(self.model, key)
        if existing is None:
            raise NotFoundError(f"{self.label} with ID {key} not found")
        if existing is not entity:
            for attr in inspect(self.model).column_attrs:
                if attr.key != self.pk.key:
                    setattr(existing, attr.key, getattr(entity, attr.key))
        await self.db.flush()
        return existing

    async def delete(self, entity_or_id: Any) -> None:
        """Delete by key or by instance; deleting an absent key is a no-op."""
        if isinstance(entity_or_id, self.model):
            entity = entity_or_id
        else:
            entity = await self.db.get(self.model, entity_or_id)
            if entity is None:
                return
        await self.db.delete(entity)
        await self.db.flush()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def find(self, *criteria: Predicate, order_by=None) -> list[ModelT]:
        q = self.base_query().where(*criteria).order_by(*(_as_tuple(order_by) or self.default_order()))
        result = await self.db.execute(q)
        return list(result.unique().scalars().all())

    async def first_or_default(self, *criteria: Predicate, order_by=None) -> ModelT | None:
        q = (
            self.base_query()
            .where(*criteria)
            .order_by(*(_as_tuple(order_by) or self.default_order()))
            .limit(1)
        )
        result = await self.db.execute(q)
        return result.unique().scalars().first()

    async def any(self, *criteria: Predicate) -> bool:
        q = select(exists().where(*criteria)) if criteria else select(exists(select(self.pk)))
        return bool((await self.db.execute(q)).scalar())

    async def count(self, *criteria: Predicate) -> int:
        q = select(func.count()).select_from(self.model).where(*criteria)
        return (await self.db.execute(q)).scalar_one()

    async def get_paged(
        self,
        page_number: int,
        page_size: int,
        *,
        filter: Predicate | Iterable[Predicate] | None = None,
        order_by=None,
    ) -> list[ModelT]:
        """
        Return one 1-indexed page: page 1 is the first *page_size* rows
        after *filter* and *order_by* (primary key when omitted) apply.
        """
        if page_number < 1:
            raise ValidationError("Page number must be at least 1", field="page")
        if page_size < 1:
            raise ValidationError("Page size must be at least 1", field="page_size")

        q = (
            self.base_query()
            .where(*_as_tuple(filter))
            .order_by(*(_as_tuple(order_by) or self.default_order()))
            .offset((page_number - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db.execute(q)
        return list(result.unique().scalars().all())

    async def ids(self) -> Sequence[Any]:
        result = await self.db.execute(select(self.pk))
        return result.scalars().all()

    async def exists(self, entity_id: Any) -> bool:
        return await self.any(self.pk == entity_id)
