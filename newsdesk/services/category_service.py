"""
Category service — business rules for the category tree.

- The active flag is tri-state only at the boundary: an unset flag is
  resolved to True exactly once, at creation.  Updates that leave it
  unset keep the stored value.
- A category referenced by any article cannot be deleted.  The check runs
  inside ``delete_category`` itself, in the same unit of work as the
  delete; ``can_delete_category`` only exposes it for UI hints.
- A category may not become its own ancestor.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.errors import ConflictError, NotFoundError, ValidationError
from newsdesk.models import Category
from newsdesk.notifications import ChangeSignal
from newsdesk.repositories import CategoryRepository
from newsdesk.schemas import CategoryCreate, CategoryUpdate
from newsdesk.services.common import commit_and_notify, require_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_categories(
    db: AsyncSession, include_inactive: bool = True, keyword: str | None = None
) -> list[Category]:
    """All categories ordered by name, optionally active-only and name-filtered."""
    repo = CategoryRepository(db)
    categories = await (repo.get_all() if include_inactive else repo.get_active())
    if keyword and keyword.strip():
        needle = keyword.strip().lower()
        categories = [c for c in categories if needle in c.name.lower()]
    return categories


async def get_active_categories(db: AsyncSession) -> list[Category]:
    return await CategoryRepository(db).get_active()


async def get_root_categories(db: AsyncSession) -> list[Category]:
    return await CategoryRepository(db).get_roots()


async def get_subcategories(db: AsyncSession, parent_id: int) -> list[Category]:
    return await CategoryRepository(db).get_subcategories(parent_id)


async def get_category(db: AsyncSession, category_id: int) -> Category | None:
    return await CategoryRepository(db).get_by_id(category_id)


async def get_category_with_articles(
    db: AsyncSession, category_id: int, include_unpublished: bool = True
) -> Category | None:
    """Category detail; drafts are left out of its articles unless *include_unpublished*."""
    return await CategoryRepository(db).get_with_articles(category_id, include_unpublished)


async def can_delete_category(db: AsyncSession, category_id: int) -> bool:
    return not await CategoryRepository(db).has_articles(category_id)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
    name = require_text(data.name, "Category name is required", "name")
    description = require_text(data.description, "Category description is required", "description")

    repo = CategoryRepository(db)
    if data.parent_id is not None and not await repo.exists(data.parent_id):
        raise ValidationError(f"Parent category {data.parent_id} does not exist", field="parent_id")

    category = Category(
        name=name,
        description=description,
        parent_id=data.parent_id,
        is_active=True if data.is_active is None else data.is_active,
    )
    await repo.add(category)
    await commit_and_notify(db, ChangeSignal.CATEGORIES_CHANGED)
    logger.info("Created category id=%s name=%r", category.id, category.name)
    return await repo.reload(category.id)


async def update_category(db: AsyncSession, category_id: int, data: CategoryUpdate) -> Category:
    """
    Partially update a category.  Raises NotFoundError for an unknown id
    and ValidationError for a blank name or a parent that would loop.
    """
    repo = CategoryRepository(db)
    category = await repo.get_by_id(category_id)
    if category is None:
        raise NotFoundError(f"Category with ID {category_id} not found")

    changes = data.model_dump(exclude_unset=True)

    if "name" in changes:
        changes["name"] = require_text(changes["name"], "Category name is required", "name")
    if "description" in changes:
        if changes["description"] is None:
            changes.pop("description")
        else:
            changes["description"] = require_text(
                changes["description"], "Category description is required", "description"
            )
    if changes.get("is_active", True) is None:
        changes.pop("is_active")
    if "parent_id" in changes and changes["parent_id"] is not None:
        await _check_parent(repo, category_id, changes["parent_id"])

    for field, value in changes.items():
        setattr(category, field, value)

    await repo.update(category)
    await commit_and_notify(db, ChangeSignal.CATEGORIES_CHANGED)
    return await repo.reload(category_id)


async def delete_category(db: AsyncSession, category_id: int) -> None:
    """
    Delete a category that no article references.

    Direct subcategories move up to the deleted category's parent.
    """
    repo = CategoryRepository(db)
    category = await repo.get_by_id(category_id)
    if category is None:
        raise NotFoundError(f"Category with ID {category_id} not found")
    if await repo.has_articles(category_id):
        raise ConflictError("Cannot delete category that has news articles")

    await repo.reparent_children(category_id, category.parent_id)
    await repo.delete(category)
    await commit_and_notify(db, ChangeSignal.CATEGORIES_CHANGED)
    logger.info("Deleted category id=%s", category_id)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _check_parent(repo: CategoryRepository, category_id: int, parent_id: int) -> None:
    if parent_id == category_id:
        raise ValidationError("A category cannot be its own parent", field="parent_id")
    if not await repo.exists(parent_id):
        raise ValidationError(f"Parent category {parent_id} does not exist", field="parent_id")

    # Walk up from the proposed parent; meeting category_id means a cycle.
    seen: set[int] = set()
    current: int | None = parent_id
    while current is not None and current not in seen:
        if current == category_id:
            raise ValidationError("Category hierarchy cannot contain a cycle", field="parent_id")
        seen.add(current)
        current = await repo.parent_id_of(current)
