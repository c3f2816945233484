"""
Tag service — tags and the article/tag association set.

Tag names are unique case-insensitively.  A tag attached to any article
cannot be deleted.

Association reconciliation
--------------------------
``reconcile_article_tags`` makes an article's tag set equal a desired
set of tag ids:

1. desired ids are resolved against the tag table; unknown ids are
   dropped silently,
2. the current set is read from the junction table,
3. links in desired-but-not-current are inserted (already-attached tags
   are skipped, never an error),
4. with ``replace=True`` (edit) links in current-but-not-desired are
   deleted; with ``replace=False`` (create, or "add tags") nothing is
   removed.

Shared links are never touched, so applying the same desired set twice
is a no-op the second time.  Only junction rows change; Tag rows are
never modified.  These functions flush but do not commit: they run
inside the article service's unit of work.
"""
import logging
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.errors import ConflictError, NotFoundError
from newsdesk.models import Tag
from newsdesk.notifications import ChangeSignal
from newsdesk.repositories import ArticleRepository, TagRepository
from newsdesk.schemas import TagCreate, TagUpdate
from newsdesk.services.common import commit_and_notify, is_blank, require_text

logger = logging.getLogger(__name__)

DEFAULT_TAG_COUNT = 10


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_tags(db: AsyncSession) -> list[Tag]:
    return await TagRepository(db).get_all()


async def get_tag(db: AsyncSession, tag_id: int) -> Tag | None:
    return await TagRepository(db).get_by_id(tag_id)


async def get_tag_by_name(db: AsyncSession, name: str | None) -> Tag | None:
    if is_blank(name):
        return None
    return await TagRepository(db).get_by_name(name)


async def get_tag_with_articles(
    db: AsyncSession, tag_id: int, include_unpublished: bool = True
) -> Tag | None:
    return await TagRepository(db).get_with_articles(tag_id, include_unpublished)


async def get_tags_with_articles(db: AsyncSession) -> list[tuple[Tag, int]]:
    """Tags attached to at least one article, most used first."""
    return await TagRepository(db).usage_counts(used_only=True)


async def get_most_used_tags(db: AsyncSession, count: int) -> list[tuple[Tag, int]]:
    if count <= 0:
        count = DEFAULT_TAG_COUNT
    return await TagRepository(db).usage_counts(limit=count)


async def tag_name_exists(db: AsyncSession, name: str | None) -> bool:
    if is_blank(name):
        return False
    return await TagRepository(db).name_exists(name)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_tag(db: AsyncSession, data: TagCreate) -> Tag:
    name = require_text(data.name, "Tag name is required", "name")
    repo = TagRepository(db)
    if await repo.name_exists(name):
        raise ConflictError(f"Tag with name {name} already exists", field="name")

    tag = Tag(name=name, note=data.note)
    await repo.add(tag)
    await commit_and_notify(db, ChangeSignal.TAGS_CHANGED)
    logger.info("Created tag id=%s name=%r", tag.id, tag.name)
    return tag


async def update_tag(db: AsyncSession, tag_id: int, data: TagUpdate) -> Tag:
    repo = TagRepository(db)
    tag = await repo.get_by_id(tag_id)
    if tag is None:
        raise NotFoundError(f"Tag with ID {tag_id} not found")

    changes = data.model_dump(exclude_unset=True)
    if "name" in changes:
        changes["name"] = require_text(changes["name"], "Tag name is required", "name")
        # Renaming to another tag's name is a conflict; re-casing our own is not.
        if await repo.name_exists(changes["name"], exclude_id=tag_id):
            raise ConflictError(f"Tag with name {changes['name']} already exists", field="name")

    for field, value in changes.items():
        setattr(tag, field, value)

    await repo.update(tag)
    await commit_and_notify(db, ChangeSignal.TAGS_CHANGED)
    return tag


async def delete_tag(db: AsyncSession, tag_id: int) -> None:
    repo = TagRepository(db)
    tag = await repo.get_by_id(tag_id)
    if tag is None:
        raise NotFoundError(f"Tag with ID {tag_id} not found")
    if await repo.article_count(tag_id) > 0:
        raise ConflictError(f"Cannot delete tag {tag_id} as it is associated with news articles")

    await repo.delete(tag)
    await commit_and_notify(db, ChangeSignal.TAGS_CHANGED)
    logger.info("Deleted tag id=%s", tag_id)


# ---------------------------------------------------------------------------
# Association reconciliation (no commit; caller owns the unit of work)
# ---------------------------------------------------------------------------

async def reconcile_article_tags(
    db: AsyncSession,
    article_id: str,
    desired_tag_ids: Iterable[int],
    replace: bool = True,
) -> set[int]:
    """
    Bring *article_id*'s tag set to *desired_tag_ids* and return the
    resulting set.  Raises NotFoundError when the article does not exist.
    """
    articles = ArticleRepository(db)
    if not await articles.exists(article_id):
        raise NotFoundError(f"News article with ID {article_id} not found")

    desired = await TagRepository(db).existing_ids(desired_tag_ids)
    current = await articles.tag_ids_of(article_id)

    to_add = desired - current
    to_remove = (current - desired) if replace else set()

    await articles.remove_tags(article_id, to_remove)
    await articles.add_tags(article_id, to_add)
    await db.flush()

    if to_add or to_remove:
        logger.debug(
            "Article %s tags: +%s -%s", article_id, sorted(to_add), sorted(to_remove)
        )
    return desired if replace else current | desired


async def clear_article_tags(db: AsyncSession, article_id: str) -> None:
    """Detach every tag from the article; the Tag rows stay as they are."""
    await ArticleRepository(db).remove_all_tags(article_id)
    await db.flush()
