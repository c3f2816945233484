"""
Article service — business logic for the NewsArticle aggregate.

Design notes
------------
- Article ids are caller-supplied strings.  ``next_article_id`` offers the
  next numeric id: the largest purely numeric id plus one, ignoring every
  id that is not all digits ("1" when none are).
- Status is a plain published/unpublished boolean; new articles start
  unpublished.  Edits, publish and unpublish stamp ``modified_at``.
- Tags are kept in sync through ``tag_service.reconcile_article_tags``
  inside the same unit of work as the article write, so one commit covers
  both and exactly one ``ArticlesChanged`` signal follows it.
- Listing visibility is role-aware: Admin and Staff see every status,
  everybody else only published articles.
"""
import logging
import math
import re
from datetime import datetime, timezone

from sqlalchemy import asc, desc
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.authorization import can_see_unpublished
from newsdesk.config import settings
from newsdesk.errors import ConflictError, NotFoundError, ValidationError
from newsdesk.identity import Identity
from newsdesk.models import NewsArticle
from newsdesk.notifications import ChangeSignal
from newsdesk.repositories import ArticleRepository, CategoryRepository
from newsdesk.repositories.articles import PUBLISHED
from newsdesk.schemas import ArticleCreate, ArticleResponse, ArticleUpdate, PaginatedResponse
from newsdesk.services import tag_service
from newsdesk.services.common import commit_and_notify, is_blank, require_text

logger = logging.getLogger(__name__)

_NUMERIC_ID_RE = re.compile(r"[0-9]+")

# Columns that are safe to sort by; guards against arbitrary attribute access.
_SORTABLE_COLUMNS: frozenset[str] = frozenset(
    {"id", "title", "headline", "created_at", "modified_at", "status"}
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _resolve_sort_column(sort_by: str):
    """Return the column for *sort_by*; unknown names fall back to ``created_at``."""
    if sort_by in _SORTABLE_COLUMNS:
        return getattr(NewsArticle, sort_by)
    return NewsArticle.created_at


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def next_article_id(db: AsyncSession) -> str:
    numeric = [int(i) for i in await ArticleRepository(db).ids() if _NUMERIC_ID_RE.fullmatch(i)]
    return str(max(numeric) + 1) if numeric else "1"


async def get_article(db: AsyncSession, article_id: str) -> NewsArticle | None:
    return await ArticleRepository(db).get_by_id(article_id)


async def get_article_detail(
    db: AsyncSession, article_id: str, identity: Identity | None = None
) -> NewsArticle | None:
    """
    Article with category, creator, last editor and tags loaded.

    Unpublished articles are only visible to Admin and Staff; for anyone
    else they read as absent.
    """
    article = await ArticleRepository(db).get_with_details(article_id)
    if article is None:
        return None
    if not article.status and not can_see_unpublished(identity):
        return None
    return article


async def get_active_articles(db: AsyncSession) -> list[NewsArticle]:
    return await ArticleRepository(db).get_active()


async def get_articles_by_category(db: AsyncSession, category_id: int) -> list[NewsArticle]:
    return await ArticleRepository(db).get_by_category(category_id)


async def get_articles_by_author(
    db: AsyncSession, author_id: int, include_unpublished: bool = False
) -> list[NewsArticle]:
    return await ArticleRepository(db).get_by_author(author_id, include_unpublished)


async def get_my_articles(db: AsyncSession, identity: Identity) -> list[NewsArticle]:
    """Everything *identity* authored, drafts included."""
    return await get_articles_by_author(db, identity.account_id, include_unpublished=True)


async def get_articles_by_tag(db: AsyncSession, tag_id: int) -> list[NewsArticle]:
    return await ArticleRepository(db).get_by_tag(tag_id)


async def search_articles(db: AsyncSession, keyword: str | None) -> list[NewsArticle]:
    if is_blank(keyword):
        return []
    return await ArticleRepository(db).search(keyword.strip())


async def get_latest_articles(db: AsyncSession, count: int) -> list[NewsArticle]:
    if count <= 0:
        count = settings.LATEST_NEWS_DEFAULT
    return await ArticleRepository(db).get_latest(count)


async def get_articles_by_date_range(
    db: AsyncSession, start: datetime, end: datetime
) -> list[NewsArticle]:
    """Published articles created in [start, end], both ends inclusive."""
    if start > end:
        raise ValidationError("Start date must be before or equal to end date", field="start")
    return await ArticleRepository(db).get_by_date_range(start, end)


async def list_articles(
    db: AsyncSession,
    identity: Identity | None,
    page: int = 1,
    page_size: int = 10,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    keyword: str | None = None,
    category_id: int | None = None,
) -> PaginatedResponse:
    """
    One page of articles visible to *identity*.

    Two SQL statements are issued: a COUNT over the filtered set and the
    page SELECT with LIMIT/OFFSET.
    """
    criteria = []
    if not can_see_unpublished(identity):
        criteria.append(PUBLISHED)
    if not is_blank(keyword):
        criteria.append(ArticleRepository.keyword_filter(keyword.strip()))
    if category_id is not None:
        criteria.append(NewsArticle.category_id == category_id)

    sort_col = _resolve_sort_column(sort_by)
    order_expr = desc(sort_col) if sort_order == "desc" else asc(sort_col)

    repo = ArticleRepository(db)
    total = await repo.count(*criteria)
    articles = await repo.get_paged(
        page, page_size, filter=criteria, order_by=(order_expr, NewsArticle.id)
    )

    return PaginatedResponse(
        items=[ArticleResponse.model_validate(a) for a in articles],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_article(db: AsyncSession, data: ArticleCreate, *, author_id: int) -> NewsArticle:
    """
    Create an article authored by *author_id* and attach ``data.tag_ids``.

    Unknown tag ids are dropped silently.  Raises ValidationError for a
    blank id or headline or an unknown category, ConflictError when the
    id is taken.
    """
    article_id = require_text(data.id, "News article ID is required", "id")
    headline = require_text(data.headline, "Headline is required", "headline")

    repo = ArticleRepository(db)
    if await repo.exists(article_id):
        raise ConflictError(f"News article with ID {article_id} already exists", field="id")
    await _check_category(db, data.category_id)

    article = NewsArticle(
        id=article_id,
        title=data.title,
        headline=headline,
        content=data.content,
        source=data.source,
        category_id=data.category_id,
        status=False if data.status is None else data.status,
        created_at=data.created_at or _now(),
        created_by_id=author_id,
    )
    await repo.add(article)
    await tag_service.reconcile_article_tags(db, article_id, data.tag_ids, replace=False)

    await commit_and_notify(db, ChangeSignal.ARTICLES_CHANGED)
    logger.info("Created article id=%s by account_id=%s", article_id, author_id)
    return await repo.get_with_details(article_id)


async def update_article(
    db: AsyncSession, article_id: str, data: ArticleUpdate, *, editor_id: int | None = None
) -> NewsArticle:
    """
    Partially update an article.

    ``tag_ids`` of None leaves the tag set alone; a list replaces it.
    """
    repo = ArticleRepository(db)
    article = await repo.get_by_id(article_id)
    if article is None:
        raise NotFoundError(f"News article with ID {article_id} not found")

    changes = data.model_dump(exclude_unset=True)
    tag_ids = changes.pop("tag_ids", None)

    if "headline" in changes:
        changes["headline"] = require_text(changes["headline"], "Headline is required", "headline")
    if changes.get("status", False) is None:
        changes.pop("status")
    if "category_id" in changes:
        await _check_category(db, changes["category_id"])

    for field, value in changes.items():
        setattr(article, field, value)
    article.modified_at = _now()
    if editor_id is not None:
        article.updated_by_id = editor_id

    await repo.update(article)
    if tag_ids is not None:
        await tag_service.reconcile_article_tags(db, article_id, tag_ids, replace=True)

    await commit_and_notify(db, ChangeSignal.ARTICLES_CHANGED)
    return await repo.get_with_details(article_id)


async def delete_article(db: AsyncSession, article_id: str) -> None:
    """Delete the article and its tag links; the tags themselves stay."""
    repo = ArticleRepository(db)
    article = await repo.get_by_id(article_id)
    if article is None:
        raise NotFoundError(f"News article with ID {article_id} not found")

    await repo.delete(article)
    await commit_and_notify(db, ChangeSignal.ARTICLES_CHANGED)
    logger.info("Deleted article id=%s", article_id)


async def publish_article(
    db: AsyncSession, article_id: str, *, editor_id: int | None = None
) -> NewsArticle:
    return await _set_status(db, article_id, True, editor_id)


async def unpublish_article(
    db: AsyncSession, article_id: str, *, editor_id: int | None = None
) -> NewsArticle:
    return await _set_status(db, article_id, False, editor_id)


async def add_tags_to_article(db: AsyncSession, article_id: str, tag_ids: list[int]) -> set[int]:
    """Attach *tag_ids* without removing anything; returns the resulting tag set."""
    result = await tag_service.reconcile_article_tags(db, article_id, tag_ids, replace=False)
    await commit_and_notify(db, ChangeSignal.ARTICLES_CHANGED)
    return result


async def remove_all_tags_from_article(db: AsyncSession, article_id: str) -> None:
    if not await ArticleRepository(db).exists(article_id):
        raise NotFoundError(f"News article with ID {article_id} not found")
    await tag_service.clear_article_tags(db, article_id)
    await commit_and_notify(db, ChangeSignal.ARTICLES_CHANGED)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _set_status(
    db: AsyncSession, article_id: str, status: bool, editor_id: int | None
) -> NewsArticle:
    repo = ArticleRepository(db)
    article = await repo.get_by_id(article_id)
    if article is None:
        raise NotFoundError(f"News article with ID {article_id} not found")

    article.status = status
    article.modified_at = _now()
    if editor_id is not None:
        article.updated_by_id = editor_id
    await repo.update(article)

    await commit_and_notify(db, ChangeSignal.ARTICLES_CHANGED)
    logger.info("Article id=%s %s", article_id, "published" if status else "unpublished")
    return article


async def _check_category(db: AsyncSession, category_id: int | None) -> None:
    if category_id is not None and not await CategoryRepository(db).exists(category_id):
        raise ValidationError(f"Category {category_id} does not exist", field="category_id")
