from datetime import datetime
from typing import Iterable

from sqlalchemy import delete, desc, insert, or_, select
from sqlalchemy.orm import joinedload, selectinload

from newsdesk.models import NewsArticle, news_tags
from newsdesk.repositories.base import Repository

PUBLISHED = NewsArticle.status.is_(True)


class ArticleRepository(Repository[NewsArticle]):
    """
    News articles plus explicit maintenance of the ``news_tags`` junction.

    Every public feed query (active, by category/author/tag, search,
    latest, date range) returns published articles only, newest first.
    """

    model = NewsArticle
    label = "News article"

    def default_order(self) -> tuple:
        return (desc(NewsArticle.created_at), NewsArticle.id)

    # ------------------------------------------------------------------
    # Feeds
    # ------------------------------------------------------------------

    async def get_active(self) -> list[NewsArticle]:
        return await self.find(PUBLISHED)

    async def get_by_category(self, category_id: int) -> list[NewsArticle]:
        return await self.find(NewsArticle.category_id == category_id, PUBLISHED)

    async def get_by_author(self, author_id: int, include_unpublished: bool = False) -> list[NewsArticle]:
        criteria = [NewsArticle.created_by_id == author_id]
        if not include_unpublished:
            criteria.append(PUBLISHED)
        return await self.find(*criteria)

    async def get_by_tag(self, tag_id: int) -> list[NewsArticle]:
        tagged = NewsArticle.id.in_(
            select(news_tags.c.news_article_id).where(news_tags.c.tag_id == tag_id)
        )
        return await self.find(tagged, PUBLISHED)

    async def search(self, keyword: str) -> list[NewsArticle]:
        """
        Substring match over title, headline and content.

        Matching is case-insensitive (``lower() LIKE lower()``); how non-ASCII
        text folds is up to the store.
        """
        if not keyword or not keyword.strip():
            return []
        return await self.find(PUBLISHED, self.keyword_filter(keyword))

    @staticmethod
    def keyword_filter(keyword: str):
        return or_(
            NewsArticle.title.icontains(keyword, autoescape=True),
            NewsArticle.headline.icontains(keyword, autoescape=True),
            NewsArticle.content.icontains(keyword, autoescape=True),
        )

    async def get_latest(self, count: int) -> list[NewsArticle]:
        q = self.base_query().where(PUBLISHED).order_by(*self.default_order()).limit(count)
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def get_by_date_range(self, start: datetime, end: datetime) -> list[NewsArticle]:
        return await self.find(
            PUBLISHED,
            NewsArticle.created_at >= start,
            NewsArticle.created_at <= end,
        )

    async def get_with_details(self, article_id: str) -> NewsArticle | None:
        """Eager-load category, creator, last editor and tags."""
        q = (
            select(NewsArticle)
            .where(NewsArticle.id == article_id)
            .options(
                joinedload(NewsArticle.category),
                joinedload(NewsArticle.created_by),
                joinedload(NewsArticle.updated_by),
                selectinload(NewsArticle.tags),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(q)
        return result.unique().scalar_one_or_none()

    # ------------------------------------------------------------------
    # Tag associations (explicit junction-table statements)
    # ------------------------------------------------------------------

    async def tag_ids_of(self, article_id: str) -> set[int]:
        q = select(news_tags.c.tag_id).where(news_tags.c.news_article_id == article_id)
        return set((await self.db.execute(q)).scalars().all())

    async def add_tags(self, article_id: str, tag_ids: Iterable[int]) -> None:
        """Attach *tag_ids*; ids already attached are skipped."""
        new_ids = set(tag_ids) - await self.tag_ids_of(article_id)
        if not new_ids:
            return
        await self.db.execute(
            insert(news_tags),
            [{"news_article_id": article_id, "tag_id": tag_id} for tag_id in sorted(new_ids)],
        )

    async def remove_tags(self, article_id: str, tag_ids: Iterable[int]) -> None:
        tag_ids = set(tag_ids)
        if not tag_ids:
            return
        await self.db.execute(
            delete(news_tags).where(
                news_tags.c.news_article_id == article_id,
                news_tags.c.tag_id.in_(tag_ids),
            )
        )

    async def remove_all_tags(self, article_id: str) -> None:
        """Drop every association row of the article; the tags themselves stay."""
        await self.db.execute(delete(news_tags).where(news_tags.c.news_article_id == article_id))

    async def delete(self, entity_or_id) -> None:
        article_id = entity_or_id.id if isinstance(entity_or_id, NewsArticle) else entity_or_id
        await self.remove_all_tags(article_id)
        await super().delete(entity_or_id)
