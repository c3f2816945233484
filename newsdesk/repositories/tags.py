from typing import Iterable

from sqlalchemy import desc, func, select
from sqlalchemy.orm import selectinload

from newsdesk.models import NewsArticle, Tag, news_tags
from newsdesk.repositories.base import Repository


class TagRepository(Repository[Tag]):
    model = Tag
    label = "Tag"

    def default_order(self) -> tuple:
        return (Tag.name, Tag.id)

    async def get_by_name(self, name: str) -> Tag | None:
        """Case-insensitive lookup by tag name."""
        return await self.first_or_default(func.lower(Tag.name) == name.strip().lower())

    async def name_exists(self, name: str, exclude_id: int | None = None) -> bool:
        criteria = [func.lower(Tag.name) == name.strip().lower()]
        if exclude_id is not None:
            criteria.append(Tag.id != exclude_id)
        return await self.any(*criteria)

    async def existing_ids(self, tag_ids: Iterable[int]) -> set[int]:
        """Return the subset of *tag_ids* that name stored tags."""
        wanted = set(tag_ids)
        if not wanted:
            return set()
        result = await self.db.execute(select(Tag.id).where(Tag.id.in_(wanted)))
        return set(result.scalars().all())

    async def article_count(self, tag_id: int) -> int:
        q = select(func.count()).select_from(news_tags).where(news_tags.c.tag_id == tag_id)
        return (await self.db.execute(q)).scalar_one()

    async def get_with_articles(self, tag_id: int, include_unpublished: bool = True) -> Tag | None:
        articles = Tag.articles
        if not include_unpublished:
            articles = articles.and_(NewsArticle.status.is_(True))
        q = (
            select(Tag)
            .where(Tag.id == tag_id)
            .options(selectinload(articles))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(q)
        return result.unique().scalar_one_or_none()

    async def usage_counts(self, limit: int | None = None, used_only: bool = False) -> list[tuple[Tag, int]]:
        """
        Return ``(tag, article_count)`` pairs, most used first.

        With *used_only* tags attached to no article are left out.
        """
        usage = func.count(news_tags.c.news_article_id).label("usage")
        q = (
            select(Tag, usage)
            .outerjoin(news_tags, news_tags.c.tag_id == Tag.id)
            .group_by(Tag.id)
            .order_by(desc(usage), Tag.name)
        )
        if used_only:
            q = q.having(usage > 0)
        if limit is not None:
            q = q.limit(limit)
        result = await self.db.execute(q)
        return [(tag, count) for tag, count in result.all()]
