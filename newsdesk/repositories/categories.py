from sqlalchemy import Select, exists, select, update
from sqlalchemy.orm import selectinload

from newsdesk.models import Category, NewsArticle
from newsdesk.repositories.base import Repository


class CategoryRepository(Repository[Category]):
    model = Category
    label = "Category"

    def base_query(self) -> Select:
        # The parent is shown next to every category in lists and forms.
        return select(Category).options(selectinload(Category.parent))

    def default_order(self) -> tuple:
        return (Category.name, Category.id)

    async def get_active(self) -> list[Category]:
        return await self.find(Category.is_active.is_(True))

    async def get_roots(self) -> list[Category]:
        return await self.find(Category.parent_id.is_(None), Category.is_active.is_(True))

    async def get_subcategories(self, parent_id: int) -> list[Category]:
        return await self.find(Category.parent_id == parent_id, Category.is_active.is_(True))

    async def get_with_articles(self, category_id: int, include_unpublished: bool = True) -> Category | None:
        """Load a category with its articles and its direct children (detail view)."""
        articles = Category.articles
        if not include_unpublished:
            articles = articles.and_(NewsArticle.status.is_(True))
        q = (
            select(Category)
            .where(Category.id == category_id)
            .options(
                selectinload(Category.parent),
                selectinload(articles),
                selectinload(Category.children),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(q)
        return result.unique().scalar_one_or_none()

    async def has_articles(self, category_id: int) -> bool:
        q = select(exists().where(NewsArticle.category_id == category_id))
        return bool((await self.db.execute(q)).scalar())

    async def parent_id_of(self, category_id: int) -> int | None:
        q = select(Category.parent_id).where(Category.id == category_id)
        return (await self.db.execute(q)).scalar_one_or_none()

    async def reparent_children(self, category_id: int, new_parent_id: int | None) -> None:
        """Move every direct child of *category_id* under *new_parent_id*."""
        await self.db.execute(
            update(Category)
            .where(Category.parent_id == category_id)
            .values(parent_id=new_parent_id)
            .execution_options(synchronize_session="fetch")
        )
