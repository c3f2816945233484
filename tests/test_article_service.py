"""
Article service tests — id assignment, create/update/publish rules, feeds,
role-aware paging and the one-signal-per-mutation contract.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import make_account
from newsdesk.errors import ConflictError, NotFoundError, ValidationError
from newsdesk.identity import Identity, Role
from newsdesk.models import NewsArticle
from newsdesk.notifications import ChangeSignal
from newsdesk.repositories import ArticleRepository
from newsdesk.schemas import ArticleCreate, ArticleUpdate, CategoryCreate, TagCreate
from newsdesk.services import article_service, category_service, tag_service


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _article(db: AsyncSession, article_id: str, author_id: int, **kw) -> NewsArticle:
    kw.setdefault("headline", f"Headline {article_id}")
    return await article_service.create_article(
        db, ArticleCreate(id=article_id, **kw), author_id=author_id
    )


def _identity(account, role: Role | None = None) -> Identity:
    identity = Identity.from_account(account)
    if role is not None:
        identity = Identity(identity.account_id, identity.email, identity.name, role)
    return identity


# ---------------------------------------------------------------------------
# next_article_id
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_next_id_on_empty_store(db_session: AsyncSession):
    assert await article_service.next_article_id(db_session) == "1"


@pytest.mark.asyncio
async def test_next_id_ignores_non_numeric_ids(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    for article_id in ["3", "10", "abc", "7"]:
        await _article(db_session, article_id, author.id)

    assert await article_service.next_article_id(db_session) == "11"


@pytest.mark.asyncio
async def test_next_id_with_only_non_numeric_ids(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    await _article(db_session, "news-a", author.id)
    await _article(db_session, "-4", author.id)
    assert await article_service.next_article_id(db_session) == "1"


# ---------------------------------------------------------------------------
# create / update / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_article_defaults(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    before = datetime.now(timezone.utc)

    article = await _article(db_session, "1", author.id, title="Title", content="Body")

    assert article.status is False
    assert article.created_by_id == author.id
    assert article.modified_at is None
    assert article.created_by.email == "author@example.com"
    created = article.created_at
    if created.tzinfo is None:  # SQLite hands back naive values
        created = created.replace(tzinfo=timezone.utc)
    assert created >= before - timedelta(seconds=1)


@pytest.mark.asyncio
async def test_create_article_keeps_supplied_values(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    article = await _article(db_session, "1", author.id, status=True, created_at=stamp)
    assert article.status is True
    assert article.created_at.replace(tzinfo=timezone.utc) == stamp


@pytest.mark.asyncio
@pytest.mark.parametrize("values", [{"id": " "}, {"headline": ""}])
async def test_create_article_requires_id_and_headline(db_session: AsyncSession, values):
    author = await make_account(db_session, "author@example.com")
    data = {"id": "1", "headline": "Headline", **values}
    with pytest.raises(ValidationError):
        await article_service.create_article(db_session, ArticleCreate(**data), author_id=author.id)


@pytest.mark.asyncio
async def test_create_article_duplicate_id_conflicts(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    await _article(db_session, "1", author.id)
    with pytest.raises(ConflictError):
        await _article(db_session, "1", author.id)


@pytest.mark.asyncio
async def test_create_article_unknown_category(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    with pytest.raises(ValidationError):
        await _article(db_session, "1", author.id, category_id=404)


@pytest.mark.asyncio
async def test_create_article_attaches_known_tags_only(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    tag = await tag_service.create_tag(db_session, TagCreate(name="science"))

    article = await _article(db_session, "1", author.id, tag_ids=[tag.id, 999])
    assert [t.name for t in article.tags] == ["science"]


@pytest.mark.asyncio
async def test_update_article_stamps_editor_and_replaces_tags(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    editor = await make_account(db_session, "editor@example.com")
    a = await tag_service.create_tag(db_session, TagCreate(name="a"))
    b = await tag_service.create_tag(db_session, TagCreate(name="b"))
    await _article(db_session, "1", author.id, tag_ids=[a.id])

    updated = await article_service.update_article(
        db_session, "1", ArticleUpdate(title="New title", tag_ids=[b.id]), editor_id=editor.id
    )
    assert updated.title == "New title"
    assert updated.modified_at is not None
    assert updated.updated_by_id == editor.id
    assert [t.name for t in updated.tags] == ["b"]

    # tag_ids omitted: the tag set stays as it is.
    updated = await article_service.update_article(db_session, "1", ArticleUpdate(content="x"))
    assert [t.name for t in updated.tags] == ["b"]

    # An empty list clears it.
    updated = await article_service.update_article(db_session, "1", ArticleUpdate(tag_ids=[]))
    assert updated.tags == []


@pytest.mark.asyncio
async def test_update_article_errors(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    await _article(db_session, "1", author.id)

    with pytest.raises(NotFoundError):
        await article_service.update_article(db_session, "2", ArticleUpdate(title="x"))
    with pytest.raises(ValidationError):
        await article_service.update_article(db_session, "1", ArticleUpdate(headline="  "))


@pytest.mark.asyncio
async def test_delete_article_removes_links_but_keeps_tags(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    tag = await tag_service.create_tag(db_session, TagCreate(name="keep"))
    await _article(db_session, "1", author.id, tag_ids=[tag.id])

    await article_service.delete_article(db_session, "1")

    assert await article_service.get_article(db_session, "1") is None
    assert await ArticleRepository(db_session).tag_ids_of("1") == set()
    assert await tag_service.get_tag(db_session, tag.id) is not None
    with pytest.raises(NotFoundError):
        await article_service.delete_article(db_session, "1")


@pytest.mark.asyncio
async def test_publish_and_unpublish(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    await _article(db_session, "1", author.id)

    published = await article_service.publish_article(db_session, "1", editor_id=author.id)
    assert published.status is True
    assert published.modified_at is not None

    unpublished = await article_service.unpublish_article(db_session, "1")
    assert unpublished.status is False

    with pytest.raises(NotFoundError):
        await article_service.publish_article(db_session, "missing")
    with pytest.raises(NotFoundError):
        await article_service.unpublish_article(db_session, "missing")


@pytest.mark.asyncio
async def test_add_tags_is_idempotent(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    a = await tag_service.create_tag(db_session, TagCreate(name="a"))
    b = await tag_service.create_tag(db_session, TagCreate(name="b"))
    await _article(db_session, "1", author.id, tag_ids=[a.id])

    assert await article_service.add_tags_to_article(db_session, "1", [a.id, b.id]) == {a.id, b.id}
    assert await article_service.add_tags_to_article(db_session, "1", [a.id]) == {a.id, b.id}
    with pytest.raises(NotFoundError):
        await article_service.add_tags_to_article(db_session, "missing", [a.id])


# ---------------------------------------------------------------------------
# Feeds
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_feeds_return_published_only(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    other = await make_account(db_session, "other@example.com")
    category = await category_service.create_category(
        db_session, CategoryCreate(name="Science", description="Science news")
    )
    tag = await tag_service.create_tag(db_session, TagCreate(name="space"))

    await _article(db_session, "1", author.id, status=True, category_id=category.id, tag_ids=[tag.id])
    await _article(db_session, "2", author.id, status=False, category_id=category.id, tag_ids=[tag.id])
    await _article(db_session, "3", other.id, status=True)

    assert {a.id for a in await article_service.get_active_articles(db_session)} == {"1", "3"}
    assert [a.id for a in await article_service.get_articles_by_category(db_session, category.id)] == ["1"]
    assert [a.id for a in await article_service.get_articles_by_tag(db_session, tag.id)] == ["1"]
    assert [a.id for a in await article_service.get_articles_by_author(db_session, author.id)] == ["1"]

    mine = await article_service.get_my_articles(db_session, _identity(author))
    assert {a.id for a in mine} == {"1", "2"}


@pytest.mark.asyncio
async def test_search_matches_title_headline_and_content(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    await _article(db_session, "1", author.id, status=True, title="Mars rover lands")
    await _article(db_session, "2", author.id, status=True, headline="Rover team celebrates")
    await _article(db_session, "3", author.id, status=True, content="No rover here? rover!")
    await _article(db_session, "4", author.id, status=False, title="Secret rover draft")
    await _article(db_session, "5", author.id, status=True, title="Unrelated")

    found = await article_service.search_articles(db_session, "rover")
    assert {a.id for a in found} == {"1", "2", "3"}
    assert {a.id for a in await article_service.search_articles(db_session, "ROVER")} == {"1", "2", "3"}
    assert await article_service.search_articles(db_session, "   ") == []
    assert await article_service.search_articles(db_session, "100%") == []


@pytest.mark.asyncio
async def test_latest_defaults_when_count_not_positive(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(1, 13):
        await _article(db_session, str(i), author.id, status=True, created_at=base + timedelta(days=i))

    latest = await article_service.get_latest_articles(db_session, 3)
    assert [a.id for a in latest] == ["12", "11", "10"]
    assert len(await article_service.get_latest_articles(db_session, 0)) == 10
    assert len(await article_service.get_latest_articles(db_session, -5)) == 10


@pytest.mark.asyncio
async def test_date_range_is_inclusive(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    start = datetime(2024, 3, 1, tzinfo=timezone.utc)
    end = datetime(2024, 3, 31, 23, 59, 59, tzinfo=timezone.utc)
    await _article(db_session, "1", author.id, status=True, created_at=start)
    await _article(db_session, "2", author.id, status=True, created_at=end)
    await _article(db_session, "3", author.id, status=True, created_at=end + timedelta(days=1))

    found = await article_service.get_articles_by_date_range(db_session, start, end)
    assert {a.id for a in found} == {"1", "2"}

    with pytest.raises(ValidationError):
        await article_service.get_articles_by_date_range(db_session, end, start)


# ---------------------------------------------------------------------------
# Role-aware listing and detail
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_articles_visibility_by_role(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    await _article(db_session, "1", author.id, status=True)
    await _article(db_session, "2", author.id, status=False)

    anonymous = await article_service.list_articles(db_session, None)
    lecturer = await article_service.list_articles(db_session, _identity(author, Role.LECTURER))
    staff = await article_service.list_articles(db_session, _identity(author, Role.STAFF))
    admin = await article_service.list_articles(db_session, _identity(author, Role.ADMIN))

    assert anonymous.total == lecturer.total == 1
    assert staff.total == admin.total == 2


@pytest.mark.asyncio
async def test_list_articles_pages(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    for i in range(1, 26):
        await _article(db_session, f"{i:02d}", author.id, status=True)

    page = await article_service.list_articles(
        db_session, None, page=2, page_size=10, sort_by="id", sort_order="asc"
    )
    assert page.total == 25
    assert page.pages == 3
    assert [a.id for a in page.items] == [f"{i:02d}" for i in range(11, 21)]


@pytest.mark.asyncio
async def test_detail_hides_drafts_from_non_staff(db_session: AsyncSession):
    author = await make_account(db_session, "author@example.com")
    await _article(db_session, "1", author.id, status=False)

    assert await article_service.get_article_detail(db_session, "1") is None
    assert await article_service.get_article_detail(db_session, "1", _identity(author, Role.LECTURER)) is None
    detail = await article_service.get_article_detail(db_session, "1", _identity(author, Role.STAFF))
    assert detail is not None
    assert detail.created_by.id == author.id


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_each_article_mutation_signals_once(db_session: AsyncSession, signals):
    author = await make_account(db_session, "author@example.com")

    await _article(db_session, "1", author.id)
    await article_service.update_article(db_session, "1", ArticleUpdate(title="t"))
    await article_service.publish_article(db_session, "1")
    await article_service.unpublish_article(db_session, "1")
    await article_service.delete_article(db_session, "1")

    assert signals == [ChangeSignal.ARTICLES_CHANGED] * 5
