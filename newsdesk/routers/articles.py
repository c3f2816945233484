from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.database import get_db
from newsdesk.dependencies import (
    PaginationParams,
    RequestContext,
    get_request_context,
    require_article_write,
)
from newsdesk.errors import NotFoundError
from newsdesk.identity import Identity
from newsdesk.schemas import (
    ArticleCreate,
    ArticleDetail,
    ArticleResponse,
    ArticleTagsRequest,
    ArticleUpdate,
    NextIdResponse,
    PaginatedResponse,
)
from newsdesk.services import article_service
from newsdesk.services.common import is_blank

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])


@router.get("", response_model=PaginatedResponse)
async def list_articles(
    pagination: PaginationParams = Depends(),
    keyword: str | None = Query(None, max_length=200),
    category_id: int | None = None,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.list_articles(
        db,
        context.identity,
        pagination.page,
        pagination.page_size,
        pagination.sort_by,
        pagination.sort_order,
        keyword=keyword,
        category_id=category_id,
    )


@router.get("/active", response_model=list[ArticleResponse])
async def list_active_articles(db: AsyncSession = Depends(get_db)):
    return await article_service.get_active_articles(db)


@router.get("/search", response_model=list[ArticleResponse])
async def search_articles(keyword: str = Query("", max_length=200), db: AsyncSession = Depends(get_db)):
    return await article_service.search_articles(db, keyword)


@router.get("/latest", response_model=list[ArticleResponse])
async def latest_articles(count: int = 0, db: AsyncSession = Depends(get_db)):
    return await article_service.get_latest_articles(db, count)


@router.get("/by-category/{category_id}", response_model=list[ArticleResponse])
async def articles_by_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return await article_service.get_articles_by_category(db, category_id)


@router.get("/by-author/{account_id}", response_model=list[ArticleResponse])
async def articles_by_author(account_id: int, db: AsyncSession = Depends(get_db)):
    return await article_service.get_articles_by_author(db, account_id)


@router.get("/by-tag/{tag_id}", response_model=list[ArticleResponse])
async def articles_by_tag(tag_id: int, db: AsyncSession = Depends(get_db)):
    return await article_service.get_articles_by_tag(db, tag_id)


@router.get("/mine", response_model=list[ArticleResponse])
async def my_articles(
    identity: Identity = Depends(require_article_write),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.get_my_articles(db, identity)


@router.get("/next-id", response_model=NextIdResponse, dependencies=[Depends(require_article_write)])
async def next_article_id(db: AsyncSession = Depends(get_db)):
    return NextIdResponse(next_id=await article_service.next_article_id(db))


@router.get("/{article_id}", response_model=ArticleDetail)
async def get_article(
    article_id: str,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.get_article_detail(db, article_id, context.identity)
    if not article:
        raise NotFoundError(f"News article with ID {article_id} not found")
    return article


@router.post("", status_code=201, response_model=ArticleDetail)
async def create_article(
    data: ArticleCreate,
    identity: Identity = Depends(require_article_write),
    db: AsyncSession = Depends(get_db),
):
    if is_blank(data.id):
        data.id = await article_service.next_article_id(db)
    return await article_service.create_article(db, data, author_id=identity.account_id)


@router.put("/{article_id}", response_model=ArticleDetail)
async def update_article(
    article_id: str,
    data: ArticleUpdate,
    identity: Identity = Depends(require_article_write),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.update_article(db, article_id, data, editor_id=identity.account_id)


@router.delete("/{article_id}", status_code=204, dependencies=[Depends(require_article_write)])
async def delete_article(article_id: str, db: AsyncSession = Depends(get_db)):
    await article_service.delete_article(db, article_id)


@router.post("/{article_id}/publish", response_model=ArticleResponse)
async def publish_article(
    article_id: str,
    identity: Identity = Depends(require_article_write),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.publish_article(db, article_id, editor_id=identity.account_id)


@router.post("/{article_id}/unpublish", response_model=ArticleResponse)
async def unpublish_article(
    article_id: str,
    identity: Identity = Depends(require_article_write),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.unpublish_article(db, article_id, editor_id=identity.account_id)


@router.post("/{article_id}/tags", dependencies=[Depends(require_article_write)])
async def add_article_tags(article_id: str, data: ArticleTagsRequest, db: AsyncSession = Depends(get_db)):
    tag_ids = await article_service.add_tags_to_article(db, article_id, data.tag_ids)
    return {"article_id": article_id, "tag_ids": sorted(tag_ids)}


@router.delete("/{article_id}/tags", status_code=204, dependencies=[Depends(require_article_write)])
async def remove_article_tags(article_id: str, db: AsyncSession = Depends(get_db)):
    await article_service.remove_all_tags_from_article(db, article_id)
