from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.database import get_db
from newsdesk.dependencies import RequestContext, get_request_context, require_category_write
from newsdesk.errors import NotFoundError
from newsdesk.schemas import CategoryCreate, CategoryDetail, CategoryUpdate, CategoryWithParent
from newsdesk.services import category_service

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


@router.get("", response_model=list[CategoryWithParent])
async def list_categories(
    keyword: str | None = Query(None, max_length=100),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    # Inactive categories are an editorial concern.
    include_inactive = context.can_see_unpublished
    return await category_service.get_categories(db, include_inactive, keyword)


@router.get("/active", response_model=list[CategoryWithParent])
async def list_active_categories(db: AsyncSession = Depends(get_db)):
    return await category_service.get_active_categories(db)


@router.get("/roots", response_model=list[CategoryWithParent])
async def list_root_categories(db: AsyncSession = Depends(get_db)):
    return await category_service.get_root_categories(db)


@router.get("/{category_id}/subcategories", response_model=list[CategoryWithParent])
async def list_subcategories(category_id: int, db: AsyncSession = Depends(get_db)):
    return await category_service.get_subcategories(db, category_id)


@router.get("/{category_id}/can-delete")
async def can_delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return {"category_id": category_id, "can_delete": await category_service.can_delete_category(db, category_id)}


@router.get("/{category_id}", response_model=CategoryDetail)
async def get_category(
    category_id: int,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    category = await category_service.get_category_with_articles(
        db, category_id, context.can_see_unpublished
    )
    if not category:
        raise NotFoundError(f"Category with ID {category_id} not found")
    return category


@router.post(
    "",
    status_code=201,
    response_model=CategoryWithParent,
    dependencies=[Depends(require_category_write)],
)
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)):
    return await category_service.create_category(db, data)


@router.put(
    "/{category_id}",
    response_model=CategoryWithParent,
    dependencies=[Depends(require_category_write)],
)
async def update_category(category_id: int, data: CategoryUpdate, db: AsyncSession = Depends(get_db)):
    return await category_service.update_category(db, category_id, data)


@router.delete("/{category_id}", status_code=204, dependencies=[Depends(require_category_write)])
async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
    await category_service.delete_category(db, category_id)
