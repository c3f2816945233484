from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.database import get_db
from newsdesk.dependencies import RequestContext, get_request_context, require_tag_write
from newsdesk.errors import NotFoundError
from newsdesk.schemas import TagCreate, TagDetail, TagResponse, TagUpdate, TagUsage
from newsdesk.services import tag_service

router = APIRouter(prefix="/api/v1/tags", tags=["tags"])


def _usage(pairs) -> list[TagUsage]:
    return [
        TagUsage(id=tag.id, name=tag.name, note=tag.note, article_count=count)
        for tag, count in pairs
    ]


@router.get("", response_model=list[TagResponse])
async def list_tags(db: AsyncSession = Depends(get_db)):
    return await tag_service.get_tags(db)


@router.get("/with-articles", response_model=list[TagUsage])
async def list_tags_with_articles(db: AsyncSession = Depends(get_db)):
    return _usage(await tag_service.get_tags_with_articles(db))


@router.get("/most-used", response_model=list[TagUsage])
async def list_most_used_tags(
    count: int = Query(tag_service.DEFAULT_TAG_COUNT, description="How many tags; <= 0 means the default."),
    db: AsyncSession = Depends(get_db),
):
    return _usage(await tag_service.get_most_used_tags(db, count))


@router.get("/exists")
async def tag_name_exists(name: str = Query(..., max_length=50), db: AsyncSession = Depends(get_db)):
    return {"name": name, "exists": await tag_service.tag_name_exists(db, name)}


@router.get("/by-name/{name}", response_model=TagResponse)
async def get_tag_by_name(name: str, db: AsyncSession = Depends(get_db)):
    tag = await tag_service.get_tag_by_name(db, name)
    if not tag:
        raise NotFoundError(f"Tag {name} not found")
    return tag


@router.get("/{tag_id}", response_model=TagDetail)
async def get_tag(
    tag_id: int,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    tag = await tag_service.get_tag_with_articles(db, tag_id, context.can_see_unpublished)
    if not tag:
        raise NotFoundError(f"Tag with ID {tag_id} not found")
    return tag


@router.post("", status_code=201, response_model=TagResponse, dependencies=[Depends(require_tag_write)])
async def create_tag(data: TagCreate, db: AsyncSession = Depends(get_db)):
    return await tag_service.create_tag(db, data)


@router.put("/{tag_id}", response_model=TagResponse, dependencies=[Depends(require_tag_write)])
async def update_tag(tag_id: int, data: TagUpdate, db: AsyncSession = Depends(get_db)):
    return await tag_service.update_tag(db, tag_id, data)


@router.delete("/{tag_id}", status_code=204, dependencies=[Depends(require_tag_write)])
async def delete_tag(tag_id: int, db: AsyncSession = Depends(get_db)):
    await tag_service.delete_tag(db, tag_id)
