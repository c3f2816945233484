import calendar
from datetime import date, datetime, time, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.database import get_db
from newsdesk.dependencies import require_reports
from newsdesk.schemas import ArticleReport, ArticleResponse
from newsdesk.services import article_service

router = APIRouter(
    prefix="/api/v1/reports",
    tags=["reports"],
    dependencies=[Depends(require_reports)],
)


def _one_month_before(day: date) -> date:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


@router.get("/articles", response_model=ArticleReport)
async def article_report(
    start: date | None = None,
    end: date | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Published articles created between *start* and *end*, whole days inclusive."""
    end = end or datetime.now(timezone.utc).date()
    start = start or _one_month_before(end)

    range_start = datetime.combine(start, time.min, tzinfo=timezone.utc)
    range_end = datetime.combine(end, time.max, tzinfo=timezone.utc)
    articles = await article_service.get_articles_by_date_range(db, range_start, range_end)

    return ArticleReport(
        start=range_start,
        end=range_end,
        total=len(articles),
        articles=[ArticleResponse.model_validate(a) for a in articles],
    )
