from dataclasses import dataclass

from fastapi import Depends, Query, Request

from newsdesk import authorization
from newsdesk.config import settings
from newsdesk.identity import Identity, Role
from newsdesk.sessions import sessions


@dataclass(frozen=True)
class RequestContext:
    """Per-request view of the caller: the session id and the identity it resolves to."""

    session_id: str | None
    identity: Identity | None

    @property
    def can_see_unpublished(self) -> bool:
        return authorization.can_see_unpublished(self.identity)


def _return_path(request: Request) -> str:
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return path


async def get_request_context(request: Request) -> RequestContext:
    """
    Resolve the session cookie to an identity once per request.

    The result is kept on ``request.state`` so several guards on one
    route share a single session-store lookup.
    """
    cached = getattr(request.state, "newsdesk_context", None)
    if cached is not None:
        return cached

    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    identity = await sessions.current_identity(session_id)
    context = RequestContext(session_id=session_id, identity=identity)
    request.state.newsdesk_context = context
    return context


def _guard(roles: tuple[Role, ...]):
    async def dependency(
        request: Request, context: RequestContext = Depends(get_request_context)
    ) -> Identity:
        return authorization.ensure_allowed(context.identity, roles, _return_path(request))

    return dependency


require_authenticated = _guard(authorization.AUTHENTICATED)
require_category_write = _guard(authorization.CATEGORY_WRITE)
require_article_write = _guard(authorization.ARTICLE_WRITE)
require_tag_write = _guard(authorization.TAG_WRITE)
require_account_admin = _guard(authorization.ACCOUNT_ADMIN)
require_reports = _guard(authorization.REPORTS)


class PaginationParams:
    """
    Reusable FastAPI dependency that parses and validates pagination /
    sorting query parameters.

    Usage in a router::

        @router.get("/articles")
        async def list_articles(pagination: PaginationParams = Depends(PaginationParams)):
            ...

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    page_size:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``
        regardless of the value supplied by the caller.
    sort_by:
        Column name to sort by.  The service layer maps it to a real
        column and falls back to ``created_at`` for anything else.
    sort_order:
        ``"asc"`` or ``"desc"`` (enforced by the regex pattern).
    """

    def __init__(
        self,
        page: int = Query(
            1,
            ge=1,
            description="Page number (1-based).",
        ),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=100,
            description="Number of items returned per page (max 100).",
        ),
        sort_by: str = Query(
            "created_at",
            description="Column name to sort results by.",
        ),
        sort_order: str = Query(
            "desc",
            pattern="^(asc|desc)$",
            description="Sort direction: 'asc' or 'desc'.",
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)
        self.sort_by = sort_by
        self.sort_order = sort_order
