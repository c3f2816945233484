from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.authorization import is_admin
from newsdesk.config import settings
from newsdesk.database import get_db
from newsdesk.dependencies import RequestContext, get_request_context, require_authenticated
from newsdesk.errors import AuthenticationFailure, AuthorizationDenied
from newsdesk.identity import Identity, Role
from newsdesk.schemas import (
    AccountResponse,
    AccountUpdate,
    ChangePasswordRequest,
    IdentityResponse,
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    RegisterRequest,
)
from newsdesk.services import account_service
from newsdesk.sessions import sessions

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _safe_return_url(return_url: str | None) -> str:
    # Only local paths; "//host" would leave the site.
    if return_url and return_url.startswith("/") and not return_url.startswith("//"):
        return return_url
    return "/"


def _set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        session_id,
        max_age=settings.SESSION_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=settings.APP_ENV == "production",
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    response: Response,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    account = await account_service.login(db, data.email, data.password)
    if account is None:
        raise AuthenticationFailure()

    # A fresh id on every login; the previous session is dropped.
    await sessions.clear(context.session_id)
    session_id = await sessions.establish(account)
    _set_session_cookie(response, session_id)

    return LoginResponse(
        identity=IdentityResponse.from_identity(Identity.from_account(account)),
        redirect_to=_safe_return_url(data.return_url),
    )


@router.post("/logout", status_code=204)
async def logout(response: Response, context: RequestContext = Depends(get_request_context)):
    await sessions.clear(context.session_id)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)


@router.post("/register", status_code=201, response_model=AccountResponse)
async def register(
    data: RegisterRequest,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    if data.role is None:
        data.role = Role.STAFF
    elif data.role == Role.ADMIN and not is_admin(context.identity):
        raise AuthorizationDenied("Only an administrator can create administrator accounts")
    return await account_service.create_account(db, data)


@router.get("/me", response_model=IdentityResponse)
async def me(identity: Identity = Depends(require_authenticated)):
    return IdentityResponse.from_identity(identity)


@router.put("/profile", response_model=IdentityResponse)
async def update_profile(
    data: ProfileUpdate,
    identity: Identity = Depends(require_authenticated),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    changes = AccountUpdate(**data.model_dump(exclude_unset=True))
    account = await account_service.update_account(db, identity.account_id, changes)
    await sessions.establish(account, session_id=context.session_id)
    return IdentityResponse.from_identity(Identity.from_account(account))


@router.post("/change-password", status_code=204)
async def change_password(
    data: ChangePasswordRequest,
    identity: Identity = Depends(require_authenticated),
    db: AsyncSession = Depends(get_db),
):
    await account_service.change_own_password(
        db,
        identity.account_id,
        data.old_password,
        data.new_password,
        data.confirm_password,
    )
