from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.database import get_db
from newsdesk.dependencies import RequestContext, get_request_context, require_account_admin
from newsdesk.errors import NotFoundError, ValidationError
from newsdesk.identity import Identity, Role
from newsdesk.schemas import AccountCreate, AccountResponse, AccountUpdate
from newsdesk.services import account_service
from newsdesk.sessions import sessions

router = APIRouter(
    prefix="/api/v1/accounts",
    tags=["accounts"],
    dependencies=[Depends(require_account_admin)],
)


@router.get("", response_model=list[AccountResponse])
async def list_accounts(
    keyword: str | None = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.get_accounts(db, keyword)


@router.get("/by-role/{role}", response_model=list[AccountResponse])
async def list_accounts_by_role(role: str, db: AsyncSession = Depends(get_db)):
    try:
        parsed = Role.parse(role)
    except ValueError:
        raise ValidationError(f"Unknown role: {role}", field="role") from None
    return await account_service.get_accounts_by_role(db, parsed)


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(account_id: int, db: AsyncSession = Depends(get_db)):
    account = await account_service.get_account(db, account_id)
    if not account:
        raise NotFoundError(f"Account with ID {account_id} not found")
    return account


@router.post("", status_code=201, response_model=AccountResponse)
async def create_account(data: AccountCreate, db: AsyncSession = Depends(get_db)):
    return await account_service.create_account(db, data)


@router.put("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: int,
    data: AccountUpdate,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    account = await account_service.update_account(db, account_id, data)
    # Editing yourself keeps your session identity in step with the row.
    if context.identity and context.identity.account_id == account_id:
        await sessions.establish(account, session_id=context.session_id)
    return account


@router.delete("/{account_id}", status_code=204)
async def delete_account(
    account_id: int,
    identity: Identity = Depends(require_account_admin),
    db: AsyncSession = Depends(get_db),
):
    await account_service.delete_account(db, account_id, acting=identity)
