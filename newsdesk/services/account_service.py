"""
Account service — accounts, credentials and login.

Passwords are only ever stored as bcrypt hashes.  Email uniqueness is
case-insensitive.  ``login`` answers None for every kind of mismatch so
callers cannot tell an unknown email from a wrong password.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.config import settings
from newsdesk.errors import ConflictError, NotFoundError, ValidationError
from newsdesk.identity import Identity, Role
from newsdesk.models import Account
from newsdesk.notifications import ChangeSignal
from newsdesk.repositories import AccountRepository
from newsdesk.schemas import AccountCreate, AccountUpdate
from newsdesk.security import hash_password, verify_password
from newsdesk.services.common import commit_and_notify, is_blank, require_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_accounts(db: AsyncSession, keyword: str | None = None) -> list[Account]:
    repo = AccountRepository(db)
    if keyword and keyword.strip():
        return await repo.search(keyword)
    return await repo.get_all()


async def get_account(db: AsyncSession, account_id: int) -> Account | None:
    return await AccountRepository(db).get_by_id(account_id)


async def get_account_by_email(db: AsyncSession, email: str | None) -> Account | None:
    if is_blank(email):
        return None
    return await AccountRepository(db).get_by_email(email)


async def get_accounts_by_role(db: AsyncSession, role: Role) -> list[Account]:
    return await AccountRepository(db).get_by_role(role)


async def email_exists(db: AsyncSession, email: str | None) -> bool:
    if is_blank(email):
        return False
    return await AccountRepository(db).email_exists(email)


async def login(db: AsyncSession, email: str | None, password: str | None) -> Account | None:
    """Return the account whose email and password match, else None."""
    if is_blank(email) or is_blank(password):
        return None
    account = await AccountRepository(db).get_by_email(email)
    if account is None or not verify_password(password, account.password_hash):
        logger.info("Login rejected")
        return None
    logger.info("Login accepted for account_id=%s", account.id)
    return account


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_account(db: AsyncSession, data: AccountCreate) -> Account:
    name = require_text(data.name, "Account name is required", "name")
    email = require_text(data.email, "Email is required", "email")
    if is_blank(data.password):
        raise ValidationError("Password is required", field="password")

    repo = AccountRepository(db)
    if await repo.email_exists(email):
        raise ConflictError(f"Email {email} already exists", field="email")

    account = Account(
        name=name,
        email=email,
        password_hash=hash_password(data.password),
        role=int(data.role if data.role is not None else Role.lowest()),
    )
    await repo.add(account)
    await commit_and_notify(db, ChangeSignal.ACCOUNTS_CHANGED)
    logger.info("Created account id=%s role=%s", account.id, Role(account.role).label)
    return account


async def update_account(db: AsyncSession, account_id: int, data: AccountUpdate) -> Account:
    """
    Partially update an account.

    A supplied, non-blank password is re-hashed; otherwise the stored
    hash is left exactly as it was.
    """
    repo = AccountRepository(db)
    account = await repo.get_by_id(account_id)
    if account is None:
        raise NotFoundError(f"Account with ID {account_id} not found")

    changes = data.model_dump(exclude_unset=True)
    password = changes.pop("password", None)

    if "name" in changes:
        changes["name"] = require_text(changes["name"], "Account name is required", "name")
    if "email" in changes:
        changes["email"] = require_text(changes["email"], "Email is required", "email")
        if changes["email"].lower() != account.email.lower() and await repo.email_exists(
            changes["email"], exclude_id=account_id
        ):
            raise ConflictError(f"Email {changes['email']} already exists", field="email")
    if "role" in changes:
        if changes["role"] is None:
            changes.pop("role")
        else:
            changes["role"] = int(changes["role"])

    for field, value in changes.items():
        setattr(account, field, value)
    if not is_blank(password):
        account.password_hash = hash_password(password)

    await repo.update(account)
    await commit_and_notify(db, ChangeSignal.ACCOUNTS_CHANGED)
    return account


async def delete_account(
    db: AsyncSession, account_id: int, acting: Identity | None = None
) -> None:
    """
    Delete an account that authored no articles.

    *acting* is the caller; an account may not delete itself.
    """
    if acting is not None and acting.account_id == account_id:
        raise ConflictError("You cannot delete your own account")

    repo = AccountRepository(db)
    account = await repo.get_by_id(account_id)
    if account is None:
        raise NotFoundError(f"Account with ID {account_id} not found")
    if await repo.has_articles(account_id):
        raise ConflictError(
            f"Cannot delete account {account_id} as it has associated news articles"
        )

    await repo.release_edits(account_id)
    await repo.delete(account)
    await commit_and_notify(db, ChangeSignal.ACCOUNTS_CHANGED)
    logger.info("Deleted account id=%s", account_id)


async def change_password(db: AsyncSession, account_id: int, new_password: str | None) -> Account:
    if is_blank(new_password):
        raise ValidationError("New password is required", field="new_password")

    repo = AccountRepository(db)
    account = await repo.get_by_id(account_id)
    if account is None:
        raise NotFoundError(f"Account with ID {account_id} not found")

    account.password_hash = hash_password(new_password)
    await repo.update(account)
    await commit_and_notify(db, ChangeSignal.ACCOUNTS_CHANGED)
    return account


async def change_own_password(
    db: AsyncSession,
    account_id: int,
    old_password: str,
    new_password: str,
    confirm_password: str,
) -> Account:
    """Self-service password change: the current password must be proven first."""
    require_text(old_password, "Current password is required", "old_password")
    require_text(new_password, "New password is required", "new_password")

    account = await AccountRepository(db).get_by_id(account_id)
    if account is None:
        raise NotFoundError(f"Account with ID {account_id} not found")
    if not verify_password(old_password, account.password_hash):
        raise ValidationError("Current password is incorrect", field="old_password")
    if new_password != confirm_password:
        raise ValidationError("New password and confirmation do not match", field="confirm_password")

    return await change_password(db, account_id, new_password)


async def ensure_default_admin(db: AsyncSession) -> Account:
    """Create the bootstrap Admin from settings unless an account with that email exists."""
    existing = await AccountRepository(db).get_by_email(settings.DEFAULT_ADMIN_EMAIL)
    if existing is not None:
        return existing
    logger.info("Seeding default admin %s", settings.DEFAULT_ADMIN_EMAIL)
    return await create_account(
        db,
        AccountCreate(
            name=settings.DEFAULT_ADMIN_NAME,
            email=settings.DEFAULT_ADMIN_EMAIL,
            password=settings.DEFAULT_ADMIN_PASSWORD,
            role=Role.ADMIN,
        ),
    )
