from sqlalchemy import exists, func, or_, select, update

from newsdesk.models import Account, NewsArticle
from newsdesk.repositories.base import Repository

class AccountRepository(Repository[Account]):
    model = Account
    label = "Account"

    def default_order(self) -> tuple:
        return (Account.name, Account.id)

    async def get_by_email(self, email: str) -> Account | None:
        """Case-insensitive lookup by email."""
        return await self.first_or_default(func.lower(Account.email) == email.strip().lower())

    async def email_exists(self, email: str, exclude_id: int | None = None) -> bool:
        criteria = [func.lower(Account.email) == email.strip().lower()]
        if exclude_id is not None:
            criteria.append(Account.id != exclude_id)
        return await self.any(*criteria)

    async def get_by_role(self, role: int) -> list[Account]:
        return await self.find(Account.role == int(role))

    async def search(self, keyword: str) -> list[Account]:
        pattern = f"%{keyword.strip().lower()}%"
        return await self.find(
            or_(func.lower(Account.name).like(pattern), func.lower(Account.email).like(pattern))
        )

    async def has_articles(self, account_id: int) -> bool:
        q = select(exists().where(NewsArticle.created_by_id == account_id))
        return bool((await self.db.execute(q)).scalar())

    async def release_edits(self, account_id: int) -> None:
        """Forget *account_id* as last editor on every article it touched."""
        await self.db.execute(
            update(NewsArticle)
            .where(NewsArticle.updated_by_id == account_id)
            .values(updated_by_id=None)
            .execution_options(synchronize_session="fetch")
        )
