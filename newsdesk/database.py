from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from newsdesk.config import settings
from newsdesk.middleware import install_query_counter


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for *url* with the SQL query counter attached.

    In-memory SQLite URLs (tests, local experiments) get a ``StaticPool``
    so every session shares the one connection that holds the database.
    """
    if url.startswith("sqlite") and ":memory:" in url:
        new_engine = create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        new_engine = create_async_engine(url, echo=echo, pool_pre_ping=True)
    install_query_counter(new_engine)
    return new_engine


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# Module-level engine variable allows tests to override with a test engine.
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
async_session = build_sessionmaker(engine)


class Base(DeclarativeBase):
    pass


async def create_schema(bind: AsyncEngine, drop_first: bool = False) -> None:
    """Create all tables on *bind* (development / seeding only; use Alembic otherwise)."""
    # Make sure every mapped class is registered on Base.metadata.
    import newsdesk.models  # noqa: F401

    async with bind.begin() as conn:
        if drop_first:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    """
    Request-scoped session.

    Mutating services commit their own unit of work (change notifications
    must follow the commit), so the final commit here only covers whatever
    a read-only request may have left pending.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
