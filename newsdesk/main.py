import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from newsdesk.config import settings
from newsdesk.database import async_session
from newsdesk.errors import install_error_handlers
from newsdesk.logging_config import configure_logging
from newsdesk.middleware import RequestContextMiddleware
from newsdesk.notifications import hub, notifier
from newsdesk.routers import accounts, articles, auth, categories, notifications, reports, tags
from newsdesk.services import account_service
from newsdesk.sessions import sessions

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup; both fall back to in-process mode without Redis.
    await sessions.connect()
    await notifier.connect()
    if settings.SEED_DEFAULT_ADMIN:
        async with async_session() as db:
            await account_service.ensure_default_admin(db)
    logger.info("newsdesk started (env=%s, sessions=%s)", settings.APP_ENV, sessions.backend)
    yield
    # Shutdown
    await hub.drain()
    await notifier.disconnect()
    await sessions.disconnect()


app = FastAPI(
    title="Newsdesk API",
    description="Role-based news publishing: accounts, categories, tags and articles",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# Routers
app.include_router(auth.router)
app.include_router(accounts.router)
app.include_router(categories.router)
app.include_router(tags.router)
app.include_router(articles.router)
app.include_router(reports.router)
app.include_router(notifications.router)


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "version": "1.0.0",
        "sessions": sessions.backend,
        "notification_clients": hub.connection_count,
    }
