import logging

from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.errors import ValidationError
from newsdesk.notifications import ChangeSignal, notifier

logger = logging.getLogger(__name__)


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def require_text(value: str | None, message: str, field: str | None = None) -> str:
    """Return *value* stripped, or raise ``ValidationError`` when blank."""
    if is_blank(value):
        raise ValidationError(message, field=field)
    return value.strip()


async def commit_and_notify(db: AsyncSession, signal: ChangeSignal) -> None:
    """Commit the unit of work, then tell connected clients *signal*'s lists changed."""
    await db.commit()
    logger.debug("Committed; publishing %s", signal.value)
    await notifier.publish(signal)
