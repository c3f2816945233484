"""
Process-wide logging setup.

A single stream handler is installed on the root logger; every record is
stamped with the id of the request that produced it (``-`` outside a
request) via ``request_id_var``, which the request middleware sets.
"""
import logging
import sys
from contextvars import ContextVar

from newsdesk.config import settings

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Attach the current request id to each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    # Idempotent: the app factory may run more than once under reload / tests.
    for handler in root.handlers:
        if getattr(handler, "_newsdesk", False):
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    handler._newsdesk = True  # type: ignore[attr-defined]

    root.addHandler(handler)
    root.setLevel((level or settings.LOG_LEVEL).upper())

    # SQL echo is controlled by settings.DEBUG on the engine itself.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
