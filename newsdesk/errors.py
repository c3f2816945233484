"""
Typed business errors and their HTTP translation.

Services raise these; routers never catch them.  ``install_error_handlers``
registers one FastAPI handler per class so every failure leaves the API
in the same ``{"detail": ...}`` envelope.  Infrastructure failures
(database unavailable, Redis down on a required path) are deliberately
not handled here and propagate unchanged.
"""
import logging
from urllib.parse import quote

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/v1/auth/login"


class NewsdeskError(Exception):
    """Base class for every error the service layer raises on purpose."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        data: dict = {"detail": self.message}
        if self.field is not None:
            data["field"] = self.field
        return data


class ValidationError(NewsdeskError):
    """Required input missing/blank or a semantic constraint violated."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(NewsdeskError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(NewsdeskError):
    """Uniqueness or referential business rule would be violated."""

    status_code = status.HTTP_409_CONFLICT


class AuthenticationFailure(NewsdeskError):
    """Credential mismatch.  Never says which credential was wrong."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message)


class NotAuthenticated(NewsdeskError):
    """No identity on the session; the client should go through login."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, return_path: str = "/") -> None:
        super().__init__("Authentication required")
        self.return_path = return_path

    @property
    def login_url(self) -> str:
        return f"{LOGIN_PATH}?return_url={quote(self.return_path, safe='/')}"

    def to_dict(self) -> dict:
        return {"detail": self.message, "login_url": self.login_url}


class AuthorizationDenied(NewsdeskError):
    """Authenticated, but the role is insufficient."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "access_denied": True}


async def _handle_newsdesk_error(request: Request, exc: NewsdeskError) -> JSONResponse:
    logger.debug(
        "%s on %s %s: %s",
        type(exc).__name__, request.method, request.url.path, exc.message,
    )
    headers = None
    if isinstance(exc, NotAuthenticated):
        headers = {"Location": exc.login_url}
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NewsdeskError, _handle_newsdesk_error)
