"""
Authorization policy: pure decisions over an optional ``Identity``.

Admin satisfies every role check.  That is a deliberate escalation rule:
``has_role(admin, anything)`` is always true.

Two distinct failure outcomes exist and must not be conflated:

- no identity at all  -> ``NotAuthenticated`` (client goes to login and
  comes back to *return_path*)
- identity present but role insufficient -> ``AuthorizationDenied``
"""
from __future__ import annotations

from typing import Iterable, Optional

from newsdesk.errors import AuthorizationDenied, NotAuthenticated
from newsdesk.identity import Identity, Role

# ---------------------------------------------------------------------------
# Per-entity write policies.  An empty tuple means "any authenticated caller".
# ---------------------------------------------------------------------------
ADMIN_ONLY: tuple[Role, ...] = (Role.ADMIN,)
ADMIN_OR_STAFF: tuple[Role, ...] = (Role.ADMIN, Role.STAFF)
AUTHENTICATED: tuple[Role, ...] = ()

CATEGORY_WRITE = ADMIN_OR_STAFF
ARTICLE_WRITE = ADMIN_OR_STAFF
TAG_WRITE = ADMIN_ONLY
ACCOUNT_ADMIN = ADMIN_ONLY
REPORTS = ADMIN_ONLY


def is_authenticated(identity: Optional[Identity]) -> bool:
    return identity is not None


def has_role(identity: Optional[Identity], required_role: Role) -> bool:
    """True iff *identity* holds *required_role*, or is an Admin."""
    if identity is None:
        return False
    if identity.role == Role.ADMIN:
        return True
    return identity.role == required_role


def has_any_role(identity: Optional[Identity], roles: Iterable[Role]) -> bool:
    roles = tuple(roles)
    if not roles:
        return is_authenticated(identity)
    return any(has_role(identity, role) for role in roles)


def is_admin(identity: Optional[Identity]) -> bool:
    return has_role(identity, Role.ADMIN)


def can_see_unpublished(identity: Optional[Identity]) -> bool:
    """Admin and Staff see articles in every status; everyone else only published."""
    return has_any_role(identity, ADMIN_OR_STAFF)


def ensure_allowed(
    identity: Optional[Identity],
    roles: Iterable[Role] = AUTHENTICATED,
    return_path: str = "/",
) -> Identity:
    """
    Return *identity* if it may act under *roles*; raise otherwise.

    Raises ``NotAuthenticated`` when there is no identity and
    ``AuthorizationDenied`` when the identity lacks every listed role.
    """
    if identity is None:
        raise NotAuthenticated(return_path)
    if not has_any_role(identity, roles):
        raise AuthorizationDenied()
    return identity
