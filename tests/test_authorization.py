"""
Authorization policy and identity tests — pure functions, no database.
"""
import pytest
from starlette.requests import Request

from newsdesk import authorization, dependencies
from newsdesk.dependencies import RequestContext
from newsdesk.errors import AuthorizationDenied, NotAuthenticated
from newsdesk.identity import Identity, Role


def _who(role: Role) -> Identity:
    return Identity(account_id=1, email="x@example.com", name="X", role=role)


@pytest.mark.parametrize("required", list(Role))
def test_admin_satisfies_every_role(required: Role):
    assert authorization.has_role(_who(Role.ADMIN), required) is True


def test_non_admin_roles_match_exactly():
    assert authorization.has_role(_who(Role.STAFF), Role.STAFF) is True
    assert authorization.has_role(_who(Role.STAFF), Role.ADMIN) is False
    assert authorization.has_role(_who(Role.STAFF), Role.LECTURER) is False
    assert authorization.has_role(_who(Role.LECTURER), Role.STAFF) is False
    assert authorization.has_role(None, Role.LECTURER) is False


def test_is_authenticated_and_is_admin():
    assert authorization.is_authenticated(None) is False
    assert authorization.is_authenticated(_who(Role.LECTURER)) is True
    assert authorization.is_admin(_who(Role.ADMIN)) is True
    assert authorization.is_admin(_who(Role.STAFF)) is False


def test_can_see_unpublished():
    assert authorization.can_see_unpublished(_who(Role.ADMIN)) is True
    assert authorization.can_see_unpublished(_who(Role.STAFF)) is True
    assert authorization.can_see_unpublished(_who(Role.LECTURER)) is False
    assert authorization.can_see_unpublished(None) is False


def test_ensure_allowed_distinguishes_anonymous_from_denied():
    with pytest.raises(NotAuthenticated) as anonymous:
        authorization.ensure_allowed(None, authorization.ADMIN_ONLY, "/api/v1/tags?x=1")
    assert anonymous.value.login_url == "/api/v1/auth/login?return_url=/api/v1/tags%3Fx%3D1"

    with pytest.raises(AuthorizationDenied):
        authorization.ensure_allowed(_who(Role.LECTURER), authorization.ADMIN_OR_STAFF)

    staff = _who(Role.STAFF)
    assert authorization.ensure_allowed(staff, authorization.ARTICLE_WRITE) is staff
    assert authorization.ensure_allowed(_who(Role.LECTURER)) is not None


def _request(path: str = "/api/v1/things") -> Request:
    return Request({"type": "http", "method": "POST", "path": path, "query_string": b"", "headers": []})


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "guard, policy",
    [
        (dependencies.require_category_write, authorization.CATEGORY_WRITE),
        (dependencies.require_article_write, authorization.ARTICLE_WRITE),
        (dependencies.require_tag_write, authorization.TAG_WRITE),
        (dependencies.require_account_admin, authorization.ACCOUNT_ADMIN),
        (dependencies.require_reports, authorization.REPORTS),
        (dependencies.require_authenticated, authorization.AUTHENTICATED),
    ],
)
async def test_route_guards_apply_their_policy(guard, policy):
    with pytest.raises(NotAuthenticated):
        await guard(_request(), RequestContext(session_id=None, identity=None))

    for role in Role:
        who = _who(role)
        context = RequestContext(session_id="s", identity=who)
        if authorization.has_any_role(who, policy):
            assert await guard(_request(), context) is who
        else:
            with pytest.raises(AuthorizationDenied):
                await guard(_request(), context)


def test_write_policies():
    assert authorization.CATEGORY_WRITE == (Role.ADMIN, Role.STAFF)
    assert authorization.ARTICLE_WRITE == (Role.ADMIN, Role.STAFF)
    assert authorization.TAG_WRITE == (Role.ADMIN,)
    assert authorization.ACCOUNT_ADMIN == (Role.ADMIN,)
    assert authorization.REPORTS == (Role.ADMIN,)


@pytest.mark.parametrize(
    "raw, expected",
    [("admin", Role.ADMIN), ("Staff", Role.STAFF), ("3", Role.LECTURER), (2, Role.STAFF), (Role.ADMIN, Role.ADMIN)],
)
def test_role_parse(raw, expected):
    assert Role.parse(raw) is expected


@pytest.mark.parametrize("raw", ["editor", "9", 0])
def test_role_parse_rejects_unknown(raw):
    with pytest.raises(ValueError):
        Role.parse(raw)


def test_lowest_role_is_lecturer():
    assert Role.lowest() is Role.LECTURER
    assert Role.ADMIN.label == "Admin"


def test_identity_round_trip_never_carries_password():
    identity = _who(Role.STAFF)
    data = identity.to_dict()
    assert set(data) == {"account_id", "email", "name", "role"}
    assert data["role"] == 2
    assert Identity.from_dict(data) == identity
