from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from newsdesk.identity import Identity, Role


def _parse_role(value):
    if value is None or isinstance(value, Role):
        return value
    return Role.parse(value)


# Accepts a Role, its number ("2"), or its name ("staff").
RoleField = Annotated[Role | None, BeforeValidator(_parse_role)]


# --- Auth / session ---

class LoginRequest(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(max_length=200)
    return_url: str | None = None


class IdentityResponse(BaseModel):
    account_id: int
    email: str
    name: str
    role: int
    role_name: str

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        return cls(
            account_id=identity.account_id,
            email=identity.email,
            name=identity.name,
            role=int(identity.role),
            role_name=identity.role.label,
        )


class LoginResponse(BaseModel):
    identity: IdentityResponse
    redirect_to: str


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str
    confirm_password: str


class ProfileUpdate(BaseModel):
    name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)


# --- Account ---

class AccountBase(BaseModel):
    name: str = Field(max_length=100)
    email: str = Field(max_length=255)


class AccountCreate(AccountBase):
    password: str = Field(max_length=200)
    # None is resolved to the lowest-privilege role by the service.
    role: RoleField = None


class RegisterRequest(AccountCreate):
    pass


class AccountUpdate(BaseModel):
    name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)
    # Omitted or blank keeps the stored hash.
    password: str | None = Field(None, max_length=200)
    role: RoleField = None


class AccountResponse(AccountBase):
    id: int
    role: int
    model_config = ConfigDict(from_attributes=True)


# --- Category ---

class CategoryCreate(BaseModel):
    name: str = Field(max_length=100)
    description: str = Field(max_length=250)
    parent_id: int | None = None
    # Tri-state at the boundary: None means "unset" and becomes True on create.
    is_active: bool | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, max_length=100)
    description: str | None = Field(None, max_length=250)
    parent_id: int | None = None
    # None (or omitted) keeps the stored flag.
    is_active: bool | None = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: str
    parent_id: int | None
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class CategoryWithParent(CategoryResponse):
    parent: CategoryResponse | None = None


# --- Tag ---

class TagBase(BaseModel):
    name: str = Field(max_length=50)
    note: str | None = Field(None, max_length=400)


class TagCreate(TagBase):
    pass


class TagUpdate(BaseModel):
    name: str | None = Field(None, max_length=50)
    note: str | None = Field(None, max_length=400)


class TagResponse(TagBase):
    id: int
    model_config = ConfigDict(from_attributes=True)


class TagUsage(TagResponse):
    article_count: int


# --- News article ---

class ArticleCreate(BaseModel):
    # Omitted id: the router assigns the next numeric id.
    id: str | None = Field(None, max_length=20)
    title: str | None = Field(None, max_length=400)
    headline: str = Field(max_length=150)
    content: str | None = None
    source: str | None = Field(None, max_length=400)
    category_id: int | None = None
    status: bool | None = None
    created_at: datetime | None = None
    tag_ids: list[int] = []


class ArticleUpdate(BaseModel):
    title: str | None = Field(None, max_length=400)
    headline: str | None = Field(None, max_length=150)
    content: str | None = None
    source: str | None = Field(None, max_length=400)
    category_id: int | None = None
    status: bool | None = None
    # None leaves the tag set alone; a list (even empty) replaces it.
    tag_ids: list[int] | None = None


class ArticleTagsRequest(BaseModel):
    tag_ids: list[int]


class ArticleResponse(BaseModel):
    id: str
    title: str | None
    headline: str
    source: str | None
    status: bool
    created_at: datetime
    modified_at: datetime | None
    category_id: int | None
    created_by_id: int | None
    updated_by_id: int | None
    model_config = ConfigDict(from_attributes=True)


class ArticleDetail(ArticleResponse):
    content: str | None
    category: CategoryResponse | None = None
    created_by: AccountResponse | None = None
    updated_by: AccountResponse | None = None
    tags: list[TagResponse] = []


class CategoryDetail(CategoryWithParent):
    articles: list[ArticleResponse] = []
    children: list[CategoryResponse] = []


class TagDetail(TagResponse):
    articles: list[ArticleResponse] = []


class NextIdResponse(BaseModel):
    next_id: str


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list  # Will be typed in router
    total: int
    page: int
    page_size: int
    pages: int


# --- Reports ---

class ArticleReport(BaseModel):
    start: datetime
    end: datetime
    total: int
    articles: list[ArticleResponse]
