from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from newsdesk.database import Base

# SQLite only auto-assigns keys for columns declared exactly INTEGER PRIMARY KEY.
ShortId = SmallInteger().with_variant(Integer(), "sqlite")

# ---------------------------------------------------------------------------
# Association table: NewsArticle <-> Tag (many-to-many)
#
# No ON DELETE CASCADE: the article delete path removes its rows
# explicitly, and a tag with rows here may not be deleted at all.
# ---------------------------------------------------------------------------
news_tags = Table(
    "news_tags",
    Base.metadata,
    Column("news_article_id", String(20), ForeignKey("news_articles.id"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id"), primary_key=True),
    Index("ix_news_tags_tag_id", "tag_id"),
)


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------
class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(ShortId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Uniqueness is case-insensitive and enforced by the account service;
    # the plain unique constraint is a last line of defence.
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    # lazy="noload" enforces explicit eager loading in repositories
    articles: Mapped[List["NewsArticle"]] = relationship(
        "NewsArticle",
        back_populates="created_by",
        foreign_keys="NewsArticle.created_by_id",
        lazy="noload",
    )

    def __repr__(self) -> str:
        return f"<Account id={self.id} email={self.email!r} role={self.role}>"


# ---------------------------------------------------------------------------
# Category (self-referential tree)
# ---------------------------------------------------------------------------
class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(ShortId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(250), nullable=False)
    parent_id: Mapped[Optional[int]] = mapped_column(
        ShortId, ForeignKey("categories.id"), nullable=True, index=True
    )
    # Resolved once at creation; "unset" never reaches the table.
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    parent: Mapped[Optional["Category"]] = relationship(
        "Category", remote_side="Category.id", back_populates="children", lazy="noload"
    )
    children: Mapped[List["Category"]] = relationship(
        "Category", back_populates="parent", lazy="noload"
    )
    articles: Mapped[List["NewsArticle"]] = relationship(
        "NewsArticle", back_populates="category", lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# Tag
# ---------------------------------------------------------------------------
class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    note: Mapped[Optional[str]] = mapped_column(String(400), nullable=True)

    articles: Mapped[List["NewsArticle"]] = relationship(
        "NewsArticle", secondary=news_tags, back_populates="tags", lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<Tag id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# NewsArticle
# ---------------------------------------------------------------------------
class NewsArticle(Base):
    __tablename__ = "news_articles"

    __table_args__ = (
        # Published feed, newest first (home page, latest, search)
        Index("ix_news_articles_status_created_at", "status", "created_at"),
        # Author history ("my articles")
        Index("ix_news_articles_created_by_id_created_at", "created_by_id", "created_at"),
    )

    # Caller-supplied string key; immutable once created.
    id: Mapped[str] = mapped_column(String(20), primary_key=True)
    title: Mapped[Optional[str]] = mapped_column(String(400), nullable=True)
    headline: Mapped[str] = mapped_column(String(150), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(400), nullable=True)
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    modified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Foreign keys
    category_id: Mapped[Optional[int]] = mapped_column(
        ShortId, ForeignKey("categories.id"), nullable=True, index=True
    )
    created_by_id: Mapped[Optional[int]] = mapped_column(
        ShortId, ForeignKey("accounts.id"), nullable=True
    )
    updated_by_id: Mapped[Optional[int]] = mapped_column(
        ShortId, ForeignKey("accounts.id"), nullable=True
    )

    # Relationships; use selectinload/joinedload in repositories
    category: Mapped[Optional["Category"]] = relationship(
        "Category", back_populates="articles", lazy="noload"
    )
    created_by: Mapped[Optional["Account"]] = relationship(
        "Account", back_populates="articles", foreign_keys=[created_by_id], lazy="noload"
    )
    updated_by: Mapped[Optional["Account"]] = relationship(
        "Account", foreign_keys=[updated_by_id], lazy="noload"
    )
    tags: Mapped[List["Tag"]] = relationship(
        "Tag", secondary=news_tags, back_populates="articles", lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<NewsArticle id={self.id!r} status={self.status}>"
