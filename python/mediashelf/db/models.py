"""SQLAlchemy ORM models for mediashelf.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Enums are Python str enums stored as constrained VARCHAR so the schema
works on PostgreSQL and SQLite alike.

Tag and platform sets live in child tables and are exposed on the parent
as plain lists of strings through association proxies.
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    func,
    select,
    text,
)
from sqlalchemy.ext.associationproxy import AssociationProxy, association_proxy
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    column_property,
    mapped_column,
    relationship,
)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Enums
# =============================================================================


class MediaType(str, PyEnum):
    """Kinds of media that can be tracked."""

    FILM = "FILM"
    SERIES = "SERIES"
    BOOK = "BOOK"
    ARTICLE = "ARTICLE"
    OTHER = "OTHER"


class Visibility(str, PyEnum):
    """Collection visibility. PUBLIC collections are readable by anyone."""

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class CollectionRole(str, PyEnum):
    """Roles a user can hold on a collection.

    Roles are compared by exact set membership; there is no hierarchy.
    """

    OWNER = "OWNER"
    COLLABORATOR = "COLLABORATOR"
    READER = "READER"


def _enum_column(enum_cls: type[PyEnum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=20,
        validate_strings=True,
    )


# =============================================================================
# Models
# =============================================================================


class User(Base):
    """User account model.

    The user ID is the identity provider's subject id, stored verbatim.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Chosen by the user; unique when set
    username: Mapped[str | None] = mapped_column(Text, unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    collections: Mapped[list["Collection"]] = relationship(
        "Collection", back_populates="owner", passive_deletes=True
    )
    memberships: Mapped[list["CollectionMembership"]] = relationship(
        "CollectionMembership", back_populates="user", passive_deletes=True
    )


class Media(Base):
    """Media model - a film, series, book or article a user wants to track."""

    __tablename__ = "media"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[MediaType] = mapped_column(_enum_column(MediaType, "media_type"), nullable=False)
    release_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    director_author: Mapped[str | None] = mapped_column(Text, nullable=True)
    scores: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "length(title) BETWEEN 1 AND 300",
            name="ck_media_title_length",
        ),
    )

    # Relationships
    tag_rows: Mapped[list["MediaTag"]] = relationship(
        "MediaTag",
        order_by="MediaTag.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    platform_rows: Mapped[list["MediaPlatform"]] = relationship(
        "MediaPlatform",
        order_by="MediaPlatform.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    collection_links: Mapped[list["CollectionMedia"]] = relationship(
        "CollectionMedia", back_populates="media", passive_deletes=True
    )

    tags: AssociationProxy[list[str]] = association_proxy(
        "tag_rows", "tag", creator=lambda tag: MediaTag(tag=tag)
    )
    platforms: AssociationProxy[list[str]] = association_proxy(
        "platform_rows", "platform", creator=lambda platform: MediaPlatform(platform=platform)
    )


class MediaTag(Base):
    """One tag on a media item."""

    __tablename__ = "media_tags"

    media_id: Mapped[str] = mapped_column(
        Text, ForeignKey("media.id", ondelete="CASCADE"), primary_key=True
    )
    tag: Mapped[str] = mapped_column(Text, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class MediaPlatform(Base):
    """One platform (streaming service, store, ...) a media item is available on."""

    __tablename__ = "media_platforms"

    media_id: Mapped[str] = mapped_column(
        Text, ForeignKey("media.id", ondelete="CASCADE"), primary_key=True
    )
    platform: Mapped[str] = mapped_column(Text, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Collection(Base):
    """Collection model - a named, shareable list of media with an owner."""

    __tablename__ = "collections"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    visibility: Mapped[Visibility] = mapped_column(
        _enum_column(Visibility, "visibility"), default=Visibility.PRIVATE, nullable=False
    )
    owner_id: Mapped[str] = mapped_column(
        Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "length(name) BETWEEN 1 AND 200",
            name="ck_collections_name_length",
        ),
        # At most one auto-provisioned default collection per owner
        Index(
            "uq_collections_default_per_owner",
            "owner_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default"),
        ),
        Index("ix_collections_owner_id", "owner_id"),
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="collections")
    tag_rows: Mapped[list["CollectionTag"]] = relationship(
        "CollectionTag",
        order_by="CollectionTag.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    media_links: Mapped[list["CollectionMedia"]] = relationship(
        "CollectionMedia", back_populates="collection", passive_deletes=True
    )
    memberships: Mapped[list["CollectionMembership"]] = relationship(
        "CollectionMembership", back_populates="collection", passive_deletes=True
    )

    tags: AssociationProxy[list[str]] = association_proxy(
        "tag_rows", "tag", creator=lambda tag: CollectionTag(tag=tag)
    )


class CollectionTag(Base):
    """One tag on a collection."""

    __tablename__ = "collection_tags"

    collection_id: Mapped[str] = mapped_column(
        Text, ForeignKey("collections.id", ondelete="CASCADE"), primary_key=True
    )
    tag: Mapped[str] = mapped_column(Text, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class CollectionMedia(Base):
    """Link between a collection and a media item.

    Position is a client-managed ordering hint; it is not unique.
    """

    __tablename__ = "collection_media"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    collection_id: Mapped[str] = mapped_column(
        Text, ForeignKey("collections.id", ondelete="CASCADE"), nullable=False
    )
    media_id: Mapped[str] = mapped_column(
        Text, ForeignKey("media.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("collection_id", "media_id", name="uq_collection_media_pair"),
        Index("ix_collection_media_media_id", "media_id"),
    )

    # Relationships
    collection: Mapped["Collection"] = relationship("Collection", back_populates="media_links")
    media: Mapped["Media"] = relationship("Media", back_populates="collection_links")


class CollectionMembership(Base):
    """A user's role on a collection.

    Rows start unaccepted (an invitation); they grant nothing until accepted.
    """

    __tablename__ = "collection_members"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    collection_id: Mapped[str] = mapped_column(
        Text, ForeignKey("collections.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[CollectionRole] = mapped_column(
        _enum_column(CollectionRole, "collection_role"),
        default=CollectionRole.READER,
        nullable=False,
    )
    accepted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    invited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("collection_id", "user_id", name="uq_collection_members_pair"),
        Index("ix_collection_members_user_id", "user_id"),
    )

    # Relationships
    collection: Mapped["Collection"] = relationship("Collection", back_populates="memberships")
    user: Mapped["User"] = relationship("User", back_populates="memberships")


# Defined after CollectionMedia; undefer it where a listing shows it
Collection.media_count = column_property(
    select(func.count(CollectionMedia.id))
    .where(CollectionMedia.collection_id == Collection.id)
    .correlate_except(CollectionMedia)
    .scalar_subquery(),
    deferred=True,
)
