"""
User Models

Models Included:
----------------
1. User - account created on first successful Google sign-in
2. AuthorizedUser - e-mail allow-list checked before sign-in is accepted
3. UserPreferences - display settings (1-to-1 with users, created lazily)
4. UserRole, ViewMode, SortField, SortOrder (Enums)

Database Tables:
----------------
- users
- authorized_users
- user_preferences

Learning Resources:
-------------------
- SQLAlchemy Relationships: https://docs.sqlalchemy.org/en/20/orm/basic_relationships.html
- Enums in SQLAlchemy: https://docs.sqlalchemy.org/en/20/core/type_basics.html#sqlalchemy.types.Enum
"""

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kbase.db.base import String100, String255, String2048, TimestampedModel

if TYPE_CHECKING:
    from kbase.models.content import Content, Tag, UserList


def enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    """
    Store enum *values* ("video", "desc", ...) as VARCHAR + CHECK.

    SQLAlchemy stores member names by default, and a native PostgreSQL enum
    type would need its own migration step for every new value.
    """
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=20,
        values_callable=lambda members: [member.value for member in members],
    )


# ================================
# Enums for Choice Fields
# ================================

class UserRole(str, enum.Enum):
    """Role granted through the allow-list. Viewers are regular users."""

    ADMIN = "admin"
    VIEWER = "viewer"

    def __str__(self) -> str:
        return self.value


class ViewMode(str, enum.Enum):
    """How content collections are rendered by clients."""

    LIST = "list"
    GRID = "grid"

    def __str__(self) -> str:
        return self.value


class SortField(str, enum.Enum):
    """
    Fields a user may pick as their default sort.

    Content listing additionally accepts ``completed_at`` per request, but it
    is not offered as a saved preference.
    """

    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    TITLE = "title"
    RATING = "rating"

    def __str__(self) -> str:
        return self.value


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"

    def __str__(self) -> str:
        return self.value


# ================================
# User Model
# ================================

class User(TimestampedModel):
    """
    An account.

    Every piece of user data (content, lists, tags, preferences) hangs off
    ``users.id`` and is only ever read through a query filtered on it.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String255,
        unique=True,
        index=True,
        nullable=False,
        comment="Sign-in e-mail, also the JWT subject",
    )

    name: Mapped[str | None] = mapped_column(
        String255,
        nullable=True,
        comment="Display name from the identity provider",
    )

    image: Mapped[str | None] = mapped_column(
        String2048,
        nullable=True,
        comment="Avatar URL from the identity provider",
    )

    role: Mapped[UserRole] = mapped_column(
        enum_column(UserRole, "user_role"),
        nullable=False,
        default=UserRole.VIEWER,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Disabled accounts keep their data but cannot sign in",
    )

    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last successful sign-in (UTC)",
    )

    # ================================
    # Relationships
    # ================================
    # passive_deletes: the account service removes dependents explicitly,
    # step by step, and the FKs cascade as a backstop. The ORM never tries
    # to load and delete children one by one.

    preferences: Mapped["UserPreferences | None"] = relationship(
        "UserPreferences",
        back_populates="user",
        uselist=False,
        passive_deletes=True,
        lazy="raise",
    )

    contents: Mapped[list["Content"]] = relationship(
        "Content",
        back_populates="user",
        passive_deletes=True,
        lazy="raise",
    )

    lists: Mapped[list["UserList"]] = relationship(
        "UserList",
        back_populates="user",
        passive_deletes=True,
        lazy="raise",
    )

    tags: Mapped[list["Tag"]] = relationship(
        "Tag",
        back_populates="user",
        passive_deletes=True,
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email})"


# ================================
# Allow-list
# ================================

class AuthorizedUser(TimestampedModel):
    """
    E-mails allowed to sign in.

    A Google identity that verifies correctly but is not listed here is
    rejected; the role recorded here is copied onto the User row at sign-in.
    """

    __tablename__ = "authorized_users"

    email: Mapped[str] = mapped_column(
        String255,
        unique=True,
        index=True,
        nullable=False,
    )

    role: Mapped[UserRole] = mapped_column(
        enum_column(UserRole, "authorized_user_role"),
        nullable=False,
        default=UserRole.VIEWER,
    )

    def __repr__(self) -> str:
        return f"AuthorizedUser(email={self.email}, role={self.role})"


# ================================
# User Preferences
# ================================

class UserPreferences(TimestampedModel):
    """
    Per-user display settings.

    No row exists until the settings are first read or written; the
    preferences service then inserts one with these defaults.
    """

    __tablename__ = "user_preferences"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    display_name: Mapped[str | None] = mapped_column(String100, nullable=True)

    default_view: Mapped[ViewMode] = mapped_column(
        enum_column(ViewMode, "view_mode"),
        nullable=False,
        default=ViewMode.LIST,
    )

    default_sort: Mapped[SortField] = mapped_column(
        enum_column(SortField, "sort_field"),
        nullable=False,
        default=SortField.CREATED_AT,
    )

    default_sort_order: Mapped[SortOrder] = mapped_column(
        enum_column(SortOrder, "sort_order"),
        nullable=False,
        default=SortOrder.DESC,
    )

    items_per_page: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=20,
        comment="One of 10, 20, 50",
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="preferences",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"UserPreferences(user_id={self.user_id}, view={self.default_view})"
