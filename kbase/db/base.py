"""
Declarative Base and Shared Column Types

Every table in the knowledge base is declared on top of the classes here.

Key Concepts:
--------------
1. Base: the DeclarativeBase all models map through, bound to a MetaData
   with a constraint naming convention (stable names for Alembic).
2. TimestampedModel: id + created_at + updated_at, inherited by every table.
3. JSONType: JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests).

Learning Resources:
- SQLAlchemy Declarative Base: https://docs.sqlalchemy.org/en/20/orm/declarative_config.html
- Type variants: https://docs.sqlalchemy.org/en/20/core/type_api.html#sqlalchemy.types.TypeEngine.with_variant
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, MetaData, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware 'now' used for every timestamp the app writes."""
    return datetime.now(timezone.utc)


# ================================
# Naming Convention for Constraints
# ================================
# ix_content_user_id, uq_tags_user_id, fk_content_tags_tag_id_tags, ...
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)


# ================================
# Base DeclarativeBase Class
# ================================
class Base(DeclarativeBase):
    """
    Root of the ORM mapping.

    Alembic's env.py points ``target_metadata`` at ``Base.metadata`` so
    autogenerate sees every model imported through ``kbase.models``.
    """

    metadata = metadata

    __tablename__: str


# ================================
# Timestamp Mixin
# ================================
class TimestampMixin:
    """
    Surrogate key plus creation/modification timestamps.

    Ids are plain auto-incrementing integers. Clients treat them as opaque
    identifiers; nothing in the API relies on their ordering.

    Both timestamps are stored as TIMESTAMP WITH TIME ZONE in UTC:
    - created_at is written once on INSERT
    - updated_at is refreshed by SQLAlchemy on every UPDATE of the row
    """

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment="Auto-incrementing primary key",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when record was created (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp when record was last updated (UTC)",
    )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id})"

    def dict(self, exclude: tuple[str, ...] = ()) -> dict[str, Any]:
        """
        Column values of this row as a plain dictionary.

        Used by the export service to serialize metadata rows, which is why
        it accepts an ``exclude`` tuple (e.g. ``("id", "content_id")``).
        """
        return {
            column.name: getattr(self, column.key)
            for column in self.__table__.columns
            if column.name not in exclude
        }


class TimestampedModel(Base, TimestampMixin):
    """
    Base class for application tables.

    Usage:
        class Tag(TimestampedModel):
            __tablename__ = "tags"
            name: Mapped[str] = mapped_column(String50)
    """

    __abstract__ = True


# ================================
# Column Types
# ================================
# JSONB where PostgreSQL is available, JSON (TEXT-backed) on SQLite
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Length-bounded strings, sized to the validation limits of each field
String7 = String(7)  # "#RRGGBB" colors
String20 = String(20)  # ISBN, enum-like values
String50 = String(50)  # tag names, icons
String100 = String(100)  # list names, display names
String255 = String(255)  # emails, channel / publisher names
String500 = String(500)  # titles, list descriptions
String2048 = String(2048)  # URLs
