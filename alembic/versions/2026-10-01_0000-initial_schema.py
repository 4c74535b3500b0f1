"""initial_schema_users_content_metadata_tags_lists

Revision ID: 4b1e7c2a9d30
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4b1e7c2a9d30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name: str, *values: str) -> sa.Enum:
    # Stored as VARCHAR + CHECK, matching kbase.models.user.enum_column
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=True, length=20)


def _timestamps() -> list:
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='Auto-incrementing primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
    ]


def upgrade() -> None:
    """
    Create the knowledge base schema.

    Tables:
    1. users, authorized_users, user_preferences
    2. content plus video_metadata / article_metadata / book_metadata
    3. tags + content_tags
    4. lists + content_lists

    Every foreign key cascades on delete; the application deletes
    dependents explicitly and the cascade is the backstop.
    """

    # ================================
    # Users
    # ================================
    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Sign-in e-mail, also the JWT subject'),
        sa.Column('name', sa.String(length=255), nullable=True, comment='Display name from the identity provider'),
        sa.Column('image', sa.String(length=2048), nullable=True, comment='Avatar URL from the identity provider'),
        sa.Column('role', _enum('user_role', 'admin', 'viewer'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, comment='Disabled accounts keep their data but cannot sign in'),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True, comment='Last successful sign-in (UTC)'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'authorized_users',
        *_timestamps(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', _enum('authorized_user_role', 'admin', 'viewer'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_authorized_users')),
    )
    op.create_index('ix_authorized_users_email', 'authorized_users', ['email'], unique=True)

    op.create_table(
        'user_preferences',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('default_view', _enum('view_mode', 'list', 'grid'), nullable=False),
        sa.Column('default_sort', _enum('sort_field', 'created_at', 'updated_at', 'title', 'rating'), nullable=False),
        sa.Column('default_sort_order', _enum('sort_order', 'asc', 'desc'), nullable=False),
        sa.Column('items_per_page', sa.Integer(), nullable=False, comment='One of 10, 20, 50'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_user_preferences_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user_preferences')),
    )
    op.create_index('ix_user_preferences_user_id', 'user_preferences', ['user_id'], unique=True)

    # ================================
    # Content
    # ================================
    op.create_table(
        'content',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='Owner'),
        sa.Column('type', _enum('content_type', 'video', 'article', 'book'), nullable=False),
        sa.Column('status', _enum('content_status', 'pending', 'completed'), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('url', sa.String(length=2048), nullable=True, comment='Required for videos'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True, comment='Free text; may reference mm:ss timestamps'),
        sa.Column('related_links', postgresql.JSONB(astext_type=sa.Text()), nullable=False, comment='List of {title, url} objects'),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('personal_notes', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_content_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_content')),
    )
    op.create_index('ix_content_user_id', 'content', ['user_id'])
    op.create_index('ix_content_type', 'content', ['type'])
    op.create_index('ix_content_status', 'content', ['status'])

    # ================================
    # Type-specific metadata (one row per content item at most)
    # ================================
    op.create_table(
        'video_metadata',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('channel_name', sa.String(length=255), nullable=True),
        sa.Column('channel_url', sa.String(length=2048), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.Column('thumbnail_url', sa.String(length=2048), nullable=True),
        sa.Column('video_id', sa.String(length=50), nullable=True),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['content_id'], ['content.id'], name=op.f('fk_video_metadata_content_id_content'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_video_metadata')),
        sa.UniqueConstraint('content_id', name=op.f('uq_video_metadata_content_id')),
    )

    op.create_table(
        'article_metadata',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('author', sa.String(length=255), nullable=True),
        sa.Column('site_name', sa.String(length=255), nullable=True),
        sa.Column('site_favicon', sa.String(length=2048), nullable=True),
        sa.Column('reading_time_minutes', sa.Integer(), nullable=True),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['content_id'], ['content.id'], name=op.f('fk_article_metadata_content_id_content'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_article_metadata')),
        sa.UniqueConstraint('content_id', name=op.f('uq_article_metadata_content_id')),
    )

    op.create_table(
        'book_metadata',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('author', sa.String(length=255), nullable=True),
        sa.Column('publisher', sa.String(length=255), nullable=True),
        sa.Column('isbn', sa.String(length=20), nullable=True),
        sa.Column('page_count', sa.Integer(), nullable=True),
        sa.Column('cover_image_url', sa.String(length=2048), nullable=True),
        sa.Column('published_year', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['content_id'], ['content.id'], name=op.f('fk_book_metadata_content_id_content'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_book_metadata')),
        sa.UniqueConstraint('content_id', name=op.f('uq_book_metadata_content_id')),
    )

    # ================================
    # Tags
    # ================================
    op.create_table(
        'tags',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_tags_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tags')),
        sa.UniqueConstraint('user_id', 'name', name='uq_tags_user_id_name'),
    )
    op.create_index('ix_tags_user_id', 'tags', ['user_id'])

    op.create_table(
        'content_tags',
        *_timestamps(),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content.id'], name=op.f('fk_content_tags_content_id_content'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], name=op.f('fk_content_tags_tag_id_tags'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_content_tags')),
        sa.UniqueConstraint('content_id', 'tag_id', name='uq_content_tags_content_id_tag_id'),
    )
    op.create_index('ix_content_tags_content_id', 'content_tags', ['content_id'])
    op.create_index('ix_content_tags_tag_id', 'content_tags', ['tag_id'])

    # ================================
    # Lists
    # ================================
    op.create_table(
        'lists',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('color', sa.String(length=7), nullable=False),
        sa.Column('icon', sa.String(length=50), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_lists_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_lists')),
    )
    op.create_index('ix_lists_user_id', 'lists', ['user_id'])

    op.create_table(
        'content_lists',
        *_timestamps(),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('list_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content.id'], name=op.f('fk_content_lists_content_id_content'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['list_id'], ['lists.id'], name=op.f('fk_content_lists_list_id_lists'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_content_lists')),
        sa.UniqueConstraint('content_id', 'list_id', name='uq_content_lists_content_id_list_id'),
    )
    op.create_index('ix_content_lists_content_id', 'content_lists', ['content_id'])
    op.create_index('ix_content_lists_list_id', 'content_lists', ['list_id'])


def downgrade() -> None:
    """Drop everything, children first."""
    op.drop_table('content_lists')
    op.drop_table('lists')
    op.drop_table('content_tags')
    op.drop_table('tags')
    op.drop_table('book_metadata')
    op.drop_table('article_metadata')
    op.drop_table('video_metadata')
    op.drop_table('content')
    op.drop_table('user_preferences')
    op.drop_table('authorized_users')
    op.drop_table('users')
