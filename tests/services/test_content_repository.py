"""
Tests for the content repository (create/read/update/delete/list).
"""

from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from kbase.core.errors import ContentNotFoundError
from kbase.models.content import (
    METADATA_MODELS,
    ArticleMetadata,
    BookMetadata,
    ContentList,
    ContentStatus,
    ContentTag,
    ContentType,
    Tag,
    UserList,
    VideoMetadata,
)
from kbase.schemas.content import ContentCreate, ContentFilterParams, ContentUpdate
from kbase.services.content_repository import ContentRepository, escape_like


@pytest.fixture
def repository(db_session):
    return ContentRepository(db_session)


async def _create(repository, user, **data):
    data.setdefault("type", "article")
    data.setdefault("title", "Untitled piece")
    content = await repository.create(user.id, ContentCreate.model_validate(data))
    await repository.db.commit()
    return content


async def _count(db_session, model, *criteria):
    return await db_session.scalar(select(func.count(model.id)).where(*criteria))


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_article_with_metadata(self, repository, test_user):
        content = await _create(
            repository,
            test_user,
            type="article",
            title="On Writing",
            url="https://example.com/on-writing",
            metadata={"author": "Jane Doe", "reading_time_minutes": 12, "page_count": 300},
        )

        assert content.id is not None
        assert content.user_id == test_user.id
        assert content.status == ContentStatus.PENDING
        assert content.completed_at is None
        assert content.article_metadata is not None
        assert content.article_metadata.author == "Jane Doe"
        assert content.article_metadata.reading_time_minutes == 12
        # Fields of other types are not persisted anywhere
        assert content.book_metadata is None

    @pytest.mark.asyncio
    async def test_video_duration_stored_in_seconds(self, repository, test_user):
        content = await _create(
            repository,
            test_user,
            type="video",
            title="Talk",
            url="https://youtu.be/dQw4w9WgXcQ",
            metadata={"duration_minutes": 42, "channel_name": "Conf"},
        )

        assert content.video_metadata.duration_seconds == 42 * 60
        assert content.video_metadata.channel_name == "Conf"

    @pytest.mark.asyncio
    async def test_all_null_metadata_writes_no_row(self, repository, test_user, db_session):
        content = await _create(repository, test_user, type="book", title="Dune", metadata={})

        assert content.book_metadata is None
        assert await _count(db_session, BookMetadata, BookMetadata.content_id == content.id) == 0

    @pytest.mark.asyncio
    async def test_created_completed_sets_completed_at(self, repository, test_user):
        content = await _create(repository, test_user, status="completed")

        assert content.status == ContentStatus.COMPLETED
        assert content.completed_at is not None

    @pytest.mark.asyncio
    async def test_tags_are_normalized_and_deduplicated(self, repository, test_user, db_session):
        content = await _create(repository, test_user, tags=["AI", " ai ", "Python", "   "])

        assert [tag.name for tag in content.tags] == ["ai", "python"]
        assert await _count(db_session, Tag, Tag.user_id == test_user.id) == 2

    @pytest.mark.asyncio
    async def test_existing_tag_is_reused(self, repository, test_user, db_session):
        first = await _create(repository, test_user, title="One", tags=["rust"])
        second = await _create(repository, test_user, title="Two", tags=["Rust"])

        assert first.tags[0].id == second.tags[0].id
        assert await _count(db_session, Tag, Tag.user_id == test_user.id) == 1

    @pytest.mark.asyncio
    async def test_tags_are_per_user(self, repository, test_user, other_user, db_session):
        mine = await _create(repository, test_user, tags=["ai"])
        theirs = await _create(repository, other_user, tags=["ai"])

        assert mine.tags[0].id != theirs.tags[0].id

    @pytest.mark.asyncio
    async def test_list_ids_attach_owned_lists_only(self, repository, test_user, other_user, db_session):
        mine = UserList(user_id=test_user.id, name="Later")
        theirs = UserList(user_id=other_user.id, name="Private")
        db_session.add_all([mine, theirs])
        await db_session.commit()

        content = await _create(repository, test_user, listIds=[mine.id, theirs.id, 9999])

        assert [user_list.id for user_list in content.lists] == [mine.id]
        assert await _count(db_session, ContentList, ContentList.list_id == theirs.id) == 0

    @pytest.mark.asyncio
    async def test_failing_tag_is_skipped(self, repository, test_user, db_session):
        real_get_or_create = repository.tags.get_or_create

        async def get_or_create(user_id, raw_name):
            tag_id = await real_get_or_create(user_id, raw_name)
            if raw_name == "boom":
                raise RuntimeError("tag write failed")
            return tag_id

        with patch.object(repository.tags, "get_or_create", side_effect=get_or_create):
            content = await _create(repository, test_user, tags=["a", "boom", "b"])

        assert [tag.name for tag in content.tags] == ["a", "b"]
        # The half-written tag is rolled back with its savepoint
        assert await _count(db_session, Tag, Tag.user_id == test_user.id) == 2

    @pytest.mark.asyncio
    async def test_failing_metadata_still_saves_item(self, repository, test_user, db_session):
        broken_model = MagicMock(side_effect=RuntimeError("metadata write failed"), FIELDS=ArticleMetadata.FIELDS)

        with patch.dict(METADATA_MODELS, {ContentType.ARTICLE: broken_model}):
            content = await _create(
                repository,
                test_user,
                title="Kept anyway",
                metadata={"author": "Jane Doe"},
                tags=["ai"],
            )

        assert content.id is not None
        assert content.title == "Kept anyway"
        assert content.article_metadata is None
        assert [tag.name for tag in content.tags] == ["ai"]
        assert await _count(db_session, ArticleMetadata, ArticleMetadata.content_id == content.id) == 0


class TestRead:

    @pytest.mark.asyncio
    async def test_get_other_users_content_is_not_found(self, repository, test_user, other_user):
        content = await _create(repository, test_user)

        with pytest.raises(ContentNotFoundError):
            await repository.get(other_user.id, content.id)

    @pytest.mark.asyncio
    async def test_get_missing_content(self, repository, test_user):
        with pytest.raises(ContentNotFoundError):
            await repository.get(test_user.id, 12345)


class TestUpdate:

    @pytest.mark.asyncio
    async def test_partial_update_leaves_other_fields(self, repository, test_user):
        content = await _create(repository, test_user, title="Original", description="Keep me")

        updated = await repository.update(
            test_user.id, content.id, ContentUpdate.model_validate({"rating": 5})
        )

        assert updated.rating == 5
        assert updated.title == "Original"
        assert updated.description == "Keep me"

    @pytest.mark.asyncio
    async def test_completed_at_follows_status(self, repository, test_user):
        content = await _create(repository, test_user)

        completed = await repository.update(
            test_user.id, content.id, ContentUpdate.model_validate({"status": "completed"})
        )
        assert completed.completed_at is not None
        first_completed_at = completed.completed_at

        # Saving again as completed keeps the original timestamp
        again = await repository.update(
            test_user.id, content.id, ContentUpdate.model_validate({"status": "completed", "rating": 4})
        )
        assert again.completed_at == first_completed_at

        reopened = await repository.update(
            test_user.id, content.id, ContentUpdate.model_validate({"status": "pending"})
        )
        assert reopened.completed_at is None

    @pytest.mark.asyncio
    async def test_tags_replaced_when_present(self, repository, test_user, db_session):
        content = await _create(repository, test_user, tags=["one", "two"])

        updated = await repository.update(
            test_user.id, content.id, ContentUpdate.model_validate({"tags": ["Two", "three"]})
        )

        assert [tag.name for tag in updated.tags] == ["three", "two"]
        # Tags outlive their associations
        assert await _count(db_session, Tag, Tag.user_id == test_user.id) == 3

    @pytest.mark.asyncio
    async def test_tags_untouched_when_absent(self, repository, test_user):
        content = await _create(repository, test_user, tags=["keep"])

        updated = await repository.update(
            test_user.id, content.id, ContentUpdate.model_validate({"title": "Renamed"})
        )

        assert [tag.name for tag in updated.tags] == ["keep"]

    @pytest.mark.asyncio
    async def test_empty_tags_clear_associations(self, repository, test_user, db_session):
        content = await _create(repository, test_user, tags=["gone"])

        updated = await repository.update(
            test_user.id, content.id, ContentUpdate.model_validate({"tags": []})
        )

        assert updated.tags == []
        assert await _count(db_session, ContentTag, ContentTag.content_id == content.id) == 0

    @pytest.mark.asyncio
    async def test_list_ids_replace_memberships(self, repository, test_user, db_session):
        first = UserList(user_id=test_user.id, name="First")
        second = UserList(user_id=test_user.id, name="Second")
        db_session.add_all([first, second])
        await db_session.commit()

        content = await _create(repository, test_user, listIds=[first.id])
        updated = await repository.update(
            test_user.id, content.id, ContentUpdate.model_validate({"listIds": [second.id]})
        )

        assert [user_list.id for user_list in updated.lists] == [second.id]

    @pytest.mark.asyncio
    async def test_metadata_upserted(self, repository, test_user):
        content = await _create(repository, test_user, type="book", title="Dune")

        updated = await repository.update(
            test_user.id,
            content.id,
            ContentUpdate.model_validate({"metadata": {"author": "Frank Herbert", "page_count": 412}}),
        )
        assert updated.book_metadata.author == "Frank Herbert"

        updated = await repository.update(
            test_user.id,
            content.id,
            ContentUpdate.model_validate({"metadata": {"isbn": "9780441013593"}}),
        )
        # The sent metadata replaces the stored row
        assert updated.book_metadata.isbn == "9780441013593"
        assert updated.book_metadata.author is None

    @pytest.mark.asyncio
    async def test_type_change_drops_old_metadata(self, repository, test_user, db_session):
        content = await _create(
            repository,
            test_user,
            type="article",
            title="Was an article",
            metadata={"author": "Someone"},
        )

        updated = await repository.update(
            test_user.id,
            content.id,
            ContentUpdate.model_validate({"type": "book", "metadata": {"publisher": "Ace"}}),
        )

        assert updated.type == ContentType.BOOK
        assert updated.article_metadata is None
        assert updated.book_metadata.publisher == "Ace"
        assert await _count(db_session, ArticleMetadata, ArticleMetadata.content_id == content.id) == 0

    @pytest.mark.asyncio
    async def test_update_other_users_content(self, repository, test_user, other_user):
        content = await _create(repository, test_user)

        with pytest.raises(ContentNotFoundError):
            await repository.update(
                other_user.id, content.id, ContentUpdate.model_validate({"title": "Hijacked"})
            )


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_removes_dependents(self, repository, test_user, db_session):
        user_list = UserList(user_id=test_user.id, name="Later")
        db_session.add(user_list)
        await db_session.commit()

        content = await _create(
            repository,
            test_user,
            type="video",
            title="Talk",
            url="https://youtu.be/dQw4w9WgXcQ",
            tags=["talks"],
            listIds=[user_list.id],
            metadata={"channel_name": "Conf"},
        )
        content_id = content.id

        await repository.delete(test_user.id, content_id)
        await db_session.commit()

        assert await _count(db_session, VideoMetadata, VideoMetadata.content_id == content_id) == 0
        assert await _count(db_session, ContentTag, ContentTag.content_id == content_id) == 0
        assert await _count(db_session, ContentList, ContentList.content_id == content_id) == 0
        # The tag and the list stay
        assert await _count(db_session, Tag, Tag.user_id == test_user.id) == 1
        assert await _count(db_session, UserList, UserList.user_id == test_user.id) == 1

        with pytest.raises(ContentNotFoundError):
            await repository.get(test_user.id, content_id)

    @pytest.mark.asyncio
    async def test_delete_other_users_content(self, repository, test_user, other_user):
        content = await _create(repository, test_user)

        with pytest.raises(ContentNotFoundError):
            await repository.delete(other_user.id, content.id)

        assert (await repository.get(test_user.id, content.id)).id == content.id


class TestList:

    @pytest_asyncio.fixture
    async def library(self, repository, test_user, other_user, db_session):
        user_list = UserList(user_id=test_user.id, name="Favorites")
        db_session.add(user_list)
        await db_session.commit()

        await _create(repository, test_user, type="article", title="Rust ownership explained",
                      description="Borrowing and lifetimes")
        await _create(repository, test_user, type="book", title="Dune", status="completed",
                      rating=5, listIds=[user_list.id])
        await _create(repository, test_user, type="book", title="Neuromancer",
                      personal_notes="Cyberpunk classic, reread the Rust chapter", rating=3)
        await _create(repository, test_user, type="video", title="100%_done talk",
                      url="https://youtu.be/dQw4w9WgXcQ")
        await _create(repository, other_user, type="book", title="Someone else's Rust book")
        return user_list

    @pytest.mark.asyncio
    async def test_only_own_content(self, repository, test_user, library):
        items, total = await repository.list(test_user.id, ContentFilterParams())

        assert total == 4
        assert all(item.user_id == test_user.id for item in items)

    @pytest.mark.asyncio
    async def test_filter_by_type_and_status(self, repository, test_user, library):
        items, total = await repository.list(
            test_user.id, ContentFilterParams(type="book", status="completed")
        )

        assert total == 1
        assert items[0].title == "Dune"

    @pytest.mark.asyncio
    async def test_filter_by_list(self, repository, test_user, library):
        items, total = await repository.list(test_user.id, ContentFilterParams(list_id=library.id))

        assert [item.title for item in items] == ["Dune"]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_across_fields(self, repository, test_user, library):
        items, total = await repository.list(test_user.id, ContentFilterParams(search="rust"))

        assert total == 2
        assert {item.title for item in items} == {"Rust ownership explained", "Neuromancer"}

    @pytest.mark.asyncio
    async def test_search_wildcards_are_literal(self, repository, test_user, library):
        items, total = await repository.list(test_user.id, ContentFilterParams(search="100%_"))

        assert [item.title for item in items] == ["100%_done talk"]

    @pytest.mark.asyncio
    async def test_sort_by_rating_puts_nulls_last(self, repository, test_user, library):
        items, _ = await repository.list(
            test_user.id, ContentFilterParams(sort_by="rating", sort_order="desc")
        )

        ratings = [item.rating for item in items]
        assert ratings[:2] == [5, 3]
        assert ratings[2:] == [None, None]

    @pytest.mark.asyncio
    async def test_pagination(self, repository, test_user, library):
        page_one, total = await repository.list(
            test_user.id, ContentFilterParams(limit=3, sort_by="title", sort_order="asc")
        )
        page_two, _ = await repository.list(
            test_user.id, ContentFilterParams(page=2, limit=3, sort_by="title", sort_order="asc")
        )

        assert total == 4
        assert len(page_one) == 3
        assert len(page_two) == 1
        assert {item.id for item in page_one}.isdisjoint({item.id for item in page_two})


def test_escape_like():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
