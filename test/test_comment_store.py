"""
Tests for the per-tenant comment store.
"""

import pytest
from sqlalchemy import update

from soudan.exceptions import StorageError
from soudan.models.comment import Comment
from soudan.services.comment_store import CommentStore
from utils.mocks import ORIGIN, OTHER_ORIGIN


class TestCommentModel:
    """Table layout of the comment model."""

    def test_tablename(self):
        assert Comment.__tablename__ == "comment"

    def test_columns(self):
        cols = {c.name for c in Comment.__table__.columns}
        assert cols == {"id", "email", "author", "text", "timestamp", "content_id", "parent"}

    def test_required_columns(self):
        assert not Comment.__table__.columns["text"].nullable
        assert not Comment.__table__.columns["content_id"].nullable

    def test_optional_columns(self):
        for name in ("email", "author", "parent"):
            assert Comment.__table__.columns[name].nullable

    def test_timestamp_has_server_default(self):
        assert Comment.__table__.columns["timestamp"].server_default is not None


class TestCreate:
    """Tests for CommentStore.create."""

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamp(self, store: CommentStore):
        """The database assigns id and timestamp."""
        comment = await store.create(text="First!", content_id="post-1", author="Ann")

        assert comment.id is not None
        assert comment.timestamp is not None
        assert comment.text == "First!"
        assert comment.author == "Ann"
        assert comment.parent is None

    @pytest.mark.asyncio
    async def test_ids_are_monotonic(self, store: CommentStore):
        first = await store.create(text="one", content_id="post-1")
        second = await store.create(text="two", content_id="post-1")

        assert second.id > first.id

    @pytest.mark.asyncio
    async def test_create_rejects_empty_text(self, store: CommentStore):
        with pytest.raises(StorageError) as exc_info:
            await store.create(text="", content_id="post-1")

        assert exc_info.value.reason == "failed to create comment"
        assert await store.list_top_level("post-1") == []


class TestListing:
    """Tests for list_top_level, list_replies and get_threaded."""

    @pytest.mark.asyncio
    async def test_top_level_newest_first(self, store: CommentStore):
        older = await store.create(text="older", content_id="post-1")
        newer = await store.create(text="newer", content_id="post-1")

        # Push the older comment's timestamp back so ordering is by time, not id
        async with store.session_factory() as session:
            await session.execute(
                update(Comment).where(Comment.id == older.id).values(timestamp=newer.timestamp.replace(year=2000))
            )
            await session.commit()

        comments = await store.list_top_level("post-1")
        assert [c.text for c in comments] == ["newer", "older"]

    @pytest.mark.asyncio
    async def test_same_second_ties_broken_by_id(self, store: CommentStore):
        for text in ("a", "b", "c"):
            await store.create(text=text, content_id="post-1")

        comments = await store.list_top_level("post-1")
        assert [c.text for c in comments] == ["c", "b", "a"]

    @pytest.mark.asyncio
    async def test_top_level_excludes_replies_and_other_content(self, store: CommentStore):
        root = await store.create(text="root", content_id="post-1")
        await store.create(text="reply", content_id="post-1", parent=root.id)
        await store.create(text="elsewhere", content_id="post-2")

        comments = await store.list_top_level("post-1")
        assert [c.id for c in comments] == [root.id]

    @pytest.mark.asyncio
    async def test_list_replies(self, store: CommentStore):
        root = await store.create(text="root", content_id="post-1")
        first = await store.create(text="first reply", content_id="post-1", parent=root.id)
        second = await store.create(text="second reply", content_id="post-1", parent=root.id)

        replies = await store.list_replies(root.id)
        assert [r.id for r in replies] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_get_threaded(self, store: CommentStore):
        """Top-level comments carry their direct replies only."""
        root_a = await store.create(text="a", content_id="post-1")
        root_b = await store.create(text="b", content_id="post-1")
        reply = await store.create(text="re: a", content_id="post-1", parent=root_a.id)

        threads = await store.get_threaded("post-1")

        assert [t.comment.id for t in threads] == [root_b.id, root_a.id]
        assert threads[0].replies == []
        assert [r.id for r in threads[1].replies] == [reply.id]

    @pytest.mark.asyncio
    async def test_get_threaded_unknown_content(self, store: CommentStore):
        assert await store.get_threaded("nothing-here") == []


class TestIsolation:
    """Each tenant has its own database."""

    @pytest.mark.asyncio
    async def test_tenants_do_not_share_comments(self, registry):
        await registry.lookup(ORIGIN).create(text="blog comment", content_id="shared-id")

        assert await registry.lookup(OTHER_ORIGIN).list_top_level("shared-id") == []
        assert len(await registry.lookup(ORIGIN).list_top_level("shared-id")) == 1
