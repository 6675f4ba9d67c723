"""
Comment Store

Per-tenant persistence for comments. Each store owns its own database engine,
so no query ever crosses tenants, and an asyncio lock that callers hold (via
TenantRegistry.acquire) for the duration of every operation.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from soudan.database import Base, create_session_factory
from soudan.exceptions import StorageError
from soudan.models.comment import Comment

logger = logging.getLogger(__name__)


@dataclass
class CommentThread:
    """A top-level comment together with its direct replies."""

    comment: Comment
    replies: list[Comment] = field(default_factory=list)


class CommentStore:
    """Comment persistence for a single tenant."""

    def __init__(self, domain: str, engine: AsyncEngine):
        self.domain = domain
        self.engine = engine
        self.session_factory = create_session_factory(engine)
        self.lock = asyncio.Lock()

    @asynccontextmanager
    async def locked(self):
        """Hold this store's lock; released on every exit path."""
        async with self.lock:
            yield self

    async def init(self) -> None:
        """Create the comment table if it does not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def create(
        self,
        text: str,
        content_id: str,
        author: str | None = None,
        email: str | None = None,
        parent: int | None = None,
    ) -> Comment:
        """
        Insert a new comment.

        The database assigns id and timestamp. Empty text is refused here as
        well as in request validation.

        Raises:
            StorageError: if the text is empty or the insert fails
        """
        if not text:
            raise StorageError("failed to create comment")

        comment = Comment(
            author=author,
            email=email,
            text=text,
            content_id=content_id,
            parent=parent,
        )

        try:
            async with self.session_factory() as session:
                session.add(comment)
                await session.commit()
                await session.refresh(comment)
        except SQLAlchemyError as e:
            logger.error(f"Comment insert failed for {self.domain}: {e}")
            raise StorageError("failed to create comment") from e

        logger.info(f"Comment created: id={comment.id}, tenant={self.domain}, parent={parent}")
        return comment

    async def list_top_level(self, content_id: str) -> list[Comment]:
        """Top-level comments for a content id, newest first."""
        query = (
            select(Comment)
            .where(Comment.content_id == content_id, Comment.parent.is_(None))
            .order_by(Comment.timestamp.desc(), Comment.id.desc())
        )
        return await self._fetch(query)

    async def list_replies(self, parent_id: int) -> list[Comment]:
        """Direct replies to a comment, oldest first."""
        query = select(Comment).where(Comment.parent == parent_id).order_by(Comment.id)
        return await self._fetch(query)

    async def get_threaded(self, content_id: str) -> list[CommentThread]:
        """
        Two-level comment tree for a content id.

        Only the direct replies of each top-level comment are attached; replies
        never carry replies of their own.
        """
        threads = []
        for comment in await self.list_top_level(content_id):
            threads.append(CommentThread(comment=comment, replies=await self.list_replies(comment.id)))
        return threads

    async def _fetch(self, query) -> list[Comment]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Comment query failed for {self.domain}: {e}")
            raise StorageError("failed to get comments") from e
