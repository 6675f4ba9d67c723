"""
Submission Pipeline

Takes one POST / request from raw body to stored comment. Each step either
passes the request on or raises the SoudanError that ends it:

    parse -> sanitize -> validate fields -> resolve origin -> scope check
          -> verify page -> resolve tenant store -> validate parent -> commit

The tenant lock is taken when the store is resolved and held through the
parent check and the insert, so no other request to that tenant can change
the comment tree in between. The page fetch happens before the lock is taken.
"""

import json
import logging
from collections.abc import Callable

from pydantic import ValidationError

from soudan.exceptions import (
    BadOriginError,
    ContentMismatchError,
    InvalidFieldError,
    InvalidParentError,
    InvalidUrlError,
    MalformedRequestError,
    OutOfScopeError,
)
from soudan.models.comment import Comment
from soudan.schemas.comment import CommentCreate, PostCommentRequest, ValidatedComment
from soudan.services.comment_store import CommentStore, CommentThread
from soudan.services.page_verifier import PageVerifier
from soudan.services.tenant_registry import TenantRegistry
from soudan.utils.sanitize import sanitize_html

logger = logging.getLogger(__name__)


class SubmissionPipeline:
    """Validates and commits submitted comments."""

    def __init__(
        self,
        registry: TenantRegistry,
        verifier: PageVerifier,
        sanitize: Callable[[str], str] = sanitize_html,
    ):
        self.registry = registry
        self.verifier = verifier
        self.sanitize = sanitize

    async def submit(self, body: bytes, origin: str | None) -> Comment:
        request = self.parse(body)
        comment = self.validate(self.sanitize_comment(request.comment))
        origin = self.resolve_origin(origin)

        if not self.registry.in_scope(origin, request.url):
            raise OutOfScopeError()

        await self.verify_page(request.url, comment.content_id, origin)

        async with self.registry.acquire(origin) as store:
            if comment.parent is not None:
                await self.validate_parent(store, comment)
            return await store.create(
                text=comment.text,
                content_id=comment.content_id,
                author=comment.author,
                email=comment.email,
                parent=comment.parent,
            )

    @staticmethod
    def parse(body: bytes) -> PostCommentRequest:
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedRequestError("failed to parse request body") from e

        try:
            return PostCommentRequest.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as e:
            raise MalformedRequestError("invalid request body") from e

    def sanitize_comment(self, comment: CommentCreate) -> CommentCreate:
        """Clean text and author; '&gt;' is restored in text for markdown quotes."""
        text = self.sanitize(comment.text).replace("&gt;", ">")
        author = self.sanitize(comment.author) if comment.author is not None else None
        return comment.model_copy(update={"text": text, "author": author})

    @staticmethod
    def validate(comment: CommentCreate) -> ValidatedComment:
        try:
            return ValidatedComment.model_validate(comment.model_dump())
        except ValidationError as e:
            raise InvalidFieldError() from e

    @staticmethod
    def resolve_origin(origin: str | None) -> str:
        # Browsers always send an ASCII Origin; anything else is not a widget request
        if origin is None or not origin.isascii():
            raise BadOriginError()
        return origin

    async def verify_page(self, url: str, content_id: str, origin: str) -> None:
        """Redirects are only followed while they stay in the origin's scope."""
        page_data = await self.verifier.fetch(url, scope=lambda target: self.registry.in_scope(origin, target))
        if page_data is None:
            raise InvalidUrlError()
        if page_data.content_id != content_id:
            raise ContentMismatchError()

    @staticmethod
    async def validate_parent(store: CommentStore, comment: ValidatedComment) -> None:
        """
        A reply's parent must be a top-level comment on the same content.

        Replies to replies are refused: comments nest one level deep only.
        """
        threads = await store.get_threaded(comment.content_id)
        if find_top_level(threads, comment.parent) is not None:
            return

        if any(reply.id == comment.parent for thread in threads for reply in thread.replies):
            logger.info(f"Refusing reply to reply {comment.parent} on {store.domain}")
        raise InvalidParentError()


def find_top_level(threads: list[CommentThread], comment_id: int) -> Comment | None:
    for thread in threads:
        if thread.comment.id == comment_id and thread.comment.parent is None:
            return thread.comment
    return None
