from __future__ import annotations

import calendar
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from soudan.models.comment import Comment
from soudan.utils.gravatar import gravatar_hash


class CommentCreate(BaseModel):
    """
    Comment as submitted by the embedding widget.

    Only the structure is checked here; field contents are checked by
    ValidatedComment once the text has been sanitized. Client-sent id,
    timestamp and replies are ignored.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    author: str | None = None
    email: str | None = None
    text: str
    content_id: str
    parent: int | None = None


class ValidatedComment(CommentCreate):
    """Field rules a comment must satisfy before it is stored."""

    email: EmailStr | None = None
    text: str = Field(..., min_length=1)


class PostCommentRequest(BaseModel):
    """Body of POST /: the page the comment was written on and the comment."""

    url: str
    comment: CommentCreate


class CommentResponse(BaseModel):
    """
    Comment as served to readers.

    The email is replaced by its gravatar digest; content id and parent are
    never included.
    """

    id: int
    author: str | None = None
    gravatar: str | None = None
    text: str
    timestamp: int | None = None
    replies: list[CommentResponse] = []

    @classmethod
    def from_model(cls, comment: Comment, replies: list[CommentResponse] | None = None) -> CommentResponse:
        return cls(
            id=comment.id,
            author=comment.author,
            gravatar=gravatar_hash(comment.email),
            text=comment.text,
            timestamp=epoch_seconds(comment.timestamp),
            replies=replies or [],
        )


def epoch_seconds(timestamp: datetime | None) -> int | None:
    """Seconds since the epoch for a naive UTC database timestamp."""
    if timestamp is None:
        return None
    return calendar.timegm(timestamp.utctimetuple())
