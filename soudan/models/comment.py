"""
Comment Model

One row per comment in a tenant's database. Threading is limited to a single
level: a row with parent = NULL is a top-level comment, a row with a parent is
a reply to a top-level comment.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, func

from soudan.database import Base


class Comment(Base):
    """
    Comment model for a tenant's comment table.

    The id and timestamp are assigned by the database on insert and never
    taken from the client.
    """

    __tablename__ = "comment"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Commenter details, both optional (anonymous when author is NULL)
    email = Column(Text, nullable=True)
    author = Column(Text, nullable=True)

    # Comment body, sanitized before it gets here
    text = Column(Text, nullable=False)

    timestamp = Column(DateTime, server_default=func.current_timestamp())

    # Opaque grouping key taken from the page's soudan-content-id meta tag
    content_id = Column(Text, nullable=False)

    # Parent comment for replies (null = top-level comment)
    parent = Column(Integer, ForeignKey("comment.id"), nullable=True)

    __table_args__ = (
        Index("ix_comment_content_parent", "content_id", "parent"),
        Index("ix_comment_parent", "parent"),
    )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, content_id={self.content_id!r}, parent={self.parent})>"
