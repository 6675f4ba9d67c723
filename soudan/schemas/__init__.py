from .comment import CommentCreate, CommentResponse, PostCommentRequest, ValidatedComment

# Define the public API of this module
__all__ = [
    "CommentCreate",
    "CommentResponse",
    "PostCommentRequest",
    "ValidatedComment",
]
