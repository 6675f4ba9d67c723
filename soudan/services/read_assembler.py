"""
Read Assembler

Resolves GET /{content_id} into the two-level comment tree served to the
widget: top-level comments newest first, each with its direct replies.
"""

from soudan.schemas.comment import CommentResponse
from soudan.services.tenant_registry import TenantRegistry


async def list_comments(registry: TenantRegistry, origin: str | None, content_id: str) -> list[CommentResponse]:
    """Threaded comments for a content id on the tenant selected by origin."""
    async with registry.acquire(origin) as store:
        threads = await store.get_threaded(content_id)

    return [
        CommentResponse.from_model(
            thread.comment,
            replies=[CommentResponse.from_model(reply) for reply in thread.replies],
        )
        for thread in threads
    ]
