"""
Comment Routes

The two endpoints used by the embedded widget. The tenant is selected by the
request's Origin header on both.
"""

from fastapi import APIRouter, Depends, Request, Response, status

from soudan.schemas.comment import CommentResponse
from soudan.services.read_assembler import list_comments
from soudan.services.submission_pipeline import SubmissionPipeline
from soudan.services.tenant_registry import TenantRegistry

router = APIRouter(tags=["Comments"])


def get_registry(request: Request) -> TenantRegistry:
    return request.app.state.registry


def get_pipeline(request: Request) -> SubmissionPipeline:
    return request.app.state.pipeline


@router.get(
    "/{content_id}",
    response_model=list[CommentResponse],
    response_model_exclude_none=True,
)
async def get_comments(
    content_id: str,
    request: Request,
    registry: TenantRegistry = Depends(get_registry),
) -> list[CommentResponse]:
    """
    Get the comments for a piece of content.

    Returns top-level comments, newest first, with nested replies.
    """
    return await list_comments(registry, request.headers.get("origin"), content_id)


@router.post("/", status_code=status.HTTP_200_OK)
async def post_comment(
    request: Request,
    pipeline: SubmissionPipeline = Depends(get_pipeline),
) -> Response:
    """
    Submit a comment.

    The body is read raw so that undecodable and malformed bodies can be
    told apart. Responds with an empty 200 on success.
    """
    body = await request.body()
    await pipeline.submit(body, request.headers.get("origin"))
    return Response(status_code=status.HTTP_200_OK)
