from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from vlog.database import get_db
from vlog.dependencies import PaginationParams, get_acting_user_id, get_viewer_id
from vlog.schemas import (
    CommentCreate,
    CommentResponse,
    LikeResponse,
    PostCreate,
    PostDetail,
    PostPage,
    PostUpdate,
)
from vlog.services import comment_service, like_service, post_service

router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


@router.get("", response_model=PostPage)
async def list_posts(
    tag: str | None = Query(None, description="Exact tag title to filter by."),
    blog_id: int | None = Query(None, alias="blogId", description="Blog to filter by."),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.get_posts(
        db,
        tag=tag or None,
        blog_id=blog_id,
        page=pagination.page,
        page_size=pagination.page_size,
        sort_by=pagination.sort_by,
        sort_order=pagination.sort_order,
    )


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: int,
    viewer_id: int | None = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.get_post(db, post_id, viewer_id)


@router.post("", status_code=201, response_model=PostDetail)
async def create_post(
    data: PostCreate,
    user_id: int = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.create_post(db, data, user_id)


@router.put("/{post_id}", response_model=PostDetail)
async def update_post(
    post_id: int,
    data: PostUpdate,
    user_id: int = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.update_post(db, post_id, data, user_id)


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: int,
    user_id: int = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_db),
):
    await post_service.delete_post(db, post_id, user_id)


@router.post("/{post_id}/likes", response_model=LikeResponse)
async def like_post(
    post_id: int,
    user_id: int = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await like_service.like_post(db, post_id, user_id)


@router.delete("/{post_id}/likes", response_model=LikeResponse)
async def unlike_post(
    post_id: int,
    user_id: int = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await like_service.unlike_post(db, post_id, user_id)


@router.post("/{post_id}/comments", status_code=201, response_model=CommentResponse)
async def add_comment(
    post_id: int,
    data: CommentCreate,
    user_id: int = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.add_comment(db, post_id, data, user_id)
