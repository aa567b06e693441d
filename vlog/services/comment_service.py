"""
Comment service: top-level comments on a post.

Replies (``parent_id`` set) are stored by the schema but neither created
nor traversed here; the detail view only ever shows parent-less comments.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from vlog.cache import purge_post_lists
from vlog.errors import NotFoundError
from vlog.models import Comment, Post, User
from vlog.schemas import CommentCreate

logger = logging.getLogger(__name__)


def _comment_to_dict(comment: Comment) -> dict:
    author = comment.author
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "content": comment.content,
        "author": {"id": author.id, "nickname": author.nickname} if author else None,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
    }


async def get_top_level_comments(db: AsyncSession, post_id: int) -> list[dict]:
    """Return the post's parent-less comments, oldest first."""
    q = (
        select(Comment)
        .where(Comment.post_id == post_id, Comment.parent_id.is_(None))
        .options(joinedload(Comment.author))
        .order_by(Comment.created_at, Comment.id)
    )
    result = await db.execute(q)
    return [_comment_to_dict(c) for c in result.scalars().all()]


async def add_comment(
    db: AsyncSession,
    post_id: int,
    data: CommentCreate,
    user_id: int,
) -> dict:
    """
    Append a top-level comment by *user_id* to the post *post_id*.

    Raises ``NotFoundError`` when either the post or the user is missing.
    """
    post = await db.get(Post, post_id)
    if post is None:
        raise NotFoundError("post", post_id)
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user", user_id)

    comment = Comment(content=data.content, post_id=post.id, user_id=user.id, author=user)
    db.add(comment)
    await db.flush()

    # Comment counts are embedded in list pages.
    await purge_post_lists(db)
    logger.info("User %s commented on post %s (comment=%s)", user.id, post.id, comment.id)
    return _comment_to_dict(comment)
