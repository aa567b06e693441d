"""
Like service: one like per (user, post).

Uniqueness is a store constraint (``uq_likes_user_post``).  ``like_post``
checks first and inserts inside a SAVEPOINT, so a double submit that slips
past the check collides on the constraint and is treated as already liked
instead of failing the request.
"""
import logging

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vlog.cache import purge_post_lists
from vlog.errors import NotFoundError
from vlog.models import Like, Post, User
from vlog.services import count_service

logger = logging.getLogger(__name__)


async def has_liked(db: AsyncSession, user_id: int, post_id: int) -> bool:
    q = select(exists().where(Like.user_id == user_id, Like.post_id == post_id))
    return bool((await db.execute(q)).scalar())


async def _load_pair(db: AsyncSession, post_id: int, user_id: int) -> tuple[Post, User]:
    post = await db.get(Post, post_id)
    if post is None:
        raise NotFoundError("post", post_id)
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user", user_id)
    return post, user


async def like_post(db: AsyncSession, post_id: int, user_id: int) -> dict:
    post, user = await _load_pair(db, post_id, user_id)

    if not await has_liked(db, user.id, post.id):
        try:
            async with db.begin_nested():
                db.add(Like.create(user, post))
        except IntegrityError:
            logger.info("Duplicate like for user=%s post=%s ignored", user.id, post.id)
        else:
            logger.info("User %s liked post %s", user.id, post.id)
        await purge_post_lists(db)

    return {
        "post_id": post.id,
        "like_count": await count_service.count_likes(db, post.id),
        "is_liked": True,
    }


async def unlike_post(db: AsyncSession, post_id: int, user_id: int) -> dict:
    post, user = await _load_pair(db, post_id, user_id)

    result = await db.execute(
        delete(Like).where(Like.user_id == user.id, Like.post_id == post.id)
    )
    if result.rowcount:
        logger.info("User %s unliked post %s", user.id, post.id)
        await purge_post_lists(db)

    return {
        "post_id": post.id,
        "like_count": await count_service.count_likes(db, post.id),
        "is_liked": False,
    }
