"""Blog service: each user opens at most one blog before authoring posts."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vlog.errors import ConflictError, NotFoundError
from vlog.models import Blog, User
from vlog.schemas import BlogCreate

logger = logging.getLogger(__name__)


def _blog_to_dict(blog: Blog) -> dict:
    return {
        "id": blog.id,
        "title": blog.title,
        "user_id": blog.user_id,
        "created_at": blog.created_at.isoformat() if blog.created_at else None,
    }


async def get_blog(db: AsyncSession, blog_id: int) -> dict:
    blog = await db.get(Blog, blog_id)
    if blog is None:
        raise NotFoundError("blog", blog_id)
    return _blog_to_dict(blog)


async def create_blog(db: AsyncSession, data: BlogCreate, user_id: int) -> dict:
    """
    Open a blog for *user_id*.

    Raises ``NotFoundError`` for an unknown user and ``ConflictError`` when
    the user already owns a blog.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user", user_id)

    existing = await db.execute(select(Blog.id).where(Blog.user_id == user.id))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError(f"User {user.id} already has a blog")

    blog = Blog(title=data.title, user_id=user.id)
    db.add(blog)
    await db.flush()
    logger.info("User %s opened blog %s", user.id, blog.id)
    return _blog_to_dict(blog)
