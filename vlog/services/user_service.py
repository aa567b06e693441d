"""
User service: registration and lookup for the User aggregate.

Passwords are stored as bcrypt hashes.  Email and nickname uniqueness is
enforced by unique constraints; the router turns the resulting
``IntegrityError`` into a 409.
"""
import logging

import bcrypt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vlog.cache import purge_post_lists
from vlog.config import settings
from vlog.errors import ConflictError, ForbiddenError, NotFoundError
from vlog.models import User
from vlog.schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User) -> dict:
    """Serialise a User ORM instance to a plain dict (list view)."""
    return {
        "id": user.id,
        "email": user.email,
        "nickname": user.nickname,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_users(db: AsyncSession) -> list[dict]:
    """Return all users, newest first."""
    q = select(User).order_by(User.created_at.desc(), User.id.desc())
    result = await db.execute(q)
    return [_user_to_dict(u) for u in result.scalars().all()]


async def get_user(db: AsyncSession, user_id: int) -> dict:
    """Return *user_id* with its blog (or ``None`` when it has none)."""
    q = (
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.blog))
        .execution_options(populate_existing=True)
    )
    user = (await db.execute(q)).scalar_one_or_none()
    if user is None:
        raise NotFoundError("user", user_id)

    data = _user_to_dict(user)
    blog = user.blog
    data["blog"] = (
        {
            "id": blog.id,
            "title": blog.title,
            "user_id": blog.user_id,
            "created_at": blog.created_at.isoformat() if blog.created_at else None,
        }
        if blog
        else None
    )
    return data


async def create_user(db: AsyncSession, data: UserCreate) -> dict:
    user = User(
        email=data.email,
        nickname=data.nickname,
        password=hash_password(data.password),
    )
    db.add(user)
    await db.flush()
    logger.info("Registered user %s (%s)", user.id, user.nickname)
    return _user_to_dict(user)


async def update_user(
    db: AsyncSession, user_id: int, data: UserUpdate, acting_user_id: int
) -> dict:
    """
    Change the nickname and/or password of *user_id*.

    Only the user themself may do this.  A nickname already taken by
    another user raises ``ConflictError``; a new password is re-hashed.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user", user_id)
    if user.id != acting_user_id:
        logger.warning("User %s tried to update user %s", acting_user_id, user_id)
        raise ForbiddenError("update", message="Users may only update their own profile")

    if data.nickname is not None and data.nickname != user.nickname:
        taken = await db.execute(
            select(User.id).where(User.nickname == data.nickname, User.id != user.id)
        )
        if taken.scalar_one_or_none() is not None:
            raise ConflictError(f"Nickname {data.nickname!r} is already taken")
        user.nickname = data.nickname
        # Author nicknames are embedded in cached post pages.
        await purge_post_lists(db)
    if data.password is not None:
        user.password = hash_password(data.password)

    await db.flush()
    logger.info("User %s updated their profile", user.id)
    return _user_to_dict(user)
