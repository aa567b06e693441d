"""
Count service: like/comment counts for a batch of posts.

Each aggregate is one ``SELECT post_id, COUNT(*) ... GROUP BY post_id``
regardless of how many posts are on the page, so enriching a page of K
posts costs two queries, not 2*K.  Posts without rows are simply absent
from the returned mapping; read them with ``counts.get(post_id, 0)``.
"""
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vlog.models import Comment, Like, Post


async def _grouped_counts(db: AsyncSession, model, posts: Sequence[Post]) -> dict[int, int]:
    # An empty IN () is never sent to the database.
    if not posts:
        return {}

    q = (
        select(model.post_id, func.count(model.id))
        .where(model.post_id.in_([p.id for p in posts]))
        .group_by(model.post_id)
    )
    result = await db.execute(q)
    return {post_id: count for post_id, count in result.all()}


async def aggregate_like_counts(db: AsyncSession, posts: Sequence[Post]) -> dict[int, int]:
    return await _grouped_counts(db, Like, posts)


async def aggregate_comment_counts(db: AsyncSession, posts: Sequence[Post]) -> dict[int, int]:
    return await _grouped_counts(db, Comment, posts)


async def count_likes(db: AsyncSession, post_id: int) -> int:
    q = select(func.count()).select_from(Like).where(Like.post_id == post_id)
    return (await db.execute(q)).scalar_one()
