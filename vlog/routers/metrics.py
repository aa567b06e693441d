from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from vlog.database import get_db
from vlog.models import Comment, Like, Post, User
from vlog.schemas import MetricsResponse
from vlog.cache import cache

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


@router.get("", response_model=MetricsResponse)
async def get_metrics(db: AsyncSession = Depends(get_db)):
    total_posts = await _count(db, Post)
    total_comments = await _count(db, Comment)
    avg_comments = total_comments / total_posts if total_posts > 0 else 0

    return MetricsResponse(
        total_posts=total_posts,
        total_comments=total_comments,
        total_likes=await _count(db, Like),
        total_users=await _count(db, User),
        avg_comments_per_post=round(avg_comments, 2),
        cache_info=cache.stats,
    )
