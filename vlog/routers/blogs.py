from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from vlog.database import get_db
from vlog.dependencies import get_acting_user_id
from vlog.errors import ConflictError
from vlog.schemas import BlogCreate, BlogResponse
from vlog.services import blog_service

router = APIRouter(prefix="/api/v1/blogs", tags=["blogs"])


@router.post("", status_code=201, response_model=BlogResponse)
async def create_blog(
    data: BlogCreate,
    user_id: int = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await blog_service.create_blog(db, data, user_id)
    except IntegrityError:
        # Lost a race against a concurrent create for the same user.
        raise ConflictError(f"User {user_id} already has a blog")


@router.get("/{blog_id}", response_model=BlogResponse)
async def get_blog(blog_id: int, db: AsyncSession = Depends(get_db)):
    return await blog_service.get_blog(db, blog_id)
