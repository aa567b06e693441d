from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from vlog.database import get_db
from vlog.dependencies import get_acting_user_id
from vlog.errors import ConflictError
from vlog.schemas import UserCreate, UserResponse, UserDetail, UserUpdate
from vlog.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
async def list_users(db: AsyncSession = Depends(get_db)):
    return await user_service.get_users(db)


@router.get("/{user_id}", response_model=UserDetail)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return await user_service.get_user(db, user_id)


@router.post("", status_code=201, response_model=UserResponse)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await user_service.create_user(db, data)
    except IntegrityError:
        raise ConflictError("A user with this email or nickname already exists")


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    acting_user_id: int = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await user_service.update_user(db, user_id, data, acting_user_id)
    except IntegrityError:
        # Lost a race for the nickname against a concurrent update.
        raise ConflictError("A user with this nickname already exists")
