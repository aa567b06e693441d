from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime


# --- User ---

class UserBase(BaseModel):
    email: str = Field(max_length=255)
    nickname: str = Field(min_length=1, max_length=50)


class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=72)


class UserUpdate(BaseModel):
    # Omitted fields keep their stored value.
    nickname: str | None = Field(None, min_length=1, max_length=50)
    password: str | None = Field(None, min_length=8, max_length=72)


class UserResponse(UserBase):
    id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AuthorResponse(BaseModel):
    id: int
    nickname: str
    model_config = ConfigDict(from_attributes=True)


# --- Blog ---

class BlogCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)


class BlogResponse(BaseModel):
    id: int
    title: str
    user_id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UserDetail(UserResponse):
    blog: BlogResponse | None = None


# --- Comment ---

class CommentCreate(BaseModel):
    content: str = Field(min_length=1)


class CommentResponse(BaseModel):
    id: int
    post_id: int
    content: str
    author: AuthorResponse | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Post ---

class PostWrite(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str
    tags: list[str] = []

    @field_validator("tags", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return [] if value is None else value

    @field_validator("tags")
    @classmethod
    def _normalise_tags(cls, value: list[str]) -> list[str]:
        # Drop blanks and repeated names (first occurrence wins) so that a
        # single request never maps the same tag twice.
        seen: dict[str, None] = {}
        for name in value:
            name = name.strip()
            if not name:
                continue
            if len(name) > 50:
                raise ValueError("tag names are limited to 50 characters")
            seen.setdefault(name, None)
        return list(seen)


class PostCreate(PostWrite):
    pass


class PostUpdate(PostWrite):
    pass


class PostSummary(BaseModel):
    post_id: int
    title: str
    summary: str
    author: AuthorResponse
    blog_id: int
    tags: list[str] = []
    like_count: int = 0
    comment_count: int = 0
    created_at: datetime | None


class PostDetail(BaseModel):
    post_id: int
    title: str
    content: str
    author: AuthorResponse
    blog_id: int
    tags: list[str] = []
    view_count: int = 0
    like_count: int = 0
    is_liked: bool = False
    comments: list[CommentResponse] = []
    created_at: datetime | None
    updated_at: datetime | None


# --- Like ---

class LikeResponse(BaseModel):
    post_id: int
    like_count: int
    is_liked: bool


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list  # Typed by subclasses such as PostPage
    total: int
    page: int
    page_size: int
    pages: int


class PostPage(PaginatedResponse):
    items: list[PostSummary]


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_posts: int
    total_comments: int
    total_likes: int
    total_users: int
    avg_comments_per_post: float
    cache_info: dict = {}