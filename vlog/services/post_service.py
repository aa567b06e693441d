"""
Post service: listing, detail and authored writes for the Post aggregate.

Design notes
------------
- ``get_posts`` picks exactly one of four query strategies from the
  filters it receives (tag and blog, tag only, blog only, neither).  All of
  them share the same count/select/page code path so the response shape
  never depends on which filters were used.
- Tag filtering goes through a ``DISTINCT`` sub-select of ``tag_maps``, so a
  post mapped to the same tag more than once is still listed and counted
  once.
- A page is enriched with like/comment counts by ``count_service`` in two
  grouped queries; the whole listing is a constant number of statements
  whatever the page size.
- Ownership is checked along post -> blog -> user by comparing ids.  The
  acting user id is always an explicit argument.
- Service functions flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency, which makes every write call atomic.
"""
import logging
import math
from collections.abc import Sequence

from sqlalchemy import asc, delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from vlog.cache import cache, post_list_key, purge_post_lists
from vlog.config import settings
from vlog.errors import ForbiddenError, NotFoundError
from vlog.models import Blog, Comment, Like, Post, Tag, TagMap, User
from vlog.schemas import PaginatedResponse, PostCreate, PostUpdate
from vlog.services import comment_service, count_service, like_service, tag_service

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Columns that are safe to sort by; guards against arbitrary attribute access.
_SORTABLE_COLUMNS: frozenset[str] = frozenset(
    {"created_at", "updated_at", "view_count", "title"}
)


def _resolve_sort_column(sort_by: str):
    """Return the column for *sort_by*, falling back to ``Post.created_at``."""
    if sort_by in _SORTABLE_COLUMNS:
        return getattr(Post, sort_by)
    return Post.created_at


def _post_ids_tagged(tag: str):
    return (
        select(TagMap.post_id)
        .join(Tag, Tag.id == TagMap.tag_id)
        .where(Tag.title == tag)
        .distinct()
    )


def _listing_criteria(tag: str | None, blog_id: int | None) -> list:
    """Return the WHERE criteria of the listing strategy chosen by the filters."""
    if tag is not None and blog_id is not None:
        return [Post.id.in_(_post_ids_tagged(tag)), Post.blog_id == blog_id]
    if tag is not None:
        return [Post.id.in_(_post_ids_tagged(tag))]
    if blog_id is not None:
        return [Post.blog_id == blog_id]
    return []


def _with_author_and_tags(q):
    return q.options(
        joinedload(Post.blog).joinedload(Blog.user),
        selectinload(Post.tag_maps).joinedload(TagMap.tag),
    )


def summarize(content: str | None, length: int | None = None) -> str:
    """Cut *content* to *length* characters, adding an ellipsis when cut."""
    if length is None:
        length = settings.SUMMARY_LENGTH
    if not content:
        return ""
    if len(content) > length:
        return content[:length] + "..."
    return content


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _author_to_dict(user: User) -> dict:
    return {"id": user.id, "nickname": user.nickname}


def _post_summary_to_dict(
    post: Post, tags: list[str], like_count: int, comment_count: int
) -> dict:
    """Serialise a Post ORM instance to a plain dict (list view)."""
    return {
        "post_id": post.id,
        "title": post.title,
        "summary": summarize(post.content),
        "author": _author_to_dict(post.blog.user),
        "blog_id": post.blog_id,
        "tags": tags,
        "like_count": like_count,
        "comment_count": comment_count,
        "created_at": post.created_at.isoformat() if post.created_at else None,
    }


def _post_detail_to_dict(
    post: Post,
    tags: list[str],
    like_count: int = 0,
    is_liked: bool = False,
    comments: list[dict] | None = None,
) -> dict:
    """Serialise a Post ORM instance to a plain dict (detail view)."""
    return {
        "post_id": post.id,
        "title": post.title,
        "content": post.content,
        "author": _author_to_dict(post.blog.user),
        "blog_id": post.blog_id,
        "tags": tags,
        "view_count": post.view_count,
        "like_count": like_count,
        "is_liked": is_liked,
        "comments": comments or [],
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "updated_at": post.updated_at.isoformat() if post.updated_at else None,
    }


async def _get_post_for_write(db: AsyncSession, post_id: int, user_id: int, action: str) -> Post:
    """Load *post_id* with its blog and author, and check *user_id* owns it."""
    q = (
        select(Post)
        .where(Post.id == post_id)
        .options(joinedload(Post.blog).joinedload(Blog.user))
        .execution_options(populate_existing=True)
    )
    post = (await db.execute(q)).unique().scalar_one_or_none()
    if post is None:
        raise NotFoundError("post", post_id)

    if post.blog.user_id != user_id:
        logger.warning(
            "User %s tried to %s post %s owned by user %s",
            user_id, action, post_id, post.blog.user_id,
        )
        raise ForbiddenError(action)
    return post


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_posts(
    db: AsyncSession,
    tag: str | None = None,
    blog_id: int | None = None,
    page: int = 1,
    page_size: int | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> PaginatedResponse:
    """
    Return one page of post summaries, optionally filtered by tag title
    and/or blog id.

    Pages are 1-based: *page* 1 is the first page.  A *page* below 1 or a
    *page_size* below 1 raises ``ValueError``; *page_size* above
    ``MAX_PAGE_SIZE`` is clamped.

    On a cache miss the statements issued are: COUNT, the page SELECT
    (blog and author joined), the tag-map SELECT IN, and one grouped
    count each for likes and comments.
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size is None:
        page_size = settings.DEFAULT_PAGE_SIZE
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    page_size = min(page_size, settings.MAX_PAGE_SIZE)

    cache_key = post_list_key(tag, blog_id, page, page_size, sort_by, sort_order)
    cached = await cache.get(cache_key)
    if cached:
        return PaginatedResponse(**cached)

    criteria = _listing_criteria(tag, blog_id)

    count_q = select(func.count()).select_from(Post).where(*criteria)
    total: int = (await db.execute(count_q)).scalar_one()

    sort_col = _resolve_sort_column(sort_by)
    order_expr = desc(sort_col) if sort_order == "desc" else asc(sort_col)
    posts_q = (
        _with_author_and_tags(select(Post).where(*criteria))
        .order_by(order_expr, Post.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    posts: Sequence[Post] = (await db.execute(posts_q)).unique().scalars().all()

    like_counts = await count_service.aggregate_like_counts(db, posts)
    comment_counts = await count_service.aggregate_comment_counts(db, posts)

    response = PaginatedResponse(
        items=[
            _post_summary_to_dict(
                p,
                tag_service.extract_tag_names(p),
                like_counts.get(p.id, 0),
                comment_counts.get(p.id, 0),
            )
            for p in posts
        ],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )
    await cache.set(cache_key, response.model_dump(), ttl=settings.CACHE_TTL_LIST)
    return response


async def get_post(db: AsyncSession, post_id: int, viewer_id: int | None = None) -> dict:
    """
    Return the detail dict for *post_id*: tag names, like count, whether
    *viewer_id* liked it, and its top-level comments.

    An unknown *viewer_id* is not an error; ``is_liked`` is then False.
    """
    q = _with_author_and_tags(select(Post).where(Post.id == post_id)).execution_options(
        populate_existing=True
    )
    post = (await db.execute(q)).unique().scalar_one_or_none()
    if post is None:
        raise NotFoundError("post", post_id)

    like_count = await count_service.count_likes(db, post.id)

    is_liked = False
    if viewer_id is not None:
        viewer = await db.get(User, viewer_id)
        if viewer is not None:
            is_liked = await like_service.has_liked(db, viewer.id, post.id)

    comments = await comment_service.get_top_level_comments(db, post.id)

    return _post_detail_to_dict(
        post,
        tag_service.extract_tag_names(post),
        like_count=like_count,
        is_liked=is_liked,
        comments=comments,
    )


async def create_post(db: AsyncSession, data: PostCreate, user_id: int) -> dict:
    """
    Create a post in *user_id*'s blog and attach its tags.

    Raises ``NotFoundError("user")`` for an unknown user and
    ``NotFoundError("blog")`` when the user has not created a blog yet.
    A new post has no likes or comments, so none are queried.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user", user_id)

    blog_q = select(Blog).where(Blog.user_id == user.id).options(joinedload(Blog.user))
    blog = (await db.execute(blog_q)).unique().scalar_one_or_none()
    if blog is None:
        raise NotFoundError.blog_of_user(user_id)

    post = Post.create(data.title, data.content, blog)
    db.add(post)
    await db.flush()

    tags = await tag_service.sync_tags(db, post, data.tags)

    await purge_post_lists(db)
    logger.info("User %s created post %s in blog %s", user.id, post.id, blog.id)
    return _post_detail_to_dict(post, tags)


async def update_post(db: AsyncSession, post_id: int, data: PostUpdate, user_id: int) -> dict:
    """
    Overwrite title, content and tags of a post owned by *user_id*.

    Tags are replaced, not merged: every existing mapping is removed and
    the new list is synchronised from scratch.
    """
    post = await _get_post_for_write(db, post_id, user_id, "update")

    post.update(data.title, data.content)
    await tag_service.delete_tag_maps(db, post.id)
    tags = await tag_service.sync_tags(db, post, data.tags)
    await db.flush()

    await purge_post_lists(db)
    logger.info("User %s updated post %s", user_id, post.id)
    return _post_detail_to_dict(
        post,
        tags,
        like_count=await count_service.count_likes(db, post.id),
        is_liked=await like_service.has_liked(db, user_id, post.id),
        comments=await comment_service.get_top_level_comments(db, post.id),
    )


async def delete_post(db: AsyncSession, post_id: int, user_id: int) -> None:
    """
    Delete a post owned by *user_id* together with its tag mappings, likes
    and comments.
    """
    post = await _get_post_for_write(db, post_id, user_id, "delete")

    await tag_service.delete_tag_maps(db, post.id)
    await db.execute(delete(Like).where(Like.post_id == post.id))
    await db.execute(delete(Comment).where(Comment.post_id == post.id))
    await db.delete(post)
    await db.flush()

    await purge_post_lists(db)
    logger.info("User %s deleted post %s", user_id, post_id)
