"""
Tag service: reconciles a post's tag names against the ``tags`` table.

Write path: ``sync_tags`` reuses an existing tag by exact title or creates
it, then writes one ``TagMap`` row per name.  It never deduplicates names
itself; request schemas do that, and updates clear the post's mappings
first with ``delete_tag_maps``.

Read path: ``extract_tag_names`` walks ``post.tag_maps`` which the caller
must have eager-loaded (``selectinload(Post.tag_maps).joinedload(TagMap.tag)``).

Concurrent creation of the same title is settled by the unique constraint
on ``tags.title``: the insert runs inside a SAVEPOINT and a conflict is
treated as "someone else created it", so the existing row is re-fetched.
"""
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vlog.models import Post, Tag, TagMap

logger = logging.getLogger(__name__)


def extract_tag_names(post: Post) -> list[str]:
    return [tag_map.tag.title for tag_map in post.tag_maps]


async def _find_tag(db: AsyncSession, title: str) -> Tag | None:
    result = await db.execute(select(Tag).where(Tag.title == title))
    return result.scalar_one_or_none()


async def get_or_create_tag(db: AsyncSession, title: str) -> Tag:
    tag = await _find_tag(db, title)
    if tag is not None:
        return tag

    try:
        async with db.begin_nested():
            tag = Tag.create(title)
            db.add(tag)
    except IntegrityError:
        logger.info("Tag %r was created concurrently; reusing the stored row", title)
        tag = await _find_tag(db, title)
        if tag is None:
            raise
    else:
        logger.debug("Created tag %r (id=%s)", title, tag.id)
    return tag


async def sync_tags(db: AsyncSession, post: Post, tag_names: list[str] | None) -> list[str]:
    """
    Attach *tag_names* to *post*, creating missing tags on the way.

    Returns the names in the order given.  An empty or None list performs
    no writes.
    """
    if not tag_names:
        return []

    for name in tag_names:
        tag = await get_or_create_tag(db, name)
        db.add(TagMap.create(post, tag))
    await db.flush()
    return list(tag_names)


async def delete_tag_maps(db: AsyncSession, post_id: int) -> None:
    await db.execute(delete(TagMap).where(TagMap.post_id == post_id))
