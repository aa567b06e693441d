import json
import logging

import redis.asyncio as redis

from vlog.config import settings

logger = logging.getLogger(__name__)

POST_LIST_PREFIX = "posts:list"

# Session.info flag: the open transaction wrote something that shows up in
# post list pages, so they are purged again once it commits.
POST_LISTS_STALE = "post_lists_stale"


def post_list_key(
    tag: str | None,
    blog_id: int | None,
    page: int,
    page_size: int,
    sort_by: str,
    sort_order: str,
) -> str:
    """Build a list-cache key that encodes every dimension of the query."""
    return (
        f"{POST_LIST_PREFIX}:tag={tag or ''}:blog={'' if blog_id is None else blog_id}"
        f":{page}:{page_size}:{sort_by}:{sort_order}"
    )


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    Reads return None and writes are skipped whenever Redis is missing or
    failing, so the post listing falls back to the database instead of
    raising.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, post list cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss / error."""
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching *pattern* using SCAN (avoids blocking KEYS)."""
        if not self._redis:
            return
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except Exception as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    async def invalidate_posts(self) -> None:
        """
        Purge every cached post page.

        Any post, like or comment write changes either the page contents or
        the counts embedded in them, so the whole list namespace goes.
        """
        await self.delete_pattern(f"{POST_LIST_PREFIX}:*")

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


# Module-level singleton shared across all request handlers.
cache = CacheManager()


async def purge_post_lists(session) -> None:
    """
    Purge cached post pages now, and flag *session* so ``get_db`` purges
    them a second time after COMMIT.

    The second purge drops any page that a concurrent reader cached from
    the pre-commit state in between.
    """
    session.info[POST_LISTS_STALE] = True
    await cache.invalidate_posts()
