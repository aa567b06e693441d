"""
Regression tests for issues found during code review.

1. Unique constraint violations must return 409 (not 500)
2. X-Query-Count must report the real query count (not always 0)
3. The post listing must issue a fixed number of queries per page
4. CORS must not set allow_credentials=true with allow_origins=*
5. A failed write must not leave partial rows behind
6. Cached post pages must be purged again once the write commits
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vlog.cache import cache
from vlog.models import Tag


async def _writer(client: AsyncClient, nickname: str) -> dict:
    user = (await client.post("/api/v1/users", json={
        "email": f"{nickname}@example.com",
        "nickname": nickname,
        "password": "password123",
    })).json()
    headers = {"X-User-Id": str(user["id"])}
    await client.post("/api/v1/blogs", json={"title": nickname}, headers=headers)
    return headers


# ---------------------------------------------------------------------------
# 1. Unique constraint violations -> 409
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_duplicate_nickname_returns_409(async_client: AsyncClient):
    """Registering an existing nickname returns 409, not 500."""
    base = {"nickname": "dup_user", "password": "password123"}
    resp1 = await async_client.post("/api/v1/users", json={**base, "email": "dup1@example.com"})
    assert resp1.status_code == 201

    resp2 = await async_client.post("/api/v1/users", json={**base, "email": "dup2@example.com"})
    assert resp2.status_code == 409
    assert resp2.json()["code"] == "conflict"


@pytest.mark.asyncio
async def test_duplicate_email_returns_409(async_client: AsyncClient):
    """Registering an existing email returns 409, not 500."""
    await async_client.post("/api/v1/users", json={
        "nickname": "emailuser1", "email": "same@example.com", "password": "password123",
    })
    resp = await async_client.post("/api/v1/users", json={
        "nickname": "emailuser2", "email": "same@example.com", "password": "password123",
    })
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_second_blog_returns_409(async_client: AsyncClient):
    """A user owns at most one blog."""
    headers = await _writer(async_client, "oneblog")
    resp = await async_client.post("/api/v1/blogs", json={"title": "again"}, headers=headers)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_shared_tag_is_not_duplicated(async_client: AsyncClient, db_session: AsyncSession):
    """Two posts naming the same new tag share one Tag row."""
    headers = await _writer(async_client, "tagger")
    for title in ("one", "two"):
        resp = await async_client.post(
            "/api/v1/posts", json={"title": title, "content": "c", "tags": ["shared"]}, headers=headers
        )
        assert resp.status_code == 201

    count = (await db_session.execute(
        select(func.count()).select_from(Tag).where(Tag.title == "shared")
    )).scalar_one()
    assert count == 1


# ---------------------------------------------------------------------------
# 2. X-Query-Count reports real queries
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_query_count_header_nonzero(async_client: AsyncClient):
    """Any endpoint that touches the DB must report X-Query-Count > 0."""
    resp = await async_client.get("/api/v1/metrics")
    assert resp.status_code == 200
    assert int(resp.headers["x-query-count"]) > 0


# ---------------------------------------------------------------------------
# 3. Post listing query count does not grow with the page
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_query_count_is_constant(async_client: AsyncClient):
    """A full page reports the same X-Query-Count as a single-item page."""
    headers = await _writer(async_client, "bulk")
    await async_client.post(
        "/api/v1/posts", json={"title": "p0", "content": "c", "tags": ["x"]}, headers=headers
    )
    small = await async_client.get("/api/v1/posts")
    assert small.json()["total"] == 1

    for i in range(1, 10):
        await async_client.post(
            "/api/v1/posts", json={"title": f"p{i}", "content": "c", "tags": ["x", f"t{i}"]}, headers=headers
        )
    full = await async_client.get("/api/v1/posts")
    assert len(full.json()["items"]) == 10

    assert small.headers["x-query-count"] == full.headers["x-query-count"]


# ---------------------------------------------------------------------------
# 4. CORS credentials
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cors_no_credentials_with_wildcard(async_client: AsyncClient):
    """CORS with allow_origins=* must not set allow_credentials=true."""
    resp = await async_client.options(
        "/api/v1/posts",
        headers={
            "Origin": "http://evil.example.com",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert resp.headers.get("access-control-allow-credentials") != "true"


# ---------------------------------------------------------------------------
# 5. Failed writes leave nothing behind
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_post_without_blog_leaves_no_tags(async_client: AsyncClient, db_session: AsyncSession):
    """A create rejected for a missing blog writes no Tag rows."""
    user = (await async_client.post("/api/v1/users", json={
        "email": "noblog@example.com", "nickname": "noblog", "password": "password123",
    })).json()
    resp = await async_client.post(
        "/api/v1/posts",
        json={"title": "t", "content": "c", "tags": ["orphan"]},
        headers={"X-User-Id": str(user["id"])},
    )
    assert resp.status_code == 404

    count = (await db_session.execute(select(func.count()).select_from(Tag))).scalar_one()
    assert count == 0


# ---------------------------------------------------------------------------
# 6. Cached post pages are purged again after COMMIT
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_post_lists_purged_after_commit(async_client: AsyncClient, monkeypatch):
    """
    Writes purge the list cache inside the transaction and once more after
    it commits; a rolled-back write does not purge at all.
    """
    headers = await _writer(async_client, "purger")
    purges: list[str] = []

    async def _record():
        purges.append("purge")

    monkeypatch.setattr(cache, "invalidate_posts", _record)

    created = await async_client.post(
        "/api/v1/posts", json={"title": "t", "content": "c"}, headers=headers
    )
    assert created.status_code == 201
    assert len(purges) == 2

    purges.clear()
    liked = await async_client.post(f"/api/v1/posts/{created.json()['post_id']}/likes", headers=headers)
    assert liked.status_code == 200
    assert len(purges) == 2

    purges.clear()
    missing = await async_client.post("/api/v1/posts/99999/likes", headers=headers)
    assert missing.status_code == 404
    assert purges == []
