from fastapi import Header, Query

from vlog.config import settings
from vlog.errors import AuthenticationRequiredError


class PaginationParams:
    """
    Reusable FastAPI dependency that parses and validates pagination /
    sorting query parameters.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    page_size:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``.
    sort_by:
        Post column to sort by; unknown names fall back to ``created_at``
        in the service layer.
    sort_order:
        ``"asc"`` or ``"desc"`` (enforced by the regex pattern).
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=100,
            description="Number of items returned per page (max 100).",
        ),
        sort_by: str = Query("created_at", description="Column name to sort results by."),
        sort_order: str = Query(
            "desc",
            pattern="^(asc|desc)$",
            description="Sort direction: 'asc' or 'desc'.",
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)
        self.sort_by = sort_by
        self.sort_order = sort_order


# ---------------------------------------------------------------------------
# Acting user
#
# Identity arrives as a plain ``X-User-Id`` header and is handed to the
# services as an explicit argument; no session state is kept.
# ---------------------------------------------------------------------------

async def get_viewer_id(x_user_id: int | None = Header(None)) -> int | None:
    """Optional caller id for read endpoints (used for ``is_liked``)."""
    return x_user_id


async def get_acting_user_id(x_user_id: int | None = Header(None)) -> int:
    """Caller id for write endpoints; missing header -> 401."""
    if x_user_id is None:
        raise AuthenticationRequiredError("X-User-Id header is required")
    return x_user_id
