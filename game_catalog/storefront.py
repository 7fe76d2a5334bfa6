"""Steam store search client.

The storefront has no public search API, so results are scraped from the
search page HTML.
"""

from .config import REQUEST_TIMEOUT_SECONDS, STEAM_SEARCH_ENDPOINT
from .http_client import fetch
from .logger import setup_logger
from .models import StorefrontSearchResult
from .parsers.storefront import parse_listings, parse_result_count

logger = setup_logger(__name__)


DEFAULT_COUNT = 50


def build_search_params(tags: str | None = None, count: int | None = None, start: int | None = None) -> dict[str, str]:
    """Query parameters for a search page request."""
    params = {
        "query": "",
        "category1": "998",
        "l": "koreana",
        "cc": "KR",
        "count": str(count if count is not None else DEFAULT_COUNT),
        "start": str(start if start is not None else 0),
        "force_infinite": "1",
        "snr": "1_7_7_230_150_1",
    }

    if tags:
        params["tags"] = tags

    return params


def search(
    tags: str | None = None,
    count: int | None = None,
    start: int | None = None,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> StorefrontSearchResult:
    """
    Search the store and parse the result rows.

    Args:
        tags: Comma-joined store tag ids to filter by
        count: Page size (default 50)
        start: Offset of the first row (default 0)
        timeout: Request timeout in seconds

    Returns:
        Dictionary with parsed listings and the total result count

    Raises:
        RequestFailed: If the store responds with a non-success status
    """
    params = build_search_params(tags=tags, count=count, start=start)
    html = fetch(STEAM_SEARCH_ENDPOINT, params=params, timeout=timeout)

    listings = parse_listings(html)
    total_count = parse_result_count(html)
    logger.debug(f"Steam search tags={tags!r} start={params['start']}: {len(listings)} rows, {total_count} total")

    return {"listings": listings, "total_count": total_count}
