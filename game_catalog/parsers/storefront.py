"""Parse Steam store search result pages into listing records."""

import json
import re

from bs4 import BeautifulSoup, Tag

from ..config import STEAM_APP_URL_BASE, STEAM_HEADER_IMAGE_BASE
from ..models import ReviewData, ScrapedListing, StorePlatform
from .html import decode_entities, extract_attr, extract_text, parse_price


_PLATFORM_MARKERS: tuple[tuple[re.Pattern, StorePlatform], ...] = (
    (re.compile(r"platform_img\s+win"), {"slug": "windows", "label": "Windows"}),
    (re.compile(r"platform_img\s+mac"), {"slug": "mac", "label": "macOS"}),
    (re.compile(r"platform_img\s+linux"), {"slug": "linux", "label": "Linux"}),
)

# The store is requested with the Korean locale (l=koreana), so the review
# tooltip and result header are matched in Korean.
_LINE_BREAK = re.compile(r"<br\s*/?\s*>", re.IGNORECASE)
_REVIEW_PERCENT = re.compile(r"(\d{1,3})%\s*가\s*긍정적")
_REVIEW_COUNT = re.compile(r"사용자\s*평가\s*(\d[\d,]*)개")
_RESULT_COUNT = re.compile(r"검색\s*결과가\s*(\d[\d,]*)개\s*있습니다\.")

_TITLE = re.compile(r'<span\s+class="title">(.*?)</span>', re.DOTALL)
_RELEASED = re.compile(r'<div\s+class="search_released[^>]*>(.*?)</div>', re.DOTALL)
_DISCOUNT_PCT = re.compile(r'<div\s+class="discount_pct">(.*?)</div>', re.DOTALL)
_ORIGINAL_PRICE = re.compile(r'<div\s+class="discount_original_price">(.*?)</div>', re.DOTALL)
_ASCII_DIGITS = re.compile(r"[0-9]+")


def parse_platform_tags(block: str) -> list[StorePlatform]:
    """Return the platforms whose icon appears in a row, in windows/mac/linux order."""
    return [dict(platform) for pattern, platform in _PLATFORM_MARKERS if pattern.search(block)]


def parse_review_block(block: str) -> ReviewData:
    """
    Extract review summary, positive percentage and review count from a row.

    Each field is extracted independently; a field whose pattern does not
    match is None while the others may still be present.

    Args:
        block: Markup of a single search result row

    Returns:
        Dictionary with summary, percent and count
    """
    tooltip_raw = extract_attr(block, "data-tooltip-html")
    return parse_review_tooltip(decode_entities(tooltip_raw) if tooltip_raw else None)


def parse_review_tooltip(tooltip: str | None) -> ReviewData:
    """Split an already-decoded review tooltip into summary, percent and count."""
    if not tooltip:
        return {"summary": None, "percent": None, "count": None}

    first_line = _LINE_BREAK.split(tooltip, maxsplit=1)[0].strip()

    percent_match = _REVIEW_PERCENT.search(tooltip)
    count_match = _REVIEW_COUNT.search(tooltip)

    return {
        "summary": first_line or None,
        "percent": int(percent_match.group(1)) if percent_match else None,
        "count": int(count_match.group(1).replace(",", "")) if count_match else None,
    }


def parse_result_count(html: str) -> int:
    """Total number of matches reported by the page header; 0 when absent or when the page reports no results."""
    match = _RESULT_COUNT.search(html)
    if match:
        return int(match.group(1).replace(",", ""))

    return 0


def parse_listings(html: str) -> list[ScrapedListing]:
    """
    Extract listing records from a search results page.

    Rows without a numeric appid or a title are skipped. Malformed rows
    never raise; they only reduce the number of results.

    Args:
        html: Raw HTML of the search results page (or its infinite-scroll fragment)

    Returns:
        Listings in page order
    """
    soup = BeautifulSoup(html, "lxml")
    listings: list[ScrapedListing] = []

    for row in soup.find_all("a", class_="search_result_row"):
        listing = _parse_row(row)
        if listing is not None:
            listings.append(listing)

    return listings


def _first_attr(row: Tag, name: str) -> str | None:
    """Value of name on the row itself or its first descendant carrying it."""
    if row.has_attr(name):
        return row[name]

    element = row.find(attrs={name: True})
    return element[name] if element is not None else None


def _parse_int_attr(value: str | None) -> int | None:
    if value is None or not _ASCII_DIGITS.fullmatch(value):
        return None
    return int(value)


def _parse_row(row: Tag) -> ScrapedListing | None:
    # Attribute values come from the parsed tree; element text is matched on
    # the serialized row.
    appid = _parse_int_attr(_first_attr(row, "data-ds-appid"))
    if appid is None:
        return None

    block = str(row)
    name = extract_text(block, _TITLE)
    if not name:
        return None

    review = parse_review_tooltip(_first_attr(row, "data-tooltip-html"))

    return {
        "appid": appid,
        "name": name,
        "header_image": f"{STEAM_HEADER_IMAGE_BASE}/{appid}/header.jpg",
        "capsule_image": _first_attr(row, "src") or "",
        "url": f"{STEAM_APP_URL_BASE}/{appid}",
        "released": extract_text(block, _RELEASED),
        "review_summary": review["summary"],
        "review_percent": review["percent"],
        "review_count": review["count"],
        "price_final": _parse_int_attr(_first_attr(row, "data-price-final")),
        "price_original": parse_price(extract_text(block, _ORIGINAL_PRICE)),
        "discount_percent": _parse_discount(block),
        "platforms": parse_platform_tags(block),
        "tag_ids": _parse_tag_ids(_first_attr(row, "data-ds-tagids")),
    }


def _parse_discount(block: str) -> int | None:
    """'-25%' -> -25. None when the discount block is missing, 0 when it holds no number."""
    if not _DISCOUNT_PCT.search(block):
        return None

    text = extract_text(block, _DISCOUNT_PCT) or ""
    try:
        return int(re.sub(r"[^\d-]", "", text))
    except ValueError:
        return 0


def _parse_tag_ids(raw: str | None) -> list[int]:
    if not raw:
        return []

    try:
        parsed = json.loads(raw)
    except ValueError:
        return []

    if not isinstance(parsed, list):
        return []

    return [item for item in parsed if isinstance(item, int) and not isinstance(item, bool)]
