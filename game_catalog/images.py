"""IGDB image URL helpers."""

import re

_IGDB_IMAGE_BASE = "//images.igdb.com/igdb/image/upload"
_SIZE_TOKEN = re.compile(r"t_\w+")


def igdb_image_url(url: str, size: str = "t_cover_big") -> str:
    """
    Resolve an IGDB image URL to a given size derivative.

    Example:
        //images.igdb.com/igdb/image/upload/t_thumb/abc.jpg
        -> https://images.igdb.com/igdb/image/upload/t_cover_big/abc.jpg

    Args:
        url: Image URL as returned by IGDB (usually protocol-relative)
        size: IGDB size token

    Returns:
        Absolute https URL
    """
    with_protocol = f"https:{url}" if url.startswith("//") else url
    return _SIZE_TOKEN.sub(size, with_protocol, count=1)


def cover_url(image_id: str) -> str:
    return igdb_image_url(f"{_IGDB_IMAGE_BASE}/t_thumb/{image_id}.jpg", "t_cover_big")


def screenshot_url(image_id: str) -> str:
    return igdb_image_url(f"{_IGDB_IMAGE_BASE}/t_thumb/{image_id}.jpg", "t_screenshot_big")
