"""Pattern-based extraction helpers for storefront markup."""

import re

_NAMED_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    # &amp; must come last so "&amp;lt;" decodes to "&lt;", not "<"
    ("&amp;", "&"),
)
_NUMERIC_ENTITY = re.compile(r"&#(\d+);")
_TAG = re.compile(r"<[^>]+>")
_NON_DIGIT = re.compile(r"[^\d]")


def decode_entities(value: str) -> str:
    """Decode the five standard named entities and decimal character references."""
    for entity, char in _NAMED_ENTITIES:
        value = value.replace(entity, char)
    return _NUMERIC_ENTITY.sub(lambda m: chr(int(m.group(1))), value)


def extract_attr(html: str, name: str) -> str | None:
    """Return the value of the first ``name="..."`` occurrence, or None."""
    match = re.search(rf'{re.escape(name)}="([^"]*)"', html)
    return match.group(1) if match else None


def extract_text(html: str, pattern: re.Pattern | str) -> str | None:
    """
    Extract the text captured by a single-group pattern.

    The capture is entity-decoded, stripped of tags and trimmed. A capture that
    is empty after cleaning counts as absent.

    Args:
        html: Markup to search
        pattern: Regex with exactly one capturing group

    Returns:
        Cleaned text, or None if the pattern fails or the text is empty
    """
    match = re.search(pattern, html)
    if not match or not match.group(1):
        return None

    text = _TAG.sub("", decode_entities(match.group(1))).strip()
    return text or None


def parse_price(text: str | None) -> int | None:
    """
    Parse display price text into minor currency units.

    Example:
        "₩ 33,600" -> 3360000

    Args:
        text: Price as displayed by the storefront

    Returns:
        Integer price times 100, or None for missing/empty input
    """
    if not text:
        return None

    numeric = _NON_DIGIT.sub("", text)
    return int(numeric) * 100 if numeric else None
