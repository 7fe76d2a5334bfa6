import re

from game_catalog.parsers.html import decode_entities, extract_attr, extract_text, parse_price


RELEASED_PATTERN = re.compile(r'<div\s+class="search_released">(.*?)</div>', re.DOTALL)
TITLE_PATTERN = re.compile(r'<span\s+class="title">(.*?)</span>', re.DOTALL)


def test_decode_named_entities():
    """Test decoding the standard named entities."""
    assert decode_entities("&lt;div&gt;") == "<div>"
    assert decode_entities("&amp;") == "&"
    assert decode_entities("&quot;hello&quot;") == '"hello"'
    assert decode_entities("&#39;") == "'"


def test_decode_numeric_entities():
    """Test decoding decimal character references."""
    assert decode_entities("&#65;") == "A"
    assert decode_entities("&#9733;") == "★"


def test_decode_is_single_pass_for_named_entities():
    """An escaped entity decodes to the entity text, not the character."""
    assert decode_entities("&amp;lt;") == "&lt;"


def test_decode_plain_text_unchanged():
    assert decode_entities("hello world") == "hello world"
    assert decode_entities("&unknown; & stray") == "&unknown; & stray"


def test_extract_attr():
    """Test extracting attribute values."""
    html = '<a data-ds-appid="730" class="row">'

    assert extract_attr(html, "data-ds-appid") == "730"
    assert extract_attr(html, "class") == "row"


def test_extract_attr_first_occurrence():
    html = '<div data-price-final="100"><div data-price-final="200"></div></div>'

    assert extract_attr(html, "data-price-final") == "100"


def test_extract_attr_missing():
    assert extract_attr("<div>", "id") is None


def test_extract_text_strips_tags():
    """Test that nested tags are removed from the captured text."""
    html = '<span class="title"><b>ELDEN RING</b></span>'

    assert extract_text(html, TITLE_PATTERN) == "ELDEN RING"


def test_extract_text_decodes_entities():
    html = '<span class="title">Tom &amp; Jerry</span>'

    assert extract_text(html, TITLE_PATTERN) == "Tom & Jerry"


def test_extract_text_trims():
    html = '<div class="search_released">  2024년 2월 8일\n</div>'

    assert extract_text(html, RELEASED_PATTERN) == "2024년 2월 8일"


def test_extract_text_whitespace_only_is_none():
    """A capture that is empty after cleaning counts as absent."""
    html = '<div class="search_released">   </div>'

    assert extract_text(html, RELEASED_PATTERN) is None


def test_extract_text_tags_only_is_none():
    html = '<div class="search_released"><span></span></div>'

    assert extract_text(html, RELEASED_PATTERN) is None


def test_extract_text_no_match():
    assert extract_text("<div>hello</div>", re.compile(r"notfound(.*)")) is None


def test_parse_price():
    """Test parsing won prices into minor units."""
    assert parse_price("₩ 64,800") == 6480000
    assert parse_price("₩ 8,400") == 840000
    assert parse_price("₩ 33,600") == 3360000


def test_parse_price_missing():
    assert parse_price(None) is None
    assert parse_price("") is None


def test_parse_price_without_digits():
    assert parse_price("무료") is None
