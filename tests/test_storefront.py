from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from game_catalog.config import STEAM_SEARCH_ENDPOINT
from game_catalog.errors import RequestFailed
from game_catalog.storefront import build_search_params, search


@pytest.fixture
def sample_search_html():
    fixture_path = Path(__file__).parent / "fixtures" / "steam_search_sample.html"
    return fixture_path.read_text(encoding="utf-8")


def test_build_search_params_defaults():
    params = build_search_params()

    assert params == {
        "query": "",
        "category1": "998",
        "l": "koreana",
        "cc": "KR",
        "count": "50",
        "start": "0",
        "force_infinite": "1",
        "snr": "1_7_7_230_150_1",
    }


def test_build_search_params_with_tags_and_paging():
    params = build_search_params(tags="19,492", count=25, start=100)

    assert params["tags"] == "19,492"
    assert params["count"] == "25"
    assert params["start"] == "100"


def test_build_search_params_empty_tags_omitted():
    assert "tags" not in build_search_params(tags="")


def test_search_parses_listings_and_total(sample_search_html):
    """Test a full search round with the sample page."""
    with patch("game_catalog.storefront.fetch", return_value=sample_search_html) as mock_fetch:
        result = search(tags="19")

        assert result["total_count"] == 65499
        assert [game["appid"] for game in result["listings"]] == [553850, 730]
        assert mock_fetch.call_args[0][0] == STEAM_SEARCH_ENDPOINT
        assert mock_fetch.call_args[1]["params"]["tags"] == "19"


def test_search_empty_page():
    with patch("game_catalog.storefront.fetch", return_value="<div>검색 결과가 없습니다</div>"):
        result = search()

        assert result == {"listings": [], "total_count": 0}


def test_search_non_success_status():
    """Test that a store error status surfaces as RequestFailed."""
    with patch("game_catalog.http_client.httpx.get") as mock_get:
        mock_response = MagicMock()
        mock_response.status_code = 503
        mock_get.return_value = mock_response

        with pytest.raises(RequestFailed) as exc_info:
            search()

        assert exc_info.value.status == 503
