from unittest.mock import MagicMock, patch

import httpx
import pytest

from game_catalog.errors import RequestFailed
from game_catalog.http_client import BROWSER_USER_AGENT, RateLimiter, fetch


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


def test_rate_limiter_first_call_does_not_sleep():
    clock = FakeClock()
    sleep = MagicMock()
    limiter = RateLimiter(0.26, clock=clock, sleep=sleep)

    limiter.wait()

    sleep.assert_not_called()


def test_rate_limiter_enforces_min_delay():
    """Test that back-to-back calls sleep for the remaining delay."""
    clock = FakeClock()
    sleeps = []

    def sleep(seconds):
        sleeps.append(seconds)
        clock.sleep(seconds)

    limiter = RateLimiter(0.26, clock=clock, sleep=sleep)

    limiter.wait()
    clock.now += 0.1
    limiter.wait()

    assert sleeps == [pytest.approx(0.16)]


def test_rate_limiter_no_sleep_after_delay_elapsed():
    clock = FakeClock()
    sleep = MagicMock()
    limiter = RateLimiter(0.26, clock=clock, sleep=sleep)

    limiter.wait()
    clock.now += 1.0
    limiter.wait()

    sleep.assert_not_called()


def test_fetch_success():
    """Test successful fetch."""
    with patch("game_catalog.http_client.httpx.get") as mock_get:
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.text = "<html>test</html>"
        mock_get.return_value = mock_response

        result = fetch("https://example.com", params={"start": "0"})

        assert result == "<html>test</html>"
        mock_get.assert_called_once()
        assert mock_get.call_args[1]["headers"]["User-Agent"] == BROWSER_USER_AGENT
        assert mock_get.call_args[1]["params"] == {"start": "0"}
        assert mock_get.call_args[1]["follow_redirects"] is True


def test_fetch_non_success_raises():
    """Test that a non-2xx status raises without retrying."""
    with patch("game_catalog.http_client.httpx.get") as mock_get:
        mock_response = MagicMock()
        mock_response.status_code = 500
        mock_get.return_value = mock_response

        with pytest.raises(RequestFailed) as exc_info:
            fetch("https://example.com")

        assert exc_info.value.status == 500
        assert str(exc_info.value) == "Steam search request failed: 500"
        assert mock_get.call_count == 1


def test_fetch_transport_error_propagates():
    with patch("game_catalog.http_client.httpx.get") as mock_get:
        mock_get.side_effect = httpx.ConnectError("Connection failed")

        with pytest.raises(httpx.ConnectError):
            fetch("https://example.com")
