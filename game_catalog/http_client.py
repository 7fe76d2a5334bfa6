import time
from typing import Callable, Mapping

import httpx

from .config import REQUEST_TIMEOUT_SECONDS
from .errors import RequestFailed

# The storefront has no public API and rejects non-browser clients
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


class RateLimiter:
    """
    Enforce a fixed minimum delay between consecutive calls.

    Example:
        limiter = RateLimiter(0.26)
        limiter.wait()  # returns immediately the first time
        limiter.wait()  # sleeps until 0.26s have passed since the previous call
    """

    def __init__(
        self,
        min_delay_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_delay_seconds = min_delay_seconds
        self._clock = clock
        self._sleep = sleep
        self._last_request_time: float | None = None

    def wait(self) -> None:
        if self._last_request_time is not None:
            elapsed = self._clock() - self._last_request_time
            if elapsed < self.min_delay_seconds:
                self._sleep(self.min_delay_seconds - elapsed)
        self._last_request_time = self._clock()


def fetch(
    url: str,
    params: Mapping[str, str] | None = None,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> str:
    """
    Fetch an HTML document with a browser-like user agent. Single attempt.

    Args:
        url: The URL to fetch
        params: Query string parameters
        timeout: Request timeout in seconds

    Returns:
        Raw HTML string

    Raises:
        RequestFailed: If the response status is not 2xx
        httpx.HTTPError: On transport failures (connection, timeout)
    """
    headers = {"User-Agent": BROWSER_USER_AGENT}

    response = httpx.get(
        url,
        params=params,
        headers=headers,
        timeout=timeout,
        follow_redirects=True,
    )

    if not 200 <= response.status_code < 300:
        raise RequestFailed(response.status_code)

    return response.text
