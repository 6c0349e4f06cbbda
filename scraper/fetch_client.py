"""HTTP fetch client with rotated browser identity and polite delays."""
import logging
import random
import time
from typing import Any, Callable, Dict, Optional, Tuple

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:123.0) Gecko/20100101 Firefox/123.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
]

BROWSER_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7',
    'Connection': 'keep-alive',
    'Cache-Control': 'max-age=0',
    'Upgrade-Insecure-Requests': '1',
}


class FetchError(Exception):
    """A single page could not be fetched."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class FetchConnectionError(FetchError):
    """Connection refused, DNS failure or similar transport error."""


class FetchTimeoutError(FetchError):
    """Connect or read timeout elapsed."""


class HTTPStatusError(FetchError):
    """Server answered with a non-2xx status."""

    def __init__(self, url: str, status_code: int):
        super().__init__(url, f"HTTP {status_code}")
        self.status_code = status_code


class FetchClient:
    """
    Blocking HTTP client used by every source adapter.

    Each call picks a user agent from a fixed pool and sleeps a random
    1-3 seconds before the request. Retries are left to the caller.
    """

    def __init__(
        self,
        timeout: float = 10,
        delay_range: Tuple[float, float] = (1.0, 3.0),
        user_agents: Optional[list] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the fetch client.

        Args:
            timeout: Connect/read timeout in seconds (default: 10)
            delay_range: Min and max pre-request delay in seconds
            user_agents: Pool of user agent strings to rotate through
            rng: Random source for user agent and delay selection
            sleep: Blocking sleep function used for the delay
        """
        self.timeout = timeout
        self.delay_range = delay_range
        self.user_agents = user_agents or USER_AGENTS
        self.rng = rng or random.Random()
        self.sleep = sleep

    def build_headers(self) -> Dict[str, str]:
        """Browser-like headers with a freshly rotated user agent."""
        headers = dict(BROWSER_HEADERS)
        headers['User-Agent'] = self.rng.choice(self.user_agents)
        return headers

    def fetch(self, url: str, timeout: Optional[float] = None) -> BeautifulSoup:
        """
        Fetch an HTML page and return it parsed.

        Args:
            url: Absolute page URL
            timeout: Per-call override of the connect/read timeout

        Returns:
            Parsed BeautifulSoup document

        Raises:
            FetchError: One of its subclasses, depending on the failure
        """
        response = self._get(url, headers=self.build_headers(), timeout=timeout)
        return BeautifulSoup(response.text, 'html.parser')

    def fetch_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None
    ) -> Any:
        """
        Fetch a JSON API response.

        Raises:
            FetchError: On transport, status or decoding failure
        """
        headers = self.build_headers()
        headers['Accept'] = 'application/json'
        response = self._get(url, headers=headers, params=params, timeout=timeout)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(url, f"Invalid JSON: {e}") from e

    def _get(
        self,
        url: str,
        headers: Dict[str, str],
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None
    ) -> requests.Response:
        delay = self.rng.uniform(*self.delay_range)
        if delay > 0:
            self.sleep(delay)

        logger.debug(f"GET {url} (delay {delay:.2f}s)")
        try:
            response = requests.get(
                url,
                params=params,
                headers=headers,
                timeout=timeout or self.timeout
            )
            response.raise_for_status()
            return response
        except requests.Timeout as e:
            raise FetchTimeoutError(url, f"Timed out: {e}") from e
        except requests.ConnectionError as e:
            raise FetchConnectionError(url, f"Connection failed: {e}") from e
        except requests.HTTPError as e:
            raise HTTPStatusError(url, e.response.status_code) from e
        except requests.RequestException as e:
            raise FetchError(url, f"Request failed: {e}") from e
