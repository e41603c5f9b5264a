"""HTTP client for downloading calendar feeds."""

import logging
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from calnote.core.config_manager import get_config_value
from calnote.core.exceptions import ICSFetchError

from .ics_parser import ICSParser
from .models import CalendarComponent, ICSFetchResponse

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "calnote/0.1",
    "Accept": "text/calendar, text/plain;q=0.9, */*;q=0.1",
}


class ICSFetcher:
    """Async HTTP client for calendar feeds.

    Every fetch returns an :class:`ICSFetchResponse`; transport problems are
    reported in the response rather than raised. ``fetch_calendar`` is the
    raising variant used by the cache.
    """

    def __init__(
        self,
        settings: Any = None,
        client: Optional[httpx.AsyncClient] = None,
        parser: Optional[ICSParser] = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            settings: Object or dict with ``request_timeout`` and ``default_timezone``
            client: Optional pre-built client (tests pass one with a MockTransport)
            parser: Optional parser used by ``fetch_calendar``
        """
        self.settings = settings
        self.request_timeout = get_config_value(settings, "request_timeout", 30)
        self.client = client
        self._owns_client = client is None
        self.parser = parser or ICSParser(get_config_value(settings, "default_timezone", "UTC"))

    async def __aenter__(self) -> "ICSFetcher":
        self._ensure_client()
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.aclose()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None or self.client.is_closed:
            timeout = httpx.Timeout(connect=10.0, read=self.request_timeout, write=10.0, pool=30.0)
            self.client = httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                headers=DEFAULT_HEADERS,
            )
            self._owns_client = True
        return self.client

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self.client is not None and self._owns_client and not self.client.is_closed:
            await self.client.aclose()
            logger.debug("Closed HTTP client")
        if self._owns_client:
            self.client = None

    @staticmethod
    def validate_url(url: str) -> bool:
        """Only http(s) URLs with a hostname are fetched."""
        try:
            parsed = urlparse(url or "")
            hostname = parsed.hostname
        except ValueError:
            # e.g. an unterminated IPv6 literal
            logger.debug("Blocked unparsable URL: %r", url)
            return False
        if parsed.scheme not in ("http", "https"):
            logger.debug("Blocked non-HTTP(S) URL: %r", url)
            return False
        if not hostname:
            logger.debug("Blocked URL with missing hostname: %r", url)
            return False
        return True

    async def fetch_text(self, url: str) -> ICSFetchResponse:
        """GET ``url`` and return its body.

        Any status outside 2xx is a failure, as is an empty body.

        Returns:
            ICSFetchResponse with ``success`` and either ``content`` or ``error_message``
        """
        if not self.validate_url(url):
            return ICSFetchResponse(
                success=False, url=url, error_message=f"Invalid calendar URL: {url!r}"
            )

        client = self._ensure_client()
        logger.debug("Fetching calendar from %s", url)

        try:
            response = await client.get(url)
        except httpx.TimeoutException:
            logger.warning("Timeout fetching calendar from %s", url)
            return ICSFetchResponse(
                success=False,
                url=url,
                error_message=f"Request timeout after {self.request_timeout}s",
            )
        except httpx.HTTPError as e:
            logger.warning("Network error fetching calendar from %s: %s", url, e)
            return ICSFetchResponse(success=False, url=url, error_message=f"Network error: {e}")
        except httpx.InvalidURL as e:
            logger.warning("Rejected calendar URL %r: %s", url, e)
            return ICSFetchResponse(
                success=False, url=url, error_message=f"Invalid calendar URL: {e}"
            )

        return self._create_response(url, response)

    def _create_response(self, url: str, response: httpx.Response) -> ICSFetchResponse:
        if not 200 <= response.status_code < 300:
            logger.warning("Received status code %d from %s", response.status_code, url)
            return ICSFetchResponse(
                success=False,
                url=url,
                status_code=response.status_code,
                error_message=f"Received status code {response.status_code}",
            )

        content = response.text
        if not content or not content.strip():
            logger.error("Empty calendar content received from %s", url)
            return ICSFetchResponse(
                success=False,
                url=url,
                status_code=response.status_code,
                error_message="Empty content received",
            )

        content_type = response.headers.get("content-type", "").lower()
        if content_type and not any(ct in content_type for ct in ("text/calendar", "text/plain")):
            logger.warning("Unexpected content type: %s", content_type)

        logger.debug("Fetched calendar content (%d bytes)", len(content))
        return ICSFetchResponse(
            success=True, url=url, content=content, status_code=response.status_code
        )

    async def fetch_calendar(self, url: str) -> dict[str, CalendarComponent]:
        """Fetch and decode a feed.

        Raises:
            ICSFetchError: If the feed could not be retrieved
            ICSDecodeError: If the body is not an iCalendar document
        """
        response = await self.fetch_text(url)
        if not response.success or response.content is None:
            raise ICSFetchError(
                response.error_message or "Calendar fetch failed", response.status_code
            )
        return self.parser.parse(response.content)

