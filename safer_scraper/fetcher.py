"""
Resilient page fetching: one attempt bounded by a deadline and an optional
cancellation token, and a retry loop with exponential backoff on top of it.

Both return a FetchResult instead of raising, so callers branch on
``result.ok`` rather than on exceptions.
"""
import asyncio
import enum
import logging
from collections import namedtuple
from dataclasses import dataclass, replace

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from safer_scraper.config import USER_AGENT

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 20

PageResponse = namedtuple('PageResponse', ['status', 'url', 'text'])


class FetchStatus(enum.Enum):
    OK = "ok"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    TRANSPORT_ERROR = "transport_error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FetchResult:
    status: FetchStatus
    url: str
    body: str = ''
    error: str = ''
    attempts: int = 1

    @property
    def ok(self):
        return self.status is FetchStatus.OK


class PlaywrightTransport:
    """
    Plain HTTP GETs through a Playwright APIRequestContext (no browser is launched).
    Use as an async context manager; ``get`` returns a PageResponse.
    """

    def __init__(self, user_agent=USER_AGENT, max_redirects=MAX_REDIRECTS):
        self.user_agent = user_agent
        self.max_redirects = max_redirects
        self._playwright = None
        self._request = None

    async def __aenter__(self):
        self._playwright = await async_playwright().start()
        self._request = await self._playwright.request.new_context(
            extra_http_headers={"User-Agent": self.user_agent},
        )
        return self

    async def __aexit__(self, *exc_info):
        try:
            if self._request is not None:
                await self._request.dispose()
        finally:
            self._request = None
            await self._playwright.stop()

    async def get(self, url, timeout):
        if self._request is None:
            raise RuntimeError("PlaywrightTransport used outside of 'async with'")
        response = await self._request.get(
            url,
            timeout=timeout * 1000,
            max_redirects=self.max_redirects,
            fail_on_status_code=False,
        )
        try:
            text = await response.text()
            return PageResponse(response.status, response.url, text)
        finally:
            await response.dispose()


async def fetch_once(transport, url, timeout, cancel=None):
    # Race the request against the deadline and the cancel token; the loser is cancelled.
    request = asyncio.ensure_future(transport.get(url, timeout))
    waiters = {request}
    stopper = None
    if cancel is not None:
        stopper = asyncio.ensure_future(cancel.wait())
        waiters.add(stopper)
    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        request.cancel()
        raise
    finally:
        if stopper is not None and not stopper.done():
            stopper.cancel()
    if request not in done:
        request.cancel()
        await asyncio.gather(request, return_exceptions=True)
        if stopper is not None and stopper in done:
            return FetchResult(FetchStatus.CANCELLED, url, error="request cancelled")
        return FetchResult(FetchStatus.TIMEOUT, url, error=f"timed out after {timeout:g}s")
    try:
        response = request.result()
    except (asyncio.TimeoutError, PlaywrightTimeoutError) as e:
        return FetchResult(FetchStatus.TIMEOUT, url, error=str(e) or f"timed out after {timeout:g}s")
    except Exception as e:
        return FetchResult(FetchStatus.TRANSPORT_ERROR, url, error=f"{type(e).__name__}: {e}")
    if not 200 <= response.status < 300:
        return FetchResult(FetchStatus.HTTP_ERROR, url, error=f"HTTP {response.status}")
    return FetchResult(FetchStatus.OK, url, body=response.text)


async def fetch_with_retry(transport, url, timeout, max_attempts, backoff_base,
                           label='fetch', sleep=asyncio.sleep, cancel=None):
    """
    Fetches url, retrying failures up to max_attempts times.
    Waits backoff_base * 2**i seconds after failed attempt i (0-based), except after the last one.
    """
    result = None
    for attempt in range(max_attempts):
        result = await fetch_once(transport, url, timeout, cancel=cancel)
        if result.ok:
            return replace(result, attempts=attempt + 1)
        if result.status is FetchStatus.CANCELLED:
            logger.info("[%s] cancelled on attempt %d/%d: %s", label, attempt + 1, max_attempts, url)
            return replace(result, attempts=attempt + 1)
        if attempt + 1 < max_attempts:
            backoff = backoff_base * (2 ** attempt)
            logger.warning("[%s] attempt %d/%d failed -> %s. Backoff %.1fs",
                           label, attempt + 1, max_attempts, result.error, backoff)
            await sleep(backoff)
        else:
            logger.warning("[%s] attempt %d/%d failed -> %s. Giving up.",
                           label, attempt + 1, max_attempts, result.error)
    return replace(result, attempts=max_attempts)
