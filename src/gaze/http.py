"""Outbound HTTP for widget fetchers.

Every request goes through :class:`HttpClient` so that fetchers share one
connection pool, one set of browser-like headers and one retry policy:

* 4xx responses are returned after a single attempt (retrying won't fix them)
* 5xx responses and request errors are retried with exponential backoff
  (tenacity drives the attempts; the delays come from :class:`RetryPolicy`)
* when attempts run out the last error is raised to the caller
"""
from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import feedparser
import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .errors import ClientError, FeedParseError, FetchError, ServerError

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json, text/html, application/xhtml+xml, application/xml;q=0.9, */*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
}


class Outcome(enum.Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_delay: float = 1.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the 0-based ``attempt`` failed."""
        return self.initial_delay * self.multiplier ** attempt

    def wait(self) -> wait_exponential:
        return wait_exponential(multiplier=self.initial_delay, exp_base=self.multiplier)

    def classify(self, status: int) -> Outcome:
        if 400 <= status < 500:
            return Outcome.TERMINAL
        if status >= 500:
            return Outcome.RETRYABLE
        return Outcome.SUCCESS


HTTP_POLICY = RetryPolicy(max_attempts=3, initial_delay=1.0)
FEED_POLICY = RetryPolicy(max_attempts=6, initial_delay=1.0)

Sleep = Callable[[float], Awaitable[Any]]


def cache_busted(url: str, now_ms: int) -> str:
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}_t={now_ms}"


def _status_message(resp: httpx.Response) -> str:
    return f"HTTP {resp.status_code}: {resp.reason_phrase}"


def _log_retry(what: str, url: str, max_attempts: int):
    def before_sleep(state: RetryCallState) -> None:
        logger.warning(
            "%s %s failed (attempt %d/%d): %s. Retrying in %.1fs",
            what, url, state.attempt_number, max_attempts,
            state.outcome.exception(), state.next_action.sleep,
        )
    return before_sleep


class HttpClient:
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        policy: RetryPolicy = HTTP_POLICY,
        feed_policy: RetryPolicy = FEED_POLICY,
        sleep: Sleep = asyncio.sleep,
        timeout: float = 15.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers=DEFAULT_HEADERS,
        )
        self.policy = policy
        self.feed_policy = feed_policy
        self._sleep = sleep

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _retrying(self, policy: RetryPolicy, retry_on: tuple[type[BaseException], ...], before_sleep) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=policy.wait(),
            retry=retry_if_exception_type(retry_on),
            sleep=self._sleep,
            before_sleep=before_sleep,
            reraise=True,
        )

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        merged = {**DEFAULT_HEADERS, **(headers or {})}
        policy = self.policy
        retrying = self._retrying(
            policy, (ServerError, httpx.RequestError), _log_retry("Request to", url, policy.max_attempts),
        )

        async for attempt in retrying:
            with attempt:
                resp = await self._client.get(url, headers=merged, params=params)
                if policy.classify(resp.status_code) is Outcome.RETRYABLE:
                    raise ServerError(_status_message(resp), url=url, status=resp.status_code)
                return resp

        raise AssertionError("unreachable")

    async def fetch_json(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        resp = await self.fetch(url, headers=headers, params=params)
        if not resp.is_success:
            raise ClientError(_status_message(resp), url=url, status=resp.status_code)
        return resp.json()

    async def fetch_feed(
        self,
        url: str,
        headers: dict[str, str] | None = None,
    ) -> feedparser.FeedParserDict:
        """Fetch and parse an RSS/Atom feed.

        Unlike :meth:`fetch`, any failure is retried, including 4xx and
        unparseable documents. Attempts after the first carry a ``_t``
        timestamp parameter so caches in between can't serve the same stale
        body again.
        """
        merged = {**DEFAULT_HEADERS, **(headers or {})}
        policy = self.feed_policy
        retrying = self._retrying(
            policy, (FetchError, httpx.RequestError), _log_retry("Feed fetch for", url, policy.max_attempts),
        )

        async for attempt in retrying:
            with attempt:
                first = attempt.retry_state.attempt_number == 1
                target = url if first else cache_busted(url, int(time.time() * 1000))
                resp = await self._client.get(target, headers=merged)
                if not resp.is_success:
                    raise FetchError(_status_message(resp), url=url, status=resp.status_code)
                feed = feedparser.parse(resp.content)
                if not feed.entries and (feed.bozo or not feed.version):
                    raise FeedParseError(f"Unparseable feed: {feed.get('bozo_exception')}", url=url)
                return feed

        raise AssertionError("unreachable")
