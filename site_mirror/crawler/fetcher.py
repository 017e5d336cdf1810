# site_mirror/crawler/fetcher.py
"""
Fetcher module: a single HTTP GET with browser-like headers, timeout,
limited redirects, a payload size cap and a fixed-delay retry loop.
"""
from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Dict

from aiohttp import ClientError, ClientSession, ClientTimeout, InvalidURL, TCPConnector

from site_mirror.config import MirrorConfig
from site_mirror.crawler.models import FetchFailure, FetchOutcome
from site_mirror.logger import logger

BASE_HEADERS: Dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

_CHUNK_SIZE = 64 * 1024

SleepFn = Callable[[float], Awaitable[None]]


def build_session(config: MirrorConfig) -> ClientSession:
    """Create the aiohttp session shared by all fetches of one run."""
    if config.verify_tls:
        connector = TCPConnector()
    else:
        logger.warning("TLS certificate verification is disabled")
        connector = TCPConnector(ssl=False)
    return ClientSession(
        timeout=ClientTimeout(total=config.timeout),
        headers=BASE_HEADERS,
        connector=connector,
        raise_for_status=False,
    )


class FetchClient:
    """Handles HTTP fetching with retries, fixed backoff and a size limit."""

    def __init__(
        self,
        session: ClientSession,
        config: MirrorConfig,
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.session = session
        self.config = config
        self._sleep = sleep

    def _user_agent(self) -> str:
        return random.choice(self.config.user_agents)

    async def fetch(self, url: str) -> FetchOutcome:
        """
        GET *url*, retrying transport errors and non-2xx answers other than 403/404.

        Never raises for network problems: the result is always a FetchOutcome.
        """
        attempts = 0
        last_error = ""
        while attempts < self.config.max_retries:
            if attempts:
                await self._sleep(self.config.retry_delay)
            attempts += 1
            try:
                async with self.session.get(
                    url,
                    headers={"User-Agent": self._user_agent()},
                    allow_redirects=True,
                    max_redirects=self.config.max_redirects,
                ) as resp:
                    status = resp.status
                    if status == 404:
                        return FetchOutcome.failed(url, FetchFailure.NOT_FOUND, status=status, attempts=attempts)
                    if status == 403:
                        return FetchOutcome.failed(url, FetchFailure.FORBIDDEN, status=status, attempts=attempts)
                    if not 200 <= status < 300:
                        last_error = f"HTTP {status}"
                        logger.debug("Attempt %d/%d for %s: %s", attempts, self.config.max_retries, url, last_error)
                        continue

                    limit = self.config.max_file_size
                    if resp.content_length is not None and resp.content_length > limit:
                        return self._too_large(url, status, attempts, resp.content_length)
                    body = bytearray()
                    async for chunk in resp.content.iter_chunked(_CHUNK_SIZE):
                        body.extend(chunk)
                        if len(body) > limit:
                            return self._too_large(url, status, attempts, len(body))

                    ctype = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                    return FetchOutcome.success(
                        url, bytes(body), status=status, content_type=ctype, attempts=attempts
                    )
            except InvalidURL as exc:
                return FetchOutcome.failed(
                    url, FetchFailure.TRANSPORT_ERROR, attempts=attempts, detail=f"invalid URL: {exc}"
                )
            except (ClientError, asyncio.TimeoutError) as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                logger.debug("Attempt %d/%d for %s: %s", attempts, self.config.max_retries, url, last_error)

        return FetchOutcome.failed(url, FetchFailure.RETRIES_EXHAUSTED, attempts=attempts, detail=last_error)

    def _too_large(self, url: str, status: int, attempts: int, size: int) -> FetchOutcome:
        detail = f"payload of {size} bytes exceeds max_file_size={self.config.max_file_size}"
        return FetchOutcome.failed(url, FetchFailure.TOO_LARGE, status=status, attempts=attempts, detail=detail)


__all__ = ["FetchClient", "build_session", "BASE_HEADERS"]
