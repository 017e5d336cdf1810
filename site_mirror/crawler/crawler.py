# === FILE: site_mirror/crawler/crawler.py ===
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional, Protocol

from aiohttp import ClientSession
from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from site_mirror.config import MirrorConfig
from site_mirror.crawler.fetcher import FetchClient, build_session
from site_mirror.crawler.link_extractor import extract_links, extract_resources, parse_document
from site_mirror.crawler.models import FetchFailure, FetchOutcome, ProgressSnapshot
from site_mirror.crawler.state import CrawlState
from site_mirror.crawler.storage import SiteStorage
from site_mirror.events import EventEmitter
from site_mirror.exceptions import InvalidUrlError, StorageError
from site_mirror.utils import is_same_host, normalize_url

__all__ = ("Mirror", "Fetcher")


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchOutcome: ...


class Mirror:
    """Зеркалирование сайта: обход страниц одного хоста в глубину и сохранение ресурсов.

    Pages are walked depth-first through an explicit stack; only one fetch is
    ever in flight. Resources (styles, scripts, images, fonts) are saved but
    never parsed; pages are parsed but not saved unless some page also
    references them as a resource.
    """

    def __init__(
        self,
        config: MirrorConfig,
        *,
        emitter: Optional[EventEmitter] = None,
        state: Optional[CrawlState] = None,
        fetcher: Optional[Fetcher] = None,
        storage: Optional[SiteStorage] = None,
    ) -> None:
        self.config = config
        self.base_url: str = normalize_url(str(config.base_url), str(config.base_url))
        self.emitter = emitter if emitter is not None else EventEmitter()
        self.state = state if state is not None else CrawlState()
        self.storage = storage if storage is not None else SiteStorage(config.output_dir)
        self.fetcher = fetcher
        self.session: Optional[ClientSession] = None
        self.logger = logging.getLogger("SiteMirror")

    async def __aenter__(self) -> Mirror:
        if self.fetcher is None:
            self.session = build_session(self.config)
            self.fetcher = FetchClient(self.session, self.config)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    async def start(self) -> ProgressSnapshot:
        """Mirror the site from the base URL and return the final snapshot."""
        if self.fetcher is None:
            raise RuntimeError("Mirror must be used as an async context manager")
        self.storage.prepare()
        self.logger.info("Starting website mirroring: %s", self.base_url)
        started = time.monotonic()
        self.emitter.start(str(self.config.base_url).rstrip("/"))

        await self.process_page(self.base_url)

        summary = self.state.snapshot()
        duration = time.monotonic() - started
        self.logger.info(
            "Mirroring completed in %.2f s: %d pages, %d files, %d failed, %d errors",
            duration,
            summary.processed_urls,
            summary.processed_files,
            summary.failed_resources,
            len(summary.errors),
        )
        self.emitter.complete(summary)
        return summary

    async def process_page(self, raw_url: str) -> None:
        """Visit *raw_url* and, transitively, every same-host page it links to."""
        pending: List[str] = [raw_url]
        while pending:
            links = await self._visit(pending.pop())
            # reversed so the first link on the page is explored first
            pending.extend(reversed(links))

    async def save_file(self, raw_url: str) -> Optional[Path]:
        """Fetch a resource and store it; returns the local path if it was written."""
        url = self._normalize(raw_url)
        if url is None or self.state.is_settled(url):
            return None

        outcome = await self.fetcher.fetch(url)
        if not outcome.ok:
            self._record_failure(outcome)
            return None

        try:
            path = self.storage.write(url, outcome.content or b"")
        except StorageError as exc:
            self.state.mark_failed(url)
            self.state.record_error(str(exc))
            self.logger.warning("Error: %s", exc)
            return None

        self.state.try_mark_saved(url)
        self.logger.info("Saved: %s", path)
        self.emitter.progress(self.state.snapshot())
        return path

    async def _visit(self, raw_url: str) -> List[str]:
        url = self._normalize(raw_url)
        if url is None or not self.state.try_mark_visited(url):
            return []
        self.logger.info("Processing page: %s", url)

        outcome = await self.fetcher.fetch(url)
        if not outcome.ok:
            self._record_failure(outcome)
            return []

        soup = self._parse(outcome)
        if soup is None:
            return []

        for resource in extract_resources(soup, self.config.allowed_extensions):
            await self.save_file(resource.raw_url)

        links: List[str] = []
        for href in extract_links(soup):
            link = self._normalize(href)
            if link is None:
                continue
            if is_same_host(link, self.base_url):
                links.append(link)
            else:
                self.logger.debug("Skipping cross-host link %s", link)
        return links

    def _normalize(self, raw_url: str) -> Optional[str]:
        try:
            return normalize_url(raw_url, self.base_url)
        except InvalidUrlError as exc:
            self.state.record_error(str(exc))
            self.logger.warning("Error: %s", exc)
            return None

    def _parse(self, outcome: FetchOutcome) -> Optional[BeautifulSoup]:
        if not outcome.is_html:
            self.logger.debug("Not parsing %s (%s)", outcome.url, outcome.content_type)
            return None
        try:
            return parse_document(outcome.content or b"")
        except (ParserRejectedMarkup, AssertionError, ValueError) as exc:
            self.state.record_parse_failure()
            self.logger.debug("Parse degraded for %s: %s", outcome.url, exc)
            return None

    def _record_failure(self, outcome: FetchOutcome) -> None:
        self.state.mark_failed(outcome.url)
        reason = outcome.failure.value if outcome.failure else "unknown"
        if outcome.detail:
            reason = f"{reason} ({outcome.detail})"
        self.logger.warning("Failed %s after %d attempt(s): %s", outcome.url, outcome.attempts, reason)
        if outcome.failure is FetchFailure.TOO_LARGE:
            self.state.record_error(f"Skipped {outcome.url}: {outcome.detail}")
