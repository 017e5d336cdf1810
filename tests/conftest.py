# File: tests/conftest.py
from __future__ import annotations

import io
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Dict, List, Tuple, Union

import pytest
import pytest_asyncio
from aiohttp import web
from site_mirror.config import MirrorConfig
from site_mirror.crawler.models import FetchFailure, FetchOutcome
from site_mirror.events import EventEmitter

BASE_URL = "http://x.com"


class FakeFetcher:
    """In-memory stand-in for FetchClient: canonical URL → payload or failure."""

    def __init__(self, responses: Dict[str, Union[bytes, Tuple[bytes, str], FetchFailure]]) -> None:
        self.responses = responses
        self.calls: List[str] = []

    async def fetch(self, url: str) -> FetchOutcome:
        self.calls.append(url)
        entry = self.responses.get(url, FetchFailure.NOT_FOUND)
        if isinstance(entry, FetchFailure):
            return FetchOutcome.failed(url, entry, attempts=1)
        if isinstance(entry, tuple):
            body, ctype = entry
        else:
            body, ctype = entry, "text/html"
        return FetchOutcome.success(url, body, content_type=ctype)


@pytest.fixture()
def mirror_config(tmp_path) -> MirrorConfig:
    """
    Return a MirrorConfig rooted at http://x.com writing into a temp dir.
    """
    return MirrorConfig(
        base_url=BASE_URL,
        output_dir=tmp_path / "site",
        retry_delay=0.0,
        timeout=5.0,
    )


@pytest.fixture()
def emitter() -> EventEmitter:
    """EventEmitter writing into an in-memory buffer."""
    return EventEmitter(io.StringIO())


@pytest_asyncio.fixture
async def serve(unused_tcp_port_factory) -> AsyncIterator[Callable[[web.Application], Awaitable[str]]]:
    """Start aiohttp apps on free ports; returns their base URLs, cleans up afterwards."""
    runners: List[web.AppRunner] = []

    async def _serve(app: web.Application) -> str:
        runner = web.AppRunner(app)
        await runner.setup()
        port = unused_tcp_port_factory()
        site = web.TCPSite(runner, "127.0.0.1", port)
        await site.start()
        runners.append(runner)
        return f"http://127.0.0.1:{port}"

    try:
        yield _serve
    finally:
        for runner in runners:
            await runner.cleanup()
