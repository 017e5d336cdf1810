# File: tests/test_crawler.py
# Test-suite for the Mirror orchestrator
from __future__ import annotations

import io
import json

import pytest
from aiohttp import web
from bs4.builder import ParserRejectedMarkup
from site_mirror.config import MirrorConfig
from site_mirror.crawler import crawler as crawler_module
from site_mirror.crawler.crawler import Mirror
from site_mirror.crawler.models import FetchFailure
from site_mirror.crawler.state import CrawlState
from site_mirror.events import EventEmitter

from conftest import FakeFetcher

ROOT = "http://x.com/"

ROOT_PAGE = b"""
<html><head><script src="/js/app.js"></script></head>
<body>
  <img src="/images/logo.png">
  <link href="/data/table.csv">
  <a href="/about">About</a>
  <a href="http://other.com/p">Elsewhere</a>
</body></html>
"""


async def run_mirror(config, responses, **kw):
    fetcher = FakeFetcher(responses)
    mirror = Mirror(config, fetcher=fetcher, **kw)
    async with mirror:
        summary = await mirror.start()
    return mirror, fetcher, summary


# --------------------------------------------------------------------------- #
#                                   Tests                                     #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_end_to_end_counts(mirror_config, emitter):
    page = b"""<a href="/about">About</a><a href="http://other.com/p">Other</a>
    <img src="/images/logo.png"><script src="/app.min.txt"></script>"""
    responses = {
        ROOT: page,
        "http://x.com/about": b"<p>About</p>",
        "http://x.com/images/logo.png": (b"PNG", "image/png"),
    }
    mirror, fetcher, summary = await run_mirror(mirror_config, responses, emitter=emitter)

    assert summary.processed_urls == 2
    assert summary.processed_files == 1
    assert summary.failed_resources == 0
    assert summary.errors == []
    assert (mirror_config.output_dir / "images" / "logo.png").read_bytes() == b"PNG"
    assert "http://other.com/p" not in fetcher.calls
    assert "http://x.com/app.min.txt" not in fetcher.calls


@pytest.mark.asyncio()
async def test_extension_filter(mirror_config):
    page = b'<script src="app.js"></script><script src="app.min.txt"></script>'
    responses = {
        ROOT: page,
        "http://x.com/app.js": (b"run()", "application/javascript"),
        "http://x.com/app.min.txt": (b"text", "text/plain"),
    }
    mirror, fetcher, summary = await run_mirror(mirror_config, responses)

    assert (mirror_config.output_dir / "app.js").read_bytes() == b"run()"
    assert not (mirror_config.output_dir / "app.min.txt").exists()
    assert fetcher.calls == [ROOT, "http://x.com/app.js"]


@pytest.mark.asyncio()
async def test_cross_host_links_never_fetched(mirror_config):
    responses = {ROOT: b'<a href="http://other.com/p">x</a><a href="https://x.com.evil/p">y</a>'}
    _, fetcher, summary = await run_mirror(mirror_config, responses)

    assert fetcher.calls == [ROOT]
    assert summary.processed_urls == 1


@pytest.mark.asyncio()
async def test_process_page_is_idempotent(mirror_config):
    responses = {ROOT: b'<a href="/">self</a><a href="http://x.com">self again</a>'}
    fetcher = FakeFetcher(responses)
    async with Mirror(mirror_config, fetcher=fetcher) as mirror:
        await mirror.process_page(ROOT)
        await mirror.process_page(ROOT)
        await mirror.process_page("/")

    assert fetcher.calls == [ROOT]
    assert mirror.state.visited_pages == {ROOT}


@pytest.mark.asyncio()
async def test_depth_first_order(mirror_config):
    responses = {
        ROOT: b'<a href="/a">a</a><a href="/b">b</a>',
        "http://x.com/a": b'<a href="/c">c</a><a href="/b">b</a>',
        "http://x.com/b": b"<p>b</p>",
        "http://x.com/c": b'<a href="/a">back</a>',
    }
    _, fetcher, summary = await run_mirror(mirror_config, responses)

    assert fetcher.calls == [ROOT, "http://x.com/a", "http://x.com/c", "http://x.com/b"]
    assert summary.processed_urls == 4


@pytest.mark.asyncio()
async def test_deep_chain_does_not_exhaust_stack(mirror_config):
    depth = 3000
    responses = {ROOT: b'<a href="/p1">1</a>'}
    for i in range(1, depth):
        responses[f"http://x.com/p{i}"] = f'<a href="/p{i + 1}">next</a>'.encode()
    responses[f"http://x.com/p{depth}"] = b"<p>end</p>"

    _, _, summary = await run_mirror(mirror_config, responses)

    assert summary.processed_urls == depth + 1


@pytest.mark.asyncio()
async def test_shared_resource_fetched_once(mirror_config, emitter):
    responses = {
        ROOT: b'<link href="/css/site.css"><a href="/about">a</a>',
        "http://x.com/about": b'<link href="/css/site.css"><link href="http://x.com/css/site.css#x">',
        "http://x.com/css/site.css": (b"body{}", "text/css"),
    }
    _, fetcher, summary = await run_mirror(mirror_config, responses, emitter=emitter)

    assert fetcher.calls.count("http://x.com/css/site.css") == 1
    assert summary.processed_files == 1
    assert [e["type"] for e in emitter.history] == ["start", "progress", "complete"]


@pytest.mark.asyncio()
async def test_failed_resource_is_not_retried_later(mirror_config):
    responses = {
        ROOT: b'<img src="/missing.png"><a href="/about">a</a>',
        "http://x.com/about": b'<img src="/missing.png">',
        "http://x.com/missing.png": FetchFailure.NOT_FOUND,
    }
    mirror, fetcher, summary = await run_mirror(mirror_config, responses)

    assert fetcher.calls.count("http://x.com/missing.png") == 1
    assert summary.failed_resources == 1
    assert summary.processed_files == 0
    assert "http://x.com/missing.png" in mirror.state.failed_resources


@pytest.mark.asyncio()
async def test_failed_page_subtree_not_explored(mirror_config):
    responses = {
        ROOT: b'<a href="/broken">x</a>',
        "http://x.com/broken": FetchFailure.RETRIES_EXHAUSTED,
    }
    _, fetcher, summary = await run_mirror(mirror_config, responses)

    assert fetcher.calls == [ROOT, "http://x.com/broken"]
    assert summary.processed_urls == 2
    assert summary.failed_resources == 1


@pytest.mark.asyncio()
async def test_non_html_page_is_not_parsed(mirror_config):
    responses = {
        ROOT: b'<a href="/doc.pdf">pdf</a>',
        "http://x.com/doc.pdf": (b'<a href="/hidden">not really html</a>', "application/pdf"),
    }
    _, fetcher, _ = await run_mirror(mirror_config, responses)

    assert "http://x.com/hidden" not in fetcher.calls


@pytest.mark.asyncio()
async def test_parse_failure_degrades_to_empty_extraction(mirror_config, monkeypatch):
    def broken(_content):
        raise ParserRejectedMarkup("unparseable")

    monkeypatch.setattr(crawler_module, "parse_document", broken)
    _, fetcher, summary = await run_mirror(mirror_config, {ROOT: b"<a href='/a'>a</a>"})

    assert fetcher.calls == [ROOT]
    assert summary.parse_failures == 1
    assert summary.errors == []


@pytest.mark.asyncio()
async def test_storage_error_is_recorded_and_run_continues(mirror_config):
    responses = {
        ROOT: b'<img src="/../../escape.png"><img src="/ok.png">',
        "http://x.com/../../escape.png": (b"bad", "image/png"),
        "http://x.com/ok.png": (b"good", "image/png"),
    }
    mirror, _, summary = await run_mirror(mirror_config, responses)

    assert summary.processed_files == 1
    assert summary.failed_resources == 1
    assert len(summary.errors) == 1
    assert "escapes output directory" in summary.errors[0]
    assert (mirror_config.output_dir / "ok.png").read_bytes() == b"good"


@pytest.mark.asyncio()
async def test_unrepresentable_path_does_not_abort_run(mirror_config):
    buffer = io.StringIO()
    responses = {
        ROOT: b'<img src="/bad%00.png"><img src="/ok.png">',
        "http://x.com/bad%00.png": (b"bad", "image/png"),
        "http://x.com/ok.png": (b"good", "image/png"),
    }
    _, _, summary = await run_mirror(mirror_config, responses, emitter=EventEmitter(buffer))

    assert summary.processed_files == 1
    assert summary.failed_resources == 1
    assert len(summary.errors) == 1
    assert "NUL" in summary.errors[0]
    assert (mirror_config.output_dir / "ok.png").read_bytes() == b"good"
    events = [json.loads(line) for line in buffer.getvalue().splitlines()]
    assert events[-1]["type"] == "complete"


@pytest.mark.asyncio()
async def test_too_large_resource_records_error(mirror_config):
    responses = {
        ROOT: b'<img src="/huge.png">',
        "http://x.com/huge.png": FetchFailure.TOO_LARGE,
    }
    _, _, summary = await run_mirror(mirror_config, responses)

    assert summary.failed_resources == 1
    assert summary.errors and "huge.png" in summary.errors[0]


@pytest.mark.asyncio()
async def test_invalid_link_recorded(mirror_config):
    responses = {ROOT: b'<a href="http://">empty host</a><a href="/fine">ok</a>', "http://x.com/fine": b""}
    _, fetcher, summary = await run_mirror(mirror_config, responses)

    assert "http://x.com/fine" in fetcher.calls
    assert len(summary.errors) == 1
    assert "Invalid URL" in summary.errors[0]


@pytest.mark.asyncio()
async def test_save_file_path_mapping(mirror_config):
    responses = {
        "http://x.com/images/logo.png": (b"PNG", "image/png"),
        ROOT: (b"<html></html>", "text/html"),
    }
    fetcher = FakeFetcher(responses)
    async with Mirror(mirror_config, fetcher=fetcher) as mirror:
        mirror.storage.prepare()
        logo = await mirror.save_file("http://x.com/images/logo.png")
        index = await mirror.save_file("http://x.com")

    assert logo == mirror_config.output_dir / "images" / "logo.png"
    assert index == mirror_config.output_dir / "index.html"
    assert index.read_bytes() == b"<html></html>"


@pytest.mark.asyncio()
async def test_events_stream(mirror_config):
    buffer = io.StringIO()
    responses = {
        ROOT: b'<img src="/a.png"><img src="/b.gif">',
        "http://x.com/a.png": (b"a", "image/png"),
        "http://x.com/b.gif": (b"b", "image/gif"),
    }
    _, _, summary = await run_mirror(mirror_config, responses, emitter=EventEmitter(buffer))

    events = [json.loads(line) for line in buffer.getvalue().splitlines()]
    assert events[0] == {"type": "start", "data": {"url": "http://x.com"}}
    assert [e["type"] for e in events[1:]] == ["progress", "progress", "complete"]
    assert events[1]["data"]["processed_files"] == 1
    assert events[2]["data"]["processed_files"] == 2
    assert events[-1]["data"] == summary.as_dict()


@pytest.mark.asyncio()
async def test_injected_state_is_used(mirror_config):
    state = CrawlState()
    state.try_mark_visited(ROOT)
    _, fetcher, summary = await run_mirror(mirror_config, {ROOT: b""}, state=state)

    assert fetcher.calls == []
    assert summary.processed_urls == 1


@pytest.mark.asyncio()
async def test_start_requires_context_manager(mirror_config):
    with pytest.raises(RuntimeError):
        await Mirror(mirror_config).start()


@pytest.mark.asyncio()
async def test_mirror_against_live_server(serve, tmp_path):
    app = web.Application()

    async def root(_):
        return web.Response(body=ROOT_PAGE, content_type="text/html")

    async def about(_):
        return web.Response(text='<img src="/images/logo.png"><a href="/">home</a>', content_type="text/html")

    async def logo(_):
        return web.Response(body=b"\x89PNG", content_type="image/png")

    async def app_js(_):
        return web.Response(text="console.log(1)", content_type="application/javascript")

    app.router.add_get("/", root)
    app.router.add_get("/about", about)
    app.router.add_get("/images/logo.png", logo)
    app.router.add_get("/js/app.js", app_js)
    base = await serve(app)

    config = MirrorConfig(base_url=base, output_dir=tmp_path / "site", retry_delay=0.0, timeout=5.0)
    buffer = io.StringIO()
    async with Mirror(config, emitter=EventEmitter(buffer)) as mirror:
        summary = await mirror.start()

    assert summary.processed_urls == 2
    assert summary.processed_files == 2
    assert summary.failed_resources == 0
    assert (tmp_path / "site" / "images" / "logo.png").read_bytes() == b"\x89PNG"
    assert (tmp_path / "site" / "js" / "app.js").read_text() == "console.log(1)"
    assert not (tmp_path / "site" / "data").exists()
