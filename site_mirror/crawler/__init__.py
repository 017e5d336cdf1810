# site_mirror/crawler/__init__.py
"""Crawl engine: fetching, extraction, bookkeeping and the Mirror orchestrator."""
from site_mirror.crawler.crawler import Mirror
from site_mirror.crawler.fetcher import FetchClient
from site_mirror.crawler.models import FetchFailure, FetchOutcome, ProgressSnapshot, ResourceDescriptor
from site_mirror.crawler.state import CrawlState
from site_mirror.crawler.storage import SiteStorage

__all__ = [
    "Mirror",
    "FetchClient",
    "FetchFailure",
    "FetchOutcome",
    "ProgressSnapshot",
    "ResourceDescriptor",
    "CrawlState",
    "SiteStorage",
]
