# site_mirror/crawler/state.py
"""
Per-run bookkeeping: which pages were visited, which files were saved or failed.
"""
from __future__ import annotations

from typing import List, Set

from site_mirror.crawler.models import ProgressSnapshot


class CrawlState:
    """Visited/saved/failed sets plus the error log of a single mirror run.

    Not thread-safe; a run touches it from one logical thread only.
    """

    def __init__(self) -> None:
        self.visited_pages: Set[str] = set()
        self.saved_files: Set[str] = set()
        self.failed_resources: Set[str] = set()
        self.errors: List[str] = []
        self.parse_failures: int = 0

    def try_mark_visited(self, url: str) -> bool:
        """Return True if *url* was not visited before (and mark it)."""
        if url in self.visited_pages:
            return False
        self.visited_pages.add(url)
        return True

    def try_mark_saved(self, url: str) -> bool:
        if url in self.saved_files or url in self.failed_resources:
            return False
        self.saved_files.add(url)
        return True

    def is_settled(self, url: str) -> bool:
        """True once *url* has been saved or has failed for good."""
        return url in self.saved_files or url in self.failed_resources

    def mark_failed(self, url: str) -> None:
        if url not in self.saved_files:
            self.failed_resources.add(url)

    def record_error(self, message: str) -> None:
        self.errors.append(message)

    def record_parse_failure(self) -> None:
        self.parse_failures += 1

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            processed_urls=len(self.visited_pages),
            processed_files=len(self.saved_files),
            failed_resources=len(self.failed_resources),
            errors=list(self.errors),
            parse_failures=self.parse_failures,
        )


__all__ = ["CrawlState"]
