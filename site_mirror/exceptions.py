# site_mirror/exceptions.py
"""
Exception hierarchy for SiteMirror.

Fetch failures are not exceptions: they travel as
:class:`~site_mirror.crawler.models.FetchOutcome` values.
"""
from __future__ import annotations


class MirrorError(Exception):
    """Base class for errors raised by the mirror core."""


class InvalidUrlError(MirrorError, ValueError):
    """A reference could not be turned into an absolute http(s) URL."""

    def __init__(self, url: str, reason: str = "not an absolute http(s) URL") -> None:
        super().__init__(f"Invalid URL {url!r}: {reason}")
        self.url = url
        self.reason = reason


class StorageError(MirrorError, OSError):
    """Writing a fetched file (or its directories) under the output root failed."""


__all__ = ["MirrorError", "InvalidUrlError", "StorageError"]
