# site_mirror/crawler/models.py
"""
Data models for the SiteMirror crawler.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class FetchFailure(str, Enum):
    """Terminal classification of a failed fetch."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    RETRIES_EXHAUSTED = "retries_exhausted"
    TRANSPORT_ERROR = "transport_error"
    TOO_LARGE = "too_large"


@dataclass(slots=True, frozen=True)
class FetchOutcome:
    """Result of one fetch attempt chain: a payload or a failure, never both."""

    url: str
    content: Optional[bytes] = None
    failure: Optional[FetchFailure] = None
    status: Optional[int] = None
    content_type: str = ""
    attempts: int = 0
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None and self.content is not None

    @property
    def is_html(self) -> bool:
        # a missing Content-Type is given the benefit of the doubt
        return not self.content_type or "html" in self.content_type

    @classmethod
    def success(
        cls, url: str, content: bytes, *, status: int = 200, content_type: str = "", attempts: int = 1
    ) -> FetchOutcome:
        return cls(url, content=content, status=status, content_type=content_type, attempts=attempts)

    @classmethod
    def failed(
        cls,
        url: str,
        failure: FetchFailure,
        *,
        status: Optional[int] = None,
        attempts: int = 0,
        detail: str = "",
    ) -> FetchOutcome:
        return cls(url, failure=failure, status=status, attempts=attempts, detail=detail)


@dataclass(slots=True, frozen=True)
class ResourceDescriptor:
    """Where a candidate resource URL was found: tag, attribute and raw value."""

    tag: str
    attribute: str
    raw_url: str


@dataclass(slots=True, frozen=True)
class ProgressSnapshot:
    """Read-only projection of the crawl counters and accumulated errors."""

    processed_urls: int = 0
    processed_files: int = 0
    failed_resources: int = 0
    errors: List[str] = field(default_factory=list)
    parse_failures: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "processed_urls": self.processed_urls,
            "processed_files": self.processed_files,
            "failed_resources": self.failed_resources,
            "errors": list(self.errors),
            "parse_failures": self.parse_failures,
        }
