# site_mirror/crawler/link_extractor.py
"""
Resource and link extraction for SiteMirror.

Resources are looked up through a fixed tag → attribute map and filtered by
file extension; anchors are returned unfiltered so the caller can apply the
same-host rule.
"""
from __future__ import annotations

import re
from typing import Collection, Dict, List, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_mirror.crawler.models import ResourceDescriptor
from site_mirror.utils import url_extension

RESOURCE_ATTRIBUTES: Dict[str, str] = {
    "link": "href",
    "script": "src",
    "img": "src",
    "source": "srcset",
}

_SKIPPED_SCHEMES = ("mailto:", "javascript:", "tel:", "data:")
_SRCSET_SPLIT_RE = re.compile(r"\s*,\s*")
_WS_RE = re.compile(r"\s+")


def parse_document(content: Union[str, bytes]) -> BeautifulSoup:
    """Turn raw markup into a navigable tree (encoding is sniffed for bytes)."""
    return BeautifulSoup(content, "html.parser")


def parse_srcset(value: str) -> List[str]:
    """``"a.png 1x, b.png 2x"`` → ``["a.png", "b.png"]``."""
    urls: List[str] = []
    for candidate in _SRCSET_SPLIT_RE.split(value.strip()):
        parts = _WS_RE.split(candidate.strip())
        if parts and parts[0]:
            urls.append(parts[0])
    return urls


def is_allowed_extension(url: str, allowed: Collection[str]) -> bool:
    """Case-insensitive check of the URL path's extension against *allowed*."""
    ext = url_extension(url)
    return bool(ext) and ext in allowed


def extract_resources(soup: BeautifulSoup, allowed_extensions: Collection[str]) -> List[ResourceDescriptor]:
    """
    Collect resource candidates in document order, one per tag in
    :data:`RESOURCE_ATTRIBUTES`, keeping only allowed extensions.
    """
    found: List[ResourceDescriptor] = []
    for tag_name, attr in RESOURCE_ATTRIBUTES.items():
        for tag in soup.find_all(tag_name):
            if not isinstance(tag, Tag):
                continue
            value = tag.get(attr)
            if not isinstance(value, str) or not value.strip():
                continue
            raw_urls = parse_srcset(value) if attr == "srcset" else [value.strip()]
            for raw in raw_urls:
                if is_allowed_extension(raw, allowed_extensions):
                    found.append(ResourceDescriptor(tag_name, attr, raw))
    return found


def extract_links(soup: BeautifulSoup) -> List[str]:
    """
    Return raw ``href`` values of all anchors.

    Ignores mailto:, javascript:, tel:, data: and fragment-only references.
    """
    links: List[str] = []
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        raw = href_val.strip()
        if not raw or raw.startswith("#") or raw.lower().startswith(_SKIPPED_SCHEMES):
            continue
        links.append(raw)
    return links


__all__ = [
    "RESOURCE_ATTRIBUTES",
    "parse_document",
    "parse_srcset",
    "is_allowed_extension",
    "extract_resources",
    "extract_links",
]
