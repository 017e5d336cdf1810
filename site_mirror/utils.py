# File: site_mirror/utils.py
"""site_mirror.utils: Утилиты для нормализации URL и проверки принадлежности хосту."""

from __future__ import annotations

import posixpath
from typing import Optional, Sequence
from urllib.parse import unquote, urlsplit, urlunsplit

from site_mirror.exceptions import InvalidUrlError
from site_mirror.logger import logger

__all__: Sequence[str] = (
    "normalize_url",
    "extract_host",
    "is_same_host",
    "url_extension",
)

_SCHEMES = ("http://", "https://")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def _canonical_netloc(scheme: str, netloc: str, port: Optional[int]) -> str:
    """Lower-cased netloc without the scheme's default port."""
    netloc = netloc.lower()
    if port is not None and _DEFAULT_PORTS.get(scheme) == port:
        netloc = netloc.rsplit(":", 1)[0]
    return netloc


def normalize_url(reference: str, base: str) -> str:
    """Resolve *reference* against *base* into a canonical absolute URL.

    Absolute http(s) references are kept; anything else is glued onto *base*
    with exactly one slash between them (``../``, ``//host`` and query-only
    references are not resolved). The canonical form drops the fragment,
    lower-cases scheme and host, drops a default port and turns an empty
    path into ``/``.

    Raises :class:`InvalidUrlError` if the result has no http(s) scheme or host.
    """
    ref = reference.strip()
    if ref.lower().startswith(_SCHEMES):
        joined = ref
    else:
        joined = base.strip().rstrip("/") + "/" + ref.lstrip("/")

    try:
        parts = urlsplit(joined)
        host, port = parts.hostname, parts.port
    except ValueError as exc:
        raise InvalidUrlError(joined, str(exc)) from exc

    scheme = parts.scheme.lower()
    if scheme not in ("http", "https") or not host:
        raise InvalidUrlError(joined)

    netloc = _canonical_netloc(scheme, parts.netloc, port)
    canonical = urlunsplit((scheme, netloc, parts.path or "/", parts.query, ""))
    if canonical != ref:
        logger.debug("Normalized URL: %s -> %s", reference, canonical)
    return canonical


def extract_host(url: str) -> str:
    """Возвращает host[:port] из URL в нижнем регистре (без порта по умолчанию)."""
    parts = urlsplit(url)
    try:
        port = parts.port
    except ValueError:
        port = None
    return _canonical_netloc(parts.scheme.lower(), parts.netloc, port)


def is_same_host(url: str, base: str) -> bool:
    """True if *url* lives on the same host (and port) as *base*."""
    return extract_host(url) == extract_host(base)


def url_extension(url: str) -> str:
    """Lower-cased extension of the URL path without the dot, or ``""``."""
    path = unquote(urlsplit(url.strip()).path)
    _, ext = posixpath.splitext(posixpath.basename(path))
    return ext[1:].lower()
