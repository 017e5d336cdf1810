# site_mirror/crawler/storage.py
"""
Local storage for mirrored files: URL path → file under the output root.
"""
from __future__ import annotations

from pathlib import Path
from typing import Union
from urllib.parse import unquote, urlsplit

from site_mirror.exceptions import StorageError

DEFAULT_INDEX = "index.html"


class SiteStorage:
    """Writes payloads under *root*, mirroring the remote path structure 1:1."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def prepare(self) -> Path:
        """Create the output root. Failure here is fatal for the run."""
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def path_for(self, url: str) -> Path:
        """Local path for *url*; an empty or directory path maps to ``index.html``."""
        path = unquote(urlsplit(url).path)
        if "\x00" in path:
            raise StorageError(f"Path {path!r} contains a NUL byte")
        if not path or path.endswith("/"):
            path += DEFAULT_INDEX
        target = self.root / path.lstrip("/")

        try:
            root = self.root.resolve()
            resolved = target.resolve()
        except (OSError, ValueError) as exc:
            raise StorageError(f"Cannot map {path!r} to a local file: {exc}") from exc
        if resolved != root and root not in resolved.parents:
            raise StorageError(f"Path {path!r} escapes output directory {self.root}")
        return target

    def write(self, url: str, payload: bytes) -> Path:
        target = self.path_for(url)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Failed to create directory: {target.parent} ({exc})") from exc
        try:
            target.write_bytes(payload)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Failed to write file: {target} ({exc})") from exc
        return target


__all__ = ["SiteStorage", "DEFAULT_INDEX"]
