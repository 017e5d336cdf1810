# File: site_mirror/events.py
"""site_mirror.events: потоковая выдача событий зеркалирования в формате JSON Lines."""

from __future__ import annotations

import json
import sys
from typing import Any, Dict, List, Optional, TextIO

from site_mirror.crawler.models import ProgressSnapshot

EVENT_TYPES = ("start", "progress", "complete", "error")


class EventEmitter:
    """Writes one ``{"type": ..., "data": ...}`` object per line and flushes it.

    Every emitted event is also kept in :attr:`history` for callers and tests.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.history: List[Dict[str, Any]] = []

    def emit(self, event_type: str, data: Any) -> None:
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type}")
        event = {"type": event_type, "data": data}
        self.history.append(event)
        self.stream.write(json.dumps(event, ensure_ascii=False) + "\n")
        self.stream.flush()

    def start(self, url: str) -> None:
        self.emit("start", {"url": url})

    def progress(self, snapshot: ProgressSnapshot) -> None:
        self.emit("progress", snapshot.as_dict())

    def complete(self, snapshot: ProgressSnapshot) -> None:
        self.emit("complete", snapshot.as_dict())

    def error(self, message: str) -> None:
        self.emit("error", message)


__all__ = ["EventEmitter", "EVENT_TYPES"]
